"""
Module: core.models.anomalies

Purpose:
    Data produced by anomaly detection and the operator decisions that
    resolve it. Everything here is immutable; the resolution engine
    derives a new state from (anomalies, resolutions) instead of
    mutating either.

Key Classes:
    - ExpectedDeviceIssue: Roster device that skipped relevant questions
    - UnknownDevice: Unregistered device that responded
    - DetectedAnomalies: Both lists plus the responses that passed clean
    - ExpectedIssueAction / UnknownDeviceAction: Resolution states
    - ExpectedIssueResolution / UnknownDeviceResolution: Operator decisions

Used By:
    - importer.anomalies
    - importer.resolution
    - importer.controller
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .responses import ExtractedResponse


class ExpectedIssueAction(str, Enum):
    """States of an expected device with missing responses."""

    PENDING = "pending"
    MARK_ABSENT = "mark_absent"
    AGGREGATE_WITH_UNKNOWN = "aggregate_with_unknown"
    IGNORE_DEVICE = "ignore_device"


class UnknownDeviceAction(str, Enum):
    """States of an unregistered device that responded."""

    PENDING = "pending"
    IGNORE_RESPONSES = "ignore_responses"
    ADD_AS_NEW_PARTICIPANT = "add_as_new_participant"


@dataclass(frozen=True)
class ExpectedDeviceIssue:
    """
    A roster device that did not answer every relevant question.

    Attributes:
        device_id: Keypad serial from the roster
        participant_name: Display name, for operator prompts
        responded_guids: Relevant GUIDs the device answered
        missing_guids: Relevant GUIDs without an answer, in mapping order
        total_expected: Number of relevant questions in the session
        responses: The device's own (partial) responses
    """

    device_id: str
    participant_name: str
    responded_guids: FrozenSet[str]
    missing_guids: Tuple[str, ...]
    total_expected: int
    responses: Tuple[ExtractedResponse, ...] = ()


@dataclass(frozen=True)
class UnknownDevice:
    """An unregistered device and every response it sent."""

    device_id: str
    responses: Tuple[ExtractedResponse, ...]


@dataclass(frozen=True)
class DetectedAnomalies:
    """
    Outcome of anomaly detection for one import attempt.

    `clean_responses` holds responses from roster devices with nothing
    missing. Together with the responses attached to each issue and
    unknown device it partitions the deduplicated response set.
    """

    expected_issues: Tuple[ExpectedDeviceIssue, ...] = ()
    unknown_devices: Tuple[UnknownDevice, ...] = ()
    clean_responses: Tuple[ExtractedResponse, ...] = ()

    @property
    def has_anomalies(self) -> bool:
        return bool(self.expected_issues or self.unknown_devices)

    def issue_for(self, device_id: str) -> Optional[ExpectedDeviceIssue]:
        return next((i for i in self.expected_issues if i.device_id == device_id), None)

    def unknown_for(self, device_id: str) -> Optional[UnknownDevice]:
        return next((u for u in self.unknown_devices if u.device_id == device_id), None)


@dataclass(frozen=True)
class ExpectedIssueResolution:
    """Operator decision for one expected device with an issue."""

    device_id: str
    action: ExpectedIssueAction = ExpectedIssueAction.PENDING
    source_unknown_device_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "action": self.action.value,
            "source_unknown_device_id": self.source_unknown_device_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExpectedIssueResolution":
        return cls(
            device_id=str(data["device_id"]),
            action=ExpectedIssueAction(data.get("action", "pending")),
            source_unknown_device_id=data.get("source_unknown_device_id"),
        )


@dataclass(frozen=True)
class UnknownDeviceResolution:
    """Operator decision for one unregistered device."""

    device_id: str
    action: UnknownDeviceAction = UnknownDeviceAction.PENDING
    new_participant_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "action": self.action.value,
            "new_participant_name": self.new_participant_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnknownDeviceResolution":
        return cls(
            device_id=str(data["device_id"]),
            action=UnknownDeviceAction(data.get("action", "pending")),
            new_participant_name=data.get("new_participant_name"),
        )
