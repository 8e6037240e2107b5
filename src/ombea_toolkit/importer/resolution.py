"""
Module: importer.resolution

Purpose:
    Anomaly resolution as a pure reducer:
    (anomalies, roster, resolutions) → (final responses, revised roster, audit).

    Expected device with an issue:
        pending → mark_absent | aggregate_with_unknown | ignore_device
    Unregistered device:
        pending → ignore_responses | add_as_new_participant
    An unregistered device chosen as an aggregation source is consumed
    by that aggregation and needs no resolution of its own.

Key Functions:
    - pending_resolutions(): Initial all-pending decisions
    - validate_resolutions(): Every problem blocking finalization
    - resolve(): Apply valid decisions

Key Classes:
    - ResolutionOutcome: Final responses, roster and audit record
    - ResolutionValidationError: Finalization blocked

Used By:
    - importer.controller
    - cli
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ombea_toolkit.core.models import (
    DetectedAnomalies,
    ExpectedIssueAction,
    ExpectedIssueResolution,
    ExtractedResponse,
    ParticipantStatus,
    RosterEntry,
    UnknownDeviceAction,
    UnknownDeviceResolution,
)

logger = logging.getLogger(__name__)

DEFAULT_GIVEN_NAME = "Inconnu"
NEW_PARTICIPANT_PREFIX = "NEW_"


class ResolutionValidationError(Exception):
    """Raised when finalization is attempted with pending or inconsistent decisions."""

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} unresolved anomaly decision(s): " + "; ".join(self.errors))


@dataclass(frozen=True)
class ResolutionOutcome:
    """
    Result of applying operator decisions (immutable).

    Attributes:
        responses: Final response set, one per (device, GUID)
        roster: Revised roster (absent statuses, new participants)
        absent_devices: Devices marked absent
        audit: {expected_issues, unknown_devices, resolved_at} for persistence
    """

    responses: Tuple[ExtractedResponse, ...]
    roster: Tuple[RosterEntry, ...]
    absent_devices: Tuple[str, ...]
    audit: Dict[str, Any]


def pending_resolutions(
    anomalies: DetectedAnomalies,
) -> Tuple[Tuple[ExpectedIssueResolution, ...], Tuple[UnknownDeviceResolution, ...]]:
    """One pending decision per flagged entity."""
    return (
        tuple(ExpectedIssueResolution(i.device_id) for i in anomalies.expected_issues),
        tuple(UnknownDeviceResolution(u.device_id) for u in anomalies.unknown_devices),
    )


def aggregation_sources(expected: Iterable[ExpectedIssueResolution]) -> Set[str]:
    """Unregistered devices consumed by an aggregation."""
    return {
        r.source_unknown_device_id
        for r in expected
        if r.action is ExpectedIssueAction.AGGREGATE_WITH_UNKNOWN and r.source_unknown_device_id
    }


def validate_resolutions(
    anomalies: DetectedAnomalies,
    expected: Sequence[ExpectedIssueResolution],
    unknown: Sequence[UnknownDeviceResolution],
) -> List[str]:
    """
    List every reason the decisions cannot be finalized.

    Returns:
        Error messages; empty when the decisions are complete and consistent

    Example:
        >>> validate_resolutions(anomalies, *pending_resolutions(anomalies))
        ['Device 1017ED: decision pending', ...]
    """
    errors: List[str] = []
    expected_by_device = {r.device_id: r for r in expected}
    unknown_by_device = {r.device_id: r for r in unknown}
    unknown_ids = {u.device_id for u in anomalies.unknown_devices}

    for device_id in expected_by_device:
        if anomalies.issue_for(device_id) is None:
            errors.append(f"Device {device_id}: no missing-answer issue to resolve")
    for device_id in unknown_by_device:
        if device_id not in unknown_ids:
            errors.append(f"Device {device_id}: not an unregistered device")

    used_sources: Dict[str, str] = {}
    for issue in anomalies.expected_issues:
        resolution = expected_by_device.get(issue.device_id)
        if resolution is None or resolution.action is ExpectedIssueAction.PENDING:
            errors.append(f"Device {issue.device_id}: decision pending")
            continue
        if resolution.action is not ExpectedIssueAction.AGGREGATE_WITH_UNKNOWN:
            continue
        source = resolution.source_unknown_device_id
        if not source:
            errors.append(f"Device {issue.device_id}: aggregation needs a source device")
        elif source not in unknown_ids:
            errors.append(f"Device {issue.device_id}: aggregation source {source} is not an unregistered device")
        elif source in used_sources:
            errors.append(
                f"Device {issue.device_id}: source {source} already aggregated with {used_sources[source]}"
            )
        else:
            used_sources[source] = issue.device_id

    for device in anomalies.unknown_devices:
        if device.device_id in used_sources:
            continue
        resolution = unknown_by_device.get(device.device_id)
        if resolution is None or resolution.action is UnknownDeviceAction.PENDING:
            errors.append(f"Device {device.device_id}: decision pending")
        elif (
            resolution.action is UnknownDeviceAction.ADD_AS_NEW_PARTICIPANT
            and not (resolution.new_participant_name or "").strip()
        ):
            errors.append(f"Device {device.device_id}: new participant needs a name")
    return errors


def new_participant(device_id: str, name: Optional[str]) -> RosterEntry:
    """
    Roster entry for an unregistered device added as a participant.

    The name splits on its first space; missing parts default to
    "Inconnu" and "SN-<last 4 of serial>".

    Example:
        >>> new_participant("10A2B3", "Marie Curie Sklodowska").family_name
        'Curie Sklodowska'
        >>> new_participant("10A2B3", "Marie").family_name
        'SN-A2B3'
    """
    tokens = (name or "").split()
    given = tokens[0] if tokens else DEFAULT_GIVEN_NAME
    family = " ".join(tokens[1:]) or f"SN-{device_id[-4:]}"
    return RosterEntry(
        device_id=device_id,
        given_name=given,
        family_name=family,
        identification_code=f"{NEW_PARTICIPANT_PREFIX}{device_id}",
    )


def _aggregate(
    device_id: str,
    own: Sequence[ExtractedResponse],
    borrowed: Sequence[ExtractedResponse],
) -> List[ExtractedResponse]:
    # Borrowed responses override the device's own for a shared GUID
    merged: Dict[str, ExtractedResponse] = {}
    for response in list(own) + list(borrowed):
        merged[response.slide_guid] = response.with_device(device_id)
    return list(merged.values())


def resolve(
    anomalies: DetectedAnomalies,
    roster: Sequence[RosterEntry],
    expected: Sequence[ExpectedIssueResolution],
    unknown: Sequence[UnknownDeviceResolution],
    now: Optional[datetime] = None,
) -> ResolutionOutcome:
    """
    Apply operator decisions and produce the final response set.

    Args:
        anomalies: Output of detect_anomalies()
        roster: Session participants
        expected: Decisions for expected devices with issues
        unknown: Decisions for unregistered devices
        now: Audit timestamp; current UTC time when None

    Returns:
        ResolutionOutcome

    Raises:
        ResolutionValidationError: If validate_resolutions() reports anything
    """
    errors = validate_resolutions(anomalies, expected, unknown)
    if errors:
        for message in errors:
            logger.warning(f"Resolution blocked: {message}")
        raise ResolutionValidationError(errors)

    expected_by_device = {r.device_id: r for r in expected}
    unknown_by_device = {r.device_id: r for r in unknown}
    sources = aggregation_sources(expected)

    final: List[ExtractedResponse] = list(anomalies.clean_responses)
    absent: List[str] = []
    for issue in anomalies.expected_issues:
        resolution = expected_by_device[issue.device_id]
        if resolution.action is ExpectedIssueAction.AGGREGATE_WITH_UNKNOWN:
            source = anomalies.unknown_for(resolution.source_unknown_device_id)
            final.extend(_aggregate(issue.device_id, issue.responses, source.responses))
            logger.info(
                f"Device {issue.device_id}: aggregated with {source.device_id} "
                f"({len(source.responses)} borrowed response(s))"
            )
        else:
            absent.append(issue.device_id)
            logger.info(f"Device {issue.device_id}: {resolution.action.value}, marked absent")

    added: List[RosterEntry] = []
    for device in anomalies.unknown_devices:
        if device.device_id in sources:
            logger.debug(f"Device {device.device_id}: consumed by aggregation")
            continue
        resolution = unknown_by_device[device.device_id]
        if resolution.action is UnknownDeviceAction.ADD_AS_NEW_PARTICIPANT:
            added.append(new_participant(device.device_id, resolution.new_participant_name))
            final.extend(device.responses)
            logger.info(f"Device {device.device_id}: added as participant {resolution.new_participant_name!r}")
        else:
            logger.info(f"Device {device.device_id}: {len(device.responses)} response(s) ignored")

    # Last one wins per (device, GUID)
    unique: Dict[Tuple[str, str], ExtractedResponse] = {}
    for response in final:
        unique[response.key] = response

    absent_set = set(absent)
    revised = [
        entry.with_status(ParticipantStatus.ABSENT) if entry.device_id in absent_set else entry
        for entry in roster
    ]
    revised.extend(added)

    audit = {
        "expected_issues": [r.to_dict() for r in expected],
        "unknown_devices": [r.to_dict() for r in unknown],
        "resolved_at": (now or datetime.now(timezone.utc)).isoformat(),
    }
    logger.info(f"Resolution complete: {len(unique)} response(s), {len(absent)} absent, {len(added)} added")
    return ResolutionOutcome(
        responses=tuple(unique.values()),
        roster=tuple(revised),
        absent_devices=tuple(absent),
        audit=audit,
    )
