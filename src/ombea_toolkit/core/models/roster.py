"""
Module: core.models.roster

Purpose:
    Participant-to-device assignment for a session. A RosterEntry is
    created when the participant list is finalized and is referenced by
    device identifier only once the roster document has been emitted.

Key Classes:
    - RosterEntry: One participant and the serial of their keypad
    - ParticipantStatus: present / absent

Used By:
    - generator.output.roster_document
    - generator.slides.intro_slides
    - importer.anomalies, importer.resolution, importer.scoring
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional


class ParticipantStatus(str, Enum):
    """Attendance recorded for a participant after import."""

    PRESENT = "present"
    ABSENT = "absent"


@dataclass(frozen=True)
class RosterEntry:
    """
    A participant holding one response keypad (immutable).

    Attributes:
        device_id: Physical serial of the keypad, e.g. "1017ED"
        given_name: First name
        family_name: Last name
        organization: Optional organisation shown on the roster
        identification_code: Optional external identifier
        status: Attendance, updated by anomaly resolution
    """

    device_id: str
    given_name: str
    family_name: str
    organization: Optional[str] = None
    identification_code: Optional[str] = None
    status: ParticipantStatus = ParticipantStatus.PRESENT

    def __post_init__(self) -> None:
        if not self.device_id or not self.device_id.strip():
            raise ValueError("device_id is required")

    @property
    def display_name(self) -> str:
        return f"{self.given_name} {self.family_name}".strip()

    def with_status(self, status: ParticipantStatus) -> "RosterEntry":
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "given_name": self.given_name,
            "family_name": self.family_name,
            "organization": self.organization,
            "identification_code": self.identification_code,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RosterEntry":
        return cls(
            device_id=str(data["device_id"]),
            given_name=data.get("given_name", ""),
            family_name=data.get("family_name", ""),
            organization=data.get("organization") or None,
            identification_code=data.get("identification_code"),
            status=ParticipantStatus(data.get("status", ParticipantStatus.PRESENT.value)),
        )
