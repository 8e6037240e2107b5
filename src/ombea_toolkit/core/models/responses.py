"""
Module: core.models.responses

Purpose:
    Response records flowing through the import pipeline: the raw
    ExtractedResponse read from a response session and the GradedResult
    handed to storage.

Key Classes:
    - ExtractedResponse: One keypad answer to one question slide
    - GradedResult: Persistable, question-level result

Key Functions:
    - parse_timestamp(): Parse a response-session time attribute

Used By:
    - importer.*
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 time attribute, returning None when absent or invalid.

    Naive values are read as UTC so they compare with aware ones.

    Example:
        >>> parse_timestamp("2025-05-28T10:15:00Z").minute
        15
        >>> parse_timestamp("") is None
        True
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ExtractedResponse:
    """
    One answer read from the response session (immutable).

    Attributes:
        device_id: Physical keypad serial
        slide_guid: GUID of the question slide answered
        answer_id: Identifier of the chosen answer option
        points: Points from the session's scoring table (not recomputed)
        timestamp: Raw time attribute, if the keypad reported one
    """

    device_id: str
    slide_guid: str
    answer_id: str
    points: int = 0
    timestamp: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        """Deduplication key: (device, question GUID)."""
        return (self.device_id, self.slide_guid)

    @property
    def answered_at(self) -> Optional[datetime]:
        return parse_timestamp(self.timestamp)

    def with_device(self, device_id: str) -> "ExtractedResponse":
        """Return a copy re-tagged with another device serial."""
        return replace(self, device_id=device_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device_id": self.device_id,
            "slide_guid": self.slide_guid,
            "answer_id": self.answer_id,
            "points": self.points,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class GradedResult:
    """
    Result ready for persistence (immutable).

    Attributes:
        session_id: Session the result belongs to
        question_id: Bank question identifier
        device_id: Keypad serial of the participant
        answer_id: Chosen answer option
        is_correct: True when the answer earned points
        points: Points earned
        timestamp: Time the result was produced (ISO-8601)
    """

    session_id: int
    question_id: int
    device_id: str
    answer_id: str
    is_correct: bool
    points: int
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "question_id": self.question_id,
            "device_id": self.device_id,
            "answer_id": self.answer_id,
            "is_correct": self.is_correct,
            "points": self.points,
            "timestamp": self.timestamp,
        }
