"""
Core data models shared by the generator and the importer.

All models are frozen dataclasses:

| Model | Produced by | Consumed by |
|-------|-------------|-------------|
| Question | caller / question bank | generator |
| QuestionMapping | generator | importer (persisted in between) |
| RosterEntry | caller | roster document, anomaly detection |
| ExtractedResponse | importer.extractor | dedupe, anomalies, resolution |
| DetectedAnomalies | importer.anomalies | importer.resolution |
| GradedResult | importer.transformer | storage |
"""

from .anomalies import (
    DetectedAnomalies,
    ExpectedDeviceIssue,
    ExpectedIssueAction,
    ExpectedIssueResolution,
    UnknownDevice,
    UnknownDeviceAction,
    UnknownDeviceResolution,
)
from .questions import (
    MAX_OPTIONS,
    MIN_OPTIONS,
    Question,
    QuestionMapping,
    QuestionValidationError,
    split_theme,
)
from .responses import ExtractedResponse, GradedResult, parse_timestamp
from .roster import ParticipantStatus, RosterEntry

__all__ = [
    "DetectedAnomalies",
    "ExpectedDeviceIssue",
    "ExpectedIssueAction",
    "ExpectedIssueResolution",
    "UnknownDevice",
    "UnknownDeviceAction",
    "UnknownDeviceResolution",
    "MAX_OPTIONS",
    "MIN_OPTIONS",
    "Question",
    "QuestionMapping",
    "QuestionValidationError",
    "split_theme",
    "ExtractedResponse",
    "GradedResult",
    "parse_timestamp",
    "ParticipantStatus",
    "RosterEntry",
]
