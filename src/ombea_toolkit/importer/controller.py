"""
Module: importer.controller

Purpose:
    Orchestrate the import pipeline in two phases around the operator
    decision gate.
    Extract → Filter ignored → Dedupe → GUID check → Detect   (prepare_import)
    Resolve → Transform → Score                              (finalize_import)

    The PendingImport returned by the first phase holds everything the
    second needs in memory; discarding it cancels the import with
    nothing persisted.

Key Functions:
    - prepare_import(): Phase one, up to anomaly detection
    - finalize_import(): Phase two, with operator decisions
    - import_results(): Both phases in one call

Key Classes:
    - PendingImport: State held between detection and confirmation
    - ImportResult: Graded results, revised roster, scores, audit

Used By:
    - cli: `ombea-toolkit import`
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Sequence, Tuple

from ombea_toolkit.core.models import (
    DetectedAnomalies,
    ExpectedIssueResolution,
    GradedResult,
    QuestionMapping,
    RosterEntry,
    UnknownDeviceResolution,
)
from ombea_toolkit.generator.config import ScoringConfig

from .anomalies import detect_anomalies, ensure_mapped, relevant_guids
from .dedupe import deduplicate_responses, filter_ignored
from .extractor import ExtractionReport, ResultsFormatError, extract_responses
from .resolution import resolve
from .scoring import ParticipantOutcome, score_participants
from .transformer import UnmappedGuidError, transform_responses

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingImport:
    """
    Import state between detection and operator confirmation.

    Attributes:
        session_id: Session being imported
        mappings: Persisted QuestionMapping list
        roster: Participants at import time
        relevant_guids: GUIDs each participant should answer
        anomalies: Detection result (includes the clean responses)
        extraction: Raw extraction report (dropped rows, warnings)
    """

    session_id: int
    mappings: Tuple[QuestionMapping, ...]
    roster: Tuple[RosterEntry, ...]
    relevant_guids: Tuple[str, ...]
    anomalies: DetectedAnomalies
    extraction: ExtractionReport

    @property
    def needs_resolution(self) -> bool:
        return self.anomalies.has_anomalies


@dataclass(frozen=True)
class ImportResult:
    """
    Complete import result (immutable).

    Attributes:
        results: Graded results to persist
        roster: Revised roster to persist
        outcomes: Score and pass/fail per participant
        audit: Anomaly audit record, None when no anomalies were resolved
        dropped: Response rows skipped during extraction
        warnings: Recoverable problems met during import
    """

    results: Tuple[GradedResult, ...]
    roster: Tuple[RosterEntry, ...]
    outcomes: Tuple[ParticipantOutcome, ...]
    audit: Optional[Dict[str, Any]]
    dropped: int
    warnings: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "roster": [p.to_dict() for p in self.roster],
            "outcomes": [o.to_dict() for o in self.outcomes],
            "audit": self.audit,
            "dropped": self.dropped,
            "warnings": list(self.warnings),
        }


def prepare_import(
    archive_bytes: bytes,
    session_id: int,
    mappings: Sequence[QuestionMapping],
    roster: Sequence[RosterEntry],
    ignored_guids: Sequence[str] = (),
) -> PendingImport:
    """
    Run the import up to anomaly detection.

    Args:
        archive_bytes: Returned delivery archive
        session_id: Session being imported
        mappings: QuestionMapping list persisted at generation
        roster: Session participants
        ignored_guids: GUIDs the template carried

    Returns:
        PendingImport; check `needs_resolution` before finalizing

    Raises:
        ResultsFormatError: If the archive or session document is unusable
        UnmappedGuidError: If a response GUID is not a relevant session GUID
    """
    logger.info(f"Importing results for session {session_id}")
    try:
        extraction = extract_responses(archive_bytes)
    except ResultsFormatError as e:
        logger.error(f"Import failed: {e}")
        raise

    responses = filter_ignored(extraction.responses, ignored_guids)
    responses = deduplicate_responses(responses)
    relevant = relevant_guids(mappings, ignored_guids)
    logger.info(f"{len(responses)} response(s) after dedupe, {len(relevant)} relevant question(s)")

    ensure_mapped(responses, relevant)
    anomalies = detect_anomalies(roster, relevant, responses)
    return PendingImport(
        session_id=session_id,
        mappings=tuple(mappings),
        roster=tuple(roster),
        relevant_guids=relevant,
        anomalies=anomalies,
        extraction=extraction,
    )


def finalize_import(
    pending: PendingImport,
    expected_resolutions: Sequence[ExpectedIssueResolution] = (),
    unknown_resolutions: Sequence[UnknownDeviceResolution] = (),
    scoring: Optional[ScoringConfig] = None,
    now: Optional[datetime] = None,
) -> ImportResult:
    """
    Apply decisions, grade the final responses and score participants.

    Without anomalies the clean responses are graded directly and the
    decisions are ignored.

    Raises:
        ResolutionValidationError: If any flagged entity lacks a valid decision
        UnmappedGuidError: If a final response has no mapping
    """
    audit: Optional[Dict[str, Any]] = None
    if pending.needs_resolution:
        outcome = resolve(
            pending.anomalies, pending.roster, expected_resolutions, unknown_resolutions, now=now
        )
        responses = outcome.responses
        roster = outcome.roster
        audit = outcome.audit
    else:
        responses = pending.anomalies.clean_responses
        roster = pending.roster

    try:
        results = transform_responses(responses, pending.mappings, pending.session_id, now=now)
    except UnmappedGuidError as e:
        logger.error(f"Import rejected: {e}")
        raise

    outcomes = score_participants(roster, results, pending.mappings, scoring)
    logger.info(f"Import of session {pending.session_id} ready: {len(results)} result(s)")
    return ImportResult(
        results=tuple(results),
        roster=tuple(roster),
        outcomes=tuple(outcomes),
        audit=audit,
        dropped=pending.extraction.dropped,
        warnings=pending.extraction.warnings,
    )


def import_results(
    archive_bytes: bytes,
    session_id: int,
    mappings: Sequence[QuestionMapping],
    roster: Sequence[RosterEntry],
    ignored_guids: Sequence[str] = (),
    expected_resolutions: Sequence[ExpectedIssueResolution] = (),
    unknown_resolutions: Sequence[UnknownDeviceResolution] = (),
    scoring: Optional[ScoringConfig] = None,
) -> ImportResult:
    """
    Both import phases in one call.

    Example:
        >>> result = import_results(archive, 7, mappings, roster)
        >>> len(result.results)
        6
    """
    pending = prepare_import(archive_bytes, session_id, mappings, roster, ignored_guids)
    return finalize_import(pending, expected_resolutions, unknown_resolutions, scoring)
