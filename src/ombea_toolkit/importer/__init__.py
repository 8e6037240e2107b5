"""
Module: importer

Purpose:
    Import pipeline: reads the returned delivery archive, deduplicates
    keypad answers, flags roster mismatches for operator resolution and
    grades the final responses against the persisted question mappings.

Key Functions:
    - prepare_import(): Extract, dedupe, check GUIDs, detect anomalies
    - finalize_import(): Resolve, transform, score
    - import_results(): Both phases in one call

Key Classes:
    - PendingImport: State held while the operator decides
    - ImportResult: Graded results, revised roster and scores

Dependencies:
    - lxml: Session document parsing

Used By:
    - ombea_toolkit.cli: `import` command
"""

from .anomalies import detect_anomalies, ensure_mapped, relevant_guids
from .controller import ImportResult, PendingImport, finalize_import, import_results, prepare_import
from .dedupe import deduplicate_responses, filter_ignored
from .extractor import (
    ExtractionReport,
    ResultsFormatError,
    extract_responses,
    parse_results_xml,
    read_delivery_archive,
)
from .resolution import (
    ResolutionOutcome,
    ResolutionValidationError,
    new_participant,
    pending_resolutions,
    resolve,
    validate_resolutions,
)
from .scoring import (
    ParticipantOutcome,
    ThemeScore,
    is_successful,
    participant_score,
    score_participants,
    theme_scores,
)
from .transformer import UnmappedGuidError, guid_index, transform_responses

__all__ = [
    # Controller
    "ImportResult",
    "PendingImport",
    "finalize_import",
    "import_results",
    "prepare_import",
    # Extraction
    "ExtractionReport",
    "ResultsFormatError",
    "extract_responses",
    "parse_results_xml",
    "read_delivery_archive",
    # Dedupe
    "deduplicate_responses",
    "filter_ignored",
    # Anomalies
    "detect_anomalies",
    "ensure_mapped",
    "relevant_guids",
    # Resolution
    "ResolutionOutcome",
    "ResolutionValidationError",
    "new_participant",
    "pending_resolutions",
    "resolve",
    "validate_resolutions",
    # Scoring
    "ParticipantOutcome",
    "ThemeScore",
    "is_successful",
    "participant_score",
    "score_participants",
    "theme_scores",
    # Transformer
    "UnmappedGuidError",
    "guid_index",
    "transform_responses",
]
