"""
Module: importer.transformer

Purpose:
    Map surviving responses to graded results through the question
    mappings minted at generation time. A GUID without a mapping means
    the results file belongs to another package, so the whole batch is
    rejected.

Key Functions:
    - guid_index(): slide GUID -> QuestionMapping
    - transform_responses(): ExtractedResponse -> GradedResult

Key Classes:
    - UnmappedGuidError: A response GUID has no mapping

Used By:
    - importer.anomalies
    - importer.controller
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from ombea_toolkit.core.models import ExtractedResponse, GradedResult, QuestionMapping

logger = logging.getLogger(__name__)


class UnmappedGuidError(Exception):
    """Raised when a response refers to a GUID this session did not generate."""

    def __init__(self, guids: Sequence[str]):
        self.guids = list(guids)
        super().__init__(
            f"Results reference {len(self.guids)} question GUID(s) not in this session: "
            f"{', '.join(self.guids)}"
        )


def guid_index(mappings: Iterable[QuestionMapping]) -> Dict[str, QuestionMapping]:
    """Mappings keyed by slide GUID; entries without a GUID are skipped."""
    index: Dict[str, QuestionMapping] = {}
    for mapping in mappings:
        if not mapping.slide_guid:
            logger.warning(f"Question {mapping.question_id} has no slide GUID, skipped")
            continue
        index[mapping.slide_guid] = mapping
    return index


def transform_responses(
    responses: Sequence[ExtractedResponse],
    mappings: Sequence[QuestionMapping],
    session_id: int,
    now: Optional[datetime] = None,
) -> List[GradedResult]:
    """
    Produce one GradedResult per response.

    Correctness comes from the points recorded in the session document:
    a response is correct when it earned points.

    Args:
        responses: Final response set
        mappings: QuestionMapping list persisted for the session
        session_id: Session the results belong to
        now: Result timestamp; current UTC time when None

    Returns:
        GradedResults, in response order

    Raises:
        UnmappedGuidError: If any response GUID has no mapping; nothing
            is returned in that case
    """
    index = guid_index(mappings)
    unmapped = []
    for response in responses:
        if response.slide_guid not in index and response.slide_guid not in unmapped:
            unmapped.append(response.slide_guid)
    if unmapped:
        raise UnmappedGuidError(unmapped)

    stamp = (now or datetime.now(timezone.utc)).isoformat()
    results = [
        GradedResult(
            session_id=session_id,
            question_id=index[r.slide_guid].question_id,
            device_id=r.device_id,
            answer_id=r.answer_id,
            is_correct=r.points > 0,
            points=r.points,
            timestamp=stamp,
        )
        for r in responses
    ]
    logger.info(f"Transformed {len(results)} responses for session {session_id}")
    return results
