"""
Module: importer.dedupe

Purpose:
    Keep one response per (device, question GUID). Keypads may send
    several answers to the same poll; the latest one counts.

Key Functions:
    - deduplicate_responses(): One response per key, latest wins
    - filter_ignored(): Drop responses to template-owned GUIDs

Used By:
    - importer.controller
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Tuple

from ombea_toolkit.core.models import ExtractedResponse

logger = logging.getLogger(__name__)


def _replaces(candidate: ExtractedResponse, kept: ExtractedResponse) -> bool:
    new_time = candidate.answered_at
    old_time = kept.answered_at
    if new_time is None:
        return False
    if old_time is None:
        return True
    return new_time > old_time


def deduplicate_responses(responses: Iterable[ExtractedResponse]) -> List[ExtractedResponse]:
    """
    Keep the latest response per (device, GUID).

    A timestamped response replaces an earlier-seen one that is older or
    has no timestamp; equal or missing timestamps keep the first seen.
    Output keeps first-seen key order, so applying it twice changes
    nothing.

    Example:
        >>> first = ExtractedResponse("A1", "G", "1", timestamp="2025-01-01T10:00:00Z")
        >>> later = ExtractedResponse("A1", "G", "2", timestamp="2025-01-01T10:00:05Z")
        >>> [r.answer_id for r in deduplicate_responses([first, later])]
        ['2']
    """
    latest: Dict[Tuple[str, str], ExtractedResponse] = {}
    total = 0
    for response in responses:
        total += 1
        kept = latest.get(response.key)
        if kept is None or _replaces(response, kept):
            latest[response.key] = response
    if total != len(latest):
        logger.info(f"Deduplicated {total} responses to {len(latest)}")
    return list(latest.values())


def filter_ignored(
    responses: Iterable[ExtractedResponse],
    ignored_guids: Iterable[str],
) -> List[ExtractedResponse]:
    """Drop responses to GUIDs the template already carried."""
    ignored = set(ignored_guids)
    if not ignored:
        return list(responses)
    kept = []
    skipped = 0
    for response in responses:
        if response.slide_guid in ignored:
            skipped += 1
        else:
            kept.append(response)
    if skipped:
        logger.info(f"Filtered {skipped} response(s) to {len(ignored)} ignored GUID(s)")
    return kept
