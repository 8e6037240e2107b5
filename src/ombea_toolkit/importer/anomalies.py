"""
Module: importer.anomalies

Purpose:
    Compare the deduplicated responses with the roster. Roster devices
    that skipped relevant questions and devices that are not on the
    roster at all are flagged for operator resolution; everything else
    passes straight through.

Key Functions:
    - relevant_guids(): Mapped GUIDs minus those the template carried
    - ensure_mapped(): Reject responses to GUIDs outside the session
    - detect_anomalies(): Partition responses into clean / issue / unknown

Used By:
    - importer.controller
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from ombea_toolkit.core.models import (
    DetectedAnomalies,
    ExpectedDeviceIssue,
    ExtractedResponse,
    QuestionMapping,
    RosterEntry,
    UnknownDevice,
)

from .transformer import UnmappedGuidError

logger = logging.getLogger(__name__)


def relevant_guids(
    mappings: Sequence[QuestionMapping],
    ignored_guids: Iterable[str] = (),
) -> Tuple[str, ...]:
    """
    GUIDs every participant is expected to answer, in mapping order.

    Example:
        >>> relevant_guids([QuestionMapping(1, "G1", 1), QuestionMapping(2, "G2", 2)], ["G2"])
        ('G1',)
    """
    ignored = set(ignored_guids)
    ordered = sorted(mappings, key=lambda m: m.order)
    guids: List[str] = []
    for mapping in ordered:
        guid = mapping.slide_guid
        if guid and guid not in ignored and guid not in guids:
            guids.append(guid)
    return tuple(guids)


def ensure_mapped(responses: Iterable[ExtractedResponse], relevant: Sequence[str]) -> None:
    """
    Raises:
        UnmappedGuidError: Listing every response GUID outside `relevant`
    """
    allowed = set(relevant)
    unmapped: List[str] = []
    for response in responses:
        if response.slide_guid not in allowed and response.slide_guid not in unmapped:
            unmapped.append(response.slide_guid)
    if unmapped:
        logger.error(f"Imported GUIDs not in session: {unmapped}")
        raise UnmappedGuidError(unmapped)


def detect_anomalies(
    roster: Sequence[RosterEntry],
    relevant: Sequence[str],
    responses: Sequence[ExtractedResponse],
) -> DetectedAnomalies:
    """
    Partition responses by device against the roster.

    A roster device missing at least one relevant GUID becomes an
    ExpectedDeviceIssue (only when there are relevant GUIDs at all); its
    partial responses travel with the issue. Responses from devices not
    on the roster are grouped per device. Remaining responses are clean.
    The three groups together hold every input response exactly once.

    Args:
        roster: Session participants
        relevant: GUIDs every participant should answer
        responses: Deduplicated responses

    Returns:
        DetectedAnomalies

    Example:
        >>> anomalies = detect_anomalies(roster, ("G1", "G2"), responses)
        >>> anomalies.has_anomalies
        False
    """
    by_device: Dict[str, List[ExtractedResponse]] = {}
    for response in responses:
        by_device.setdefault(response.device_id, []).append(response)

    roster_devices: Dict[str, RosterEntry] = {}
    for entry in roster:
        roster_devices.setdefault(entry.device_id, entry)

    issues: List[ExpectedDeviceIssue] = []
    clean: List[ExtractedResponse] = []
    for device_id, entry in roster_devices.items():
        own = by_device.get(device_id, [])
        answered = {r.slide_guid for r in own}
        missing = tuple(g for g in relevant if g not in answered)
        if relevant and missing:
            issues.append(
                ExpectedDeviceIssue(
                    device_id=device_id,
                    participant_name=entry.display_name,
                    responded_guids=frozenset(answered & set(relevant)),
                    missing_guids=missing,
                    total_expected=len(relevant),
                    responses=tuple(own),
                )
            )
        else:
            clean.extend(own)

    unknown = [
        UnknownDevice(device_id=device_id, responses=tuple(own))
        for device_id, own in by_device.items()
        if device_id not in roster_devices
    ]

    logger.info(
        f"Anomalies: {len(issues)} roster device(s) with missing answers, "
        f"{len(unknown)} unregistered device(s)"
    )
    return DetectedAnomalies(
        expected_issues=tuple(issues),
        unknown_devices=tuple(unknown),
        clean_responses=tuple(clean),
    )
