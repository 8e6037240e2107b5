"""
Module: importer.scoring

Purpose:
    Pass/fail scoring of participants once results are graded. Every
    session question counts; a question without an answer counts as
    wrong.

Key Functions:
    - participant_score(): Global percentage
    - theme_scores(): Percentage per theme
    - is_successful(): Global and per-theme thresholds
    - score_participants(): Outcome for every roster entry

Used By:
    - importer.controller
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set

from ombea_toolkit.core.models import GradedResult, ParticipantStatus, QuestionMapping, RosterEntry
from ombea_toolkit.generator.config import ScoringConfig

logger = logging.getLogger(__name__)

UNSPECIFIED_THEME = "Thème non spécifié"


@dataclass(frozen=True)
class ThemeScore:
    score: float
    correct: int
    total: int


@dataclass(frozen=True)
class ParticipantOutcome:
    """
    Score and pass/fail for one participant.

    Attributes:
        device_id: Keypad serial
        status: present / absent
        score: Global percentage
        themes: Per-theme scores
        passed: Global and theme thresholds met
    """

    device_id: str
    status: ParticipantStatus
    score: float
    themes: Dict[str, ThemeScore]
    passed: bool

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "status": self.status.value,
            "score": round(self.score, 2),
            "passed": self.passed,
            "themes": {
                name: {"score": round(t.score, 2), "correct": t.correct, "total": t.total}
                for name, t in self.themes.items()
            },
        }


def _correct_questions(results: Sequence[GradedResult]) -> Set[int]:
    return {r.question_id for r in results if r.is_correct}


def _session_questions(mappings: Sequence[QuestionMapping]) -> List[QuestionMapping]:
    seen: Set[int] = set()
    questions = []
    for mapping in sorted(mappings, key=lambda m: m.order):
        if mapping.question_id not in seen:
            seen.add(mapping.question_id)
            questions.append(mapping)
    return questions


def participant_score(results: Sequence[GradedResult], mappings: Sequence[QuestionMapping]) -> float:
    """
    Percentage of session questions answered correctly.

    Example:
        >>> participant_score([], [QuestionMapping(1, "G1", 1)])
        0.0
    """
    questions = _session_questions(mappings)
    if not questions:
        return 0.0
    correct = _correct_questions(results)
    hits = sum(1 for q in questions if q.question_id in correct)
    return hits / len(questions) * 100


def theme_scores(
    results: Sequence[GradedResult],
    mappings: Sequence[QuestionMapping],
) -> Dict[str, ThemeScore]:
    """Per-theme percentages; questions without a theme share one bucket."""
    correct = _correct_questions(results)
    tally: Dict[str, List[int]] = {}
    for question in _session_questions(mappings):
        bucket = tally.setdefault(question.theme or UNSPECIFIED_THEME, [0, 0])
        bucket[1] += 1
        if question.question_id in correct:
            bucket[0] += 1
    return {
        name: ThemeScore(score=(hits / total * 100) if total else 0.0, correct=hits, total=total)
        for name, (hits, total) in tally.items()
    }


def is_successful(
    score: float,
    themes: Dict[str, ThemeScore],
    config: Optional[ScoringConfig] = None,
) -> bool:
    config = config or ScoringConfig()
    if score < config.global_threshold:
        return False
    return all(t.score >= config.theme_threshold for t in themes.values())


def score_participants(
    roster: Sequence[RosterEntry],
    results: Sequence[GradedResult],
    mappings: Sequence[QuestionMapping],
    config: Optional[ScoringConfig] = None,
) -> List[ParticipantOutcome]:
    """
    Outcome for every roster entry; absent participants score 0 and fail.

    Results are matched to participants by device serial, which also
    covers participants added during anomaly resolution.
    """
    by_device: Dict[str, List[GradedResult]] = {}
    for result in results:
        by_device.setdefault(result.device_id, []).append(result)

    outcomes = []
    for entry in roster:
        if entry.status is ParticipantStatus.ABSENT:
            outcomes.append(ParticipantOutcome(entry.device_id, entry.status, 0.0, {}, False))
            continue
        own = by_device.get(entry.device_id, [])
        score = participant_score(own, mappings)
        themes = theme_scores(own, mappings)
        outcomes.append(
            ParticipantOutcome(entry.device_id, entry.status, score, themes, is_successful(score, themes, config))
        )
    passed = sum(1 for o in outcomes if o.passed)
    logger.info(f"Scored {len(outcomes)} participant(s), {passed} passed")
    return outcomes
