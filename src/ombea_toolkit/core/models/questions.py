"""
Module: core.models.questions

Purpose:
    Provides the Question dataclass - the generator's input - and the
    QuestionMapping contract record minted once per question slide during
    generation and consumed unmodified during import.

Key Classes:
    - Question: Immutable poll question (prompt, options, scoring, image)
    - QuestionMapping: {question id, slide GUID, order, theme, block}
    - QuestionValidationError: Raised for invalid question input

Key Functions:
    - Question.from_stored(): Adapt a question-bank record
    - split_theme(): Split "securite_A" into ("securite", "A")

Dependencies:
    - dataclasses (std)

Used By:
    - generator.controller
    - importer.transformer
    - importer.scoring
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 10

# A question image is a URL, a local file path or raw bytes
ImageRef = Union[str, bytes]


class QuestionValidationError(ValueError):
    """Raised when a question cannot be turned into a poll slide."""
    pass


def split_theme(raw_theme: str) -> Tuple[str, str]:
    """
    Split a stored theme tag into its base theme and block letter.

    Example:
        >>> split_theme("securite_A")
        ('securite', 'A')
        >>> split_theme("securite")
        ('securite', '')
    """
    if not raw_theme:
        return "", ""
    parts = raw_theme.split("_")
    if len(parts) == 1:
        logger.warning(f"Theme {raw_theme!r} has no block suffix (_X)")
        return parts[0], ""
    return parts[0], parts[1]


@dataclass(frozen=True)
class Question:
    """
    A poll question (immutable).

    Attributes:
        question_id: Stable identifier owned by the question bank
        text: Prompt shown as the slide title
        options: Ordered answer options, one paragraph each on the slide
        correct_index: 0-based index of the correct option, if known
        duration: Per-question countdown in seconds, if any
        image: Optional image reference (URL, file path or bytes)
        theme: Base theme, e.g. "securite"
        block: Block letter, e.g. "A"

    Example:
        >>> q = Question(
        ...     question_id=12,
        ...     text="Quelle est la couleur du ciel ?",
        ...     options=("Bleu", "Vert"),
        ...     correct_index=0,
        ... )
        >>> q.answer_points
        ('1.00', '0.00')
    """

    question_id: int
    text: str
    options: Tuple[str, ...]
    correct_index: Optional[int] = None
    duration: Optional[int] = None
    image: Optional[ImageRef] = None
    theme: str = ""
    block: str = ""

    def __post_init__(self) -> None:
        """Validate question on construction."""
        # Accept lists from callers but store an immutable tuple
        if not isinstance(self.options, tuple):
            object.__setattr__(self, "options", tuple(self.options))
        if not isinstance(self.text, str) or not self.text.strip():
            raise QuestionValidationError(
                f"Question {self.question_id}: text is required"
            )
        if not (MIN_OPTIONS <= len(self.options) <= MAX_OPTIONS):
            raise QuestionValidationError(
                f"Question {self.question_id}: needs {MIN_OPTIONS}-{MAX_OPTIONS} "
                f"options, got {len(self.options)}"
            )
        if self.correct_index is not None and not (
            0 <= self.correct_index < len(self.options)
        ):
            raise QuestionValidationError(
                f"Question {self.question_id}: invalid correct_index {self.correct_index}"
            )
        if self.duration is not None and self.duration < 0:
            raise QuestionValidationError(
                f"Question {self.question_id}: duration must be non-negative"
            )

    @property
    def answer_points(self) -> Tuple[str, ...]:
        """Per-option scoring weights, aligned with `options`."""
        return tuple(
            "1.00" if index == self.correct_index else "0.00"
            for index in range(len(self.options))
        )

    @classmethod
    def from_stored(cls, record: Dict[str, Any]) -> "Question":
        """
        Build a Question from a question-bank record.

        The record carries `id`, `text`, `options`, `type`
        ("multiple-choice" or "true-false"), `correct_answer` (string
        index), `time_limit`, `theme` ("base_X") and `image`.

        Example:
            >>> q = Question.from_stored({
            ...     "id": 3, "text": "Vrai ?", "options": ["Vrai", "Faux"],
            ...     "type": "true-false", "correct_answer": "0",
            ...     "theme": "securite_B",
            ... })
            >>> (q.correct_index, q.theme, q.block)
            (0, 'securite', 'B')
        """
        options = tuple(record.get("options") or ())
        correct_index: Optional[int] = None
        raw_correct = record.get("correct_answer")
        if raw_correct not in (None, ""):
            kind = record.get("type", "multiple-choice")
            if kind == "true-false":
                correct_index = 0 if str(raw_correct) == "0" else 1
            else:
                try:
                    candidate = int(raw_correct)
                except (TypeError, ValueError):
                    candidate = -1
                if 0 <= candidate < len(options):
                    correct_index = candidate
        theme, block = split_theme(record.get("theme", ""))
        return cls(
            question_id=int(record["id"]),
            text=record.get("text", ""),
            options=options,
            correct_index=correct_index,
            duration=record.get("time_limit"),
            image=record.get("image"),
            theme=theme,
            block=block,
        )


@dataclass(frozen=True)
class QuestionMapping:
    """
    Link between a generated question slide and its bank question.

    Produced once per question during generation, persisted by the caller
    and consumed unchanged during import.

    Attributes:
        question_id: Bank identifier of the question
        slide_guid: GUID written to the slide's config tag (None if emission failed)
        order: 1-based position among the generated question slides
        theme: Base theme of the question
        block: Block letter of the question
    """

    question_id: int
    slide_guid: Optional[str]
    order: int
    theme: str = ""
    block: str = ""

    def __post_init__(self) -> None:
        if self.order < 1:
            raise ValueError(f"order must be 1-based: {self.order}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "question_id": self.question_id,
            "slide_guid": self.slide_guid,
            "order": self.order,
            "theme": self.theme,
            "block": self.block,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionMapping":
        """Deserialize from a dict produced by `to_dict()`."""
        return cls(
            question_id=int(data["question_id"]),
            slide_guid=data.get("slide_guid"),
            order=int(data["order"]),
            theme=data.get("theme", ""),
            block=data.get("block", ""),
        )
