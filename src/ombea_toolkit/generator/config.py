"""
Module: generator.config

Purpose:
    Configuration dataclasses for the generation pipeline. Immutable
    configuration with validation on construction, plus the loader that
    turns a deployment JSON file into those dataclasses.

Key Classes:
    - PollConfig: Polling behaviour written into each slide's config tag
    - IntroLayoutNames: Layout names used for the optional intro slides
    - GeneratorConfig: Main configuration for one generation call
    - ScoringConfig: Pass/fail thresholds used after import

Key Functions:
    - load_config(): Read and validate a deployment configuration file
    - default_output_name(): Presentation file name for a session title

Dependencies:
    - dataclasses (std)
    - json (std)
    - core.schemas.validator: deployment configuration schema

Used By:
    - generator.controller
    - importer.scoring
    - cli
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from ombea_toolkit.core.schemas import validate_config

logger = logging.getLogger(__name__)

# Config value -> DrawingML auto-numbering scheme
BULLET_STYLES: Dict[str, str] = {
    "ppBulletAlphaUCParenRight": "alphaUcParenR",
    "ppBulletAlphaUCPeriod": "alphaUcPeriod",
    "ppBulletArabicParenRight": "arabicParenR",
    "ppBulletArabicPeriod": "arabicPeriod",
}
DEFAULT_BULLET_STYLE = "ppBulletArabicPeriod"
FALLBACK_DURATION = 30


@dataclass(frozen=True)
class PollConfig:
    """
    Polling behaviour for generated question slides (immutable).

    Attributes:
        poll_start_mode: OR_POLL_START_MODE value
        chart_value_label_format: OR_CHART_VALUE_LABEL_FORMAT value
        answers_bullet_style: One of BULLET_STYLES keys
        poll_time_limit: Overrides every question's countdown when set
        poll_countdown_start_mode: OR_POLL_COUNTDOWN_START_MODE value
        poll_multiple_responses: OR_POLL_MULTIPLE_RESPONSES value
    """

    poll_start_mode: str = "Automatic"
    chart_value_label_format: str = "Response_Count"
    answers_bullet_style: str = DEFAULT_BULLET_STYLE
    poll_time_limit: Optional[int] = None
    poll_countdown_start_mode: str = "Automatic"
    poll_multiple_responses: str = "1"

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.answers_bullet_style not in BULLET_STYLES:
            raise ValueError(
                f"answers_bullet_style must be one of {sorted(BULLET_STYLES)}: "
                f"{self.answers_bullet_style!r}"
            )
        if self.poll_time_limit is not None and self.poll_time_limit < 0:
            raise ValueError(f"poll_time_limit must be non-negative: {self.poll_time_limit}")

    @property
    def bullet_scheme(self) -> str:
        """DrawingML `buAutoNum` type for the configured style."""
        return BULLET_STYLES[self.answers_bullet_style]


@dataclass(frozen=True)
class IntroLayoutNames:
    """Layout names searched for the intro slides; None disables a slide."""

    title_layout_name: Optional[str] = "Title Slide Layout"
    participants_layout_name: Optional[str] = "Participants Slide Layout"


@dataclass(frozen=True)
class SessionInfo:
    """Session details shown on the title intro slide."""

    title: str
    date: Optional[str] = None


@dataclass(frozen=True)
class GeneratorConfig:
    """
    Configuration for one generation call (immutable).

    Attributes:
        template_path: Template presentation to start from
        output_name: File name of the .pptx inside the delivery archive
        default_duration: Countdown used when neither the question nor
            the poll config sets one
        poll: Polling behaviour
        intro_layouts: Layout names for intro slides
        image_workers: Thread count for parallel image fetches
        image_timeout: Per-image HTTP timeout in seconds

    Example:
        >>> config = GeneratorConfig(
        ...     template_path=Path("templates/default.pptx"),
        ...     output_name="Session_Test_OMBEA.pptx",
        ... )
    """

    template_path: Path
    output_name: str = "presentation.pptx"
    default_duration: int = FALLBACK_DURATION
    poll: PollConfig = field(default_factory=PollConfig)
    intro_layouts: IntroLayoutNames = field(default_factory=IntroLayoutNames)
    image_workers: int = 4
    image_timeout: float = 15.0

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.default_duration <= 0:
            raise ValueError(f"default_duration must be positive: {self.default_duration}")
        if self.image_workers < 1:
            raise ValueError(f"image_workers must be at least 1: {self.image_workers}")
        if self.image_timeout <= 0:
            raise ValueError(f"image_timeout must be positive: {self.image_timeout}")
        if not self.output_name.lower().endswith(".pptx"):
            raise ValueError(f"output_name must end with .pptx: {self.output_name!r}")
        if "/" in self.output_name or "\\" in self.output_name:
            raise ValueError(f"output_name must be a bare file name: {self.output_name!r}")

    def effective_duration(self, question_duration: Optional[int]) -> int:
        """
        Duration for one question slide.

        Precedence: question duration, poll time limit, default duration,
        then 30 seconds. Zero values fall through to the next source.
        """
        return (
            question_duration
            or self.poll.poll_time_limit
            or self.default_duration
            or FALLBACK_DURATION
        )

    def countdown_value(self, question_duration: Optional[int]) -> int:
        """Countdown shown on the slide and written as OR_POLL_TIME_LIMIT."""
        if self.poll.poll_time_limit is not None:
            return self.poll.poll_time_limit
        return self.effective_duration(question_duration)


@dataclass(frozen=True)
class ScoringConfig:
    """Pass/fail thresholds, in percent."""

    global_threshold: float = 70.0
    theme_threshold: float = 50.0

    def __post_init__(self) -> None:
        for name in ("global_threshold", "theme_threshold"):
            value = getattr(self, name)
            if not (0 <= value <= 100):
                raise ValueError(f"{name} must be 0-100: {value}")


def default_output_name(session_title: str) -> str:
    """
    Presentation file name derived from a session title.

    Example:
        >>> default_output_name("Formation Sécurité 2025")
        'Session_Formation_S_curit__2025_OMBEA.pptx'
    """
    return f"Session_{re.sub(r'[^a-z0-9]', '_', session_title, flags=re.IGNORECASE)}_OMBEA.pptx"


def load_config(
    path: Optional[Path],
    template_path: Path,
    output_name: str = "presentation.pptx",
) -> Tuple[GeneratorConfig, ScoringConfig]:
    """
    Load the deployment configuration file.

    A missing path (or None) yields defaults.

    Args:
        path: JSON configuration file
        template_path: Template presentation for the generator config
        output_name: Presentation file name inside the delivery archive

    Returns:
        (GeneratorConfig, ScoringConfig)

    Raises:
        ValidationError: If the file does not match the schema
        ValueError: If a value fails dataclass validation
    """
    data: Dict[str, Any] = {}
    if path is not None and path.exists():
        data = json.loads(path.read_text(encoding="utf-8"))
        validate_config(data)
        logger.info(f"Loaded configuration from {path}")
    elif path is not None:
        logger.warning(f"Configuration file {path} not found, using defaults")

    generator = GeneratorConfig(
        template_path=template_path,
        output_name=output_name,
        default_duration=data.get("default_duration", FALLBACK_DURATION),
        poll=PollConfig(**data.get("poll", {})),
        intro_layouts=IntroLayoutNames(**data.get("intro_layouts", {})),
        image_workers=data.get("image_workers", 4),
        image_timeout=data.get("image_timeout", 15.0),
    )
    scoring = ScoringConfig(**data.get("scoring", {}))
    return generator, scoring
