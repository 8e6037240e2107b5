"""
Module: generator

Purpose:
    Generation pipeline: rewrites a template presentation into an OMBEA
    polling presentation (one slide and four tag parts per question,
    optional intro slides) and bundles it with the roster-only
    ORSession.xml.

Key Functions:
    - generate_presentation(): Main entry point for generation
    - load_config(): Read the deployment configuration file

Key Classes:
    - GeneratorConfig: Configuration for one generation call
    - GenerationResult: Package bytes, delivery bytes, question mappings

Dependencies:
    - lxml: Part trees
    - Pillow: Image decoding
    - requests: Image downloads

Used By:
    - ombea_toolkit.cli: `generate` command
"""

from .config import (
    GeneratorConfig,
    IntroLayoutNames,
    PollConfig,
    ScoringConfig,
    SessionInfo,
    default_output_name,
    load_config,
)
from .controller import GenerationError, GenerationResult, generate_presentation

__all__ = [
    # Config
    "GeneratorConfig",
    "IntroLayoutNames",
    "PollConfig",
    "ScoringConfig",
    "SessionInfo",
    "default_output_name",
    "load_config",
    # Controller
    "generate_presentation",
    "GenerationResult",
    "GenerationError",
]
