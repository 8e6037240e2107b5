"""
Schemas Package

JSON schema definitions and validation utilities.
"""

from .validator import (
    validate_config,
    validate_mappings,
    ValidationError,
    CONFIG_SCHEMA_VERSION,
    MAPPINGS_SCHEMA_VERSION,
)

__all__ = [
    "validate_config",
    "validate_mappings",
    "ValidationError",
    "CONFIG_SCHEMA_VERSION",
    "MAPPINGS_SCHEMA_VERSION",
]
