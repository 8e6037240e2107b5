"""
OMBEA Toolkit Core Package

Shared data models and validation used by both halves of the pipeline.
The generator and the importer only meet through these types: the
generator returns QuestionMapping records, the caller persists them, and
the importer reads them back to turn keypad answers into graded results.

**DESIGN NOTES:**

1. **Immutable Data Models**
   - Frozen dataclasses, new instances created for any change
   - Anomaly resolution is a pure function of (anomalies, decisions)

2. **One Join Key**
   - The slide GUID minted during generation is the only link between a
     response and a question; nothing is matched by position.
"""

from .models import (
    ExtractedResponse,
    GradedResult,
    Question,
    QuestionMapping,
    RosterEntry,
)

__all__ = [
    "ExtractedResponse",
    "GradedResult",
    "Question",
    "QuestionMapping",
    "RosterEntry",
]
