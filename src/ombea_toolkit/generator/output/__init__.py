"""
Module: generator.output

Purpose:
    Distribution artifacts: the roster-only response-session document
    and the archive bundling it with the presentation.

Key Functions:
    - build_roster_document(): ORSession element for a roster
    - build_delivery_archive(): Presentation + ORSession.xml zip
"""

from .delivery import (
    DELIVERY_SUFFIX,
    build_delivery_archive,
    delivery_name_for,
    write_delivery_archive,
)
from .roster_document import (
    SESSION_DOCUMENT_NAME,
    build_roster_document,
    roster_document_bytes,
)

__all__ = [
    "DELIVERY_SUFFIX",
    "build_delivery_archive",
    "delivery_name_for",
    "write_delivery_archive",
    "SESSION_DOCUMENT_NAME",
    "build_roster_document",
    "roster_document_bytes",
]
