"""
Module: generator.output.delivery

Purpose:
    Bundle the generated presentation and the roster-only
    ORSession.xml into one distribution archive. The same archive shape
    comes back from the polling software with the session document
    populated.

Key Functions:
    - build_delivery_archive(): Zip the presentation and session document
    - write_delivery_archive(): Same, written to disk

Dependencies:
    - zipfile (std)

Used By:
    - generator.controller
    - cli
"""

from __future__ import annotations

import logging
import zipfile
from io import BytesIO
from pathlib import Path

from .roster_document import SESSION_DOCUMENT_NAME

logger = logging.getLogger(__name__)

DELIVERY_SUFFIX = ".ors"


def delivery_name_for(pptx_name: str) -> str:
    """
    Example:
        >>> delivery_name_for("Session_Test_OMBEA.pptx")
        'Session_Test_OMBEA.ors'
    """
    stem = pptx_name[:-5] if pptx_name.lower().endswith(".pptx") else pptx_name
    return stem + DELIVERY_SUFFIX


def build_delivery_archive(pptx_name: str, pptx_bytes: bytes, session_xml: bytes) -> bytes:
    """
    Build the distribution archive in memory.

    Args:
        pptx_name: File name of the presentation inside the archive
        pptx_bytes: Generated presentation package
        session_xml: Serialized ORSession.xml

    Returns:
        Zip archive bytes
    """
    if not pptx_name or "/" in pptx_name:
        raise ValueError(f"Invalid presentation name: {pptx_name!r}")
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(pptx_name, pptx_bytes)
        zf.writestr(SESSION_DOCUMENT_NAME, session_xml)
    logger.info(f"Delivery archive: {pptx_name} + {SESSION_DOCUMENT_NAME}")
    return buffer.getvalue()


def write_delivery_archive(output_dir: Path, pptx_name: str, delivery_bytes: bytes) -> Path:
    """Write delivery bytes under `output_dir`, creating it if needed."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / delivery_name_for(pptx_name)
    path.write_bytes(delivery_bytes)
    logger.info(f"Wrote {path}")
    return path
