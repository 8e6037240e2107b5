"""
Module: generator.package.archive

Purpose:
    In-memory working copy of a presentation package. The template is
    read once, part by part, into an ordered arena of {part name: bytes};
    every later component reads and replaces whole parts in that arena,
    and the archive is serialized exactly once at the end.

Key Classes:
    - PackageArchive: Ordered arena of parts with XML accessors
    - PackageError: Malformed archive or missing required part

Dependencies:
    - zipfile (std)
    - lxml (through common.xml_utils)

Used By:
    - generator.controller
    - generator.slides.*, generator.package.assembler
"""

from __future__ import annotations

import logging
import zipfile
from io import BytesIO
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from lxml import etree

from ombea_toolkit.common import XmlPartError, parse_xml, serialize_xml

logger = logging.getLogger(__name__)

CONTENT_TYPES_PART = "[Content_Types].xml"
PRESENTATION_PART = "ppt/presentation.xml"
PRESENTATION_RELS_PART = "ppt/_rels/presentation.xml.rels"
MASTER_PART = "ppt/slideMasters/slideMaster1.xml"
MASTER_RELS_PART = "ppt/slideMasters/_rels/slideMaster1.xml.rels"

REQUIRED_PARTS = (
    CONTENT_TYPES_PART,
    PRESENTATION_PART,
    PRESENTATION_RELS_PART,
    MASTER_PART,
    MASTER_RELS_PART,
)


class PackageError(Exception):
    """Package archive is unreadable or lacks a required part."""
    pass


class PackageArchive:
    """
    Ordered, in-memory arena of package parts.

    Parts keep their template order; new parts are appended. The arena
    is owned by a single generation call and never shared.

    Example:
        >>> archive = PackageArchive.from_path(Path("template.pptx"))
        >>> root = archive.read_xml("ppt/presentation.xml")
        >>> archive.write_xml("ppt/presentation.xml", root)
        >>> data = archive.to_bytes()
    """

    def __init__(self, parts: Optional[Dict[str, bytes]] = None):
        self._parts: Dict[str, bytes] = dict(parts or {})

    # ─────────────────────────────────────────────────────────────────────────
    # Construction
    # ─────────────────────────────────────────────────────────────────────────

    @classmethod
    def from_bytes(cls, data: bytes, source: str = "<bytes>") -> "PackageArchive":
        """
        Copy every file entry of a ZIP container into a new arena.

        Raises:
            PackageError: If the data is not a readable ZIP archive
        """
        parts: Dict[str, bytes] = {}
        try:
            with zipfile.ZipFile(BytesIO(data)) as zf:
                for info in zf.infolist():
                    if info.is_dir():
                        continue
                    parts[info.filename] = zf.read(info)
        except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
            raise PackageError(f"Cannot read package {source}: {e}") from e
        logger.debug(f"Copied {len(parts)} parts from {source}")
        return cls(parts)

    @classmethod
    def from_path(cls, path: Path) -> "PackageArchive":
        """Read a template package from disk."""
        try:
            data = Path(path).read_bytes()
        except OSError as e:
            raise PackageError(f"Cannot open template {path}: {e}") from e
        return cls.from_bytes(data, source=str(path))

    def require(self, names=REQUIRED_PARTS) -> None:
        """
        Check that every part in `names` exists.

        Raises:
            PackageError: Listing every missing part
        """
        missing = [n for n in names if n not in self._parts]
        if missing:
            raise PackageError(f"Template is missing required parts: {missing}")

    # ─────────────────────────────────────────────────────────────────────────
    # Part Access
    # ─────────────────────────────────────────────────────────────────────────

    def __contains__(self, name: str) -> bool:
        return name in self._parts

    def __len__(self) -> int:
        return len(self._parts)

    def names(self) -> List[str]:
        return list(self._parts)

    def iter_folder(self, folder: str) -> Iterator[str]:
        """Yield part names directly inside `folder` (no `_rels`)."""
        prefix = folder.rstrip("/") + "/"
        for name in self._parts:
            if name.startswith(prefix) and "/" not in name[len(prefix):]:
                yield name

    def read(self, name: str) -> bytes:
        try:
            return self._parts[name]
        except KeyError:
            raise PackageError(f"Part not found: {name}") from None

    def write(self, name: str, data: bytes) -> None:
        if name not in self._parts:
            logger.debug(f"Adding part {name}")
        self._parts[name] = data

    def read_xml(self, name: str) -> etree._Element:
        """
        Parse a part into an element tree.

        Raises:
            PackageError: If the part is missing or not well-formed
        """
        try:
            return parse_xml(self.read(name), name)
        except XmlPartError as e:
            raise PackageError(str(e)) from e

    def write_xml(self, name: str, root: etree._Element) -> None:
        self.write(name, serialize_xml(root))

    # ─────────────────────────────────────────────────────────────────────────
    # Serialization
    # ─────────────────────────────────────────────────────────────────────────

    def to_bytes(self) -> bytes:
        """
        Serialize the arena as a ZIP container.

        The content-type registry is written first, as Office expects.
        """
        buffer = BytesIO()
        ordered = sorted(self._parts, key=lambda n: n != CONTENT_TYPES_PART)
        with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
            for name in ordered:
                zf.writestr(name, self._parts[name])
        return buffer.getvalue()
