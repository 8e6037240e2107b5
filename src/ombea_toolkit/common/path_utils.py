"""Part-name utilities.

Provides shared functions for naming and numbering the parts of a
presentation package so every component agrees on where slides, tags,
layouts and relationship lists live.
"""

from __future__ import annotations

import posixpath
import re
from typing import Iterable, Optional

_NUMBERED_PART = re.compile(r"^(?P<stem>[A-Za-z]+?)(?P<num>\d+)\.xml$")


def slide_part(number: int) -> str:
    """Return the archive path of slide `number`.

    Examples:
        >>> slide_part(3)
        'ppt/slides/slide3.xml'
    """
    return f"ppt/slides/slide{number}.xml"


def tag_part(number: int) -> str:
    """Return the archive path of tag part `number`."""
    return f"ppt/tags/tag{number}.xml"


def layout_part(number: int) -> str:
    """Return the archive path of slide layout `number`."""
    return f"ppt/slideLayouts/slideLayout{number}.xml"


def rels_part_for(part_name: str) -> str:
    """Return the relationship-list path that belongs to `part_name`.

    Examples:
        >>> rels_part_for("ppt/slides/slide2.xml")
        'ppt/slides/_rels/slide2.xml.rels'
        >>> rels_part_for("ppt/presentation.xml")
        'ppt/_rels/presentation.xml.rels'
    """
    folder, name = posixpath.split(part_name)
    return posixpath.join(folder, "_rels", f"{name}.rels")


def part_number(part_name: str) -> Optional[int]:
    """Extract the trailing number of a numbered part like `slide12.xml`.

    Examples:
        >>> part_number("ppt/tags/tag7.xml")
        7
        >>> part_number("ppt/presentation.xml") is None
        True
    """
    match = _NUMBERED_PART.match(posixpath.basename(part_name))
    return int(match.group("num")) if match else None


def highest_part_number(part_names: Iterable[str], folder: str, stem: str) -> int:
    """Highest N among `folder/stemN.xml` parts, 0 if there are none."""
    highest = 0
    prefix = folder.rstrip("/") + "/"
    for name in part_names:
        if not name.startswith(prefix) or "/_rels/" in name:
            continue
        base = name[len(prefix):]
        if "/" in base or not base.startswith(stem):
            continue
        num = part_number(base)
        if num is not None and base == f"{stem}{num}.xml":
            highest = max(highest, num)
    return highest


def resolve_target(source_part: str, target: str) -> str:
    """Resolve a relationship target relative to the part that owns it.

    Examples:
        >>> resolve_target("ppt/slides/slide1.xml", "../tags/tag3.xml")
        'ppt/tags/tag3.xml'
    """
    if target.startswith("/"):
        return target.lstrip("/")
    base = posixpath.dirname(source_part)
    return posixpath.normpath(posixpath.join(base, target))


def content_type_part_name(part_name: str) -> str:
    """Part names in the content-type registry carry a leading slash."""
    return "/" + part_name.lstrip("/")
