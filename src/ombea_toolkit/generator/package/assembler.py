"""
Module: generator.package.assembler

Purpose:
    Rewrite the package-wide manifests once every slide, layout, tag and
    media part is in the arena: the content-type registry, the
    presentation's slide-order list and page size, and the document
    properties.

Key Functions:
    - update_content_types(): Register new parts and image extensions
    - rebuild_presentation_xml(): Remap references, rebuild sldIdLst, keep sldSz
    - update_app_properties(): Slide count, word count and slide titles
    - update_core_properties(): Title and modification time
    - assemble_package(): Apply all of the above to an archive

Dependencies:
    - lxml
    - generator.package.relationships: rebuilt presentation relationships
    - generator.package.slide_plan: slide ordering

Used By:
    - generator.controller
"""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from lxml import etree

from ombea_toolkit.common import content_type_part_name, qn, sub_element, tag_part
from ombea_toolkit.core.models import Question

from .archive import (
    CONTENT_TYPES_PART,
    PRESENTATION_PART,
    PRESENTATION_RELS_PART,
    PackageArchive,
)
from .relationships import (
    RelationshipRebuild,
    build_relationships,
    dangling_references,
    remap_references,
)
from .slide_plan import SlidePlan

logger = logging.getLogger(__name__)

APP_PART = "docProps/app.xml"
CORE_PART = "docProps/core.xml"

SLIDE_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.slide+xml"
LAYOUT_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.slideLayout+xml"
TAGS_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.tags+xml"

IMAGE_CONTENT_TYPES: Dict[str, str] = {
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}

SLIDE_TITLES_HEADING = "Titres des diapositives"
MAX_TITLE_LENGTH = 250
FIRST_SLIDE_ID = 256

# p:presentation children that precede p:sldIdLst, in schema order
_BEFORE_SLD_ID_LST = ("p:sldMasterIdLst", "p:notesMasterIdLst", "p:handoutMasterIdLst")


@dataclass(frozen=True)
class SlideSize:
    """Page size declaration (EMU), with the optional preset name."""

    cx: str
    cy: str
    type: Optional[str] = None


# ─────────────────────────────────────────────────────────────────────────────
# Content types
# ─────────────────────────────────────────────────────────────────────────────


def image_content_type(extension: str) -> str:
    """MIME type for a media extension; unknown extensions are JPEG."""
    return IMAGE_CONTENT_TYPES.get(extension.lower(), "image/jpeg")


def update_content_types(
    root: etree._Element,
    overrides: Dict[str, str],
    image_extensions: Iterable[str] = (),
) -> int:
    """
    Register part overrides and image extension defaults.

    An override already present for the same part name has its content
    type replaced; nothing is ever listed twice.

    Args:
        root: `Types` element of [Content_Types].xml
        overrides: Part name (with or without leading slash) -> content type
        image_extensions: Media file extensions introduced by this call

    Returns:
        Number of entries added
    """
    added = 0
    defaults = {
        (el.get("Extension") or "").lower(): el for el in root.findall(qn("ct:Default"))
    }
    first_override = root.find(qn("ct:Override"))
    for ext in sorted({e.lower() for e in image_extensions}):
        if ext in defaults:
            continue
        default = etree.Element(qn("ct:Default"))
        default.set("Extension", ext)
        default.set("ContentType", image_content_type(ext))
        # Defaults come before overrides
        if first_override is not None:
            first_override.addprevious(default)
        else:
            root.append(default)
        defaults[ext] = default
        added += 1

    existing = {el.get("PartName"): el for el in root.findall(qn("ct:Override"))}
    for part, content_type in overrides.items():
        name = content_type_part_name(part)
        if name in existing:
            existing[name].set("ContentType", content_type)
            continue
        override = sub_element(root, "ct:Override", {"PartName": name, "ContentType": content_type})
        existing[name] = override
        added += 1

    logger.debug(f"Content types: {added} entries added")
    return added


# ─────────────────────────────────────────────────────────────────────────────
# presentation.xml
# ─────────────────────────────────────────────────────────────────────────────


def read_slide_size(root: etree._Element) -> Optional[SlideSize]:
    """Page size declared by the template, if any."""
    el = root.find(qn("p:sldSz"))
    if el is None or el.get("cx") is None or el.get("cy") is None:
        return None
    return SlideSize(el.get("cx"), el.get("cy"), el.get("type"))


def _insert_sld_id_lst(root: etree._Element) -> etree._Element:
    lst = etree.Element(qn("p:sldIdLst"))
    anchor = None
    for name in _BEFORE_SLD_ID_LST:
        found = root.find(qn(name))
        if found is not None:
            anchor = found
    if anchor is not None:
        anchor.addnext(lst)
    else:
        root.insert(0, lst)
    return lst


def rebuild_presentation_xml(
    root: etree._Element,
    rebuild: RelationshipRebuild,
    slide_size: Optional[SlideSize] = None,
) -> List[str]:
    """
    Rewrite presentation.xml for the rebuilt relationship list.

    1. Every r:* reference is rewritten through the rebuild's id map
    2. The slide-order list is rebuilt from scratch (ids from 256)
    3. The page size is set from `slide_size` when given

    Returns:
        References left unmapped by step 1 (logged as warnings)
    """
    unmapped = remap_references(root, rebuild.id_map)

    lst = root.find(qn("p:sldIdLst"))
    if lst is None:
        lst = _insert_sld_id_lst(root)
    for child in list(lst):
        lst.remove(child)
    for index, rid in enumerate(rebuild.slide_rids):
        sub_element(lst, "p:sldId", {"id": str(FIRST_SLIDE_ID + index), "r:id": rid})

    if slide_size is not None:
        size_el = root.find(qn("p:sldSz"))
        if size_el is None:
            size_el = etree.Element(qn("p:sldSz"))
            lst.addnext(size_el)
        size_el.attrib.clear()
        size_el.set("cx", slide_size.cx)
        size_el.set("cy", slide_size.cy)
        if slide_size.type:
            size_el.set("type", slide_size.type)

    logger.debug(f"presentation.xml: {len(rebuild.slide_rids)} slides in sldIdLst")
    return unmapped


# ─────────────────────────────────────────────────────────────────────────────
# Document properties
# ─────────────────────────────────────────────────────────────────────────────


def _word_count(text: str) -> int:
    return len(text.split())


def _add_to_int(el: Optional[etree._Element], delta: int) -> None:
    if el is None:
        return
    try:
        current = int((el.text or "0").strip() or 0)
    except ValueError:
        current = 0
    el.text = str(current + delta)


def update_app_properties(
    root: etree._Element,
    total_slides: int,
    questions: Sequence[Question],
) -> None:
    """
    Update docProps/app.xml for the new question slides.

    Word and paragraph counts are incremented (title + options + the
    countdown paragraph per slide); slide titles are appended to
    `TitlesOfParts` and counted under the slide-titles heading.
    """
    words = sum(
        _word_count(q.text) + sum(_word_count(opt) for opt in q.options) + 1
        for q in questions
    )
    paragraphs = sum(1 + len(q.options) + 1 for q in questions)

    slides_el = root.find(qn("ep:Slides"))
    if slides_el is not None:
        slides_el.text = str(total_slides)
    _add_to_int(root.find(qn("ep:Words")), words)
    _add_to_int(root.find(qn("ep:Paragraphs")), paragraphs)

    if not questions:
        return

    heading_vector = root.find(f"{qn('ep:HeadingPairs')}/{qn('vt:vector')}")
    if heading_vector is not None:
        variants = heading_vector.findall(qn("vt:variant"))
        for current, following in zip(variants, variants[1:]):
            label = current.find(qn("vt:lpstr"))
            if label is not None and label.text == SLIDE_TITLES_HEADING:
                _add_to_int(following.find(qn("vt:i4")), len(questions))
                break

    titles_vector = root.find(f"{qn('ep:TitlesOfParts')}/{qn('vt:vector')}")
    if titles_vector is not None:
        for q in questions:
            sub_element(titles_vector, "vt:lpstr", text=q.text[:MAX_TITLE_LENGTH])
        size = titles_vector.get("size")
        titles_vector.set("size", str(int(size) + len(questions)) if size else str(len(titles_vector)))


def update_core_properties(
    root: etree._Element,
    question_count: int,
    now: Optional[datetime] = None,
) -> None:
    """
    Update docProps/core.xml: title and modification time (W3CDTF, UTC).

    Example:
        >>> update_core_properties(core_root, 3)
        >>> core_root.find(qn("dc:title")).text
        'Quiz OMBEA 3 questions'
    """
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    suffix = "s" if question_count > 1 else ""

    title = root.find(qn("dc:title"))
    if title is None:
        title = sub_element(root, "dc:title")
    title.text = f"Quiz OMBEA {question_count} question{suffix}"

    modified = root.find(qn("dcterms:modified"))
    if modified is None:
        modified = sub_element(root, "dcterms:modified")
    modified.set(qn("xsi:type"), "dcterms:W3CDTF")
    modified.text = stamp

    if root.find(qn("dcterms:created")) is None:
        created = etree.Element(qn("dcterms:created"))
        created.set(qn("xsi:type"), "dcterms:W3CDTF")
        created.text = stamp
        modified.addnext(created)


# ─────────────────────────────────────────────────────────────────────────────
# Whole-package pass
# ─────────────────────────────────────────────────────────────────────────────


def assemble_package(
    archive: PackageArchive,
    plan: SlidePlan,
    rebuild: RelationshipRebuild,
    questions: Sequence[Question],
    layout_parts: Iterable[str] = (),
    tag_count: int = 0,
    image_parts: Iterable[str] = (),
) -> List[str]:
    """
    Rewrite every package-wide manifest in `archive`.

    Args:
        archive: Working copy containing all new parts
        plan: Slide plan used for the generation call
        rebuild: Rebuilt presentation relationships
        questions: Questions rendered on new slides (docProps counts)
        layout_parts: Layout parts introduced by this call
        tag_count: Highest tag part number in the package; only tag parts
            present in `archive` are registered
        image_parts: Media parts introduced by this call

    Returns:
        Warnings (references that could not be remapped)
    """
    warnings: List[str] = []

    # Relationship list and presentation.xml
    archive.write_xml(PRESENTATION_RELS_PART, build_relationships(rebuild.entries))
    presentation = archive.read_xml(PRESENTATION_PART)
    size = read_slide_size(presentation)
    unmapped = rebuild_presentation_xml(presentation, rebuild, size)
    for rid in unmapped:
        warnings.append(f"presentation.xml reference {rid} was not remapped")
    for rid in dangling_references(presentation, rebuild.entries):
        if rid not in unmapped:
            warnings.append(f"presentation.xml reference {rid} has no relationship")
    archive.write_xml(PRESENTATION_PART, presentation)

    # Content types
    overrides: Dict[str, str] = {}
    for descriptor in plan.new_slides():
        overrides[descriptor.part_name] = SLIDE_CONTENT_TYPE
    for part in layout_parts:
        overrides[part] = LAYOUT_CONTENT_TYPE
    tag_parts = [tag_part(n) for n in range(1, tag_count + 1) if tag_part(n) in archive]
    for part in tag_parts:
        overrides[part] = TAGS_CONTENT_TYPE
    extensions = [posixpath.splitext(p)[1].lstrip(".") for p in image_parts]
    types_root = archive.read_xml(CONTENT_TYPES_PART)
    update_content_types(types_root, overrides, [e for e in extensions if e])
    archive.write_xml(CONTENT_TYPES_PART, types_root)

    # Document properties, only where the template has them
    if APP_PART in archive:
        app_root = archive.read_xml(APP_PART)
        update_app_properties(app_root, plan.total, questions)
        archive.write_xml(APP_PART, app_root)
    if CORE_PART in archive:
        core_root = archive.read_xml(CORE_PART)
        update_core_properties(core_root, len(questions))
        archive.write_xml(CORE_PART, core_root)

    logger.info(f"Assembled package: {plan.total} slides, {len(tag_parts)} tags")
    return warnings

