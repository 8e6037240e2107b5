"""
Module: generator.package.relationships

Purpose:
    Relationship lists (`*.rels` parts): parsing, building, and the
    package-wide rebuild of the presentation's relationship identifiers
    so that new slides coexist with the template's parts.

Key Functions:
    - parse_relationships(): Read a .rels element into entries
    - build_relationships(): Build a .rels element from entries
    - rebuild_presentation_relationships(): Renumber rIds from a SlidePlan
    - remap_references(): Rewrite every r:* reference through an id map
    - dangling_references(): References without a relationship entry

Key Classes:
    - RelType: Relationship type URIs used by the generator
    - RelationshipEntry: {rId, type, target, original rId}
    - RelationshipRebuild: Result of a rebuild (entries, id map, slide order)

Dependencies:
    - lxml

Used By:
    - generator.package.assembler
    - generator.slides.*
    - generator.controller
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, List, Optional

from lxml import etree

from ombea_toolkit.common import NS, qn

from .slide_plan import SlidePlan

logger = logging.getLogger(__name__)

_RID_PATTERN = re.compile(r"^rId(\d+)$")
_REL_BASE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/"


class RelType(str, Enum):
    """Relationship types the generator creates or inspects."""

    SLIDE = _REL_BASE + "slide"
    SLIDE_LAYOUT = _REL_BASE + "slideLayout"
    SLIDE_MASTER = _REL_BASE + "slideMaster"
    IMAGE = _REL_BASE + "image"
    TAGS = _REL_BASE + "tags"


@dataclass(frozen=True)
class RelationshipEntry:
    """
    One relationship of a part (immutable).

    Attributes:
        rid: Identifier, "rId" + integer, unique within one list
        rel_type: Full type URI
        target: Target path relative to the owning part
        original_rid: Identifier this entry replaced during a rebuild
        target_mode: "External" for external targets, else None
    """

    rid: str
    rel_type: str
    target: str
    original_rid: Optional[str] = None
    target_mode: Optional[str] = None

    @property
    def number(self) -> int:
        """Numeric part of the rId, 0 when it does not follow the rIdN form."""
        match = _RID_PATTERN.match(self.rid)
        return int(match.group(1)) if match else 0

    @property
    def kind(self) -> str:
        """Short type name: slide / slideLayout / slideMaster / image / tags / other."""
        for rel_type in RelType:
            if self.rel_type == rel_type.value:
                return rel_type.value.rsplit("/", 1)[-1]
        return "other"


@dataclass(frozen=True)
class RelationshipRebuild:
    """
    Result of rebuilding the presentation relationship list.

    Attributes:
        entries: Renumbered entries, sorted by rId number
        id_map: Old rId -> new rId for every template relationship kept
        slide_rids: New rIds of all slides, in display order
    """

    entries: tuple
    id_map: Dict[str, str]
    slide_rids: tuple


def parse_relationships(root: etree._Element) -> List[RelationshipEntry]:
    """Read every `Relationship` child of a .rels root."""
    entries = []
    for rel in root.iter(qn("pr:Relationship")):
        rid = rel.get("Id")
        rel_type = rel.get("Type")
        target = rel.get("Target")
        if not (rid and rel_type and target):
            logger.warning(f"Skipping incomplete relationship: {dict(rel.attrib)}")
            continue
        entries.append(RelationshipEntry(rid, rel_type, target, target_mode=rel.get("TargetMode")))
    return entries


def build_relationships(entries: Iterable[RelationshipEntry]) -> etree._Element:
    """Build a .rels root element; entries are written in the given order."""
    root = etree.Element(qn("pr:Relationships"), nsmap={None: NS["pr"]})
    for entry in entries:
        rel = etree.SubElement(root, qn("pr:Relationship"))
        rel.set("Id", entry.rid)
        rel.set("Type", entry.rel_type)
        rel.set("Target", entry.target)
        if entry.target_mode:
            rel.set("TargetMode", entry.target_mode)
    return root


def next_rid(entries: Iterable[RelationshipEntry]) -> str:
    """
    Next free identifier after the highest rIdN in `entries`.

    Example:
        >>> next_rid([RelationshipEntry("rId4", RelType.TAGS.value, "x")])
        'rId5'
    """
    return f"rId{max((e.number for e in entries), default=0) + 1}"


def _normalize_slide_target(target: str) -> str:
    """Map "/ppt/slides/slide2.xml" and "slides/slide2.xml" to the same key."""
    return target.lstrip("/").replace("ppt/", "", 1) if target.startswith("/") else target


def rebuild_presentation_relationships(
    existing: List[RelationshipEntry],
    plan: SlidePlan,
) -> RelationshipRebuild:
    """
    Renumber the presentation relationship list from scratch.

    Allocation order:
    1. The first slide master relationship becomes rId1 (a default
       master entry is added if the template has none)
    2. New intro slides, in plan order
    3. Template slides, in their existing display order
    4. New question slides
    5. Every other template relationship not handled above

    Args:
        existing: Template relationship entries of presentation.xml
        plan: Slide plan with intro, existing and question slides

    Returns:
        RelationshipRebuild with contiguous rId1..rIdN entries

    Example:
        >>> plan = SlidePlan(existing=(1,))
        >>> _ = plan.add_questions(1)
        >>> rebuild = rebuild_presentation_relationships(
        ...     [RelationshipEntry("rId7", RelType.SLIDE_MASTER.value, "slideMasters/slideMaster1.xml"),
        ...      RelationshipEntry("rId2", RelType.SLIDE.value, "slides/slide1.xml")],
        ...     plan,
        ... )
        >>> rebuild.id_map
        {'rId7': 'rId1', 'rId2': 'rId2'}
        >>> rebuild.slide_rids
        ('rId2', 'rId3')
    """
    output: List[RelationshipEntry] = []
    id_map: Dict[str, str] = {}
    handled: set = set()
    counter = 1

    def allocate() -> str:
        nonlocal counter
        rid = f"rId{counter}"
        counter += 1
        return rid

    # 1. Master pinned to rId1
    master = next((e for e in existing if e.rel_type == RelType.SLIDE_MASTER.value), None)
    if master is not None:
        rid = allocate()
        output.append(replace(master, rid=rid, original_rid=master.rid))
        id_map[master.rid] = rid
        handled.add(master.rid)
    else:
        logger.warning("No slide master relationship found, adding default as rId1")
        output.append(
            RelationshipEntry(allocate(), RelType.SLIDE_MASTER.value, "slideMasters/slideMaster1.xml")
        )

    slide_rids: List[str] = []

    # 2. Intro slides
    for descriptor in plan.intros:
        rid = allocate()
        output.append(RelationshipEntry(rid, RelType.SLIDE.value, descriptor.rels_target))
        slide_rids.append(rid)

    # 3. Template slides, keeping their relative order
    slide_entries = {
        _normalize_slide_target(e.target): e
        for e in existing
        if e.rel_type == RelType.SLIDE.value
    }
    for descriptor in plan.existing_descriptors():
        original = slide_entries.get(descriptor.rels_target)
        rid = allocate()
        output.append(
            RelationshipEntry(
                rid,
                RelType.SLIDE.value,
                descriptor.rels_target,
                original_rid=original.rid if original else None,
            )
        )
        slide_rids.append(rid)
        if original is not None:
            id_map[original.rid] = rid
            handled.add(original.rid)

    # 4. New question slides
    for descriptor in plan.questions:
        rid = allocate()
        output.append(RelationshipEntry(rid, RelType.SLIDE.value, descriptor.rels_target))
        slide_rids.append(rid)

    # 5. Everything else, renumbered only if not already assigned
    for entry in existing:
        if entry.rid in handled:
            continue
        if entry.rid in id_map:
            output.append(replace(entry, rid=id_map[entry.rid], original_rid=entry.rid))
            continue
        rid = allocate()
        id_map[entry.rid] = rid
        handled.add(entry.rid)
        output.append(replace(entry, rid=rid, original_rid=entry.rid))

    output.sort(key=lambda e: e.number)
    logger.debug(f"Rebuilt presentation relationships: {len(output)} entries, {len(slide_rids)} slides")
    return RelationshipRebuild(tuple(output), id_map, tuple(slide_rids))


def _relationship_attributes(el: etree._Element):
    r_prefix = f"{{{NS['r']}}}"
    for name in el.attrib:
        if name.startswith(r_prefix):
            yield name


def remap_references(root: etree._Element, id_map: Dict[str, str]) -> List[str]:
    """
    Rewrite every relationship reference (`r:id`, `r:embed`, ...) in a tree.

    The slide-order list is rebuilt separately, but any reference that
    survives elsewhere in the document must follow the new numbering.

    Returns:
        Old identifiers that had no mapping and were left unchanged
    """
    unmapped: List[str] = []
    for el in root.iter():
        if not isinstance(el.tag, str):
            continue
        for name in list(_relationship_attributes(el)):
            old = el.get(name)
            new = id_map.get(old)
            if new is not None:
                el.set(name, new)
            elif old not in unmapped:
                unmapped.append(old)
    for old in unmapped:
        logger.warning(f"No new relationship id for reference {old!r}, kept as is")
    return unmapped


def dangling_references(root: etree._Element, entries: Iterable[RelationshipEntry]) -> List[str]:
    """References in `root` that do not resolve to an entry in `entries`."""
    known = {e.rid for e in entries}
    missing = []
    for el in root.iter():
        if not isinstance(el.tag, str):
            continue
        for name in _relationship_attributes(el):
            value = el.get(name)
            if value not in known and value not in missing:
                missing.append(value)
    return missing
