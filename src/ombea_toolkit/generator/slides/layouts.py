"""
Module: generator.slides.layouts

Purpose:
    Slide layouts used by synthesized slides. Question slides get a
    dedicated "Titre et texte" layout appended to the first slide master;
    intro slides reuse template layouts located by their display name.

Key Functions:
    - ensure_question_layout(): Add the question layout to the package
    - build_question_layout(): Layout XML (title, body, date, footer, number)
    - find_layout_by_name(): Locate a template layout by `p:cSld/@name`
    - layout_display_name(): Read a layout's display name

Dependencies:
    - lxml

Used By:
    - generator.controller
    - generator.slides.intro_slides
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from lxml import etree

from ombea_toolkit.common import (
    highest_part_number,
    layout_part,
    part_number,
    qn,
    rels_part_for,
    sub_element,
)

from ..package import (
    MASTER_PART,
    MASTER_RELS_PART,
    PackageArchive,
    PackageError,
    RelationshipEntry,
    RelType,
    build_relationships,
    next_rid,
    parse_relationships,
)
from .shapes import (
    TEXT_LANG,
    add_creation_id,
    add_group_header,
    add_master_color_mapping,
    add_placeholder_shape,
    add_text_run,
    new_slide_root,
)

logger = logging.getLogger(__name__)

QUESTION_LAYOUT_NAME = "Titre et texte"
LAYOUT_ID_BASE = 2147483648

TITLE_ALIASES = ("title", "titre", "titlelayout", "titrelayout", "titleslidelayout", "titreslidelayout")
PARTICIPANTS_ALIASES = (
    "participant",
    "participants",
    "participantlayout",
    "participantslayout",
    "participantslidelayout",
    "participantsslidelayout",
)

_LEVEL_PROMPTS = (
    "Modifiez les styles du texte du masque",
    "Deuxième niveau",
    "Troisième niveau",
    "Quatrième niveau",
    "Cinquième niveau",
)


@dataclass(frozen=True)
class QuestionLayout:
    """Where the question layout landed in the package."""

    part_name: str
    number: int
    master_rid: str
    layout_id: int


# ─────────────────────────────────────────────────────────────────────────────
# Question layout
# ─────────────────────────────────────────────────────────────────────────────


def _add_field(sp: etree._Element, field_id: str, field_type: str, text: str) -> None:
    body = sub_element(sp, "p:txBody")
    sub_element(body, "a:bodyPr")
    sub_element(body, "a:lstStyle")
    paragraph = sub_element(body, "a:p")
    fld = sub_element(paragraph, "a:fld", {"id": field_id, "type": field_type})
    sub_element(fld, "a:rPr", {"lang": TEXT_LANG, "smtClean": "0"})
    sub_element(fld, "a:t", text=text)
    sub_element(paragraph, "a:endParaRPr", {"lang": TEXT_LANG})


def build_question_layout() -> etree._Element:
    """Layout XML for question slides (type "tx", title + body + footers)."""
    root, sp_tree = new_slide_root("p:sldLayout", {"type": "tx", "preserve": "1"})
    sp_tree.getparent().set("name", QUESTION_LAYOUT_NAME)
    add_group_header(sp_tree, 1)

    title = add_placeholder_shape(sp_tree, 2, "Titre 1", "title")
    body = sub_element(title, "p:txBody")
    sub_element(body, "a:bodyPr")
    sub_element(body, "a:lstStyle")
    paragraph = sub_element(body, "a:p")
    add_text_run(paragraph, "Modifiez le style du titre", smtClean=0)
    sub_element(paragraph, "a:endParaRPr", {"lang": TEXT_LANG})

    text = add_placeholder_shape(sp_tree, 3, "Espace réservé du texte 2", "body", ph_idx="1")
    body = sub_element(text, "p:txBody")
    sub_element(body, "a:bodyPr")
    sub_element(body, "a:lstStyle")
    for level, prompt in enumerate(_LEVEL_PROMPTS):
        paragraph = sub_element(body, "a:p")
        sub_element(paragraph, "a:pPr", {"lvl": str(level)})
        add_text_run(paragraph, prompt, smtClean=0)
    sub_element(paragraph, "a:endParaRPr", {"lang": TEXT_LANG})

    date_sp = add_placeholder_shape(
        sp_tree, 4, "Espace réservé de la date 3", "dt", ph_idx="10", ph_size="half"
    )
    _add_field(
        date_sp,
        "{ABB4FD2C-0372-488A-B992-EB1BD753A34A}",
        "datetimeFigureOut",
        date.today().strftime("%d/%m/%Y"),
    )

    footer = add_placeholder_shape(
        sp_tree, 5, "Espace réservé du pied de page 4", "ftr", ph_idx="11", ph_size="quarter"
    )
    body = sub_element(footer, "p:txBody")
    sub_element(body, "a:bodyPr")
    sub_element(body, "a:lstStyle")
    sub_element(sub_element(body, "a:p"), "a:endParaRPr", {"lang": TEXT_LANG})

    number = add_placeholder_shape(
        sp_tree,
        6,
        "Espace réservé du numéro de diapositive 5",
        "sldNum",
        ph_idx="12",
        ph_size="quarter",
    )
    _add_field(number, "{CD42254F-ACD2-467B-9045-5226EEC3B6AB}", "slidenum", "‹N°›")

    add_creation_id(sp_tree.getparent())
    add_master_color_mapping(root)
    return root


def _next_layout_id(master: etree._Element, number: int) -> int:
    used = []
    for el in master.iter(qn("p:sldLayoutId")):
        try:
            used.append(int(el.get("id", "")))
        except ValueError:
            continue
    candidate = LAYOUT_ID_BASE + number
    if candidate in used:
        candidate = max(used) + 1
    return candidate


def ensure_question_layout(archive: PackageArchive) -> QuestionLayout:
    """
    Append the question layout to the package.

    The layout is numbered after the highest existing layout part, linked
    from slideMaster1 (relationship + `p:sldLayoutIdLst` entry), and its
    own relationship list points back at the master. The content-type
    override is registered by the assembler.

    Raises:
        PackageError: If the master or its relationship list is unreadable
    """
    master_rels = parse_relationships(archive.read_xml(MASTER_RELS_PART))
    referenced = [
        part_number(e.target) or 0 for e in master_rels if e.rel_type == RelType.SLIDE_LAYOUT.value
    ]
    on_disk = highest_part_number(archive.names(), "ppt/slideLayouts", "slideLayout")
    number = max(referenced + [on_disk]) + 1
    part = layout_part(number)

    archive.write_xml(part, build_question_layout())
    archive.write_xml(
        rels_part_for(part),
        build_relationships(
            [RelationshipEntry("rId1", RelType.SLIDE_MASTER.value, "../slideMasters/slideMaster1.xml")]
        ),
    )

    rid = next_rid(master_rels)
    master_rels.append(
        RelationshipEntry(rid, RelType.SLIDE_LAYOUT.value, f"../slideLayouts/slideLayout{number}.xml")
    )
    archive.write_xml(MASTER_RELS_PART, build_relationships(master_rels))

    master = archive.read_xml(MASTER_PART)
    id_lst = master.find(qn("p:sldLayoutIdLst"))
    if id_lst is None:
        logger.warning(f"{MASTER_PART} has no p:sldLayoutIdLst, creating one")
        id_lst = etree.Element(qn("p:sldLayoutIdLst"))
        clr_map = master.find(qn("p:clrMap"))
        if clr_map is not None:
            clr_map.addnext(id_lst)
        else:
            master.append(id_lst)
    layout_id = _next_layout_id(master, number)
    sub_element(id_lst, "p:sldLayoutId", {"id": str(layout_id), "r:id": rid})
    archive.write_xml(MASTER_PART, master)

    logger.info(f"Added question layout {part} ({rid} on slideMaster1)")
    return QuestionLayout(part_name=part, number=number, master_rid=rid, layout_id=layout_id)


# ─────────────────────────────────────────────────────────────────────────────
# Template layout lookup
# ─────────────────────────────────────────────────────────────────────────────


def _normalize(name: str) -> str:
    return re.sub(r"\s+", "", name.lower())


def layout_display_name(root: etree._Element) -> Optional[str]:
    c_sld = root.find(qn("p:cSld"))
    return c_sld.get("name") if c_sld is not None else None


def _aliases_for(kind: str) -> tuple:
    if kind == "title":
        return TITLE_ALIASES
    if kind == "participants":
        return PARTICIPANTS_ALIASES
    raise ValueError(f"Unknown layout kind: {kind!r}")


def _target_matches_kind(target: str, alias: str, kind: str) -> bool:
    if alias in target:
        return True
    if kind == "title":
        return "title" in target or "titre" in target
    return "participant" in target


def find_layout_by_name(archive: PackageArchive, target_name: str, kind: str) -> Optional[str]:
    """
    Locate a template layout by display name.

    Names are compared lowercase without whitespace. A layout whose name
    contains one of the kind's aliases also matches when the requested
    name refers to the same kind (e.g. "Titre principal" for "title").

    Args:
        archive: Working package
        target_name: Configured layout name
        kind: "title" or "participants"

    Returns:
        Layout part name, or None when nothing matches

    Example:
        >>> find_layout_by_name(archive, "Title Slide Layout", "title")
        'ppt/slideLayouts/slideLayout1.xml'
    """
    aliases = _aliases_for(kind)
    wanted = _normalize(target_name)
    candidates: List[str] = sorted(
        (n for n in archive.iter_folder("ppt/slideLayouts") if n.endswith(".xml")),
        key=lambda n: part_number(n) or 0,
    )
    for name in candidates:
        try:
            display = layout_display_name(archive.read_xml(name))
        except PackageError as e:
            logger.warning(f"Skipping unreadable layout {name}: {e}")
            continue
        if not display:
            continue
        normalized = _normalize(display)
        if normalized == wanted:
            return name
        for alias in aliases:
            if alias in normalized and _target_matches_kind(wanted, alias, kind):
                return name
    return None
