"""
Module: generator.slides.intro_slides

Purpose:
    Optional slides shown before the questions: a title slide (session
    title and date) and a participants slide listing the roster in a
    table. Both are built on template layouts found by name.

Key Functions:
    - build_title_slide(): Title + optional date placeholder
    - build_participants_slide(): "Participants" title + roster table
    - build_participants_table(): Table graphic frame from scratch
    - write_intro_slide(): Build a planned intro slide into the archive

Dependencies:
    - lxml

Used By:
    - generator.controller
"""

from __future__ import annotations

import copy
import logging
import posixpath
from typing import List, Optional, Sequence

from lxml import etree

from ombea_toolkit.common import qn, rels_part_for, sub_element
from ombea_toolkit.core.models import RosterEntry

from ..config import SessionInfo
from ..package import (
    PackageArchive,
    RelationshipEntry,
    RelType,
    SlideDescriptor,
    SlideRole,
    build_relationships,
)
from .question_slide import layout_target_for
from .shapes import (
    add_group_header,
    add_master_color_mapping,
    add_placeholder_shape,
    add_simple_text_body,
    add_text_run,
    add_xfrm,
    new_slide_root,
)

logger = logging.getLogger(__name__)

PARTICIPANTS_TITLE = "Participants"
TABLE_STYLE_ID = "{5C22544A-7EE6-4342-B048-85BDC9FD1C3A}"
TABLE_URI = "http://schemas.openxmlformats.org/drawingml/2006/table"

# Generated table geometry (EMU)
SLIDE_WIDTH = 12192000
SLIDE_HEIGHT = 6858000
TABLE_WIDTH_RATIO = 0.85
ROW_HEIGHT = 370840
MIN_TABLE_Y = 1200000
BOTTOM_MARGIN = 182880

COLUMN_RATIOS_WITH_ORG = (0.06, 0.20, 0.27, 0.27, 0.20)
COLUMN_RATIOS = (0.08, 0.25, 0.335, 0.335)


def _has_organization(roster: Sequence[RosterEntry]) -> bool:
    return any(p.organization and p.organization.strip() for p in roster)


def table_headers(roster: Sequence[RosterEntry]) -> List[str]:
    headers = ["N°", "ID Boîtier", "Nom", "Prénom"]
    if _has_organization(roster):
        headers.append("Organisation")
    return headers


def _add_cell(row: etree._Element, text: str, bold: bool = False) -> None:
    cell = sub_element(row, "a:tc")
    body = sub_element(cell, "a:txBody")
    sub_element(body, "a:bodyPr")
    sub_element(body, "a:lstStyle")
    paragraph = sub_element(body, "a:p")
    if bold:
        add_text_run(paragraph, text, b=1)
    else:
        add_text_run(paragraph, text)
    sub_element(cell, "a:tcPr")


def add_table_rows(tbl: etree._Element, roster: Sequence[RosterEntry], row_height: int = ROW_HEIGHT) -> None:
    """Append the header row and one row per participant."""
    with_org = _has_organization(roster)
    header = sub_element(tbl, "a:tr", {"h": str(row_height)})
    for text in table_headers(roster):
        _add_cell(header, text, bold=True)
    for index, participant in enumerate(roster, start=1):
        row = sub_element(tbl, "a:tr", {"h": str(row_height)})
        values = [str(index), participant.device_id, participant.family_name, participant.given_name]
        if with_org:
            values.append(participant.organization or "")
        for value in values:
            _add_cell(row, value or "")


def column_widths(table_width: int, with_organization: bool) -> List[int]:
    """
    Column widths for the generated table; rounding error goes to the last column.

    Example:
        >>> sum(column_widths(10363200, True))
        10363200
    """
    ratios = COLUMN_RATIOS_WITH_ORG if with_organization else COLUMN_RATIOS
    widths = [round(table_width * r) for r in ratios]
    widths[-1] += table_width - sum(widths)
    return widths


def build_participants_table(roster: Sequence[RosterEntry], shape_id: int) -> etree._Element:
    """Table graphic frame centered on a 16:9 slide."""
    table_cx = round(SLIDE_WIDTH * TABLE_WIDTH_RATIO)
    table_cy = ROW_HEIGHT * (len(roster) + 1)
    table_x = round((SLIDE_WIDTH - table_cx) / 2)
    table_y = max(round((SLIDE_HEIGHT - table_cy) / 2), MIN_TABLE_Y)
    if table_y + table_cy > SLIDE_HEIGHT:
        table_cy = SLIDE_HEIGHT - table_y - BOTTOM_MARGIN

    frame = etree.Element(qn("p:graphicFrame"))
    nv = sub_element(frame, "p:nvGraphicFramePr")
    sub_element(nv, "p:cNvPr", {"id": str(shape_id), "name": "Tableau Participants"})
    c_nv = sub_element(nv, "p:cNvGraphicFramePr")
    sub_element(c_nv, "a:graphicFrameLocks", {"noGrp": "1"})
    sub_element(nv, "p:nvPr")
    add_xfrm(frame, table_x, table_y, table_cx, table_cy, tag="p:xfrm")
    graphic = sub_element(frame, "a:graphic")
    data = sub_element(graphic, "a:graphicData", {"uri": TABLE_URI})
    tbl = sub_element(data, "a:tbl")
    tbl_pr = sub_element(tbl, "a:tblPr", {"firstRow": "1", "bandRow": "1"})
    sub_element(tbl_pr, "a:tableStyleId", text=TABLE_STYLE_ID)
    grid = sub_element(tbl, "a:tblGrid")
    for width in column_widths(table_cx, _has_organization(roster)):
        sub_element(grid, "a:gridCol", {"w": str(width)})
    add_table_rows(tbl, roster)
    return frame


def _table_frame_from_layout(layout_root: Optional[etree._Element]) -> Optional[etree._Element]:
    """Copy of the layout's table frame, if it has one with tblPr and tblGrid."""
    if layout_root is None:
        return None
    for frame in layout_root.iter(qn("p:graphicFrame")):
        tbl = frame.find(f".//{qn('a:tbl')}")
        if tbl is None:
            continue
        if tbl.find(qn("a:tblPr")) is None or tbl.find(qn("a:tblGrid")) is None:
            continue
        return copy.deepcopy(frame)
    return None


def build_title_slide(session: SessionInfo, slide_number: int) -> etree._Element:
    """Title slide: session title and, when known, the date in the body placeholder."""
    base_id = slide_number * 1000
    root, sp_tree = new_slide_root()
    add_group_header(sp_tree, base_id, "Intro Title Group")
    title = add_placeholder_shape(sp_tree, base_id + 1, "Title Placeholder", "title")
    add_simple_text_body(title, session.title)
    if session.date:
        subtitle = add_placeholder_shape(sp_tree, base_id + 2, "Subtitle Placeholder", "body", ph_idx="1")
        add_simple_text_body(subtitle, session.date)
    add_master_color_mapping(root)
    return root


def build_participants_slide(
    roster: Sequence[RosterEntry],
    slide_number: int,
    layout_part: Optional[str] = None,
    layout_root: Optional[etree._Element] = None,
) -> etree._Element:
    """
    Participants slide.

    If the layout carries a table, its frame, table properties and grid
    are reused and only the rows are replaced; otherwise a table is
    generated.
    """
    base_id = slide_number * 1000
    slide_name = (
        posixpath.splitext(posixpath.basename(layout_part))[0] if layout_part else "ParticipantsLayout"
    )
    root, sp_tree = new_slide_root()
    sp_tree.getparent().set("name", slide_name)
    add_group_header(sp_tree, base_id, "Group Shape")
    title = add_placeholder_shape(sp_tree, base_id + 1, "Title", "title")
    add_simple_text_body(title, PARTICIPANTS_TITLE)

    frame = _table_frame_from_layout(layout_root)
    if frame is not None:
        tbl = frame.find(f".//{qn('a:tbl')}")
        for row in tbl.findall(qn("a:tr")):
            tbl.remove(row)
        add_table_rows(tbl, roster)
        logger.debug(f"Participants slide {slide_number}: reusing layout table")
    else:
        frame = build_participants_table(roster, base_id + 2)
    sp_tree.append(frame)

    add_master_color_mapping(root)
    return root


def build_intro_slide_rels(layout_part: str) -> etree._Element:
    return build_relationships(
        [RelationshipEntry("rId1", RelType.SLIDE_LAYOUT.value, layout_target_for(layout_part))]
    )


def write_intro_slide(
    archive: PackageArchive,
    descriptor: SlideDescriptor,
    session: SessionInfo,
    roster: Sequence[RosterEntry],
) -> None:
    """Build a planned intro slide and its relationships into the archive."""
    if descriptor.layout_part is None:
        raise ValueError(f"Intro slide {descriptor.file_number} has no layout")
    if descriptor.role is SlideRole.INTRO_TITLE:
        slide = build_title_slide(session, descriptor.file_number)
    elif descriptor.role is SlideRole.INTRO_ROSTER:
        slide = build_participants_slide(
            roster,
            descriptor.file_number,
            descriptor.layout_part,
            archive.read_xml(descriptor.layout_part),
        )
    else:
        raise ValueError(f"Not an intro slide: {descriptor.role}")
    archive.write_xml(descriptor.part_name, slide)
    archive.write_xml(rels_part_for(descriptor.part_name), build_intro_slide_rels(descriptor.layout_part))
    logger.info(f"Intro slide {descriptor.role.value} -> {descriptor.part_name}")
