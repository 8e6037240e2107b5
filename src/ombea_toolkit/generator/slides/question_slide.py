"""
Module: generator.slides.question_slide

Purpose:
    Build one polling question slide and its relationship list. The
    slide holds a title placeholder (question text), an auto-numbered
    body placeholder (one paragraph per option), an optional picture
    and, when the countdown is positive, a countdown text box. Each
    shape is linked to its marker tag part through `p:custDataLst`.

Key Functions:
    - build_question_slide(): Slide XML for one question
    - build_question_slide_rels(): Relationship list (tags, layout, image)
    - write_question_slide(): Build both and store them in the archive

Dependencies:
    - lxml
    - generator.slides.shapes: shared builders

Used By:
    - generator.controller
"""

from __future__ import annotations

import logging
from typing import Optional

from lxml import etree

from ombea_toolkit.common import qn, rels_part_for, sub_element
from ombea_toolkit.core.models import Question

from ..config import GeneratorConfig
from ..images import EmbeddedImage, ImagePlacement
from ..package import (
    PackageArchive,
    RelationshipEntry,
    RelType,
    SlideDescriptor,
    build_relationships,
)
from .shapes import (
    TEXT_LANG,
    add_creation_id,
    add_group_header,
    add_master_color_mapping,
    add_placeholder_shape,
    add_text_run,
    add_xfrm,
    new_slide_root,
)
from .tags import TagBundle

logger = logging.getLogger(__name__)

# Shape ids on a question slide
GROUP_ID = 1
TITLE_ID = 2
BODY_ID = 3
COUNTDOWN_ID = 4
IMAGE_ID = 5

# Slide relationship ids: tags first, then layout, then picture
SLIDE_TAGS_RID = "rId1"
TITLE_TAGS_RID = "rId2"
ANSWERS_TAGS_RID = "rId3"
COUNTDOWN_TAGS_RID = "rId4"
LAYOUT_RID = "rId5"
IMAGE_RID = "rId6"

# Answers body and countdown geometry (EMU)
BODY_BOX = (457200, 1600200, 4572000, 4525963)
COUNTDOWN_BOX = (7380000, 3722400, 1524000, 769441)
COUNTDOWN_FONT_SIZE = 4400


def _add_title(sp_tree: etree._Element, slide_number: int, text: str) -> None:
    sp = add_placeholder_shape(
        sp_tree, TITLE_ID, f"Titre {slide_number}", "title", tags_rid=TITLE_TAGS_RID
    )
    body = sub_element(sp, "p:txBody")
    sub_element(body, "a:bodyPr")
    sub_element(body, "a:lstStyle")
    paragraph = sub_element(body, "a:p")
    add_text_run(paragraph, text, dirty=0)
    sub_element(paragraph, "a:endParaRPr", {"lang": TEXT_LANG, "dirty": "0"})


def _add_picture(sp_tree: etree._Element, slide_number: int, placement: ImagePlacement) -> None:
    pic = sub_element(sp_tree, "p:pic")
    nv = sub_element(pic, "p:nvPicPr")
    sub_element(nv, "p:cNvPr", {"id": str(IMAGE_ID), "name": f"Image {slide_number}"})
    c_nv_pic = sub_element(nv, "p:cNvPicPr")
    sub_element(c_nv_pic, "a:picLocks", {"noChangeAspect": "1"})
    sub_element(nv, "p:nvPr")
    fill = sub_element(pic, "p:blipFill")
    sub_element(fill, "a:blip", {"r:embed": IMAGE_RID})
    stretch = sub_element(fill, "a:stretch")
    sub_element(stretch, "a:fillRect")
    sp_pr = sub_element(pic, "p:spPr")
    add_xfrm(sp_pr, placement.x, placement.y, placement.width, placement.height)
    geom = sub_element(sp_pr, "a:prstGeom", {"prst": "rect"})
    sub_element(geom, "a:avLst")


def _add_answers(sp_tree: etree._Element, slide_number: int, options, bullet_scheme: str) -> None:
    sp = add_placeholder_shape(
        sp_tree,
        BODY_ID,
        f"Espace réservé du texte {slide_number}",
        "body",
        ph_idx="1",
        tags_rid=ANSWERS_TAGS_RID,
    )
    add_xfrm(sp.find(qn("p:spPr")), *BODY_BOX)
    body = sub_element(sp, "p:txBody")
    sub_element(body, "a:bodyPr")
    lst_style = sub_element(body, "a:lstStyle")
    lvl1 = sub_element(lst_style, "a:lvl1pPr", {"marL": "514350", "indent": "-514350", "algn": "l"})
    sub_element(lvl1, "a:buFontTx")
    sub_element(lvl1, "a:buClrTx")
    sub_element(lvl1, "a:buSzTx")
    sub_element(lvl1, "a:buAutoNum", {"type": bullet_scheme})
    for option in options:
        paragraph = sub_element(body, "a:p")
        p_pr = sub_element(paragraph, "a:pPr")
        sub_element(p_pr, "a:buFont", {"typeface": "+mj-lt"})
        sub_element(p_pr, "a:buAutoNum", {"type": bullet_scheme})
        add_text_run(paragraph, option, dirty=0)


def _add_countdown(sp_tree: etree._Element, slide_number: int, seconds: int) -> None:
    sp = sub_element(sp_tree, "p:sp")
    nv = sub_element(sp, "p:nvSpPr")
    sub_element(nv, "p:cNvPr", {"id": str(COUNTDOWN_ID), "name": f"OMBEA Countdown {slide_number}"})
    sub_element(nv, "p:cNvSpPr", {"txBox": "1"})
    nv_pr = sub_element(nv, "p:nvPr")
    cust = sub_element(nv_pr, "p:custDataLst")
    sub_element(cust, "p:tags", {"r:id": COUNTDOWN_TAGS_RID})
    sp_pr = sub_element(sp, "p:spPr")
    add_xfrm(sp_pr, *COUNTDOWN_BOX)
    geom = sub_element(sp_pr, "a:prstGeom", {"prst": "rect"})
    sub_element(geom, "a:avLst")
    sub_element(sp_pr, "a:noFill")
    body = sub_element(sp, "p:txBody")
    body_pr = sub_element(
        body, "a:bodyPr", {"vert": "horz", "rtlCol": "0", "anchor": "ctr", "anchorCtr": "1"}
    )
    sub_element(body_pr, "a:spAutoFit")
    sub_element(body, "a:lstStyle")
    paragraph = sub_element(body, "a:p")
    add_text_run(paragraph, str(seconds), sz=COUNTDOWN_FONT_SIZE, smtClean=0)
    sub_element(paragraph, "a:endParaRPr", {"lang": TEXT_LANG, "sz": str(COUNTDOWN_FONT_SIZE)})


def build_question_slide(
    question: Question,
    slide_number: int,
    countdown: int,
    bullet_scheme: str,
    placement: Optional[ImagePlacement] = None,
) -> etree._Element:
    """
    Build the slide part for one question.

    Args:
        question: Question to render
        slide_number: Slide file number, used in shape names
        countdown: Seconds shown in the countdown box; no box when <= 0
        bullet_scheme: DrawingML auto-numbering scheme (e.g. "arabicPeriod")
        placement: Picture geometry, or None for a slide without picture

    Returns:
        `p:sld` root element

    Example:
        >>> root = build_question_slide(question, 4, 30, "arabicPeriod")
        >>> root.find(".//{*}t").text == question.text
        True
    """
    root, sp_tree = new_slide_root()
    add_group_header(sp_tree, GROUP_ID)
    _add_title(sp_tree, slide_number, question.text)
    if placement is not None:
        _add_picture(sp_tree, slide_number, placement)
    _add_answers(sp_tree, slide_number, question.options, bullet_scheme)
    if countdown > 0:
        _add_countdown(sp_tree, slide_number, countdown)

    c_sld = sp_tree.getparent()
    cust = sub_element(c_sld, "p:custDataLst")
    sub_element(cust, "p:tags", {"r:id": SLIDE_TAGS_RID})
    add_creation_id(c_sld)

    add_master_color_mapping(root)
    timing = sub_element(root, "p:timing")
    tn_lst = sub_element(timing, "p:tnLst")
    par = sub_element(tn_lst, "p:par")
    sub_element(
        par,
        "p:cTn",
        {"id": "1", "dur": "indefinite", "restart": "never", "nodeType": "tmRoot"},
    )
    return root


def build_question_slide_rels(
    bundle: TagBundle,
    layout_target: str,
    image_target: Optional[str] = None,
) -> etree._Element:
    """
    Relationship list of a question slide.

    rId1-rId4 point at the bundle's four tag parts, rId5 at the layout
    and rId6 at the picture when there is one.
    """
    tag_rids = (SLIDE_TAGS_RID, TITLE_TAGS_RID, ANSWERS_TAGS_RID, COUNTDOWN_TAGS_RID)
    entries = [
        RelationshipEntry(rid, RelType.TAGS.value, f"../tags/tag{number}.xml")
        for rid, number in zip(tag_rids, bundle.numbers)
    ]
    entries.append(RelationshipEntry(LAYOUT_RID, RelType.SLIDE_LAYOUT.value, layout_target))
    if image_target:
        entries.append(RelationshipEntry(IMAGE_RID, RelType.IMAGE.value, image_target))
    return build_relationships(entries)


def layout_target_for(layout_part: str) -> str:
    """
    Example:
        >>> layout_target_for("ppt/slideLayouts/slideLayout12.xml")
        '../slideLayouts/slideLayout12.xml'
    """
    return "../slideLayouts/" + layout_part.rsplit("/", 1)[-1]


def write_question_slide(
    archive: PackageArchive,
    descriptor: SlideDescriptor,
    question: Question,
    bundle: TagBundle,
    config: GeneratorConfig,
    image: Optional[EmbeddedImage] = None,
) -> None:
    """Build a question slide and its relationships into the archive."""
    if descriptor.layout_part is None:
        raise ValueError(f"Slide {descriptor.file_number} has no layout")
    countdown = config.countdown_value(question.duration)
    slide = build_question_slide(
        question,
        descriptor.file_number,
        countdown,
        config.poll.bullet_scheme,
        image.placement if image else None,
    )
    rels = build_question_slide_rels(
        bundle,
        layout_target_for(descriptor.layout_part),
        image.rels_target if image else None,
    )
    archive.write_xml(descriptor.part_name, slide)
    archive.write_xml(rels_part_for(descriptor.part_name), rels)
    logger.debug(
        f"Question {question.question_id} -> {descriptor.part_name} "
        f"(tags {bundle.base_number}-{bundle.base_number + 3}, guid {bundle.slide_guid})"
    )
