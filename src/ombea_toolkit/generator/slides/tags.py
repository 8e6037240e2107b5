"""
Module: generator.slides.tags

Purpose:
    Polling metadata parts ("tags"). Every question slide owns a block of
    four consecutive tag parts: slide identity and poll configuration,
    the title-shape marker, the answers-shape marker with per-option
    points, and the countdown-shape marker. Also reads back the slide
    GUIDs a template already carries.

Key Functions:
    - generate_guid(): Fresh slide GUID in the player's format
    - tag_base_number(): First tag number of a question's block
    - build_tag_bundle(): The four tag parts of one question slide
    - harvest_template_guids(): GUIDs already present in the template
    - check_tag_continuity(): Report gaps in tag1..tagN

Key Classes:
    - TagBundle: Four tag parts + the slide GUID they carry

Dependencies:
    - lxml
    - uuid (std)

Used By:
    - generator.slides.question_slide
    - generator.controller
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from lxml import etree

from ombea_toolkit.common import (
    PML_NSMAP,
    XmlPartError,
    highest_part_number,
    make_element,
    parse_xml,
    part_number,
    qn,
    rels_part_for,
    resolve_target,
    sub_element,
    tag_part,
)
from ombea_toolkit.core.models import Question

from ..config import GeneratorConfig
from ..package import PackageArchive, RelType, parse_relationships

logger = logging.getLogger(__name__)

TAGS_PER_QUESTION = 4
OFFICE_MAJOR_VERSION = "14"
SLIDE_GUID_TAG = "OR_SLIDE_GUID"

# Answers separator inside OR_ANSWERS_TEXT
ANSWER_SEPARATOR = "\r"


def generate_guid() -> str:
    """
    Random slide GUID: 36 uppercase hex characters, version nibble 4,
    variant nibble 8-B.

    Example:
        >>> guid = generate_guid()
        >>> len(guid), guid[14], guid[19] in "89AB"
        (36, '4', True)
    """
    return str(uuid.uuid4()).upper()


def tag_base_number(batch_index: int, tag_offset: int = 0) -> int:
    """
    First tag number of the block for question `batch_index` (1-based).

    Example:
        >>> tag_base_number(1, 0), tag_base_number(2, 0), tag_base_number(1, 8)
        (1, 5, 9)
    """
    if batch_index < 1:
        raise ValueError(f"batch_index is 1-based: {batch_index}")
    return tag_offset + 1 + TAGS_PER_QUESTION * (batch_index - 1)


def highest_tag_number(archive: PackageArchive) -> int:
    """Highest N among ppt/tags/tagN.xml, 0 if the template has none."""
    return highest_part_number(archive.names(), "ppt/tags", "tag")


@dataclass(frozen=True)
class TagBundle:
    """
    The four tag parts of one question slide.

    Attributes:
        base_number: Tag number of the config part; markers follow
        slide_guid: GUID written in OR_SLIDE_GUID
        parts: tag number -> tagLst element
    """

    base_number: int
    slide_guid: str
    parts: Dict[int, etree._Element]

    @property
    def numbers(self) -> Tuple[int, ...]:
        return tuple(range(self.base_number, self.base_number + TAGS_PER_QUESTION))

    @property
    def part_names(self) -> Tuple[str, ...]:
        return tuple(tag_part(n) for n in self.numbers)


def _tag_list(pairs: List[Tuple[str, str]]) -> etree._Element:
    root = make_element("p:tagLst", nsmap=PML_NSMAP)
    for name, value in pairs:
        sub_element(root, "p:tag", {"name": name, "val": value})
    return root


def build_tag_bundle(
    question: Question,
    batch_index: int,
    tag_offset: int,
    config: GeneratorConfig,
    slide_guid: Optional[str] = None,
) -> TagBundle:
    """
    Build the four tag parts for one question slide.

    Args:
        question: Question on the slide
        batch_index: 1-based position within this generation call
        tag_offset: Highest tag number already present in the template
        config: Generator configuration (poll settings, durations)
        slide_guid: GUID to use; a fresh one is generated when None

    Returns:
        TagBundle numbered tag_base_number(batch_index, tag_offset)..+3
    """
    base = tag_base_number(batch_index, tag_offset)
    guid = slide_guid or generate_guid()
    poll = config.poll

    settings = _tag_list([
        (SLIDE_GUID_TAG, guid),
        ("OR_OFFICE_MAJOR_VERSION", OFFICE_MAJOR_VERSION),
        ("OR_POLL_START_MODE", poll.poll_start_mode),
        ("OR_CHART_VALUE_LABEL_FORMAT", poll.chart_value_label_format),
        ("OR_CHART_RESPONSE_DENOMINATOR", "Responses"),
        ("OR_CHART_FIXED_RESPONSE_DENOMINATOR", "100"),
        ("OR_CHART_COLOR_MODE", "Color_Scheme"),
        ("OR_CHART_APPLY_OMBEA_TEMPLATE", "True"),
        ("OR_POLL_DEFAULT_ANSWER_OPTION", "None"),
        ("OR_SLIDE_TYPE", "OR_QUESTION_SLIDE"),
        ("OR_ANSWERS_BULLET_STYLE", poll.answers_bullet_style),
        ("OR_POLL_FLOW", "Automatic"),
        ("OR_CHART_DISPLAY_MODE", "Automatic"),
        ("OR_POLL_TIME_LIMIT", str(config.countdown_value(question.duration))),
        ("OR_POLL_COUNTDOWN_START_MODE", poll.poll_countdown_start_mode),
        ("OR_POLL_MULTIPLE_RESPONSES", poll.poll_multiple_responses),
        ("OR_POLL_DUPLICATES_ALLOWED", "False"),
        ("OR_CATEGORIZING", "False"),
        ("OR_PRIORITY_RANKING", "False"),
        ("OR_IS_POLLED", "False"),
    ])
    title = _tag_list([("OR_SHAPE_TYPE", "OR_TITLE")])
    answers = _tag_list([
        ("OR_SHAPE_TYPE", "OR_ANSWERS"),
        ("OR_ANSWER_POINTS", ",".join(question.answer_points)),
        ("OR_ANSWERS_TEXT", ANSWER_SEPARATOR.join(question.options)),
    ])
    countdown = _tag_list([("OR_SHAPE_TYPE", "OR_COUNTDOWN")])

    parts = {base: settings, base + 1: title, base + 2: answers, base + 3: countdown}
    return TagBundle(base_number=base, slide_guid=guid, parts=parts)


def write_tag_bundle(archive: PackageArchive, bundle: TagBundle) -> None:
    """Store a bundle's parts in the archive."""
    for number, root in bundle.parts.items():
        archive.write_xml(tag_part(number), root)


def read_slide_guid(tag_root: etree._Element) -> Optional[str]:
    """OR_SLIDE_GUID value of a tag part, if it has one."""
    for tag in tag_root.iter(qn("p:tag")):
        if tag.get("name") == SLIDE_GUID_TAG and tag.get("val"):
            return tag.get("val")
    return None


def harvest_template_guids(archive: PackageArchive) -> List[str]:
    """
    Collect slide GUIDs carried by the template's own slides.

    Walks every slide's relationship list for tag relationships and
    reads OR_SLIDE_GUID from each referenced tag part. Unreadable parts
    are skipped with a warning.

    Returns:
        GUIDs in slide order, without duplicates
    """
    guids: List[str] = []
    slides = sorted(
        (n for n in archive.iter_folder("ppt/slides") if n.endswith(".xml")),
        key=lambda n: part_number(n) or 0,
    )
    for slide_name in slides:
        rels_name = rels_part_for(slide_name)
        if rels_name not in archive:
            continue
        try:
            rels = parse_relationships(parse_xml(archive.read(rels_name), rels_name))
        except XmlPartError as e:
            logger.warning(f"Skipping unreadable relationships {rels_name}: {e}")
            continue
        for entry in rels:
            if entry.rel_type != RelType.TAGS.value:
                continue
            target = resolve_target(slide_name, entry.target)
            if target not in archive:
                logger.warning(f"{slide_name} references missing tag part {target}")
                continue
            try:
                guid = read_slide_guid(parse_xml(archive.read(target), target))
            except XmlPartError as e:
                logger.warning(f"Skipping unreadable tag part {target}: {e}")
                continue
            if guid and guid not in guids:
                guids.append(guid)
    if guids:
        logger.info(f"Template carries {len(guids)} existing slide GUID(s)")
    return guids


def check_tag_continuity(archive: PackageArchive, first: int, last: int) -> List[str]:
    """
    Report every missing tag part in first..last.

    Returns:
        One warning message per missing tag number
    """
    warnings = []
    for number in range(first, last + 1):
        if tag_part(number) not in archive:
            message = f"Tag sequence gap: {tag_part(number)} is missing"
            logger.warning(message)
            warnings.append(message)
    return warnings
