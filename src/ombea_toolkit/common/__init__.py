"""Common utilities shared across the toolkit."""

from __future__ import annotations

from .path_utils import (
    content_type_part_name,
    highest_part_number,
    layout_part,
    part_number,
    rels_part_for,
    resolve_target,
    slide_part,
    tag_part,
)
from .xml_utils import (
    NS,
    PML_NSMAP,
    XmlPartError,
    make_element,
    parse_xml,
    qn,
    serialize_xml,
    sub_element,
)

__all__ = [
    # path_utils
    "content_type_part_name",
    "highest_part_number",
    "layout_part",
    "part_number",
    "rels_part_for",
    "resolve_target",
    "slide_part",
    "tag_part",
    # xml_utils
    "NS",
    "PML_NSMAP",
    "XmlPartError",
    "make_element",
    "parse_xml",
    "qn",
    "serialize_xml",
    "sub_element",
]
