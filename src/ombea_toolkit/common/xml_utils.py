"""
Module: common.xml_utils

Purpose:
    Shared lxml helpers for the presentation package and the response
    session dialect. Keeps namespace URIs in one table so every module
    builds and queries elements the same way.

Key Functions:
    - qn(): Expand a "prefix:local" name to Clark notation
    - parse_xml(): Parse part bytes into an element
    - serialize_xml(): Serialize an element as a standalone XML part
    - make_element(): Build an element with attributes and optional text

Dependencies:
    - lxml

Used By:
    - generator.package.*, generator.slides.*, generator.output.*
    - importer.extractor
"""

from __future__ import annotations

from typing import Dict, Optional

from lxml import etree

NS: Dict[str, str] = {
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "p": "http://schemas.openxmlformats.org/presentationml/2006/main",
    "p14": "http://schemas.microsoft.com/office/powerpoint/2010/main",
    "ct": "http://schemas.openxmlformats.org/package/2006/content-types",
    "pr": "http://schemas.openxmlformats.org/package/2006/relationships",
    "ep": "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties",
    "vt": "http://schemas.openxmlformats.org/officeDocument/2006/docPropsVTypes",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
    "ors": "http://www.ombea.com/response/session",
    "rl": "http://www.ombea.com/response/respondentlist",
}

# Prefixes declared on every slide-level part we synthesize
PML_NSMAP: Dict[Optional[str], str] = {
    "a": NS["a"],
    "r": NS["r"],
    "p": NS["p"],
}

_PARSER = etree.XMLParser(remove_blank_text=False, resolve_entities=False)


class XmlPartError(Exception):
    """Raised when a package part is not well-formed XML."""
    pass


def qn(name: str) -> str:
    """
    Expand a prefixed name into lxml Clark notation.

    Example:
        >>> qn("p:sldId")
        '{http://schemas.openxmlformats.org/presentationml/2006/main}sldId'
    """
    prefix, local = name.split(":", 1)
    return f"{{{NS[prefix]}}}{local}"


def parse_xml(data: bytes, part_name: str = "<part>") -> etree._Element:
    """
    Parse XML bytes into the root element.

    Raises:
        XmlPartError: If the bytes are not well-formed XML
    """
    try:
        return etree.fromstring(data, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise XmlPartError(f"Malformed XML in {part_name}: {e}") from e


def serialize_xml(root: etree._Element) -> bytes:
    """Serialize an element as a UTF-8 part with a standalone declaration."""
    return etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        standalone=True,
    )


def make_element(
    name: str,
    attrib: Optional[Dict[str, str]] = None,
    text: Optional[str] = None,
    nsmap: Optional[Dict[Optional[str], str]] = None,
) -> etree._Element:
    """Create a detached element; `name` is a prefixed name like "a:t"."""
    el = etree.Element(qn(name), nsmap=nsmap)
    for key, value in (attrib or {}).items():
        el.set(qn(key) if ":" in key else key, str(value))
    if text is not None:
        el.text = text
    return el


def sub_element(
    parent: etree._Element,
    name: str,
    attrib: Optional[Dict[str, str]] = None,
    text: Optional[str] = None,
) -> etree._Element:
    """Append a child element to `parent` and return it."""
    el = etree.SubElement(parent, qn(name))
    for key, value in (attrib or {}).items():
        el.set(qn(key) if ":" in key else key, str(value))
    if text is not None:
        el.text = text
    return el
