"""Shared PresentationML builders for synthesized slides and layouts."""

from __future__ import annotations

import random
from typing import Optional, Tuple

from lxml import etree

from ombea_toolkit.common import NS, PML_NSMAP, make_element, qn, sub_element

TEXT_LANG = "fr-FR"
CREATION_ID_EXT_URI = "{BB962C8B-B14F-4D97-AF65-F5344CB8AC3E}"
MAX_CREATION_ID = 2147483647


def new_slide_root(tag: str = "p:sld", attrib: Optional[dict] = None) -> Tuple[etree._Element, etree._Element]:
    """
    Start a slide-like part.

    Returns:
        (root, spTree); the shape tree is still empty
    """
    root = make_element(tag, attrib, nsmap=PML_NSMAP)
    c_sld = sub_element(root, "p:cSld")
    sp_tree = sub_element(c_sld, "p:spTree")
    return root, sp_tree


def add_group_header(sp_tree: etree._Element, shape_id: int, name: str = "") -> None:
    nv = sub_element(sp_tree, "p:nvGrpSpPr")
    sub_element(nv, "p:cNvPr", {"id": str(shape_id), "name": name})
    sub_element(nv, "p:cNvGrpSpPr")
    sub_element(nv, "p:nvPr")
    grp = sub_element(sp_tree, "p:grpSpPr")
    xfrm = sub_element(grp, "a:xfrm")
    sub_element(xfrm, "a:off", {"x": "0", "y": "0"})
    sub_element(xfrm, "a:ext", {"cx": "0", "cy": "0"})
    sub_element(xfrm, "a:chOff", {"x": "0", "y": "0"})
    sub_element(xfrm, "a:chExt", {"cx": "0", "cy": "0"})


def add_xfrm(parent: etree._Element, x: int, y: int, cx: int, cy: int, tag: str = "a:xfrm") -> etree._Element:
    xfrm = sub_element(parent, tag)
    sub_element(xfrm, "a:off", {"x": str(x), "y": str(y)})
    sub_element(xfrm, "a:ext", {"cx": str(cx), "cy": str(cy)})
    return xfrm


def add_placeholder_shape(
    sp_tree: etree._Element,
    shape_id: int,
    name: str,
    ph_type: str,
    ph_idx: Optional[str] = None,
    ph_size: Optional[str] = None,
    tags_rid: Optional[str] = None,
) -> etree._Element:
    """
    Append a placeholder `p:sp` without a text body.

    Returns:
        The `p:sp` element; callers add `p:spPr` content and `p:txBody`
    """
    sp = sub_element(sp_tree, "p:sp")
    nv = sub_element(sp, "p:nvSpPr")
    sub_element(nv, "p:cNvPr", {"id": str(shape_id), "name": name})
    c_nv_sp = sub_element(nv, "p:cNvSpPr")
    sub_element(c_nv_sp, "a:spLocks", {"noGrp": "1"})
    nv_pr = sub_element(nv, "p:nvPr")
    ph_attrib = {"type": ph_type}
    if ph_size:
        ph_attrib["sz"] = ph_size
    if ph_idx:
        ph_attrib["idx"] = ph_idx
    sub_element(nv_pr, "p:ph", ph_attrib)
    if tags_rid:
        cust = sub_element(nv_pr, "p:custDataLst")
        sub_element(cust, "p:tags", {"r:id": tags_rid})
    sub_element(sp, "p:spPr")
    return sp


def add_text_run(paragraph: etree._Element, text: str, **rpr) -> etree._Element:
    run = sub_element(paragraph, "a:r")
    attrib = {"lang": TEXT_LANG}
    attrib.update({k: str(v) for k, v in rpr.items()})
    sub_element(run, "a:rPr", attrib)
    sub_element(run, "a:t", text=text)
    return run


def add_simple_text_body(sp: etree._Element, text: str, **rpr) -> etree._Element:
    """Text body with one paragraph holding one run."""
    body = sub_element(sp, "p:txBody")
    sub_element(body, "a:bodyPr")
    sub_element(body, "a:lstStyle")
    add_text_run(sub_element(body, "a:p"), text, **rpr)
    return body


def add_creation_id(c_sld: etree._Element) -> int:
    """Append the PowerPoint 2010 creation id extension; returns the id."""
    creation_id = random.randint(1, MAX_CREATION_ID)
    ext_lst = sub_element(c_sld, "p:extLst")
    ext = sub_element(ext_lst, "p:ext", {"uri": CREATION_ID_EXT_URI})
    el = etree.SubElement(ext, qn("p14:creationId"), nsmap={"p14": NS["p14"]})
    el.set("val", str(creation_id))
    return creation_id


def add_master_color_mapping(root: etree._Element) -> None:
    clr = sub_element(root, "p:clrMapOvr")
    sub_element(clr, "a:masterClrMapping")
