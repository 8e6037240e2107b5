"""
Module: generator.output.roster_document

Purpose:
    Emit the roster-only response-session document (ORSession.xml)
    that travels with the presentation. The question list is empty at
    write time; the polling software fills it in and exports the same
    dialect back with answers.

Key Functions:
    - build_roster_document(): ORSession element for a roster
    - roster_document_bytes(): Serialized ORSession.xml

Dependencies:
    - lxml

Used By:
    - generator.output.delivery
    - generator.controller
    - importer.extractor (SESSION_DOCUMENT_NAME)
"""

from __future__ import annotations

import logging
from typing import Sequence

from lxml import etree

from ombea_toolkit.common import NS, make_element, sub_element
from ombea_toolkit.core.models import RosterEntry

logger = logging.getLogger(__name__)

SESSION_DOCUMENT_NAME = "ORSession.xml"
OR_VERSION = "0"
SESSION_VERSION = "4"
RESPONDENT_LIST_VERSION = "3"

FIRST_NAME = "FirstName"
LAST_NAME = "LastName"
ORGANISATION = "Organisation"


def _add_custom_property(respondent: etree._Element, prop_id: str, text: str) -> None:
    prop = sub_element(respondent, "rl:CustomProperty")
    sub_element(prop, "rl:ID", text=prop_id)
    sub_element(prop, "rl:Text", text=text)


def build_roster_document(roster: Sequence[RosterEntry]) -> etree._Element:
    """
    Build the ORSession root for a roster.

    Header 1 is the device id; custom headers follow (first name, last
    name, and organisation when any participant has one). Respondent ids
    are sequential from 1 in roster order.

    Example:
        >>> root = build_roster_document([RosterEntry("102030", "Ada", "Lovelace")])
        >>> root.find(".//{*}Device").text
        '102030'
    """
    root = make_element(
        "ors:ORSession",
        {"ORVersion": OR_VERSION, "SessionVersion": SESSION_VERSION},
        nsmap={"rl": NS["rl"], "ors": NS["ors"]},
    )
    sub_element(root, "ors:Questions")
    respondent_list = sub_element(
        root, "ors:RespondentList", {"RespondentListVersion": RESPONDENT_LIST_VERSION}
    )

    with_org = any(p.organization for p in roster)
    headers = sub_element(respondent_list, "rl:RespondentHeaders")
    sub_element(headers, "rl:DeviceIDHeader", {"Index": "1"})
    custom_headers = [FIRST_NAME, LAST_NAME] + ([ORGANISATION] if with_org else [])
    for index, name in enumerate(custom_headers, start=2):
        sub_element(headers, "rl:CustomHeader", {"Index": str(index)}, text=name)

    respondents = sub_element(respondent_list, "rl:Respondents")
    for index, participant in enumerate(roster, start=1):
        respondent = sub_element(respondents, "rl:Respondent", {"ID": str(index)})
        devices = sub_element(respondent, "rl:Devices")
        sub_element(devices, "rl:Device", text=participant.device_id)
        _add_custom_property(respondent, FIRST_NAME, participant.given_name)
        _add_custom_property(respondent, LAST_NAME, participant.family_name)
        if with_org and participant.organization:
            _add_custom_property(respondent, ORGANISATION, participant.organization)
        sub_element(respondent, "rl:GroupReferences")
    sub_element(respondent_list, "rl:Groups")

    logger.debug(f"Roster document: {len(roster)} respondents")
    return root


def roster_document_bytes(roster: Sequence[RosterEntry]) -> bytes:
    """Serialized ORSession.xml (UTF-8 with declaration)."""
    return etree.tostring(
        build_roster_document(roster),
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=True,
    )
