"""
Module: importer.extractor

Purpose:
    Read the populated response-session document (ORSession.xml) out of
    a returned delivery archive and flatten it into ExtractedResponse
    records.

Key Functions:
    - read_delivery_archive(): ORSession.xml bytes from a delivery archive
    - parse_results_xml(): Flatten answers into an ExtractionReport
    - extract_responses(): Both steps

Key Classes:
    - ExtractionReport: Responses plus dropped-row counts and warnings
    - ResultsFormatError: Archive or document unusable

Dependencies:
    - lxml
    - zipfile (std)

Used By:
    - importer.controller
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from io import BytesIO
from typing import Dict, Optional, Tuple

from lxml import etree

from ombea_toolkit.core.models import ExtractedResponse
from ombea_toolkit.generator.output import SESSION_DOCUMENT_NAME

logger = logging.getLogger(__name__)


class ResultsFormatError(Exception):
    """Raised when a results archive or session document cannot be used."""
    pass


@dataclass(frozen=True)
class ExtractionReport:
    """
    Output of one extraction pass.

    Attributes:
        responses: Usable responses, in document order
        respondent_devices: Sequential respondent id -> device serial
        dropped: Number of response rows skipped
        warnings: One message per skipped row or question
    """

    responses: Tuple[ExtractedResponse, ...]
    respondent_devices: Dict[str, str]
    dropped: int = 0
    warnings: Tuple[str, ...] = ()


def read_delivery_archive(data: bytes) -> bytes:
    """
    Return ORSession.xml from a delivery archive.

    Raises:
        ResultsFormatError: If the archive is unreadable or has no session document
    """
    try:
        with zipfile.ZipFile(BytesIO(data)) as zf:
            if SESSION_DOCUMENT_NAME not in zf.namelist():
                raise ResultsFormatError(f"{SESSION_DOCUMENT_NAME} not found in results archive")
            return zf.read(SESSION_DOCUMENT_NAME)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError) as e:
        raise ResultsFormatError(f"Cannot read results archive: {e}") from e


def _text(el: Optional[etree._Element]) -> str:
    if el is None or el.text is None:
        return ""
    return el.text.strip()


def _parse_points(value: Optional[str]) -> Optional[int]:
    """
    Example:
        >>> _parse_points("1.00"), _parse_points("x")
        (1, None)
    """
    if value is None:
        return None
    try:
        return int(float(value))
    except ValueError:
        return None


def _respondent_devices(root: etree._Element, warnings: list) -> Dict[str, str]:
    devices: Dict[str, str] = {}
    for respondent in root.iterfind("{*}RespondentList/{*}Respondents/{*}Respondent"):
        respondent_id = respondent.get("ID")
        device = _text(respondent.find("{*}Devices/{*}Device"))
        if respondent_id and device:
            devices[respondent_id] = device
        else:
            message = f"Respondent {respondent_id or '?'} has no device serial"
            logger.warning(message)
            warnings.append(message)
    return devices


def parse_results_xml(xml: bytes) -> ExtractionReport:
    """
    Flatten a populated session document into responses.

    Each `Question` carries a `SlideGUID`, an `Answers` scoring table
    (`Answer/@ID`, `Answer/@Points`) and `Responses/Response` rows with
    a sequential `RespondentID`, the chosen option in `Part/IntVal` and
    an optional `Time`. Rows whose respondent has no device, or that
    carry no chosen option, are dropped; so are all rows of a question
    without a GUID.

    Args:
        xml: ORSession.xml bytes

    Returns:
        ExtractionReport

    Raises:
        ResultsFormatError: If the XML is not well-formed, has no Questions
            element, lacks the device id column, or has responses that no
            respondent maps to a device

    Example:
        >>> report = parse_results_xml(xml_bytes)
        >>> report.responses[0].slide_guid
        '6F1B0C8E-...'
    """
    parser = etree.XMLParser(resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(xml, parser)
    except etree.XMLSyntaxError as e:
        raise ResultsFormatError(f"Session document is not well-formed: {e}") from e
    if etree.QName(root).localname != "ORSession":
        raise ResultsFormatError(f"Unexpected root element {etree.QName(root).localname!r}")
    questions = root.find("{*}Questions")
    if questions is None:
        raise ResultsFormatError("Session document has no Questions element")
    if root.find("{*}RespondentList/{*}RespondentHeaders/{*}DeviceIDHeader") is None:
        raise ResultsFormatError(
            "Session document has no device id column (RespondentList/RespondentHeaders/DeviceIDHeader)"
        )

    warnings: list = []
    devices = _respondent_devices(root, warnings)
    if not devices and questions.find("{*}Question/{*}Responses/{*}Response") is not None:
        raise ResultsFormatError("Session document has responses but no respondent maps to a device")
    responses = []
    dropped = 0

    for index, question in enumerate(questions.iterfind("{*}Question"), start=1):
        guid = question.get("SlideGUID")
        rows = question.findall("{*}Responses/{*}Response")
        if not guid:
            message = f"Question {question.get('ID') or index} has no SlideGUID, {len(rows)} response(s) dropped"
            logger.warning(message)
            warnings.append(message)
            dropped += len(rows)
            continue

        scores: Dict[str, int] = {}
        for answer in question.iterfind("{*}Answers/{*}Answer"):
            answer_id = answer.get("ID")
            points = _parse_points(answer.get("Points"))
            if answer_id and points is not None:
                scores[answer_id] = points
            else:
                logger.warning(f"Question {guid}: answer {answer_id or '?'} has invalid points")

        for row in rows:
            respondent_id = row.get("RespondentID")
            device = devices.get(respondent_id or "")
            answer_id = _text(row.find("{*}Part/{*}IntVal"))
            if not device or not answer_id:
                reason = "unknown respondent" if not device else "no chosen option"
                message = f"Question {guid}: response of respondent {respondent_id} dropped ({reason})"
                logger.warning(message)
                warnings.append(message)
                dropped += 1
                continue
            responses.append(
                ExtractedResponse(
                    device_id=device,
                    slide_guid=guid,
                    answer_id=answer_id,
                    points=scores.get(answer_id, 0),
                    timestamp=row.get("Time") or None,
                )
            )

    if not responses:
        logger.warning("No usable responses in session document")
    logger.info(f"Extracted {len(responses)} responses ({dropped} dropped)")
    return ExtractionReport(
        responses=tuple(responses),
        respondent_devices=devices,
        dropped=dropped,
        warnings=tuple(warnings),
    )


def extract_responses(archive_bytes: bytes) -> ExtractionReport:
    """Read the delivery archive and parse its session document."""
    return parse_results_xml(read_delivery_archive(archive_bytes))
