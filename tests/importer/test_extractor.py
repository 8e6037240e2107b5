"""
Unit Tests for Results Extraction

Tests for reading the returned archive and flattening ORSession.xml.
"""

import pytest

from ombea_toolkit.generator.output import build_delivery_archive, roster_document_bytes
from ombea_toolkit.importer import (
    ResultsFormatError,
    extract_responses,
    parse_results_xml,
    read_delivery_archive,
)

G1 = "6F1B0C8E-1111-4222-8333-444455556666"
G2 = "0D9E2A47-AAAA-4BBB-9CCC-DDDDEEEEFFFF"


class TestReadDeliveryArchive:
    """Tests for read_delivery_archive."""

    def test_session_document_returned(self, results_archive):
        data = results_archive(["A1"], [(G1, {"1": "1.00"}, [("A1", "1", None)])])
        assert b"ORSession" in read_delivery_archive(data)

    def test_reads_archive_built_at_generation(self, sample_roster):
        data = build_delivery_archive("Session_X_OMBEA.pptx", b"PK", roster_document_bytes(sample_roster))
        assert b"102030" in read_delivery_archive(data)

    def test_not_a_zip(self):
        with pytest.raises(ResultsFormatError, match="Cannot read"):
            read_delivery_archive(b"garbage")

    def test_missing_session_document(self, zip_package):
        with pytest.raises(ResultsFormatError, match="ORSession.xml not found"):
            read_delivery_archive(zip_package({"Session.pptx": b"PK"}))


class TestParseResultsXml:
    """Tests for parse_results_xml."""

    def test_responses_with_points(self, results_xml):
        xml = results_xml(
            ["A1", "B2"],
            [
                (G1, {"1": "1.00", "2": "0.00"}, [("A1", "1", "2025-05-28T10:00:00Z"), ("B2", "2", None)]),
                (G2, {"1": "0.00", "2": "1.00"}, [("A1", "2", None)]),
            ],
        )
        report = parse_results_xml(xml)

        assert [(r.device_id, r.slide_guid, r.answer_id, r.points) for r in report.responses] == [
            ("A1", G1, "1", 1),
            ("B2", G1, "2", 0),
            ("A1", G2, "2", 1),
        ]
        assert report.responses[0].timestamp == "2025-05-28T10:00:00Z"
        assert report.responses[1].timestamp is None
        assert report.respondent_devices == {"1": "A1", "2": "B2"}
        assert report.dropped == 0

    def test_question_without_guid_dropped(self, results_xml):
        xml = results_xml(["A1"], [(None, {"1": "1"}, [("A1", "1", None)]), (G2, {"1": "1"}, [("A1", "1", None)])])
        report = parse_results_xml(xml)
        assert [r.slide_guid for r in report.responses] == [G2]
        assert report.dropped == 1
        assert "no SlideGUID" in report.warnings[0]

    def test_unknown_respondent_dropped(self, results_xml):
        xml = results_xml(["A1"], [(G1, {"1": "1"}, [("A1", "1", None), ("99", "1", None)])])
        report = parse_results_xml(xml)
        assert len(report.responses) == 1
        assert report.dropped == 1

    def test_answer_without_score_has_zero_points(self, results_xml):
        xml = results_xml(["A1"], [(G1, {"1": "bad"}, [("A1", "1", None)])])
        assert parse_results_xml(xml).responses[0].points == 0

    def test_malformed_xml(self):
        with pytest.raises(ResultsFormatError, match="well-formed"):
            parse_results_xml(b"<ORSession")

    def test_wrong_root(self):
        with pytest.raises(ResultsFormatError, match="root element"):
            parse_results_xml(b"<Session/>")

    def test_missing_questions(self):
        xml = b'<ors:ORSession xmlns:ors="http://www.ombea.com/response/session"/>'
        with pytest.raises(ResultsFormatError, match="Questions"):
            parse_results_xml(xml)

    def test_missing_device_column(self, results_xml):
        xml = results_xml(["A1"], [(G1, {"1": "1"}, [("A1", "1", None)])])
        xml = xml.replace(b'<rl:RespondentHeaders><rl:DeviceIDHeader Index="1"/></rl:RespondentHeaders>', b"")
        with pytest.raises(ResultsFormatError, match="device id column"):
            parse_results_xml(xml)

    def test_missing_respondent_list(self, results_xml):
        xml = results_xml(["A1"], [(G1, {"1": "1"}, [("A1", "1", None)])])
        start = xml.index(b"<ors:RespondentList")
        end = xml.index(b"</ors:RespondentList>") + len(b"</ors:RespondentList>")
        with pytest.raises(ResultsFormatError, match="device id column"):
            parse_results_xml(xml[:start] + xml[end:])

    def test_responses_without_any_device_mapping(self, results_xml):
        """Rows exist but the respondent list maps nobody to a keypad."""
        xml = results_xml([], [(G1, {"1": "1"}, [("A1", "1", None)])])
        with pytest.raises(ResultsFormatError, match="no respondent maps to a device"):
            parse_results_xml(xml)

    def test_roster_only_document_has_no_responses(self, sample_roster):
        """The document shipped at generation parses to an empty report."""
        report = parse_results_xml(roster_document_bytes(sample_roster))
        assert report.responses == ()
        assert report.respondent_devices == {"1": "102030", "2": "102031"}


def test_extract_responses(results_archive):
    data = results_archive(["A1"], [(G1, {"1": "1.00"}, [("A1", "1", None)])])
    assert len(extract_responses(data).responses) == 1
