"""
Unit Tests for Response Deduplication

Tests for keeping one response per (device, GUID) and filtering
template GUIDs.
"""

from ombea_toolkit.core.models import ExtractedResponse
from ombea_toolkit.importer import deduplicate_responses, filter_ignored


def _r(device, guid, answer, time=None):
    return ExtractedResponse(device, guid, answer, timestamp=time)


class TestDeduplicateResponses:
    """Tests for deduplicate_responses."""

    def test_later_timestamp_wins(self):
        responses = [
            _r("A", "G1", "1", "2025-05-28T10:00:05Z"),
            _r("A", "G1", "2", "2025-05-28T10:00:01Z"),
            _r("A", "G1", "3", "2025-05-28T10:00:09Z"),
        ]
        assert [r.answer_id for r in deduplicate_responses(responses)] == ["3"]

    def test_equal_timestamps_keep_first(self):
        responses = [_r("A", "G1", "1", "2025-05-28T10:00:00Z"), _r("A", "G1", "2", "2025-05-28T10:00:00Z")]
        assert [r.answer_id for r in deduplicate_responses(responses)] == ["1"]

    def test_timestamp_beats_missing(self):
        responses = [_r("A", "G1", "1"), _r("A", "G1", "2", "2025-05-28T10:00:00Z"), _r("A", "G1", "3")]
        assert [r.answer_id for r in deduplicate_responses(responses)] == ["2"]

    def test_one_per_key_in_first_seen_order(self):
        responses = [_r("B", "G1", "1"), _r("A", "G1", "1"), _r("B", "G2", "1"), _r("A", "G1", "2")]
        assert [r.key for r in deduplicate_responses(responses)] == [("B", "G1"), ("A", "G1"), ("B", "G2")]

    def test_idempotent(self):
        responses = [
            _r("A", "G1", "1", "2025-05-28T10:00:00Z"),
            _r("A", "G1", "2", "2025-05-28T10:00:03Z"),
            _r("B", "G1", "1"),
        ]
        once = deduplicate_responses(responses)
        assert deduplicate_responses(once) == once


class TestFilterIgnored:
    """Tests for filter_ignored."""

    def test_template_guids_removed(self):
        responses = [_r("A", "T1", "1"), _r("A", "G1", "1")]
        assert [r.slide_guid for r in filter_ignored(responses, ["T1"])] == ["G1"]

    def test_nothing_ignored(self):
        responses = [_r("A", "G1", "1")]
        assert filter_ignored(responses, []) == responses
