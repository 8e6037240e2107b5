"""
Unit Tests for Result Transformation

Tests for turning final responses into graded results.
"""

from datetime import datetime, timezone

import pytest

from ombea_toolkit.core.models import ExtractedResponse, QuestionMapping
from ombea_toolkit.importer import UnmappedGuidError, guid_index, transform_responses

NOW = datetime(2025, 5, 28, 12, 0, tzinfo=timezone.utc)
MAPPINGS = [QuestionMapping(10, "G1", 1), QuestionMapping(11, "G2", 2)]


class TestTransformResponses:
    """Tests for transform_responses."""

    def test_graded_results(self):
        responses = [
            ExtractedResponse("AAA", "G1", "2", points=1),
            ExtractedResponse("AAA", "G2", "1", points=0),
        ]
        results = transform_responses(responses, MAPPINGS, session_id=7, now=NOW)

        assert [(r.question_id, r.is_correct, r.points) for r in results] == [(10, True, 1), (11, False, 0)]
        assert all(r.session_id == 7 for r in results)
        assert results[0].timestamp == NOW.isoformat()
        assert results[0].to_dict()["answer_id"] == "2"

    def test_unmapped_guid_rejects_batch(self):
        """Nothing is produced when a single GUID is unknown."""
        responses = [ExtractedResponse("AAA", "G1", "1"), ExtractedResponse("AAA", "GX", "1")]
        with pytest.raises(UnmappedGuidError) as exc_info:
            transform_responses(responses, MAPPINGS, session_id=7)
        assert exc_info.value.guids == ["GX"]
        assert "GX" in str(exc_info.value)

    def test_empty(self):
        assert transform_responses([], MAPPINGS, session_id=7) == []


def test_guid_index_skips_missing_guids():
    index = guid_index(MAPPINGS + [QuestionMapping(12, None, 3)])
    assert sorted(index) == ["G1", "G2"]
