"""
Integration Tests for the Import Pipeline

Tests prepare_import() / finalize_import() on returned archives, including
a full generate-then-import round through the delivery archive.
"""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from ombea_toolkit.core.models import (
    ExpectedIssueAction,
    ExpectedIssueResolution,
    ParticipantStatus,
    QuestionMapping,
    RosterEntry,
    UnknownDeviceAction,
    UnknownDeviceResolution,
)
from ombea_toolkit.generator import GeneratorConfig, generate_presentation
from ombea_toolkit.importer import (
    ResolutionValidationError,
    ResultsFormatError,
    UnmappedGuidError,
    finalize_import,
    import_results,
    prepare_import,
)

G1 = "6F1B0C8E-1111-4222-8333-444455556666"
G2 = "0D9E2A47-AAAA-4BBB-9CCC-DDDDEEEEFFFF"
TEMPLATE = "0A1B2C3D-0000-4000-8000-00000000TMPL"
NOW = datetime(2025, 5, 28, 12, 0, tzinfo=timezone.utc)

MAPPINGS = [QuestionMapping(10, G1, 1, "securite", "A"), QuestionMapping(11, G2, 2, "securite", "A")]
SCORES = {"1": "1.00", "2": "0.00"}


@pytest.fixture
def roster():
    return [RosterEntry("AAA", "Ada", "Lovelace"), RosterEntry("BBB", "Alan", "Turing")]


class TestCleanImport:
    """Tests for imports without anomalies."""

    def test_graded_without_decisions(self, results_archive, roster):
        archive = results_archive(
            ["AAA", "BBB"],
            [
                (G1, SCORES, [("AAA", "1", None), ("BBB", "2", None)]),
                (G2, SCORES, [("AAA", "1", None), ("BBB", "1", None)]),
            ],
        )
        pending = prepare_import(archive, 7, MAPPINGS, roster)
        assert not pending.needs_resolution

        result = finalize_import(pending, now=NOW)

        assert len(result.results) == 4
        assert sum(r.is_correct for r in result.results) == 3
        assert result.audit is None
        assert [o.passed for o in result.outcomes] == [True, False]

    def test_duplicates_and_template_guids_removed(self, results_archive, roster):
        archive = results_archive(
            ["AAA", "BBB"],
            [
                (TEMPLATE, SCORES, [("AAA", "1", None)]),
                (G1, SCORES, [
                    ("AAA", "2", "2025-05-28T10:00:00Z"),
                    ("AAA", "1", "2025-05-28T10:00:04Z"),
                    ("BBB", "1", None),
                ]),
                (G2, SCORES, [("AAA", "1", None), ("BBB", "1", None)]),
            ],
        )
        result = import_results(archive, 7, MAPPINGS, roster, ignored_guids=[TEMPLATE])

        assert len(result.results) == 4
        aaa_g1 = [r for r in result.results if r.device_id == "AAA" and r.question_id == 10]
        assert [r.answer_id for r in aaa_g1] == ["1"]


class TestAnomalousImport:
    """Tests for imports that need operator decisions."""

    @pytest.fixture
    def archive(self, results_archive):
        """BBB answered only G1; unregistered XXX answered G2."""
        return results_archive(
            ["AAA", "BBB", "XXX"],
            [
                (G1, SCORES, [("AAA", "1", None), ("BBB", "1", None)]),
                (G2, SCORES, [("AAA", "1", None), ("XXX", "1", None)]),
            ],
        )

    def test_detection(self, archive, roster):
        pending = prepare_import(archive, 7, MAPPINGS, roster)
        assert pending.needs_resolution
        assert [i.device_id for i in pending.anomalies.expected_issues] == ["BBB"]
        assert [u.device_id for u in pending.anomalies.unknown_devices] == ["XXX"]

    def test_pending_decisions_block_finalize(self, archive, roster):
        pending = prepare_import(archive, 7, MAPPINGS, roster)
        with pytest.raises(ResolutionValidationError):
            finalize_import(pending)

    def test_aggregation(self, archive, roster):
        pending = prepare_import(archive, 7, MAPPINGS, roster)
        result = finalize_import(
            pending,
            [ExpectedIssueResolution("BBB", ExpectedIssueAction.AGGREGATE_WITH_UNKNOWN, "XXX")],
            now=NOW,
        )

        assert sorted((r.device_id, r.question_id) for r in result.results) == [
            ("AAA", 10), ("AAA", 11), ("BBB", 10), ("BBB", 11),
        ]
        assert all(o.passed for o in result.outcomes)
        assert result.audit["resolved_at"] == NOW.isoformat()

    def test_absent_and_new_participant(self, archive, roster):
        pending = prepare_import(archive, 7, MAPPINGS, roster)
        result = finalize_import(
            pending,
            [ExpectedIssueResolution("BBB", ExpectedIssueAction.MARK_ABSENT)],
            [UnknownDeviceResolution("XXX", UnknownDeviceAction.ADD_AS_NEW_PARTICIPANT, "Grace Hopper")],
        )

        statuses = {p.device_id: p.status for p in result.roster}
        assert statuses == {
            "AAA": ParticipantStatus.PRESENT,
            "BBB": ParticipantStatus.ABSENT,
            "XXX": ParticipantStatus.PRESENT,
        }
        assert {r.device_id for r in result.results} == {"AAA", "XXX"}
        assert result.to_dict()["roster"][2]["given_name"] == "Grace"


class TestRejectedImport:
    """Tests for imports that must fail."""

    def test_unmapped_guid(self, results_archive, roster):
        """A GUID from another session rejects the whole batch."""
        other = "11111111-2222-4333-8444-555555555555"
        archive = results_archive(
            ["AAA", "BBB"],
            [
                (G1, SCORES, [("AAA", "1", None), ("BBB", "1", None)]),
                (other, SCORES, [("AAA", "1", None)]),
            ],
        )
        with pytest.raises(UnmappedGuidError) as exc_info:
            prepare_import(archive, 7, MAPPINGS, roster)
        assert exc_info.value.guids == [other]

    def test_unreadable_archive(self, roster):
        with pytest.raises(ResultsFormatError):
            prepare_import(b"garbage", 7, MAPPINGS, roster)


def test_generate_then_import(template_bytes, sample_questions, sample_roster, results_archive):
    """GUIDs minted at generation resolve back to question ids at import."""
    generated = generate_presentation(
        GeneratorConfig(template_path=Path("t.pptx")),
        sample_questions,
        roster=sample_roster,
        template_bytes=template_bytes,
    )
    devices = [p.device_id for p in sample_roster]
    questions = []
    for mapping, question in zip(generated.mappings, sample_questions):
        scores = {str(i + 1): points for i, points in enumerate(question.answer_points)}
        correct = str(question.correct_index + 1)
        questions.append((mapping.slide_guid, scores, [(d, correct, None) for d in devices]))

    result = import_results(
        results_archive(devices, questions),
        3,
        generated.mappings,
        sample_roster,
        generated.ignored_slide_guids,
    )

    assert len(result.results) == 6
    assert all(r.is_correct for r in result.results)
    assert sorted({r.question_id for r in result.results}) == [1, 2, 3]
    assert all(o.passed for o in result.outcomes)
