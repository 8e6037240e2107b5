"""
Unit Tests for Anomaly Resolution

Tests for validating operator decisions and applying them.
"""

from datetime import datetime, timezone

import pytest

from ombea_toolkit.core.models import (
    ExpectedIssueAction,
    ExpectedIssueResolution,
    ExtractedResponse,
    ParticipantStatus,
    RosterEntry,
    UnknownDeviceAction,
    UnknownDeviceResolution,
)
from ombea_toolkit.importer import (
    ResolutionValidationError,
    detect_anomalies,
    new_participant,
    pending_resolutions,
    resolve,
    validate_resolutions,
)

RELEVANT = ("G1", "G2")
NOW = datetime(2025, 5, 28, 12, 0, tzinfo=timezone.utc)


def _r(device, guid, answer="1", points=0):
    return ExtractedResponse(device, guid, answer, points=points)


@pytest.fixture
def roster():
    return [RosterEntry("AAA", "Ada", "Lovelace"), RosterEntry("BBB", "Alan", "Turing")]


@pytest.fixture
def anomalies(roster):
    """BBB answered only G1; XXX (unregistered) answered G1 and G2."""
    responses = [
        _r("AAA", "G1"), _r("AAA", "G2"),
        _r("BBB", "G1", answer="1"),
        _r("XXX", "G1", answer="3"), _r("XXX", "G2", answer="2", points=1),
    ]
    return detect_anomalies(roster, RELEVANT, responses)


def _aggregate(device="BBB", source="XXX"):
    return ExpectedIssueResolution(device, ExpectedIssueAction.AGGREGATE_WITH_UNKNOWN, source)


class TestValidateResolutions:
    """Tests for validate_resolutions."""

    def test_pending_blocks(self, anomalies):
        errors = validate_resolutions(anomalies, *pending_resolutions(anomalies))
        assert errors == ["Device BBB: decision pending", "Device XXX: decision pending"]

    def test_missing_decisions_block(self, anomalies):
        assert len(validate_resolutions(anomalies, [], [])) == 2

    def test_aggregate_without_source(self, anomalies):
        errors = validate_resolutions(anomalies, [_aggregate(source=None)], [])
        assert "Device BBB: aggregation needs a source device" in errors

    def test_aggregate_with_roster_device(self, anomalies):
        errors = validate_resolutions(
            anomalies,
            [_aggregate(source="AAA")],
            [UnknownDeviceResolution("XXX", UnknownDeviceAction.IGNORE_RESPONSES)],
        )
        assert errors == ["Device BBB: aggregation source AAA is not an unregistered device"]

    def test_add_without_name(self, anomalies):
        errors = validate_resolutions(
            anomalies,
            [ExpectedIssueResolution("BBB", ExpectedIssueAction.MARK_ABSENT)],
            [UnknownDeviceResolution("XXX", UnknownDeviceAction.ADD_AS_NEW_PARTICIPANT, "  ")],
        )
        assert errors == ["Device XXX: new participant needs a name"]

    def test_source_needs_no_own_decision(self, anomalies):
        """An unregistered device consumed by aggregation is resolved by it."""
        assert validate_resolutions(anomalies, [_aggregate()], []) == []

    def test_source_used_twice(self, roster):
        responses = [_r("XXX", "G1"), _r("XXX", "G2")]
        anomalies = detect_anomalies(roster, RELEVANT, responses)
        errors = validate_resolutions(anomalies, [_aggregate("AAA"), _aggregate("BBB")], [])
        assert errors == ["Device BBB: source XXX already aggregated with AAA"]

    def test_decision_for_unflagged_device(self, anomalies):
        errors = validate_resolutions(
            anomalies,
            [_aggregate(), ExpectedIssueResolution("AAA", ExpectedIssueAction.MARK_ABSENT)],
            [UnknownDeviceResolution("ZZZ", UnknownDeviceAction.IGNORE_RESPONSES)],
        )
        assert "Device AAA: no missing-answer issue to resolve" in errors
        assert "Device ZZZ: not an unregistered device" in errors


class TestResolve:
    """Tests for resolve."""

    def test_aggregate_with_unknown(self, anomalies, roster):
        """The unknown device's answers are credited to the roster device."""
        outcome = resolve(anomalies, roster, [_aggregate()], [], now=NOW)

        by_key = {r.key: r for r in outcome.responses}
        assert set(by_key) == {("AAA", "G1"), ("AAA", "G2"), ("BBB", "G1"), ("BBB", "G2")}
        assert by_key[("BBB", "G2")].points == 1
        # Shared GUID: the unregistered device's answer is kept
        assert by_key[("BBB", "G1")].answer_id == "3"
        assert outcome.absent_devices == ()
        assert [p.device_id for p in outcome.roster] == ["AAA", "BBB"]

    def test_mark_absent_drops_partial_responses(self, anomalies, roster):
        outcome = resolve(
            anomalies,
            roster,
            [ExpectedIssueResolution("BBB", ExpectedIssueAction.MARK_ABSENT)],
            [UnknownDeviceResolution("XXX", UnknownDeviceAction.IGNORE_RESPONSES)],
            now=NOW,
        )
        assert {r.device_id for r in outcome.responses} == {"AAA"}
        assert outcome.absent_devices == ("BBB",)
        assert outcome.roster[1].status is ParticipantStatus.ABSENT
        assert outcome.roster[0].status is ParticipantStatus.PRESENT

    def test_ignore_device_marks_absent(self, anomalies, roster):
        outcome = resolve(
            anomalies,
            roster,
            [ExpectedIssueResolution("BBB", ExpectedIssueAction.IGNORE_DEVICE)],
            [UnknownDeviceResolution("XXX", UnknownDeviceAction.IGNORE_RESPONSES)],
        )
        assert outcome.absent_devices == ("BBB",)

    def test_add_as_new_participant(self, anomalies, roster):
        outcome = resolve(
            anomalies,
            roster,
            [ExpectedIssueResolution("BBB", ExpectedIssueAction.MARK_ABSENT)],
            [UnknownDeviceResolution("XXX", UnknownDeviceAction.ADD_AS_NEW_PARTICIPANT, "Grace Hopper")],
            now=NOW,
        )
        added = outcome.roster[-1]
        assert (added.device_id, added.given_name, added.family_name) == ("XXX", "Grace", "Hopper")
        assert added.identification_code == "NEW_XXX"
        assert sorted(r.slide_guid for r in outcome.responses if r.device_id == "XXX") == ["G1", "G2"]

    def test_audit_record(self, anomalies, roster):
        outcome = resolve(anomalies, roster, [_aggregate()], [], now=NOW)
        assert outcome.audit["resolved_at"] == NOW.isoformat()
        assert outcome.audit["expected_issues"] == [
            {"device_id": "BBB", "action": "aggregate_with_unknown", "source_unknown_device_id": "XXX"}
        ]
        assert outcome.audit["unknown_devices"] == []

    def test_invalid_decisions_raise(self, anomalies, roster):
        with pytest.raises(ResolutionValidationError) as exc_info:
            resolve(anomalies, roster, *pending_resolutions(anomalies))
        assert len(exc_info.value.errors) == 2

    def test_one_response_per_key(self, anomalies, roster):
        outcome = resolve(anomalies, roster, [_aggregate()], [])
        keys = [r.key for r in outcome.responses]
        assert len(keys) == len(set(keys))


class TestNewParticipant:
    """Tests for new_participant."""

    def test_full_name(self):
        entry = new_participant("10A2B3", "Marie Curie Sklodowska")
        assert (entry.given_name, entry.family_name) == ("Marie", "Curie Sklodowska")

    def test_single_name(self):
        assert new_participant("10A2B3", "Marie").family_name == "SN-A2B3"

    def test_no_name(self):
        entry = new_participant("10A2B3", None)
        assert (entry.given_name, entry.family_name) == ("Inconnu", "SN-A2B3")
