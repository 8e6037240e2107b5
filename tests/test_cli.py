"""
Unit Tests for the Command Line Front End

Tests `ombea-toolkit generate` and `ombea-toolkit import` end to end on
temporary directories.
"""

import json
import zipfile
from pathlib import Path

import pytest

from ombea_toolkit import cli


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep main() from replacing pytest's log handlers."""
    monkeypatch.setattr(cli, "configure_logging", lambda verbose=False: None)


@pytest.fixture
def questions_file(tmp_path: Path) -> Path:
    path = tmp_path / "questions.json"
    path.write_text(json.dumps([
        {"id": 1, "text": "Quelle est la couleur du ciel ?", "options": ["Bleu", "Vert", "Rouge"],
         "type": "multiple-choice", "correct_answer": "0", "theme": "securite_A"},
        {"id": 2, "text": "Le feu est-il chaud ?", "options": ["Vrai", "Faux"],
         "type": "true-false", "correct_answer": "0", "time_limit": 15, "theme": "incendie_B"},
    ]), encoding="utf-8")
    return path


@pytest.fixture
def roster_file(tmp_path: Path) -> Path:
    path = tmp_path / "roster.json"
    path.write_text(json.dumps([
        {"device_id": "102030", "given_name": "Ada", "family_name": "Lovelace", "organization": "Analytical"},
        {"device_id": "102031", "given_name": "Alan", "family_name": "Turing"},
    ]), encoding="utf-8")
    return path


@pytest.fixture
def generated(tmp_path, template_path, questions_file, roster_file):
    """Run `generate` and return the output directory."""
    out = tmp_path / "out"
    code = cli.main([
        "generate",
        "--template", str(template_path),
        "--questions", str(questions_file),
        "--roster", str(roster_file),
        "--out", str(out),
        "--title", "Formation",
        "--date", "28/05/2025",
    ])
    assert code == cli.EXIT_OK
    return out


class TestGenerateCommand:
    """Tests for `generate`."""

    def test_writes_archive_and_mappings(self, generated):
        delivery = generated / "Session_Formation_OMBEA.ors"
        assert delivery.exists()
        with zipfile.ZipFile(delivery) as zf:
            assert sorted(zf.namelist()) == ["ORSession.xml", "Session_Formation_OMBEA.pptx"]

        mappings = json.loads((generated / cli.MAPPINGS_FILE).read_text(encoding="utf-8"))
        assert mappings["schema_version"] == 1
        assert [m["question_id"] for m in mappings["question_mappings"]] == [1, 2]
        assert mappings["ignored_slide_guids"] == []

    def test_missing_questions_file(self, tmp_path, template_path, capsys):
        code = cli.main([
            "generate",
            "--template", str(template_path),
            "--questions", str(tmp_path / "absent.json"),
            "--out", str(tmp_path / "out"),
        ])
        assert code == cli.EXIT_FAILURE
        assert "error:" in capsys.readouterr().err


class TestImportCommand:
    """Tests for `import`."""

    @pytest.fixture
    def guids(self, generated):
        data = json.loads((generated / cli.MAPPINGS_FILE).read_text(encoding="utf-8"))
        return [m["slide_guid"] for m in data["question_mappings"]]

    def _run(self, generated, archive_bytes, roster_file, *extra):
        archive = generated / "returned.ors"
        archive.write_bytes(archive_bytes)
        return cli.main([
            "import",
            "--archive", str(archive),
            "--mappings", str(generated / cli.MAPPINGS_FILE),
            "--roster", str(roster_file),
            "--session-id", "5",
            *extra,
        ])

    def test_clean_import(self, generated, guids, roster_file, results_archive):
        scores = {"1": "1.00", "2": "0.00"}
        archive = results_archive(
            ["102030", "102031"],
            [(g, scores, [("102030", "1", None), ("102031", "2", None)]) for g in guids],
        )

        assert self._run(generated, archive, roster_file) == cli.EXIT_OK

        data = json.loads((generated / cli.RESULTS_FILE).read_text(encoding="utf-8"))
        assert len(data["results"]) == 4
        assert {r["session_id"] for r in data["results"]} == {5}
        assert [o["passed"] for o in data["outcomes"]] == [True, False]
        assert data["audit"] is None

    def test_anomalies_need_resolutions(self, generated, guids, roster_file, results_archive, capsys):
        scores = {"1": "1.00"}
        archive = results_archive(
            ["102030", "102031", "1F00AA"],
            [
                (guids[0], scores, [("102030", "1", None), ("102031", "1", None)]),
                (guids[1], scores, [("102030", "1", None), ("1F00AA", "1", None)]),
            ],
        )

        assert self._run(generated, archive, roster_file) == cli.EXIT_NEEDS_RESOLUTION
        assert "Resolutions required" in capsys.readouterr().out
        assert not (generated / cli.RESULTS_FILE).exists()

        resolutions = generated / "resolutions.json"
        resolutions.write_text(json.dumps({
            "expected_issues": [
                {"device_id": "102031", "action": "aggregate_with_unknown", "source_unknown_device_id": "1F00AA"},
            ],
        }), encoding="utf-8")
        output = generated / "graded.json"
        code = self._run(
            generated, archive, roster_file, "--resolutions", str(resolutions), "--output", str(output)
        )

        assert code == cli.EXIT_OK
        data = json.loads(output.read_text(encoding="utf-8"))
        assert len(data["results"]) == 4
        assert data["audit"]["expected_issues"][0]["action"] == "aggregate_with_unknown"

    def test_incomplete_resolutions(self, generated, guids, roster_file, results_archive, capsys):
        archive = results_archive(
            ["102030", "102031"],
            [(guids[0], {"1": "1.00"}, [("102030", "1", None), ("102031", "1", None)]),
             (guids[1], {"1": "1.00"}, [("102030", "1", None)])],
        )
        resolutions = generated / "resolutions.json"
        resolutions.write_text(json.dumps({"expected_issues": []}), encoding="utf-8")

        code = self._run(generated, archive, roster_file, "--resolutions", str(resolutions))

        assert code == cli.EXIT_NEEDS_RESOLUTION
        assert "unresolved: Device 102031: decision pending" in capsys.readouterr().out

    def test_foreign_guid_fails(self, generated, guids, roster_file, results_archive, capsys):
        archive = results_archive(
            ["102030", "102031"],
            [(g, {"1": "1.00"}, [("102030", "1", None), ("102031", "1", None)]) for g in guids]
            + [("11111111-2222-4333-8444-555555555555", {"1": "1.00"}, [("102030", "1", None)])],
        )

        assert self._run(generated, archive, roster_file) == cli.EXIT_FAILURE
        assert "not in this session" in capsys.readouterr().err
