"""
Module: cli

Purpose:
    Command line front end.

        ombea-toolkit generate --template T.pptx --questions Q.json --roster R.json --out DIR
        ombea-toolkit import --archive A.ors --mappings M.json --roster R.json --session-id N

    `generate` writes the delivery archive and mappings.json;
    `import` writes results.json and exits with status 2 when anomalies
    need decisions that were not supplied with --resolutions.

Key Functions:
    - main(): Entry point (console script `ombea-toolkit`)
    - configure_logging(): Root handler for command line runs
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from ombea_toolkit import __version__
from ombea_toolkit.core.models import (
    ExpectedIssueResolution,
    Question,
    QuestionMapping,
    RosterEntry,
    UnknownDeviceResolution,
)
from ombea_toolkit.core.schemas import MAPPINGS_SCHEMA_VERSION, ValidationError, validate_mappings
from ombea_toolkit.generator import (
    GenerationError,
    SessionInfo,
    default_output_name,
    generate_presentation,
    load_config,
)
from ombea_toolkit.generator.output import write_delivery_archive
from ombea_toolkit.importer import (
    PendingImport,
    ResolutionValidationError,
    ResultsFormatError,
    UnmappedGuidError,
    finalize_import,
    prepare_import,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NEEDS_RESOLUTION = 2

MAPPINGS_FILE = "mappings.json"
RESULTS_FILE = "results.json"


def configure_logging(verbose: bool = False) -> None:
    """Install one stderr handler on the root logger."""
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def _read_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")


def _load_roster(path: Optional[Path]) -> List[RosterEntry]:
    if path is None:
        return []
    return [RosterEntry.from_dict(item) for item in _read_json(path)]


def _load_mappings(path: Path) -> Tuple[List[QuestionMapping], List[str]]:
    data = _read_json(path)
    validate_mappings(data)
    mappings = [QuestionMapping.from_dict(item) for item in data["question_mappings"]]
    return mappings, list(data["ignored_slide_guids"])


def _load_resolutions(
    path: Optional[Path],
) -> Tuple[List[ExpectedIssueResolution], List[UnknownDeviceResolution]]:
    if path is None:
        return [], []
    data = _read_json(path)
    return (
        [ExpectedIssueResolution.from_dict(item) for item in data.get("expected_issues", [])],
        [UnknownDeviceResolution.from_dict(item) for item in data.get("unknown_devices", [])],
    )


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────


def _run_generate(args: argparse.Namespace) -> int:
    title = args.title or args.template.stem
    output_name = args.output_name or default_output_name(title)
    config, _ = load_config(args.config, args.template, output_name)
    questions = [Question.from_stored(record) for record in _read_json(args.questions)]
    roster = _load_roster(args.roster)
    session = SessionInfo(title=title, date=args.date) if args.title else None

    result = generate_presentation(config, questions, session=session, roster=roster)

    delivery_path = write_delivery_archive(args.out, result.output_name, result.delivery_bytes)
    _write_json(
        args.out / MAPPINGS_FILE,
        {
            "schema_version": MAPPINGS_SCHEMA_VERSION,
            "question_mappings": [m.to_dict() for m in result.mappings],
            "ignored_slide_guids": list(result.ignored_slide_guids),
        },
    )
    print(f"Generated {len(result.mappings)} question slide(s): {delivery_path}")
    for warning in result.warnings:
        print(f"  warning: {warning}")
    return EXIT_OK


def _print_anomalies(pending: PendingImport) -> None:
    anomalies = pending.anomalies
    print(
        f"Anomalies: {len(anomalies.expected_issues)} roster device(s) with missing answers, "
        f"{len(anomalies.unknown_devices)} unregistered device(s)"
    )
    for issue in anomalies.expected_issues:
        print(
            f"  expected {issue.device_id} ({issue.participant_name}): "
            f"{len(issue.missing_guids)}/{issue.total_expected} missing"
        )
    for device in anomalies.unknown_devices:
        print(f"  unknown {device.device_id}: {len(device.responses)} response(s)")


def _run_import(args: argparse.Namespace) -> int:
    mappings, ignored = _load_mappings(args.mappings)
    roster = _load_roster(args.roster)
    expected, unknown = _load_resolutions(args.resolutions)
    _, scoring = load_config(args.config, Path("."))

    pending = prepare_import(args.archive.read_bytes(), args.session_id, mappings, roster, ignored)
    if pending.needs_resolution:
        _print_anomalies(pending)
        if args.resolutions is None:
            print("Resolutions required: rerun with --resolutions FILE")
            return EXIT_NEEDS_RESOLUTION

    try:
        result = finalize_import(pending, expected, unknown, scoring)
    except ResolutionValidationError as e:
        for message in e.errors:
            print(f"  unresolved: {message}")
        return EXIT_NEEDS_RESOLUTION

    output = args.output or args.archive.with_name(RESULTS_FILE)
    _write_json(output, result.to_dict())
    passed = sum(1 for o in result.outcomes if o.passed)
    print(
        f"Imported {len(result.results)} result(s) for session {args.session_id}, "
        f"{passed}/{len(result.outcomes)} participant(s) passed -> {output}"
    )
    if result.dropped:
        print(f"  {result.dropped} response row(s) dropped")
    return EXIT_OK


# ─────────────────────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ombea-toolkit",
        description="Generate OMBEA polling presentations and import their results",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Build the presentation and delivery archive")
    gen.add_argument("--template", type=Path, required=True, help="Template .pptx")
    gen.add_argument("--questions", type=Path, required=True, help="Question bank records (JSON list)")
    gen.add_argument("--roster", type=Path, help="Participants (JSON list)")
    gen.add_argument("--out", type=Path, required=True, help="Output directory")
    gen.add_argument("--config", type=Path, help="Deployment configuration (JSON)")
    gen.add_argument("--title", help="Session title; adds the title slide")
    gen.add_argument("--date", help="Session date shown on the title slide")
    gen.add_argument("--output-name", help="Presentation file name inside the archive")
    gen.set_defaults(handler=_run_generate)

    imp = sub.add_parser("import", help="Import a returned results archive")
    imp.add_argument("--archive", type=Path, required=True, help="Returned delivery archive")
    imp.add_argument("--mappings", type=Path, required=True, help="mappings.json from generate")
    imp.add_argument("--roster", type=Path, help="Participants (JSON list)")
    imp.add_argument("--session-id", type=int, required=True, help="Session identifier")
    imp.add_argument("--resolutions", type=Path, help="Anomaly decisions (JSON)")
    imp.add_argument("--config", type=Path, help="Deployment configuration (JSON)")
    imp.add_argument("--output", type=Path, help=f"Results file (default: {RESULTS_FILE} beside the archive)")
    imp.set_defaults(handler=_run_import)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        return args.handler(args)
    except (GenerationError, ResultsFormatError, UnmappedGuidError, ValidationError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
        logger.debug("Input error", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
