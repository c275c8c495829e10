from __future__ import annotations

import argparse
import json
import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import requests

from roster_doctor import __version__ as TOOL_VERSION
from roster_doctor.autofix import fix_until_stable
from roster_doctor.config import load_config, starter_config_text
from roster_doctor.engine import validate_dataset
from roster_doctor.findings import FINDING_DEFINITIONS, summarize
from roster_doctor.loader import load_dataset
from roster_doctor.remote import fetch_input, is_remote
from roster_doctor.report import build_fix_summary, build_report, render_fix_text, render_text_report
from roster_doctor.samples import messy_sample_dataset, sample_dataset
from roster_doctor.writer import OUTPUT_FORMATS, output_paths, write_dataset

INPUT_NAMES = ("clients", "workers", "tasks", "rules")

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_FINDINGS = 3
EXIT_FIX_INCOMPLETE = 4
EXIT_VALIDATE_FAILED = 5

STAMP_ENV = "ROSTER_DOCTOR_OUTPUT_STAMP"


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class RosterDoctorArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def timestamp_token() -> str:
    override = os.environ.get(STAMP_ENV)
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(command: str) -> Path:
    return Path.cwd() / "roster-doctor-output" / f"{command}-{timestamp_token()}"


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload) + "\n")


def remove_generated_at(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: "1970-01-01T00:00:00Z" if key == "generated_at" else remove_generated_at(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [remove_generated_at(item) for item in value]
    return value


def normalize_report_for_cli(payload: Any) -> Any:
    # A pinned output stamp means the caller wants byte-stable documents.
    if os.environ.get(STAMP_ENV):
        return remove_generated_at(payload)
    return payload


def refuse_existing(paths: list[Path]) -> None:
    for path in paths:
        if path.exists():
            raise CliError(f"Refusing to overwrite existing output: {path}", EXIT_COMMAND_ERROR)


def classify_backend_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, requests.RequestException):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (UnicodeDecodeError, ValueError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def findings_exit_code(summary: dict[str, Any]) -> int:
    if summary["error_count"]:
        return EXIT_VALIDATE_FAILED
    if summary["finding_count"]:
        return EXIT_FINDINGS
    return EXIT_SUCCESS


def collect_inputs(args: argparse.Namespace) -> dict[str, str | None]:
    inputs = {name: getattr(args, name, None) for name in INPUT_NAMES}
    if not any(inputs[name] for name in ("clients", "workers", "tasks")):
        raise CliError("Provide at least one of --clients, --workers or --tasks.", EXIT_COMMAND_ERROR)
    return inputs


def resolve_inputs(inputs: dict[str, str | None], folder: Path, *, quiet: bool) -> dict[str, str | None]:
    """Download http(s) inputs into folder; local paths pass through untouched."""
    resolved: dict[str, str | None] = {}
    for name, source in inputs.items():
        if source and is_remote(source):
            fetched = fetch_input(name, source, folder)
            emit_human(f"Fetched {name}: {fetched['url']}", quiet=quiet)
            resolved[name] = str(fetched["path"])
        else:
            resolved[name] = source
    return resolved


def load_inputs(args: argparse.Namespace, folder: Path) -> dict[str, Any]:
    inputs = collect_inputs(args)
    resolved = resolve_inputs(inputs, folder, quiet=args.quiet)
    loaded = load_dataset(
        clients=resolved["clients"],
        workers=resolved["workers"],
        tasks=resolved["tasks"],
        rules=resolved["rules"],
        sheet_name=args.sheet_name,
    )
    loaded["inputs"] = inputs
    if args.verbose:
        for warning in loaded["warnings"]:
            emit_human(f"warning: {warning}", quiet=args.quiet)
    return loaded


def run_validate(args: argparse.Namespace) -> int:
    try:
        config = load_config(Path(args.config) if args.config else None)
        with tempfile.TemporaryDirectory(prefix="roster-doctor-") as tmp:
            loaded = load_inputs(args, Path(tmp))
        dataset = loaded["dataset"]
        findings = validate_dataset(dataset, config)
        report = build_report(dataset, findings, loaded["inputs"], config=config, warnings=loaded["warnings"])
        report = normalize_report_for_cli(report)

        if args.output or args.out_dir:
            out_dir = Path(args.out_dir) if args.out_dir else default_output_dir("validate")
            report_path = Path(args.output) if args.output else out_dir / "report.json"
            refuse_existing([report_path])
            write_json(report_path, report)
            emit_human(f"Validation report: {report_path}", quiet=args.quiet)

        if args.json:
            maybe_emit_json_stdout(report, True)
        else:
            emit_human(render_text_report(report, verbose=args.verbose).rstrip(), quiet=args.quiet)
        return findings_exit_code(report["summary"])
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_fix(args: argparse.Namespace) -> int:
    try:
        config = load_config(Path(args.config) if args.config else None)
        with tempfile.TemporaryDirectory(prefix="roster-doctor-") as tmp:
            loaded = load_inputs(args, Path(tmp))
        dataset = loaded["dataset"]
        before = validate_dataset(dataset, config)
        result = fix_until_stable(dataset, config)

        out_dir = Path(args.out_dir) if args.out_dir else default_output_dir("fix")
        summary_path = Path(args.json_summary) if args.json_summary else out_dir / "fix-summary.json"
        outputs: dict[str, str] = {}
        if not args.dry_run:
            planned = output_paths(out_dir, args.format)
            refuse_existing([*planned.values(), summary_path])
            outputs = write_dataset(result["dataset"], out_dir, args.format)
            outputs["summary"] = str(summary_path)

        summary = build_fix_summary(
            before,
            result["findings"],
            result["changes"],
            loaded["inputs"],
            passes=result["passes"],
            outputs=outputs,
            warnings=[*loaded["warnings"], *result["warnings"]],
            dry_run=args.dry_run,
        )
        summary = normalize_report_for_cli(summary)
        if not args.dry_run:
            write_json(summary_path, summary)

        if args.json:
            maybe_emit_json_stdout(summary, True)
        else:
            emit_human(render_fix_text(summary).rstrip(), quiet=args.quiet)
            if not args.dry_run:
                emit_human(f"Cleaned files: {out_dir}", quiet=args.quiet)
                emit_human(f"Fix summary: {summary_path}", quiet=args.quiet)
        return EXIT_FIX_INCOMPLETE if result["findings"] else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_sample(args: argparse.Namespace) -> int:
    try:
        out_dir = Path(args.out_dir)
        refuse_existing(list(output_paths(out_dir, args.format).values()))
        dataset = messy_sample_dataset() if args.messy else sample_dataset()
        outputs = write_dataset(dataset, out_dir, args.format)
        summary = summarize(validate_dataset(dataset))
        emit_human(
            f"Wrote {'messy ' if args.messy else ''}sample dataset to {out_dir} "
            f"({summary['finding_count']} findings, verdict {summary['verdict']})",
            quiet=args.quiet,
        )
        for name, path in outputs.items():
            emit_human(f"- {name}: {path}", quiet=args.quiet)
        return EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_text(config_path, starter_config_text())
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_explain(args: argparse.Namespace) -> int:
    definition = FINDING_DEFINITIONS.get(args.code)
    if definition is None:
        eprint(f"Unknown finding code: {args.code}")
        return EXIT_COMMAND_ERROR
    payload = {
        "code": args.code,
        "type": definition["type"],
        "severity": definition["severity"],
        "field": definition["field"],
        "description": definition["description"],
        "evidence": definition["evidence"],
        "auto_fixable": definition["auto_fixable"],
    }
    if args.json:
        maybe_emit_json_stdout(payload, True)
    else:
        print(
            "\n".join(
                [
                    f"Code: {args.code}",
                    f"Type: {payload['type']} ({payload['severity']})",
                    f"Field: {payload['field']} (findings and reports use snake_case field names)",
                    f"What it means: {payload['description']}",
                    f"What triggers it: {payload['evidence']}",
                    f"Auto-fixable: {'yes' if payload['auto_fixable'] else 'no'}",
                ]
            )
        )
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--clients", help="Clients table (.csv/.tsv/.txt/.xlsx/.xlsm) or public URL")
    parser.add_argument("--workers", help="Workers table or public URL")
    parser.add_argument("--tasks", help="Tasks table or public URL")
    parser.add_argument("--rules", help="Rules JSON file or public URL")
    parser.add_argument("--config", help="Validation config (.json)")
    parser.add_argument("--sheet", dest="sheet_name", help="Workbook sheet name to read from .xlsx inputs")
    parser.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    parser.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="List every finding and load warning")


def build_parser() -> argparse.ArgumentParser:
    parser = RosterDoctorArgumentParser(
        prog="roster-doctor",
        description="Validate and clean client, worker and task allocation spreadsheets.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Validate the tables and rules; report findings.")
    add_input_arguments(validate)
    validate.add_argument("--output", help="Explicit report output path")

    fix = subparsers.add_parser("fix", help="Apply auto-fixable findings and write cleaned tables.")
    add_input_arguments(fix)
    fix.add_argument("--format", choices=OUTPUT_FORMATS, default="csv", help="Output format for cleaned tables")
    fix.add_argument("--json-summary", dest="json_summary", help="Explicit fix summary output path")
    fix.add_argument("--dry-run", action="store_true", help="Compute fixes without writing outputs")

    sample = subparsers.add_parser("sample", help="Write a sample dataset.")
    sample.add_argument("--out", dest="out_dir", required=True, help="Output directory")
    sample.add_argument("--messy", action="store_true", help="Include rows that trigger every finding code")
    sample.add_argument("--format", choices=OUTPUT_FORMATS, default="csv", help="Table format")
    sample.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    config = subparsers.add_parser("config", help="Generate configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default="roster-doctor.json", help="Config output path")

    explain = subparsers.add_parser("explain", help="Explain a finding code.")
    explain.add_argument("code", help="Finding code, e.g. task_circular_dependency")
    explain.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    subparsers.add_parser("version", help="Print version")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "validate":
            return run_validate(args)
        if args.command == "fix":
            return run_fix(args)
        if args.command == "sample":
            return run_sample(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "explain":
            return run_explain(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
