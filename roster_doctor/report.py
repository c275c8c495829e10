"""JSON and plain-text reports for validation and fix runs."""

from __future__ import annotations

from typing import Any, Iterable

from roster_doctor import __version__ as TOOL_VERSION
from roster_doctor.autofix import Change
from roster_doctor.config import DEFAULT_CONFIG, ValidationConfig
from roster_doctor.contracts import build_contract, build_run_summary
from roster_doctor.findings import summarize
from roster_doctor.models import Dataset, Finding

SCHEMA_VERSION = "1.0"
TEXT_PREVIEW_LIMIT = 20


def build_report(
    dataset: Dataset,
    findings: Iterable[Finding],
    inputs: dict[str, str | None],
    *,
    config: ValidationConfig | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    findings = list(findings)
    summary = summarize(findings)
    return {
        "contract": build_contract("roster_doctor.validate"),
        "schema_version": SCHEMA_VERSION,
        "tool_version": TOOL_VERSION,
        "summary": summary,
        "counts": dataset.counts(),
        "config": (config or DEFAULT_CONFIG).to_dict(),
        "findings": [finding.to_dict() for finding in findings],
        "run_summary": build_run_summary(
            script="validate",
            inputs=inputs,
            status="ok" if summary["verdict"] == "CLEAN" else "findings",
            metrics={
                **dataset.counts(),
                "finding_count": summary["finding_count"],
                "error_count": summary["error_count"],
                "warning_count": summary["warning_count"],
                "auto_fixable_count": summary["auto_fixable_count"],
            },
            warnings=warnings,
        ),
    }


def build_fix_summary(
    before: list[Finding],
    after: list[Finding],
    changes: list[Change],
    inputs: dict[str, str | None],
    *,
    passes: int,
    outputs: dict[str, str] | None = None,
    warnings: list[str] | None = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    before_summary = summarize(before)
    after_summary = summarize(after)
    changes_by_code: dict[str, int] = {}
    for change in changes:
        changes_by_code[change.finding_code] = changes_by_code.get(change.finding_code, 0) + 1
    return {
        "contract": build_contract("roster_doctor.fix_summary"),
        "schema_version": SCHEMA_VERSION,
        "tool_version": TOOL_VERSION,
        "dry_run": dry_run,
        "passes": passes,
        "changes_applied": len(changes),
        "changes_by_code": dict(sorted(changes_by_code.items())),
        "before": before_summary,
        "after": after_summary,
        "changes": [change.to_dict() for change in changes],
        "remaining_findings": [finding.to_dict() for finding in after],
        "run_summary": build_run_summary(
            script="fix",
            inputs=inputs,
            status="ok" if after_summary["verdict"] == "CLEAN" else "findings_remain",
            outputs=outputs,
            metrics={
                "changes_applied": len(changes),
                "findings_before": before_summary["finding_count"],
                "findings_after": after_summary["finding_count"],
            },
            warnings=warnings,
        ),
    }


def _finding_line(finding: dict[str, Any]) -> str:
    location = ""
    if finding.get("row") is not None:
        location = f" [{finding['entity']} row {finding['row']}]"
    fix = ""
    if finding.get("auto_fixable"):
        fix = f" (fix: {finding['suggested_fix']!r})"
    return f"- {finding['type'].upper()} {finding['code']}{location}: {finding['message']}{fix}"


def render_text_report(report: dict[str, Any], *, verbose: bool = False) -> str:
    summary = report.get("summary", {})
    counts = report.get("counts", {})
    lines = [
        "roster-doctor validate",
        f"Clients: {counts.get('clients', 0)}  Workers: {counts.get('workers', 0)}  "
        f"Tasks: {counts.get('tasks', 0)}  Rules: {counts.get('rules', 0)}",
        f"Verdict: {summary.get('verdict', '[unknown]')}",
        f"Findings: {summary.get('finding_count', 0)} "
        f"({summary.get('error_count', 0)} errors, {summary.get('warning_count', 0)} warnings)",
        f"Auto-fixable: {summary.get('auto_fixable_count', 0)}",
    ]
    by_code = summary.get("by_code", {})
    if by_code:
        lines.append("By code:")
        lines.extend(f"- {code}: {count}" for code, count in by_code.items())

    findings = report.get("findings", [])
    shown = findings if verbose else findings[:TEXT_PREVIEW_LIMIT]
    if shown:
        lines.append("Findings:")
        lines.extend(_finding_line(finding) for finding in shown)
    if len(shown) < len(findings):
        lines.append(f"... {len(findings) - len(shown)} more (use -v to list all)")

    warnings = report.get("run_summary", {}).get("warnings", [])
    if warnings:
        lines.append("Load warnings:")
        lines.extend(f"- {warning}" for warning in warnings)
    return "\n".join(lines) + "\n"


def render_fix_text(summary: dict[str, Any]) -> str:
    before = summary.get("before", {})
    after = summary.get("after", {})
    lines = [
        "roster-doctor fix",
        f"Dry run: {'yes' if summary.get('dry_run') else 'no'}",
        f"Passes: {summary.get('passes', 0)}",
        f"Changes applied: {summary.get('changes_applied', 0)}",
        f"Findings: {before.get('finding_count', 0)} -> {after.get('finding_count', 0)}",
        f"Verdict after fix: {after.get('verdict', '[unknown]')}",
    ]
    for code, count in summary.get("changes_by_code", {}).items():
        lines.append(f"- {code}: {count}")
    remaining = summary.get("remaining_findings", [])
    if remaining:
        lines.append("Needs manual review:")
        lines.extend(_finding_line(finding) for finding in remaining[:TEXT_PREVIEW_LIMIT])
        if len(remaining) > TEXT_PREVIEW_LIMIT:
            lines.append(f"... {len(remaining) - TEXT_PREVIEW_LIMIT} more in fix-summary.json")
    return "\n".join(lines) + "\n"
