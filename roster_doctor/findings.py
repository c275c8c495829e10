"""
Shared finding taxonomy.

Type, severity and auto-fixability for every finding code live in one table
so the validators, the report and `roster-doctor explain` do not drift.

The `field` of a finding is the snake_case record attribute (`client_id`,
`max_load_per_phase`), not the spreadsheet header (`ClientID`) or a camelCase
key (`clientId`). Consumers of report.json key on these names.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Iterable

from roster_doctor.models import Finding

ROW_PREFIXES = {"clients": "client", "workers": "worker", "tasks": "task"}

FINDING_DEFINITIONS: dict[str, dict[str, Any]] = {
    "client_missing_id": {
        "type": "error", "severity": "critical", "auto_fixable": True, "field": "id", "slug": "missing-id",
        "description": "A client row has no ClientID.",
        "evidence": "The id cell is blank after normalization.",
    },
    "client_missing_name": {
        "type": "error", "severity": "critical", "auto_fixable": False, "field": "name", "slug": "missing-name",
        "description": "A client row has no name.",
        "evidence": "The name cell is blank after normalization; there is no safe default.",
    },
    "client_duplicate_id": {
        "type": "error", "severity": "high", "auto_fixable": True, "field": "id", "slug": "duplicate-id",
        "description": "The same ClientID appears on more than one row.",
        "evidence": "The id was already used by an earlier client row.",
    },
    "client_priority_range": {
        "type": "warning", "severity": "medium", "auto_fixable": True, "field": "priority", "slug": "priority-range",
        "description": "Client PriorityLevel is outside 1-5.",
        "evidence": "The priority value is below 1 or above 5; the fix clamps it.",
    },
    "client_invalid_task_refs": {
        "type": "error", "severity": "high", "auto_fixable": False, "field": "requested_task_ids", "slug": "invalid-task-refs",
        "description": "A client requests task ids that do not exist.",
        "evidence": "One or more RequestedTaskIDs are missing from the task table.",
    },
    "client_malformed_json": {
        "type": "error", "severity": "medium", "auto_fixable": True, "field": "attributes_json", "slug": "malformed-json",
        "description": "AttributesJSON is not valid JSON.",
        "evidence": "Parsing the attributes text as JSON failed; the fix replaces it with {}.",
    },
    "worker_missing_id": {
        "type": "error", "severity": "critical", "auto_fixable": True, "field": "id", "slug": "missing-id",
        "description": "A worker row has no WorkerID.",
        "evidence": "The id cell is blank after normalization.",
    },
    "worker_missing_name": {
        "type": "error", "severity": "critical", "auto_fixable": False, "field": "name", "slug": "missing-name",
        "description": "A worker row has no name.",
        "evidence": "The name cell is blank after normalization; there is no safe default.",
    },
    "worker_duplicate_id": {
        "type": "error", "severity": "high", "auto_fixable": True, "field": "id", "slug": "duplicate-id",
        "description": "The same WorkerID appears on more than one row.",
        "evidence": "The id was already used by an earlier worker row.",
    },
    "worker_invalid_slots": {
        "type": "warning", "severity": "medium", "auto_fixable": True, "field": "available_slots", "slug": "invalid-slots",
        "description": "AvailableSlots contains values that are not phases 1-10.",
        "evidence": "At least one slot is fractional or outside 1-10; the fix keeps the valid subset.",
    },
    "worker_overloaded": {
        "type": "warning", "severity": "medium", "auto_fixable": True, "field": "max_load_per_phase", "slug": "overloaded",
        "description": "MaxLoadPerPhase promises more than the worker's slot count supports.",
        "evidence": "The number of valid AvailableSlots is below MaxLoadPerPhase.",
    },
    "worker_no_skill_coverage": {
        "type": "warning", "severity": "low", "auto_fixable": False, "field": "skills", "slug": "no-skill-coverage",
        "description": "None of the worker's skills is required by any task.",
        "evidence": "No worker skill matches a RequiredSkills entry in the task table.",
    },
    "task_missing_id": {
        "type": "error", "severity": "critical", "auto_fixable": True, "field": "id", "slug": "missing-id",
        "description": "A task row has no TaskID.",
        "evidence": "The id cell is blank after normalization.",
    },
    "task_missing_name": {
        "type": "error", "severity": "critical", "auto_fixable": False, "field": "name", "slug": "missing-name",
        "description": "A task row has no name.",
        "evidence": "The name cell is blank after normalization; there is no safe default.",
    },
    "task_duplicate_id": {
        "type": "error", "severity": "high", "auto_fixable": True, "field": "id", "slug": "duplicate-id",
        "description": "The same TaskID appears on more than one row.",
        "evidence": "The id was already used by an earlier task row.",
    },
    "task_invalid_client": {
        "type": "error", "severity": "high", "auto_fixable": False, "field": "client_id", "slug": "invalid-client",
        "description": "A task has no ClientID or points at one that does not exist.",
        "evidence": "The client_id value is blank or missing from the client table.",
    },
    "task_invalid_duration": {
        "type": "warning", "severity": "medium", "auto_fixable": True, "field": "duration", "slug": "invalid-duration",
        "description": "Task Duration is below 1 phase.",
        "evidence": "Duration < 1; the fix sets it to 1.",
    },
    "task_unavailable_skills": {
        "type": "warning", "severity": "medium", "auto_fixable": False, "field": "required_skills", "slug": "unavailable-skills",
        "description": "A task requires skills no worker has.",
        "evidence": "RequiredSkills entries are missing from the union of worker skills.",
    },
    "task_priority_range": {
        "type": "warning", "severity": "medium", "auto_fixable": True, "field": "priority", "slug": "priority-range",
        "description": "Task PriorityLevel is outside 1-5.",
        "evidence": "The priority value is below 1 or above 5; the fix clamps it.",
    },
    "task_invalid_phases": {
        "type": "warning", "severity": "medium", "auto_fixable": True, "field": "preferred_phases", "slug": "invalid-phases",
        "description": "PreferredPhases contains values that are not phases 1-10.",
        "evidence": "At least one phase is fractional or outside 1-10; the fix keeps the valid subset.",
    },
    "task_invalid_concurrent": {
        "type": "warning", "severity": "low", "auto_fixable": True, "field": "max_concurrent", "slug": "invalid-concurrent",
        "description": "MaxConcurrent is below 1.",
        "evidence": "MaxConcurrent < 1; the fix sets it to 1.",
    },
    "task_circular_dependency": {
        "type": "error", "severity": "high", "auto_fixable": False, "field": "dependencies", "slug": "circular-deps",
        "description": "Task dependencies loop back on themselves.",
        "evidence": "Following dependencies from the task reaches a task already on the current path.",
    },
    "group_orphaned": {
        "type": "warning", "severity": "low", "auto_fixable": False, "field": "group_tag", "slug": "orphaned-group",
        "description": "A client carries a group tag but has no tasks.",
        "evidence": "No task row uses this client's id as its client_id.",
    },
    "phase_overload": {
        "type": "warning", "severity": "high", "auto_fixable": False, "field": "phases", "slug": "overload",
        "description": "Task demand in a phase exceeds worker capacity in that phase.",
        "evidence": "Summed task duration preferring the phase is above summed MaxLoadPerPhase of workers available in it.",
    },
    "rule_corun_exclusion_conflict": {
        "type": "error", "severity": "high", "auto_fixable": False, "field": "rules", "slug": "conflict",
        "description": "An active co-run rule and an active exclusion rule cover the same tasks.",
        "evidence": "The two rules share more tasks than the configured threshold allows.",
    },
    "rule_phase_window_exclusion": {
        "type": "warning", "severity": "medium", "auto_fixable": False, "field": "rules", "slug": "phase-window-exclusion",
        "description": "An active phase-window rule and an active exclusion rule name the same task.",
        "evidence": "At least one task appears in both rules, so its window and its exclusion may pull against each other.",
    },
    "rule_duplicate_precedence": {
        "type": "warning", "severity": "medium", "auto_fixable": False, "field": "rules", "slug": "duplicate-priorities",
        "description": "Active precedence-override rules reuse the same priority.",
        "evidence": "Two or more active precedenceOverride rules carry an identical priority value.",
    },
    "rule_corun_cycle": {
        "type": "error", "severity": "high", "auto_fixable": False, "field": "rules", "slug": "corun-cycle",
        "description": "Overlapping co-run groups loop through each other.",
        "evidence": "Following co-run groups in listed order returns to a task already on the path.",
    },
}


def definition(code: str) -> dict[str, Any]:
    try:
        return FINDING_DEFINITIONS[code]
    except KeyError:
        raise KeyError(f"Unknown finding code: {code}") from None


def build_finding(
    code: str,
    *,
    finding_id: str,
    entity: str,
    message: str,
    row: int | None = None,
    column: str | None = None,
    suggested_fix: str | None = None,
) -> Finding:
    spec = definition(code)
    return Finding(
        id=finding_id,
        type=spec["type"],
        field=spec["field"],
        message=message,
        code=code,
        entity=entity,
        row=row,
        column=column,
        suggested_fix=suggested_fix,
        auto_fixable=bool(spec["auto_fixable"] and suggested_fix is not None),
        severity=spec["severity"],
    )


def row_finding(
    code: str,
    *,
    entity: str,
    row: int,
    message: str,
    suggested_fix: str | None = None,
) -> Finding:
    """Finding anchored to one record; the column is the code's field."""
    spec = definition(code)
    return build_finding(
        code,
        finding_id=f"{ROW_PREFIXES[entity]}-{row}-{spec['slug']}",
        entity=entity,
        message=message,
        row=row,
        column=spec["field"],
        suggested_fix=suggested_fix,
    )


def summarize(findings: Iterable[Finding]) -> dict[str, Any]:
    findings = list(findings)
    by_type = Counter(finding.type for finding in findings)
    counts = {kind: by_type.get(kind, 0) for kind in ("error", "warning", "info")}
    if counts["error"]:
        verdict = "BLOCKED"
    elif counts["warning"]:
        verdict = "REVIEW"
    else:
        verdict = "CLEAN"
    return {
        "verdict": verdict,
        "finding_count": len(findings),
        "error_count": counts["error"],
        "warning_count": counts["warning"],
        "info_count": counts["info"],
        "auto_fixable_count": sum(1 for finding in findings if finding.auto_fixable),
        "by_severity": dict(sorted(Counter(finding.severity or "none" for finding in findings).items())),
        "by_code": dict(sorted(Counter(finding.code for finding in findings).items())),
        "by_entity": dict(sorted(Counter(finding.entity for finding in findings).items())),
    }
