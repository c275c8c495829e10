from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from roster_doctor.config import DEFAULT_CONFIG, ValidationConfig
from roster_doctor.findings import build_finding
from roster_doctor.graph import find_cycle, format_cycle, ordered_group_edges
from roster_doctor.models import Finding, Rule, RuleType

ENTITY = "rules"


def active_rules(rules: Sequence[Rule], rule_type: RuleType) -> list[tuple[int, Rule]]:
    return [(index, rule) for index, rule in enumerate(rules) if rule.type == rule_type and rule.active]


def shared_tasks(first: Rule, second: Rule) -> list[str]:
    other = set(second.tasks or [])
    return list(dict.fromkeys(task for task in first.tasks or [] if task in other))


def corun_exclusion_findings(rules: Sequence[Rule], min_shared: int) -> list[Finding]:
    findings: list[Finding] = []
    exclusions = active_rules(rules, RuleType.EXCLUSION)
    for corun_index, corun in active_rules(rules, RuleType.CO_RUN):
        for exclusion_index, exclusion in exclusions:
            conflicting = shared_tasks(corun, exclusion)
            if len(conflicting) < min_shared:
                continue
            findings.append(
                build_finding(
                    "rule_corun_exclusion_conflict",
                    finding_id=f"rule-conflict-{corun_index}-{exclusion_index}",
                    entity=ENTITY,
                    row=corun_index,
                    message=(
                        f"Conflicting rules: co-run '{corun.id}' and exclusion '{exclusion.id}' "
                        f"for tasks {', '.join(conflicting)}"
                    ),
                )
            )
    return findings


def phase_window_exclusion_findings(rules: Sequence[Rule]) -> list[Finding]:
    findings: list[Finding] = []
    exclusions = active_rules(rules, RuleType.EXCLUSION)
    for window_index, window in active_rules(rules, RuleType.PHASE_WINDOW):
        for exclusion_index, exclusion in exclusions:
            overlapping = shared_tasks(window, exclusion)
            if not overlapping:
                continue
            findings.append(
                build_finding(
                    "rule_phase_window_exclusion",
                    finding_id=f"rule-window-{window_index}-{exclusion_index}",
                    entity=ENTITY,
                    row=window_index,
                    message=(
                        f"Conflicting rules: phase-window '{window.id}' and exclusion '{exclusion.id}' "
                        f"for tasks {', '.join(overlapping)}"
                    ),
                )
            )
    return findings


def duplicate_precedence_findings(rules: Sequence[Rule]) -> list[Finding]:
    priorities = [
        rule.priority
        for _, rule in active_rules(rules, RuleType.PRECEDENCE_OVERRIDE)
        if rule.priority is not None
    ]
    repeated = [value for value, count in Counter(priorities).items() if count > 1]
    if not repeated:
        return []
    return [
        build_finding(
            "rule_duplicate_precedence",
            finding_id="precedence-duplicate-priorities",
            entity=ENTITY,
            message=f"Duplicate precedence priorities: {', '.join(str(value) for value in repeated)}",
        )
    ]


def corun_cycle_findings(rules: Sequence[Rule]) -> list[Finding]:
    coruns = active_rules(rules, RuleType.CO_RUN)
    edges_of = ordered_group_edges(rule.tasks or [] for _, rule in coruns)
    findings: list[Finding] = []
    for index, rule in coruns:
        members = list(dict.fromkeys(rule.tasks or []))
        if len(members) < 2:
            continue
        cycle = next((found for found in (find_cycle(task, edges_of) for task in members) if found), None)
        if cycle is None:
            continue
        findings.append(
            build_finding(
                "rule_corun_cycle",
                finding_id=f"corun-cycle-{index}",
                entity=ENTITY,
                row=index,
                message=f"Circular co-run group detected from '{rule.id}': {format_cycle(cycle)}",
            )
        )
    return findings


def validate_rule_conflicts(
    rules: Sequence[Rule],
    config: ValidationConfig = DEFAULT_CONFIG,
) -> list[Finding]:
    findings = corun_exclusion_findings(rules, config.corun_conflict_min_shared)
    findings.extend(phase_window_exclusion_findings(rules))
    findings.extend(duplicate_precedence_findings(rules))
    if config.check_corun_cycles:
        findings.extend(corun_cycle_findings(rules))
    return findings
