"""
Checks that span the client, worker and task tables.

Everything here is advisory: an orphaned group tag or an overloaded phase
does not make the data structurally invalid, so only warnings are produced.
"""

from __future__ import annotations

from collections.abc import Sequence

from roster_doctor.config import DEFAULT_CONFIG, ValidationConfig
from roster_doctor.findings import build_finding, row_finding
from roster_doctor.models import Client, Finding, Task, Worker
from roster_doctor.schema import format_number
from roster_doctor.validators.common import is_missing


def phase_capacity(workers: Sequence[Worker], default_load: int = 1) -> dict:
    capacity: dict = {}
    for worker in workers:
        load = worker.max_load_per_phase if worker.max_load_per_phase is not None else default_load
        for phase in worker.available_slots or []:
            capacity[phase] = capacity.get(phase, 0) + load
    return capacity


def phase_demand(tasks: Sequence[Task]) -> dict:
    demand: dict = {}
    for task in tasks:
        duration = task.duration or 0
        for phase in task.preferred_phases or []:
            demand[phase] = demand.get(phase, 0) + duration
    return demand


def orphaned_group_findings(clients: Sequence[Client], tasks: Sequence[Task]) -> list[Finding]:
    referenced = {task.client_id for task in tasks if not is_missing(task.client_id)}
    findings: list[Finding] = []
    for row, client in enumerate(clients):
        if is_missing(client.group_tag):
            continue
        if client.id in referenced:
            continue
        findings.append(
            row_finding(
                "group_orphaned",
                entity="clients",
                row=row,
                message=f'Client group "{client.group_tag}" has no associated tasks',
            )
        )
    return findings


def phase_overload_findings(
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    default_load: int = 1,
) -> list[Finding]:
    capacity = phase_capacity(workers, default_load)
    findings: list[Finding] = []
    # Demand keys keep first-seen order, which keeps the output deterministic.
    for phase, demand in phase_demand(tasks).items():
        available = capacity.get(phase, 0)
        if demand <= available:
            continue
        label = format_number(phase)
        findings.append(
            build_finding(
                "phase_overload",
                finding_id=f"phase-{label}-overload",
                entity="phases",
                message=(
                    f"Phase {label} overloaded: {format_number(demand)}h demand "
                    f"vs {format_number(available)}h capacity"
                ),
            )
        )
    return findings


def validate_relationships(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    config: ValidationConfig = DEFAULT_CONFIG,
) -> list[Finding]:
    return [
        *orphaned_group_findings(clients, tasks),
        *phase_overload_findings(workers, tasks, config.default_max_load_per_phase),
    ]
