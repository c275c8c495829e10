from __future__ import annotations

from collections.abc import Sequence

from roster_doctor.findings import row_finding
from roster_doctor.graph import dependency_edges, find_cycle, format_cycle
from roster_doctor.models import Client, Finding, Task, Worker
from roster_doctor.schema import field_spec
from roster_doctor.validators.common import (
    IdAllocator,
    below_minimum,
    identity_findings,
    is_missing,
    join_values,
    priority_finding,
    split_phases,
)

ENTITY = "tasks"


def available_skill_union(workers: Sequence[Worker]) -> set[str]:
    return {skill for worker in workers for skill in worker.skills or [] if skill}


def validate_tasks(
    tasks: Sequence[Task],
    clients: Sequence[Client],
    workers: Sequence[Worker],
) -> list[Finding]:
    findings: list[Finding] = []
    seen: set[str] = set()
    allocator = IdAllocator(ENTITY, (task.id for task in tasks))
    client_ids = {client.id for client in clients}
    available_skills = available_skill_union(workers)
    edges_of = dependency_edges(tasks)
    duration_floor = field_spec(ENTITY, "duration").minimum
    concurrency_floor = field_spec(ENTITY, "max_concurrent").minimum

    for row, task in enumerate(tasks):
        findings.extend(identity_findings(task, row, ENTITY, seen, allocator))

        if is_missing(task.client_id):
            findings.append(
                row_finding(
                    "task_invalid_client",
                    entity=ENTITY,
                    row=row,
                    message="Missing client reference: ClientID is blank",
                )
            )
        elif task.client_id not in client_ids:
            findings.append(
                row_finding(
                    "task_invalid_client",
                    entity=ENTITY,
                    row=row,
                    message=f"Invalid client reference: {task.client_id}",
                )
            )

        if below_minimum(task.duration, duration_floor):
            findings.append(
                row_finding(
                    "task_invalid_duration",
                    entity=ENTITY,
                    row=row,
                    message=f"Duration must be >= {join_values([duration_floor])} phase (got {join_values([task.duration])})",
                    suggested_fix=join_values([duration_floor]),
                )
            )

        missing_skills = [skill for skill in task.required_skills or [] if skill not in available_skills]
        if missing_skills:
            findings.append(
                row_finding(
                    "task_unavailable_skills",
                    entity=ENTITY,
                    row=row,
                    message=f"Skills not available in worker pool: {', '.join(missing_skills)}",
                )
            )

        priority = priority_finding(task, row, ENTITY)
        if priority is not None:
            findings.append(priority)

        valid_phases, invalid_phases = split_phases(task.preferred_phases)
        if invalid_phases:
            findings.append(
                row_finding(
                    "task_invalid_phases",
                    entity=ENTITY,
                    row=row,
                    message=f"Invalid phase numbers in PreferredPhases: {join_values(invalid_phases)}",
                    suggested_fix=join_values(valid_phases),
                )
            )

        if below_minimum(task.max_concurrent, concurrency_floor):
            findings.append(
                row_finding(
                    "task_invalid_concurrent",
                    entity=ENTITY,
                    row=row,
                    message=f"MaxConcurrent must be >= {join_values([concurrency_floor])} (got {join_values([task.max_concurrent])})",
                    suggested_fix=join_values([concurrency_floor]),
                )
            )

        if task.dependencies and not is_missing(task.id):
            cycle = find_cycle(task.id, edges_of)
            if cycle is not None:
                findings.append(
                    row_finding(
                        "task_circular_dependency",
                        entity=ENTITY,
                        row=row,
                        message=f"Circular dependency detected: {format_cycle(cycle)}",
                    )
                )

    return findings
