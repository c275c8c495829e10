from __future__ import annotations

from collections.abc import Sequence

from roster_doctor.findings import row_finding
from roster_doctor.models import Finding, Task, Worker
from roster_doctor.validators.common import IdAllocator, identity_findings, join_values, split_phases

ENTITY = "workers"


def required_skill_union(tasks: Sequence[Task]) -> set[str]:
    return {skill for task in tasks for skill in task.required_skills or [] if skill}


def covers_any(skills: Sequence[str], required: set[str]) -> bool:
    # Case-insensitive containment, so "Senior Python" covers "python".
    lowered = [skill.lower() for skill in skills if skill]
    return any(need.lower() in skill for need in required for skill in lowered)


def validate_workers(
    workers: Sequence[Worker],
    tasks: Sequence[Task],
) -> list[Finding]:
    findings: list[Finding] = []
    seen: set[str] = set()
    allocator = IdAllocator(ENTITY, (worker.id for worker in workers))
    required = required_skill_union(tasks)

    for row, worker in enumerate(workers):
        findings.extend(identity_findings(worker, row, ENTITY, seen, allocator))

        valid_slots, invalid_slots = split_phases(worker.available_slots)
        if invalid_slots:
            findings.append(
                row_finding(
                    "worker_invalid_slots",
                    entity=ENTITY,
                    row=row,
                    message=f"Invalid phase numbers in AvailableSlots: {join_values(invalid_slots)}",
                    suggested_fix=join_values(valid_slots),
                )
            )

        max_load = worker.max_load_per_phase
        if max_load is not None and not isinstance(max_load, bool) and len(valid_slots) < max_load:
            findings.append(
                row_finding(
                    "worker_overloaded",
                    entity=ENTITY,
                    row=row,
                    message=(
                        f"AvailableSlots.length ({len(valid_slots)}) < MaxLoadPerPhase ({join_values([max_load])})"
                    ),
                    suggested_fix=str(len(valid_slots)),
                )
            )

        if worker.skills and required and not covers_any(worker.skills, required):
            findings.append(
                row_finding(
                    "worker_no_skill_coverage",
                    entity=ENTITY,
                    row=row,
                    message="Worker has no skills matching any required tasks",
                )
            )

    return findings
