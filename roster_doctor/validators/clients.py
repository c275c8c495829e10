from __future__ import annotations

import json
from collections.abc import Sequence

from roster_doctor.findings import row_finding
from roster_doctor.models import Client, Finding, Task
from roster_doctor.validators.common import IdAllocator, identity_findings, priority_finding

ENTITY = "clients"


def _reject_constant(name: str) -> None:
    raise ValueError(f"{name} is not valid JSON")


def attributes_parse(value: object) -> bool:
    """True when AttributesJSON is absent, already a mapping, or strict JSON text."""
    if not isinstance(value, str) or value == "":
        return True
    try:
        json.loads(value, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        return False
    return True


def validate_clients(
    clients: Sequence[Client],
    tasks: Sequence[Task],
) -> list[Finding]:
    findings: list[Finding] = []
    seen: set[str] = set()
    allocator = IdAllocator(ENTITY, (client.id for client in clients))
    task_ids = {task.id for task in tasks}

    for row, client in enumerate(clients):
        findings.extend(identity_findings(client, row, ENTITY, seen, allocator))

        priority = priority_finding(client, row, ENTITY)
        if priority is not None:
            findings.append(priority)

        invalid_refs = [task_id for task_id in client.requested_task_ids or [] if task_id not in task_ids]
        if invalid_refs:
            findings.append(
                row_finding(
                    "client_invalid_task_refs",
                    entity=ENTITY,
                    row=row,
                    message=f"Invalid task references: {', '.join(invalid_refs)}",
                )
            )

        if not attributes_parse(client.attributes_json):
            findings.append(
                row_finding(
                    "client_malformed_json",
                    entity=ENTITY,
                    row=row,
                    message="Malformed JSON in AttributesJSON",
                    suggested_fix="{}",
                )
            )

    return findings
