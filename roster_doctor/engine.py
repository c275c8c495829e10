"""
Public validation entry point.

`validate_all` is a pure function of its inputs: it reads the four
collections, never mutates them, keeps no state between calls and always
returns findings in the same order (clients, workers, tasks, relationships,
rule conflicts). Sub-validators are not deduplicated against each other, so
one underlying problem may surface from two angles.
"""

from __future__ import annotations

from collections.abc import Sequence

from roster_doctor.config import DEFAULT_CONFIG, ValidationConfig
from roster_doctor.models import Client, Dataset, Finding, Rule, Task, Worker
from roster_doctor.validators import (
    validate_clients,
    validate_relationships,
    validate_rule_conflicts,
    validate_tasks,
    validate_workers,
)


def validate_all(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    rules: Sequence[Rule],
    config: ValidationConfig | None = None,
) -> list[Finding]:
    config = config or DEFAULT_CONFIG
    return [
        *validate_clients(clients, tasks),
        *validate_workers(workers, tasks),
        *validate_tasks(tasks, clients, workers),
        *validate_relationships(clients, workers, tasks, config),
        *validate_rule_conflicts(rules, config),
    ]


def validate_dataset(dataset: Dataset, config: ValidationConfig | None = None) -> list[Finding]:
    return validate_all(dataset.clients, dataset.workers, dataset.tasks, dataset.rules, config)
