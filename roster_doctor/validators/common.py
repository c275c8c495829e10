from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from roster_doctor.findings import row_finding
from roster_doctor.models import Finding
from roster_doctor.schema import ENTITY_LABELS, field_spec, format_number, is_valid_phase

ID_PREFIXES = {"clients": "client", "workers": "worker", "tasks": "task"}


def is_missing(value: object) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class IdAllocator:
    """
    Hands out replacement ids that collide with nothing.

    Seeded with every id already present in the collection; each suggestion is
    reserved as soon as it is made so two fixes from one run never clash.
    """

    def __init__(self, entity: str, existing: Iterable[str]) -> None:
        self.prefix = ID_PREFIXES[entity]
        self.taken = {value for value in existing if not is_missing(value)}

    def _reserve(self, candidate: str) -> str:
        self.taken.add(candidate)
        return candidate

    def fresh(self, row: int) -> str:
        counter = row + 1
        while f"{self.prefix}-{counter:03d}" in self.taken:
            counter += 1
        return self._reserve(f"{self.prefix}-{counter:03d}")

    def disambiguate(self, base: str, row: int) -> str:
        candidate = f"{base}-{row}"
        bump = 2
        while candidate in self.taken:
            candidate = f"{base}-{row}-{bump}"
            bump += 1
        return self._reserve(candidate)


def identity_findings(
    record: Any,
    row: int,
    entity: str,
    seen: set[str],
    allocator: IdAllocator,
) -> list[Finding]:
    """Missing id, missing name and duplicate id checks shared by every entity."""
    label = ENTITY_LABELS[entity]
    prefix = ID_PREFIXES[entity]
    findings: list[Finding] = []

    if is_missing(record.id):
        findings.append(
            row_finding(
                f"{prefix}_missing_id",
                entity=entity,
                row=row,
                message=f"Missing required field: {label}ID",
                suggested_fix=allocator.fresh(row),
            )
        )

    if is_missing(record.name):
        findings.append(
            row_finding(
                f"{prefix}_missing_name",
                entity=entity,
                row=row,
                message=f"Missing required field: {label}Name",
            )
        )

    if not is_missing(record.id):
        if record.id in seen:
            findings.append(
                row_finding(
                    f"{prefix}_duplicate_id",
                    entity=entity,
                    row=row,
                    message=f"Duplicate {label}ID: {record.id}",
                    suggested_fix=allocator.disambiguate(record.id, row),
                )
            )
        else:
            seen.add(record.id)

    return findings


def priority_finding(record: Any, row: int, entity: str) -> Finding | None:
    priority = record.priority
    if priority is None or isinstance(priority, bool):
        return None
    spec = field_spec(entity, "priority")
    if spec.in_domain(priority):
        return None
    return row_finding(
        f"{ID_PREFIXES[entity]}_priority_range",
        entity=entity,
        row=row,
        message=f"PriorityLevel {format_number(priority)} not in range {spec.minimum}-{spec.maximum}",
        suggested_fix=format_number(int(spec.clamp(round(priority)))),
    )


def split_phases(values: Sequence[Any] | None) -> tuple[list[Any], list[Any]]:
    """Return (valid, invalid) phase entries, preserving order."""
    valid: list[Any] = []
    invalid: list[Any] = []
    for value in values or []:
        (valid if is_valid_phase(value) else invalid).append(value)
    return valid, invalid


def join_values(values: Iterable[Any]) -> str:
    return ",".join(format_number(value) if isinstance(value, (int, float)) else str(value) for value in values)


def below_minimum(value: Any, minimum: float) -> bool:
    if value is None or isinstance(value, bool):
        return False
    return value < minimum
