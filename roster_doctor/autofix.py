"""
Apply auto-fixable findings to a dataset.

The engine only proposes fixes; this module is the "one-click apply" side.
Each fix is coerced through the field schema, written into a copy of the
dataset and logged as a Change. The input dataset is never touched.
"""

from __future__ import annotations

import copy
from dataclasses import asdict, dataclass
from typing import Any, Iterable

from roster_doctor.config import ValidationConfig
from roster_doctor.engine import validate_dataset
from roster_doctor.models import ENTITIES, Dataset, Finding
from roster_doctor.schema import coerce_value, field_spec, render_value

MAX_FIX_PASSES = 3


@dataclass
class Change:
    entity: str
    row: int
    column: str
    old_value: str
    new_value: str
    finding_code: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def fixable(finding: Finding) -> bool:
    return (
        finding.auto_fixable
        and finding.suggested_fix is not None
        and finding.row is not None
        and finding.column is not None
        and finding.entity in ENTITIES
    )


def apply_fixes(dataset: Dataset, findings: Iterable[Finding]) -> dict[str, Any]:
    fixed = copy.deepcopy(dataset)
    changes: list[Change] = []
    warnings: list[str] = []

    for finding in findings:
        if not fixable(finding):
            continue
        records = fixed.collection(finding.entity)
        if not 0 <= finding.row < len(records):
            warnings.append(f"{finding.id}: row {finding.row} is out of range for {finding.entity}")
            continue
        try:
            spec = field_spec(finding.entity, finding.column)
        except KeyError as exc:
            warnings.append(f"{finding.id}: {exc.args[0]}")
            continue
        value, problems = coerce_value(spec, finding.suggested_fix)
        if problems:
            warnings.append(f"{finding.id}: suggested fix not applied ({'; '.join(problems)})")
            continue

        record = records[finding.row]
        old_value = getattr(record, spec.name)
        setattr(record, spec.name, value)
        changes.append(
            Change(
                entity=finding.entity,
                row=finding.row,
                column=spec.name,
                old_value=render_value(spec, old_value),
                new_value=render_value(spec, value),
                finding_code=finding.code,
                reason=finding.message,
            )
        )

    return {"dataset": fixed, "changes": changes, "warnings": warnings}


def fix_until_stable(
    dataset: Dataset,
    config: ValidationConfig | None = None,
    max_passes: int = MAX_FIX_PASSES,
) -> dict[str, Any]:
    """
    Alternate validation and fixing until nothing auto-fixable is left.

    One pass normally suffices; a second catches findings that only appear
    once an earlier fix has landed (e.g. a slot list shrinking below
    MaxLoadPerPhase).
    """
    current = dataset
    changes: list[Change] = []
    warnings: list[str] = []
    passes = 0
    findings = validate_dataset(current, config)

    while passes < max_passes and any(fixable(finding) for finding in findings):
        result = apply_fixes(current, findings)
        passes += 1
        current = result["dataset"]
        changes.extend(result["changes"])
        warnings.extend(result["warnings"])
        findings = validate_dataset(current, config)
        if not result["changes"]:
            break

    return {
        "dataset": current,
        "changes": changes,
        "warnings": warnings,
        "passes": passes,
        "findings": findings,
    }
