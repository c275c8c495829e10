"""Versioned contracts for the JSON documents roster-doctor writes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

CONTRACT_VERSIONS = {
    "roster_doctor.validate": "1.0.0",
    "roster_doctor.fix_summary": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    return {"name": name, "version": CONTRACT_VERSIONS[name]}


def build_run_summary(
    *,
    script: str,
    inputs: dict[str, str | None],
    status: str = "ok",
    outputs: dict[str, str] | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": "roster-doctor",
        "script": script,
        "status": status,
        "generated_at": utc_now_iso(),
        "inputs": dict(inputs),
        "outputs": dict(outputs or {}),
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }
