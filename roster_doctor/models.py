"""Typed records for the allocation dataset and the findings produced over it."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Union

PhaseNumber = Union[int, float]

FINDING_TYPES = ("error", "warning", "info")
SEVERITIES = ("critical", "high", "medium", "low")
ENTITIES = ("clients", "workers", "tasks")


class RuleType(str, Enum):
    CO_RUN = "coRun"
    SEQUENCE = "sequence"
    EXCLUSION = "exclusion"
    SLOT_RESTRICTION = "slotRestriction"
    LOAD_LIMIT = "loadLimit"
    PHASE_WINDOW = "phaseWindow"
    PATTERN_MATCH = "patternMatch"
    PRECEDENCE_OVERRIDE = "precedenceOverride"

    @classmethod
    def parse(cls, raw: str) -> "RuleType":
        key = _rule_type_key(raw)
        for member in cls:
            if _rule_type_key(member.value) == key or _rule_type_key(member.name) == key:
                return member
        allowed = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown rule type '{raw}'. Expected one of: {allowed}")


def _rule_type_key(value: str) -> str:
    return "".join(ch for ch in str(value).lower() if ch.isalnum())


@dataclass
class Client:
    id: str
    name: str
    priority: int | None = 1
    budget: float | None = None
    requested_task_ids: list[str] = field(default_factory=list)
    group_tag: str | None = None
    attributes_json: str | dict[str, Any] | None = None
    phases: list[PhaseNumber] = field(default_factory=list)


@dataclass
class Worker:
    id: str
    name: str
    skills: list[str] = field(default_factory=list)
    capacity: float | None = 40.0
    available_slots: list[PhaseNumber] = field(default_factory=list)
    max_load_per_phase: int | None = 1
    worker_group: str | None = None
    qualification_level: int | None = None


@dataclass
class Task:
    id: str
    name: str
    client_id: str = ""
    duration: float | None = 1
    required_skills: list[str] = field(default_factory=list)
    priority: int | None = 1
    preferred_phases: list[PhaseNumber] = field(default_factory=list)
    max_concurrent: int | None = 1
    dependencies: list[str] = field(default_factory=list)
    category: str | None = None


@dataclass
class Rule:
    id: str
    type: RuleType
    name: str = ""
    tasks: list[str] = field(default_factory=list)
    workers: list[str] = field(default_factory=list)
    phases: list[PhaseNumber] = field(default_factory=list)
    weight: float = 1.0
    active: bool = True
    priority: int | None = None
    pattern: str | None = None
    description: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["type"] = self.type.value
        return payload


@dataclass
class Finding:
    id: str
    type: str
    field: str
    message: str
    code: str
    entity: str
    row: int | None = None
    column: str | None = None
    suggested_fix: str | None = None
    auto_fixable: bool = False
    severity: str | None = None

    @property
    def is_error(self) -> bool:
        return self.type == "error"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Dataset:
    clients: list[Client] = field(default_factory=list)
    workers: list[Worker] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    rules: list[Rule] = field(default_factory=list)

    def collection(self, entity: str) -> list:
        if entity not in ENTITIES:
            raise ValueError(f"Unknown entity collection: {entity}")
        return getattr(self, entity)

    def counts(self) -> dict[str, int]:
        return {
            "clients": len(self.clients),
            "workers": len(self.workers),
            "tasks": len(self.tasks),
            "rules": len(self.rules),
        }
