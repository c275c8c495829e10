"""
Declarative field schema for clients, workers and tasks.

One table drives three consumers so field names and domains cannot drift:
  - the validators read numeric domains (priority 1-5, phases 1-10, ...)
  - the loader reads header aliases, kinds and blank-cell defaults
  - the auto-fix applier coerces a suggested fix back to the field's kind
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any

PRIORITY_RANGE = (1, 5)
PHASE_RANGE = (1, 10)

RANGE_RE = re.compile(r"^\s*(-?\d+)\s*-\s*(-?\d+)\s*$")
TRUE_TOKENS = {"true", "yes", "y", "1", "on", "active"}
FALSE_TOKENS = {"false", "no", "n", "0", "off", "inactive"}


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    required: bool = False
    aliases: tuple[str, ...] = ()
    minimum: float | None = None
    maximum: float | None = None
    default: Any = None

    @property
    def is_list(self) -> bool:
        return self.kind in {"str_list", "phase_list"}

    def in_domain(self, value: float) -> bool:
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True

    def clamp(self, value: float) -> float:
        if self.minimum is not None:
            value = max(self.minimum, value)
        if self.maximum is not None:
            value = min(self.maximum, value)
        return value


CLIENT_FIELDS = (
    FieldSpec("id", "str", required=True, aliases=("id", "clientid"), default=""),
    FieldSpec("name", "str", required=True, aliases=("name", "clientname"), default=""),
    FieldSpec("priority", "int", aliases=("priority", "prioritylevel"), minimum=PRIORITY_RANGE[0], maximum=PRIORITY_RANGE[1], default=1),
    FieldSpec("budget", "float", aliases=("budget",)),
    FieldSpec("requested_task_ids", "str_list", aliases=("requestedtaskids", "requestedtasks", "taskids"), default=[]),
    FieldSpec("group_tag", "str", aliases=("grouptag", "group")),
    FieldSpec("attributes_json", "json", aliases=("attributesjson", "attributes")),
    FieldSpec("phases", "phase_list", aliases=("phases",), minimum=PHASE_RANGE[0], maximum=PHASE_RANGE[1], default=[]),
)

WORKER_FIELDS = (
    FieldSpec("id", "str", required=True, aliases=("id", "workerid"), default=""),
    FieldSpec("name", "str", required=True, aliases=("name", "workername"), default=""),
    FieldSpec("skills", "str_list", aliases=("skills",), default=[]),
    FieldSpec("capacity", "float", aliases=("capacity",), minimum=0, default=40.0),
    FieldSpec("available_slots", "phase_list", aliases=("availableslots", "slots"), minimum=PHASE_RANGE[0], maximum=PHASE_RANGE[1], default=[]),
    FieldSpec("max_load_per_phase", "int", aliases=("maxloadperphase", "maxload"), minimum=0, default=1),
    FieldSpec("worker_group", "str", aliases=("workergroup", "group")),
    FieldSpec("qualification_level", "int", aliases=("qualificationlevel",)),
)

TASK_FIELDS = (
    FieldSpec("id", "str", required=True, aliases=("id", "taskid"), default=""),
    FieldSpec("name", "str", required=True, aliases=("name", "taskname"), default=""),
    FieldSpec("client_id", "str", required=True, aliases=("clientid", "client"), default=""),
    FieldSpec("duration", "float", aliases=("duration",), minimum=1, default=1),
    FieldSpec("required_skills", "str_list", aliases=("requiredskills", "skills"), default=[]),
    FieldSpec("priority", "int", aliases=("priority", "prioritylevel"), minimum=PRIORITY_RANGE[0], maximum=PRIORITY_RANGE[1], default=1),
    FieldSpec("preferred_phases", "phase_list", aliases=("preferredphases", "phases"), minimum=PHASE_RANGE[0], maximum=PHASE_RANGE[1], default=[]),
    FieldSpec("max_concurrent", "int", aliases=("maxconcurrent",), minimum=1, default=1),
    FieldSpec("dependencies", "str_list", aliases=("dependencies", "dependson"), default=[]),
    FieldSpec("category", "str", aliases=("category",)),
)

ENTITY_SCHEMAS: dict[str, tuple[FieldSpec, ...]] = {
    "clients": CLIENT_FIELDS,
    "workers": WORKER_FIELDS,
    "tasks": TASK_FIELDS,
}

ENTITY_LABELS = {"clients": "Client", "workers": "Worker", "tasks": "Task"}


def entity_fields(entity: str) -> tuple[FieldSpec, ...]:
    try:
        return ENTITY_SCHEMAS[entity]
    except KeyError:
        raise ValueError(f"Unknown entity '{entity}'. Expected one of: {', '.join(ENTITY_SCHEMAS)}") from None


def field_spec(entity: str, name: str) -> FieldSpec:
    for spec in entity_fields(entity):
        if spec.name == name:
            return spec
    raise KeyError(f"{entity} has no field '{name}'")


def canonical_header(value: object) -> str:
    return "".join(ch for ch in str(value or "").lower() if ch.isalnum())


def header_aliases(entity: str) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for spec in entity_fields(entity):
        for alias in (canonical_header(spec.name), *spec.aliases):
            mapping.setdefault(alias, spec.name)
    return mapping


def is_blank(raw: object) -> bool:
    if raw is None:
        return True
    if isinstance(raw, float) and math.isnan(raw):
        return True
    return isinstance(raw, str) and raw.strip() == ""


def is_valid_phase(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if isinstance(value, float) and not value.is_integer():
        return False
    return PHASE_RANGE[0] <= value <= PHASE_RANGE[1]


def parse_number(raw: object) -> int | float:
    if isinstance(raw, bool):
        raise ValueError(f"expected a number, got {raw!r}")
    if isinstance(raw, (int, float)):
        number = raw
    else:
        text = str(raw).strip().replace(",", "")
        try:
            number = float(text)
        except ValueError:
            raise ValueError(f"expected a number, got {raw!r}") from None
    if isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            raise ValueError(f"expected a finite number, got {raw!r}")
        if number.is_integer():
            return int(number)
    return number


def _split_tokens(raw: object) -> list[str]:
    if isinstance(raw, (list, tuple, set)):
        return [str(item).strip() for item in raw if not is_blank(item)]
    text = str(raw).strip()
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except ValueError:
            decoded = None
        if isinstance(decoded, list):
            return [str(item).strip() for item in decoded if not is_blank(item)]
        text = text.strip("[]")
    tokens = [token.strip().strip("'\"").strip() for token in re.split(r"[,;]", text)]
    return [token for token in tokens if token]


def parse_string_list(raw: object) -> list[str]:
    if is_blank(raw):
        return []
    return _split_tokens(raw)


def parse_phase_list(raw: object) -> tuple[list[int | float], list[str]]:
    """Return (numbers, rejected_tokens). Accepts `1-3`, `[2,4]` and `1,2,3`."""
    if is_blank(raw):
        return [], []
    if isinstance(raw, str):
        match = RANGE_RE.match(raw)
        if match:
            start, end = int(match.group(1)), int(match.group(2))
            if start <= end:
                return list(range(start, end + 1)), []
    values: list[int | float] = []
    rejected: list[str] = []
    if isinstance(raw, (list, tuple, set)):
        items: list[object] = list(raw)
    else:
        items = list(_split_tokens(raw))
    for item in items:
        if isinstance(item, str):
            match = RANGE_RE.match(item)
            if match and int(match.group(1)) <= int(match.group(2)):
                values.extend(range(int(match.group(1)), int(match.group(2)) + 1))
                continue
        try:
            values.append(parse_number(item))
        except ValueError:
            rejected.append(str(item))
    return values, rejected


def parse_bool(raw: object) -> bool:
    if isinstance(raw, bool):
        return raw
    token = str(raw).strip().lower()
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise ValueError(f"expected true/false, got {raw!r}")


def coerce_value(spec: FieldSpec, raw: object) -> tuple[Any, list[str]]:
    """
    Coerce a raw cell value to the field's kind.

    Returns (value, problems). Blank cells fall back to the field default;
    values that cannot be parsed become None and are described in problems.
    """
    if is_blank(raw):
        default = spec.default
        return (list(default) if isinstance(default, list) else default), []

    if spec.kind == "str":
        if isinstance(raw, float) and raw.is_integer():
            return str(int(raw)), []
        return str(raw).strip(), []

    if spec.kind == "json":
        if isinstance(raw, dict):
            return dict(raw), []
        return str(raw).strip(), []

    if spec.kind == "str_list":
        return parse_string_list(raw), []

    if spec.kind == "phase_list":
        values, rejected = parse_phase_list(raw)
        problems = [f"{spec.name}: dropped non-numeric entries {', '.join(rejected)}"] if rejected else []
        return values, problems

    if spec.kind in {"int", "float"}:
        try:
            number = parse_number(raw)
        except ValueError as exc:
            return None, [f"{spec.name}: {exc}"]
        if spec.kind == "float":
            return float(number), []
        if isinstance(number, float):
            return number, [f"{spec.name}: expected a whole number, got {raw!r}"]
        return number, []

    if spec.kind == "bool":
        try:
            return parse_bool(raw), []
        except ValueError as exc:
            return None, [f"{spec.name}: {exc}"]

    raise ValueError(f"Unsupported field kind: {spec.kind}")


def render_value(spec: FieldSpec, value: Any) -> str:
    """Flatten a typed value back into a single spreadsheet cell."""
    if value is None:
        return ""
    if spec.is_list:
        return ",".join(format_number(item) if isinstance(item, (int, float)) else str(item) for item in value)
    if spec.kind == "json" and isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return format_number(value)
    return str(value)


def format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
