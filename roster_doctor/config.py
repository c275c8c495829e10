"""Validation settings and the JSON config file that overrides them."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

SUPPORTED_CONFIG_SUFFIXES = {".json", ".yml", ".yaml"}


@dataclass(frozen=True)
class ValidationConfig:
    # Shared tasks needed before a co-run/exclusion pair counts as a conflict.
    corun_conflict_min_shared: int = 2
    # Per-phase capacity of a worker whose MaxLoadPerPhase is blank.
    default_max_load_per_phase: int = 1
    check_corun_cycles: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_CONFIG = ValidationConfig()


def config_from_mapping(payload: dict[str, Any]) -> ValidationConfig:
    known = {item.name: item for item in fields(ValidationConfig)}
    unknown = sorted(set(payload) - set(known))
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
    values: dict[str, Any] = {}
    for key, raw in payload.items():
        expected = type(getattr(DEFAULT_CONFIG, key))
        if expected is bool:
            if not isinstance(raw, bool):
                raise ValueError(f"Config key '{key}' must be true or false")
        elif isinstance(raw, bool) or not isinstance(raw, int):
            raise ValueError(f"Config key '{key}' must be an integer")
        values[key] = raw
    config = ValidationConfig(**values)
    if config.corun_conflict_min_shared < 1:
        raise ValueError("corun_conflict_min_shared must be at least 1")
    if config.default_max_load_per_phase < 0:
        raise ValueError("default_max_load_per_phase cannot be negative")
    return config


def load_config(path: Path | None) -> ValidationConfig:
    if path is None:
        return DEFAULT_CONFIG
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ValueError("Config must be .json, .yml, or .yaml")
    if suffix in {".yml", ".yaml"}:
        raise ValueError("YAML configs are not supported yet. Use JSON for now.")
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Could not read config: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Config root must be a JSON object.")
    return config_from_mapping(payload.get("validation", payload))


def starter_config_text() -> str:
    return json.dumps({"validation": DEFAULT_CONFIG.to_dict()}, indent=2, sort_keys=True) + "\n"
