"""
loader.py - turn client/worker/task spreadsheets into typed records

Supports: .csv .tsv .txt .xlsx .xlsm for tables, .json for rules.

Public API:
    result  = load_table("clients.csv")           # raw DataFrame + metadata
    result  = load_entity_file("clients.csv", "clients")
    rules   = load_rules("rules.json")
    result  = load_dataset(clients=..., workers=..., tasks=..., rules=...)

Every loader returns a dict carrying a `warnings` list. Header matching is
alias-based and punctuation-insensitive, so "ClientID", "client_id" and
"Client Id" all land on the same field.
"""

from __future__ import annotations

import csv
import io
import json
from pathlib import Path
from typing import Any

import chardet
import pandas as pd

from roster_doctor.models import ENTITIES, Client, Dataset, Rule, RuleType, Task, Worker
from roster_doctor.schema import (
    canonical_header,
    coerce_value,
    entity_fields,
    header_aliases,
    is_blank,
    parse_bool,
    parse_number,
    parse_phase_list,
    parse_string_list,
)

TEXT_FORMATS = {".csv", ".tsv", ".txt"}
EXCEL_FORMATS = {".xlsx", ".xlsm"}
TABLE_FORMATS = TEXT_FORMATS | EXCEL_FORMATS

RECORD_TYPES = {"clients": Client, "workers": Worker, "tasks": Task}

RULE_KEY_ALIASES = {
    "id": "id",
    "ruleid": "id",
    "type": "type",
    "ruletype": "type",
    "name": "name",
    "tasks": "tasks",
    "taskids": "tasks",
    "workers": "workers",
    "workerids": "workers",
    "phases": "phases",
    "weight": "weight",
    "active": "active",
    "enabled": "active",
    "priority": "priority",
    "pattern": "pattern",
    "description": "description",
    "parameters": "parameters",
}


# ── Raw table reading ──────────────────────────────────────────────────────────

def detect_encoding(raw: bytes) -> dict[str, Any]:
    result = chardet.detect(raw)
    detected = result.get("encoding") or "unknown"
    return {
        "detected": detected,
        "confidence": round(result.get("confidence") or 0.0, 2),
        "is_utf8": detected.upper().replace("-", "") in ("UTF8", "ASCII"),
    }


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode line by line: UTF-8, then the detected encoding, then latin-1.

    Exported spreadsheets regularly mix encodings between rows, so one bad
    line should not force the whole file through the wrong codec. A leading
    BOM and embedded null bytes are stripped.
    """
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for encoding in ("utf-8", preferred_encoding, "latin-1"):
            if not encoding or encoding == "unknown":
                continue
            try:
                decoded = raw_line.decode(encoding)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.replace("\x00", ""))
    return "\n".join(decoded_lines).lstrip("\ufeff")


def detect_delimiter(text: str) -> str:
    sample_lines = [line for line in text.splitlines() if line.strip()][:25]
    if not sample_lines:
        return ","
    try:
        return csv.Sniffer().sniff("\n".join(sample_lines), delimiters=",;\t|").delimiter
    except csv.Error:
        return ","


def _load_text(path: Path, suffix: str) -> dict[str, Any]:
    raw = path.read_bytes()
    encoding_info = detect_encoding(raw)
    encoding = encoding_info["detected"] if encoding_info["detected"] != "unknown" else "utf-8"
    text = _read_text_safely(raw, encoding)
    if not text.strip():
        raise ValueError(f"{path.name} is empty")

    delimiter = "\t" if suffix == ".tsv" else detect_delimiter(text)
    sep = r"\|" if delimiter == "|" else delimiter
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            on_bad_lines="skip",
            sep=sep,
            engine="python",
        )
    except Exception as exc:
        raise ValueError(f"Could not parse {path.name}: {exc}") from exc

    return {
        "dataframe": frame,
        "detected_format": suffix.lstrip("."),
        "detected_encoding": encoding,
        "encoding_info": encoding_info,
        "delimiter": delimiter,
        "sheet_name": None,
        "sheet_names": None,
        "warnings": [],
    }


def _load_excel(path: Path, suffix: str, sheet_name: str | None = None) -> dict[str, Any]:
    warnings: list[str] = []
    try:
        with pd.ExcelFile(path, engine="openpyxl") as workbook:
            all_sheets = list(workbook.sheet_names)
    except Exception as exc:
        raise ValueError(f"Could not open workbook {path.name}: {exc}") from exc

    if not all_sheets:
        raise ValueError(f"{path.name} has no sheets")
    if sheet_name is not None and sheet_name not in all_sheets:
        raise ValueError(f"Sheet '{sheet_name}' not found. Available: {all_sheets}")

    chosen = sheet_name or all_sheets[0]
    if sheet_name is None and len(all_sheets) > 1:
        warnings.append(f"{path.name} has {len(all_sheets)} sheets; using the first one ('{chosen}')")

    try:
        frame = pd.read_excel(path, sheet_name=chosen, dtype=str, engine="openpyxl")
    except Exception as exc:
        raise ValueError(f"Could not read sheet '{chosen}' from {path.name}: {exc}") from exc

    return {
        "dataframe": frame,
        "detected_format": suffix.lstrip("."),
        "detected_encoding": None,
        "encoding_info": None,
        "delimiter": None,
        "sheet_name": chosen,
        "sheet_names": all_sheets,
        "warnings": warnings,
    }


def load_table(path: str | Path, sheet_name: str | None = None) -> dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    suffix = path.suffix.lower()
    if suffix in TEXT_FORMATS:
        return _load_text(path, suffix)
    if suffix in EXCEL_FORMATS:
        return _load_excel(path, suffix, sheet_name=sheet_name)
    supported = ", ".join(sorted(TABLE_FORMATS))
    raise ValueError(f"Unsupported file type '{suffix or path.name}'. Supported: {supported}")


# ── Records ────────────────────────────────────────────────────────────────────

def map_columns(columns: list[Any], entity: str) -> tuple[dict[str, Any], list[str]]:
    """Map spreadsheet headers to field names. The first matching column wins."""
    aliases = header_aliases(entity)
    mapping: dict[str, Any] = {}
    warnings: list[str] = []
    ignored: list[str] = []
    for column in columns:
        field_name = aliases.get(canonical_header(column))
        if field_name is None:
            ignored.append(str(column))
            continue
        if field_name in mapping:
            warnings.append(
                f"Columns '{mapping[field_name]}' and '{column}' both map to {field_name}; using '{mapping[field_name]}'"
            )
            continue
        mapping[field_name] = column
    if ignored:
        warnings.append(f"Ignored unrecognised columns: {', '.join(ignored)}")
    for spec in entity_fields(entity):
        if spec.required and spec.name not in mapping:
            warnings.append(f"No column found for required field '{spec.name}'")
    return mapping, warnings


def normalize_records(frame: pd.DataFrame, entity: str) -> dict[str, Any]:
    record_type = RECORD_TYPES.get(entity)
    if record_type is None:
        raise ValueError(f"Unknown entity '{entity}'. Expected one of: {', '.join(ENTITIES)}")

    mapping, warnings = map_columns(list(frame.columns), entity)
    records: list[Any] = []
    skipped = 0
    for line_number, row in enumerate(frame.to_dict(orient="records"), start=2):
        raw_values = {name: row.get(column) for name, column in mapping.items()}
        if all(is_blank(value) for value in raw_values.values()):
            skipped += 1
            continue
        values: dict[str, Any] = {}
        for spec in entity_fields(entity):
            value, problems = coerce_value(spec, raw_values.get(spec.name))
            values[spec.name] = value
            warnings.extend(f"line {line_number}: {problem}" for problem in problems)
        records.append(record_type(**values))

    if skipped:
        warnings.append(f"Skipped {skipped} empty row(s)")
    return {"records": records, "column_mapping": {k: str(v) for k, v in mapping.items()}, "warnings": warnings}


def load_entity_file(path: str | Path, entity: str, sheet_name: str | None = None) -> dict[str, Any]:
    table = load_table(path, sheet_name=sheet_name)
    normalized = normalize_records(table["dataframe"], entity)
    return {
        "records": normalized["records"],
        "column_mapping": normalized["column_mapping"],
        "detected_format": table["detected_format"],
        "sheet_name": table["sheet_name"],
        "warnings": [*table["warnings"], *normalized["warnings"]],
    }


# ── Rules ──────────────────────────────────────────────────────────────────────

def rule_from_mapping(raw: dict[str, Any], index: int) -> Rule:
    if not isinstance(raw, dict):
        raise ValueError(f"Rule #{index + 1} must be an object, got {type(raw).__name__}")

    values: dict[str, Any] = {}
    extras: dict[str, Any] = {}
    for key, value in raw.items():
        field_name = RULE_KEY_ALIASES.get(canonical_header(key))
        if field_name is None:
            extras[key] = value
        else:
            values.setdefault(field_name, value)

    if is_blank(values.get("type")):
        raise ValueError(f"Rule #{index + 1} is missing a type")
    rule_id = values.get("id")
    rule_id = f"rule-{index + 1}" if is_blank(rule_id) else str(rule_id).strip()

    try:
        rule_type = RuleType.parse(values["type"])
        phases, rejected = parse_phase_list(values.get("phases"))
        if rejected:
            raise ValueError(f"non-numeric phases {', '.join(rejected)}")
        weight = 1.0 if is_blank(values.get("weight")) else float(parse_number(values["weight"]))
        active = True if is_blank(values.get("active")) else parse_bool(values["active"])
        priority = None if is_blank(values.get("priority")) else parse_number(values["priority"])
    except ValueError as exc:
        raise ValueError(f"Rule '{rule_id}': {exc}") from None

    parameters = values.get("parameters") or {}
    if not isinstance(parameters, dict):
        raise ValueError(f"Rule '{rule_id}': parameters must be an object")

    return Rule(
        id=rule_id,
        type=rule_type,
        name=str(values.get("name") or ""),
        tasks=parse_string_list(values.get("tasks")),
        workers=parse_string_list(values.get("workers")),
        phases=phases,
        weight=weight,
        active=active,
        priority=priority,
        pattern=None if is_blank(values.get("pattern")) else str(values["pattern"]),
        description=None if is_blank(values.get("description")) else str(values["description"]),
        parameters={**parameters, **extras},
    )


def parse_rules(payload: Any) -> list[Rule]:
    if isinstance(payload, dict) and "rules" in payload:
        payload = payload["rules"]
    if not isinstance(payload, list):
        raise ValueError("Rules must be a JSON list or an object with a 'rules' list")
    return [rule_from_mapping(item, index) for index, item in enumerate(payload)]


def load_rules(path: str | Path) -> list[Rule]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found: {path}")
    try:
        payload = json.loads(path.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Rules file is not valid JSON: {exc}") from exc
    return parse_rules(payload)


# ── Dataset ────────────────────────────────────────────────────────────────────

def load_dataset(
    clients: str | Path | None = None,
    workers: str | Path | None = None,
    tasks: str | Path | None = None,
    rules: str | Path | None = None,
    sheet_name: str | None = None,
) -> dict[str, Any]:
    """
    Load whichever of the four inputs were given. A missing table is an
    empty collection, not an error: validation still runs on the rest.
    """
    dataset = Dataset()
    warnings: list[str] = []
    mappings: dict[str, dict[str, str]] = {}

    for entity, path in (("clients", clients), ("workers", workers), ("tasks", tasks)):
        if path is None:
            continue
        loaded = load_entity_file(path, entity, sheet_name=sheet_name)
        setattr(dataset, entity, loaded["records"])
        mappings[entity] = loaded["column_mapping"]
        warnings.extend(f"{entity}: {warning}" for warning in loaded["warnings"])

    if rules is not None:
        dataset.rules = load_rules(rules)

    return {
        "dataset": dataset,
        "column_mappings": mappings,
        "inputs": {
            "clients": None if clients is None else str(clients),
            "workers": None if workers is None else str(workers),
            "tasks": None if tasks is None else str(tasks),
            "rules": None if rules is None else str(rules),
        },
        "warnings": warnings,
    }
