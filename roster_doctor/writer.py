"""Write a dataset back out as spreadsheets plus a rules.json file."""

from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from roster_doctor.models import ENTITIES, Dataset
from roster_doctor.schema import entity_fields, render_value

OUTPUT_FORMATS = ("csv", "xlsx")

COLUMN_HEADERS = {
    "clients": {
        "id": "ClientID",
        "name": "ClientName",
        "priority": "PriorityLevel",
        "budget": "Budget",
        "requested_task_ids": "RequestedTaskIDs",
        "group_tag": "GroupTag",
        "attributes_json": "AttributesJSON",
        "phases": "Phases",
    },
    "workers": {
        "id": "WorkerID",
        "name": "WorkerName",
        "skills": "Skills",
        "capacity": "Capacity",
        "available_slots": "AvailableSlots",
        "max_load_per_phase": "MaxLoadPerPhase",
        "worker_group": "WorkerGroup",
        "qualification_level": "QualificationLevel",
    },
    "tasks": {
        "id": "TaskID",
        "name": "TaskName",
        "client_id": "ClientID",
        "duration": "Duration",
        "required_skills": "RequiredSkills",
        "priority": "PriorityLevel",
        "preferred_phases": "PreferredPhases",
        "max_concurrent": "MaxConcurrent",
        "dependencies": "Dependencies",
        "category": "Category",
    },
}


def entity_frame(dataset: Dataset, entity: str) -> pd.DataFrame:
    specs = entity_fields(entity)
    headers = COLUMN_HEADERS[entity]
    rows = [
        {headers[spec.name]: render_value(spec, getattr(record, spec.name)) for spec in specs}
        for record in dataset.collection(entity)
    ]
    return pd.DataFrame(rows, columns=[headers[spec.name] for spec in specs], dtype=str)


def dataset_frames(dataset: Dataset) -> dict[str, pd.DataFrame]:
    return {entity: entity_frame(dataset, entity) for entity in ENTITIES}


def rules_json(dataset: Dataset) -> str:
    return json.dumps({"rules": [rule.to_dict() for rule in dataset.rules]}, indent=2, ensure_ascii=False) + "\n"


def output_paths(out_dir: Path, fmt: str = "csv") -> dict[str, Path]:
    if fmt not in OUTPUT_FORMATS:
        raise ValueError(f"Unsupported output format '{fmt}'. Expected one of: {', '.join(OUTPUT_FORMATS)}")
    paths = {entity: out_dir / f"{entity}.{fmt}" for entity in ENTITIES}
    paths["rules"] = out_dir / "rules.json"
    return paths


def write_dataset(dataset: Dataset, out_dir: str | Path, fmt: str = "csv") -> dict[str, str]:
    """Write clients/workers/tasks plus rules.json into out_dir. Returns the written paths."""
    out_dir = Path(out_dir)
    paths = output_paths(out_dir, fmt)
    out_dir.mkdir(parents=True, exist_ok=True)
    for entity, frame in dataset_frames(dataset).items():
        if fmt == "xlsx":
            frame.to_excel(paths[entity], index=False, sheet_name=entity.capitalize(), engine="openpyxl")
        else:
            frame.to_csv(paths[entity], index=False, encoding="utf-8")
    paths["rules"].write_text(rules_json(dataset), encoding="utf-8")
    return {name: str(path) for name, path in paths.items()}
