#!/usr/bin/env python3
from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any

import pandas as pd
import requests
import streamlit as st

from roster_doctor.autofix import fix_until_stable
from roster_doctor.engine import validate_dataset
from roster_doctor.findings import summarize
from roster_doctor.loader import load_dataset
from roster_doctor.models import Dataset
from roster_doctor.remote import MAX_REMOTE_FILE_MB, fetch_input
from roster_doctor.report import build_fix_summary
from roster_doctor.samples import messy_sample_dataset, sample_dataset
from roster_doctor.writer import entity_frame, rules_json

TABLE_EXTS = ["csv", "tsv", "txt", "xlsx", "xlsm"]
INPUT_SLOTS = {
    "clients": TABLE_EXTS,
    "workers": TABLE_EXTS,
    "tasks": TABLE_EXTS,
    "rules": ["json"],
}


def ensure_state() -> None:
    st.session_state.setdefault("dataset", None)
    st.session_state.setdefault("findings", [])
    st.session_state.setdefault("load_warnings", [])
    st.session_state.setdefault("fix_result", None)


def stage_inputs(folder: Path) -> dict[str, str | None]:
    """Write uploads (or fetch URLs) into folder and return a path per slot."""
    staged: dict[str, str | None] = {}
    for name in INPUT_SLOTS:
        upload = st.session_state.get(f"upload_{name}")
        url = (st.session_state.get(f"url_{name}") or "").strip()
        if upload is not None:
            target = folder / f"{name}{Path(upload.name).suffix.lower()}"
            target.write_bytes(upload.getvalue())
            staged[name] = str(target)
        elif url:
            staged[name] = str(fetch_input(name, url, folder)["path"])
        else:
            staged[name] = None
    return staged


def run_validation(dataset: Dataset, warnings: list[str]) -> None:
    st.session_state["dataset"] = dataset
    st.session_state["findings"] = validate_dataset(dataset)
    st.session_state["load_warnings"] = warnings
    st.session_state["fix_result"] = None


def load_and_validate() -> None:
    with tempfile.TemporaryDirectory(prefix="roster-doctor-ui-") as tmp:
        staged = stage_inputs(Path(tmp))
        if not any(staged[name] for name in ("clients", "workers", "tasks")):
            st.warning("Upload or link at least one of clients, workers or tasks.")
            return
        loaded = load_dataset(**staged)
    run_validation(loaded["dataset"], loaded["warnings"])


def findings_frame(findings: list[Any]) -> pd.DataFrame:
    columns = ["type", "severity", "code", "entity", "row", "column", "message", "suggested_fix", "auto_fixable"]
    return pd.DataFrame([finding.to_dict() for finding in findings], columns=columns)


def render_summary(dataset: Dataset, findings: list[Any]) -> None:
    summary = summarize(findings)
    counts = dataset.counts()
    cols = st.columns(6)
    cols[0].metric("Clients", counts["clients"])
    cols[1].metric("Workers", counts["workers"])
    cols[2].metric("Tasks", counts["tasks"])
    cols[3].metric("Rules", counts["rules"])
    cols[4].metric("Errors", summary["error_count"])
    cols[5].metric("Warnings", summary["warning_count"])

    if summary["verdict"] == "CLEAN":
        st.success("No findings. The dataset is ready for allocation.")
    elif summary["verdict"] == "BLOCKED":
        st.error(f"{summary['error_count']} error(s) block allocation. {summary['auto_fixable_count']} finding(s) can be fixed automatically.")
    else:
        st.warning(f"{summary['warning_count']} warning(s) need review.")

    if findings:
        st.dataframe(findings_frame(findings), width="stretch", hide_index=True)

    warnings = st.session_state.get("load_warnings") or []
    if warnings:
        with st.expander(f"Load warnings ({len(warnings)})"):
            st.markdown("\n".join(f"- {warning}" for warning in warnings))


def render_downloads(dataset: Dataset, key_prefix: str) -> None:
    cols = st.columns(4)
    for col, entity in zip(cols, ("clients", "workers", "tasks")):
        col.download_button(
            f"Download {entity}.csv",
            data=entity_frame(dataset, entity).to_csv(index=False).encode("utf-8"),
            file_name=f"{entity}.csv",
            mime="text/csv",
            key=f"{key_prefix}_{entity}",
        )
    cols[3].download_button(
        "Download rules.json",
        data=rules_json(dataset).encode("utf-8"),
        file_name="rules.json",
        mime="application/json",
        key=f"{key_prefix}_rules",
    )


def render_fix_result(result: dict[str, Any]) -> None:
    st.markdown("**After auto-fix**")
    st.caption(f"{len(result['changes'])} change(s) over {result['passes']} pass(es).")
    if result["changes"]:
        st.dataframe(pd.DataFrame([change.to_dict() for change in result["changes"]]), width="stretch", hide_index=True)
    for warning in result["warnings"]:
        st.warning(warning)
    render_summary(result["dataset"], result["findings"])
    render_downloads(result["dataset"], "fixed")
    summary = build_fix_summary(
        st.session_state["findings"],
        result["findings"],
        result["changes"],
        {},
        passes=result["passes"],
        warnings=result["warnings"],
    )
    st.download_button(
        "Download fix-summary.json",
        data=json.dumps(summary, indent=2, ensure_ascii=False, sort_keys=True).encode("utf-8"),
        file_name="fix-summary.json",
        mime="application/json",
    )


def main() -> None:
    st.set_page_config(page_title="roster-doctor", layout="wide", initial_sidebar_state="collapsed")
    ensure_state()

    st.title("roster-doctor")
    st.caption("Upload client, worker and task sheets plus an optional rules file, then review and fix what blocks allocation.")

    cols = st.columns(4)
    for col, (name, exts) in zip(cols, INPUT_SLOTS.items()):
        with col:
            st.file_uploader(name.capitalize(), type=exts, key=f"upload_{name}")
            st.text_input(f"or public URL for {name}", key=f"url_{name}")
    st.caption(f"Public URLs make outbound network requests; remote files above {MAX_REMOTE_FILE_MB} MB are rejected.")

    actions = st.columns(3)
    if actions[0].button("Validate", type="primary", width="stretch"):
        try:
            load_and_validate()
        except (ValueError, FileNotFoundError, requests.RequestException) as exc:
            st.error(str(exc))
    if actions[1].button("Load sample", width="stretch"):
        run_validation(sample_dataset(), [])
    if actions[2].button("Load messy sample", width="stretch"):
        run_validation(messy_sample_dataset(), [])

    dataset = st.session_state["dataset"]
    if dataset is None:
        st.info("Supported here: .csv .tsv .txt .xlsx .xlsm tables and a .json rules file.")
        return

    findings = st.session_state["findings"]
    render_summary(dataset, findings)

    if any(finding.auto_fixable for finding in findings):
        if st.button("Apply auto-fixes"):
            st.session_state["fix_result"] = fix_until_stable(dataset)

    if st.session_state["fix_result"] is not None:
        render_fix_result(st.session_state["fix_result"])
    else:
        render_downloads(dataset, "original")


if __name__ == "__main__":
    main()
