"""Streamlit demo UI for cycle-report."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

from cycle_report.adapters import csv_adapter, json_adapter
from cycle_report.config import ReportConfig
from cycle_report.filters import FilterState, apply_filters
from cycle_report.formatting import format_duration, variance_color
from cycle_report.report_builder import build_report
from cycle_report.schema import EventRow, ReportRow

DEMO_EVENTS = "examples/sample_events.json"
DEMO_WORK_ORDERS = "examples/sample_work_orders.json"


def _parse_events_from_path(file_path: str) -> list:
    suffix = Path(file_path).suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(file_path)
    if suffix == ".json":
        return json_adapter.parse(file_path)
    raise ValueError("Unsupported file type. Please use .csv or .json")


def _save_uploaded(uploaded_file) -> str:
    suffix = Path(uploaded_file.name).suffix.lower()
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as handle:
        handle.write(uploaded_file.getbuffer())
        return handle.name


def _row_record(row: ReportRow) -> dict[str, Any]:
    body = row.body
    verdict = row.verdict
    record = {
        "S.No": row.serial_no or "",
        "Time": row.timestamp.isoformat() if row.timestamp else "-",
        "Kind": type(body).__name__,
        "Action": row.action or "",
        "Job": "",
        "Summary": row.summary or "",
        "Class": verdict.classification.value if verdict else "",
        "Reason": verdict.reason_text if verdict else "",
        "Variance": "",
    }
    if isinstance(body, EventRow) and body.block is not None:
        record["Job"] = body.block_label or ""
        if body.is_block_final:
            record["Variance"] = variance_color(body.block.variance_sec) or ""
    return record


def main() -> None:
    import streamlit as st

    st.set_page_config(page_title="Cycle Report Demo", layout="wide")
    st.title("Cycle Report — Streamlit Demo")

    with st.sidebar:
        st.header("Controls")
        uploaded_events = st.file_uploader("Upload device events", type=["csv", "json"])
        uploaded_orders = st.file_uploader("Upload work orders", type=["json"])
        use_demo = st.checkbox("Load demo dataset", value=True)
        threshold_pct = st.slider("Green threshold %", min_value=1, max_value=50, value=10)
        warning_pct = st.slider("Warning threshold %", min_value=1, max_value=100, value=25)
        mode = st.selectbox("Show", options=["GOOD_ONLY", "GOOD_WARNING", "ALL"], index=2)
        include_unknown = st.checkbox("Include unknown rows", value=True)
        include_breaks = st.checkbox("Include break rows", value=True)
        run = st.button("Build report", type="primary")

    if not run:
        st.info("Configure inputs in the sidebar and click **Build report**.")
        return

    try:
        if use_demo:
            events = json_adapter.parse(DEMO_EVENTS)
            work_orders = json_adapter.parse_work_orders(DEMO_WORK_ORDERS)
        elif uploaded_events is not None:
            events = _parse_events_from_path(_save_uploaded(uploaded_events))
            work_orders = (
                json_adapter.parse_work_orders(_save_uploaded(uploaded_orders)) if uploaded_orders is not None else {}
            )
        else:
            st.error("Please upload an events file or enable 'Load demo dataset'.")
            return

        config = ReportConfig(threshold_pct=threshold_pct / 100, warning_pct=warning_pct / 100)
        result = build_report(events, work_orders, config)
        stats = result.stats

        st.subheader("A) Summary")
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Jobs", stats.total_jobs)
        c2.metric("Cycles", stats.total_cycles)
        c3.metric("Cutting time", format_duration(stats.total_cutting_sec))
        c4.metric("Utilization", f"{stats.utilization_pct}%")
        st.table([result.metrics["counts"]])

        st.subheader("B) Timeline")
        state = FilterState(mode=mode, include_unknown=include_unknown, include_break_rows=include_breaks)
        st.dataframe([_row_record(row) for row in apply_filters(result.rows, state)], use_container_width=True)

        st.subheader("C) Work orders")
        st.table(
            [
                {
                    "WO": item.wo_label,
                    "Part": item.part_no,
                    "Operator": item.operator,
                    "Jobs": item.jobs,
                    "Cycles": item.cycles,
                    "Cutting": format_duration(item.cutting_sec),
                    "Pause": format_duration(item.pause_sec),
                }
                for item in stats.wo_breakdowns
            ]
        )

    except ValueError as exc:
        st.error(f"Input error: {exc}")


if __name__ == "__main__":
    main()
