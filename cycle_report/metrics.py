"""Cycle classification metrics over a finished report."""

from __future__ import annotations

from collections import Counter

import numpy as np

from cycle_report.formatting import round_half_up
from cycle_report.schema import Action, Classification, EventRow, ReportRow, row_sort_key

LATEST_CYCLES_LIMIT = 50


def is_cycle_row(row: ReportRow) -> bool:
    """A production CYCLE_END row with a measured duration."""

    return (
        isinstance(row.body, EventRow)
        and row.job_type.is_production
        and row.body.event.is_action(Action.CYCLE_END)
        and row.body.duration_sec is not None
    )


def _percent(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        return 0
    return round_half_up(numerator / denominator * 100)


def compute_cycle_metrics(rows: list[ReportRow]) -> dict:
    """Compute per-classification counts, duration totals and rates for cycle rows."""

    cycle_rows = [row for row in rows if is_cycle_row(row)]
    counts = Counter(
        row.verdict.classification if row.verdict is not None else Classification.UNKNOWN for row in cycle_rows
    )
    by_class = {classification.value: counts.get(classification, 0) for classification in Classification}

    durations = np.asarray([row.body.duration_sec for row in cycle_rows], dtype=float)
    measured = durations[durations > 0]
    total_cycles = len(cycle_rows)
    total_cycle_sec = float(measured.sum()) if measured.size else 0.0

    return {
        "total_rows": len(rows),
        "total_cycles": total_cycles,
        "total_cycle_sec": total_cycle_sec,
        "avg_cycle_sec": round_half_up(float(measured.mean())) if measured.size else 0,
        "counts": by_class,
        "good_rate_pct": _percent(by_class["GOOD"], total_cycles),
        "unknown_ratio": by_class["UNKNOWN"] / total_cycles if total_cycles else 0.0,
        "unknown_ratio_pct": _percent(by_class["UNKNOWN"], total_cycles),
        "latest_cycles": sorted(cycle_rows, key=row_sort_key, reverse=True)[:LATEST_CYCLES_LIMIT],
    }
