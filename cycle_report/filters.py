"""Classification filters for report rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from cycle_report.schema import Classification, ReasonCode, ReportRow

FilterMode = Literal["GOOD_ONLY", "GOOD_WARNING", "ALL"]


@dataclass(frozen=True)
class FilterState:
    mode: FilterMode = "GOOD_ONLY"
    include_unknown: bool = False
    include_break_rows: bool = False


DEFAULT_FILTER_STATE = FilterState()


def is_break_row(row: ReportRow) -> bool:
    return row.verdict is not None and row.verdict.reason_code is ReasonCode.BREAK_CONTEXT


def _keep(row: ReportRow, state: FilterState) -> bool:
    classification = row.verdict.classification if row.verdict is not None else Classification.UNKNOWN

    if classification is Classification.UNKNOWN:
        if is_break_row(row):
            return state.include_break_rows
        return state.include_unknown

    if state.mode == "GOOD_ONLY":
        return classification is Classification.GOOD
    if state.mode == "GOOD_WARNING":
        return classification in (Classification.GOOD, Classification.WARNING)
    return True


def apply_filters(rows: list[ReportRow], state: FilterState = DEFAULT_FILTER_STATE) -> list[ReportRow]:
    """Keep rows matching the classification mode and the unknown/break toggles."""

    return [row for row in rows if _keep(row, state)]
