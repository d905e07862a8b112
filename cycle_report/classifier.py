"""Duration classification against a resolved baseline."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from cycle_report.baseline import resolve_baseline
from cycle_report.config import ReportConfig
from cycle_report.formatting import format_delta
from cycle_report.schema import (
    BaselineSource,
    Classification,
    ReasonCode,
    Verdict,
    WorkOrderDetails,
)
from cycle_report.threshold import build_threshold_window

TIME_SAVED_MISMATCH_SUFFIX = " (time_saved mismatch)"

REASON_TEXT = {
    ReasonCode.WITHIN_THRESHOLD: "Within green threshold",
    ReasonCode.LOWER_THAN_THRESHOLD: "Below expected cycle time",
    ReasonCode.HIGHER_THAN_THRESHOLD: "Above expected cycle time",
    ReasonCode.SEVERE_LOWER: "Severely below expected cycle time",
    ReasonCode.SEVERE_HIGHER: "Severely above expected cycle time",
    ReasonCode.INVALID_TIMESTAMP: "Invalid or missing timestamp",
    ReasonCode.INVALID_DURATION: "Invalid or non-positive duration",
    ReasonCode.MISSING_BASELINE: "Unable to resolve baseline",
    ReasonCode.BREAK_CONTEXT: "Break or non-production context",
    ReasonCode.EXTENSION_EVENT: "Extension/downtime event",
    ReasonCode.NON_PRODUCTION_EVENT: "Non-cycle event",
    ReasonCode.TARGET_ZERO_TIME_SAVED_POSITIVE: "Target is zero but time_saved is positive",
    ReasonCode.QTY_SANITY_LIMIT_EXCEEDED: "Quantity exceeds sanity limit",
    ReasonCode.OK_QTY_EXCEEDS_ALLOTED: "ok_qty exceeds alloted_qty",
}


@dataclass(frozen=True)
class OverrideContext:
    """Work-order figures consulted by the data-quality override rules."""

    target_sec: Optional[float] = None
    time_saved_sec: Optional[float] = None
    alloted_qty: Optional[float] = None
    ok_qty: Optional[float] = None
    reject_qty: Optional[float] = None

    @classmethod
    def from_details(cls, details: WorkOrderDetails) -> "OverrideContext":
        return cls(
            target_sec=details.target_duration,
            time_saved_sec=details.time_saved_sec,
            alloted_qty=details.alloted_qty,
            ok_qty=details.ok_qty,
            reject_qty=details.reject_qty,
        )


def unknown(code: ReasonCode, actual_sec: Optional[float] = None) -> Verdict:
    return Verdict(
        classification=Classification.UNKNOWN,
        reason_code=code,
        reason_text=REASON_TEXT[code],
        actual_sec=actual_sec,
    )


def _is_positive_finite(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def _directional_reason(classification: Classification, delta_sec: float) -> ReasonCode:
    if classification is Classification.GOOD:
        return ReasonCode.WITHIN_THRESHOLD
    if classification is Classification.WARNING:
        return ReasonCode.LOWER_THAN_THRESHOLD if delta_sec < 0 else ReasonCode.HIGHER_THAN_THRESHOLD
    return ReasonCode.SEVERE_LOWER if delta_sec < 0 else ReasonCode.SEVERE_HIGHER


def _first_override(context: OverrideContext, config: ReportConfig) -> Optional[ReasonCode]:
    """Override rules in priority order; only the first match applies."""

    if context.target_sec == 0 and context.time_saved_sec is not None and context.time_saved_sec > 0:
        return ReasonCode.TARGET_ZERO_TIME_SAVED_POSITIVE

    alloted = context.alloted_qty
    total_qty = (context.ok_qty or 0) + (context.reject_qty or 0)
    if alloted is not None and alloted > 0 and total_qty > alloted * config.quantity_sanity_multiplier:
        return ReasonCode.QTY_SANITY_LIMIT_EXCEEDED

    if context.ok_qty is not None and alloted is not None and alloted >= 0 and context.ok_qty > alloted:
        return ReasonCode.OK_QTY_EXCEEDS_ALLOTED

    return None


def _time_saved_mismatch(context: OverrideContext, actual_sec: float, config: ReportConfig) -> bool:
    if context.time_saved_sec is None or context.target_sec is None:
        return False
    expected = context.target_sec - actual_sec
    return abs(context.time_saved_sec - expected) > config.time_saved_tolerance_sec


def classify(
    actual_sec: Optional[float],
    ideal_sec: Optional[float],
    config: Optional[ReportConfig] = None,
    context: Optional[OverrideContext] = None,
    baseline_source: Optional[BaselineSource] = None,
) -> Verdict:
    """Classify ``actual_sec`` against ``ideal_sec``.

    Bands are inclusive. Override rules only ever turn GOOD into WARNING and
    keep the delta metrics. The time-saved mismatch note only touches the
    reason text.
    """

    config = config or ReportConfig()

    if not _is_positive_finite(actual_sec):
        return unknown(ReasonCode.INVALID_DURATION, actual_sec)
    if not _is_positive_finite(ideal_sec):
        return unknown(ReasonCode.MISSING_BASELINE, actual_sec)

    window = build_threshold_window(
        ideal_sec,
        threshold_pct=config.threshold_pct,
        min_threshold_sec=config.min_threshold_sec,
        warning_pct=config.warning_pct,
    )
    delta_sec = actual_sec - ideal_sec
    delta_pct = (delta_sec / ideal_sec) * 100

    if window.green_lower <= actual_sec <= window.green_upper:
        classification = Classification.GOOD
    elif window.warning_lower <= actual_sec <= window.warning_upper:
        classification = Classification.WARNING
    else:
        classification = Classification.BAD

    reason_code = _directional_reason(classification, delta_sec)
    if reason_code is ReasonCode.WITHIN_THRESHOLD:
        reason_text = REASON_TEXT[reason_code]
    else:
        reason_text = format_delta(delta_sec)

    if context is not None:
        override = _first_override(context, config) if classification is Classification.GOOD else None
        if override is not None:
            classification = Classification.WARNING
            reason_code = override
            reason_text = REASON_TEXT[override]
        if _time_saved_mismatch(context, actual_sec, config):
            reason_text = f"{reason_text}{TIME_SAVED_MISMATCH_SUFFIX}"

    return Verdict(
        classification=classification,
        reason_code=reason_code,
        reason_text=reason_text,
        actual_sec=actual_sec,
        ideal_sec=ideal_sec,
        delta_sec=delta_sec,
        delta_pct=delta_pct,
        baseline_source=baseline_source,
    )


def classify_work_order(
    details: WorkOrderDetails,
    config: Optional[ReportConfig] = None,
    history_sec: Optional[list[float]] = None,
) -> Verdict:
    """Classify a whole work order's duration, with its override rules."""

    config = config or ReportConfig()

    if details.start_time is None or details.end_time is None:
        return unknown(ReasonCode.INVALID_TIMESTAMP, details.duration_sec)
    if not _is_positive_finite(details.duration_sec):
        return unknown(ReasonCode.INVALID_DURATION, details.duration_sec)

    baseline = resolve_baseline(
        details.target_duration,
        history_sec,
        rolling_window=config.rolling_median_window,
        default_sec=config.fallback_ideal_sec,
    )
    return classify(
        details.duration_sec,
        baseline.ideal_sec,
        config,
        context=OverrideContext.from_details(details),
        baseline_source=baseline.source,
    )
