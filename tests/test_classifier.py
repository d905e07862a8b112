from datetime import datetime, timezone

import pytest

from cycle_report.classifier import OverrideContext, classify, classify_work_order
from cycle_report.config import ReportConfig
from cycle_report.schema import BaselineSource, Classification, ReasonCode, WorkOrderDetails

START = datetime(2026, 2, 9, 8, 0, tzinfo=timezone.utc)
END = datetime(2026, 2, 9, 8, 2, tzinfo=timezone.utc)


def test_green_band_is_inclusive():
    # ideal 40: green 35..45, warning 30..50
    assert classify(35, 40).classification is Classification.GOOD
    assert classify(45, 40).classification is Classification.GOOD
    assert classify(30, 40).classification is Classification.WARNING
    assert classify(50, 40).classification is Classification.WARNING
    assert classify(29, 40).classification is Classification.BAD


def test_good_within_threshold():
    verdict = classify(110, 120)
    assert verdict.classification is Classification.GOOD
    assert verdict.reason_code is ReasonCode.WITHIN_THRESHOLD
    assert verdict.reason_text == "Within green threshold"
    assert verdict.delta_sec == -10


def test_warning_below_ideal():
    verdict = classify(100, 120)
    assert verdict.classification is Classification.WARNING
    assert verdict.reason_code is ReasonCode.LOWER_THAN_THRESHOLD
    assert verdict.reason_text == "20 sec lower"
    assert verdict.delta_pct == pytest.approx(-16.6667, abs=1e-3)


def test_bad_above_and_below():
    high = classify(220, 120)
    assert high.classification is Classification.BAD
    assert high.reason_code is ReasonCode.SEVERE_HIGHER
    assert high.reason_text == "100 sec excess"

    low = classify(60, 120)
    assert low.classification is Classification.BAD
    assert low.reason_code is ReasonCode.SEVERE_LOWER


@pytest.mark.parametrize("actual", [0, -4, None, float("nan"), float("inf")])
def test_invalid_duration(actual):
    verdict = classify(actual, 120)
    assert verdict.classification is Classification.UNKNOWN
    assert verdict.reason_code is ReasonCode.INVALID_DURATION


def test_missing_baseline():
    verdict = classify(100, None)
    assert verdict.classification is Classification.UNKNOWN
    assert verdict.reason_code is ReasonCode.MISSING_BASELINE
    assert verdict.delta_sec is None


def test_target_zero_with_time_saved_downgrades_good():
    details = WorkOrderDetails(
        wo_id=1,
        target_duration=0,
        time_saved_sec=30,
        start_time=START,
        end_time=END,
        duration_sec=120,
    )
    verdict = classify_work_order(details, history_sec=[118, 119, 120, 121, 122])
    assert verdict.classification is Classification.WARNING
    assert verdict.reason_code is ReasonCode.TARGET_ZERO_TIME_SAVED_POSITIVE
    assert verdict.reason_text.startswith("Target is zero but time_saved is positive")
    assert verdict.baseline_source is BaselineSource.ROLLING_MEDIAN
    assert verdict.delta_sec == 0


def test_quantity_sanity_takes_priority_over_ok_overrun():
    context = OverrideContext(alloted_qty=10, ok_qty=15, reject_qty=10)
    verdict = classify(120, 120, context=context)
    assert verdict.classification is Classification.WARNING
    assert verdict.reason_code is ReasonCode.QTY_SANITY_LIMIT_EXCEEDED
    assert verdict.reason_text == "Quantity exceeds sanity limit"


def test_ok_quantity_over_alloted():
    verdict = classify(120, 120, context=OverrideContext(alloted_qty=10, ok_qty=11, reject_qty=0))
    assert verdict.reason_code is ReasonCode.OK_QTY_EXCEEDS_ALLOTED
    assert verdict.delta_sec == 0


def test_sanity_multiplier_is_configurable():
    context = OverrideContext(alloted_qty=10, ok_qty=10, reject_qty=6)
    assert classify(120, 120, context=context).reason_code is ReasonCode.WITHIN_THRESHOLD
    config = ReportConfig(quantity_sanity_multiplier=1.5)
    assert classify(120, 120, config, context).reason_code is ReasonCode.QTY_SANITY_LIMIT_EXCEEDED


def test_overrides_never_touch_non_good_results():
    verdict = classify(100, 120, context=OverrideContext(alloted_qty=10, ok_qty=11))
    assert verdict.classification is Classification.WARNING
    assert verdict.reason_code is ReasonCode.LOWER_THAN_THRESHOLD


def test_time_saved_mismatch_suffix():
    consistent = classify(110, 120, context=OverrideContext(target_sec=120, time_saved_sec=10))
    assert consistent.reason_text == "Within green threshold"

    off = classify(110, 120, context=OverrideContext(target_sec=120, time_saved_sec=12))
    assert off.classification is Classification.GOOD
    assert off.reason_text == "Within green threshold (time_saved mismatch)"

    tolerant = ReportConfig(time_saved_tolerance_sec=5)
    assert classify(110, 120, tolerant, OverrideContext(target_sec=120, time_saved_sec=12)).reason_text == (
        "Within green threshold"
    )


def test_work_order_without_times_is_invalid_timestamp():
    verdict = classify_work_order(WorkOrderDetails(wo_id=1, duration_sec=100, start_time=START))
    assert verdict.classification is Classification.UNKNOWN
    assert verdict.reason_code is ReasonCode.INVALID_TIMESTAMP


def test_work_order_without_duration_is_invalid_duration():
    verdict = classify_work_order(WorkOrderDetails(wo_id=1, start_time=START, end_time=END))
    assert verdict.reason_code is ReasonCode.INVALID_DURATION


def test_work_order_target_is_baseline():
    details = WorkOrderDetails(wo_id=1, target_duration=700, start_time=START, end_time=END, duration_sec=705)
    verdict = classify_work_order(details)
    assert verdict.classification is Classification.GOOD
    assert verdict.baseline_source is BaselineSource.TARGET
    assert verdict.ideal_sec == 700


@pytest.mark.parametrize("actual", [108, 120, 132])
def test_green_band_around_120(actual):
    verdict = classify(actual, 120)
    assert verdict.classification is Classification.GOOD
    assert verdict.reason_code is ReasonCode.WITHIN_THRESHOLD


@pytest.mark.parametrize(
    "actual, reason",
    [(100, ReasonCode.LOWER_THAN_THRESHOLD), (140, ReasonCode.HIGHER_THAN_THRESHOLD)],
)
def test_warning_band_around_120(actual, reason):
    verdict = classify(actual, 120)
    assert verdict.classification is Classification.WARNING
    assert verdict.reason_code is reason


@pytest.mark.parametrize("ideal", [120, 250, 300, 700, 1000, 3600])
def test_percentage_green_edges_are_inclusive(ideal):
    # 10% of each ideal is a whole number of seconds above the 5 sec minimum
    buffer = ideal // 10
    assert classify(ideal - buffer, ideal).classification is Classification.GOOD
    assert classify(ideal + buffer, ideal).classification is Classification.GOOD
    assert classify(ideal + buffer + 1, ideal).classification is Classification.WARNING
