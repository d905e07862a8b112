import pytest

from cycle_report.baseline import median, resolve_baseline
from cycle_report.schema import BaselineSource
from cycle_report.threshold import build_threshold_window


def test_positive_target_wins():
    result = resolve_baseline(700, [100, 110])
    assert result.source is BaselineSource.TARGET
    assert result.ideal_sec == 700.0


def test_rolling_median_odd_count():
    result = resolve_baseline(None, [100, 110, 120, 140, 160])
    assert result.source is BaselineSource.ROLLING_MEDIAN
    assert result.ideal_sec == 120.0


def test_rolling_median_even_count_averages_middle_pair():
    assert resolve_baseline(0, [100, 110, 120, 140]).ideal_sec == 115.0


def test_history_is_windowed_to_latest_entries():
    history = [1000.0] * 10 + [100.0, 200.0, 300.0]
    assert resolve_baseline(None, history, rolling_window=3).ideal_sec == 200.0


def test_non_positive_and_non_finite_history_is_ignored():
    result = resolve_baseline(None, [0, -5, float("nan"), float("inf"), 90])
    assert result.ideal_sec == 90.0


def test_default_when_nothing_usable():
    result = resolve_baseline(-1, [0, -3], default_sec=150)
    assert result.source is BaselineSource.DEFAULT
    assert result.ideal_sec == 150.0


def test_median_of_empty_is_none():
    assert median([]) is None


def test_threshold_bands_for_ideal_120():
    window = build_threshold_window(120)
    assert window.green_lower == pytest.approx(108)
    assert window.green_upper == pytest.approx(132)
    assert window.warning_lower == pytest.approx(90)
    assert window.warning_upper == pytest.approx(150)


def test_minimum_green_buffer_applies_to_short_cycles():
    window = build_threshold_window(20)
    assert window.green_lower == 15
    assert window.green_upper == 25
    assert window.warning_lower <= window.green_lower
    assert window.warning_upper >= window.green_upper


def test_warning_band_never_narrower_than_green():
    window = build_threshold_window(100, threshold_pct=0.3, warning_pct=0.1)
    assert window.warning_lower == window.green_lower
    assert window.warning_upper == window.green_upper
