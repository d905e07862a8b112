"""Green/warning threshold bands around an ideal duration."""

from __future__ import annotations

from cycle_report.schema import ThresholdWindow


def build_threshold_window(
    ideal_sec: float,
    threshold_pct: float = 0.1,
    min_threshold_sec: float = 5.0,
    warning_pct: float = 0.25,
) -> ThresholdWindow:
    """The warning buffer is never narrower than the green buffer."""

    green_buffer = max(min_threshold_sec, ideal_sec * threshold_pct)
    warning_buffer = max(green_buffer, ideal_sec * warning_pct)
    return ThresholdWindow(
        green_lower=ideal_sec - green_buffer,
        green_upper=ideal_sec + green_buffer,
        warning_lower=ideal_sec - warning_buffer,
        warning_upper=ideal_sec + warning_buffer,
    )
