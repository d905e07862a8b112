"""Baseline (ideal cycle duration) resolution."""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from cycle_report.schema import BaselineResolution, BaselineSource

DEFAULT_ROLLING_WINDOW = 20
DEFAULT_IDEAL_SEC = 120.0


def _sanitize(durations: list[float]) -> list[float]:
    return [float(value) for value in durations if value is not None and math.isfinite(value) and value > 0]


def median(values: list[float]) -> Optional[float]:
    """Median, with even-count lists averaging the two central values."""

    if not values:
        return None
    return float(np.median(np.asarray(values, dtype=float)))


def resolve_baseline(
    target_sec: Optional[float],
    history_sec: Optional[list[float]] = None,
    rolling_window: int = DEFAULT_ROLLING_WINDOW,
    default_sec: float = DEFAULT_IDEAL_SEC,
) -> BaselineResolution:
    """Resolve the ideal duration: positive target, then rolling median, then default."""

    if target_sec is not None and target_sec > 0:
        return BaselineResolution(source=BaselineSource.TARGET, ideal_sec=float(target_sec))

    history = _sanitize(history_sec or [])
    windowed = history[-rolling_window:] if len(history) > rolling_window else history
    historical = median(windowed)
    if historical is not None:
        return BaselineResolution(source=BaselineSource.ROLLING_MEDIAN, ideal_sec=historical)

    return BaselineResolution(source=BaselineSource.DEFAULT, ideal_sec=float(default_sec))
