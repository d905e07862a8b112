"""Duration and variance text helpers."""

from __future__ import annotations

import math
from typing import Optional


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_duration(sec: Optional[float]) -> str:
    """Render seconds as ``"7 min 31 sec"`` or ``"32 sec"``."""

    if sec is None:
        return "-"
    minutes = int(math.floor(sec / 60))
    seconds = round_half_up(sec % 60)
    if minutes > 0:
        return f"{minutes} min {seconds} sec"
    return f"{seconds} sec"


def format_delta(delta_sec: float) -> str:
    """``"5 sec excess"`` when at or above the ideal, ``"5 sec lower"`` below it."""

    magnitude = abs(round_half_up(delta_sec))
    return f"{magnitude} sec excess" if delta_sec >= 0 else f"{magnitude} sec lower"


def format_variance(variance_sec: Optional[float]) -> Optional[str]:
    if variance_sec is None:
        return None
    magnitude = round_half_up(abs(variance_sec))
    if variance_sec > 0:
        return f"{magnitude} sec excess"
    if variance_sec < 0:
        return f"{magnitude} sec lower"
    return "0 sec"


def variance_color(variance_sec: Optional[float]) -> Optional[str]:
    if variance_sec is None:
        return None
    if variance_sec > 0:
        return "red"
    if variance_sec < 0:
        return "green"
    return "neutral"
