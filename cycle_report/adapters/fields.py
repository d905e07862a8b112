"""Field coercion shared by the event adapters."""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Optional

from cycle_report.schema import Action, as_utc

# Device firmware action names mapped onto the pipeline's action tags.
ACTION_ALIASES = {
    "SPINDLE_ON": Action.CYCLE_START.value,
    "SPINDLE_OFF": Action.CYCLE_END.value,
    "WO_START": Action.ORDER_START.value,
    "WO_STOP": Action.ORDER_STOP.value,
    "WO_PAUSE": Action.ORDER_PAUSE.value,
    "WO_RESUME": Action.ORDER_RESUME.value,
}


def canonical_action(raw: Any) -> str:
    action = str(raw).strip()
    return ACTION_ALIASES.get(action.upper(), action)


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """ISO-8601 timestamp, or ``None`` when missing or unparsable.

    Values without an offset are read as UTC.
    """

    if isinstance(raw, datetime):
        return as_utc(raw)
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def to_number(raw: Any) -> Optional[float]:
    if raw is None or raw == "" or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def to_int(raw: Any) -> Optional[int]:
    value = to_number(raw)
    return int(value) if value is not None else None


def to_text(raw: Any) -> str:
    return raw.strip() if isinstance(raw, str) else ""
