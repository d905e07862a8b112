"""Report configuration record and logging setup."""

from __future__ import annotations

import logging
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_BREAK_KEYWORDS = ("tea", "dinner", "meeting")


class ReportConfig(BaseModel):
    """Options recognized by the report pipeline.

    Always passed explicitly; nothing in the pipeline reads ambient state.
    camelCase keys (``toleranceSec``, ``thresholdPct`` ...) are accepted.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    # Grouping
    tolerance_sec: float = Field(default=0.0, ge=0)
    max_gap_sec: float = Field(default=900.0, ge=0)
    max_cycles_per_job: int = Field(default=4, ge=1)

    # Threshold band shape
    threshold_pct: float = Field(default=0.1, ge=0)
    min_threshold_sec: float = Field(default=5.0, ge=0)
    warning_pct: float = Field(default=0.25, ge=0)

    # Baseline
    rolling_median_window: int = Field(default=20, ge=1)
    fallback_ideal_sec: float = 120.0

    # Work-order sanity rules
    quantity_sanity_multiplier: float = Field(default=2.0, gt=0)
    time_saved_tolerance_sec: float = Field(default=1.0, ge=0)

    # Timeline
    break_keywords: tuple[str, ...] = DEFAULT_BREAK_KEYWORDS
    max_loading_gap_sec: float = Field(default=900.0, ge=0)
    shift_break_sec: float = Field(default=120 * 60, ge=0)
    pause_reason_tolerance_sec: float = Field(default=300.0, ge=0)


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO",
    fmt: Literal["json", "console"] = "console",
) -> None:
    """Configure structlog for the command-line and demo entry points."""

    renderer = structlog.processors.JSONRenderer() if fmt == "json" else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
    )
