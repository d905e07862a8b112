"""Core data schema for device event logs and report rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union


class Action(str, Enum):
    CYCLE_START = "CYCLE_START"
    CYCLE_END = "CYCLE_END"
    ORDER_START = "ORDER_START"
    ORDER_STOP = "ORDER_STOP"
    ORDER_PAUSE = "ORDER_PAUSE"
    ORDER_RESUME = "ORDER_RESUME"
    KEY_ON = "KEY_ON"
    KEY_OFF = "KEY_OFF"


class JobType(str, Enum):
    PRODUCTION = "Production"
    SETTING = "Setting"
    UNKNOWN = "Unknown"

    @property
    def is_production(self) -> bool:
        return self is JobType.PRODUCTION


class BaselineSource(str, Enum):
    TARGET = "TARGET"
    ROLLING_MEDIAN = "ROLLING_MEDIAN"
    DEFAULT = "DEFAULT"


class Classification(str, Enum):
    GOOD = "GOOD"
    WARNING = "WARNING"
    BAD = "BAD"
    UNKNOWN = "UNKNOWN"


class ReasonCode(str, Enum):
    WITHIN_THRESHOLD = "WITHIN_THRESHOLD"
    LOWER_THAN_THRESHOLD = "LOWER_THAN_THRESHOLD"
    HIGHER_THAN_THRESHOLD = "HIGHER_THAN_THRESHOLD"
    SEVERE_LOWER = "SEVERE_LOWER"
    SEVERE_HIGHER = "SEVERE_HIGHER"
    INVALID_TIMESTAMP = "INVALID_TIMESTAMP"
    INVALID_DURATION = "INVALID_DURATION"
    MISSING_BASELINE = "MISSING_BASELINE"
    BREAK_CONTEXT = "BREAK_CONTEXT"
    EXTENSION_EVENT = "EXTENSION_EVENT"
    NON_PRODUCTION_EVENT = "NON_PRODUCTION_EVENT"
    TARGET_ZERO_TIME_SAVED_POSITIVE = "TARGET_ZERO_TIME_SAVED_POSITIVE"
    QTY_SANITY_LIMIT_EXCEEDED = "QTY_SANITY_LIMIT_EXCEEDED"
    OK_QTY_EXCEEDS_ALLOTED = "OK_QTY_EXCEEDS_ALLOTED"


SETTING_JOB_TYPE_CODE = 2


def as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    """Offset-less timestamps are taken to be UTC."""

    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class LogEvent:
    """Normalized device log record used by all modules.

    ``timestamp`` is ``None`` when the source value was missing or unparsable.
    """

    event_id: int
    timestamp: Optional[datetime]
    action: str
    wo_id: Optional[int]
    device_id: Optional[int] = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def is_action(self, action: Action) -> bool:
        return self.action == action.value


@dataclass(frozen=True)
class Extension:
    """Free-text, timestamped annotation attached to a work order."""

    extension_id: int
    wo_id: Optional[int]
    timestamp: Optional[datetime]
    comment: Optional[str]
    duration_sec: Optional[float] = None

    def is_break_like(self, keywords: tuple[str, ...] | list[str]) -> bool:
        if not self.comment:
            return False
        lowered = self.comment.lower()
        return any(keyword.lower() in lowered for keyword in keywords)


@dataclass(frozen=True)
class WorkOrderDetails:
    """Pre-resolved work-order metadata supplied alongside the event stream."""

    wo_id: int
    wo_label: str = ""
    part_no: str = ""
    pcl: Optional[float] = None
    target_duration: Optional[float] = None
    job_type: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration_sec: Optional[float] = None
    time_saved_sec: Optional[float] = None
    alloted_qty: Optional[float] = None
    ok_qty: Optional[float] = None
    reject_qty: Optional[float] = None
    start_name: str = ""
    stop_name: str = ""
    start_comment: str = ""
    stop_comment: str = ""
    setting: str = ""
    device_id: Optional[int] = None
    extensions: tuple[Extension, ...] = ()

    @classmethod
    def placeholder(cls, wo_id: int) -> "WorkOrderDetails":
        return cls(wo_id=wo_id, wo_label=str(wo_id))

    def cycle_target(self) -> Optional[float]:
        """Setting orders are measured against target_duration, others against PCL."""

        if self.job_type == SETTING_JOB_TYPE_CODE and (self.target_duration or 0) > 0:
            return self.target_duration
        return self.pcl


@dataclass(frozen=True)
class Cycle:
    start: LogEvent
    end: LogEvent
    duration_sec: float


@dataclass(frozen=True)
class PausePeriod:
    pause: LogEvent
    resume: LogEvent
    duration_sec: float


@dataclass
class WorkOrderSegment:
    wo_id: Optional[int]
    events: list[LogEvent]
    job_type: JobType = JobType.PRODUCTION
    cycles: list[Cycle] = field(default_factory=list)
    pauses: list[PausePeriod] = field(default_factory=list)
    is_fallback: bool = False

    def first_of(self, action: Action) -> Optional[LogEvent]:
        return next((event for event in self.events if event.is_action(action)), None)

    @property
    def measured_cycles(self) -> list[Cycle]:
        """Cycles with a positive duration; the rest are reported but not counted."""

        return [cycle for cycle in self.cycles if cycle.duration_sec > 0]


@dataclass(frozen=True)
class JobBlock:
    label: str
    cycles: tuple[Cycle, ...]
    total_sec: float
    variance_sec: Optional[float]
    target_sec: Optional[float]

    @property
    def is_measured(self) -> bool:
        return self.total_sec > 0


@dataclass(frozen=True)
class BaselineResolution:
    source: BaselineSource
    ideal_sec: float


@dataclass(frozen=True)
class ThresholdWindow:
    green_lower: float
    green_upper: float
    warning_lower: float
    warning_upper: float


@dataclass(frozen=True)
class Verdict:
    """One classification decision with exactly one reason code."""

    classification: Classification
    reason_code: ReasonCode
    reason_text: str
    actual_sec: Optional[float] = None
    ideal_sec: Optional[float] = None
    delta_sec: Optional[float] = None
    delta_pct: Optional[float] = None
    baseline_source: Optional[BaselineSource] = None


# --- Row bodies: the closed set of report row kinds ---


@dataclass(frozen=True)
class EventRow:
    event: LogEvent
    duration_sec: Optional[float] = None
    block_label: Optional[str] = None
    block: Optional[JobBlock] = None
    is_block_final: bool = False


@dataclass(frozen=True)
class IdealGapRow:
    duration_sec: float


@dataclass(frozen=True)
class LoadingGapRow:
    duration_sec: float
    block_label: Optional[str] = None


@dataclass(frozen=True)
class IdleGapRow:
    duration_sec: float


@dataclass(frozen=True)
class PauseBanner:
    reason: str
    duration_sec: float
    is_shift_break: bool
    is_break_like: bool
    from_extension: bool = False


@dataclass(frozen=True)
class WoHeaderBanner:
    wo_label: str
    part_no: str
    operator_name: str
    pcl_sec: float
    setting: str
    device_id: Optional[int]
    start_comment: str


@dataclass(frozen=True)
class WoSummaryBanner:
    wo_label: str
    part_no: str
    operator_name: str
    setting: str
    device_id: Optional[int]
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    duration_sec: Optional[float]
    total_jobs: int
    total_cycles: int
    cutting_sec: float
    pause_sec: float
    alloted_qty: Optional[float]
    ok_qty: Optional[float]
    reject_qty: Optional[float]
    pause_reasons: tuple[str, ...]
    start_comment: str
    stop_comment: str


RowBody = Union[
    EventRow,
    IdealGapRow,
    LoadingGapRow,
    IdleGapRow,
    PauseBanner,
    WoHeaderBanner,
    WoSummaryBanner,
]

ROW_BODY_TYPES = (
    EventRow,
    IdealGapRow,
    LoadingGapRow,
    IdleGapRow,
    PauseBanner,
    WoHeaderBanner,
    WoSummaryBanner,
)


@dataclass(frozen=True)
class ReportRow:
    """Envelope shared by every report row; ``body`` carries the row kind."""

    row_id: str
    timestamp: Optional[datetime]
    wo_id: Optional[int]
    job_type: JobType
    body: RowBody
    operator_name: str = ""
    summary: Optional[str] = None
    verdict: Optional[Verdict] = None
    serial_no: Optional[int] = None

    @property
    def is_synthetic(self) -> bool:
        return not isinstance(self.body, EventRow)

    @property
    def action(self) -> Optional[str]:
        if isinstance(self.body, EventRow):
            return self.body.event.action
        return None


def row_sort_key(row: ReportRow) -> tuple:
    """Rows without a timestamp sort before every timed row."""

    if row.timestamp is None:
        return (0, 0)
    return (1, row.timestamp)


@dataclass(frozen=True)
class WoBreakdown:
    wo_id: Optional[int]
    wo_label: str
    part_no: str
    operator: str
    setting: str
    jobs: int
    cycles: int
    cutting_sec: float
    pause_sec: float
    loading_sec: float
    idle_sec: float
    alloted_qty: float
    ok_qty: float
    reject_qty: float
    pcl: Optional[float]
    avg_cycle_sec: float
    start_time: Optional[datetime]
    end_time: Optional[datetime]
    duration_sec: float


@dataclass(frozen=True)
class OperatorSummary:
    name: str
    wo_count: int
    total_jobs: int
    total_cycles: int
    total_cutting_sec: float
    total_pause_sec: float
    avg_cycle_sec: float


@dataclass(frozen=True)
class ReportStats:
    total_jobs: int
    total_cycles: int
    total_cutting_sec: float
    total_pause_sec: float
    total_loading_sec: float
    total_idle_sec: float
    total_duration_sec: float
    utilization_pct: int
    total_alloted_qty: float
    total_ok_qty: float
    total_reject_qty: float
    invalid_rows: int
    wo_breakdowns: list[WoBreakdown]
    operator_summaries: list[OperatorSummary]


@dataclass(frozen=True)
class ReportResult:
    rows: list[ReportRow]
    stats: ReportStats
    metrics: dict
