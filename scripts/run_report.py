"""Build a cycle report from exported event and work-order files."""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path

import structlog

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from cycle_report.adapters import csv_adapter, json_adapter
from cycle_report.config import ReportConfig, configure_logging
from cycle_report.normalizer import extract_wo_ids
from cycle_report.report_builder import build_report

logger = structlog.get_logger(__name__)


def _load_events(path: Path):
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return csv_adapter.parse(str(path))
    if suffix == ".json":
        return json_adapter.parse(str(path))
    raise ValueError("Unsupported input format, expected .csv or .json")


def _to_jsonable(value):
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        payload = {field.name: _to_jsonable(getattr(value, field.name)) for field in dataclasses.fields(value)}
        if hasattr(value, "body"):
            payload["kind"] = type(value.body).__name__
        return payload
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def main() -> None:
    parser = argparse.ArgumentParser(description="Build a cycle report from device event logs")
    parser.add_argument("--events", required=True, help="Path to CSV/JSON device events file")
    parser.add_argument("--work-orders", help="Path to JSON work-order metadata file")
    parser.add_argument("--config", help="Path to JSON report options (camelCase keys)")
    parser.add_argument("--output", help="Write the report JSON here instead of stdout")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-format", default="console", choices=["console", "json"])
    args = parser.parse_args()

    configure_logging(args.log_level, args.log_format)

    events = _load_events(Path(args.events))
    work_orders = json_adapter.parse_work_orders(args.work_orders) if args.work_orders else {}
    config = ReportConfig()
    if args.config:
        config = ReportConfig.model_validate(json.loads(Path(args.config).read_text(encoding="utf-8")))

    missing = [wo_id for wo_id in extract_wo_ids(events) if wo_id not in work_orders]
    if missing:
        logger.warning("work_order_metadata_missing", wo_ids=missing)

    result = build_report(events, work_orders, config)
    report = {
        "stats": _to_jsonable(result.stats),
        "metrics": {key: _to_jsonable(value) for key, value in result.metrics.items() if key != "latest_cycles"},
        "rows": _to_jsonable(result.rows),
    }

    text = json.dumps(report, indent=2)
    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
        logger.info("report_written", path=str(out_path))
    else:
        print(text)


if __name__ == "__main__":
    main()
