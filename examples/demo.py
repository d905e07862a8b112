"""Demo script for cycle-report."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from cycle_report.adapters import json_adapter
from cycle_report.config import configure_logging
from cycle_report.formatting import format_duration
from cycle_report.report_builder import build_report


def main() -> None:
    configure_logging("INFO")
    events = json_adapter.parse("examples/sample_events.json")
    work_orders = json_adapter.parse_work_orders("examples/sample_work_orders.json")
    result = build_report(events, work_orders)

    for row in result.rows:
        verdict = row.verdict
        print(
            f"{row.serial_no or '':>3} {row.timestamp.isoformat() if row.timestamp else '-':<26} "
            f"{type(row.body).__name__:<16} {row.action or '':<13} {row.summary or '':<28} "
            f"{verdict.classification.value}/{verdict.reason_code.value}"
        )

    stats = result.stats
    print("Jobs:", stats.total_jobs, "Cycles:", stats.total_cycles)
    print("Cutting:", format_duration(stats.total_cutting_sec), "Utilization:", f"{stats.utilization_pct}%")


if __name__ == "__main__":
    main()
