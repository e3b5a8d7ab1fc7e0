"""Export helpers for computed schedules.

Schedules can be written as CSV (one line per paid month) or as JSON (rows
plus totals). Month labels are produced from a caller-supplied start month;
the schedule itself only carries the row position.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import IO, Any, Dict, Iterator, List

from .data_models import ScheduleResult, ScheduleRow
from .utils import MONEY_PLACES, RATE_PLACES, add_months, month_label

CSV_HEADER = [
    "Month",
    "Installment",
    "Rate (%)",
    "Payment",
    "Prepayment",
    "Principal",
    "Total principal",
    "Interest",
    "Balance",
]


def _money(value: Decimal) -> str:
    return str(value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP))


def _rate(value: Decimal) -> str:
    return str(value.quantize(RATE_PLACES, rounding=ROUND_HALF_UP))


def csv_rows(rows: List[ScheduleRow], start: date) -> Iterator[List[str]]:
    """Yield the CSV cells for each schedule row, in column order."""
    for offset, row in enumerate(rows):
        yield [
            month_label(start, offset),
            str(row.index),
            _rate(row.annual_rate_percent),
            _money(row.scheduled_payment),
            _money(row.prepayment_amount),
            _money(row.base_principal_portion),
            _money(row.total_principal_portion),
            _money(row.interest_portion),
            _money(row.ending_balance),
        ]


def write_schedule_csv(stream: IO[str], result: ScheduleResult, start: date) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    writer.writerows(csv_rows(list(result.rows), start))


def export_to_csv(path: Path, result: ScheduleResult, start: date) -> None:
    """Export the schedule to a CSV file."""
    with path.open("w", newline="", encoding="utf-8") as f:
        write_schedule_csv(f, result, start)


def schedule_to_dict(result: ScheduleResult, start: date) -> Dict[str, Any]:
    """Convert a schedule into JSON-serialisable data."""
    rows = []
    for offset, row in enumerate(result.rows):
        rows.append(
            {
                "month": add_months(start, offset).strftime("%Y-%m"),
                "index": row.index,
                "rate": float(row.annual_rate_percent),
                "payment": float(row.scheduled_payment),
                "prepayment": float(row.prepayment_amount),
                "principal": float(row.base_principal_portion),
                "total_principal": float(row.total_principal_portion),
                "interest": float(row.interest_portion),
                "balance": float(row.ending_balance),
            }
        )
    return {
        "totals": {
            "months": len(result.rows),
            "total_interest": float(result.total_interest),
            "total_payment": float(result.total_payment),
            "final_balance": float(result.final_balance),
        },
        "schedule": rows,
    }


def export_to_json(path: Path, result: ScheduleResult, start: date) -> None:
    """Export schedule and totals to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(schedule_to_dict(result, start), f, indent=2)
