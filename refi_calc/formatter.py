"""Output helpers for the refinance calculator.

This module provides simple functions to render schedules, their totals and
the offer comparison in a tabular text format. We rely only on built-in
printing and string formatting.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from .data_models import OfferComparison, ScheduleResult, ScheduleRow, SummaryWindow
from .utils import month_label


def fmt_money(value: Decimal) -> str:
    """Format money with thousands separators, e.g. ``2,623,000.00``."""
    return f"{value:,.2f}"


def fmt_rate(value: Decimal) -> str:
    return f"{value:.3f}"


def print_summary(result: ScheduleResult, term_months: int, window: Optional[SummaryWindow] = None) -> None:
    """Print the totals of a schedule in a human-readable format."""
    principal_paid = sum((r.total_principal_portion for r in result.rows), Decimal("0"))
    print("Summary")
    print("-" * 72)
    if result.rows:
        print(f"First payment      : {fmt_money(result.rows[0].scheduled_payment)}")
    print(f"Principal paid     : {fmt_money(principal_paid)}")
    print(f"Total interest     : {fmt_money(result.total_interest)}")
    print(f"Total payment      : {fmt_money(result.total_payment)}")
    print(f"Final balance      : {fmt_money(result.final_balance)}")
    print(f"Payments made      : {len(result.rows)} of {term_months}")
    if window is not None:
        print(f"Interest ({window.months:>3d} mo)  : {fmt_money(window.total_interest)}")
    print("-" * 72)


def print_schedule(rows: Iterable[ScheduleRow], start: date) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Month", "No", "Rate%", "Payment", "Prepay", "Principal", "Total principal", "Interest", "Balance"]
    print("\t".join(headers))
    for offset, row in enumerate(rows):
        print(
            "\t".join(
                [
                    month_label(start, offset),
                    str(row.index),
                    fmt_rate(row.annual_rate_percent),
                    fmt_money(row.scheduled_payment),
                    fmt_money(row.prepayment_amount),
                    fmt_money(row.base_principal_portion),
                    fmt_money(row.total_principal_portion),
                    fmt_money(row.interest_portion),
                    fmt_money(row.ending_balance),
                ]
            )
        )


def delta_text(delta: Optional[Decimal]) -> str:
    """Render a cost difference against the current loan.

    Savings are shown as a plain amount, extra cost in parentheses.
    """
    if delta is None:
        return "-"
    if delta == 0:
        return "0.00"
    if delta > 0:
        return f"({fmt_money(delta)})"
    return fmt_money(abs(delta))


def print_comparison(lines: List[OfferComparison], window: int) -> None:
    """Print the comparison table, one line per offer.

    The window cost is the interest paid over the first ``window`` months plus
    the flat other costs. The cheapest offer is marked with ``*``.
    """
    print(f"Comparison (interest over {window} months + other costs)")
    print("=" * 100)
    print(
        f"{'#':>2s} {'Offer':24s} {'Monthly':>12s} {'Interest':>14s} {'Other':>10s} "
        f"{'Total':>15s} {'vs current':>14s} {'After':>7s}"
    )
    for line in lines:
        marker = "*" if line.is_best else " "
        print(
            f"{line.index:>2d} {line.name[:24]:24s} {fmt_money(line.monthly_payment):>12s} "
            f"{fmt_money(line.interest_window):>14s} {fmt_money(line.other_costs):>10s} "
            f"{fmt_money(line.total_window):>14s}{marker} {delta_text(line.delta_vs_current):>14s} "
            f"{fmt_rate(line.rate_after):>6s}%"
        )
    print("=" * 100)
