"""Aggregate figures derived from computed schedules.

The helpers here reduce a sequence of ``ScheduleRow`` objects into totals,
either over the whole schedule or over its first few months, and build the
inter-offer comparison used by the CLI and the web view.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from .data_models import BankOffer, OfferComparison, ScheduleResult, ScheduleRow, SummaryWindow
from .engine import compute_schedule

# Short-horizon comparisons look at the first three years.
COMPARISON_WINDOW_MONTHS = 36


def total_interest(rows: Iterable[ScheduleRow]) -> Decimal:
    return sum((row.interest_portion for row in rows), Decimal("0"))


def total_payment(rows: Iterable[ScheduleRow]) -> Decimal:
    """Scheduled installments plus prepayments."""
    return sum((row.scheduled_payment + row.prepayment_amount for row in rows), Decimal("0"))


def total_principal(rows: Iterable[ScheduleRow]) -> Decimal:
    return sum((row.total_principal_portion for row in rows), Decimal("0"))


def summarize(rows: Sequence[ScheduleRow], window: Optional[int] = None) -> SummaryWindow:
    """Return totals over ``rows``, restricted to the first ``window`` rows if given.

    A window longer than the schedule simply covers the whole schedule; the
    ``months`` field reports how many rows were actually summed.
    """
    if window is not None:
        if window < 0:
            raise ValueError("Window must not be negative")
        rows = rows[:window]
    return SummaryWindow(
        months=len(rows),
        total_interest=total_interest(rows),
        total_payment=total_payment(rows),
        total_principal=total_principal(rows),
    )


def payoff_month_count(result: ScheduleResult) -> int:
    """Number of months until the balance is cleared or the term runs out."""
    return len(result.rows)


def compare_offers(
    offers: Sequence[BankOffer], window: int = COMPARISON_WINDOW_MONTHS
) -> List[OfferComparison]:
    """Build one comparison line per offer, preserving the input order.

    Each offer is scheduled on its own. The cost of an offer over the window
    is its interest over the first ``window`` months plus its flat other
    costs. The first offer is the current loan, so deltas are measured
    against it; the offer(s) with the lowest window cost are flagged best.
    """
    lines = []
    for offer in offers:
        result = compute_schedule(offer.to_parameters())
        head = summarize(result.rows, window)
        monthly = result.rows[0].scheduled_payment if result.rows else Decimal("0")
        other = offer.other_costs_total
        lines.append((offer, result, head, monthly, other, head.total_interest + other))

    if not lines:
        return []

    baseline = lines[0][5]
    best = min(line[5] for line in lines)
    comparisons = []
    for index, (offer, result, head, monthly, other, total) in enumerate(lines):
        comparisons.append(
            OfferComparison(
                index=index,
                name=offer.name,
                monthly_payment=monthly,
                interest_window=head.total_interest,
                other_costs=other,
                total_window=total,
                delta_vs_current=None if index == 0 else total - baseline,
                is_best=total == best,
                rate_after=offer.rate_after,
                payoff_months=payoff_month_count(result),
            )
        )
    return comparisons
