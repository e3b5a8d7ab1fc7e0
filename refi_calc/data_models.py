"""Data models for the refinance calculator.

This module defines dataclasses representing the entities used by the
calculator: rate segments, the loan parameters handed to the engine, the rows
and result of a computed schedule, and the bank offers the comparison view
works with. Using dataclasses makes it easy to construct, inspect and
serialize these structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional, Tuple

# Labels of the flat "other cost" line items attached to a new offer.
DEFAULT_OTHER_COST_LABELS = (
    "MRTA",
    "Appraisal fee",
    "Mortgage registration fee",
    "Processing fee",
    "Early closure penalty",
)


def default_other_costs() -> Dict[str, Decimal]:
    return {label: Decimal("0") for label in DEFAULT_OTHER_COST_LABELS}


@dataclass(frozen=True)
class RateSegment:
    """A contiguous span of months sharing one annual interest rate.

    Attributes
    ----------
    duration_months: int
        Number of months the rate applies for. The engine caps it to the
        months left in the term.
    annual_rate_percent: Decimal
        Nominal annual rate in percent, e.g. ``Decimal("5.37")``.
    """

    duration_months: int
    annual_rate_percent: Decimal


@dataclass(frozen=True)
class LoanParameters:
    """Everything the schedule engine needs to amortize one loan.

    When ``monthly_payment_override`` is ``None`` the payment is derived from
    the annuity formula and re-derived whenever the rate changes. When it is
    set, that amount is paid every month until the balance is cleared or the
    term ends.
    """

    principal: Decimal
    term_months: int
    rate_schedule: Tuple[RateSegment, ...]
    monthly_payment_override: Optional[Decimal] = None
    prepayment_percent: Decimal = Decimal("0")


@dataclass(frozen=True)
class ScheduleRow:
    """One paid month of an amortization schedule (``index`` is 1-based)."""

    index: int
    annual_rate_percent: Decimal
    scheduled_payment: Decimal
    interest_portion: Decimal
    base_principal_portion: Decimal
    prepayment_amount: Decimal
    total_principal_portion: Decimal
    ending_balance: Decimal


@dataclass(frozen=True)
class ScheduleResult:
    """The computed schedule together with its totals.

    ``rows`` may be shorter than the term when the loan is paid off early.
    ``total_payment`` counts scheduled payments plus prepayments.
    """

    rows: Tuple[ScheduleRow, ...]
    total_interest: Decimal
    total_payment: Decimal
    final_balance: Decimal


@dataclass(frozen=True)
class SummaryWindow:
    """Totals over the whole schedule or over its first ``months`` rows."""

    months: int
    total_interest: Decimal
    total_payment: Decimal
    total_principal: Decimal


@dataclass
class BankOffer:
    """A refinance offer as entered by the user.

    Rates are given for each of the first three years plus the rate that
    applies from year four on. ``monthly_override`` holds the installment the
    bank actually quotes, if known; leave it ``None`` to let the engine
    derive it.
    """

    name: str
    principal: Decimal
    term_years: Decimal
    rate1: Decimal
    rate2: Decimal
    rate3: Decimal
    rate_after: Decimal
    monthly_override: Optional[Decimal] = None
    prepayment_percent: Decimal = Decimal("0")
    other_costs: Dict[str, Decimal] = field(default_factory=default_other_costs)

    @property
    def term_months(self) -> int:
        # Half-up rounding of fractional years, e.g. 20.5 years -> 246 months.
        return int((self.term_years * 12).to_integral_value(rounding=ROUND_HALF_UP))

    @property
    def other_costs_total(self) -> Decimal:
        return sum(self.other_costs.values(), Decimal("0"))

    def rate_schedule(self) -> Tuple[RateSegment, ...]:
        """Return the year 1, 2, 3 and "after year 3" segments."""
        return (
            RateSegment(12, self.rate1),
            RateSegment(12, self.rate2),
            RateSegment(12, self.rate3),
            RateSegment(max(0, self.term_months - 36), self.rate_after),
        )

    def to_parameters(self) -> LoanParameters:
        return LoanParameters(
            principal=self.principal,
            term_months=self.term_months,
            rate_schedule=self.rate_schedule(),
            monthly_payment_override=self.monthly_override,
            prepayment_percent=self.prepayment_percent,
        )


@dataclass(frozen=True)
class OfferComparison:
    """One line of the inter-offer comparison table.

    ``delta_vs_current`` is ``None`` for the first offer, which serves as the
    baseline. A positive delta means the offer costs more than the baseline
    over the comparison window.
    """

    index: int
    name: str
    monthly_payment: Decimal
    interest_window: Decimal
    other_costs: Decimal
    total_window: Decimal
    delta_vs_current: Optional[Decimal]
    is_best: bool
    rate_after: Decimal
    payoff_months: int
