"""Core calculation engine for the refinance calculator.

This module builds month-by-month amortization schedules for a loan whose
annual rate changes in steps (for example a promotional rate for the first
years followed by a floating rate). Every time the rate changes the
installment is re-derived so the remaining balance is paid off over the
remaining months of the original term; the term itself never moves. An
optional fixed installment replaces the derived one, and an optional
prepayment percentage adds extra principal on top of each installment.

Results are returned as an immutable ``ScheduleResult``.
"""

from __future__ import annotations

import logging
from decimal import Decimal, getcontext
from typing import List

from .data_models import LoanParameters, RateSegment, ScheduleResult, ScheduleRow
from .validation import validate_parameters

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Convert an annual nominal rate in percent into a monthly decimal rate."""
    return annual_rate_percent / Decimal(12) / Decimal(100)


def payment(rate_per_month: Decimal, remaining_months: int, balance: Decimal) -> Decimal:
    """Return the installment that retires ``balance`` over ``remaining_months``.

    The formula is:

        payment = B * i * (1 + i)^n / ((1 + i)^n - 1)

    where ``B`` is the balance, ``i`` the monthly rate and ``n`` the number of
    remaining payments. When the rate is zero, the payment simplifies to
    ``B / n``.

    Raises
    ------
    ArithmeticError
        If ``remaining_months`` is lower than one. The schedule builder caps
        every segment to the months left, so this signals a programming
        error rather than bad user input.
    """
    if remaining_months < 1:
        raise ArithmeticError(f"Invalid term: {remaining_months} remaining months")
    if rate_per_month == 0:
        return balance / Decimal(remaining_months)
    factor = (1 + rate_per_month) ** remaining_months
    return balance * rate_per_month * factor / (factor - 1)


def _segment_length(segment: RateSegment, is_last: bool, remaining_term: int) -> int:
    # The last segment covers whatever is left of the term, even when its own
    # duration is shorter.
    if is_last:
        return remaining_term
    return min(segment.duration_months, remaining_term)


def compute_schedule(params: LoanParameters) -> ScheduleResult:
    """Compute the amortization schedule for ``params``.

    Parameters
    ----------
    params: LoanParameters
        The loan to amortize. The parameters are validated first and a
        ``ValidationError`` is raised before any row is produced if they are
        malformed.

    Returns
    -------
    ScheduleResult
        One row per paid month. The schedule stops as soon as the balance
        reaches zero, so it is shorter than ``params.term_months`` when
        prepayments or a generous fixed installment pay the loan off early.

    Notes
    -----
    When the installment is smaller than the month's interest, the principal
    portion is floored at zero: the balance stays where it is instead of
    growing. Negative amortization is not modelled.
    """
    validate_parameters(params)

    balance = params.principal
    remaining_term = params.term_months
    override = params.monthly_payment_override
    prepay_fraction = params.prepayment_percent / Decimal(100)

    rows: List[ScheduleRow] = []
    last_segment = len(params.rate_schedule) - 1

    for position, segment in enumerate(params.rate_schedule):
        if remaining_term <= 0 or balance <= 0:
            break
        segment_months = _segment_length(segment, position == last_segment, remaining_term)
        if segment_months <= 0:
            continue

        rate = monthly_rate(segment.annual_rate_percent)
        # Re-amortize over the full remaining term, not just this segment.
        installment = override if override is not None else payment(rate, remaining_term, balance)

        for _ in range(segment_months):
            interest = balance * rate
            base_principal = max(ZERO, installment - interest)
            prepayment = max(ZERO, installment * prepay_fraction)
            total_principal = base_principal + prepayment

            # Pay off exactly on overshoot and on the final month of the term.
            if total_principal > balance or remaining_term == 1:
                total_principal = balance

            ending_balance = max(ZERO, balance - total_principal)
            rows.append(
                ScheduleRow(
                    index=len(rows) + 1,
                    annual_rate_percent=segment.annual_rate_percent,
                    scheduled_payment=installment,
                    interest_portion=interest,
                    base_principal_portion=base_principal,
                    prepayment_amount=prepayment,
                    total_principal_portion=total_principal,
                    ending_balance=ending_balance,
                )
            )

            balance = ending_balance
            remaining_term -= 1
            if balance <= 0:
                break

    total_interest = sum((row.interest_portion for row in rows), ZERO)
    total_payment = sum((row.scheduled_payment + row.prepayment_amount for row in rows), ZERO)
    logger.debug(
        "Computed %d of %d months, total interest %.2f, final balance %.2f",
        len(rows),
        params.term_months,
        total_interest,
        balance,
    )
    return ScheduleResult(
        rows=tuple(rows),
        total_interest=total_interest,
        total_payment=total_payment,
        final_balance=balance,
    )
