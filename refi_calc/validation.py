"""Input checks run before a schedule is computed.

Invalid input is rejected as a whole; the engine never produces a partial
schedule for parameters that fail here.
"""

from __future__ import annotations

from decimal import Decimal

from .data_models import BankOffer, LoanParameters


class ValidationError(ValueError):
    """Raised when loan parameters or an offer are malformed."""


def validate_parameters(params: LoanParameters) -> LoanParameters:
    """Check ``params`` and return them unchanged if they are usable.

    Rate schedules whose durations add up to less than the term are accepted:
    the last segment's rate carries the remaining months. Schedules that add
    up to more are accepted as well, the surplus is never reached.
    """
    if params.principal <= 0:
        raise ValidationError("Principal must be positive")
    if params.term_months <= 0:
        raise ValidationError("Term must be a positive number of months")
    if not params.rate_schedule:
        raise ValidationError("Rate schedule must contain at least one segment")
    for position, segment in enumerate(params.rate_schedule, start=1):
        if segment.annual_rate_percent < 0:
            raise ValidationError(f"Rate of segment {position} must not be negative")
        if segment.duration_months < 0:
            raise ValidationError(f"Duration of segment {position} must not be negative")
    override = params.monthly_payment_override
    if override is not None and override <= 0:
        raise ValidationError("Monthly payment override must be positive when given")
    if params.prepayment_percent < 0:
        raise ValidationError("Prepayment percent must not be negative")
    return params


def validate_offer(offer: BankOffer) -> BankOffer:
    if not offer.name.strip():
        raise ValidationError("Offer name must not be empty")
    for label, amount in offer.other_costs.items():
        if amount < Decimal("0"):
            raise ValidationError(f"Cost '{label}' must not be negative")
    validate_parameters(offer.to_parameters())
    return offer
