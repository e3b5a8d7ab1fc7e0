"""Shared fixtures.

Scenario A loan: 1,200,000 over 12 months at a flat 6 %.
Step-rate loan: 2,000,000 over 20 years, 3 % / 4 % / 5 % for years 1-3, then 6 %.
"""

from decimal import Decimal

import pytest

from refi_calc.data_models import LoanParameters, RateSegment
from refi_calc.storage import MemoryStore, OfferRepository


@pytest.fixture
def scenario_a() -> LoanParameters:
    return LoanParameters(
        principal=Decimal("1200000"),
        term_months=12,
        rate_schedule=(RateSegment(12, Decimal("6")),),
    )


@pytest.fixture
def step_rate_loan() -> LoanParameters:
    return LoanParameters(
        principal=Decimal("2000000"),
        term_months=240,
        rate_schedule=(
            RateSegment(12, Decimal("3")),
            RateSegment(12, Decimal("4")),
            RateSegment(12, Decimal("5")),
            RateSegment(204, Decimal("6")),
        ),
    )


@pytest.fixture
def repository() -> OfferRepository:
    return OfferRepository(MemoryStore())
