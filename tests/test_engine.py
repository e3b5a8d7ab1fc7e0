from decimal import Decimal

import pytest

from refi_calc.data_models import LoanParameters, RateSegment
from refi_calc.engine import compute_schedule, monthly_rate, payment
from refi_calc.summary import payoff_month_count
from refi_calc.validation import ValidationError

CENT = Decimal("0.01")
TOLERANCE = Decimal("1e-12")


def _flat(principal, months, rate, **kwargs) -> LoanParameters:
    return LoanParameters(
        principal=Decimal(principal),
        term_months=months,
        rate_schedule=(RateSegment(months, Decimal(rate)),),
        **kwargs,
    )


class TestPayment:
    def test_standard_mortgage(self):
        """$400K at 7% for 30 years."""
        pmt = payment(monthly_rate(Decimal("7")), 360, Decimal("400000"))
        assert pmt.quantize(CENT) == Decimal("2661.21")

    def test_twelve_month_loan(self):
        pmt = payment(monthly_rate(Decimal("6")), 12, Decimal("1200000"))
        assert pmt.quantize(CENT) == Decimal("103279.72")

    def test_zero_rate_is_straight_line(self):
        assert payment(Decimal("0"), 12, Decimal("120000")) == Decimal("10000")

    def test_zero_balance(self):
        assert payment(monthly_rate(Decimal("5")), 24, Decimal("0")) == 0

    @pytest.mark.parametrize("months", [0, -1])
    def test_invalid_term(self, months):
        with pytest.raises(ArithmeticError):
            payment(monthly_rate(Decimal("5")), months, Decimal("1000"))

    def test_monthly_rate(self):
        assert monthly_rate(Decimal("6")) == Decimal("0.005")


class TestZeroRate:
    def test_straight_line_schedule(self):
        result = compute_schedule(_flat("120000", 12, "0"))
        assert len(result.rows) == 12
        assert all(r.scheduled_payment == Decimal("10000") for r in result.rows)
        assert result.total_interest == 0
        assert [r.ending_balance for r in result.rows][:3] == [
            Decimal("110000"),
            Decimal("100000"),
            Decimal("90000"),
        ]
        assert result.final_balance == 0


class TestScenarioA:
    def test_first_month_interest(self, scenario_a):
        result = compute_schedule(scenario_a)
        assert result.rows[0].interest_portion == Decimal("6000")

    def test_pays_off_on_last_row(self, scenario_a):
        result = compute_schedule(scenario_a)
        assert len(result.rows) == 12
        assert result.rows[-1].ending_balance == 0
        assert result.final_balance == 0

    def test_rows_are_one_indexed(self, scenario_a):
        result = compute_schedule(scenario_a)
        assert [r.index for r in result.rows] == list(range(1, 13))

    def test_principal_sums_to_loan(self, scenario_a):
        result = compute_schedule(scenario_a)
        paid = sum(r.total_principal_portion for r in result.rows)
        assert abs(paid - (scenario_a.principal - result.final_balance)) < TOLERANCE

    def test_totals(self, scenario_a):
        result = compute_schedule(scenario_a)
        assert result.total_interest == sum(r.interest_portion for r in result.rows)
        assert result.total_payment == sum(
            r.scheduled_payment + r.prepayment_amount for r in result.rows
        )

    def test_recompute_is_identical(self, scenario_a):
        assert compute_schedule(scenario_a) == compute_schedule(scenario_a)


class TestScenarioB:
    """Installment below the interest: principal is floored at zero."""

    def test_balance_does_not_decrease(self, scenario_a):
        params = LoanParameters(
            principal=scenario_a.principal,
            term_months=scenario_a.term_months,
            rate_schedule=scenario_a.rate_schedule,
            monthly_payment_override=Decimal("5000"),
        )
        result = compute_schedule(params)
        first = result.rows[0]
        assert first.interest_portion == Decimal("6000")
        assert first.base_principal_portion == 0
        assert first.total_principal_portion == 0
        assert first.ending_balance == Decimal("1200000")

    def test_last_month_clears_balance(self, scenario_a):
        params = LoanParameters(
            principal=scenario_a.principal,
            term_months=scenario_a.term_months,
            rate_schedule=scenario_a.rate_schedule,
            monthly_payment_override=Decimal("5000"),
        )
        result = compute_schedule(params)
        assert len(result.rows) == 12
        assert all(r.ending_balance == Decimal("1200000") for r in result.rows[:-1])
        assert result.rows[-1].total_principal_portion == Decimal("1200000")
        assert result.rows[-1].ending_balance == 0


class TestScenarioC:
    def _with_prepay(self, params, percent):
        return LoanParameters(
            principal=params.principal,
            term_months=params.term_months,
            rate_schedule=params.rate_schedule,
            prepayment_percent=Decimal(percent),
        )

    def test_prepayment_shortens_and_saves(self, step_rate_loan):
        base = compute_schedule(self._with_prepay(step_rate_loan, "0"))
        prepaid = compute_schedule(self._with_prepay(step_rate_loan, "10"))
        assert payoff_month_count(base) == 240
        assert payoff_month_count(prepaid) < 240
        assert prepaid.total_interest < base.total_interest
        assert prepaid.final_balance == 0

    def test_prepayment_amount(self, step_rate_loan):
        row = compute_schedule(self._with_prepay(step_rate_loan, "10")).rows[0]
        assert row.prepayment_amount == row.scheduled_payment / 10
        assert row.total_principal_portion == row.base_principal_portion + row.prepayment_amount

    def test_more_prepayment_never_lengthens(self, step_rate_loan):
        months = [
            payoff_month_count(compute_schedule(self._with_prepay(step_rate_loan, p)))
            for p in ("0", "1", "5", "10", "25", "100")
        ]
        assert months == sorted(months, reverse=True)


class TestRateSegments:
    def test_rates_follow_segments(self, step_rate_loan):
        rows = compute_schedule(step_rate_loan).rows
        assert rows[0].annual_rate_percent == Decimal("3")
        assert rows[12].annual_rate_percent == Decimal("4")
        assert rows[24].annual_rate_percent == Decimal("5")
        assert rows[36].annual_rate_percent == Decimal("6")
        assert rows[-1].annual_rate_percent == Decimal("6")

    def test_payment_reamortized_over_remaining_term(self, step_rate_loan):
        rows = compute_schedule(step_rate_loan).rows
        expected = payment(monthly_rate(Decimal("4")), 228, rows[11].ending_balance)
        assert rows[12].scheduled_payment == expected
        assert rows[23].scheduled_payment == expected

    def test_payment_constant_within_segment(self, step_rate_loan):
        rows = compute_schedule(step_rate_loan).rows
        assert len({r.scheduled_payment for r in rows[:12]}) == 1

    def test_trailing_segment_carries_forward(self):
        params = LoanParameters(
            principal=Decimal("100000"),
            term_months=24,
            rate_schedule=(RateSegment(6, Decimal("2")), RateSegment(6, Decimal("3"))),
        )
        rows = compute_schedule(params).rows
        assert len(rows) == 24
        assert all(r.annual_rate_percent == Decimal("3") for r in rows[6:])
        assert rows[-1].ending_balance == 0

    def test_excess_segments_never_reached(self):
        params = LoanParameters(
            principal=Decimal("100000"),
            term_months=12,
            rate_schedule=(RateSegment(24, Decimal("5")), RateSegment(12, Decimal("9"))),
        )
        rows = compute_schedule(params).rows
        assert len(rows) == 12
        assert {r.annual_rate_percent for r in rows} == {Decimal("5")}

    def test_zero_length_segment_is_skipped(self):
        params = LoanParameters(
            principal=Decimal("100000"),
            term_months=24,
            rate_schedule=(
                RateSegment(12, Decimal("1")),
                RateSegment(0, Decimal("9")),
                RateSegment(12, Decimal("2")),
            ),
        )
        rows = compute_schedule(params).rows
        assert Decimal("9") not in {r.annual_rate_percent for r in rows}
        assert len(rows) == 24

    def test_balances_non_increasing(self, step_rate_loan):
        rows = compute_schedule(step_rate_loan).rows
        for previous, current in zip(rows, rows[1:]):
            assert current.ending_balance <= previous.ending_balance
        assert all(r.ending_balance >= 0 for r in rows)

    def test_completed_schedule_repays_principal(self, step_rate_loan):
        result = compute_schedule(step_rate_loan)
        paid = sum(r.total_principal_portion for r in result.rows)
        assert result.final_balance == 0
        assert abs(paid - step_rate_loan.principal) < TOLERANCE


class TestOverride:
    def test_large_override_pays_off_early(self):
        result = compute_schedule(_flat("1200", 12, "0", monthly_payment_override=Decimal("200")))
        assert len(result.rows) == 6
        assert all(r.total_principal_portion == Decimal("200") for r in result.rows)
        assert result.final_balance == 0

    def test_overshoot_is_clamped(self):
        result = compute_schedule(_flat("1000", 12, "0", monthly_payment_override=Decimal("300")))
        last = result.rows[-1]
        assert len(result.rows) == 4
        assert last.base_principal_portion == Decimal("300")
        assert last.total_principal_portion == Decimal("100")
        assert last.ending_balance == 0

    def test_override_used_across_rate_changes(self, step_rate_loan):
        params = LoanParameters(
            principal=step_rate_loan.principal,
            term_months=step_rate_loan.term_months,
            rate_schedule=step_rate_loan.rate_schedule,
            monthly_payment_override=Decimal("15000"),
        )
        rows = compute_schedule(params).rows
        assert {r.scheduled_payment for r in rows} == {Decimal("15000")}


class TestInvalidInput:
    def test_rejected_before_computing(self):
        with pytest.raises(ValidationError):
            compute_schedule(_flat("0", 12, "5"))

    def test_negative_rate(self):
        with pytest.raises(ValidationError):
            compute_schedule(_flat("1000", 12, "-1"))
