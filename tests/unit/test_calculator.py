"""Unit tests for calculator.py: moratorium accrual, EMI, schedule, affordability."""
import logging

import pytest

from edu_loan_calculator.calculator import (
    AffordabilityInputs,
    InvalidTenureError,
    LoanTerms,
    ProjectionStatus,
    accrue_moratorium_interest,
    amortize_month,
    calculate_loan,
    compute_emi,
    generate_schedule,
    project_affordable_payoff,
)
from edu_loan_calculator.config import INSUFFICIENT_INCOME, MAX_SCHEDULE_MONTHS


class TestMoratoriumAccrual:
    def test_course_only(self):
        # 1,000,000 * 10.5 * 4 / 100 = 420,000
        assert accrue_moratorium_interest(1_000_000, 10.5, 4, 0) == pytest.approx(1_420_000)

    def test_resting_period_in_months(self):
        # 4 years + 6 months = 4.5 years -> 1,000,000 * 10 * 4.5 / 100 = 450,000
        assert accrue_moratorium_interest(1_000_000, 10, 4, 6) == pytest.approx(1_450_000)

    def test_zero_period_leaves_principal(self):
        assert accrue_moratorium_interest(500_000, 9, 0, 0) == 500_000

    def test_zero_rate_leaves_principal(self):
        assert accrue_moratorium_interest(500_000, 0, 4, 12) == 500_000

    @pytest.mark.parametrize("rate,course,resting", [
        (8.5, 2, 6),
        (12, 5, 0),
        (0.1, 0, 1),
    ])
    def test_never_below_loan_amount(self, rate, course, resting):
        assert accrue_moratorium_interest(250_000, rate, course, resting) > 250_000


class TestComputeEMI:
    def test_education_loan_reference_case(self):
        # P=1,420,000, r=10.5%/12, n=120 -> EMI ≈ 19,160.77
        emi = compute_emi(1_420_000, 10.5, 10)
        assert emi == pytest.approx(19_160.77, abs=1)

    def test_zero_interest(self):
        """Zero interest: EMI = P / n exactly."""
        assert compute_emi(120_000, 0, 10) == 1000.0

    def test_single_month(self):
        # EMI = 1000 * 0.01 * 1.01 / 0.01 = 1010
        assert compute_emi(1000, 12, 1 / 12) == pytest.approx(1010.0)

    def test_fractional_tenure_allowed(self):
        emi = compute_emi(100_000, 9, 2.5)
        assert compute_emi(100_000, 9, 3) < emi < compute_emi(100_000, 9, 2)

    @pytest.mark.parametrize("tenure", [0, -1, float("inf"), float("nan")])
    def test_invalid_tenure(self, tenure):
        with pytest.raises(InvalidTenureError, match="tenure"):
            compute_emi(100_000, 10, tenure)

    def test_invalid_tenure_is_value_error(self):
        with pytest.raises(ValueError):
            compute_emi(100_000, 10, 0)

    def test_non_decreasing_in_rate(self):
        emis = [compute_emi(1_000_000, rate, 10) for rate in (0, 2, 5.5, 10.5, 15, 24)]
        assert emis == sorted(emis)

    def test_non_increasing_in_tenure(self):
        emis = [compute_emi(1_000_000, 10.5, years) for years in (1, 3, 5, 10, 15, 30)]
        assert emis == sorted(emis, reverse=True)

    def test_huge_tenure_tends_to_interest_only(self):
        assert compute_emi(100_000, 12, 10 ** 9) == pytest.approx(1000.0)

    @pytest.mark.parametrize("annual_rate_percent", [1.2e-11, 2.16e-10, 1e-16])
    def test_tiny_rate_matches_straight_line(self, annual_rate_percent):
        # monthly rates of 1e-14 and below vanish from 1 + r
        emi = compute_emi(120_000, annual_rate_percent, 10)
        assert emi == pytest.approx(1000.0, abs=0.01)

    def test_tiny_rate_schedule_runs_full_tenure(self):
        annual_rate_percent = 2.16e-10
        emi = compute_emi(120_000, annual_rate_percent, 10)
        schedule = generate_schedule(120_000, annual_rate_percent / 12 / 100, emi)
        assert len(schedule) == 120
        assert schedule.reached_payoff


class TestAmortizeMonth:
    def test_interest_charged_first(self):
        step = amortize_month(10_000, 0.01, 500)
        assert step.interest == pytest.approx(100)
        assert step.principal == pytest.approx(400)
        assert step.closing_balance == pytest.approx(9_600)

    def test_principal_capped_at_balance(self):
        step = amortize_month(300, 0.01, 500)
        assert step.principal == 300
        assert step.closing_balance == 0

    def test_payment_below_interest(self):
        step = amortize_month(10_000, 0.01, 50)
        assert step.principal == pytest.approx(-50)
        assert step.closing_balance == pytest.approx(10_050)


class TestGenerateSchedule:
    def _build(self, principal=1_420_000.0, rate_percent=10.5, years=10):
        emi = compute_emi(principal, rate_percent, years)
        return generate_schedule(principal, rate_percent / 12 / 100, emi), emi

    def test_row_count(self):
        schedule, _ = self._build()
        assert len(schedule) == 120
        assert schedule.reached_payoff

    def test_first_row(self):
        schedule, emi = self._build()
        row = schedule[0]
        assert row.month == 1
        assert row.opening_balance == 1_420_000
        # interest = 1,420,000 * 0.00875 = 12,425
        assert row.interest_paid == pytest.approx(12_425)
        assert row.emi == pytest.approx(emi)

    def test_months_are_sequential(self):
        schedule, _ = self._build(years=3)
        assert [row.month for row in schedule] == list(range(1, len(schedule) + 1))

    def test_opening_equals_previous_closing(self):
        schedule, _ = self._build(years=5)
        for i in range(1, len(schedule)):
            assert schedule[i].opening_balance == schedule[i - 1].closing_balance

    def test_final_closing_balance_is_zero(self):
        schedule, _ = self._build()
        assert schedule[-1].closing_balance == pytest.approx(0, abs=0.01)

    def test_principal_sums_to_effective_principal(self):
        schedule, _ = self._build()
        assert schedule.total_principal == pytest.approx(1_420_000, abs=0.01)

    def test_emi_equals_principal_plus_interest(self):
        schedule, _ = self._build(years=2)
        for row in schedule:
            assert row.emi == pytest.approx(row.principal_paid + row.interest_paid)

    def test_closing_balance_decreases(self):
        schedule, _ = self._build(years=4)
        balances = [row.closing_balance for row in schedule]
        for i in range(len(balances) - 1):
            assert balances[i] > balances[i + 1], "Balance should decrease monotonically"

    def test_last_installment_never_overpays(self):
        # 1000 at 0% with EMI 300 -> 300, 300, 300, 100
        schedule = generate_schedule(1000, 0.0, 300)
        assert [row.emi for row in schedule] == [300, 300, 300, 100]
        assert schedule[-1].closing_balance == 0

    def test_zero_rate_rows(self):
        emi = compute_emi(120_000, 0, 10)
        schedule = generate_schedule(120_000, 0.0, emi)
        assert len(schedule) == 120
        for row in schedule:
            assert row.interest_paid == 0
            assert row.principal_paid == pytest.approx(emi)

    def test_already_paid_off_is_empty(self):
        schedule = generate_schedule(0.005, 0.01, 100)
        assert len(schedule) == 0
        assert schedule.reached_payoff

    def test_rows_are_immutable(self):
        schedule, _ = self._build(years=1)
        with pytest.raises(AttributeError):
            schedule[0].emi = 0


class TestScheduleCap:
    def test_nan_emi_not_reported_as_paid_off(self):
        schedule = generate_schedule(1000, 0.01, float("nan"))
        assert not schedule.reached_payoff

    def test_emi_below_interest_stops_at_cap(self):
        # interest on the first month is 10, EMI only 5: balance grows
        schedule = generate_schedule(1000, 0.01, 5)
        assert len(schedule) == MAX_SCHEDULE_MONTHS
        assert not schedule.reached_payoff
        assert schedule.final_balance > 1000

    def test_emi_equal_to_interest_stops_at_cap(self):
        schedule = generate_schedule(1000, 0.01, 10)
        assert len(schedule) == MAX_SCHEDULE_MONTHS
        assert not schedule.reached_payoff
        assert schedule.final_balance == pytest.approx(1000)

    def test_cap_is_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="edu_loan_calculator.calculator"):
            generate_schedule(1000, 0.01, 5)
        assert "stopped after 1000 months" in caplog.text

    def test_completed_schedule_not_flagged(self):
        schedule = generate_schedule(1000, 0.0, 1)
        assert len(schedule) == 1000
        assert schedule.reached_payoff


class TestAffordabilityProjection:
    def test_default_budget_pays_off(self):
        # disposable = 600,000 / 12 - 15,000 = 35,000 per month
        projection = project_affordable_payoff(1_420_000, 0.00875, 35_000)
        assert projection.status is ProjectionStatus.PAID_OFF
        assert projection.months == 51
        assert projection.years == pytest.approx(4.25)

    def test_negative_income_is_insufficient(self):
        disposable = 100_000 / 12 - 15_000
        projection = project_affordable_payoff(1_420_000, 0.00875, disposable)
        assert projection.status is ProjectionStatus.INSUFFICIENT_INCOME
        assert projection.years is None
        assert not projection.is_affordable

    def test_zero_income_is_insufficient(self):
        projection = project_affordable_payoff(100_000, 0.0, 0)
        assert projection.status is ProjectionStatus.INSUFFICIENT_INCOME

    def test_income_equal_to_interest_is_insufficient(self):
        # interest on 1,000,000 at 1%/month = 10,000
        projection = project_affordable_payoff(1_000_000, 0.01, 10_000)
        assert projection.status is ProjectionStatus.INSUFFICIENT_INCOME

    def test_income_just_above_interest_pays_off(self):
        projection = project_affordable_payoff(1_000_000, 0.01, 10_500)
        assert projection.status is ProjectionStatus.PAID_OFF
        assert projection.years > 0

    def test_zero_rate(self):
        projection = project_affordable_payoff(120_000, 0.0, 10_000)
        assert projection.months == 12
        assert projection.years == 1.0

    def test_cap_reached_is_flagged(self):
        # barely above the interest: never clears within 1000 months
        projection = project_affordable_payoff(1_000_000, 0.01, 10_000.01)
        assert projection.status is ProjectionStatus.CAP_REACHED
        assert projection.months == MAX_SCHEDULE_MONTHS
        assert projection.is_affordable


class TestCalculateLoan:
    def _terms(self, **overrides):
        values = dict(
            loan_amount=1_000_000.0,
            annual_interest_rate_percent=10.5,
            loan_tenure_years=10.0,
            course_duration_years=4.0,
            resting_period_months=0.0,
        )
        values.update(overrides)
        return LoanTerms(**values)

    def test_reference_scenario(self):
        result = calculate_loan(self._terms(), AffordabilityInputs(600_000, 15_000))
        assert result.effective_principal == pytest.approx(1_420_000)
        assert result.moratorium_interest == pytest.approx(420_000)
        assert result.total_period_years == 4.0
        assert result.monthly_rate == pytest.approx(0.00875)
        assert result.standard_emi == pytest.approx(19_160.77, abs=1)
        assert result.total_months == 120
        assert result.monthly_disposable_income == pytest.approx(35_000)
        assert result.actual_repayment_time_years == pytest.approx(4.25)

    def test_insufficient_income_sentinel(self):
        result = calculate_loan(self._terms(), AffordabilityInputs(100_000, 15_000))
        assert result.actual_repayment_time_years == INSUFFICIENT_INCOME
        assert result.repayment_projection.status is ProjectionStatus.INSUFFICIENT_INCOME
        # contractual schedule is unaffected by the borrower's budget
        assert result.total_months == 120

    def test_totals(self):
        result = calculate_loan(self._terms(), AffordabilityInputs(600_000, 15_000))
        schedule = result.amortization_schedule
        assert result.total_amount_payable == pytest.approx(schedule.total_principal + schedule.total_interest)
        assert result.total_interest == pytest.approx(420_000 + schedule.total_interest)

    def test_idempotent(self):
        terms = self._terms(resting_period_months=6.0)
        budget = AffordabilityInputs(900_000, 20_000)
        assert calculate_loan(terms, budget) == calculate_loan(terms, budget)

    def test_invalid_tenure_propagates(self):
        with pytest.raises(InvalidTenureError):
            calculate_loan(self._terms(loan_tenure_years=0.0), AffordabilityInputs(600_000, 15_000))

    def test_as_dict(self):
        result = calculate_loan(self._terms(), AffordabilityInputs(600_000, 15_000))
        mapping = result.as_dict()
        assert mapping["effectivePrincipal"] == result.effective_principal
        assert mapping["standardEMI"] == result.standard_emi
        assert len(mapping["amortizationSchedule"]) == 120
        assert mapping["actualRepaymentTimeYears"] == pytest.approx(4.25)
        assert mapping["scheduleReachedPayoff"] is True
        assert mapping["repaymentStatus"] == "paid_off"
