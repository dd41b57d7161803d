"""Core education-loan calculation functions.

Pipeline:
    LoanTerms -> accrue_moratorium_interest -> compute_emi -> generate_schedule
    (effective principal, disposable income) -> project_affordable_payoff

Every function here is pure: no I/O, no shared state.  All values are
double-precision floats; nothing is rounded here, rounding happens only
at presentation / export time.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, NamedTuple, Optional

from .config import (
    INSUFFICIENT_INCOME,
    MAX_SCHEDULE_MONTHS,
    MONTHS_PER_YEAR,
    PAYOFF_EPSILON,
)

logger = logging.getLogger(__name__)


class InvalidTenureError(ValueError):
    """Raised when the repayment tenure yields no usable month count."""


# ──────────────────────────────────────────────────────────────────────────────
# Value types
# ──────────────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LoanTerms:
    loan_amount: float
    annual_interest_rate_percent: float
    loan_tenure_years: float
    course_duration_years: float = 0.0
    resting_period_months: float = 0.0

    @property
    def monthly_rate(self) -> float:
        return monthly_rate_from_annual(self.annual_interest_rate_percent)

    @property
    def moratorium_years(self) -> float:
        """Course duration plus resting period, in years."""
        return self.course_duration_years + self.resting_period_months / MONTHS_PER_YEAR


@dataclass(frozen=True)
class AffordabilityInputs:
    annual_salary: float
    monthly_expenses: float

    @property
    def monthly_disposable_income(self) -> float:
        return self.annual_salary / MONTHS_PER_YEAR - self.monthly_expenses


@dataclass(frozen=True)
class ScheduleRow:
    month: int
    opening_balance: float
    emi: float               # amount actually charged; differs from contractual EMI on the last row
    principal_paid: float
    interest_paid: float
    closing_balance: float


@dataclass(frozen=True)
class AmortizationSchedule:
    """Ordered month-by-month schedule.

    ``reached_payoff`` is False when generation stopped at the
    MAX_SCHEDULE_MONTHS bound with money still owed; such a schedule is
    partial and must not be presented as a complete repayment plan.
    """
    rows: tuple[ScheduleRow, ...]
    reached_payoff: bool

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[ScheduleRow]:
        return iter(self.rows)

    def __getitem__(self, index: int) -> ScheduleRow:
        return self.rows[index]

    @property
    def total_interest(self) -> float:
        return sum(row.interest_paid for row in self.rows)

    @property
    def total_principal(self) -> float:
        return sum(row.principal_paid for row in self.rows)

    @property
    def total_paid(self) -> float:
        return sum(row.emi for row in self.rows)

    @property
    def final_balance(self) -> float:
        return self.rows[-1].closing_balance if self.rows else 0.0


class ProjectionStatus(str, Enum):
    PAID_OFF = "paid_off"
    INSUFFICIENT_INCOME = "insufficient_income"
    CAP_REACHED = "cap_reached"


@dataclass(frozen=True)
class RepaymentProjection:
    status: ProjectionStatus
    months: int = 0

    @property
    def is_affordable(self) -> bool:
        return self.status is not ProjectionStatus.INSUFFICIENT_INCOME

    @property
    def years(self) -> Optional[float]:
        """Elapsed years to payoff, or None when income cannot cover the interest."""
        if not self.is_affordable:
            return None
        return self.months / MONTHS_PER_YEAR


@dataclass(frozen=True)
class LoanResult:
    terms: LoanTerms
    affordability: AffordabilityInputs
    moratorium_interest: float
    effective_principal: float
    monthly_rate: float
    standard_emi: float
    amortization_schedule: AmortizationSchedule
    repayment_projection: RepaymentProjection
    monthly_disposable_income: float

    @property
    def total_period_years(self) -> float:
        return self.terms.moratorium_years

    @property
    def actual_repayment_time_years(self) -> float:
        """Years to payoff from disposable income, or INSUFFICIENT_INCOME (-1.0)."""
        years = self.repayment_projection.years
        return INSUFFICIENT_INCOME if years is None else years

    @property
    def total_months(self) -> int:
        return len(self.amortization_schedule)

    @property
    def total_interest(self) -> float:
        """Moratorium interest plus interest paid over the schedule."""
        return self.moratorium_interest + self.amortization_schedule.total_interest

    @property
    def total_amount_payable(self) -> float:
        return self.amortization_schedule.total_paid

    def as_dict(self) -> dict[str, object]:
        return {
            "effectivePrincipal": self.effective_principal,
            "moratoriumInterest": self.moratorium_interest,
            "totalPeriodYears": self.total_period_years,
            "standardEMI": self.standard_emi,
            "monthlyDisposableIncome": self.monthly_disposable_income,
            "amortizationSchedule": list(self.amortization_schedule),
            "scheduleReachedPayoff": self.amortization_schedule.reached_payoff,
            "totalMonths": self.total_months,
            "totalInterest": self.total_interest,
            "totalAmountPayable": self.total_amount_payable,
            "actualRepaymentTimeYears": self.actual_repayment_time_years,
            "repaymentStatus": self.repayment_projection.status.value,
        }


# ──────────────────────────────────────────────────────────────────────────────
# Calculation stages
# ──────────────────────────────────────────────────────────────────────────────

def monthly_rate_from_annual(annual_rate_percent: float) -> float:
    return annual_rate_percent / MONTHS_PER_YEAR / 100


def accrue_moratorium_interest(
    loan_amount: float,
    annual_rate_percent: float,
    course_duration_years: float,
    resting_period_months: float,
) -> float:
    """Return the effective principal after the moratorium.

    Simple (non-compounding) interest accrues over the course plus resting
    period and is capitalized once at the end of deferment:
        P_eff = P + P * rate% * (course_years + resting_months / 12) / 100
    """
    total_period_years = course_duration_years + resting_period_months / MONTHS_PER_YEAR
    simple_interest = loan_amount * annual_rate_percent * total_period_years / 100
    return loan_amount + simple_interest


def compute_emi(
    effective_principal: float,
    annual_rate_percent: float,
    tenure_years: float,
) -> float:
    """Return the Equated Monthly Installment.

    Uses the standard reducing-balance formula:
        EMI = P * r * (1 + r)^n / ((1 + r)^n - 1)

    with r the monthly rate and n = tenure_years * 12 (fractional month
    counts are allowed).  If the rate is zero, EMI = P / n.
    """
    n = tenure_years * MONTHS_PER_YEAR
    if not math.isfinite(n) or n <= 0:
        raise InvalidTenureError(f"tenure must give a positive month count (got {tenure_years!r} years)")

    r = monthly_rate_from_annual(annual_rate_percent)
    if r == 0:
        return effective_principal / n

    # (1+r)^n - 1 via log1p/expm1; 1 + r loses r entirely for tiny rates
    try:
        growth = math.expm1(n * math.log1p(r))
    except OverflowError:
        # (1+r)^n / ((1+r)^n - 1) -> 1 for very long tenures
        return effective_principal * r
    if growth == 0:
        return effective_principal / n
    return effective_principal * r * (growth + 1) / growth


class MonthStep(NamedTuple):
    interest: float
    principal: float
    closing_balance: float


def amortize_month(balance: float, monthly_rate: float, payment: float) -> MonthStep:
    """Split one month's payment into interest and principal.

    Interest is charged first; the principal share is capped at the
    remaining balance so the final payment never overpays.
    """
    interest = balance * monthly_rate
    principal = min(payment - interest, balance)
    closing = max(balance - principal, 0.0)
    return MonthStep(interest, principal, closing)


def generate_schedule(
    effective_principal: float,
    monthly_rate: float,
    emi: float,
) -> AmortizationSchedule:
    """Build the month-by-month amortization schedule until payoff.

    Stops once the balance is within PAYOFF_EPSILON, or after
    MAX_SCHEDULE_MONTHS rows; in the latter case the schedule is flagged
    with ``reached_payoff=False``.
    """
    rows: list[ScheduleRow] = []
    balance = effective_principal
    month = 1

    while balance > PAYOFF_EPSILON:
        if len(rows) >= MAX_SCHEDULE_MONTHS:
            logger.warning(
                "Schedule stopped after %d months with %.2f still owed (EMI %.2f, first-month interest %.2f)",
                MAX_SCHEDULE_MONTHS, balance, emi, effective_principal * monthly_rate,
            )
            return AmortizationSchedule(rows=tuple(rows), reached_payoff=False)

        step = amortize_month(balance, monthly_rate, emi)
        rows.append(
            ScheduleRow(
                month=month,
                opening_balance=balance,
                emi=step.interest + step.principal,
                principal_paid=step.principal,
                interest_paid=step.interest,
                closing_balance=step.closing_balance,
            )
        )
        balance = step.closing_balance
        month += 1

    # a NaN balance also ends the loop without paying anything off
    reached_payoff = balance <= PAYOFF_EPSILON
    if not reached_payoff:
        logger.warning("Schedule stopped after %d months with a non-numeric balance (EMI %r)", len(rows), emi)
    return AmortizationSchedule(rows=tuple(rows), reached_payoff=reached_payoff)


def project_affordable_payoff(
    effective_principal: float,
    monthly_rate: float,
    disposable_income: float,
) -> RepaymentProjection:
    """Project how long paying the whole disposable income takes to clear the loan.

    Resolves to INSUFFICIENT_INCOME as soon as a month's payment does not
    cover that month's interest (or straight away if there is no disposable
    income at all); the balance is never simulated growing.
    """
    if disposable_income <= 0:
        return RepaymentProjection(ProjectionStatus.INSUFFICIENT_INCOME)

    balance = effective_principal
    months = 0
    while balance > PAYOFF_EPSILON:
        if months >= MAX_SCHEDULE_MONTHS:
            logger.warning(
                "Affordability projection stopped after %d months with %.2f still owed",
                MAX_SCHEDULE_MONTHS, balance,
            )
            return RepaymentProjection(ProjectionStatus.CAP_REACHED, months)

        step = amortize_month(balance, monthly_rate, disposable_income)
        if step.principal <= 0:
            return RepaymentProjection(ProjectionStatus.INSUFFICIENT_INCOME)
        balance = step.closing_balance
        months += 1

    return RepaymentProjection(ProjectionStatus.PAID_OFF, months)


def calculate_loan(terms: LoanTerms, affordability: AffordabilityInputs) -> LoanResult:
    """Run the full pipeline for one set of inputs."""
    effective_principal = accrue_moratorium_interest(
        terms.loan_amount,
        terms.annual_interest_rate_percent,
        terms.course_duration_years,
        terms.resting_period_months,
    )
    emi = compute_emi(effective_principal, terms.annual_interest_rate_percent, terms.loan_tenure_years)
    monthly_rate = terms.monthly_rate
    schedule = generate_schedule(effective_principal, monthly_rate, emi)

    disposable_income = affordability.monthly_disposable_income
    projection = project_affordable_payoff(effective_principal, monthly_rate, disposable_income)

    logger.debug(
        "Calculated loan: effective principal %.2f, EMI %.2f, %d months, projection %s",
        effective_principal, emi, len(schedule), projection.status.value,
    )

    return LoanResult(
        terms=terms,
        affordability=affordability,
        moratorium_interest=effective_principal - terms.loan_amount,
        effective_principal=effective_principal,
        monthly_rate=monthly_rate,
        standard_emi=emi,
        amortization_schedule=schedule,
        repayment_projection=projection,
        monthly_disposable_income=disposable_income,
    )
