"""Input resolution and boundary validation.

Resolution order:
1. Each of the seven inputs falls back to its configured default if not user-supplied.
2. Loan fields become LoanTerms, income fields become AffordabilityInputs.

The calculator does not validate its inputs; check_inputs() is the
boundary where malformed values are rejected before they reach it.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from typing import Optional

from .calculator import AffordabilityInputs, LoanTerms
from .config import (
    DEFAULT_ANNUAL_INTEREST_RATE,
    DEFAULT_ANNUAL_SALARY,
    DEFAULT_COURSE_DURATION_YEARS,
    DEFAULT_LOAN_AMOUNT,
    DEFAULT_LOAN_TENURE_YEARS,
    DEFAULT_MONTHLY_EXPENSES,
    DEFAULT_RESTING_PERIOD_MONTHS,
)

logger = logging.getLogger(__name__)

INPUT_DEFAULTS: dict[str, float] = {
    "loan_amount": DEFAULT_LOAN_AMOUNT,
    "annual_interest_rate_percent": DEFAULT_ANNUAL_INTEREST_RATE,
    "loan_tenure_years": DEFAULT_LOAN_TENURE_YEARS,
    "course_duration_years": DEFAULT_COURSE_DURATION_YEARS,
    "resting_period_months": DEFAULT_RESTING_PERIOD_MONTHS,
    "annual_salary": DEFAULT_ANNUAL_SALARY,
    "monthly_expenses": DEFAULT_MONTHLY_EXPENSES,
}


@dataclass
class UserInputs:
    """Raw user-supplied values.  None means 'not provided, use the default'."""
    # Loan terms
    loan_amount: Optional[float] = None
    annual_interest_rate_percent: Optional[float] = None
    loan_tenure_years: Optional[float] = None
    course_duration_years: Optional[float] = None
    resting_period_months: Optional[float] = None
    # Post-graduation budget
    annual_salary: Optional[float] = None
    monthly_expenses: Optional[float] = None


@dataclass(frozen=True)
class ResolvedParams:
    """Fully resolved inputs, ready for calculate_loan()."""
    terms: LoanTerms
    affordability: AffordabilityInputs
    # Provenance: 'user' or 'default' for each input
    sources: dict[str, str] = field(default_factory=dict)

    def values(self) -> dict[str, float]:
        """Flat name -> value mapping of the seven inputs."""
        out: dict[str, float] = {}
        for record in (self.terms, self.affordability):
            for f in fields(record):
                out[f.name] = getattr(record, f.name)
        return out


class InvalidInputError(ValueError):
    """Raised when an input cannot produce a meaningful calculation."""


def resolve(inputs: UserInputs) -> ResolvedParams:
    """Resolve all inputs and return a fully-specified ResolvedParams."""
    sources: dict[str, str] = {}
    resolved: dict[str, float] = {}

    for name, default in INPUT_DEFAULTS.items():
        user_val = getattr(inputs, name)
        if user_val is not None:
            sources[name] = "user"
            resolved[name] = float(user_val)
        else:
            sources[name] = "default"
            resolved[name] = default

    terms = LoanTerms(
        loan_amount=resolved["loan_amount"],
        annual_interest_rate_percent=resolved["annual_interest_rate_percent"],
        loan_tenure_years=resolved["loan_tenure_years"],
        course_duration_years=resolved["course_duration_years"],
        resting_period_months=resolved["resting_period_months"],
    )
    affordability = AffordabilityInputs(
        annual_salary=resolved["annual_salary"],
        monthly_expenses=resolved["monthly_expenses"],
    )
    logger.debug("Resolved inputs %s (sources %s)", resolved, sources)
    return ResolvedParams(terms=terms, affordability=affordability, sources=sources)


def check_inputs(params: ResolvedParams) -> None:
    """Raise InvalidInputError if the inputs cannot be calculated.

    Checks:
    1. every value is a finite number
    2. no value is negative
    3. loan amount and tenure are strictly positive
    """
    for name, value in params.values().items():
        label = name.replace("_", " ")
        if not math.isfinite(value):
            raise InvalidInputError(f"{label} must be a finite number (got {value!r}).")
        if value < 0:
            raise InvalidInputError(f"{label} cannot be negative (got {value:,.2f}).")

    if params.terms.loan_amount <= 0:
        raise InvalidInputError("loan amount must be greater than zero.")
    if params.terms.loan_tenure_years <= 0:
        raise InvalidInputError("loan tenure years must be greater than zero.")
