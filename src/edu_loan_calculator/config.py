"""Application-wide constants and configuration defaults.

All tuneable defaults live here so there is a single place to adjust them.
"""
from __future__ import annotations

# ── Schedule iteration ────────────────────────────────────────────────────────

PAYOFF_EPSILON: float = 0.01       # balances at or below this count as paid off
MAX_SCHEDULE_MONTHS: int = 1000    # hard iteration bound for both simulations
MONTHS_PER_YEAR: int = 12

# Marker exposed for "disposable income does not cover the accruing interest"
INSUFFICIENT_INCOME: float = -1.0

# ── Input defaults (pre-filled form values) ───────────────────────────────────

DEFAULT_LOAN_AMOUNT: float = 1_000_000.0
DEFAULT_ANNUAL_INTEREST_RATE: float = 10.5   # percent
DEFAULT_LOAN_TENURE_YEARS: float = 10.0
DEFAULT_COURSE_DURATION_YEARS: float = 4.0
DEFAULT_RESTING_PERIOD_MONTHS: float = 0.0
DEFAULT_ANNUAL_SALARY: float = 600_000.0
DEFAULT_MONTHLY_EXPENSES: float = 15_000.0

# ── Presentation / export ─────────────────────────────────────────────────────

CURRENCY_SYMBOL: str = "₹"
DEFAULT_EXPORT_FILENAME: str = "education_loan_amortization_schedule.xlsx"
EXPORT_SHEET_NAME: str = "Amortization Schedule"
SUMMARY_SHEET_NAME: str = "Summary"
EXPORT_FORMATS: frozenset[str] = frozenset({".xlsx", ".csv"})
