"""Amortization schedule export to spreadsheet (.xlsx) or .csv.

The schedule is read, never modified.  Monetary columns are rounded to
2 decimals here, the only place besides the CLI where rounding happens.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .calculator import AmortizationSchedule, LoanResult, ProjectionStatus
from .config import CURRENCY_SYMBOL, EXPORT_FORMATS, EXPORT_SHEET_NAME, SUMMARY_SHEET_NAME

logger = logging.getLogger(__name__)

SCHEDULE_COLUMNS = (
    "Month",
    f"Opening Balance ({CURRENCY_SYMBOL})",
    f"EMI ({CURRENCY_SYMBOL})",
    f"Principal Paid ({CURRENCY_SYMBOL})",
    f"Interest Paid ({CURRENCY_SYMBOL})",
    f"Closing Balance ({CURRENCY_SYMBOL})",
)


INCOMPLETE_NOTE = "Incomplete: schedule limit reached"


class ExportError(Exception):
    """Raised when a schedule cannot be exported."""


def schedule_to_frame(schedule: AmortizationSchedule) -> pd.DataFrame:
    records = [
        (
            row.month,
            row.opening_balance,
            row.emi,
            row.principal_paid,
            row.interest_paid,
            row.closing_balance,
        )
        for row in schedule
    ]
    df = pd.DataFrame.from_records(records, columns=list(SCHEDULE_COLUMNS))
    return df.round(2)


def summary_to_frame(result: LoanResult) -> pd.DataFrame:
    projection = result.repayment_projection
    if projection.years is None:
        repayment = "Insufficient disposable income"
    else:
        repayment = f"{projection.years:.2f} years"
        if projection.status is ProjectionStatus.CAP_REACHED:
            repayment += " (projection limit reached)"

    items = [
        ("Loan Amount", round(result.terms.loan_amount, 2)),
        ("Annual Interest Rate (%)", result.terms.annual_interest_rate_percent),
        ("Loan Tenure (years)", result.terms.loan_tenure_years),
        ("Moratorium Period (years)", round(result.total_period_years, 2)),
        ("Moratorium Interest", round(result.moratorium_interest, 2)),
        ("Effective Principal", round(result.effective_principal, 2)),
        ("Standard EMI", round(result.standard_emi, 2)),
        ("Monthly Disposable Income", round(result.monthly_disposable_income, 2)),
        ("Total Months", result.total_months),
        ("Total Interest", round(result.total_interest, 2)),
        ("Total Amount Payable", round(result.total_amount_payable, 2)),
        ("Actual Repayment Time", repayment),
        ("Status", "Complete" if result.amortization_schedule.reached_payoff else INCOMPLETE_NOTE),
    ]
    return pd.DataFrame(items, columns=["Item", "Value"])


def export_schedule(
    result: LoanResult,
    path: Union[str, Path],
    fmt: Optional[str] = None,
) -> Path:
    """Write the result's schedule to *path* and return the path written.

    The format comes from *fmt* (".xlsx" / ".csv", dot optional) or else
    from the file suffix.  Excel output carries a second Summary sheet;
    a CSV of a schedule that never reached payoff ends with an
    INCOMPLETE_NOTE row.
    """
    path = Path(path)
    suffix = (fmt or path.suffix).lower()
    if suffix and not suffix.startswith("."):
        suffix = "." + suffix
    if suffix not in EXPORT_FORMATS:
        raise ExportError(
            f"Unsupported export format '{suffix or path.name}'. "
            f"Use one of: {', '.join(sorted(EXPORT_FORMATS))}."
        )

    schedule = result.amortization_schedule
    if len(schedule) == 0:
        raise ExportError("Nothing to export: the schedule is empty. Please calculate the loan first!")

    df = schedule_to_frame(schedule)
    try:
        if suffix == ".csv":
            if not schedule.reached_payoff:
                # CSV has no Summary sheet; mark a partial schedule with a trailing row
                df = pd.concat([df, pd.DataFrame([{"Month": INCOMPLETE_NOTE}])], ignore_index=True)
            df.to_csv(path, index=False)
        else:
            with pd.ExcelWriter(path, engine="xlsxwriter") as writer:
                df.to_excel(writer, index=False, sheet_name=EXPORT_SHEET_NAME)
                summary_to_frame(result).to_excel(writer, index=False, sheet_name=SUMMARY_SHEET_NAME)
    except OSError as exc:
        raise ExportError(f"Could not write {path}: {exc}") from exc

    if not schedule.reached_payoff:
        logger.warning("Exported a partial schedule (%d months, balance not cleared)", len(schedule))
    logger.info("Exported %d schedule rows to %s", len(schedule), path)
    return path
