"""Interactive CLI: click entry point + interactive update loop.

Session startup:
  1. Take the seven inputs from options (anything omitted uses its default).
  2. Run the calculation.
  3. Enter the interactive update loop.

Update loop:
  - Display current inputs and results.
  - Let the user update or reset any input, view the schedule, export it, or exit.
"""
from __future__ import annotations

import logging
import math
import sys
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich import box

from .calculator import InvalidTenureError, LoanResult, ProjectionStatus, calculate_loan
from .config import CURRENCY_SYMBOL, DEFAULT_EXPORT_FILENAME, MAX_SCHEDULE_MONTHS
from .exporter import ExportError, export_schedule
from .resolver import INPUT_DEFAULTS, InvalidInputError, ResolvedParams, UserInputs, check_inputs, resolve

console = Console()
err_console = Console(stderr=True, style="bold red")

# ──────────────────────────────────────────────────────────────────────────────
# Formatting helpers
# ──────────────────────────────────────────────────────────────────────────────

def _fmt_money(value: float) -> str:
    return f"{CURRENCY_SYMBOL}{value:,.2f}"


def _fmt_years(value: float) -> str:
    return f"{value:.2f} years"


_INPUT_LABELS = {
    "loan_amount": "Loan amount",
    "annual_interest_rate_percent": "Annual interest rate (%)",
    "loan_tenure_years": "Loan tenure (years)",
    "course_duration_years": "Course duration (years)",
    "resting_period_months": "Resting period (months)",
    "annual_salary": "Expected annual salary",
    "monthly_expenses": "Monthly expenses",
}

_MONEY_INPUTS = frozenset({"loan_amount", "annual_salary", "monthly_expenses"})


# ──────────────────────────────────────────────────────────────────────────────
# Result display
# ──────────────────────────────────────────────────────────────────────────────

def display_result(result: LoanResult) -> None:
    console.print()
    console.print(Panel("[bold green]Education Loan Results[/bold green]", expand=False))

    t = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
    t.add_column("Field", style="cyan")
    t.add_column("Value", justify="right")

    t.add_row(
        f"Effective principal (after {result.total_period_years:.2f} years)",
        _fmt_money(result.effective_principal),
    )
    t.add_row("  └ Moratorium interest", _fmt_money(result.moratorium_interest))
    t.add_row(
        f"Standard EMI ({result.terms.loan_tenure_years:g} years tenure)",
        _fmt_money(result.standard_emi),
    )
    t.add_row("Monthly disposable income", _fmt_money(result.monthly_disposable_income))

    projection = result.repayment_projection
    if projection.is_affordable:
        repayment = _fmt_years(projection.years)
        if projection.status is ProjectionStatus.CAP_REACHED:
            repayment = f"[yellow]> {_fmt_years(projection.years)} (limit reached)[/yellow]"
    else:
        repayment = "[bold red]Insufficient disposable income[/bold red]"
    t.add_row("Actual repayment time", repayment)

    t.add_row("Total months", f"{result.total_months} months")
    t.add_row("Total interest", _fmt_money(result.total_interest))
    t.add_row("Total amount payable", _fmt_money(result.total_amount_payable))
    console.print(t)

    if not result.amortization_schedule.reached_payoff:
        console.print(Panel(
            f"[bold yellow]Schedule incomplete[/bold yellow]\n"
            f"The EMI does not pay the loan off within {MAX_SCHEDULE_MONTHS} months; "
            f"{_fmt_money(result.amortization_schedule.final_balance)} is still owed after the last row shown.",
            expand=False,
        ))


def display_amortization(result: LoanResult) -> None:
    schedule = result.amortization_schedule
    title = "Amortization Schedule" if schedule.reached_payoff else "Amortization Schedule (incomplete)"

    t = Table(title=title, box=box.MINIMAL_HEAVY_HEAD)
    for col in ("Month", "Opening Bal.", "EMI", "Principal", "Interest", "Closing Bal."):
        t.add_column(col, justify="right")

    for row in schedule:
        t.add_row(
            str(row.month),
            _fmt_money(row.opening_balance),
            _fmt_money(row.emi),
            _fmt_money(row.principal_paid),
            _fmt_money(row.interest_paid),
            _fmt_money(row.closing_balance),
        )
    console.print(t)


def display_params(params: ResolvedParams) -> None:
    t = Table(title="Current Inputs", box=box.SIMPLE, show_header=True, padding=(0, 2))
    t.add_column("Input", style="cyan")
    t.add_column("Value", justify="right")
    t.add_column("Source", style="dim")

    for name, value in params.values().items():
        shown = _fmt_money(value) if name in _MONEY_INPUTS else f"{value:g}"
        t.add_row(_INPUT_LABELS[name], shown, params.sources.get(name, ""))
    console.print(t)


# ──────────────────────────────────────────────────────────────────────────────
# Input helpers
# ──────────────────────────────────────────────────────────────────────────────

def parse_number(raw: str) -> float:
    """Parse a user-typed number; grouping commas and spaces are ignored."""
    value = float(raw.replace(",", "").replace(" ", "").replace(CURRENCY_SYMBOL, ""))
    if not math.isfinite(value):
        raise ValueError(f"not a finite number: {raw!r}")
    return value


def _prompt_float(prompt: str, *, positive: bool = True, allow_zero: bool = False) -> float:
    while True:
        raw = console.input(f"[bold]{prompt}[/bold] ").strip()
        try:
            value = parse_number(raw)
        except ValueError:
            err_console.print(f"  Invalid number: '{raw}'")
            continue
        if positive and value <= 0 and not (allow_zero and value == 0):
            err_console.print("  Value must be > 0." if not allow_zero else "  Value must be >= 0.")
            continue
        if allow_zero and value < 0:
            err_console.print("  Value must be >= 0.")
            continue
        return value


# ──────────────────────────────────────────────────────────────────────────────
# Calculation runner
# ──────────────────────────────────────────────────────────────────────────────

def run_calculation(inputs: UserInputs) -> Optional[tuple[ResolvedParams, LoanResult]]:
    """Resolve, validate, calculate. Prints errors and returns None on failure."""
    params = resolve(inputs)
    try:
        check_inputs(params)
    except InvalidInputError as exc:
        console.print(Panel(f"[bold red]Invalid input[/bold red]\n{exc}", expand=False))
        return None

    try:
        result = calculate_loan(params.terms, params.affordability)
    except InvalidTenureError as exc:
        console.print(Panel(f"[bold red]Invalid tenure[/bold red]\n{exc}", expand=False))
        return None

    display_result(result)
    return params, result


def _export(result: LoanResult, path: str) -> bool:
    try:
        written = export_schedule(result, path)
    except ExportError as exc:
        err_console.print(f"Export failed: {exc}")
        return False
    console.print(f"  [green]Schedule exported to {written}[/green]")
    return True


# ──────────────────────────────────────────────────────────────────────────────
# Interactive update loop
# ──────────────────────────────────────────────────────────────────────────────

def interactive_loop(inputs: UserInputs) -> None:
    last_params: Optional[ResolvedParams] = None
    last_result: Optional[LoanResult] = None

    result = run_calculation(inputs)
    if result:
        last_params, last_result = result

    while True:
        console.print()
        console.print(
            "[bold]Actions:[/bold] "
            "[cyan]update[/cyan] · [cyan]reset[/cyan] · [cyan]schedule[/cyan] · "
            "[cyan]export[/cyan] · [cyan]params[/cyan] · [cyan]exit[/cyan]"
        )
        action = console.input("[bold]> [/bold]").strip().lower()

        if action in ("exit", "quit", "q"):
            console.print("Goodbye.")
            break

        elif action == "params":
            if last_params:
                display_params(last_params)
            else:
                err_console.print("No calculation result available yet.")

        elif action == "schedule":
            if last_result:
                display_amortization(last_result)
            else:
                err_console.print("Please calculate the loan first!")

        elif action == "export":
            if last_result is None:
                err_console.print("Please calculate the loan first!")
                continue
            raw = console.input(
                f"[bold]File name, .xlsx or .csv (default {DEFAULT_EXPORT_FILENAME}): [/bold]"
            ).strip()
            _export(last_result, raw or DEFAULT_EXPORT_FILENAME)

        elif action == "update":
            console.print(f"  Fields: {', '.join(INPUT_DEFAULTS)}")
            field = console.input("[bold]Field to update: [/bold]").strip().lower()
            if field not in INPUT_DEFAULTS:
                err_console.print(f"  Unknown field '{field}'.")
                continue

            _apply_update(field, inputs)
            result = run_calculation(inputs)
            if result:
                last_params, last_result = result

        elif action == "reset":
            console.print(f"  Fields: {', '.join(INPUT_DEFAULTS)}")
            field = console.input("[bold]Field to reset to its default: [/bold]").strip().lower()
            if field not in INPUT_DEFAULTS:
                err_console.print(f"  Unknown field '{field}'.")
                continue
            setattr(inputs, field, None)
            result = run_calculation(inputs)
            if result:
                last_params, last_result = result

        else:
            err_console.print(f"  Unknown action '{action}'.")


def _apply_update(field: str, inputs: UserInputs) -> None:
    label = _INPUT_LABELS[field]
    # Only loan amount and tenure must be strictly positive
    strict = field in ("loan_amount", "loan_tenure_years")
    try:
        value = _prompt_float(f"New {label.lower()}:", positive=True, allow_zero=not strict)
    except (KeyboardInterrupt, EOFError):
        console.print("\n  Update cancelled.")
        return
    setattr(inputs, field, value)


# ──────────────────────────────────────────────────────────────────────────────
# Click entry point
# ──────────────────────────────────────────────────────────────────────────────

def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.command()
@click.option("--loan-amount", type=str, default=None, help="Loan amount")
@click.option("--rate", type=str, default=None, help="Annual interest rate in percent (e.g. 10.5)")
@click.option("--tenure", type=str, default=None, help="Repayment tenure in years")
@click.option("--course-duration", type=str, default=None, help="Course duration in years")
@click.option("--resting-period", type=str, default=None, help="Resting period after the course, in months")
@click.option("--salary", type=str, default=None, help="Expected annual salary after graduation")
@click.option("--expenses", type=str, default=None, help="Expected monthly living expenses")
@click.option("--export", "export_path", type=click.Path(dir_okay=False), default=None,
              help="Write the schedule to this .xlsx/.csv file and exit (status 2 if the schedule is incomplete)")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show debug logging")
def main(
    loan_amount: Optional[str],
    rate: Optional[str],
    tenure: Optional[str],
    course_duration: Optional[str],
    resting_period: Optional[str],
    salary: Optional[str],
    expenses: Optional[str],
    export_path: Optional[str],
    verbose: bool,
) -> None:
    """Education loan calculator: EMI with course duration and resting period."""
    _configure_logging(verbose)
    console.print(Panel("[bold blue]Education Loan Calculator[/bold blue]", expand=False))

    def _parse_opt(s: Optional[str], name: str) -> Optional[float]:
        if s is None:
            return None
        try:
            return parse_number(s)
        except ValueError:
            err_console.print(f"Invalid value for --{name}: '{s}'")
            sys.exit(1)

    inputs = UserInputs(
        loan_amount=_parse_opt(loan_amount, "loan-amount"),
        annual_interest_rate_percent=_parse_opt(rate, "rate"),
        loan_tenure_years=_parse_opt(tenure, "tenure"),
        course_duration_years=_parse_opt(course_duration, "course-duration"),
        resting_period_months=_parse_opt(resting_period, "resting-period"),
        annual_salary=_parse_opt(salary, "salary"),
        monthly_expenses=_parse_opt(expenses, "expenses"),
    )

    if export_path is not None:
        outcome = run_calculation(inputs)
        if outcome is None or not _export(outcome[1], export_path):
            sys.exit(1)
        if not outcome[1].amortization_schedule.reached_payoff:
            err_console.print("Exported schedule is incomplete: the loan is not paid off within the schedule limit.")
            sys.exit(2)
        return

    try:
        interactive_loop(inputs)
    except (KeyboardInterrupt, EOFError):
        console.print("\nSession ended.")
