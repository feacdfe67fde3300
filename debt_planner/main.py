"""Command-line interface for the debt payoff planner.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute a full repayment schedule, view only the
summary, or compare the Avalanche and Snowball strategies for the same set of
loans. Results can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import dataclasses
import functools
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import click

from .config import PlannerSettings
from .data_models import Loan, PayoffPlan, Plan, RepaymentSchedule
from .errors import DebtPlanError, ScheduleDivergent
from .formatter import print_comparison, print_schedule, print_summary
from .logging_config import configure_logging
from .planner import compare_strategies, compute_payoff_plan
from .utils import add_months, load_plan_file, parse_amount, parse_loan_string, parse_year_month

logger = logging.getLogger(__name__)

MAX_PRINTED_ROWS = 120


def parse_loan_strings(values: Tuple[str, ...]) -> List[Loan]:
    loans: List[Loan] = []
    for item in values:
        try:
            loans.append(parse_loan_string(item))
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--loan")
    return loans


def _parse_money(value: str, hint: str):
    try:
        return parse_amount(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint=hint)


def build_plan_from_options(
    income: Optional[str],
    expenses: Optional[str],
    loan: Tuple[str, ...],
    plan_file: Optional[str] = None,
) -> Plan:
    """Assemble a ``Plan`` from CLI/form values.

    Values given explicitly override those read from ``plan_file``; loans
    given with ``--loan`` are appended after the file's loans.
    """
    base: Optional[Plan] = None
    if plan_file:
        try:
            base = load_plan_file(Path(plan_file))
        except DebtPlanError as exc:
            raise click.BadParameter(exc.message, param_hint="--plan-file")
        except OSError as exc:
            raise click.BadParameter(str(exc), param_hint="--plan-file")
    if income:
        income_value = _parse_money(income, "--income")
    elif base is not None:
        income_value = base.income
    else:
        raise click.BadParameter("Monthly income is required", param_hint="--income")
    if expenses:
        expenses_value = _parse_money(expenses, "--expenses")
    elif base is not None:
        expenses_value = base.expenses
    else:
        expenses_value = parse_amount("0")
    loans = list(base.loans) if base is not None else []
    loans += parse_loan_strings(loan)
    return Plan(income=income_value, expenses=expenses_value, loans=tuple(loans))


def _parse_start_date(start_date: Optional[str]) -> Optional[date]:
    if not start_date:
        return None
    try:
        return parse_year_month(start_date)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--start-date")


def _load_settings(quick_win_months: Optional[int], log_level: Optional[str]) -> PlannerSettings:
    try:
        settings = PlannerSettings.from_env()
    except ValueError as exc:
        raise click.ClickException(str(exc))
    if quick_win_months is not None:
        settings = dataclasses.replace(settings, quick_win_months=quick_win_months)
    configure_logging(log_level or settings.log_level, settings.log_file)
    return settings


def _domain_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Report planner errors as click errors instead of tracebacks."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ScheduleDivergent as exc:
            logger.warning("Plan rejected: %s", exc.message)
            raise click.ClickException(exc.message)
        except DebtPlanError as exc:
            logger.warning("Plan rejected: %s", exc.message)
            hint = f"--{exc.field.replace('_', '-')}" if exc.field in ("income", "expenses") else "--loan"
            raise click.BadParameter(exc.message, param_hint=hint)

    return wrapper


def schedule_to_rows(schedule: RepaymentSchedule, start_date: Optional[date] = None) -> List[Dict[str, Any]]:
    """Convert schedule steps into JSON-serialisable dictionaries."""
    rows = []
    for step in schedule:
        row: Dict[str, Any] = {
            "month": step.month,
            "total_remaining_balance": float(step.total_remaining_balance),
            "monthly_payment": float(step.monthly_payment),
            "amount_paid": float(step.amount_paid),
            "extra": float(step.extra),
            "interest": float(step.interest),
            "target": step.target,
            "retired": list(step.retired),
            "balances": {name: float(value) for name, value in step.balances.items()},
        }
        if start_date is not None:
            row["date"] = add_months(start_date, step.month - 1).strftime("%Y-%m")
        rows.append(row)
    return rows


def export_to_json(path: Path, result: PayoffPlan, start_date: Optional[date] = None) -> None:
    """Export ordering, summary and schedule to a JSON file."""
    data = {
        "strategy": result.strategy_name,
        "ordering": result.ordering.names,
        "summary": result.summary,
        "schedule": schedule_to_rows(result.schedule, start_date),
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: RepaymentSchedule) -> None:
    """Export the schedule to a CSV file, one column per loan balance."""
    names = list(schedule[0].balances) if len(schedule) else []
    header = [
        "Month",
        "Monthly_Payment",
        "Amount_Paid",
        "Extra",
        "Interest",
        "Total_Remaining_Balance",
        "Target",
    ] + [f"Balance_{name}" for name in names]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for step in schedule:
            writer.writerow(
                [
                    step.month,
                    float(step.monthly_payment),
                    float(step.amount_paid),
                    float(step.extra),
                    float(step.interest),
                    float(step.total_remaining_balance),
                    step.target,
                ]
                + [float(step.balances[name]) for name in names]
            )


def plan_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that reads a plan."""
    options = [
        click.option("--income", "-i", "income", help="Monthly income (e.g. 50000 or 50k)"),
        click.option("--expenses", "-e", "expenses", help="Monthly expenses excluding debt payments"),
        click.option("--loan", "-l", "loan", multiple=True, help="Loan in NAME:BALANCE:APR:MINIMUM format"),
        click.option("--plan-file", "plan_file", type=click.Path(dir_okay=False), help="JSON file with income, expenses and loans"),
        click.option("--quick-win-months", "quick_win_months", type=click.IntRange(min=0), help="Months within which a Snowball first payoff counts as a quick win"),
        click.option("--start-date", "-s", "start_date", help="First payment month (YYYY-MM)"),
        click.option("--log-level", "log_level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False), help="Logging level"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
def cli() -> None:
    """Plan debt repayment with the Avalanche or Snowball strategy."""
    pass


@cli.command()
@plan_options
@click.option("--strategy", "strategy", type=click.Choice(["auto", "avalanche", "snowball"]), default="auto", help="Repayment strategy")
@click.option("--output", "-o", "output", type=str, help="Output file path (.json or .csv)")
@_domain_errors
def plan(
    income: Optional[str],
    expenses: Optional[str],
    loan: Tuple[str, ...],
    plan_file: Optional[str],
    quick_win_months: Optional[int],
    start_date: Optional[str],
    log_level: Optional[str],
    strategy: str,
    output: Optional[str],
) -> None:
    """Compute and print the full repayment schedule."""
    settings = _load_settings(quick_win_months, log_level)
    plan_data = build_plan_from_options(income, expenses, loan, plan_file)
    start = _parse_start_date(start_date)
    result = compute_payoff_plan(plan_data, settings, strategy=strategy, start_date=start)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result, start)
            click.echo(f"Schedule exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result.schedule)
            click.echo(f"Schedule exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
    else:
        print_summary(result.summary)
        steps = result.schedule.steps
        if len(steps) > MAX_PRINTED_ROWS:
            click.echo(f"Schedule has {len(steps)} rows; showing first {MAX_PRINTED_ROWS} rows.")
            steps = steps[:MAX_PRINTED_ROWS]
        print_schedule(steps, start)


@cli.command()
@plan_options
@click.option("--strategy", "strategy", type=click.Choice(["auto", "avalanche", "snowball"]), default="auto", help="Repayment strategy")
@click.option("--output", "-o", "output", type=str, help="Output file path (.json)")
@_domain_errors
def summary(
    income: Optional[str],
    expenses: Optional[str],
    loan: Tuple[str, ...],
    plan_file: Optional[str],
    quick_win_months: Optional[int],
    start_date: Optional[str],
    log_level: Optional[str],
    strategy: str,
    output: Optional[str],
) -> None:
    """Compute and print only the summary of a payoff plan."""
    settings = _load_settings(quick_win_months, log_level)
    plan_data = build_plan_from_options(income, expenses, loan, plan_file)
    result = compute_payoff_plan(
        plan_data, settings, strategy=strategy, start_date=_parse_start_date(start_date)
    )
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension", param_hint="--output")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": result.summary}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result.summary)


@cli.command()
@plan_options
@_domain_errors
def compare(
    income: Optional[str],
    expenses: Optional[str],
    loan: Tuple[str, ...],
    plan_file: Optional[str],
    quick_win_months: Optional[int],
    start_date: Optional[str],
    log_level: Optional[str],
) -> None:
    """Compare the Avalanche and Snowball strategies for the same loans."""
    settings = _load_settings(quick_win_months, log_level)
    plan_data = build_plan_from_options(income, expenses, loan, plan_file)
    comparison = compare_strategies(plan_data, settings, start_date=_parse_start_date(start_date))
    print_comparison(comparison)


if __name__ == "__main__":
    cli()
