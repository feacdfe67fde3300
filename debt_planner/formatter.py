"""Output helpers for the debt payoff planner.

This module renders payoff summaries, repayment schedules and strategy
comparisons in a plain tabular text format using built-in printing and
string formatting.
"""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, Optional

from .data_models import RepaymentStep
from .utils import add_months


def print_summary(summary: Dict[str, object]) -> None:
    """Print a summary of the payoff plan in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Strategy           : {summary['strategy']}")
    print(f"Debt free in       : {summary['debt_free_in']} ({summary['months']} payments)")
    if summary.get("end_date"):
        print(f"Last payment       : {summary['end_date']}")
    print(f"Available monthly  : {summary['monthly_available']:.2f}")
    print(f"Total principal    : {summary['total_principal']:.2f}")
    print(f"Total interest     : {summary['total_interest']:.2f}")
    print(f"Total paid         : {summary['total_paid']:.2f}")
    payoff_months = summary.get("payoff_months") or {}
    if payoff_months:
        print("Payoff order       :")
        for name in summary["payoff_order"]:
            print(f"  month {payoff_months[name]:>4d}  {name}")
    print("-" * 72)


def print_schedule(schedule: Iterable[RepaymentStep], start_date: Optional[date] = None) -> None:
    """Print the repayment schedule as a simple table.

    When ``start_date`` is given a ``Date`` column labels each month.
    """
    headers = ["Month"]
    if start_date is not None:
        headers.append("Date")
    headers += ["Payment", "Paid", "Extra", "Interest", "Remaining", "Target", "Retired"]
    print("\t".join(headers))
    for step in schedule:
        row = [str(step.month)]
        if start_date is not None:
            row.append(add_months(start_date, step.month - 1).strftime("%Y-%m"))
        row += [
            f"{step.monthly_payment:.2f}",
            f"{step.amount_paid:.2f}",
            f"{step.extra:.2f}",
            f"{step.interest:.2f}",
            f"{step.total_remaining_balance:.2f}",
            step.target,
            ", ".join(step.retired) or "-",
        ]
        print("\t".join(row))


def print_comparison(comparison: Dict[str, object]) -> None:
    """Print Avalanche and Snowball summaries side by side.

    The difference column is Snowball minus Avalanche, so a positive value
    is what Avalanche saves.
    """
    s1 = comparison["avalanche"]
    s2 = comparison["snowball"]
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {'Avalanche':>15s} {'Snowball':>15s} {'Difference':>15s}")
    for key in ("total_interest", "total_paid", "months"):
        v1 = s1.get(key)
        v2 = s2.get(key)
        diff = v2 - v1
        print(f"{key:20s} {v1:15.2f} {v2:15.2f} {diff:15.2f}")
    print(f"{'first paid off':20s} {s1['payoff_order'][0]:>15s} {s2['payoff_order'][0]:>15s}")
    print("=" * 72)
