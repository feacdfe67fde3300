"""Repayment strategy selection.

Two orderings are considered. *Debt Avalanche* targets the highest interest
rate first and is the default because it minimizes interest paid. *Debt
Snowball* targets the smallest balance first; it is chosen only when its
first target is paid off within a few months (a "quick win").

All sorts are stable so loans that tie on every key keep the caller's order.
"""

from __future__ import annotations

from decimal import Decimal
from itertools import islice
from typing import List, Sequence

from .data_models import AVALANCHE, SNOWBALL, Loan, RepaymentOrdering
from .engine import DEFAULT_EPSILON, iterate_schedule, validate_budget, validate_loans
from .errors import InvalidInput

QUICK_WIN_MONTHS = 2

STRATEGY_KEYS = {
    "avalanche": AVALANCHE,
    "snowball": SNOWBALL,
}


def avalanche_order(loans: Sequence[Loan]) -> List[Loan]:
    """Highest APR first; ties go to the larger balance."""
    return sorted(loans, key=lambda loan: (-loan.interest_rate, -loan.balance))


def snowball_order(loans: Sequence[Loan]) -> List[Loan]:
    """Smallest balance first; ties go to the higher APR."""
    return sorted(loans, key=lambda loan: (loan.balance, -loan.interest_rate))


def has_quick_win(
    ordered_loans: Sequence[Loan],
    income: Decimal,
    expenses: Decimal,
    *,
    quick_win_months: int = QUICK_WIN_MONTHS,
    epsilon: Decimal = DEFAULT_EPSILON,
) -> bool:
    """Return True if the first loan of ``ordered_loans`` is retired within ``quick_win_months``."""
    if quick_win_months <= 0:
        return False
    months = iterate_schedule(ordered_loans, income, expenses, epsilon=epsilon)
    first = ordered_loans[0].name
    return any(first in step.retired for step in islice(months, quick_win_months))


def select_strategy(
    loans: Sequence[Loan],
    income: Decimal,
    expenses: Decimal,
    *,
    quick_win_months: int = QUICK_WIN_MONTHS,
    epsilon: Decimal = DEFAULT_EPSILON,
) -> RepaymentOrdering:
    """Choose between Debt Avalanche and Debt Snowball for ``loans``.

    Avalanche is returned unless the Snowball ordering differs from it and
    its first target is paid off within ``quick_win_months`` months when the
    full disposable income is applied.

    Raises
    ------
    InvalidInput
        If ``loans`` is empty or a loan is invalid.
    InsufficientIncome
        If income after expenses does not cover the minimums.
    """
    validate_loans(loans)
    validate_budget(loans, income, expenses)
    avalanche = avalanche_order(loans)
    snowball = snowball_order(loans)
    if snowball != avalanche and has_quick_win(
        snowball, income, expenses, quick_win_months=quick_win_months, epsilon=epsilon
    ):
        return RepaymentOrdering(strategy_name=SNOWBALL, loans=tuple(snowball))
    return RepaymentOrdering(strategy_name=AVALANCHE, loans=tuple(avalanche))


def order_loans(loans: Sequence[Loan], strategy: str) -> RepaymentOrdering:
    """Return the ordering for a named strategy (``"avalanche"`` or ``"snowball"``)."""
    key = strategy.lower()
    if key not in STRATEGY_KEYS:
        raise InvalidInput(f"Unknown strategy: {strategy}", field="strategy", value=strategy)
    validate_loans(loans)
    ordered = avalanche_order(loans) if key == "avalanche" else snowball_order(loans)
    return RepaymentOrdering(strategy_name=STRATEGY_KEYS[key], loans=tuple(ordered))
