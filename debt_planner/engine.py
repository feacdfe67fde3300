"""Core calculation engine for the debt payoff planner.

This module implements the amortization simulation that turns an ordered
list of loans and a monthly budget into a month-by-month repayment schedule.
Every open loan accrues interest monthly and pays its minimum; the first open
loan in the ordering (the *target*) additionally receives all money left over
after minimums. When a loan is retired its minimum is no longer owed, so the
next month's extra grows by that amount and rolls over onto the next target.

Results are returned as a ``RepaymentSchedule`` together with helpers that
derive a summary dictionary from it.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, Overflow, getcontext
from types import MappingProxyType
from typing import Dict, Iterator, List, Optional, Sequence

from .data_models import Loan, RepaymentOrdering, RepaymentSchedule, RepaymentStep
from .errors import InsufficientIncome, InvalidInput, ScheduleDivergent
from .utils import add_months, format_duration

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

DEFAULT_MAX_MONTHS = 1200
DEFAULT_EPSILON = Decimal("0.01")

_ZERO = Decimal("0")


def validate_loans(loans: Sequence[Loan]) -> None:
    """Raise ``InvalidInput`` unless every loan is usable for simulation."""
    if not loans:
        raise InvalidInput("Please add at least one loan.", field="loans", value=0)
    seen = set()
    for loan in loans:
        if not loan.name or not loan.name.strip():
            raise InvalidInput("Loan name is required.", field="name", value=loan.name)
        if loan.name in seen:
            raise InvalidInput(f"Duplicate loan name: {loan.name}", field="name", value=loan.name)
        seen.add(loan.name)
        if loan.balance <= 0:
            raise InvalidInput(
                f"Balance of {loan.name} must be positive.", field="balance", value=loan.balance
            )
        if loan.interest_rate < 0:
            raise InvalidInput(
                f"Interest rate of {loan.name} must not be negative.",
                field="interest_rate",
                value=loan.interest_rate,
            )
        if loan.minimum_payment <= 0:
            raise InvalidInput(
                f"Minimum payment of {loan.name} must be positive.",
                field="minimum_payment",
                value=loan.minimum_payment,
            )


def validate_budget(loans: Sequence[Loan], income: Decimal, expenses: Decimal) -> Decimal:
    """Check income and expenses against the minimums and return what is available.

    Raises
    ------
    InvalidInput
        If income is not positive or expenses are negative.
    InsufficientIncome
        If income minus expenses does not cover the sum of minimum payments.
    """
    if income <= 0:
        raise InvalidInput("Monthly income must be positive.", field="income", value=income)
    if expenses < 0:
        raise InvalidInput("Monthly expenses must not be negative.", field="expenses", value=expenses)
    available = income - expenses
    required = sum((loan.minimum_payment for loan in loans), _ZERO)
    if available < required:
        raise InsufficientIncome(available, required)
    return available


def iterate_schedule(
    ordering_loans: Sequence[Loan],
    income: Decimal,
    expenses: Decimal,
    *,
    epsilon: Decimal = DEFAULT_EPSILON,
) -> Iterator[RepaymentStep]:
    """Validate the inputs and return a lazy iterator over simulated months.

    The iterator stops after the month in which the total remaining balance
    drops to ``epsilon`` or below. It is not capped; ``simulate`` adds the
    month limit. Validation happens eagerly, before the iterator is returned.
    """
    loans = list(ordering_loans)
    validate_loans(loans)
    available = validate_budget(loans, income, expenses)
    return _simulate_months(loans, available, epsilon)


def _simulate_months(loans: List[Loan], available: Decimal, epsilon: Decimal) -> Iterator[RepaymentStep]:
    # Working copy; the caller's Loan objects are never touched
    balances = [loan.balance for loan in loans]
    remaining = sum(balances, _ZERO)
    month = 0
    while True:
        month += 1
        try:
            step = _advance_month(loans, balances, available, epsilon, month)
        except Overflow:
            # Balance grew past what Decimal can represent
            logger.warning("Balances overflowed in month %d; %.2f outstanding before", month, remaining)
            raise ScheduleDivergent(month, remaining) from None
        remaining = step.total_remaining_balance
        yield step
        if remaining <= epsilon:
            return


def _advance_month(
    loans: List[Loan], balances: List[Decimal], available: Decimal, epsilon: Decimal, month: int
) -> RepaymentStep:
    open_idx = [i for i, balance in enumerate(balances) if balance > 0]
    owed = sum((loans[i].minimum_payment for i in open_idx), _ZERO)
    extra = max(_ZERO, available - owed)
    target = open_idx[0]

    # Interest accrues on the pre-payment balance
    interest = _ZERO
    for i in open_idx:
        accrued = balances[i] * loans[i].monthly_rate
        balances[i] += accrued
        interest += accrued

    paid = _ZERO
    retired: List[str] = []
    for i in open_idx:
        due = loans[i].minimum_payment + (extra if i == target else _ZERO)
        applied = min(due, balances[i])
        balances[i] -= applied
        paid += applied
        if balances[i] <= 0:
            balances[i] = _ZERO
            retired.append(loans[i].name)
            logger.debug("Loan %s paid off in month %d", loans[i].name, month)

    total = sum((max(balance, _ZERO) for balance in balances), _ZERO)
    if total <= epsilon:
        # Residue below epsilon counts as paid off
        for i, balance in enumerate(balances):
            if balance > 0 and loans[i].name not in retired:
                retired.append(loans[i].name)

    return RepaymentStep(
        month=month,
        total_remaining_balance=total,
        monthly_payment=owed + extra,
        extra=extra,
        interest=interest,
        amount_paid=paid,
        target=loans[target].name,
        balances=MappingProxyType({loan.name: balances[i] for i, loan in enumerate(loans)}),
        retired=tuple(retired),
    )


def simulate(
    ordering_loans: Sequence[Loan],
    income: Decimal,
    expenses: Decimal,
    *,
    max_months: int = DEFAULT_MAX_MONTHS,
    epsilon: Decimal = DEFAULT_EPSILON,
) -> RepaymentSchedule:
    """Simulate repayment of ``ordering_loans`` until every loan is retired.

    Parameters
    ----------
    ordering_loans: Sequence[Loan]
        Loans in repayment order. The first open loan receives the extra
        payment each month.
    income, expenses: Decimal
        Monthly income and monthly expenses excluding debt service.
    max_months: int
        Hard cap on the schedule length.
    epsilon: Decimal
        The simulation stops once the total remaining balance is at or below
        this amount.

    Returns
    -------
    RepaymentSchedule
        One step per month; the last step has a total remaining balance of at
        most ``epsilon``.

    Raises
    ------
    InvalidInput, InsufficientIncome
        If the preconditions do not hold.
    ScheduleDivergent
        If the loans are not paid off within ``max_months``.
    """
    if max_months <= 0:
        raise InvalidInput("Month limit must be positive.", field="max_months", value=max_months)
    steps: List[RepaymentStep] = []
    payoff_months: Dict[str, int] = {}
    for step in iterate_schedule(ordering_loans, income, expenses, epsilon=epsilon):
        steps.append(step)
        for name in step.retired:
            payoff_months[name] = step.month
        if step.month >= max_months and step.total_remaining_balance > epsilon:
            logger.warning(
                "Schedule did not converge within %d months; %.2f outstanding",
                max_months,
                step.total_remaining_balance,
            )
            raise ScheduleDivergent(max_months, step.total_remaining_balance)
    return RepaymentSchedule(steps=tuple(steps), payoff_months=MappingProxyType(payoff_months))


def summarize_schedule(
    ordering: RepaymentOrdering,
    schedule: RepaymentSchedule,
    available: Decimal,
    start_date: Optional[date] = None,
) -> Dict[str, object]:
    """Derive the aggregate figures shown next to a schedule.

    ``months`` is the schedule length; ``years`` and ``remaining_months``
    split it with ``divmod``. When ``start_date`` is given it is treated as
    the month of the first payment and ``end_date`` is the month of the last
    one.
    """
    months = len(schedule)
    years, remaining_months = divmod(months, 12)
    names = ordering.names
    payoff_order = sorted(
        schedule.payoff_months, key=lambda name: (schedule.payoff_months[name], names.index(name))
    )
    total_principal = sum((loan.balance for loan in ordering.loans), _ZERO)

    summary: Dict[str, object] = {
        "strategy": ordering.strategy_name,
        "months": months,
        "years": years,
        "remaining_months": remaining_months,
        "debt_free_in": format_duration(months),
        "total_principal": float(total_principal),
        "total_interest": float(schedule.total_interest),
        "total_paid": float(schedule.total_paid),
        "monthly_available": float(available),
        "first_payment": float(schedule[0].monthly_payment) if months else 0.0,
        "payoff_order": payoff_order,
        "payoff_months": dict(schedule.payoff_months),
    }
    if start_date is not None:
        summary["start_date"] = start_date.strftime("%Y-%m")
        summary["end_date"] = add_months(start_date, max(months - 1, 0)).strftime("%Y-%m")
    return summary
