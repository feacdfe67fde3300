"""Data models for the debt payoff planner.

This module defines dataclasses representing the entities the planner works
with: loans, the plan that groups them with income and expenses, the
repayment ordering chosen by the strategy selector and the month-by-month
schedule produced by the simulator. Loans and schedule entries are frozen so
that callers can share them freely between computations.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterator, List, Mapping, Tuple

AVALANCHE = "Debt Avalanche"
SNOWBALL = "Debt Snowball"


@dataclass(frozen=True)
class Loan:
    """One outstanding debt.

    Attributes
    ----------
    name: str
        Identifier of the loan, unique within a plan.
    balance: Decimal
        Current outstanding principal.
    interest_rate: Decimal
        Nominal annual interest rate in percent (``12.5`` means 12.5 %).
    minimum_payment: Decimal
        Required monthly payment.
    """

    name: str
    balance: Decimal
    interest_rate: Decimal
    minimum_payment: Decimal

    @property
    def monthly_rate(self) -> Decimal:
        return self.interest_rate / Decimal(12) / Decimal(100)


@dataclass(frozen=True)
class Plan:
    """Monthly income and expenses together with the loans to repay.

    ``expenses`` excludes debt service. The order of ``loans`` is the order
    the caller entered them in, not the repayment order.
    """

    income: Decimal
    expenses: Decimal
    loans: Tuple[Loan, ...]

    @property
    def available(self) -> Decimal:
        """Money left each month for debt repayment."""
        return self.income - self.expenses

    @property
    def total_minimum(self) -> Decimal:
        return sum((loan.minimum_payment for loan in self.loans), Decimal("0"))

    @property
    def total_balance(self) -> Decimal:
        return sum((loan.balance for loan in self.loans), Decimal("0"))


@dataclass(frozen=True)
class RepaymentOrdering:
    """Loans in the order they receive the extra payment."""

    strategy_name: str
    loans: Tuple[Loan, ...]

    @property
    def names(self) -> List[str]:
        return [loan.name for loan in self.loans]


@dataclass(frozen=True)
class RepaymentStep:
    """One simulated month.

    ``monthly_payment`` is the cash committed to debts that month: the
    minimums of every loan that was open when the month began plus ``extra``.
    ``amount_paid`` is what was actually applied, which is lower in the month
    a loan is paid off with room to spare.
    """

    month: int
    total_remaining_balance: Decimal
    monthly_payment: Decimal
    extra: Decimal
    interest: Decimal
    amount_paid: Decimal
    target: str
    balances: Mapping[str, Decimal] = field(default_factory=dict)
    retired: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RepaymentSchedule:
    """The complete simulation result, one entry per month until payoff."""

    steps: Tuple[RepaymentStep, ...]
    payoff_months: Mapping[str, int]

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[RepaymentStep]:
        return iter(self.steps)

    def __getitem__(self, index):
        return self.steps[index]

    @property
    def total_interest(self) -> Decimal:
        return sum((s.interest for s in self.steps), Decimal("0"))

    @property
    def total_paid(self) -> Decimal:
        return sum((s.amount_paid for s in self.steps), Decimal("0"))

    @property
    def final_balance(self) -> Decimal:
        return self.steps[-1].total_remaining_balance if self.steps else Decimal("0")


@dataclass(frozen=True)
class PayoffPlan:
    """Ordering, schedule and derived summary for one plan."""

    ordering: RepaymentOrdering
    schedule: RepaymentSchedule
    summary: Dict[str, object]

    @property
    def strategy_name(self) -> str:
        return self.ordering.strategy_name
