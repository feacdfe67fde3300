"""Shared fixtures for the debt planner tests."""

from __future__ import annotations

from decimal import Decimal

import pytest

from debt_planner.data_models import Loan, Plan


def make_loan(name: str, balance, rate, minimum) -> Loan:
    return Loan(
        name=name,
        balance=Decimal(str(balance)),
        interest_rate=Decimal(str(rate)),
        minimum_payment=Decimal(str(minimum)),
    )


def make_plan(income, expenses, *loans: Loan) -> Plan:
    return Plan(income=Decimal(str(income)), expenses=Decimal(str(expenses)), loans=tuple(loans))


@pytest.fixture
def single_loan_plan() -> Plan:
    """1200 at 12% APR, minimum 100, 100 extra each month."""
    return make_plan(2000, 1800, make_loan("Personal Loan", 1200, 12, 100))


@pytest.fixture
def equal_balance_plan() -> Plan:
    """Two 5000 loans at 20% and 5%, 600 extra each month."""
    return make_plan(
        3000,
        2000,
        make_loan("Low Rate", 5000, 5, 200),
        make_loan("High Rate", 5000, 20, 200),
    )


@pytest.fixture
def quick_win_plan() -> Plan:
    """A 150 loan paid off in month one next to a larger, pricier card."""
    return make_plan(
        1000,
        250,
        make_loan("Credit Card", 5000, 20, 100),
        make_loan("Phone", 150, 10, 150),
    )


@pytest.fixture
def mixed_plan() -> Plan:
    return make_plan(
        60000,
        38000,
        make_loan("Car Loan", 250000, 9.5, 6000),
        make_loan("Credit Card", 40000, 36, 2000),
        make_loan("Personal Loan", 90000, 14, 3500),
        make_loan("Education Loan", 15000, 7, 1000),
    )
