"""Tests for the amortization simulator and schedule summaries."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from conftest import make_loan, make_plan
from debt_planner.data_models import AVALANCHE, RepaymentOrdering
from debt_planner.engine import iterate_schedule, simulate, summarize_schedule
from debt_planner.errors import InsufficientIncome, InvalidInput, ScheduleDivergent
from debt_planner.strategy import avalanche_order, snowball_order


def _run(plan, ordered=None, **kwargs):
    return simulate(list(ordered or plan.loans), plan.income, plan.expenses, **kwargs)


def test_single_loan_schedule(single_loan_plan):
    schedule = _run(single_loan_plan)

    assert len(schedule) == 7
    assert all(step.monthly_payment == Decimal("200") for step in schedule)
    # Month 1: 1200 * 1.01 = 1212, minus 200
    assert schedule[0].interest == Decimal("12")
    assert schedule[0].total_remaining_balance == Decimal("1012")
    assert schedule[1].total_remaining_balance == Decimal("822.12")
    assert schedule[-1].total_remaining_balance == 0
    assert schedule[-1].amount_paid < Decimal("200")
    assert schedule.payoff_months == {"Personal Loan": 7}


def test_single_loan_totals_balance_out(single_loan_plan):
    schedule = _run(single_loan_plan)

    assert schedule.total_paid - schedule.total_interest == Decimal("1200")
    assert schedule.total_interest == pytest.approx(Decimal("43.8553803882"), abs=Decimal("1e-9"))


def test_zero_rate_loan_decreases_exactly():
    plan = make_plan(100, 0, make_loan("Family Loan", 1000, 0, 100))

    schedule = _run(plan)

    assert len(schedule) == 10
    expected = [Decimal(1000 - 100 * m) for m in range(1, 11)]
    assert [step.total_remaining_balance for step in schedule] == expected
    assert all(step.interest == 0 for step in schedule)


def test_target_receives_extra_others_minimum(equal_balance_plan):
    ordered = avalanche_order(equal_balance_plan.loans)

    schedule = _run(equal_balance_plan, ordered)
    first = schedule[0]

    assert first.target == "High Rate"
    assert first.extra == Decimal("600")
    assert first.amount_paid == Decimal("1000")
    # 5000 + 83.33 interest - 800, and 5000 + 20.83 interest - 200
    assert float(first.balances["High Rate"]) == pytest.approx(4283.3333, abs=1e-3)
    assert float(first.balances["Low Rate"]) == pytest.approx(4820.8333, abs=1e-3)


def test_freed_minimum_rolls_over_to_next_target():
    plan = make_plan(
        300,
        0,
        make_loan("Small", 300, 0, 100),
        make_loan("Large", 5000, 0, 100),
    )

    schedule = _run(plan)

    assert schedule.payoff_months["Small"] == 2
    assert schedule[1].extra == Decimal("100")
    assert schedule[2].extra == Decimal("200")
    assert schedule[2].extra - schedule[1].extra == Decimal("100")
    assert schedule[2].target == "Large"


def test_surplus_is_not_carried_within_the_month():
    plan = make_plan(
        300,
        0,
        make_loan("Small", 300, 0, 100),
        make_loan("Large", 5000, 0, 100),
    )

    schedule = _run(plan)
    payoff_month = schedule[1]

    # Small needed 100 of its 200; Large still only gets its minimum
    assert payoff_month.retired == ("Small",)
    assert payoff_month.monthly_payment == Decimal("300")
    assert payoff_month.amount_paid == Decimal("200")
    assert payoff_month.balances["Large"] == Decimal("4800")


def test_balance_is_non_increasing(mixed_plan):
    schedule = _run(mixed_plan, avalanche_order(mixed_plan.loans))

    balances = [step.total_remaining_balance for step in schedule]
    assert all(later <= earlier for earlier, later in zip(balances, balances[1:]))
    assert balances[-1] <= Decimal("0.01")
    assert set(schedule.payoff_months) == {loan.name for loan in mixed_plan.loans}


def test_avalanche_target_is_highest_rate_open_loan(mixed_plan):
    rates = {loan.name: loan.interest_rate for loan in mixed_plan.loans}
    schedule = _run(mixed_plan, avalanche_order(mixed_plan.loans))

    open_names = set(rates)
    for step in schedule:
        assert step.target == max(open_names, key=lambda name: rates[name])
        open_names -= set(step.retired)


def test_snowball_target_is_smallest_original_balance(mixed_plan):
    ordered = snowball_order(mixed_plan.loans)
    schedule = _run(mixed_plan, ordered)

    open_names = [loan.name for loan in ordered]
    for step in schedule:
        assert step.target == open_names[0]
        open_names = [name for name in open_names if name not in step.retired]


def test_caller_loans_are_untouched(mixed_plan):
    loans = list(mixed_plan.loans)
    snapshot = list(loans)

    _run(mixed_plan, loans)

    assert loans == snapshot


def test_insufficient_income_fails():
    plan = make_plan(1000, 800, make_loan("Car", 5000, 10, 300))

    with pytest.raises(InsufficientIncome) as excinfo:
        _run(plan)

    assert excinfo.value.available == Decimal("200")
    assert excinfo.value.required == Decimal("300")
    assert excinfo.value.to_dict()["kind"] == "insufficient_income"


@pytest.mark.parametrize(
    "loans, field",
    [
        ([], "loans"),
        ([make_loan("Car", 0, 10, 100)], "balance"),
        ([make_loan("Car", 1000, -1, 100)], "interest_rate"),
        ([make_loan("Car", 1000, 10, 0)], "minimum_payment"),
        ([make_loan(" ", 1000, 10, 100)], "name"),
        ([make_loan("Car", 1000, 10, 100), make_loan("Car", 500, 5, 50)], "name"),
    ],
)
def test_invalid_loans_rejected(loans, field):
    with pytest.raises(InvalidInput) as excinfo:
        simulate(loans, Decimal("5000"), Decimal("0"))

    assert excinfo.value.field == field


@pytest.mark.parametrize("income, expenses, field", [(0, 0, "income"), (1000, -1, "expenses")])
def test_invalid_budget_rejected(income, expenses, field):
    with pytest.raises(InvalidInput) as excinfo:
        simulate([make_loan("Car", 1000, 10, 100)], Decimal(income), Decimal(expenses))

    assert excinfo.value.field == field


def test_iterate_schedule_validates_eagerly():
    with pytest.raises(InvalidInput):
        iterate_schedule([], Decimal("1000"), Decimal("0"))


def test_runaway_interest_is_divergent():
    # 10% a month on 10000 is 1000 of interest against 200 of payment
    plan = make_plan(200, 0, make_loan("Payday Loan", 10000, 120, 100))

    with pytest.raises(ScheduleDivergent) as excinfo:
        _run(plan, max_months=24)

    assert excinfo.value.months == 24
    assert excinfo.value.remaining > Decimal("10000")


def test_overflowing_balance_is_divergent():
    # 1e5000 % APR outgrows Decimal long before the month cap
    plan = make_plan(200, 0, make_loan("Shark", 1000, "1e5000", 100))

    with pytest.raises(ScheduleDivergent) as excinfo:
        _run(plan)

    assert 1 < excinfo.value.months < 1200
    assert excinfo.value.remaining > Decimal("1e15")
    assert "E+" in excinfo.value.message


def test_overflow_surfaces_from_the_lazy_iterator():
    plan = make_plan(200, 0, make_loan("Shark", 1000, "1e999990", 100))
    months = iterate_schedule(list(plan.loans), plan.income, plan.expenses)

    with pytest.raises(ScheduleDivergent):
        list(months)


def test_schedule_mappings_are_read_only(single_loan_plan):
    schedule = _run(single_loan_plan)

    with pytest.raises(TypeError):
        schedule[0].balances["Personal Loan"] = Decimal("0")
    with pytest.raises(TypeError):
        schedule.payoff_months["Personal Loan"] = 1


def test_schedule_may_end_exactly_on_the_cap(single_loan_plan):
    schedule = _run(single_loan_plan, max_months=7)

    assert len(schedule) == 7


def test_summary_fields(single_loan_plan):
    ordering = RepaymentOrdering(strategy_name=AVALANCHE, loans=single_loan_plan.loans)
    schedule = _run(single_loan_plan)

    summary = summarize_schedule(ordering, schedule, single_loan_plan.available, date(2025, 11, 1))

    assert summary["strategy"] == AVALANCHE
    assert summary["months"] == 7
    assert (summary["years"], summary["remaining_months"]) == (0, 7)
    assert summary["debt_free_in"] == "0 years and 7 months"
    assert summary["first_payment"] == 200.0
    assert summary["monthly_available"] == 200.0
    assert summary["total_principal"] == 1200.0
    assert summary["payoff_order"] == ["Personal Loan"]
    assert summary["start_date"] == "2025-11"
    assert summary["end_date"] == "2026-05"


def test_summary_payoff_order_follows_retirement(mixed_plan):
    ordered = avalanche_order(mixed_plan.loans)
    ordering = RepaymentOrdering(strategy_name=AVALANCHE, loans=tuple(ordered))
    schedule = _run(mixed_plan, ordered)

    summary = summarize_schedule(ordering, schedule, mixed_plan.available)

    months = [summary["payoff_months"][name] for name in summary["payoff_order"]]
    assert months == sorted(months)
    assert "end_date" not in summary
