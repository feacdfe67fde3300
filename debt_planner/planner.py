"""End-to-end debt payoff planning.

``compute_payoff_plan`` is the entry point used by the CLI and the web app:
it picks (or is told) a strategy, runs the simulation for the resulting
ordering and derives the summary. Narrative advice is composed by callers
from these results; nothing here generates prose beyond short labels.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Optional

from .config import PlannerSettings
from .data_models import PayoffPlan, Plan
from .engine import simulate, summarize_schedule, validate_budget, validate_loans
from .strategy import order_loans, select_strategy

logger = logging.getLogger(__name__)


def compute_payoff_plan(
    plan: Plan,
    settings: Optional[PlannerSettings] = None,
    *,
    strategy: str = "auto",
    start_date: Optional[date] = None,
) -> PayoffPlan:
    """Compute the repayment ordering, schedule and summary for ``plan``.

    Parameters
    ----------
    plan: Plan
        Income, expenses and loans.
    settings: PlannerSettings, optional
        Tunable constants; defaults are used when omitted.
    strategy: str
        ``"auto"`` lets the strategy selector decide; ``"avalanche"`` or
        ``"snowball"`` force an ordering.
    start_date: date, optional
        Month of the first payment, used to label the payoff month.
    """
    settings = settings or PlannerSettings()
    validate_loans(plan.loans)
    available = validate_budget(plan.loans, plan.income, plan.expenses)

    if strategy.lower() == "auto":
        ordering = select_strategy(
            plan.loans,
            plan.income,
            plan.expenses,
            quick_win_months=settings.quick_win_months,
            epsilon=settings.epsilon,
        )
    else:
        ordering = order_loans(plan.loans, strategy)

    schedule = simulate(
        ordering.loans,
        plan.income,
        plan.expenses,
        max_months=settings.max_months,
        epsilon=settings.epsilon,
    )
    summary = summarize_schedule(ordering, schedule, available, start_date)
    logger.info(
        "%s plan for %d loans: debt free in %d months, %.2f interest",
        ordering.strategy_name,
        len(plan.loans),
        len(schedule),
        summary["total_interest"],
    )
    return PayoffPlan(ordering=ordering, schedule=schedule, summary=summary)


def compare_strategies(
    plan: Plan,
    settings: Optional[PlannerSettings] = None,
    *,
    start_date: Optional[date] = None,
) -> Dict[str, object]:
    """Run both orderings and report what Avalanche saves over Snowball.

    Positive ``interest_saved`` / ``months_saved`` mean Avalanche is cheaper
    or faster.
    """
    avalanche = compute_payoff_plan(plan, settings, strategy="avalanche", start_date=start_date)
    snowball = compute_payoff_plan(plan, settings, strategy="snowball", start_date=start_date)
    return {
        "avalanche": avalanche.summary,
        "snowball": snowball.summary,
        "interest_saved": snowball.summary["total_interest"] - avalanche.summary["total_interest"],
        "months_saved": snowball.summary["months"] - avalanche.summary["months"],
    }
