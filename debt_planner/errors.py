"""Exceptions raised by the debt planner.

Each error carries a machine-readable ``kind`` plus the offending field and
value so that the CLI and the web layer can build messages without parsing
strings.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

_LARGE_AMOUNT = Decimal("1e15")


class DebtPlanError(Exception):
    """Base exception for the planner"""

    kind = "debt_plan_error"

    def __init__(self, message: str, *, field: Optional[str] = None, value: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field
        self.value = value

    def to_dict(self) -> Dict[str, Any]:
        value = self.value
        if isinstance(value, Decimal):
            value = float(value)
        return {
            "kind": self.kind,
            "message": self.message,
            "field": self.field,
            "value": value,
        }


class InvalidInput(DebtPlanError):
    """A loan, income or expense figure is missing or out of range"""

    kind = "invalid_input"


class InsufficientIncome(DebtPlanError):
    """Income after expenses does not cover the sum of minimum payments"""

    kind = "insufficient_income"

    def __init__(self, available: Decimal, required: Decimal) -> None:
        super().__init__(
            "Your income is not sufficient to cover your expenses and minimum debt "
            f"payments: {available:.2f} available, {required:.2f} required.",
            field="income",
            value=available,
        )
        self.available = available
        self.required = required

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["available"] = float(self.available)
        data["required"] = float(self.required)
        return data


class ScheduleDivergent(DebtPlanError):
    """The simulation hit the month cap, or overflowed, without paying everything off"""

    kind = "schedule_divergent"

    def __init__(self, months: int, remaining: Decimal) -> None:
        # Runaway balances are shown in scientific notation
        shown = f"{remaining:.2E}" if remaining >= _LARGE_AMOUNT else f"{remaining:.2f}"
        super().__init__(
            f"Loans are not paid off after {months} months "
            f"({shown} still outstanding); payments are too low for the interest rates.",
            field="months",
            value=months,
        )
        self.months = months
        self.remaining = remaining
