"""Utility functions for the debt payoff planner.

This module provides helpers for parsing user input into Python data types
(amounts, loans and whole plans coming from the command line, a JSON file or
an HTTP request) and for handling dates, including adding months and
normalizing year-month strings to ``datetime.date`` instances.
"""

from __future__ import annotations

import calendar
import json
from datetime import date
from decimal import Decimal, getcontext
from pathlib import Path
from typing import Any, Mapping

from .data_models import Loan, Plan
from .errors import InvalidInput

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

# Keys accepted for each loan field; camelCase matches the browser app's stored JSON
_LOAN_KEYS = {
    "name": ("name",),
    "balance": ("balance",),
    "interest_rate": ("interest_rate", "interestRate", "apr"),
    "minimum_payment": ("minimum_payment", "minimumPayment"),
}


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        return date(year, month, 1)
    except Exception as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a finite ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        result = Decimal(cleaned)
    except Exception as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a money amount with optional ``k``/``m`` suffixes.

    ``"50k"`` means 50 000 and ``"1.2m"`` means 1 200 000. A leading currency
    sign (``₹``, ``$``) is ignored.
    """
    text = value.strip().lower().lstrip("₹$").replace(",", "")
    factor = Decimal(1)
    if text.endswith("k"):
        factor = Decimal(1_000)
        text = text[:-1]
    elif text.endswith("m"):
        factor = Decimal(1_000_000)
        text = text[:-1]
    return decimal_from_str(text) * factor


def to_decimal(value: Any, field: str) -> Decimal:
    """Coerce a JSON/form value to ``Decimal`` or raise ``InvalidInput``."""
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f"{field} must be a number.", field=field, value=value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(repr(value))
    elif isinstance(value, (int, str)):
        try:
            result = parse_amount(str(value))
        except ValueError:
            raise InvalidInput(f"{field} must be a number.", field=field, value=value)
    else:
        raise InvalidInput(f"{field} must be a number.", field=field, value=value)
    if not result.is_finite():
        raise InvalidInput(f"{field} must be a number.", field=field, value=value)
    return result


def format_duration(months: int) -> str:
    """Render a month count as ``"X years and Y months"``."""
    years, rest = divmod(months, 12)
    year_word = "year" if years == 1 else "years"
    month_word = "month" if rest == 1 else "months"
    return f"{years} {year_word} and {rest} {month_word}"


def parse_loan_string(item: str) -> Loan:
    """Parse ``NAME:BALANCE:APR:MINIMUM`` into a ``Loan``.

    The name may itself contain colons; the last three fields are numbers.
    An APR may carry a trailing ``%``.
    """
    parts = item.rsplit(":", 3)
    if len(parts) != 4:
        raise ValueError(f"Loan must be in NAME:BALANCE:APR:MINIMUM format; got {item}")
    name, balance, rate, minimum = parts
    return Loan(
        name=name.strip(),
        balance=parse_amount(balance),
        interest_rate=decimal_from_str(rate.strip().rstrip("%")),
        minimum_payment=parse_amount(minimum),
    )


def _pick(data: Mapping[str, Any], field: str) -> Any:
    for key in _LOAN_KEYS[field]:
        if key in data:
            return data[key]
    raise InvalidInput(f"Loan is missing {field}.", field=field, value=None)


def loan_from_dict(data: Mapping[str, Any]) -> Loan:
    """Build a ``Loan`` from a mapping using snake_case or camelCase keys."""
    if not isinstance(data, Mapping):
        raise InvalidInput("Each loan must be an object.", field="loans", value=data)
    name = _pick(data, "name")
    if not isinstance(name, str):
        raise InvalidInput("Loan name must be a string.", field="name", value=name)
    return Loan(
        name=name.strip(),
        balance=to_decimal(_pick(data, "balance"), "balance"),
        interest_rate=to_decimal(_pick(data, "interest_rate"), "interest_rate"),
        minimum_payment=to_decimal(_pick(data, "minimum_payment"), "minimum_payment"),
    )


def plan_from_dict(data: Mapping[str, Any]) -> Plan:
    """Build a ``Plan`` from ``{"income", "expenses", "loans": [...]}``.

    Only structure and numeric form are checked here; range checks belong to
    the engine.
    """
    if not isinstance(data, Mapping):
        raise InvalidInput("Plan must be an object.", field="plan", value=None)
    if "income" not in data:
        raise InvalidInput("Monthly income is required.", field="income", value=None)
    loans = data.get("loans")
    if not isinstance(loans, list):
        raise InvalidInput("loans must be a list.", field="loans", value=loans)
    return Plan(
        income=to_decimal(data["income"], "income"),
        expenses=to_decimal(data.get("expenses", 0), "expenses"),
        loans=tuple(loan_from_dict(item) for item in loans),
    )


def load_plan_file(path: Path) -> Plan:
    """Read a plan from a JSON file."""
    with path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise InvalidInput(f"{path} is not valid JSON: {exc}", field="plan", value=str(path))
    return plan_from_dict(data)
