"""Planner configuration loaded from the environment.

The tunable constants of the strategy selector and simulator live here so
product requirements can adjust them without code changes. Values are read
from ``DEBT_PLANNER_*`` environment variables, optionally supplied through a
``.env`` file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional

from dotenv import load_dotenv

from .engine import DEFAULT_EPSILON, DEFAULT_MAX_MONTHS
from .strategy import QUICK_WIN_MONTHS

ENV_PREFIX = "DEBT_PLANNER_"


def _env_int(env: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer; got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{ENV_PREFIX}{name} must be at least {minimum}; got {value}")
    return value


def _env_decimal(env: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        value = Decimal(raw.strip())
    except Exception as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be a number; got {raw!r}") from exc
    if not value.is_finite() or value <= 0:
        raise ValueError(f"{ENV_PREFIX}{name} must be a positive number; got {raw!r}")
    return value


@dataclass(frozen=True)
class PlannerSettings:
    """Tunable planner parameters.

    Attributes
    ----------
    quick_win_months: int
        Snowball is chosen when its first target is paid off within this
        many months. ``0`` disables Snowball selection.
    max_months: int
        Simulation cap; longer schedules fail as divergent.
    epsilon: Decimal
        Remaining total balance treated as fully paid.
    log_level: str
        Level name handed to ``configure_logging``.
    log_file: Optional[str]
        Extra file that log records are appended to; stderr only when unset.
    """

    quick_win_months: int = QUICK_WIN_MONTHS
    max_months: int = DEFAULT_MAX_MONTHS
    epsilon: Decimal = DEFAULT_EPSILON
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "PlannerSettings":
        if env is None:
            load_dotenv()
            env = os.environ
        return cls(
            quick_win_months=_env_int(env, "QUICK_WIN_MONTHS", QUICK_WIN_MONTHS, minimum=0),
            max_months=_env_int(env, "MAX_MONTHS", DEFAULT_MAX_MONTHS, minimum=1),
            epsilon=_env_decimal(env, "EPSILON", DEFAULT_EPSILON),
            log_level=(env.get(ENV_PREFIX + "LOG_LEVEL") or "INFO").strip().upper(),
            log_file=(env.get(ENV_PREFIX + "LOG_FILE") or "").strip() or None,
        )
