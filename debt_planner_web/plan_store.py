"""Persistence layer for saved payoff plans.

The web app talks to storage only through the ``PlanStore`` protocol so that
the planner can be exercised without a database. ``SqlPlanStore`` is the
default implementation: it keeps plans in SQLite for local development but
accepts any SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Protocol

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlanStoreError(Exception):
    """Saved plans could not be read or written."""


class PlanStore(Protocol):
    """Load/save operations the web app needs for saved plans."""

    def list_plans(self, user_token: str) -> List[Dict[str, Any]]:
        ...

    def add_plan(self, user_token: str, plan_id: str, name: str, summary: dict, schedule: list) -> None:
        ...

    def remove_plan(self, user_token: str, plan_id: str) -> None:
        ...

    def clear_plans(self, user_token: str) -> None:
        ...


class SavedPlanModel(Base):
    __tablename__ = "saved_plans"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), unique=True, nullable=False)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    strategy = Column(String(32), nullable=False)
    summary_json = Column(Text, nullable=False)
    schedule_json = Column(Text, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class SqlPlanStore:
    """Database-backed plan store."""

    def __init__(self, url: str, *, max_per_user: int = 10) -> None:
        try:
            self._engine = create_engine(url, future=True)
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise PlanStoreError(f"Cannot open plan store at {url}: {exc}") from exc
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def list_plans(self, user_token: str) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        try:
            with self._session_factory() as session:
                rows: Iterable[SavedPlanModel] = session.execute(
                    select(SavedPlanModel)
                    .where(SavedPlanModel.user_token == user_token)
                    .order_by(SavedPlanModel.seq.asc())
                ).scalars()
                return [self._to_dict(row) for row in rows]
        except SQLAlchemyError as exc:
            raise PlanStoreError(f"Cannot load saved plans: {exc}") from exc

    def add_plan(self, user_token: str, plan_id: str, name: str, summary: dict, schedule: list) -> None:
        if not user_token:
            return
        payload = SavedPlanModel(
            id=plan_id,
            user_token=user_token,
            name=name,
            strategy=str(summary.get("strategy", "")),
            summary_json=json.dumps(summary),
            schedule_json=json.dumps(schedule),
        )
        try:
            with self._session_factory() as session:
                session.add(payload)
                session.commit()
        except SQLAlchemyError as exc:
            raise PlanStoreError(f"Cannot save plan {name!r}: {exc}") from exc
        logger.info("Saved plan %s (%s)", plan_id, name)
        self._trim_user(user_token)

    def remove_plan(self, user_token: str, plan_id: str) -> None:
        if not user_token or not plan_id:
            return
        try:
            with self._session_factory() as session:
                session.execute(
                    SavedPlanModel.__table__.delete().where(
                        (SavedPlanModel.user_token == user_token) & (SavedPlanModel.id == plan_id)
                    )
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise PlanStoreError(f"Cannot remove plan {plan_id}: {exc}") from exc

    def clear_plans(self, user_token: str) -> None:
        if not user_token:
            return
        try:
            with self._session_factory() as session:
                session.execute(
                    SavedPlanModel.__table__.delete().where(SavedPlanModel.user_token == user_token)
                )
                session.commit()
        except SQLAlchemyError as exc:
            raise PlanStoreError(f"Cannot clear saved plans: {exc}") from exc

    def _trim_user(self, user_token: str) -> None:
        if not self._max_per_user or self._max_per_user < 0:
            return
        try:
            with self._session_factory() as session:
                rows = session.execute(
                    select(SavedPlanModel)
                    .where(SavedPlanModel.user_token == user_token)
                    .order_by(SavedPlanModel.seq.desc())
                ).scalars().all()
                if len(rows) <= self._max_per_user:
                    return
                for row in rows[self._max_per_user :]:
                    session.delete(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise PlanStoreError(f"Cannot trim saved plans: {exc}") from exc

    @staticmethod
    def _to_dict(row: SavedPlanModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "strategy": row.strategy,
            "summary": json.loads(row.summary_json),
            "schedule": json.loads(row.schedule_json),
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: str | None, max_per_user: int = 10) -> SqlPlanStore:
    return SqlPlanStore(url or "sqlite:///saved_plans.sqlite3", max_per_user=max_per_user)
