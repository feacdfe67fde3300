from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy.exc import OperationalError

from debt_planner_web.plan_store import PlanStoreError, SqlPlanStore


@pytest.fixture
def store(tmp_path: Path) -> SqlPlanStore:
    return SqlPlanStore(f"sqlite:///{tmp_path / 'plans.db'}", max_per_user=2)


def _summary(strategy: str = "Debt Avalanche") -> dict:
    return {"strategy": strategy, "months": 7, "debt_free_in": "0 years and 7 months"}


def test_add_and_list_in_insertion_order(store: SqlPlanStore) -> None:
    store.add_plan("user-a", "p1", "First", _summary(), [{"month": 1}])
    store.add_plan("user-a", "p2", "Second", _summary("Debt Snowball"), [])

    plans = store.list_plans("user-a")

    assert [p["id"] for p in plans] == ["p1", "p2"]
    assert plans[0]["schedule"] == [{"month": 1}]
    assert plans[1]["strategy"] == "Debt Snowball"
    assert plans[0]["summary"]["months"] == 7


def test_plans_are_scoped_per_user(store: SqlPlanStore) -> None:
    store.add_plan("user-a", "p1", "Mine", _summary(), [])

    assert store.list_plans("user-b") == []
    assert store.list_plans("") == []


def test_oldest_plans_are_trimmed(store: SqlPlanStore) -> None:
    for i in range(3):
        store.add_plan("user-a", f"p{i}", f"Plan {i}", _summary(), [])

    assert [p["id"] for p in store.list_plans("user-a")] == ["p1", "p2"]


def test_remove_and_clear(store: SqlPlanStore) -> None:
    store.add_plan("user-a", "p1", "One", _summary(), [])
    store.add_plan("user-a", "p2", "Two", _summary(), [])

    store.remove_plan("user-a", "p1")
    assert [p["id"] for p in store.list_plans("user-a")] == ["p2"]

    store.remove_plan("user-b", "p2")
    assert len(store.list_plans("user-a")) == 1

    store.clear_plans("user-a")
    assert store.list_plans("user-a") == []


def test_empty_token_is_ignored(store: SqlPlanStore) -> None:
    store.add_plan("", "p1", "Anonymous", _summary(), [])

    assert store.list_plans("") == []


def test_unopenable_database_raises(tmp_path: Path) -> None:
    missing = tmp_path / "missing" / "dir" / "plans.db"

    with pytest.raises(PlanStoreError):
        SqlPlanStore(f"sqlite:///{missing}")


def test_duplicate_id_raises(store: SqlPlanStore) -> None:
    store.add_plan("user-a", "p1", "One", _summary(), [])

    with pytest.raises(PlanStoreError):
        store.add_plan("user-a", "p1", "Again", _summary(), [])


def test_trim_failure_is_wrapped(store: SqlPlanStore, monkeypatch) -> None:
    real_factory = store._session_factory
    calls = []

    def failing_after_insert():
        calls.append(1)
        if len(calls) > 1:
            raise OperationalError("SELECT", {}, Exception("database is locked"))
        return real_factory()

    monkeypatch.setattr(store, "_session_factory", failing_after_insert)

    with pytest.raises(PlanStoreError, match="trim"):
        store.add_plan("user-a", "p1", "One", _summary(), [])
