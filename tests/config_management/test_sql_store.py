"""
Tests for the SQLAlchemy-backed Key-Value Store.

Runs against in-memory SQLite.
"""

import pytest
from datetime import datetime, timezone

from core.clock import MockClock
from core.exceptions import StoreError
from config_management.manager import ConfigVersionManager
from config_management.sql_store import SqlKeyValueStore, create_store_engine
from config_management.store import InMemoryKeyValueStore
from virality_scoring.config import get_default_config


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def sql_store():
    store = SqlKeyValueStore.from_url("sqlite://")
    yield store
    store.engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def any_store(request):
    if request.param == "memory":
        yield InMemoryKeyValueStore()
    else:
        store = SqlKeyValueStore.from_url("sqlite://")
        yield store
        store.engine.dispose()


# ============================================================
# STORE CONTRACT
# ============================================================

class TestKeyValueContract:
    """Both implementations honour the same contract."""

    def test_missing_key_is_none(self, any_store):
        assert any_store.get("config:current") is None

    def test_set_overwrites(self, any_store):
        any_store.set("config:current", "one")
        any_store.set("config:current", "two")

        assert any_store.get("config:current") == "two"

    def test_list_append_preserves_order(self, any_store):
        for value in ["a", "b", "c", "d"]:
            any_store.list_append("config:history", value)

        assert any_store.list_range("config:history", 0, -1) == ["a", "b", "c", "d"]
        assert any_store.list_range("config:history", 1, 2) == ["b", "c"]
        assert any_store.list_range("config:history", -2, -1) == ["c", "d"]
        assert any_store.list_range("config:history", 5, 9) == []

    def test_missing_list_is_empty(self, any_store):
        assert any_store.list_range("config:history") == []

    def test_lists_are_independent(self, any_store):
        any_store.list_append("x", "1")
        any_store.list_append("y", "2")

        assert any_store.list_range("x") == ["1"]


# ============================================================
# SQL SPECIFICS
# ============================================================

class TestSqlKeyValueStore:

    def test_database_errors_wrapped(self):
        engine = create_store_engine("sqlite://")
        store = SqlKeyValueStore(engine)

        with pytest.raises(StoreError) as exc_info:
            store.get("config:current")

        assert exc_info.value.context["operation"] == "get"
        assert exc_info.value.context["key"] == "config:current"
        engine.dispose()

    def test_manager_round_trip(self, sql_store):
        clock = MockClock(datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc))
        manager = ConfigVersionManager(sql_store, clock=clock)

        first = manager.update({"thresholds": {"high": 0.72}}, "one", "alice")
        clock.advance(seconds=30)
        manager.update({"weights": {"toneSeverity": 0.4}}, "two", "alice")
        manager.rollback(first, "bob")

        restarted = ConfigVersionManager(sql_store, clock=clock)
        assert restarted.get_current() == get_default_config().merged_with({"thresholds": {"high": 0.72}})
        assert restarted.get_active_version().version == first
        assert len(restarted.get_history()) == 2
