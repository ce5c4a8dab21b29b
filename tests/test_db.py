"""Tests de construcción del engine (límites de espera por backend)."""

from unittest.mock import MagicMock

import common.db as db


class TestBuildEngine:
    def test_postgres_bounds_connect_and_statements(self, monkeypatch):
        create_engine = MagicMock()
        monkeypatch.setattr(db, "create_engine", create_engine)

        db.build_engine("postgresql://monitor:pw@db.local/monitor", timeout_seconds=7.5)

        _, kwargs = create_engine.call_args
        assert kwargs["connect_args"]["connect_timeout"] == 7
        assert kwargs["connect_args"]["options"] == "-c statement_timeout=7500"
        assert kwargs["pool_timeout"] == 7.5

    def test_sqlite_uses_busy_timeout(self, monkeypatch):
        create_engine = MagicMock()
        monkeypatch.setattr(db, "create_engine", create_engine)

        db.build_engine("sqlite:///monitor.db", timeout_seconds=3)

        _, kwargs = create_engine.call_args
        assert kwargs["connect_args"] == {"check_same_thread": False, "timeout": 3}
