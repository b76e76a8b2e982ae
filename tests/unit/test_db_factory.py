from __future__ import annotations

from carddemo.config import Settings
from carddemo.infrastructure import db_factory

EXPECTED_TIMEOUT_MS = 1500


class _RecordingCursor:
    def __init__(self) -> None:
        self.statements = []

    def execute(self, sql, params=None):
        self.statements.append(sql)


def test_build_dsn_from_settings() -> None:
    settings = Settings(db_user="u", db_password="p", db_host="h", db_port=6543, db_name="cards")
    assert db_factory.build_dsn(settings) == "postgresql://u:p@h:6543/cards"


def test_apply_statement_timeout() -> None:
    cur = _RecordingCursor()
    db_factory.apply_statement_timeout(cur, EXPECTED_TIMEOUT_MS)
    assert cur.statements == [f"SET statement_timeout = {EXPECTED_TIMEOUT_MS}"]


def test_get_sync_connection_uses_explicit_dsn(monkeypatch) -> None:
    seen = []
    monkeypatch.setattr(db_factory.psycopg, "connect", lambda dsn: seen.append(dsn) or "conn")

    assert db_factory.get_sync_connection("postgresql://x@y/z") == "conn"
    assert seen == ["postgresql://x@y/z"]


def test_pool_manager_is_singleton() -> None:
    assert db_factory.PoolManager() is db_factory.PoolManager()
