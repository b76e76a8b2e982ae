"""
Pytest configuration for the CardDemo posting batch.

Provides fixtures for:
- Posting engine and in-memory store setup
- Sample account, cross-reference and transaction records
- Database connection management for integration tests
"""

from __future__ import annotations

import os
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Callable, Generator

import psycopg
import pytest

from carddemo.config import Settings, get_settings
from carddemo.decimals import DecimalPolicy
from carddemo.domain import (
    AccountRecord,
    CrossReferenceRecord,
    CyclePostingPolicy,
    DailyTransactionRecord,
)
from carddemo.posting import TransactionPostingEngine
from carddemo.stores.memory import InMemoryStore

ACCOUNT_ID = 12345678901
CARD_NUMBER = "4111111111111111"
FIXED_NOW = datetime(2024, 6, 15, 10, 30, 45, 123456)


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def policy() -> DecimalPolicy:
    return DecimalPolicy()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def engine(store: InMemoryStore, policy: DecimalPolicy) -> TransactionPostingEngine:
    return TransactionPostingEngine(
        store=store,
        policy=policy,
        cycle_policy=CyclePostingPolicy.DEBIT_PURCHASES,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def account() -> AccountRecord:
    return AccountRecord(
        account_id=ACCOUNT_ID,
        current_balance=Decimal("300.00"),
        credit_limit=Decimal("1000.00"),
        current_cycle_credit=Decimal("500.00"),
        current_cycle_debit=Decimal("800.00"),
        expiration_date=date(2025, 12, 31),
    )


@pytest.fixture
def xref() -> CrossReferenceRecord:
    return CrossReferenceRecord(card_number=CARD_NUMBER, account_id=ACCOUNT_ID, customer_id=1)


@pytest.fixture
def make_transaction() -> Callable[..., DailyTransactionRecord]:
    """Factory for candidates; keyword arguments override the defaults."""

    def _make(**overrides) -> DailyTransactionRecord:
        fields = {
            "transaction_id": "TXN0000000000001",
            "card_number": CARD_NUMBER,
            "type_code": "01",
            "category_code": 1,
            "source": "POS TERM",
            "description": "PURCHASE",
            "amount": Decimal("100.00"),
            "merchant_id": "000000001",
            "merchant_name": "Grocery Mart",
            "merchant_city": "Seattle",
            "merchant_zip": "98101",
            "original_timestamp": "2024-06-15-09.00.00.000000",
        }
        fields.update(overrides)
        return DailyTransactionRecord(**fields)

    return _make


@pytest.fixture
def loaded_engine(
    engine: TransactionPostingEngine, account: AccountRecord, xref: CrossReferenceRecord
) -> TransactionPostingEngine:
    engine.add_account(account)
    engine.add_cross_reference(xref)
    return engine


# ------------------------------------------------------------------ database


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "carddemo"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection with the posting schema applied.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with conn.cursor() as cur:
        cur.execute(init_sql_path.read_text(encoding="utf-8"))
    conn.commit()
    try:
        yield conn
    finally:
        conn.close()
