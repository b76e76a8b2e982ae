"""
Integration tests for the PostgreSQL posting store.

These tests run against a real PostgreSQL instance and verify that:
1. The posting engine posts and rejects against database-backed records
2. Posted transactions and rejects are written and pending rows are claimed once
3. Row-lock contention surfaces as AccountLockedError

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os
from datetime import date
from decimal import Decimal

import psycopg
import pytest

from carddemo.decimals import DecimalPolicy
from carddemo.domain import AccountRecord, CrossReferenceRecord, CyclePostingPolicy
from carddemo.posting import TransactionPostingEngine
from carddemo.stores import AccountLockedError, PostgresStore

ACCOUNT_ID = 12345678901
CARD_NUMBER = "4111111111111111"
EXPECTED_POSTED = 1
EXPECTED_REJECTED = 1

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


@pytest.fixture
def pg_store(db_connection: psycopg.Connection):
    store = PostgresStore(db_connection)
    store.clear()
    store.add_account(
        AccountRecord(
            account_id=ACCOUNT_ID,
            current_balance=Decimal("300.00"),
            credit_limit=Decimal("1000.00"),
            current_cycle_credit=Decimal("500.00"),
            current_cycle_debit=Decimal("800.00"),
            expiration_date=date(2025, 12, 31),
        )
    )
    store.add_cross_reference(CrossReferenceRecord(card_number=CARD_NUMBER, account_id=ACCOUNT_ID))
    store.commit()
    yield store
    db_connection.rollback()
    store.clear()
    store.commit()


def _count(conn: psycopg.Connection, table: str) -> int:
    with conn.cursor() as cur:
        cur.execute(f"SELECT COUNT(*) FROM public.{table}")
        return cur.fetchone()[0]


def test_posting_run_writes_results(pg_store, db_connection, make_transaction):
    engine = TransactionPostingEngine(
        store=pg_store, policy=DecimalPolicy(), cycle_policy=CyclePostingPolicy.DEBIT_PURCHASES
    )
    engine.add_daily_transaction(make_transaction(transaction_id="OK"))
    engine.add_daily_transaction(make_transaction(transaction_id="BAD", card_number="4000000000000002"))

    assert engine.post_daily_transactions() == 4
    pg_store.write_results(engine.posted_transactions, engine.rejected_transactions)
    pg_store.commit()

    assert _count(db_connection, "transactions") == EXPECTED_POSTED
    assert _count(db_connection, "daily_rejects") == EXPECTED_REJECTED
    assert list(pg_store.daily_transactions()) == []
    account = pg_store.get_account(ACCOUNT_ID)
    assert account.current_balance == Decimal("400.00")
    assert account.current_cycle_debit == Decimal("900.00")
    (balance,) = list(pg_store.category_balances())
    assert balance.balance == Decimal("100.00")


def test_second_run_finds_no_pending_rows(pg_store, db_connection, make_transaction):
    engine = TransactionPostingEngine(
        store=pg_store, policy=DecimalPolicy(), cycle_policy=CyclePostingPolicy.DEBIT_PURCHASES
    )
    engine.add_daily_transaction(make_transaction(amount=Decimal("100.005")))
    pg_store.commit()

    written = 0
    for _ in range(2):
        engine.post_daily_transactions()
        pg_store.write_results(engine.posted_transactions[written:], [])
        pg_store.commit()
        written = len(engine.posted_transactions)

    assert engine.transaction_count == 0
    assert _count(db_connection, "transactions") == EXPECTED_POSTED
    assert pg_store.get_account(ACCOUNT_ID).current_balance == Decimal("400.01")
    with db_connection.cursor() as cur:
        cur.execute("SELECT amount FROM public.transactions")
        assert cur.fetchone()[0] == Decimal("100.01")


def test_locked_account_raises(pg_store, test_dsn):
    with psycopg.connect(test_dsn) as other:
        with other.cursor() as cur:
            cur.execute(
                "SELECT account_id FROM public.accounts WHERE account_id = %s FOR UPDATE",
                (ACCOUNT_ID,),
            )
        with pytest.raises(AccountLockedError):
            with pg_store.lock_account(ACCOUNT_ID):
                pass
        other.rollback()
