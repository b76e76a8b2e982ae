"""
PostgreSQL implementation of the posting store.

Reads and writes the tables defined in `db/init.sql` over a single psycopg
connection. The caller owns the connection and decides when to commit; a
posting run commits once, after `write_results`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

import psycopg
from psycopg.rows import dict_row

from carddemo.domain.models import (
    AccountRecord,
    CategoryBalanceKey,
    CrossReferenceRecord,
    DailyTransactionRecord,
    PostedTransactionRecord,
    RejectRecord,
    TransactionCategoryBalanceRecord,
)
from carddemo.stores.abstract import AccountLockedError
from carddemo.utils.logging import get_logger

log = get_logger(__name__)

_TRANSACTION_COLUMNS = tuple(DailyTransactionRecord.model_fields)
_ACCOUNT_COLUMNS = tuple(AccountRecord.model_fields)


def _placeholders(count: int) -> str:
    return ", ".join(["%s"] * count)


class PostgresStore:
    """
    Posting store backed by PostgreSQL.

    Parameters
    ----------
    conn : psycopg.Connection
        An open, non-autocommit connection.
    """

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def add_account(self, account: AccountRecord) -> None:
        updates = ", ".join(f"{col} = EXCLUDED.{col}" for col in _ACCOUNT_COLUMNS[1:])
        with self._conn.cursor() as cur:
            cur.execute(
                f"INSERT INTO public.accounts ({', '.join(_ACCOUNT_COLUMNS)}) "
                f"VALUES ({_placeholders(len(_ACCOUNT_COLUMNS))}) "
                f"ON CONFLICT (account_id) DO UPDATE SET {updates}",
                tuple(getattr(account, col) for col in _ACCOUNT_COLUMNS),
            )

    def add_cross_reference(self, xref: CrossReferenceRecord) -> None:
        with self._conn.cursor() as cur:
            cur.execute(
                "INSERT INTO public.card_xref (card_number, account_id, customer_id) "
                "VALUES (%s, %s, %s) ON CONFLICT (card_number) DO UPDATE SET "
                "account_id = EXCLUDED.account_id, customer_id = EXCLUDED.customer_id",
                (xref.card_number, xref.account_id, xref.customer_id),
            )

    def add_daily_transaction(self, transaction: DailyTransactionRecord) -> None:
        with self._conn.cursor() as cur:
            cur.execute(
                f"INSERT INTO public.daily_transactions ({', '.join(_TRANSACTION_COLUMNS)}) "
                f"VALUES ({_placeholders(len(_TRANSACTION_COLUMNS))})",
                tuple(getattr(transaction, col) for col in _TRANSACTION_COLUMNS),
            )

    def get_account(self, account_id: int) -> Optional[AccountRecord]:
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                f"SELECT {', '.join(_ACCOUNT_COLUMNS)} FROM public.accounts WHERE account_id = %s",
                (account_id,),
            )
            row = cur.fetchone()
        return AccountRecord(**row) if row else None

    def get_cross_reference(self, card_number: str) -> Optional[CrossReferenceRecord]:
        if card_number is None:
            return None
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                "SELECT card_number, account_id, customer_id FROM public.card_xref "
                "WHERE card_number = %s",
                (card_number,),
            )
            row = cur.fetchone()
        return CrossReferenceRecord(**row) if row else None

    def daily_transactions(self) -> Iterator[DailyTransactionRecord]:
        """
        Pending transactions in arrival order.

        The rows are flagged processed in the same statement that reads them,
        so the flag commits or rolls back together with the posting results.
        """
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                "UPDATE public.daily_transactions SET processed = TRUE WHERE NOT processed "
                f"RETURNING seq, {', '.join(_TRANSACTION_COLUMNS)}"
            )
            rows = cur.fetchall()
        # RETURNING order is unspecified
        rows.sort(key=lambda row: row["seq"])
        log.debug("Pending transactions claimed", extra={"claimed": len(rows)})
        return iter(
            [DailyTransactionRecord(**{col: row[col] for col in _TRANSACTION_COLUMNS}) for row in rows]
        )

    def get_category_balance(
        self, key: CategoryBalanceKey
    ) -> Optional[TransactionCategoryBalanceRecord]:
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                "SELECT account_id, type_code, category_code, balance "
                "FROM public.transaction_category_balances "
                "WHERE account_id = %s AND type_code = %s AND category_code = %s",
                tuple(key),
            )
            row = cur.fetchone()
        return TransactionCategoryBalanceRecord(**row) if row else None

    def save_category_balance(self, record: TransactionCategoryBalanceRecord) -> None:
        with self._conn.cursor() as cur:
            cur.execute(
                "INSERT INTO public.transaction_category_balances "
                "(account_id, type_code, category_code, balance) VALUES (%s, %s, %s, %s) "
                "ON CONFLICT (account_id, type_code, category_code) "
                "DO UPDATE SET balance = EXCLUDED.balance",
                (*record.key, record.balance),
            )

    def category_balances(self) -> Iterator[TransactionCategoryBalanceRecord]:
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(
                "SELECT account_id, type_code, category_code, balance "
                "FROM public.transaction_category_balances "
                "ORDER BY account_id, type_code, category_code"
            )
            rows = cur.fetchall()
        return iter([TransactionCategoryBalanceRecord(**row) for row in rows])

    def save_account(self, account: AccountRecord) -> None:
        assignments = ", ".join(f"{col} = %s" for col in _ACCOUNT_COLUMNS[1:])
        with self._conn.cursor() as cur:
            cur.execute(
                f"UPDATE public.accounts SET {assignments} WHERE account_id = %s",
                (*(getattr(account, col) for col in _ACCOUNT_COLUMNS[1:]), account.account_id),
            )

    @contextmanager
    def lock_account(self, account_id: int) -> Iterator[None]:
        with self._conn.transaction():
            with self._conn.cursor() as cur:
                try:
                    cur.execute(
                        "SELECT account_id FROM public.accounts "
                        "WHERE account_id = %s FOR UPDATE NOWAIT",
                        (account_id,),
                    )
                except psycopg.errors.LockNotAvailable as exc:
                    raise AccountLockedError(account_id) from exc
            yield

    def write_results(
        self,
        posted: Iterable[PostedTransactionRecord],
        rejects: Iterable[RejectRecord],
    ) -> None:
        """Append posted and rejected records."""
        posted_columns = (*_TRANSACTION_COLUMNS, "processed_timestamp")
        posted_rows = [tuple(getattr(record, col) for col in posted_columns) for record in posted]
        reject_rows = [
            (
                reject.transaction_id,
                reject.transaction_data,
                reject.validation_fail_reason,
                reject.validation_fail_description,
            )
            for reject in rejects
        ]
        with self._conn.cursor() as cur:
            if posted_rows:
                cur.executemany(
                    f"INSERT INTO public.transactions ({', '.join(posted_columns)}) "
                    f"VALUES ({_placeholders(len(posted_columns))})",
                    posted_rows,
                )
            if reject_rows:
                cur.executemany(
                    "INSERT INTO public.daily_rejects "
                    "(transaction_id, transaction_data, fail_reason, fail_description) "
                    "VALUES (%s, %s, %s, %s)",
                    reject_rows,
                )
        log.info(
            "Posting results written",
            extra={"posted": len(posted_rows), "rejected": len(reject_rows)},
        )

    def commit(self) -> None:
        self._conn.commit()

    def clear(self) -> None:
        with self._conn.cursor() as cur:
            cur.execute(
                "TRUNCATE TABLE public.accounts, public.card_xref, public.daily_transactions, "
                "public.transaction_category_balances, public.transactions, public.daily_rejects "
                "RESTART IDENTITY"
            )


__all__ = ["PostgresStore"]
