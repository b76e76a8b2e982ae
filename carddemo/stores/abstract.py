"""
Store interface consumed by the posting engine.

The engine only needs keyed inserts and lookups plus an account lock. The
in-memory store backs tests and file-driven runs; the Postgres store backs
production runs. Both implement `PostingStore` so they can be swapped freely.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Iterator, Optional, Protocol, runtime_checkable

from carddemo.domain.models import (
    AccountRecord,
    CategoryBalanceKey,
    CrossReferenceRecord,
    DailyTransactionRecord,
    TransactionCategoryBalanceRecord,
)


class AccountLockedError(RuntimeError):
    """Raised when an account row is already locked for update."""

    def __init__(self, account_id: int) -> None:
        super().__init__(f"Account {account_id} is already locked for update")
        self.account_id = account_id


@runtime_checkable
class PostingStore(Protocol):
    """
    Keyed storage for the records a posting run reads and mutates.

    Lookups return None when the key is absent; they never raise for a
    missing record.
    """

    def add_account(self, account: AccountRecord) -> None: ...

    def add_cross_reference(self, xref: CrossReferenceRecord) -> None: ...

    def add_daily_transaction(self, transaction: DailyTransactionRecord) -> None: ...

    def get_account(self, account_id: int) -> Optional[AccountRecord]: ...

    def get_cross_reference(self, card_number: str) -> Optional[CrossReferenceRecord]: ...

    def daily_transactions(self) -> Iterator[DailyTransactionRecord]:
        """Pending candidates in arrival order. Reading a candidate consumes it."""
        ...

    def get_category_balance(
        self, key: CategoryBalanceKey
    ) -> Optional[TransactionCategoryBalanceRecord]: ...

    def save_category_balance(self, record: TransactionCategoryBalanceRecord) -> None: ...

    def category_balances(self) -> Iterator[TransactionCategoryBalanceRecord]: ...

    def save_account(self, account: AccountRecord) -> None: ...

    def lock_account(self, account_id: int) -> AbstractContextManager[None]:
        """
        Hold an update lock on the account for the duration of the block.

        Raises
        ------
        AccountLockedError
            If the account is already locked.
        """
        ...

    def clear(self) -> None: ...


__all__ = ["AccountLockedError", "PostingStore"]
