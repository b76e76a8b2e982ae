"""
Dict-backed implementation of the posting store.
"""

from __future__ import annotations

from collections import deque
from contextlib import contextmanager
from typing import Deque, Dict, Iterator, Optional, Set

from carddemo.domain.models import (
    AccountRecord,
    CategoryBalanceKey,
    CrossReferenceRecord,
    DailyTransactionRecord,
    TransactionCategoryBalanceRecord,
)
from carddemo.stores.abstract import AccountLockedError
from carddemo.utils.logging import get_logger

log = get_logger(__name__)


class InMemoryStore:
    """
    Keeps every record in process memory.

    Card numbers resolve to at most one cross-reference; registering the same
    card or account twice replaces the earlier record. Daily transactions keep
    insertion order and are consumed when read.
    """

    def __init__(self) -> None:
        self._accounts: Dict[int, AccountRecord] = {}
        self._xrefs: Dict[str, CrossReferenceRecord] = {}
        self._daily: Deque[DailyTransactionRecord] = deque()
        self._balances: Dict[CategoryBalanceKey, TransactionCategoryBalanceRecord] = {}
        self._locked: Set[int] = set()

    def add_account(self, account: AccountRecord) -> None:
        self._accounts[account.account_id] = account

    def add_cross_reference(self, xref: CrossReferenceRecord) -> None:
        if xref.card_number in self._xrefs:
            log.warning("Replacing cross-reference for card", extra={"card": xref.card_number})
        self._xrefs[xref.card_number] = xref

    def add_daily_transaction(self, transaction: DailyTransactionRecord) -> None:
        self._daily.append(transaction)

    def get_account(self, account_id: int) -> Optional[AccountRecord]:
        return self._accounts.get(account_id)

    def get_cross_reference(self, card_number: str) -> Optional[CrossReferenceRecord]:
        if card_number is None:
            return None
        return self._xrefs.get(card_number)

    def daily_transactions(self) -> Iterator[DailyTransactionRecord]:
        """Pending candidates in arrival order; each one is removed as it is read."""
        while self._daily:
            yield self._daily.popleft()

    def get_category_balance(
        self, key: CategoryBalanceKey
    ) -> Optional[TransactionCategoryBalanceRecord]:
        return self._balances.get(key)

    def save_category_balance(self, record: TransactionCategoryBalanceRecord) -> None:
        self._balances[record.key] = record

    def category_balances(self) -> Iterator[TransactionCategoryBalanceRecord]:
        return iter(list(self._balances.values()))

    def save_account(self, account: AccountRecord) -> None:
        self._accounts[account.account_id] = account

    @contextmanager
    def lock_account(self, account_id: int) -> Iterator[None]:
        if account_id in self._locked:
            raise AccountLockedError(account_id)
        self._locked.add(account_id)
        try:
            yield
        finally:
            self._locked.discard(account_id)

    def clear(self) -> None:
        self._accounts.clear()
        self._xrefs.clear()
        self._daily.clear()
        self._balances.clear()
        self._locked.clear()


__all__ = ["InMemoryStore"]
