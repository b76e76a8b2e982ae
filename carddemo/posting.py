"""
Daily transaction posting engine.

Each pending candidate is validated against the card cross-reference and the
owning account, then either posted (account cycle totals and category balance
updated, processed timestamp stamped) or written to the reject list with a
numeric reason code. A run never stops on a business rejection; it returns
condition code 0 when nothing was rejected and 4 otherwise.

Usage:
    from carddemo.posting import TransactionPostingEngine

    engine = TransactionPostingEngine()
    engine.add_account(account)
    engine.add_cross_reference(xref)
    engine.add_daily_transaction(candidate)
    code = engine.post_daily_transactions()
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from carddemo.decimals import DecimalPolicy, Number, to_decimal
from carddemo.domain.models import (
    AccountRecord,
    CategoryBalanceKey,
    CrossReferenceRecord,
    DailyTransactionRecord,
    PostedTransactionRecord,
    RejectRecord,
    TransactionCategoryBalanceRecord,
    format_transaction_data,
)
from carddemo.domain.reasons import ConditionCode, CyclePostingPolicy, RejectReason
from carddemo.stores.abstract import PostingStore
from carddemo.stores.memory import InMemoryStore
from carddemo.timestamps import format_db2_timestamp, timestamp_date
from carddemo.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class BatchResult:
    condition_code: int
    transaction_count: int
    reject_count: int

    @property
    def successful_transactions(self) -> int:
        return self.transaction_count - self.reject_count


class TransactionPostingEngine:
    """
    Validates and posts daily transactions against a posting store.

    Parameters
    ----------
    store : PostingStore | None
        Where accounts, cross-references, candidates and category balances
        live. Defaults to a fresh in-memory store.
    policy : DecimalPolicy | None
        Scale and rounding for every monetary operation. Defaults to settings.
    cycle_policy : CyclePostingPolicy | str | None
        Which cycle accumulator posted amounts land in. Defaults to settings.
    clock : callable | None
        Source of the processed timestamp; defaults to `datetime.now`.
    """

    def __init__(
        self,
        store: Optional[PostingStore] = None,
        policy: Optional[DecimalPolicy] = None,
        cycle_policy: Optional[CyclePostingPolicy | str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if cycle_policy is None:
            from carddemo.config import get_settings

            cycle_policy = get_settings().cycle_posting_policy
        self._store: PostingStore = store if store is not None else InMemoryStore()
        self._policy = policy or DecimalPolicy.from_settings()
        self._cycle_policy = CyclePostingPolicy(cycle_policy)
        self._clock = clock or datetime.now

        self._posted: List[PostedTransactionRecord] = []
        self._rejected: List[RejectRecord] = []
        self._transaction_count = 0
        self._reject_count = 0
        self._condition_code = ConditionCode.SUCCESS
        self._last_failure: Optional[RejectReason] = None

    # ------------------------------------------------------------------ loading

    def add_account(self, account: AccountRecord) -> None:
        """Register an account, rescaling its monetary fields to the policy."""
        if account is None:
            raise ValueError("Account record is required")
        for field in ("current_balance", "credit_limit", "current_cycle_credit", "current_cycle_debit"):
            setattr(account, field, self._policy.quantize(getattr(account, field)))
        self._store.add_account(account)

    def add_cross_reference(self, xref: CrossReferenceRecord) -> None:
        if xref is None:
            raise ValueError("Cross-reference record is required")
        self._store.add_cross_reference(xref)

    def add_daily_transaction(self, transaction: DailyTransactionRecord) -> None:
        if transaction is None:
            raise ValueError("Daily transaction record is required")
        self._store.add_daily_transaction(transaction)

    # ------------------------------------------------------------------ batch

    def post_daily_transactions(self) -> int:
        """
        Classify every pending candidate as posted or rejected.

        Returns
        -------
        int
            0 when no candidate was rejected, 4 otherwise.
        """
        log.info("[POSTING START] Daily transaction posting")
        self._transaction_count = 0
        self._reject_count = 0
        self._condition_code = ConditionCode.SUCCESS

        for candidate in self._store.daily_transactions():
            self._transaction_count += 1
            if self.validate_transaction(candidate) and self.process_transaction(candidate):
                continue
            self._reject_count += 1
            self.generate_reject_record(candidate)

        if self._reject_count > 0:
            self._condition_code = ConditionCode.COMPLETED_WITH_REJECTS

        log.info(
            "[POSTING COMPLETE] Daily transaction posting",
            extra={
                "transactions": self._transaction_count,
                "rejects": self._reject_count,
                "condition_code": int(self._condition_code),
            },
        )
        return int(self._condition_code)

    def process_transaction_file(self) -> BatchResult:
        """Run the batch and report its counts."""
        code = self.post_daily_transactions()
        return BatchResult(
            condition_code=code,
            transaction_count=self._transaction_count,
            reject_count=self._reject_count,
        )

    # ------------------------------------------------------------------ validation

    def validate_transaction(self, candidate: DailyTransactionRecord) -> bool:
        """
        Run the lookup and business checks, stopping at the first failure.

        The failure reason is kept for the next `generate_reject_record` call.
        """
        self._require(candidate)
        self._last_failure = None

        xref = self.lookup_cross_reference(candidate.card_number)
        if xref is None:
            return self._fail(RejectReason.INVALID_CARD_NUMBER, card=candidate.card_number)

        account = self.lookup_account(xref.account_id)
        if account is None:
            return self._fail(RejectReason.ACCOUNT_NOT_FOUND, account_id=xref.account_id)

        if not self.validate_credit_limit(account, candidate.amount):
            return False
        return self.validate_expiration_date(account, candidate.original_timestamp)

    def validate_credit_limit(self, account: AccountRecord, amount: Optional[Number]) -> bool:
        """Accept while cycle debit - cycle credit + amount stays within the limit."""
        if amount is None:
            raise ValueError("Transaction amount is required for the credit limit check")
        projected = self._policy.add(
            self._policy.subtract(account.current_cycle_debit, account.current_cycle_credit),
            to_decimal(amount),
        )
        if projected > self._policy.quantize(account.credit_limit):
            return self._fail(
                RejectReason.OVERLIMIT_TRANSACTION,
                account_id=account.account_id,
                credit_limit=str(account.credit_limit),
                projected_balance=str(projected),
            )
        return True

    def validate_expiration_date(self, account: AccountRecord, original_timestamp: Optional[str]) -> bool:
        """Reject transactions dated strictly after the account expiration date."""
        if original_timestamp is None:
            raise ValueError("Original timestamp is required for the expiration check")
        transaction_date = timestamp_date(original_timestamp)
        if transaction_date > account.expiration_date:
            return self._fail(
                RejectReason.TRANSACTION_AFTER_EXPIRATION,
                account_id=account.account_id,
                expiration_date=account.expiration_date.isoformat(),
                transaction_date=transaction_date.isoformat(),
            )
        return True

    def lookup_cross_reference(self, card_number: Optional[str]) -> Optional[CrossReferenceRecord]:
        xref = self._store.get_cross_reference(card_number)
        if xref is not None:
            log.debug("Cross-reference record found for card %s", card_number)
        return xref

    def lookup_account(self, account_id: int) -> Optional[AccountRecord]:
        account = self._store.get_account(account_id)
        if account is not None:
            log.debug("Account record found for ID %s", account_id)
        return account

    # ------------------------------------------------------------------ posting

    def process_transaction(self, candidate: DailyTransactionRecord) -> bool:
        """
        Post a validated candidate.

        Updates the category balance and the account cycle totals while holding
        the account lock, then appends the posted record with its amount rounded
        to the policy scale. Returns False (with the failure recorded) if the
        card or account disappeared since validation.
        """
        self._require(candidate)
        if candidate.amount is None:
            raise ValueError("Transaction amount is required for posting")

        xref = self.lookup_cross_reference(candidate.card_number)
        if xref is None:
            return self._fail(RejectReason.INVALID_CARD_NUMBER, card=candidate.card_number)

        amount = self._policy.quantize(candidate.amount)
        with self._store.lock_account(xref.account_id):
            account = self._store.get_account(xref.account_id)
            if account is None:
                log.error("Failed to update account record", extra={"account_id": xref.account_id})
                return self._fail(RejectReason.ACCOUNT_UPDATE_FAILED, account_id=xref.account_id)
            posted = PostedTransactionRecord(
                **{**candidate.model_dump(), "amount": amount},
                processed_timestamp=self.format_timestamp(),
            )
            self.update_category_balance(
                xref.account_id, candidate.type_code, candidate.category_code, amount
            )
            self._update_account(account, amount)

        self._posted.append(posted)
        log.debug("Transaction posted: ID=%s, Amount=%s", posted.transaction_id, posted.amount)
        return True

    def update_category_balance(
        self,
        account_id: int,
        type_code: Optional[str],
        category_code: Optional[int],
        amount: Optional[Number],
    ) -> TransactionCategoryBalanceRecord:
        """
        Add `amount` to the (account, type, category) running balance.

        The first reference stores the amount as the opening balance; later
        references add to it, rounding half-up at the policy scale.
        """
        if type_code is None or category_code is None:
            raise ValueError("Type code and category code are required for the category balance")
        if amount is None:
            raise ValueError("Amount is required for the category balance")
        key = CategoryBalanceKey(account_id, type_code, category_code)
        record = self._store.get_category_balance(key)
        if record is None:
            record = TransactionCategoryBalanceRecord(
                account_id=account_id,
                type_code=type_code,
                category_code=category_code,
                balance=self._policy.quantize(amount),
            )
            log.debug("TCATBAL record not found for key %s-%s-%s. Creating.", *key)
        else:
            record.balance = self._policy.add(record.balance, amount)
            log.debug("Updated TCATBAL record for key %s-%s-%s, new balance: %s", *key, record.balance)
        self._store.save_category_balance(record)
        return record

    def get_category_balance(
        self, account_id: int, type_code: str, category_code: int
    ) -> Optional[TransactionCategoryBalanceRecord]:
        return self._store.get_category_balance(
            CategoryBalanceKey(account_id, type_code, category_code)
        )

    def _update_account(self, account: AccountRecord, amount: Decimal) -> None:
        policy = self._policy
        account.current_balance = policy.add(account.current_balance, amount)
        if self._cycle_policy is CyclePostingPolicy.DEBIT_PURCHASES:
            if amount >= 0:
                account.current_cycle_debit = policy.add(account.current_cycle_debit, amount)
            else:
                account.current_cycle_credit = policy.add(account.current_cycle_credit, -amount)
        elif amount >= 0:
            account.current_cycle_credit = policy.add(account.current_cycle_credit, amount)
        else:
            account.current_cycle_debit = policy.add(account.current_cycle_debit, amount)
        self._store.save_account(account)
        log.debug(
            "Account %s updated: balance=%s, cycle credit=%s, cycle debit=%s",
            account.account_id,
            account.current_balance,
            account.current_cycle_credit,
            account.current_cycle_debit,
        )

    # ------------------------------------------------------------------ rejects

    def generate_reject_record(self, candidate: DailyTransactionRecord) -> RejectRecord:
        """
        Append a reject record for `candidate` using the most recent failure.

        Raises
        ------
        ValueError
            If no validation failure has been recorded.
        """
        self._require(candidate)
        if self._last_failure is None:
            raise ValueError("No validation failure recorded for this transaction")
        reject = RejectRecord(
            transaction_id=candidate.transaction_id,
            transaction_data=format_transaction_data(candidate, self._policy.scale),
            reason=self._last_failure,
        )
        self._rejected.append(reject)
        log.warning(
            "Transaction rejected: Reason=%s, Description=%s",
            reject.validation_fail_reason,
            reject.validation_fail_description,
            extra={"transaction_id": candidate.transaction_id},
        )
        return reject

    # ------------------------------------------------------------------ state

    def format_timestamp(self) -> str:
        return format_db2_timestamp(self._clock())

    @property
    def policy(self) -> DecimalPolicy:
        return self._policy

    @property
    def store(self) -> PostingStore:
        return self._store

    @property
    def last_failure(self) -> Optional[RejectReason]:
        return self._last_failure

    @property
    def transaction_count(self) -> int:
        return self._transaction_count

    @property
    def reject_count(self) -> int:
        return self._reject_count

    @property
    def condition_code(self) -> int:
        return int(self._condition_code)

    @property
    def posted_transactions(self) -> Tuple[PostedTransactionRecord, ...]:
        return tuple(self._posted)

    @property
    def rejected_transactions(self) -> Tuple[RejectRecord, ...]:
        return tuple(self._rejected)

    def clear_all_data(self) -> None:
        self._store.clear()
        self._posted.clear()
        self._rejected.clear()
        self._transaction_count = 0
        self._reject_count = 0
        self._condition_code = ConditionCode.SUCCESS
        self._last_failure = None

    def _fail(self, reason: RejectReason, **details: object) -> bool:
        self._last_failure = reason
        log.warning(f"[VALIDATION FAILED] {reason.description}", extra={"reason": int(reason), **details})
        return False

    @staticmethod
    def _require(candidate: Optional[DailyTransactionRecord]) -> None:
        if candidate is None:
            raise ValueError("Daily transaction record is required")


__all__ = ["BatchResult", "TransactionPostingEngine"]
