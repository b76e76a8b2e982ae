"""
Closed enumerations shared by the posting engine and its records.
"""

from __future__ import annotations

import enum


class RejectReason(enum.IntEnum):
    """Validation failure codes written to the daily reject file."""

    INVALID_CARD_NUMBER = 100
    ACCOUNT_NOT_FOUND = 101
    OVERLIMIT_TRANSACTION = 102
    TRANSACTION_AFTER_EXPIRATION = 103
    ACCOUNT_UPDATE_FAILED = 109

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    RejectReason.INVALID_CARD_NUMBER: "INVALID CARD NUMBER FOUND",
    RejectReason.ACCOUNT_NOT_FOUND: "ACCOUNT RECORD NOT FOUND",
    RejectReason.OVERLIMIT_TRANSACTION: "OVERLIMIT TRANSACTION",
    RejectReason.TRANSACTION_AFTER_EXPIRATION: "TRANSACTION RECEIVED AFTER ACCT EXPIRATION",
    RejectReason.ACCOUNT_UPDATE_FAILED: "ACCOUNT RECORD NOT FOUND",
}


class ConditionCode(enum.IntEnum):
    """Batch RETURN-CODE values."""

    SUCCESS = 0
    COMPLETED_WITH_REJECTS = 4


class CyclePostingPolicy(str, enum.Enum):
    """
    Which cycle accumulator a posted amount lands in.

    DEBIT_PURCHASES: non-negative amounts add to the cycle debit total and
    negative amounts add their magnitude to the cycle credit total.
    SIGNED_CREDIT: the mainframe rule; non-negative amounts add to cycle credit,
    negative amounts add (signed) to cycle debit.
    """

    DEBIT_PURCHASES = "debit_purchases"
    SIGNED_CREDIT = "signed_credit"


__all__ = ["ConditionCode", "CyclePostingPolicy", "RejectReason"]
