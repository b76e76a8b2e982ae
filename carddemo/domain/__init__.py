"""
Domain package for the CardDemo posting batch.

Exports the record models and closed enumerations used by the posting engine,
stores, and job runner. Keep this package focused on data definitions.
"""

from carddemo.domain.models import (
    DAILY_TRANSACTION_LAYOUT,
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

__all__ = [
    "AccountRecord",
    "CategoryBalanceKey",
    "ConditionCode",
    "CrossReferenceRecord",
    "CyclePostingPolicy",
    "DAILY_TRANSACTION_LAYOUT",
    "DailyTransactionRecord",
    "PostedTransactionRecord",
    "RejectReason",
    "RejectRecord",
    "TransactionCategoryBalanceRecord",
    "format_transaction_data",
]
