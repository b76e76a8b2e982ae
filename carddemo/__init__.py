"""
CardDemo posting - daily credit card transaction posting with COBOL decimal parity.

This package validates a day's card transactions against the cross-reference
and account masters and posts or rejects each one:

- Fixed-point decimal arithmetic and COMP-3 packed decimal conversion
- Field validation rules for account, card and monetary fields
- Credit-limit and expiration checks with numeric reject reasons
- Category balance and account cycle total maintenance
- In-memory and PostgreSQL posting stores
"""

from __future__ import annotations

__version__ = "0.1.0"

# Public API exports
from carddemo.config import Settings, get_settings
from carddemo.decimals import DecimalPolicy, from_comp3, preserve_precision, to_comp3
from carddemo.domain import (
    AccountRecord,
    ConditionCode,
    CrossReferenceRecord,
    CyclePostingPolicy,
    DailyTransactionRecord,
    PostedTransactionRecord,
    RejectReason,
    RejectRecord,
    TransactionCategoryBalanceRecord,
)
from carddemo.jobs import JobConfig, available_sources, run_posting_job
from carddemo.posting import BatchResult, TransactionPostingEngine
from carddemo.stores import AccountLockedError, InMemoryStore, PostingStore
from carddemo.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    # Decimals
    "DecimalPolicy",
    "from_comp3",
    "preserve_precision",
    "to_comp3",
    # Records
    "AccountRecord",
    "ConditionCode",
    "CrossReferenceRecord",
    "CyclePostingPolicy",
    "DailyTransactionRecord",
    "PostedTransactionRecord",
    "RejectReason",
    "RejectRecord",
    "TransactionCategoryBalanceRecord",
    # Posting
    "BatchResult",
    "TransactionPostingEngine",
    "AccountLockedError",
    "InMemoryStore",
    "PostingStore",
    # Jobs
    "JobConfig",
    "available_sources",
    "run_posting_job",
    # Logging
    "configure_logging",
    "get_logger",
]
