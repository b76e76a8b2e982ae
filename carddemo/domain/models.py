"""
Record models for the daily posting batch.

These mirror the fixed-format mainframe records (ACCOUNT-RECORD,
CARD-XREF-RECORD, DALYTRAN-RECORD, TRAN-CAT-BAL-RECORD, TRAN-RECORD and the
reject record). Accounts and category balances are mutated in place during a
run; transaction records are frozen once read.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import NamedTuple, Optional, Tuple

from pydantic import BaseModel, Field, computed_field, field_validator

from carddemo.decimals import preserve_precision
from carddemo.domain.reasons import RejectReason
from carddemo.timestamps import timestamp_date
from carddemo.validation import FieldFormat


class CategoryBalanceKey(NamedTuple):
    account_id: int
    type_code: str
    category_code: int


class AccountRecord(BaseModel):
    """
    Account master record. Monetary fields are rescaled by the posting engine's
    decimal policy when the account is registered.
    """

    account_id: int = Field(..., ge=0, description="ACCT-ID, 11 digits.")
    current_balance: Decimal = Field(Decimal("0.00"), description="ACCT-CURR-BAL.")
    credit_limit: Decimal = Field(Decimal("0.00"), description="ACCT-CREDIT-LIMIT.")
    current_cycle_credit: Decimal = Field(Decimal("0.00"), description="ACCT-CURR-CYC-CREDIT.")
    current_cycle_debit: Decimal = Field(Decimal("0.00"), description="ACCT-CURR-CYC-DEBIT.")
    expiration_date: date = Field(..., description="ACCT-EXPIRAION-DATE.")

    model_config = {
        "validate_assignment": True,
        "populate_by_name": True,
    }


class CrossReferenceRecord(BaseModel):
    card_number: str = Field(..., min_length=1, description="XREF-CARD-NUM, 16 characters.")
    account_id: int = Field(..., ge=0, description="XREF-ACCT-ID.")
    customer_id: Optional[int] = Field(None, description="XREF-CUST-ID.")

    model_config = {"frozen": True}


class DailyTransactionRecord(BaseModel):
    """
    A candidate transaction from the daily file.

    Every field is optional so that incomplete candidates can still be
    classified and written to the reject file.
    """

    transaction_id: Optional[str] = None
    card_number: Optional[str] = None
    type_code: Optional[str] = None
    category_code: Optional[int] = None
    source: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[Decimal] = None
    merchant_id: Optional[str] = None
    merchant_name: Optional[str] = None
    merchant_city: Optional[str] = None
    merchant_zip: Optional[str] = None
    original_timestamp: Optional[str] = Field(
        None, description="DB2 timestamp, YYYY-MM-DD-HH.MM.SS.NNNNNN."
    )

    model_config = {"frozen": True}

    @field_validator("original_timestamp")
    @classmethod
    def _timestamp_starts_with_date(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            timestamp_date(value)
        return value


class PostedTransactionRecord(DailyTransactionRecord):
    processed_timestamp: str = Field(..., description="DB2 timestamp stamped at posting.")


class TransactionCategoryBalanceRecord(BaseModel):
    account_id: int
    type_code: str
    category_code: int
    balance: Decimal

    model_config = {"validate_assignment": True}

    @property
    def key(self) -> CategoryBalanceKey:
        return CategoryBalanceKey(self.account_id, self.type_code, self.category_code)


class RejectRecord(BaseModel):
    transaction_id: Optional[str] = None
    transaction_data: str
    reason: RejectReason

    model_config = {"frozen": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def validation_fail_reason(self) -> int:
        return int(self.reason)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def validation_fail_description(self) -> str:
        return self.reason.description


# Fixed-width layout of the transaction portion of a reject record.
DAILY_TRANSACTION_LAYOUT: Tuple[FieldFormat, ...] = (
    FieldFormat("transaction_id", 16, required=False),
    FieldFormat("card_number", 16, required=False),
    FieldFormat("type_code", 2, required=False),
    FieldFormat("category_code", 4, numeric=True, required=False, pad="left", fill="0"),
    FieldFormat("source", 10, required=False),
    FieldFormat("description", 26, required=False),
    FieldFormat("amount", 12, required=False, pad="left", fill="0"),
    FieldFormat("merchant_id", 15, required=False),
    FieldFormat("merchant_name", 50, required=False),
    FieldFormat("merchant_city", 50, required=False),
    FieldFormat("merchant_zip", 10, required=False),
    FieldFormat("original_timestamp", 26, required=False),
)


def format_transaction_data(candidate: DailyTransactionRecord, scale: int = 2) -> str:
    """
    Render a candidate in the fixed-width reject layout.

    Missing text fields become blanks, a missing category becomes `0000` and a
    missing amount renders as zero.
    """
    parts = []
    for fmt in DAILY_TRANSACTION_LAYOUT:
        value = getattr(candidate, fmt.name)
        if fmt.name == "amount":
            amount = preserve_precision(value, scale)
            parts.append(format(amount, f"0{fmt.length}.{scale}f"))
        else:
            parts.append(fmt.render(value))
    return "".join(parts)


__all__ = [
    "AccountRecord",
    "CategoryBalanceKey",
    "CrossReferenceRecord",
    "DAILY_TRANSACTION_LAYOUT",
    "DailyTransactionRecord",
    "PostedTransactionRecord",
    "RejectRecord",
    "TransactionCategoryBalanceRecord",
    "format_transaction_data",
]
