from __future__ import annotations

from decimal import Decimal

import pydantic
import pytest

from carddemo.domain import (
    DAILY_TRANSACTION_LAYOUT,
    DailyTransactionRecord,
    RejectReason,
    RejectRecord,
    TransactionCategoryBalanceRecord,
    format_transaction_data,
)

EXPECTED_LAYOUT_WIDTH = sum(fmt.length for fmt in DAILY_TRANSACTION_LAYOUT)


def test_reject_reason_descriptions():
    assert int(RejectReason.INVALID_CARD_NUMBER) == 100
    assert RejectReason.INVALID_CARD_NUMBER.description == "INVALID CARD NUMBER FOUND"
    assert RejectReason.ACCOUNT_NOT_FOUND.description == "ACCOUNT RECORD NOT FOUND"
    assert RejectReason.OVERLIMIT_TRANSACTION.description == "OVERLIMIT TRANSACTION"
    assert (
        RejectReason.TRANSACTION_AFTER_EXPIRATION.description
        == "TRANSACTION RECEIVED AFTER ACCT EXPIRATION"
    )


def test_reject_record_exposes_code_and_description():
    reject = RejectRecord(
        transaction_id="T1", transaction_data="x", reason=RejectReason.OVERLIMIT_TRANSACTION
    )
    assert reject.validation_fail_reason == 102
    assert reject.validation_fail_description == "OVERLIMIT TRANSACTION"
    dumped = reject.model_dump()
    assert dumped["validation_fail_reason"] == 102


def test_malformed_timestamp_rejected_at_construction():
    with pytest.raises(pydantic.ValidationError):
        DailyTransactionRecord(original_timestamp="yesterday")


def test_transaction_records_are_frozen():
    record = DailyTransactionRecord(transaction_id="T1")
    with pytest.raises(pydantic.ValidationError):
        record.transaction_id = "T2"


def test_category_balance_key():
    record = TransactionCategoryBalanceRecord(
        account_id=1, type_code="01", category_code=5, balance=Decimal("1.00")
    )
    assert record.key == (1, "01", 5)


def test_format_transaction_data_layout(make_transaction):
    data = format_transaction_data(make_transaction(amount=Decimal("-12.5"), category_code=7))
    assert len(data) == EXPECTED_LAYOUT_WIDTH
    assert data[:16] == "TXN0000000000001"
    assert data[16:32] == "4111111111111111"
    assert data[32:34] == "01"
    assert data[34:38] == "0007"
    assert data[38:48] == "POS TERM  "
    assert data[48:74] == "PURCHASE".ljust(26)
    assert data[74:86] == "-00000012.50"
    assert data.endswith("2024-06-15-09.00.00.000000")


def test_format_transaction_data_blanks_missing_fields():
    data = format_transaction_data(DailyTransactionRecord())
    assert len(data) == EXPECTED_LAYOUT_WIDTH
    assert data[:34].strip() == ""
    assert data[34:38] == "0000"
    assert data[74:86] == "000000000.00"
