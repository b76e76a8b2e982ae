from __future__ import annotations

from datetime import date, datetime

import pytest

from carddemo.timestamps import (
    format_db2_timestamp,
    is_db2_timestamp,
    parse_db2_timestamp,
    timestamp_date,
)


def test_format_uses_hundredths_and_filler():
    moment = datetime(2024, 1, 15, 10, 30, 45, 123456)
    text = format_db2_timestamp(moment)
    assert text == "2024-01-15-10.30.45.120000"
    assert len(text) == 26
    assert is_db2_timestamp(text)


def test_format_zero_pads_hundredths():
    assert format_db2_timestamp(datetime(2024, 1, 15, 0, 0, 0, 50000)).endswith(".050000")


def test_parse_round_trip():
    assert parse_db2_timestamp("2024-01-15-10.30.45.120000") == datetime(2024, 1, 15, 10, 30, 45, 120000)


def test_parse_rejects_other_formats():
    with pytest.raises(ValueError):
        parse_db2_timestamp("2024-01-15 10:30:45")


def test_timestamp_date_reads_leading_date():
    assert timestamp_date("2025-12-31-23.59.59.990000") == date(2025, 12, 31)
    assert timestamp_date("2025-12-31") == date(2025, 12, 31)


@pytest.mark.parametrize("text", [None, "", "12/31/2025", "2025-13-01-00.00.00.000000"])
def test_timestamp_date_rejects_malformed(text):
    with pytest.raises(ValueError):
        timestamp_date(text)
