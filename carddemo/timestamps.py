"""
DB2-style timestamp interchange format.

Transaction records carry their timestamps as 26-character strings in the
form `YYYY-MM-DD-HH.MM.SS.NNNNNN`. The batch writes hundredths of a second
followed by a fixed `0000` filler, matching what the mainframe job produced.
"""

from __future__ import annotations

import re
from datetime import date, datetime

DB2_TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}-\d{2}\.\d{2}\.\d{2}\.\d{6}$")
DB2_TIMESTAMP_FORMAT = "%Y-%m-%d-%H.%M.%S.%f"
DATE_LENGTH = 10

SUB_HUNDREDTHS_FILLER = "0000"


def format_db2_timestamp(moment: datetime) -> str:
    """Render `moment` with hundredths precision and the `0000` filler."""
    hundredths = moment.microsecond // 10_000
    return f"{moment.strftime('%Y-%m-%d-%H.%M.%S')}.{hundredths:02d}{SUB_HUNDREDTHS_FILLER}"


def parse_db2_timestamp(text: str) -> datetime:
    if text is None or not DB2_TIMESTAMP_PATTERN.match(text):
        raise ValueError(f"Not a DB2 timestamp: {text!r}")
    return datetime.strptime(text, DB2_TIMESTAMP_FORMAT)


def timestamp_date(text: str) -> date:
    """
    Extract the calendar date from a DB2 timestamp.

    Only the leading `YYYY-MM-DD` is read, so bare dates are accepted as well.
    """
    if text is None:
        raise ValueError("Timestamp is required")
    head = text.strip()[:DATE_LENGTH]
    try:
        return date.fromisoformat(head)
    except ValueError as exc:
        raise ValueError(f"Timestamp does not start with a YYYY-MM-DD date: {text!r}") from exc


def is_db2_timestamp(text: str) -> bool:
    return bool(text) and DB2_TIMESTAMP_PATTERN.match(text) is not None


__all__ = [
    "DB2_TIMESTAMP_PATTERN",
    "format_db2_timestamp",
    "is_db2_timestamp",
    "parse_db2_timestamp",
    "timestamp_date",
]
