"""
Fixture generation and loading script for the CardDemo posting batch.

Implements deterministic pseudo-random accounts, card cross-references and
daily transactions, CSV emission, and Postgres COPY loading. A share of the
transactions is shaped to be rejected (unknown card, over limit, after
expiration) so every reject path is exercised.
"""

from __future__ import annotations

import csv
import random
import sys
import time
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Dict, List

import psycopg
import typer

from carddemo.domain.models import AccountRecord, DailyTransactionRecord
from carddemo.infrastructure.db_factory import build_dsn, get_sync_connection
from carddemo.jobs import ACCOUNTS_FILE, DAILY_TRANSACTIONS_FILE, XREF_FILE
from carddemo.timestamps import format_db2_timestamp

app = typer.Typer(help="Generate posting batch fixtures (CSV) and optionally load them into Postgres.")

ACCOUNT_COLUMNS = list(AccountRecord.model_fields)
XREF_COLUMNS = ["card_number", "account_id", "customer_id"]
TRANSACTION_COLUMNS = list(DailyTransactionRecord.model_fields)

BUSINESS_DATE = datetime(2024, 6, 15, 9, 0, 0)

_TABLES = {
    ACCOUNTS_FILE: ("public.accounts", ACCOUNT_COLUMNS),
    XREF_FILE: ("public.card_xref", XREF_COLUMNS),
    DAILY_TRANSACTIONS_FILE: ("public.daily_transactions", TRANSACTION_COLUMNS),
}


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def luhn_check_digit(partial: str) -> str:
    total = 0
    for index, char in enumerate(reversed(partial)):
        digit = int(char)
        if index % 2 == 0:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return str((10 - total % 10) % 10)


def _card_number(rng: random.Random) -> str:
    partial = "4" + "".join(str(rng.randint(0, 9)) for _ in range(14))
    return partial + luhn_check_digit(partial)


def generate_fixtures(
    accounts: int, transactions: int, seed: int, reject_ratio: float = 0.1
) -> Dict[str, List[Dict[str, str]]]:
    """
    Build fixture rows keyed by CSV file name.

    Roughly `reject_ratio` of the transactions are built to fail validation,
    split evenly across unknown card, over limit and past expiration.
    """
    rng = random.Random(seed)
    account_rows: List[Dict[str, str]] = []
    xref_rows: List[Dict[str, str]] = []
    cards: List[tuple[str, Dict[str, str]]] = []

    for i in range(accounts):
        account_id = 10_000_000_000 + i + 1
        limit = Decimal(rng.choice([500, 1000, 2500, 5000, 10000]))
        debit = (limit * Decimal(rng.randint(0, 40)) / 100).quantize(Decimal("0.01"))
        credit = Decimal(rng.randint(0, 20000)) / 100
        expired = rng.random() < 0.1
        expiration = BUSINESS_DATE.date() + timedelta(days=-30 if expired else rng.randint(30, 1500))
        account = {
            "account_id": str(account_id),
            "current_balance": f"{debit - credit:.2f}",
            "credit_limit": f"{limit:.2f}",
            "current_cycle_credit": f"{credit:.2f}",
            "current_cycle_debit": f"{debit:.2f}",
            "expiration_date": expiration.isoformat(),
        }
        account_rows.append(account)

        card = _card_number(rng)
        xref_rows.append({"card_number": card, "account_id": str(account_id), "customer_id": str(i + 1)})
        cards.append((card, account))

    valid_cards = [
        pair for pair in cards if date.fromisoformat(pair[1]["expiration_date"]) >= BUSINESS_DATE.date()
    ] or cards
    expired_cards = [pair for pair in cards if pair not in valid_cards]

    transaction_rows: List[Dict[str, str]] = []
    for i in range(transactions):
        moment = BUSINESS_DATE - timedelta(seconds=rng.randint(0, 86_399))
        card, account = rng.choice(valid_cards)
        amount = Decimal(rng.randint(100, 20000)) / 100
        type_code, category = rng.choice([("01", 1), ("01", 2), ("02", 1), ("03", 1), ("04", 3)])
        description = "PURCHASE"
        if type_code == "02":
            amount = -amount
            description = "PAYMENT - THANK YOU"

        if rng.random() < reject_ratio:
            kind = rng.choice(["unknown_card", "overlimit", "expired"])
            if kind == "unknown_card":
                card = "9" + card[1:]
            elif kind == "overlimit":
                amount = Decimal(account["credit_limit"]) * 2
                type_code, category, description = "01", 1, "PURCHASE"
            elif expired_cards:
                card, account = rng.choice(expired_cards)

        transaction_rows.append(
            {
                "transaction_id": f"{i + 1:016d}",
                "card_number": card,
                "type_code": type_code,
                "category_code": str(category),
                "source": rng.choice(["POS TERM", "OPERATOR", "ONLINE"]),
                "description": description,
                "amount": f"{amount:.2f}",
                "merchant_id": f"{rng.randint(1, 999_999_999):09d}",
                "merchant_name": rng.choice(["Grocery Mart", "Fuel Stop", "Book Nook", "Cafe Uno"]),
                "merchant_city": rng.choice(["Seattle", "Austin", "Denver", "Boston"]),
                "merchant_zip": f"{rng.randint(10000, 99999)}",
                "original_timestamp": format_db2_timestamp(moment),
            }
        )

    return {
        ACCOUNTS_FILE: account_rows,
        XREF_FILE: xref_rows,
        DAILY_TRANSACTIONS_FILE: transaction_rows,
    }


def write_fixtures(output_dir: Path, fixtures: Dict[str, List[Dict[str, str]]]) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    for file_name, (_, columns) in _TABLES.items():
        with (output_dir / file_name).open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=columns)
            writer.writeheader()
            writer.writerows(fixtures[file_name])


def _copy_into_db(dsn: str, data_dir: Path) -> int:
    loaded = 0
    with get_sync_connection(dsn) as conn:
        with conn.cursor() as cur:
            for file_name, (table, columns) in _TABLES.items():
                with cur.copy(
                    f"COPY {table} ({', '.join(columns)}) FROM STDIN WITH (FORMAT csv, HEADER TRUE)"
                ) as copy:
                    with (data_dir / file_name).open("r", encoding="utf-8") as f:
                        for line in f:
                            copy.write(line)
                loaded += cur.rowcount if cur.rowcount > 0 else 0
        conn.commit()
    return loaded


@app.command()
def main(
    accounts: int = typer.Option(100, "--accounts", "-a", help="Number of accounts (one card each)."),
    transactions: int = typer.Option(
        1_000,
        "--transactions",
        "-t",
        help="Number of daily transactions to generate.",
    ),
    reject_ratio: float = typer.Option(
        0.1,
        "--reject-ratio",
        help="Share of transactions built to be rejected.",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
    output: Path = typer.Option(
        Path("data"),
        "--output",
        "-o",
        help="Directory for accounts.csv, xref.csv and daily_transactions.csv.",
    ),
    dsn: str | None = typer.Option(
        None,
        "--dsn",
        help="Optional DSN override for Postgres.",
    ),
    no_load: bool = typer.Option(
        True,
        "--no-load/--load",
        help="Only generate CSV, or also load it into Postgres.",
    ),
) -> None:
    """
    Generate posting fixtures and optionally load them into Postgres using COPY.
    """
    start = time.perf_counter()
    typer.echo(
        f"Generating {accounts:,} accounts and {transactions:,} transactions -> {output} (seed={seed})"
    )
    fixtures = generate_fixtures(accounts, transactions, seed, reject_ratio)
    write_fixtures(output, fixtures)
    typer.echo(f"CSV generation completed in {time.perf_counter() - start:.2f}s")

    if no_load:
        return

    load_start = time.perf_counter()
    typer.echo("Loading CSV into Postgres via COPY...")
    try:
        rows = _copy_into_db(_build_dsn(dsn), output)
    except psycopg.Error as exc:
        typer.echo(f"Load failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"Loaded {rows:,} rows in {time.perf_counter() - load_start:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
