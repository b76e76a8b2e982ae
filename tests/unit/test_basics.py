import csv
from pathlib import Path
from time import sleep

from carddemo import config
from carddemo.jobs import available_sources
from carddemo.utils import profiler
from carddemo.validation import luhn_checksum_ok
from scripts import generate_data

EXPECTED_ACCOUNTS = 5
EXPECTED_TRANSACTIONS = 20


def test_get_settings_defaults(monkeypatch):
    for name in ("DB_HOST", "DB_PORT", "DB_NAME", "MONETARY_SCALE", "CYCLE_POSTING_POLICY"):
        monkeypatch.delenv(name, raising=False)
    settings = config.get_settings()
    assert settings.db_host == "localhost"
    assert settings.db_port == 5432
    assert settings.db_user == "postgres"
    assert settings.db_name == "carddemo"
    assert settings.monetary_scale == 2
    assert settings.rounding_mode == "ROUND_HALF_UP"
    assert settings.cycle_posting_policy == "debit_purchases"


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("MONETARY_SCALE", "4")
    monkeypatch.setenv("CYCLE_POSTING_POLICY", "signed_credit")
    settings = config.get_settings()
    assert settings.monetary_scale == 4
    assert settings.cycle_posting_policy == "signed_credit"


def test_profile_block_measures_time():
    with profiler.profile_block("sleep") as stats:
        sleep(0.05)
    assert stats.duration_seconds >= 0.05
    assert stats.peak_rss_bytes is None or stats.peak_rss_bytes > 0
    if stats.cpu_percent is not None:
        assert isinstance(stats.cpu_percent, float)


def test_available_sources_contains_known_entries():
    names = available_sources()
    assert names == ["csv", "postgres"]


def test_generate_data_writes_csv(tmp_path: Path):
    fixtures = generate_data.generate_fixtures(
        accounts=EXPECTED_ACCOUNTS, transactions=EXPECTED_TRANSACTIONS, seed=123
    )
    generate_data.write_fixtures(tmp_path, fixtures)

    with (tmp_path / "accounts.csv").open("r", newline="", encoding="utf-8") as f:
        accounts = list(csv.DictReader(f))
    with (tmp_path / "xref.csv").open("r", newline="", encoding="utf-8") as f:
        xrefs = list(csv.DictReader(f))
    with (tmp_path / "daily_transactions.csv").open("r", newline="", encoding="utf-8") as f:
        transactions = list(csv.DictReader(f))

    assert len(accounts) == EXPECTED_ACCOUNTS
    assert len(xrefs) == EXPECTED_ACCOUNTS
    assert len(transactions) == EXPECTED_TRANSACTIONS
    assert all(luhn_checksum_ok(row["card_number"]) for row in xrefs)
    assert list(transactions[0]) == generate_data.TRANSACTION_COLUMNS


def test_generate_data_is_deterministic():
    first = generate_data.generate_fixtures(accounts=3, transactions=10, seed=7)
    second = generate_data.generate_fixtures(accounts=3, transactions=10, seed=7)
    assert first == second
