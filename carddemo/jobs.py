"""
Batch job runner for the daily posting run: loads a store, profiles the
posting engine, summarizes the outcome, and persists it.

Usage (example from CLI):
    from carddemo.jobs import JobConfig, run_posting_job

    summary = run_posting_job(JobConfig(source="csv", data_dir="data"))
    print(summary["condition_code"])

Outputs are saved to `results/` by default:
- `results/latest.json` (last run)
- `results/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import csv
import json
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, ContextManager, Dict, Iterator, List, Optional

from carddemo.config import get_settings
from carddemo.decimals import DecimalPolicy
from carddemo.domain.models import AccountRecord, CrossReferenceRecord, DailyTransactionRecord
from carddemo.infrastructure.db_factory import apply_statement_timeout, get_sync_pool
from carddemo.posting import TransactionPostingEngine
from carddemo.stores.abstract import PostingStore
from carddemo.stores.memory import InMemoryStore
from carddemo.stores.postgres import PostgresStore
from carddemo.utils.logging import get_logger
from carddemo.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)

ACCOUNTS_FILE = "accounts.csv"
XREF_FILE = "xref.csv"
DAILY_TRANSACTIONS_FILE = "daily_transactions.csv"


@dataclass(frozen=True)
class JobConfig:
    """
    Parameters for one posting run.

    Parameters
    ----------
    source : str
        Store to post against, one of `available_sources()`.
    data_dir : Path | str | None
        CSV input directory for the `csv` source. Defaults to settings.data_dir.
    results_dir : Path | str | None
        Directory for JSON artifacts. Defaults to settings.results_dir.
    persist : bool
        Whether to write the summary to disk.
    """

    source: str = "csv"
    data_dir: Optional[Path | str] = None
    results_dir: Optional[Path | str] = None
    persist: bool = True


def _read_rows(path: Path) -> Iterator[Dict[str, Optional[str]]]:
    with path.open("r", newline="", encoding="utf-8") as f:
        for row in csv.DictReader(f):
            # Blank cells are absent fields
            yield {key: (value if value != "" else None) for key, value in row.items()}


def load_csv_directory(data_dir: Path | str, store: PostingStore) -> Dict[str, int]:
    """
    Load accounts, cross-references and daily transactions from CSV files.

    Parameters
    ----------
    data_dir : Path | str
        Directory containing `accounts.csv`, `xref.csv` and
        `daily_transactions.csv`, each with a header row named after the
        record fields.
    store : PostingStore
        Store to populate.

    Returns
    -------
    dict
        Number of records loaded per file.
    """
    directory = Path(data_dir)
    for name in (ACCOUNTS_FILE, XREF_FILE, DAILY_TRANSACTIONS_FILE):
        if not (directory / name).is_file():
            raise FileNotFoundError(f"Missing input file: {directory / name}")

    counts = {"accounts": 0, "cross_references": 0, "daily_transactions": 0}
    for row in _read_rows(directory / ACCOUNTS_FILE):
        store.add_account(AccountRecord(**row))
        counts["accounts"] += 1
    for row in _read_rows(directory / XREF_FILE):
        store.add_cross_reference(CrossReferenceRecord(**row))
        counts["cross_references"] += 1
    for row in _read_rows(directory / DAILY_TRANSACTIONS_FILE):
        store.add_daily_transaction(DailyTransactionRecord(**row))
        counts["daily_transactions"] += 1

    log.info("CSV input loaded", extra={"data_dir": str(directory), **counts})
    return counts


@contextmanager
def _csv_store(config: JobConfig) -> Iterator[PostingStore]:
    data_dir = config.data_dir or get_settings().data_dir
    store = InMemoryStore()
    load_csv_directory(data_dir, store)
    yield store


@contextmanager
def _postgres_store(config: JobConfig) -> Iterator[PostingStore]:
    settings = get_settings()
    with get_sync_pool().connection() as conn:
        with conn.cursor() as cur:
            apply_statement_timeout(cur, settings.db_statement_timeout_ms)
        yield PostgresStore(conn)


def _store_factories() -> Dict[str, Callable[[JobConfig], ContextManager[PostingStore]]]:
    """Registry of available input stores."""
    return {
        "csv": _csv_store,
        "postgres": _postgres_store,
    }


def available_sources() -> List[str]:
    """List available source names."""
    return sorted(_store_factories().keys())


def _resolve_source(name: str) -> Callable[[JobConfig], ContextManager[PostingStore]]:
    factories = _store_factories()
    if name not in factories:
        raise ValueError(f"Unknown source '{name}'. Available: {', '.join(factories)}")
    return factories[name]


def _persist_results(payload: dict, results_dir: Path) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    with latest_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)
    with archive_path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def summarize(engine: TransactionPostingEngine, stats: Optional[ProfileStats] = None) -> dict:
    """
    Build a JSON-ready summary of a finished run.

    Monetary figures are rendered as strings at the engine's scale.
    """
    policy: DecimalPolicy = engine.policy
    posted = engine.posted_transactions
    posted_total = policy.total(record.amount for record in posted)
    posted_average = policy.divide(posted_total, len(posted)) if posted else policy.zero()

    summary = {
        "condition_code": engine.condition_code,
        "transaction_count": engine.transaction_count,
        "reject_count": engine.reject_count,
        "successful_count": engine.transaction_count - engine.reject_count,
        "posted_total": str(posted_total),
        "posted_average": str(posted_average),
        "rejects": [
            {
                "transaction_id": reject.transaction_id,
                "reason": reject.validation_fail_reason,
                "description": reject.validation_fail_description,
            }
            for reject in engine.rejected_transactions
        ],
    }
    if stats is not None:
        duration = round(stats.duration_seconds, 3)
        summary["duration_seconds"] = duration
        summary["throughput_tx_per_sec"] = (
            round(engine.transaction_count / stats.duration_seconds, 2)
            if stats.duration_seconds
            else 0.0
        )
        summary["peak_rss_bytes"] = stats.peak_rss_bytes
        summary["peak_traced_bytes"] = stats.peak_traced_bytes
        summary["cpu_percent"] = round(stats.cpu_percent, 1) if stats.cpu_percent else None
    return summary


def run_posting_job(config: Optional[JobConfig] = None) -> dict:
    """
    Run the daily posting batch against the configured source.

    Parameters
    ----------
    config : JobConfig | None
        Run parameters. Defaults to a CSV run over settings.data_dir.

    Returns
    -------
    dict
        Summary with the condition code, counts, posted totals, profiler
        figures and reject details.
    """
    config = config or JobConfig()
    settings = get_settings()
    open_store = _resolve_source(config.source)

    log.info(f"[JOB START] source={config.source}", extra={"source": config.source})
    with open_store(config) as store:
        engine = TransactionPostingEngine(store=store)
        with profile_block(f"posting-{config.source}") as stats:
            engine.process_transaction_file()
        if isinstance(store, PostgresStore):
            store.write_results(engine.posted_transactions, engine.rejected_transactions)
            store.commit()

    summary = summarize(engine, stats)
    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "source": config.source,
        **summary,
    }

    if config.persist:
        _persist_results(payload, Path(config.results_dir or settings.results_dir))

    log.info(
        f"[JOB COMPLETE] condition code {summary['condition_code']}",
        extra={
            "source": config.source,
            "transactions": summary["transaction_count"],
            "rejects": summary["reject_count"],
        },
    )
    return payload


__all__ = [
    "JobConfig",
    "available_sources",
    "load_csv_directory",
    "run_posting_job",
    "summarize",
]
