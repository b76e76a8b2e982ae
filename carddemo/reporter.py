from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from carddemo.decimals import format_currency
from carddemo.domain.reasons import ConditionCode


def print_summary(summary: Dict[str, Any], console: Optional[Console] = None) -> None:
    """
    Render a posting run summary as a rich table.

    Profiler columns show N/A when the summary was built without profiling.
    """
    console = console or Console()

    code = summary.get("condition_code", 0)
    style = "green" if code == ConditionCode.SUCCESS else "yellow"
    title = f"Daily Transaction Posting\n[dim]Condition code: [{style}]{code}[/{style}][/dim]"

    table = Table(title=title, box=box.ROUNDED, show_header=True)
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right", style="magenta")

    table.add_row("Transactions read", f"{summary.get('transaction_count', 0):,}")
    table.add_row("Posted", f"{summary.get('successful_count', 0):,}")
    table.add_row("Rejected", f"{summary.get('reject_count', 0):,}")
    table.add_row("Posted total", format_currency(summary.get("posted_total")))
    table.add_row("Average posted", format_currency(summary.get("posted_average")))

    duration = summary.get("duration_seconds")
    table.add_row("Duration (s)", f"{duration:.3f}" if duration is not None else "N/A")
    throughput = summary.get("throughput_tx_per_sec")
    table.add_row("Throughput (tx/s)", f"{throughput:,.2f}" if throughput is not None else "N/A")
    peak_rss = summary.get("peak_rss_bytes")
    table.add_row(
        "Peak Memory (MB)", f"{peak_rss / (1024 * 1024):.2f}" if peak_rss else "N/A"
    )
    peak_traced = summary.get("peak_traced_bytes")
    table.add_row(
        "Peak Traced (MB)", f"{peak_traced / (1024 * 1024):.2f}" if peak_traced else "N/A"
    )

    console.print(table)


def print_rejects(rejects: Iterable[Dict[str, Any]], console: Optional[Console] = None) -> None:
    """Render the reject list, one row per rejected transaction."""
    console = console or Console()
    rows = list(rejects)

    if not rows:
        console.print("[green]No rejected transactions.[/green]")
        return

    table = Table(title="Rejected Transactions", box=box.ROUNDED, caption=f"{len(rows)} rejected")
    table.add_column("Transaction ID", style="cyan", no_wrap=True)
    table.add_column("Reason", justify="right", style="red")
    table.add_column("Description", style="yellow")

    for reject in rows:
        table.add_row(
            reject.get("transaction_id") or "",
            str(reject.get("reason", "")),
            reject.get("description", ""),
        )

    console.print(table)


__all__ = ["print_rejects", "print_summary"]
