from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Optional

import typer

from carddemo.config import get_settings
from carddemo.decimals import from_comp3
from carddemo.jobs import JobConfig, available_sources, run_posting_job
from carddemo.reporter import print_rejects, print_summary
from carddemo.utils.logging import configure_logging

app = typer.Typer(help="CardDemo daily transaction posting CLI.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"scale={settings.monetary_scale} rounding={settings.rounding_mode} "
        f"cycle={settings.cycle_posting_policy} | "
        f"data={settings.data_dir} results={settings.results_dir}"
    )


@app.command()
def post(
    source: str = typer.Option(
        "csv",
        "--source",
        "-s",
        help="Input source (csv, postgres, or list).",
    ),
    data_dir: Optional[Path] = typer.Option(
        None,
        "--data-dir",
        "-d",
        help="Directory with accounts.csv, xref.csv and daily_transactions.csv.",
    ),
    results_dir: Optional[Path] = typer.Option(
        None,
        "--results-dir",
        help="Where to write latest.json and the run archive (default from settings).",
    ),
    persist: bool = typer.Option(True, "--persist/--no-persist", help="Write the run summary."),
    as_json: bool = typer.Option(False, "--json", help="Print the summary as JSON."),
) -> None:
    """
    Run the daily posting batch. The exit code is the batch condition code.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    if source == "list":
        typer.echo("Available sources: " + ", ".join(available_sources()))
        return

    if source not in available_sources():
        typer.echo(
            f"Error: Unknown source '{source}'. Available: {', '.join(available_sources())}",
            err=True,
        )
        raise typer.Exit(code=2)

    config = JobConfig(source=source, data_dir=data_dir, results_dir=results_dir, persist=persist)
    summary = run_posting_job(config)

    if as_json:
        typer.echo(json.dumps(summary, indent=2))
    else:
        print_summary(summary)
        print_rejects(summary["rejects"])
    raise typer.Exit(code=summary["condition_code"])


@app.command("decode-comp3")
def decode_comp3(
    hex_value: str = typer.Argument(..., help="Packed decimal bytes as hex, e.g. 01234C."),
    scale: int = typer.Option(2, "--scale", help="Implied decimal places."),
) -> None:
    """
    Decode a COMP-3 packed decimal field.
    """
    try:
        value = from_comp3(bytes.fromhex(hex_value), scale)
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(str(value))


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
