from __future__ import annotations

import json

from rich.console import Console
from typer.testing import CliRunner

from carddemo import main as cli
from carddemo.reporter import print_rejects, print_summary

runner = CliRunner()

SUMMARY = {
    "condition_code": 4,
    "transaction_count": 3,
    "reject_count": 1,
    "successful_count": 2,
    "posted_total": "1234.50",
    "posted_average": "617.25",
    "rejects": [{"transaction_id": "T2", "reason": 100, "description": "INVALID CARD NUMBER FOUND"}],
}


def test_decode_comp3():
    result = runner.invoke(cli.app, ["decode-comp3", "12345D", "--scale", "2"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "-123.45"


def test_decode_comp3_invalid_sign():
    result = runner.invoke(cli.app, ["decode-comp3", "123A"])
    assert result.exit_code == 1


def test_info_shows_configuration():
    result = runner.invoke(cli.app, ["info"])
    assert result.exit_code == 0
    assert "scale=" in result.stdout


def test_post_lists_sources():
    result = runner.invoke(cli.app, ["post", "--source", "list"])
    assert result.exit_code == 0
    assert "csv" in result.stdout


def test_post_unknown_source_exits_with_usage_error(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)

    result = runner.invoke(cli.app, ["post", "--source", "bogus"])

    assert result.exit_code == 2
    assert "Unknown source 'bogus'" in result.output


def test_post_exit_code_is_condition_code(monkeypatch, tmp_path):
    monkeypatch.setattr(cli, "run_posting_job", lambda config: dict(SUMMARY, source=config.source))
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)

    result = runner.invoke(cli.app, ["post", "--data-dir", str(tmp_path), "--json"])

    assert result.exit_code == 4
    assert json.loads(result.stdout)["reject_count"] == 1


def test_reporter_renders_tables():
    console = Console(record=True, width=120)
    print_summary(SUMMARY, console=console)
    print_rejects(SUMMARY["rejects"], console=console)
    text = console.export_text()
    assert "$1,234.50" in text
    assert "INVALID CARD NUMBER FOUND" in text
    assert "Peak Traced (MB)" in text
    assert "N/A" in text


def test_reporter_handles_no_rejects():
    console = Console(record=True, width=120)
    print_rejects([], console=console)
    assert "No rejected transactions" in console.export_text()
