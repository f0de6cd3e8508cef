#!/usr/bin/env python3
"""
Command line harness tests.
"""
import pytest
import typer
from typer.testing import CliRunner

from slidepool.cli import main as cli_main
from slidepool.cli.main import read_url_file
from slidepool.utils import config

runner = CliRunner()


@pytest.fixture
def app(tmp_path, monkeypatch):
    """Typer app around the CLI entry point, logging into a temporary home."""
    monkeypatch.setattr(config, "SLIDEPOOL_HOME", tmp_path)
    monkeypatch.setattr(cli_main, "SLIDEPOOL_HOME", tmp_path)
    app = typer.Typer()
    app.command()(cli_main.main)
    return app


FAST = ["--min-delay", "0", "--max-delay", "0.005", "--seed", "1"]


def test_demo_prints_ordered_results(app):
    result = runner.invoke(app, ["--demo", "--count", "12", "--limit", "3", *FAST])

    assert result.exit_code == 0, result.output
    assert "Results (input order)" in result.output
    assert "Run Statistics" in result.output
    assert "task-11" in result.output


def test_demo_fast_fail_exits_with_error(app):
    result = runner.invoke(app, ["--demo", "--count", "5", "--failure-rate", "1", *FAST])

    assert result.exit_code == 1
    assert "Run aborted" in result.output


def test_demo_collect_all_reports_failures(app):
    result = runner.invoke(app, ["--demo", "--count", "4", "--failure-rate", "1", "--collect-all", *FAST])

    assert result.exit_code == 0, result.output
    assert "failed" in result.output


def test_invalid_limit_exits_with_error(app):
    result = runner.invoke(app, ["--demo", "--limit", "0", *FAST])

    assert result.exit_code == 1
    assert "at least 1" in result.output


def test_compare_shows_both_strategies(app):
    result = runner.invoke(app, ["--compare", "--count", "8", "--limit", "2", *FAST])

    assert result.exit_code == 0, result.output
    assert "Sliding window" in result.output
    assert "Fixed batches" in result.output


def test_missing_url_file_exits_with_error(app, tmp_path):
    result = runner.invoke(app, ["--fetch", str(tmp_path / "nope.txt")])

    assert result.exit_code == 1
    assert "Error" in result.output


def test_no_action_prints_hint(app):
    result = runner.invoke(app, [])

    assert result.exit_code == 0
    assert "No action specified" in result.output


def test_read_url_file_skips_blanks_and_comments(tmp_path):
    url_file = tmp_path / "urls.txt"
    url_file.write_text("# targets\nhttp://a.example\n\n  http://b.example  \n#http://c.example\n")

    assert read_url_file(url_file) == ["http://a.example", "http://b.example"]


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-v"]))
