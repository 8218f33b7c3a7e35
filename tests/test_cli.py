from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from smart_search.cli import app


def _env(tmp_path: Path) -> dict[str, str]:
    return {
        "SMART_SEARCH_DB": str(tmp_path / "cli.db"),
        "SMART_SEARCH_STATS_CACHE": str(tmp_path / "stats.json"),
    }


def _import_seed(runner: CliRunner, tmp_path: Path, seed_file: Path) -> None:
    result = runner.invoke(app, ["import", str(seed_file)], env=_env(tmp_path), catch_exceptions=False)
    assert result.exit_code == 0
    assert "Imported 5 records" in result.output


def test_cli_init_import_and_search(tmp_path: Path, seed_file: Path) -> None:
    runner = CliRunner()
    env = _env(tmp_path)

    result = runner.invoke(app, ["init-db"], env=env, catch_exceptions=False)
    assert result.exit_code == 0
    assert (tmp_path / "cli.db").exists()

    _import_seed(runner, tmp_path, seed_file)

    result = runner.invoke(app, ["search", "--identifier", "TEST001", "--json"], env=env, catch_exceptions=False)
    assert result.exit_code == 0
    assert '"EXACT_IDENTIFIER_MATCH"' in result.output

    result = runner.invoke(app, ["search"], env=env, catch_exceptions=False)
    assert result.exit_code == 1
    assert "No search criteria provided" in result.output

    result = runner.invoke(app, ["lookup", "missing"], env=env, catch_exceptions=False)
    assert result.exit_code == 1
    assert "Record not found" in result.output


def test_cli_import_rejects_bad_lines(tmp_path: Path) -> None:
    runner = CliRunner()
    bad = tmp_path / "bad.jsonl"
    bad.write_text('{"id": "1"}\nnot json\n')

    result = runner.invoke(app, ["import", str(bad)], env=_env(tmp_path), catch_exceptions=False)
    assert result.exit_code == 1
    assert "Line 2" in result.output


def test_cli_stats_and_estimate(tmp_path: Path, seed_file: Path) -> None:
    runner = CliRunner()
    env = _env(tmp_path)
    _import_seed(runner, tmp_path, seed_file)

    result = runner.invoke(app, ["stats", "--json"], env=env, catch_exceptions=False)
    assert result.exit_code == 0
    assert '"totalRecords": 5' in result.output

    result = runner.invoke(
        app, ["estimate", "--name", "Thabo", "--group", "Ha Matala"], env=env, catch_exceptions=False
    )
    assert result.exit_code == 0
    assert "acceptable" in result.output
    assert "100%" in result.output

    result = runner.invoke(app, ["estimate", "--name", "Thabo"], env=env, catch_exceptions=False)
    assert "rejected" in result.output


def test_cli_estimate_offline_without_cache(tmp_path: Path) -> None:
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["estimate", "--offline", "--region", "BER", "--name", "Thabo"],
        env=_env(tmp_path),
        catch_exceptions=False,
    )
    assert result.exit_code == 0
    assert "Statistics unavailable" in result.output
    assert "50%" in result.output
