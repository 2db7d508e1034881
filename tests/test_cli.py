import json
import os
from datetime import datetime
from pathlib import Path

import pytest
from db.client import DatabaseNotConfiguredError, get_engine
from expense_tracker.cli import EXIT_DUPLICATE, EXIT_ERROR, EXIT_OK, app, cmd_add
from expense_tracker.ingestion import IngestionService
from typer.testing import CliRunner

from tests.helpers.db import count_transactions

RECEIPT = "Order Receipt\nStarbucks Coffee\nDate\n07/02/2026\nPaid\n₹250.00\nThank you"


@pytest.fixture
def runner(monkeypatch, tmp_path) -> CliRunner:
    # Keep a developer's .env out of the picture.
    monkeypatch.chdir(tmp_path)
    return CliRunner()


@pytest.fixture
def receipt_file(tmp_path) -> Path:
    path = tmp_path / "receipt.txt"
    path.write_text(RECEIPT, encoding="utf-8")
    return path


def _invoke(runner: CliRunner, database_url: str, *args: str, input: str | None = None):
    return runner.invoke(app, [*args, "--database-url", database_url], input=input)


# ---- add ------------------------------------------------------------------------


def test_add_records_manual_transaction(runner, database_url):
    result = _invoke(runner, database_url, "add", "250", "--merchant", "Starbucks", "--no-input")
    assert result.exit_code == EXIT_OK, result.output
    assert "Recorded 250.00 (Manual)" in result.output
    assert count_transactions(database_url=database_url) == 1


def test_add_duplicate_is_reported_without_prompt(runner, database_url):
    args = ("add", "250", "--merchant", "Starbucks", "--date", "2026-02-07 12:00", "--no-input")
    assert _invoke(runner, database_url, *args).exit_code == EXIT_OK

    result = _invoke(runner, database_url, *args)
    assert result.exit_code == EXIT_DUPLICATE
    assert "Duplicate" in result.output
    assert count_transactions(database_url=database_url) == 1


@pytest.mark.parametrize(
    ("answer", "code", "rows"), [("y\n", EXIT_OK, 2), ("n\n", EXIT_DUPLICATE, 1)]
)
def test_add_duplicate_asks_for_confirmation(runner, database_url, answer, code, rows):
    args = ("add", "250", "--merchant", "Starbucks", "--date", "2026-02-07 12:00")
    assert _invoke(runner, database_url, *args, "--no-input").exit_code == EXIT_OK

    result = _invoke(runner, database_url, *args, input=answer)
    assert "Add it anyway?" in result.output
    assert result.exit_code == code
    assert count_transactions(database_url=database_url) == rows


def test_add_force_skips_duplicate_check(runner, database_url):
    args = ("add", "250", "--merchant", "Starbucks", "--date", "2026-02-07", "--no-input")
    _invoke(runner, database_url, *args)
    assert _invoke(runner, database_url, *args, "--force").exit_code == EXIT_OK
    assert count_transactions(database_url=database_url) == 2


def test_add_rejects_zero_amount(runner, database_url):
    result = _invoke(runner, database_url, "add", "0", "--no-input")
    assert result.exit_code == EXIT_ERROR
    assert "valid amount" in result.output
    assert count_transactions(database_url=database_url) == 0


def test_cmd_add_confirm_callback(database_url):
    when = datetime(2026, 2, 7, 12, 0)
    prompts: list[str] = []

    def confirm(prompt: str) -> bool:
        prompts.append(prompt)
        return True

    kwargs = {"date": when, "merchant": "Cafe", "database_url": database_url}
    assert cmd_add(80.0, **kwargs) == EXIT_OK
    assert cmd_add(80.0, confirm=confirm, **kwargs) == EXIT_OK
    assert len(prompts) == 1
    assert count_transactions(database_url=database_url) == 2


def test_duplicate_prompt_holds_no_database_connection(database_url):
    when = datetime(2026, 2, 7, 12, 0)
    pool = get_engine(database_url=database_url).pool
    checked_out_at_prompt: list[int] = []

    def confirm(_prompt: str) -> bool:
        checked_out_at_prompt.append(pool.checkedout())
        return True

    kwargs = {"date": when, "merchant": "Cafe", "database_url": database_url}
    assert cmd_add(80.0, **kwargs) == EXIT_OK
    assert cmd_add(80.0, confirm=confirm, **kwargs) == EXIT_OK
    assert checked_out_at_prompt == [0]
    assert count_transactions(database_url=database_url) == 2


# ---- scan / parse ---------------------------------------------------------------


def test_scan_records_then_detects_duplicate(runner, database_url, receipt_file):
    first = _invoke(runner, database_url, "scan", str(receipt_file), "--no-input")
    assert first.exit_code == EXIT_OK, first.output
    assert "Scanned: amount=250.00 date=2026-02-07 00:00 merchant=Starbucks Coffee" in first.output
    assert "Recorded 250.00 (OCR)" in first.output

    second = _invoke(runner, database_url, "scan", str(receipt_file), "--no-input")
    assert second.exit_code == EXIT_DUPLICATE


def test_scan_incomplete_receipt_needs_overrides(runner, database_url, tmp_path):
    path = tmp_path / "partial.txt"
    path.write_text("Corner Bakery\n₹80", encoding="utf-8")

    result = _invoke(runner, database_url, "scan", str(path), "--no-input")
    assert result.exit_code == EXIT_ERROR
    assert "missing an amount or date" in result.output

    fixed = _invoke(runner, database_url, "scan", str(path), "--date", "2026-02-07", "--no-input")
    assert fixed.exit_code == EXIT_OK, fixed.output
    assert count_transactions(database_url=database_url) == 1


def test_scan_reads_stdin(runner, database_url):
    result = _invoke(runner, database_url, "scan", "-", "--no-input", input=RECEIPT)
    assert result.exit_code == EXIT_OK, result.output


def test_scan_missing_file(runner, database_url, tmp_path):
    result = _invoke(runner, database_url, "scan", str(tmp_path / "nope.txt"), "--no-input")
    assert result.exit_code == EXIT_ERROR
    assert "cannot read" in result.output


@pytest.mark.parametrize("amount", ["-5", "0"])
def test_scan_rejects_non_positive_amount_override(runner, database_url, receipt_file, amount):
    result = _invoke(
        runner, database_url, "scan", str(receipt_file), "--amount", amount, "--no-input"
    )
    assert result.exit_code == EXIT_ERROR
    assert "valid amount" in result.output
    assert count_transactions(database_url=database_url) == 0


def test_scan_blank_merchant_override_means_no_merchant(runner, database_url, receipt_file):
    args = ("scan", str(receipt_file), "--merchant", "   ", "--no-input")
    assert _invoke(runner, database_url, *args).exit_code == EXIT_OK
    # Without a merchant the second scan is not matched as a duplicate.
    assert _invoke(runner, database_url, *args).exit_code == EXIT_OK

    rows = _invoke(runner, database_url, "list").stdout.strip().splitlines()
    assert [row.split("\t")[-1] for row in rows] == ["Unknown Merchant", "Unknown Merchant"]


def test_parse_prints_json(runner, receipt_file):
    result = runner.invoke(app, ["parse", str(receipt_file)])
    assert result.exit_code == EXIT_OK
    assert json.loads(result.stdout) == {
        "amount": 250.0,
        "date": "2026-02-07T00:00:00",
        "merchant": "Starbucks Coffee",
        "source": "ocr",
        "complete": True,
    }


def test_parse_incomplete(runner, tmp_path):
    path = tmp_path / "blank.txt"
    path.write_text("", encoding="utf-8")
    result = runner.invoke(app, ["parse", str(path)])
    payload = json.loads(result.stdout)
    assert payload["complete"] is False
    assert payload["amount"] is None


# ---- list / edit / delete -------------------------------------------------------


def _only_id(runner: CliRunner, database_url: str) -> str:
    result = _invoke(runner, database_url, "list")
    [row] = result.stdout.strip().splitlines()
    return row.split("\t")[0]


def test_list_empty_then_rows(runner, database_url):
    assert "No expenses yet." in _invoke(runner, database_url, "list").output

    _invoke(runner, database_url, "add", "42.5", "--date", "2026-02-07 09:15", "--no-input")
    row = _invoke(runner, database_url, "list").stdout.strip()
    assert row.split("\t")[1:] == ["2026-02-07 09:15", "42.50", "Manual", "Unknown Merchant"]


def test_edit_and_delete(runner, database_url):
    _invoke(runner, database_url, "add", "42.5", "--merchant", "Cafe", "--no-input")
    tx_id = _only_id(runner, database_url)

    edited = _invoke(runner, database_url, "edit", tx_id, "--amount", "99", "--merchant", "Aroma")
    assert edited.exit_code == EXIT_OK, edited.output
    assert "99.00" in edited.output and "Aroma" in edited.output

    bad = _invoke(runner, database_url, "edit", tx_id, "--amount", "0")
    assert bad.exit_code == EXIT_ERROR
    assert "invalid edit" in bad.output

    cleared = _invoke(runner, database_url, "edit", tx_id, "--clear-merchant")
    assert "Unknown Merchant" in cleared.output

    assert _invoke(runner, database_url, "delete", tx_id).exit_code == EXIT_OK
    again = _invoke(runner, database_url, "delete", tx_id)
    assert again.exit_code == EXIT_ERROR
    assert "not found" in again.output


def test_edit_unknown_id(runner, database_url):
    result = _invoke(
        runner, database_url, "edit", "00000000-0000-0000-0000-000000000000", "--amount", "5"
    )
    assert result.exit_code == EXIT_ERROR
    assert "transaction not found" in result.output


# ---- profile / overview ---------------------------------------------------------


def test_profile_lifecycle(runner, database_url):
    missing = _invoke(runner, database_url, "profile")
    assert missing.exit_code == EXIT_ERROR
    assert "No user profile found." in missing.output

    half = _invoke(runner, database_url, "profile", "--name", "Asha")
    assert half.exit_code == EXIT_ERROR

    created = _invoke(runner, database_url, "profile", "--name", "Asha", "--allowance", "5000")
    assert created.exit_code == EXIT_OK, created.output

    _invoke(runner, database_url, "profile", "--allowance", "6000")
    shown = _invoke(runner, database_url, "profile")
    assert shown.stdout.strip() == "Asha\t6000.00"


def test_profile_rejects_negative_allowance(runner, database_url):
    result = _invoke(runner, database_url, "profile", "--name", "Asha", "--allowance", "-1")
    assert result.exit_code != EXIT_OK


def test_overview(runner, database_url):
    assert _invoke(runner, database_url, "overview").exit_code == EXIT_ERROR

    _invoke(runner, database_url, "profile", "--name", "Asha", "--allowance", "1000")
    _invoke(runner, database_url, "add", "250", "--merchant", "Cafe", "--no-input")

    result = _invoke(runner, database_url, "overview")
    assert result.exit_code == EXIT_OK, result.output
    lines = result.stdout.splitlines()
    assert lines[:5] == [
        "Hello, Asha",
        "Allowance: 1000.00",
        "Spent: 250.00",
        "Remaining: 750.00",
        "Progress: 25%",
    ]
    assert lines[5] == "Spending trend (last 3 months):"
    assert lines[-1] == f"  {datetime.now():%b}\t250.00"


# ---- configuration --------------------------------------------------------------


def test_missing_database_url_is_an_error(runner):
    result = runner.invoke(app, ["list"])
    assert result.exit_code == EXIT_ERROR
    assert "DATABASE_URL is not set" in result.output


def test_database_url_from_dotenv(runner, database_url, tmp_path):
    (tmp_path / ".env").write_text(f"DATABASE_URL={database_url}\n", encoding="utf-8")
    result = runner.invoke(app, ["list"])
    assert result.exit_code == EXIT_OK, result.output
    assert "No expenses yet." in result.output
    # load_dotenv writes straight into os.environ.
    os.environ.pop("DATABASE_URL", None)


def test_log_level_option(runner, database_url):
    args = ["--log-level", "DEBUG", "add", "5", "--merchant", "X", "--no-input"]
    result = _invoke(runner, database_url, *args)
    assert result.exit_code == EXIT_OK
    assert "expense_tracker.duplicates DEBUG duplicate check" in result.output


def test_client_raises_dedicated_error_without_url():
    with pytest.raises(DatabaseNotConfiguredError):
        get_engine()


def test_unrelated_runtime_error_is_not_reported_as_storage(database_url, monkeypatch):
    def _boom(self, raw):
        raise RuntimeError("bug in ingestion")

    monkeypatch.setattr(IngestionService, "ingest", _boom)
    with pytest.raises(RuntimeError, match="bug in ingestion"):
        cmd_add(10.0, merchant="Cafe", database_url=database_url)
