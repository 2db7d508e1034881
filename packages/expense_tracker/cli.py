# ruff: noqa: I001
"""CLI for the ``expense_tracker`` package.

This module exposes callable command handlers (``cmd_add``, ``cmd_scan``, ...)
and a Typer-based console interface over them. Environment variables (notably
``DATABASE_URL``) are loaded from a local ``.env`` using ``python-dotenv``
before delegating to command logic. Business logic lives in
``expense_tracker.ingestion`` and related modules; handlers only resolve a
store, call into the core and render results.

Exit codes: ``0`` success, ``1`` error or invalid input, ``2`` duplicate not
recorded.
"""

from __future__ import annotations

import json
import sys
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from db.client import DatabaseNotConfiguredError
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError
from typer.models import ArgumentInfo, OptionInfo

from .errors import StorageError, TransactionNotFoundError
from .logging_setup import configure_logging
from .models import IngestionResult, RawObservation, SourceTag, Transaction

if TYPE_CHECKING:
    from .persistence import SqlTransactionStore

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_DUPLICATE = 2

DUPLICATE_PROMPT = (
    "A recent similar transaction already exists for this merchant and amount. "
    "Add it anyway?"
)

type ConfirmFn = Callable[[str], bool]

# Failures that mean "the database could not be used": no URL configured, a
# bad URL or an unreachable server.
_STORAGE_FAILURES = (StorageError, SQLAlchemyError, DatabaseNotConfiguredError)


# ---- Small module-level helpers used by CLI commands -------------------------


@contextmanager
def _open_store(database_url: str | None) -> Iterator[SqlTransactionStore]:
    """Yield a store bound to a short-lived session for ``database_url``."""

    # Local imports keep engine and ORM setup out of CLI startup
    from db.client import session_scope
    from .persistence import SqlTransactionStore

    with session_scope(database_url=database_url) as session:
        yield SqlTransactionStore(session)


def _err(message: str) -> None:
    print(f"Error: {message}", file=sys.stderr)


def _fmt_amount(amount: float) -> str:
    return f"{amount:.2f}"


def _fmt_row(tx: Transaction) -> str:
    return "\t".join(
        [
            str(tx.id),
            tx.transaction_date.strftime("%Y-%m-%d %H:%M"),
            _fmt_amount(tx.amount),
            tx.source.display_name,
            tx.merchant or "Unknown Merchant",
        ]
    )


def _read_text(text_path: str) -> str:
    if text_path == "-":
        return sys.stdin.read()
    return Path(text_path).read_text(encoding="utf-8")


def _record(
    raw: RawObservation,
    *,
    database_url: str | None,
    force: bool,
    confirm: ConfirmFn | None,
) -> int:
    """Ingest ``raw`` and translate the outcome into output and an exit code.

    On a duplicate, ``confirm`` (when given) decides whether to add anyway.
    The prompt runs between two short store scopes, never inside one.
    """

    from .ingestion import IngestionService

    try:
        with _open_store(database_url) as store:
            service = IngestionService(store)
            result = service.force_add(raw) if force else service.ingest(raw)
        if result is IngestionResult.DUPLICATE and confirm is not None:
            if confirm(DUPLICATE_PROMPT):
                with _open_store(database_url) as store:
                    result = IngestionService(store).force_add(raw)
    except _STORAGE_FAILURES as e:
        _err(f"storage unavailable: {e}")
        return EXIT_ERROR

    if result is IngestionResult.SUCCESS:
        print(f"Recorded {_fmt_amount(raw.amount or 0.0)} ({raw.source.display_name})")
        return EXIT_OK
    if result is IngestionResult.DUPLICATE:
        print("Duplicate: a matching transaction already exists; not recorded.")
        return EXIT_DUPLICATE
    _err("transaction could not be recorded (amount and date are required).")
    return EXIT_ERROR


# ---- Command handlers --------------------------------------------------------


def cmd_add(
    amount: float,
    *,
    date: datetime | None = None,
    merchant: str | None = None,
    force: bool = False,
    confirm: ConfirmFn | None = None,
    database_url: str | None = None,
) -> int:
    """Record a manual transaction.

    ``date`` defaults to now. A non-positive ``amount`` is rejected before
    touching the database.
    """

    if amount <= 0:
        _err("please enter a valid amount (greater than zero).")
        return EXIT_ERROR
    raw = RawObservation(
        amount=amount,
        date=date or datetime.now(),
        description=(merchant.strip() or None) if merchant else None,
        source=SourceTag.MANUAL,
    )
    return _record(raw, database_url=database_url, force=force, confirm=confirm)


def cmd_parse(text_path: str) -> int:
    """Parse recognized receipt text and print the observation as JSON."""

    from .normalizers import ObservationNormalizer
    from .receipt_parser import ReceiptTextParser

    if amount is not None and amount <= 0:
        _err("please enter a valid amount (greater than zero).")
        return EXIT_ERROR
    try:
        text = _read_text(text_path)
    except OSError as e:
        _err(f"cannot read {text_path}: {e}")
        return EXIT_ERROR

    raw = ReceiptTextParser.parse(text)
    payload = {
        "amount": raw.amount,
        "date": raw.date.isoformat() if raw.date else None,
        "merchant": raw.description,
        "source": raw.source.value,
        "complete": ObservationNormalizer.normalize(raw) is not None,
    }
    print(json.dumps(payload, ensure_ascii=False))
    return EXIT_OK


def cmd_scan(
    text_path: str,
    *,
    amount: float | None = None,
    date: datetime | None = None,
    merchant: str | None = None,
    force: bool = False,
    confirm: ConfirmFn | None = None,
    database_url: str | None = None,
) -> int:
    """Parse recognized receipt text, apply review overrides, and record it."""

    from .receipt_parser import ReceiptTextParser

    try:
        text = _read_text(text_path)
    except OSError as e:
        _err(f"cannot read {text_path}: {e}")
        return EXIT_ERROR

    parsed = ReceiptTextParser.parse(text)
    raw = RawObservation(
        amount=amount if amount is not None else parsed.amount,
        date=date or parsed.date,
        description=(merchant.strip() or None) if merchant is not None else parsed.description,
        source=SourceTag.OCR,
    )
    print(
        "Scanned: amount={} date={} merchant={}".format(
            _fmt_amount(raw.amount) if raw.amount is not None else "?",
            raw.date.strftime("%Y-%m-%d %H:%M") if raw.date else "?",
            raw.description or "?",
        )
    )
    if raw.amount is None or raw.date is None:
        _err("receipt is missing an amount or date; pass --amount/--date to complete it.")
        return EXIT_ERROR
    return _record(raw, database_url=database_url, force=force, confirm=confirm)


def cmd_list(*, database_url: str | None = None) -> int:
    """Print stored transactions, newest first, one tab-separated row each."""

    try:
        with _open_store(database_url) as store:
            rows = store.list_transactions()
    except _STORAGE_FAILURES as e:
        _err(f"storage unavailable: {e}")
        return EXIT_ERROR
    if not rows:
        print("No expenses yet.")
        return EXIT_OK
    for tx in rows:
        print(_fmt_row(tx))
    return EXIT_OK


def cmd_edit(
    transaction_id: uuid.UUID,
    *,
    amount: float | None = None,
    date: datetime | None = None,
    merchant: str | None = None,
    clear_merchant: bool = False,
    database_url: str | None = None,
) -> int:
    from .ingestion import IngestionService

    changes: dict[str, object] = {"amount": amount, "transaction_date": date}
    if clear_merchant:
        changes["merchant"] = None
    elif merchant is not None:
        changes["merchant"] = merchant.strip() or None

    try:
        with _open_store(database_url) as store:
            tx = IngestionService(store).edit(transaction_id, **changes)  # type: ignore[arg-type]
    except TransactionNotFoundError as e:
        _err(str(e))
        return EXIT_ERROR
    except ValueError as e:
        _err(f"invalid edit: {e}")
        return EXIT_ERROR
    except _STORAGE_FAILURES as e:
        _err(f"storage unavailable: {e}")
        return EXIT_ERROR
    print(_fmt_row(tx))
    return EXIT_OK


def cmd_delete(transaction_id: uuid.UUID, *, database_url: str | None = None) -> int:
    from .ingestion import IngestionService

    try:
        with _open_store(database_url) as store:
            deleted = IngestionService(store).delete(transaction_id)
    except _STORAGE_FAILURES as e:
        _err(f"storage unavailable: {e}")
        return EXIT_ERROR
    if not deleted:
        _err(f"transaction not found: {transaction_id}")
        return EXIT_ERROR
    print(f"Deleted {transaction_id}")
    return EXIT_OK


def cmd_profile(
    *,
    name: str | None = None,
    allowance: float | None = None,
    database_url: str | None = None,
) -> int:
    """Show the profile, or create/update it when ``name``/``allowance`` is given."""

    from pydantic import ValidationError

    from .models import UserProfile

    try:
        with _open_store(database_url) as store:
            existing = store.get_profile()
            if name is None and allowance is None:
                if existing is None:
                    print("No user profile found.")
                    return EXIT_ERROR
                print(f"{existing.name}\t{_fmt_amount(existing.monthly_allowance)}")
                return EXIT_OK

            new_name = name if name is not None else (existing.name if existing else None)
            new_allowance = (
                allowance
                if allowance is not None
                else (existing.monthly_allowance if existing else None)
            )
            if new_name is None or new_allowance is None:
                _err("a new profile needs both --name and --allowance.")
                return EXIT_ERROR
            try:
                profile = UserProfile(name=new_name, monthly_allowance=float(new_allowance))
            except ValidationError as e:
                _err(f"invalid profile: {e.errors()[0]['msg']}")
                return EXIT_ERROR
            store.save_profile(profile)
            store.save()
    except _STORAGE_FAILURES as e:
        _err(f"storage unavailable: {e}")
        return EXIT_ERROR

    print(f"Saved profile: {profile.name}\t{_fmt_amount(profile.monthly_allowance)}")
    return EXIT_OK


def cmd_overview(
    *,
    months: int = 3,
    now: datetime | None = None,
    database_url: str | None = None,
) -> int:
    """Print the budget overview and the trailing monthly spend series."""

    from .aggregation import budget_overview, trailing_months

    now = now or datetime.now()
    try:
        with _open_store(database_url) as store:
            profile = store.get_profile()
            transactions = store.list_transactions()
    except _STORAGE_FAILURES as e:
        _err(f"storage unavailable: {e}")
        return EXIT_ERROR

    if profile is None:
        print("No user profile found. Create one with: profile --name NAME --allowance AMOUNT")
        return EXIT_ERROR

    overview = budget_overview(profile, transactions, now)
    print(f"Hello, {profile.name}")
    print(f"Allowance: {_fmt_amount(overview.allowance)}")
    print(f"Spent: {_fmt_amount(overview.spent)}")
    print(f"Remaining: {_fmt_amount(overview.remaining)}")
    print(f"Progress: {overview.progress:.0%}")
    print(f"Spending trend (last {months} months):")
    for point in trailing_months(transactions, now, months):
        print(f"  {point.month}\t{_fmt_amount(point.total)}")
    return EXIT_OK


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Track personal expenses: record manual entries and scanned receipts, "
        "skip duplicates, and review monthly spend. Loads DATABASE_URL from a "
        "local .env before running."
    ),
)

_DATE_FORMATS = ["%Y-%m-%d", "%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M:%S"]

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer inspects these when used as default values below.
#
# Used inside ``Annotated[...]``, so none of them carries a default; defaults
# are set on the parameters.
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    "--database-url", help="Override DATABASE_URL (falls back to env var)."
)
DATE_OPTION: OptionInfo = typer.Option(
    "--date", formats=_DATE_FORMATS, help="Transaction date (default: now)."
)
FORCE_OPTION: OptionInfo = typer.Option(
    "--force", help="Record even when a matching transaction already exists."
)
NO_INPUT_OPTION: OptionInfo = typer.Option(
    "--no-input", help="Never prompt; duplicates are reported and skipped."
)
TEXT_PATH_ARGUMENT: ArgumentInfo = typer.Argument(
    help="File holding recognized receipt text, or '-' for stdin."
)


def _confirm_fn(no_input: bool) -> ConfirmFn | None:
    if no_input:
        return None
    return lambda prompt: typer.confirm(prompt, default=False)


def _exit(code: int) -> None:
    if code != EXIT_OK:
        raise typer.Exit(code)


@app.command("add")
def add_cmd(
    amount: Annotated[float, typer.Argument(help="Amount spent (positive).")],
    *,
    date: Annotated[datetime | None, DATE_OPTION] = None,
    merchant: str | None = typer.Option(None, help="Merchant name (optional)."),
    force: Annotated[bool, FORCE_OPTION] = False,
    no_input: Annotated[bool, NO_INPUT_OPTION] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Record a manual transaction."""

    _exit(
        cmd_add(
            amount,
            date=date,
            merchant=merchant,
            force=force,
            confirm=_confirm_fn(no_input),
            database_url=database_url,
        )
    )


@app.command("scan")
def scan_cmd(
    text_path: Annotated[str, TEXT_PATH_ARGUMENT],
    *,
    amount: float | None = typer.Option(None, help="Override the parsed amount."),
    date: Annotated[datetime | None, DATE_OPTION] = None,
    merchant: str | None = typer.Option(None, help="Override the parsed merchant."),
    force: Annotated[bool, FORCE_OPTION] = False,
    no_input: Annotated[bool, NO_INPUT_OPTION] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Record a transaction from recognized receipt text."""

    _exit(
        cmd_scan(
            text_path,
            amount=amount,
            date=date,
            merchant=merchant,
            force=force,
            confirm=_confirm_fn(no_input),
            database_url=database_url,
        )
    )


@app.command("parse")
def parse_cmd(text_path: Annotated[str, TEXT_PATH_ARGUMENT]) -> None:
    """Parse recognized receipt text and print it as JSON (no database)."""

    _exit(cmd_parse(text_path))


@app.command("list")
def list_cmd(database_url: Annotated[str | None, DATABASE_URL_OPTION] = None) -> None:
    """List transactions, newest first."""

    _exit(cmd_list(database_url=database_url))


@app.command("edit")
def edit_cmd(
    transaction_id: Annotated[uuid.UUID, typer.Argument(help="Transaction id.")],
    *,
    amount: float | None = typer.Option(None, help="New amount (positive)."),
    date: Annotated[datetime | None, DATE_OPTION] = None,
    merchant: str | None = typer.Option(None, help="New merchant name."),
    clear_merchant: bool = typer.Option(False, help="Remove the merchant."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Edit the amount, date or merchant of a transaction."""

    _exit(
        cmd_edit(
            transaction_id,
            amount=amount,
            date=date,
            merchant=merchant,
            clear_merchant=clear_merchant,
            database_url=database_url,
        )
    )


@app.command("delete")
def delete_cmd(
    transaction_id: Annotated[uuid.UUID, typer.Argument(help="Transaction id.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete a transaction."""

    _exit(cmd_delete(transaction_id, database_url=database_url))


@app.command("profile")
def profile_cmd(
    *,
    name: str | None = typer.Option(None, help="Display name."),
    allowance: float | None = typer.Option(None, help="Monthly allowance (>= 0)."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Show or update the user profile."""

    _exit(cmd_profile(name=name, allowance=allowance, database_url=database_url))


@app.command("overview")
def overview_cmd(
    *,
    months: int = typer.Option(3, min=1, help="Number of trailing months to chart."),
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Show this month's spend against the allowance and the recent trend."""

    _exit(cmd_overview(months=months, database_url=database_url))


@app.callback()
def _root(
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to EXPENSE_TRACKER_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m expense_tracker.cli`
    main()
