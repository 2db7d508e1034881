"""Pytest configuration: per-test SQLite database and logging isolation.

Every test that asks for ``database_url`` gets its own file-backed SQLite
database under ``tmp_path``, so tests never share stored transactions.
Cached engines are disposed after each test, and any handler the CLI attached
to the package logger is removed so later tests do not write to a stream
that Typer's runner has already closed.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import dispose_engines, get_session
from expense_tracker.logging_setup import reset_logging
from expense_tracker.persistence import SqlTransactionStore
from sqlalchemy.orm import Session

from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_process_state(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("EXPENSE_TRACKER_LOG_LEVEL", raising=False)
    yield
    reset_logging()
    dispose_engines()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "db" / "expenses.sqlite3")


@pytest.fixture
def session(database_url: str) -> Iterator[Session]:
    s = get_session(database_url=database_url)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def store(session: Session) -> SqlTransactionStore:
    return SqlTransactionStore(session)
