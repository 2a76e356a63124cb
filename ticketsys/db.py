"""Thread-safe access to the ticket database."""

from __future__ import annotations

import json
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime
from types import TracebackType
from typing import Any

SCHEMA = """
CREATE TABLE IF NOT EXISTS tickets (
    ticket_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL DEFAULT 0,
    total_stake REAL NOT NULL DEFAULT 0,
    total_odd REAL NOT NULL DEFAULT 0,
    potential_payout REAL NOT NULL DEFAULT 0,
    hits INTEGER NOT NULL DEFAULT 0,
    misses INTEGER NOT NULL DEFAULT 0,
    pending INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'pending',
    created_at TEXT,
    max_payout REAL NOT NULL DEFAULT 0,
    min_payout REAL NOT NULL DEFAULT 0,
    final_payout REAL NOT NULL DEFAULT 0,
    num_combinations INTEGER NOT NULL DEFAULT 0,
    system_combination TEXT,
    ticket_type TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS selections (
    selection_id INTEGER PRIMARY KEY AUTOINCREMENT,
    ticket_id INTEGER NOT NULL REFERENCES tickets(ticket_id),
    sport_type TEXT,
    league TEXT,
    home_team TEXT,
    away_team TEXT,
    event_date TEXT,
    market_type TEXT,
    selected_outcome TEXT,
    odd_value REAL NOT NULL,
    stake REAL NOT NULL,
    eid TEXT,
    selection_type TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    is_fixed INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS combinations (
    combination_id INTEGER PRIMARY KEY AUTOINCREMENT,
    ticket_id INTEGER NOT NULL REFERENCES tickets(ticket_id),
    selection_ids TEXT NOT NULL,
    combination_odds REAL NOT NULL,
    stake_per_combination REAL NOT NULL,
    potential_win REAL NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending',
    final_payout REAL NOT NULL DEFAULT 0,
    created_at TEXT
);
"""


class DatabaseClosedError(RuntimeError):
    """Raised when the database is used after it has been closed."""


class TransactionDoneError(RuntimeError):
    """Raised when a finished transaction is used again."""


class NoRowsError(LookupError):
    """Raised when a single-row query returns nothing."""


@dataclass(frozen=True)
class ExecResult:
    """Outcome of a statement: rows touched and the last inserted row id."""

    rows_affected: int
    last_insert_id: int | None


def _adapt(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (list, tuple)):
        return json.dumps(list(value))
    return value


def _params(args: tuple[Any, ...]) -> tuple[Any, ...]:
    return tuple(_adapt(arg) for arg in args)


def _run(conn: sqlite3.Connection, query: str, args: tuple[Any, ...]) -> ExecResult:
    cursor = conn.execute(query, _params(args))
    try:
        return ExecResult(cursor.rowcount, cursor.lastrowid)
    finally:
        cursor.close()


def _fetch(conn: sqlite3.Connection, query: str, args: tuple[Any, ...]) -> list[tuple]:
    cursor = conn.execute(query, _params(args))
    try:
        return [tuple(row) for row in cursor.fetchall()]
    finally:
        cursor.close()


class Transaction:
    """An open transaction; holds the manager's lock until committed or rolled back.

    Used as a context manager it commits on success and rolls back on error.
    """

    def __init__(self, manager: "DBManager") -> None:
        self._lock = manager._lock
        self._lock.acquire()
        try:
            self._conn = manager._connection()
            self._conn.execute("BEGIN")
        except BaseException:
            self._lock.release()
            raise
        self._done = False

    def _check(self) -> sqlite3.Connection:
        if self._done:
            raise TransactionDoneError("transaction has already been committed or rolled back")
        return self._conn

    def exec(self, query: str, *args: Any) -> ExecResult:
        """Run a statement inside the transaction."""
        return _run(self._check(), query, args)

    def query(self, query: str, *args: Any) -> list[tuple]:
        """Run a query inside the transaction and return all rows."""
        return _fetch(self._check(), query, args)

    def query_row(self, query: str, *args: Any) -> tuple:
        """Return the first row of a query; raise NoRowsError if there is none."""
        rows = self.query(query, *args)
        if not rows:
            raise NoRowsError("no rows in result set")
        return rows[0]

    def commit(self) -> None:
        """Commit the transaction."""
        conn = self._check()
        try:
            conn.execute("COMMIT")
        except sqlite3.Error:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            self._finish()

    def rollback(self) -> None:
        """Roll the transaction back; does nothing if it is already finished."""
        if self._done:
            return
        try:
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
        finally:
            self._finish()

    def _finish(self) -> None:
        self._done = True
        self._lock.release()

    def __enter__(self) -> "Transaction":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is not None:
            self.rollback()
        elif not self._done:
            self.commit()


class DBManager:
    """Owns one database connection and serialises access to it."""

    def __init__(self, dsn: str) -> None:
        conn = sqlite3.connect(dsn, check_same_thread=False, isolation_level=None)
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("SELECT 1").close()
        except sqlite3.Error:
            conn.close()
            raise
        self._conn: sqlite3.Connection | None = conn
        self._lock = threading.RLock()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseClosedError("database is closed")
        return self._conn

    def get_db(self) -> sqlite3.Connection:
        """Return the underlying connection."""
        with self._lock:
            return self._connection()

    def close(self) -> None:
        """Close the connection; closing twice is harmless."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def begin_transaction(self) -> Transaction:
        """Start a transaction."""
        return Transaction(self)

    def exec(self, query: str, *args: Any) -> ExecResult:
        """Run a statement outside any transaction."""
        with self._lock:
            return _run(self._connection(), query, args)

    def query(self, query: str, *args: Any) -> list[tuple]:
        """Run a query and return all rows as tuples."""
        with self._lock:
            return _fetch(self._connection(), query, args)

    def create_schema(self) -> None:
        """Create the tickets, selections and combinations tables if missing."""
        with self._lock:
            self._connection().executescript(SCHEMA)

    def __enter__(self) -> "DBManager":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()