from __future__ import annotations

import datetime as dt
import sqlite3
import threading
from pathlib import Path

from .base import TransactionResult, transaction_result

DEFAULT_LEDGER_PATH = Path.home() / ".incidentledger" / "ledger.sqlite"


def connect(db_path: Path | str, check_same_thread: bool = True) -> sqlite3.Connection:
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, check_same_thread=check_same_thread)
    conn.row_factory = sqlite3.Row
    try:
        conn.execute("PRAGMA journal_mode = WAL")
    except sqlite3.OperationalError:
        conn.execute("PRAGMA journal_mode = DELETE")
    conn.execute("PRAGMA synchronous = NORMAL")
    return conn


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS ledger_entries (
            key TEXT PRIMARY KEY,
            value BLOB NOT NULL,
            updated_at TEXT NOT NULL
        );
        """
    )
    conn.commit()


class SqliteLedger:
    """Local file ledger with the same surface as the remote one.

    The connection is shared with the sync fan-out threads, so access is
    serialized behind a lock.
    """

    def __init__(self, db_path: Path | str | None = None) -> None:
        self.db_path = Path(db_path or DEFAULT_LEDGER_PATH).expanduser()
        self.conn = connect(self.db_path, check_same_thread=False)
        self._lock = threading.Lock()
        initialize_schema(self.conn)

    def get_data(self, key: str) -> bytes:
        with self._lock:
            row = self.conn.execute(
                "SELECT value FROM ledger_entries WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return b""
        return bytes(row["value"])

    def set_data(self, key: str, value: bytes) -> TransactionResult:
        now = dt.datetime.now(dt.UTC).isoformat()
        with self._lock:
            self.conn.execute(
                """
                INSERT INTO ledger_entries(key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, sqlite3.Binary(value), now),
            )
            self.conn.commit()
        return transaction_result(key, value)

    def is_available(self) -> bool:
        try:
            with self._lock:
                self.conn.execute("SELECT 1").fetchone()
        except sqlite3.Error:
            return False
        return True

    def keys(self) -> list[str]:
        with self._lock:
            rows = self.conn.execute("SELECT key FROM ledger_entries ORDER BY key").fetchall()
        return [str(row["key"]) for row in rows]

    def close(self) -> None:
        self.conn.close()
