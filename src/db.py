"""Shared SQLite helpers: WAL mode, busy timeout, commit-and-close."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


@contextmanager
def wal_connect(
    db_path: str | Path, row_factory: bool = False, timeout: float = 5.0
) -> Iterator[sqlite3.Connection]:
    """Open a SQLite connection in WAL journal mode.

    Commits on clean exit, rolls back on error, always closes.

    Args:
        db_path: Path to database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
        timeout: Seconds to wait on a locked database.
    """
    conn = sqlite3.connect(str(db_path), timeout=timeout)
    try:
        conn.execute("PRAGMA journal_mode=WAL")
        if row_factory:
            conn.row_factory = sqlite3.Row
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
