"""
db.py
SQLite helpers + initialization (opens the store handle, creates tables, settings).

The connection is opened once per process by the caller and passed explicitly
to every function that touches the store.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)


def connect(db_file: Path | str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_file, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    logger.info("Opened store at %s", db_file)
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection):
    """
    Run several statements as one unit: commit on success, roll back on error.
    Use conn.execute directly inside the block (the helpers below commit).
    """
    with conn:
        yield conn


def execute(conn: sqlite3.Connection, sql: str, params: tuple = ()) -> sqlite3.Cursor:
    with conn:
        return conn.execute(sql, params)


def fetch_one(conn: sqlite3.Connection, sql: str, params: tuple = ()):
    return conn.execute(sql, params).fetchone()


def fetch_all(conn: sqlite3.Connection, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    return conn.execute(sql, params).fetchall()


def _create_tables(conn: sqlite3.Connection) -> None:
    execute(
        conn,
        """
        CREATE TABLE IF NOT EXISTS packages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            description TEXT NOT NULL,
            rate REAL NOT NULL
        )
        """,
    )

    # packageId is a loose reference: no FOREIGN KEY, dangling ids are allowed
    execute(
        conn,
        """
        CREATE TABLE IF NOT EXISTS customers (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customerId TEXT NOT NULL UNIQUE,
            name TEXT NOT NULL,
            phone TEXT NOT NULL,
            address TEXT NOT NULL,
            packageId INTEGER,
            monthlyRate REAL NOT NULL,
            status TEXT NOT NULL CHECK(status IN ('Paid','Pending','Due')),
            expiryDate TEXT NOT NULL,
            lastPaymentDate TEXT NOT NULL
        )
        """,
    )

    # Owner credential lives here; not part of backups
    execute(
        conn,
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """,
    )


def get_setting(conn: sqlite3.Connection, key: str, default: str | None = None) -> str | None:
    row = fetch_one(conn, "SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def set_setting(conn: sqlite3.Connection, key: str, value: str) -> None:
    execute(
        conn,
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def init_db(conn: sqlite3.Connection, default_owner_hash: str | None = None) -> None:
    """
    Initialize the database.
    - Create tables
    - Store the default owner password hash if none exists yet
    - Force password change on first login
    """
    _create_tables(conn)

    if default_owner_hash is None:
        return
    if get_setting(conn, "owner_password_hash") is None:
        set_setting(conn, "owner_password_hash", default_owner_hash)
        set_setting(conn, "force_password_change", "1")
    elif get_setting(conn, "force_password_change") is None:
        set_setting(conn, "force_password_change", "0")


def is_force_password_change(conn: sqlite3.Connection) -> bool:
    return get_setting(conn, "force_password_change") == "1"


def clear_force_password_change(conn: sqlite3.Connection) -> None:
    set_setting(conn, "force_password_change", "0")
