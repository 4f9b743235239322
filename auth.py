"""
auth.py
Owner login (bcrypt hashing, verify, login, change password).

Single-tenant: there is one owner credential, kept in app_settings.
"""

from __future__ import annotations

import sqlite3

import bcrypt

import db

DEFAULT_PASSWORD = "admin123"


def _to_bcrypt_secret(password: str) -> bytes:
    """
    bcrypt only uses the first 72 BYTES of the password.
    Truncate to 72 bytes to avoid ValueError.
    """
    pw = password.encode("utf-8")
    if len(pw) > 72:
        pw = pw[:72]
    return pw


def hash_password(password: str, rounds: int = 12) -> str:
    secret = _to_bcrypt_secret(password)
    hashed = bcrypt.hashpw(secret, bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def login(conn: sqlite3.Connection, password: str) -> bool:
    stored = db.get_setting(conn, "owner_password_hash")
    if not stored:
        return False
    return verify_password(password, stored)


def change_password(conn: sqlite3.Connection, new_password: str) -> None:
    db.set_setting(conn, "owner_password_hash", hash_password(new_password))
    db.clear_force_password_change(conn)
