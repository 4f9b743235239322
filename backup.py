"""
backup.py
JSON backup export/import of the packages and customers tables.

File layout: {"customers": [row, ...], "packages": [row, ...]}, rows keyed by
column name. Import replaces both tables in one transaction.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
from dataclasses import replace
from pathlib import Path

import db
import store
from errors import BackupError, ValidationError
from models import Customer, Package, parse_date, parse_datetime, parse_package_ref

logger = logging.getLogger(__name__)

PACKAGE_COLUMNS = ("id", "name", "description", "rate")
CUSTOMER_COLUMNS = (
    "id", "customerId", "name", "phone", "address", "packageId",
    "monthlyRate", "status", "expiryDate", "lastPaymentDate",
)


def export_backup(conn: sqlite3.Connection) -> dict:
    customers = db.fetch_all(conn, "SELECT * FROM customers ORDER BY id")
    packages = db.fetch_all(conn, "SELECT * FROM packages ORDER BY id")
    return {
        "customers": [dict(r) for r in customers],
        "packages": [dict(r) for r in packages],
    }


def dumps_backup(conn: sqlite3.Connection) -> str:
    return json.dumps(export_backup(conn), ensure_ascii=False)


def backup_file_name() -> str:
    return f"isp_backup_{int(time.time() * 1000)}.json"


def write_backup(conn: sqlite3.Connection, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / backup_file_name()
    path.write_text(dumps_backup(conn), encoding="utf-8")
    logger.info("Backup written to %s", path)
    return path


def _row_id(row: dict):
    value = row.get("id")
    return value if isinstance(value, int) and not isinstance(value, bool) else None


def _validated(check, record, label: str):
    try:
        check(record)
    except ValidationError as e:
        raise BackupError(f"{label}: {e}") from None
    return record


def _clean_package(row) -> Package:
    if not isinstance(row, dict):
        raise BackupError("Package rows must be objects.")
    missing = [c for c in PACKAGE_COLUMNS[1:] if c not in row]
    if missing:
        raise BackupError(f"Package row is missing {', '.join(missing)}.")
    if not isinstance(row["description"], str):
        raise BackupError(f"Package {row['name']!r} has no description text.")
    package = Package(_row_id(row), row["name"], row["description"], row["rate"])
    _validated(store.validate_package, package, f"Package {row['name']!r}")
    return replace(package, name=package.name.strip(), rate=float(package.rate))


def _clean_customer(row) -> Customer:
    if not isinstance(row, dict):
        raise BackupError("Customer rows must be objects.")
    missing = [c for c in CUSTOMER_COLUMNS[1:] if c not in row and c != "packageId"]
    if missing:
        raise BackupError(f"Customer row is missing {', '.join(missing)}.")
    label = f"Customer {row['customerId']!r}"
    try:
        # old backups carry full timestamps in expiryDate
        expiry = parse_date(row["expiryDate"])
        last_paid = parse_datetime(row["lastPaymentDate"]).replace(microsecond=0)
    except (TypeError, ValueError) as e:
        raise BackupError(f"{label} has an invalid date: {e}") from None
    customer = Customer(
        id=_row_id(row),
        customer_code=row["customerId"],
        name=row["name"],
        phone=row["phone"],
        address=row["address"],
        package_id=parse_package_ref(row.get("packageId")),
        monthly_rate=row["monthlyRate"],
        status=row["status"],
        expiry_date=expiry,
        last_payment_date=last_paid,
    )
    _validated(store.validate_customer, customer, label)
    return replace(customer, monthly_rate=float(customer.monthly_rate))


def load_backup(text: str | bytes) -> tuple[list[Customer], list[Package]]:
    """Parse and check a backup document; nothing touches the store here."""
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BackupError(f"Backup file is not valid JSON: {e}") from None
    if not isinstance(data, dict) or not isinstance(data.get("customers"), list) or not isinstance(data.get("packages"), list):
        raise BackupError('Backup must contain "customers" and "packages" lists.')
    packages = [_clean_package(r) for r in data["packages"]]
    customers = [_clean_customer(r) for r in data["customers"]]
    return customers, packages


def import_backup(conn: sqlite3.Connection, text: str | bytes) -> tuple[int, int]:
    """
    Replace both tables with the backup contents.
    Returns (customer count, package count).
    """
    customers, packages = load_backup(text)
    package_rows = [tuple(p.to_row()[c] for c in PACKAGE_COLUMNS) for p in packages]
    customer_rows = [tuple(c.to_row()[col] for col in CUSTOMER_COLUMNS) for c in customers]

    try:
        with db.transaction(conn):
            conn.execute("DELETE FROM customers")
            conn.execute("DELETE FROM packages")
            conn.executemany(
                f"INSERT INTO packages({', '.join(PACKAGE_COLUMNS)}) VALUES(?,?,?,?)",
                package_rows,
            )
            conn.executemany(
                f"INSERT INTO customers({', '.join(CUSTOMER_COLUMNS)}) VALUES({','.join('?' * len(CUSTOMER_COLUMNS))})",
                customer_rows,
            )
    except sqlite3.Error as e:
        logger.error("Backup import rolled back: %s", e)
        raise BackupError(f"Backup could not be restored: {e}") from e

    logger.info("Backup restored. Customers: %d, Packages: %d", len(customers), len(packages))
    return len(customers), len(packages)
