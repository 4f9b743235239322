"""
store.py
Package and customer persistence (create / read / update / delete).
"""

from __future__ import annotations

import logging
import math
import sqlite3

import db
from errors import DuplicateError, NotFoundError, ValidationError
from models import STATUSES, UNKNOWN_PACKAGE, Customer, Package

logger = logging.getLogger(__name__)

_CUSTOMER_COLUMNS = (
    "customerId", "name", "phone", "address", "packageId",
    "monthlyRate", "status", "expiryDate", "lastPaymentDate",
)


def _check_rate(value, label: str, errors: list[str]) -> None:
    try:
        rate = float(value)
    except (TypeError, ValueError):
        errors.append(f"{label} must be numeric.")
        return
    if not math.isfinite(rate):
        errors.append(f"{label} must be numeric.")
    elif rate < 0:
        errors.append(f"{label} cannot be negative.")


def _blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def _integrity_error(e: sqlite3.IntegrityError, duplicate_message: str) -> Exception:
    # only a UNIQUE failure is a duplicate; NOT NULL / CHECK failures are bad data
    if "UNIQUE" in str(e):
        return DuplicateError(duplicate_message)
    return ValidationError(f"Record rejected by the store: {e}")


def validate_package(package: Package) -> None:
    errors: list[str] = []
    if _blank(package.name):
        errors.append("Package name is required.")
    _check_rate(package.rate, "Rate", errors)
    if errors:
        raise ValidationError(errors)


def validate_customer(customer: Customer) -> None:
    errors: list[str] = []
    for label, value in (
        ("Customer ID", customer.customer_code),
        ("Full name", customer.name),
        ("Phone", customer.phone),
        ("Address", customer.address),
    ):
        if _blank(value):
            errors.append(f"{label} is required.")
    _check_rate(customer.monthly_rate, "Monthly rate", errors)
    if customer.status not in STATUSES:
        errors.append(f"Status must be one of {', '.join(STATUSES)}.")
    if errors:
        raise ValidationError(errors)


# ---------- Packages ----------

def create_package(conn: sqlite3.Connection, package: Package) -> Package:
    validate_package(package)
    try:
        cur = db.execute(
            conn,
            "INSERT INTO packages(name, description, rate) VALUES(?,?,?)",
            (package.name.strip(), package.description, float(package.rate)),
        )
    except sqlite3.IntegrityError as e:
        raise _integrity_error(e, f"A package named '{package.name}' already exists.") from e
    logger.info("Created package %s (%s)", cur.lastrowid, package.name)
    return Package(cur.lastrowid, package.name.strip(), package.description, float(package.rate))


def list_packages(conn: sqlite3.Connection) -> list[Package]:
    rows = db.fetch_all(conn, "SELECT * FROM packages ORDER BY name ASC")
    return [Package.from_row(r) for r in rows]


def get_package(conn: sqlite3.Connection, package_id: int | None) -> Package | None:
    if package_id is None:
        return None
    row = db.fetch_one(conn, "SELECT * FROM packages WHERE id = ?", (package_id,))
    return Package.from_row(row) if row else None


def update_package(conn: sqlite3.Connection, package: Package) -> None:
    validate_package(package)
    try:
        cur = db.execute(
            conn,
            "UPDATE packages SET name=?, description=?, rate=? WHERE id=?",
            (package.name.strip(), package.description, float(package.rate), package.id),
        )
    except sqlite3.IntegrityError as e:
        raise _integrity_error(e, f"A package named '{package.name}' already exists.") from e
    if cur.rowcount == 0:
        raise NotFoundError(f"Package {package.id} does not exist.")


def delete_package(conn: sqlite3.Connection, package_id: int) -> None:
    db.execute(conn, "DELETE FROM packages WHERE id = ?", (package_id,))


# ---------- Customers ----------

def _customer_params(customer: Customer) -> tuple:
    row = customer.to_row()
    return tuple(row[c] for c in _CUSTOMER_COLUMNS)


def create_customer(conn: sqlite3.Connection, customer: Customer) -> Customer:
    validate_customer(customer)
    try:
        cur = db.execute(
            conn,
            f"INSERT INTO customers({', '.join(_CUSTOMER_COLUMNS)}) VALUES({','.join('?' * len(_CUSTOMER_COLUMNS))})",
            _customer_params(customer),
        )
    except sqlite3.IntegrityError as e:
        raise _integrity_error(e, f"Customer ID '{customer.customer_code}' is already in use.") from e
    logger.info("Created customer %s (%s)", cur.lastrowid, customer.customer_code)
    return get_customer(conn, cur.lastrowid)


def list_customers(conn: sqlite3.Connection) -> list[Customer]:
    rows = db.fetch_all(conn, "SELECT * FROM customers ORDER BY name ASC")
    return [Customer.from_row(r) for r in rows]


def get_customer(conn: sqlite3.Connection, customer_id: int) -> Customer | None:
    row = db.fetch_one(conn, "SELECT * FROM customers WHERE id = ?", (customer_id,))
    return Customer.from_row(row) if row else None


def update_customer(conn: sqlite3.Connection, customer: Customer) -> None:
    validate_customer(customer)
    assignments = ", ".join(f"{c}=?" for c in _CUSTOMER_COLUMNS)
    try:
        cur = db.execute(
            conn,
            f"UPDATE customers SET {assignments} WHERE id=?",
            _customer_params(customer) + (customer.id,),
        )
    except sqlite3.IntegrityError as e:
        raise _integrity_error(e, f"Customer ID '{customer.customer_code}' is already in use.") from e
    if cur.rowcount == 0:
        raise NotFoundError(f"Customer {customer.id} does not exist.")


def delete_customer(conn: sqlite3.Connection, customer_id: int) -> None:
    db.execute(conn, "DELETE FROM customers WHERE id = ?", (customer_id,))


def package_name_for(conn: sqlite3.Connection, customer: Customer) -> str:
    package = get_package(conn, customer.package_id)
    return package.name if package else UNKNOWN_PACKAGE
