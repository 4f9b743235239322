"""
utils.py
Form parsing, table frames, CSV exports, sample data.
"""

from __future__ import annotations

import math
import sqlite3
from datetime import date, datetime, timedelta

import pandas as pd

import billing
import store
from errors import DuplicateError
from models import STATUS_DUE, STATUS_PAID, STATUS_PENDING, UNKNOWN_PACKAGE, Customer, Package, new_customer

CUSTOMER_FRAME_COLUMNS = [
    "id", "customer_code", "name", "phone", "package", "monthly_rate",
    "status", "expiry_date", "last_payment_date",
]


def parse_rate(value) -> tuple[float | None, list[str]]:
    try:
        rate = float(str(value).strip())
    except ValueError:
        return None, ["Rate must be numeric."]
    if not math.isfinite(rate):
        return None, ["Rate must be numeric."]
    if rate < 0:
        return None, ["Rate cannot be negative."]
    return rate, []


def package_names(conn: sqlite3.Connection) -> dict[int, str]:
    return {p.id: p.name for p in store.list_packages(conn)}


def customers_frame(customers: list[Customer], names: dict[int, str], now: date | None = None) -> pd.DataFrame:
    """Customer list with the effective status in place of the stored one."""
    rows = [
        {
            "id": c.id,
            "customer_code": c.customer_code,
            "name": c.name,
            "phone": c.phone,
            "package": names.get(c.package_id, UNKNOWN_PACKAGE),
            "monthly_rate": c.monthly_rate,
            "status": billing.effective_status(c, now),
            "expiry_date": c.expiry_date.isoformat(),
            "last_payment_date": c.last_payment_date.isoformat(sep=" ", timespec="minutes"),
        }
        for c in customers
    ]
    return pd.DataFrame(rows, columns=CUSTOMER_FRAME_COLUMNS)


def packages_frame(packages: list[Package]) -> pd.DataFrame:
    return pd.DataFrame([p.to_row() for p in packages], columns=["id", "name", "description", "rate"])


def frame_to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8")


def status_breakdown(customers: list[Customer], now: date | None = None) -> pd.DataFrame:
    summary = billing.status_summary(customers, now)
    return pd.DataFrame(
        [
            {"status": STATUS_PAID, "customers": summary.paid},
            {"status": STATUS_PENDING, "customers": summary.pending},
            {"status": STATUS_DUE, "customers": summary.due},
        ]
    )


def insert_sample_data(conn: sqlite3.Connection) -> int:
    """
    Insert 2 packages and 4 customers covering every status.
    Rows that already exist are skipped. Returns the number of customers added.
    """
    now = datetime.now().replace(microsecond=0)
    today = now.date()

    ids = {}
    for pkg in (
        Package(None, "Basic 10 Mbps", "Home fiber, 10 Mbps", 1500.0),
        Package(None, "Pro 25 Mbps", "Home fiber, 25 Mbps", 2500.0),
    ):
        try:
            ids[pkg.name] = store.create_package(conn, pkg).id
        except DuplicateError:
            ids[pkg.name] = next(p.id for p in store.list_packages(conn) if p.name == pkg.name)

    customers = [
        # expires tomorrow -> reminder
        new_customer("C1001", "Ali Raza", "03001234567", "Street 4, Block B", ids["Basic 10 Mbps"], 1500.0,
                     now=now, expiry_date=today + timedelta(days=1)),
        # already expired -> Due
        new_customer("C1002", "Sana Khan", "03007654321", "House 12, Main Road", ids["Pro 25 Mbps"], 2500.0,
                     now=now, expiry_date=today - timedelta(days=3)),
        new_customer("C1003", "Bilal Ahmed", "03111222333", "Flat 3, Market Lane", ids["Basic 10 Mbps"], 1500.0,
                     now=now),
        new_customer("C1004", "Hina Malik", "03219876543", "Plot 7, Canal View", ids["Pro 25 Mbps"], 2500.0,
                     now=now, expiry_date=today + timedelta(days=20)),
    ]

    added = 0
    for c in customers:
        try:
            created = store.create_customer(conn, c)
        except DuplicateError:
            continue
        added += 1
        if c.customer_code == "C1004":
            billing.set_status(conn, created, STATUS_PAID)
    return added
