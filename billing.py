"""
billing.py
Effective status, payment renewal, manual status change and reminder selection.

All date comparisons are made on calendar dates: `now` is reduced to its date
before it is compared with a customer's expiry date. A customer expiring today
is therefore "Pending", and the reminder window uses the same day arithmetic.
"""

from __future__ import annotations

import logging
import math
import sqlite3
from dataclasses import dataclass, replace
from datetime import date, datetime

import db
from errors import NotFoundError, ValidationError
from models import (
    RENEWAL_PERIOD,
    STATUS_DUE,
    STATUS_PAID,
    STATUS_PENDING,
    STATUSES,
    Customer,
    parse_date,
)

logger = logging.getLogger(__name__)

ALL_STATUSES = "All"


def _today(now: date | datetime | None) -> date:
    return parse_date(now) if now is not None else date.today()


def effective_status(customer: Customer, now: date | datetime | None = None) -> str:
    today = _today(now)
    if customer.status == STATUS_PAID and customer.expiry_date > today:
        return STATUS_PAID
    if customer.expiry_date < today:
        return STATUS_DUE
    return STATUS_PENDING


@dataclass(frozen=True)
class Renewal:
    customer: Customer  # state after the renewal
    old_expiry: date  # receipts show this, not customer.expiry_date
    amount: float
    paid_at: datetime


def parse_amount(amount) -> float:
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError("Amount must be numeric.") from None
    if not math.isfinite(value):
        raise ValidationError("Amount must be numeric.")
    if not value > 0:
        raise ValidationError("Amount must be > 0.")
    return value


def renew(conn: sqlite3.Connection, customer: Customer, amount, now: datetime | None = None) -> Renewal:
    """
    Record a payment: expiry moves 30 days past the old expiry, status becomes
    Paid and the payment instant is stamped. One atomic UPDATE keyed by id.
    """
    value = parse_amount(amount)
    paid_at = (now or datetime.now()).replace(microsecond=0)
    old_expiry = customer.expiry_date
    updated = replace(
        customer,
        status=STATUS_PAID,
        last_payment_date=paid_at,
        expiry_date=old_expiry + RENEWAL_PERIOD,
    )

    with db.transaction(conn):
        cur = conn.execute(
            "UPDATE customers SET status=?, expiryDate=?, lastPaymentDate=? WHERE id=?",
            (
                updated.status,
                updated.expiry_date.isoformat(),
                updated.last_payment_date.isoformat(timespec="seconds"),
                customer.id,
            ),
        )
        if cur.rowcount != 1:
            raise NotFoundError(f"Customer {customer.id} does not exist.")

    logger.info(
        "Renewed %s: paid %.2f, expiry %s -> %s",
        customer.customer_code, value, old_expiry, updated.expiry_date,
    )
    return Renewal(customer=updated, old_expiry=old_expiry, amount=value, paid_at=paid_at)


def set_status(conn: sqlite3.Connection, customer: Customer, status: str) -> Customer:
    """Manual override; expiry and last payment date are left alone."""
    if status not in STATUSES:
        raise ValidationError(f"Status must be one of {', '.join(STATUSES)}.")
    cur = db.execute(conn, "UPDATE customers SET status=? WHERE id=?", (status, customer.id))
    if cur.rowcount != 1:
        raise NotFoundError(f"Customer {customer.id} does not exist.")
    logger.info("Status of %s set to %s", customer.customer_code, status)
    return replace(customer, status=status)


def days_until_expiry(customer: Customer, now: date | datetime | None = None) -> int:
    return (customer.expiry_date - _today(now)).days


def select_reminders(customers: list[Customer], now: date | datetime | None = None) -> list[Customer]:
    """Customers expiring tomorrow that are not Paid, in input order."""
    today = _today(now)
    return [
        c for c in customers
        if days_until_expiry(c, today) == 1 and effective_status(c, today) != STATUS_PAID
    ]


def filter_customers(
    customers: list[Customer],
    query: str = "",
    status: str = ALL_STATUSES,
    now: date | datetime | None = None,
) -> list[Customer]:
    q = query.strip().lower()
    today = _today(now)
    out = []
    for c in customers:
        if status != ALL_STATUSES and effective_status(c, today) != status:
            continue
        if q and not (q in c.name.lower() or q in c.customer_code.lower() or q in c.phone.lower()):
            continue
        out.append(c)
    return out


@dataclass(frozen=True)
class StatusSummary:
    total: int
    paid: int
    pending: int
    due: int
    expected_revenue: float


def status_summary(customers: list[Customer], now: date | datetime | None = None) -> StatusSummary:
    today = _today(now)
    counts = {s: 0 for s in STATUSES}
    for c in customers:
        counts[effective_status(c, today)] += 1
    return StatusSummary(
        total=len(customers),
        paid=counts[STATUS_PAID],
        pending=counts[STATUS_PENDING],
        due=counts[STATUS_DUE],
        expected_revenue=sum(c.monthly_rate for c in customers),
    )
