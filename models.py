"""
models.py
Lightweight domain helpers (status labels, renewal period, dataclasses).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

STATUS_PAID = "Paid"
STATUS_PENDING = "Pending"
STATUS_DUE = "Due"
STATUSES = (STATUS_PAID, STATUS_PENDING, STATUS_DUE)

# Expiry is pushed forward by this much on every recorded payment
RENEWAL_PERIOD = timedelta(days=30)

UNKNOWN_PACKAGE = "Unknown"


def parse_date(value) -> date:
    """
    Accept a date, a datetime or ISO text ("2024-03-10" or a full timestamp)
    and return the calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)).date()


def parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value))


def parse_package_ref(value) -> int | None:
    """Package reference as a nullable int; old backups stored it as text."""
    if value is None or isinstance(value, bool):
        return None
    try:
        ref = int(str(value).strip())
    except ValueError:
        return None
    return ref if ref > 0 else None


@dataclass(frozen=True)
class Package:
    id: int | None
    name: str
    description: str
    rate: float

    @classmethod
    def from_row(cls, row) -> "Package":
        return cls(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            rate=float(row["rate"]),
        )

    def to_row(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description, "rate": self.rate}


@dataclass(frozen=True)
class Customer:
    id: int | None
    customer_code: str
    name: str
    phone: str
    address: str
    package_id: int | None
    monthly_rate: float
    status: str  # stored label, see billing.effective_status for the displayed one
    expiry_date: date
    last_payment_date: datetime

    @classmethod
    def from_row(cls, row) -> "Customer":
        return cls(
            id=row["id"],
            customer_code=row["customerId"],
            name=row["name"],
            phone=row["phone"],
            address=row["address"],
            package_id=parse_package_ref(row["packageId"]),
            monthly_rate=float(row["monthlyRate"]),
            status=row["status"],
            expiry_date=parse_date(row["expiryDate"]),
            last_payment_date=parse_datetime(row["lastPaymentDate"]),
        )

    def to_row(self) -> dict:
        return {
            "id": self.id,
            "customerId": self.customer_code,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "packageId": self.package_id,
            "monthlyRate": self.monthly_rate,
            "status": self.status,
            "expiryDate": self.expiry_date.isoformat(),
            "lastPaymentDate": self.last_payment_date.isoformat(timespec="seconds"),
        }


def new_customer(
    customer_code: str,
    name: str,
    phone: str,
    address: str,
    package_id: int | None,
    monthly_rate: float,
    now: datetime | None = None,
    expiry_date: date | None = None,
) -> Customer:
    """New customers start as Pending with a 30-day expiry."""
    now = now or datetime.now()
    return Customer(
        id=None,
        customer_code=customer_code,
        name=name,
        phone=phone,
        address=address,
        package_id=package_id,
        monthly_rate=monthly_rate,
        status=STATUS_PENDING,
        expiry_date=expiry_date or (now + RENEWAL_PERIOD).date(),
        last_payment_date=(now - RENEWAL_PERIOD).replace(microsecond=0),
    )
