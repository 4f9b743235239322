import pytest
from datetime import date, datetime

import db
import store
from config import load_settings
from models import Customer, Package


@pytest.fixture
def conn(tmp_path):
    """Fresh on-disk store per test."""
    conn = db.connect(tmp_path / "test.db")
    db.init_db(conn)
    yield conn
    conn.close()


@pytest.fixture
def settings(tmp_path):
    return load_settings({
        "ISP_ADMIN_DB": str(tmp_path / "test.db"),
        "ISP_ADMIN_COMPANY": "TEST NET",
        "ISP_ADMIN_CONTACT": "Owner - 0300",
        "ISP_ADMIN_PAYMENT_CHANNELS": "Easypaisa: 0300",
        "ISP_ADMIN_CURRENCY": "PKR",
        "ISP_ADMIN_BACKUP_DIR": str(tmp_path / "backups"),
    })


@pytest.fixture
def package(conn):
    return store.create_package(conn, Package(None, "Basic 10 Mbps", "Home fiber", 1500.0))


def build_customer(code="C1001", name="Ali Raza", status="Pending", expiry=date(2024, 3, 10),
                   package_id=None, rate=1500.0, phone="03001234567"):
    return Customer(
        id=None,
        customer_code=code,
        name=name,
        phone=phone,
        address="Street 4",
        package_id=package_id,
        monthly_rate=rate,
        status=status,
        expiry_date=expiry,
        last_payment_date=datetime(2024, 2, 10, 12, 0),
    )


@pytest.fixture
def make_customer():
    return build_customer
