"""
Tests for package and customer persistence.
"""

import pytest
from dataclasses import replace
from datetime import date, datetime

import db
import store
from errors import DuplicateError, NotFoundError, ValidationError
from models import Package, new_customer


class TestPackages:
    """Package CRUD."""

    def test_create_assigns_id(self, conn):
        p = store.create_package(conn, Package(None, "Pro", "25 Mbps", 2500))
        assert p.id is not None
        assert store.get_package(conn, p.id) == p

    def test_list_ordered_by_name(self, conn):
        for name in ("Zeta", "Alpha", "Mid"):
            store.create_package(conn, Package(None, name, "", 100))
        assert [p.name for p in store.list_packages(conn)] == ["Alpha", "Mid", "Zeta"]

    def test_duplicate_name_fails_and_keeps_original(self, conn, package):
        with pytest.raises(DuplicateError):
            store.create_package(conn, Package(None, package.name, "other", 9999))
        assert store.list_packages(conn) == [package]

    def test_update_to_duplicate_name_fails(self, conn, package):
        other = store.create_package(conn, Package(None, "Pro", "", 2500))
        with pytest.raises(DuplicateError):
            store.update_package(conn, replace(other, name=package.name))
        assert store.get_package(conn, other.id) == other

    def test_update_replaces_record(self, conn, package):
        store.update_package(conn, replace(package, description="Fiber 10", rate=1600))
        stored = store.get_package(conn, package.id)
        assert stored.description == "Fiber 10"
        assert stored.rate == 1600.0

    def test_update_missing_raises(self, conn):
        with pytest.raises(NotFoundError):
            store.update_package(conn, Package(42, "Ghost", "", 1))

    @pytest.mark.parametrize("name,rate", [
        ("", 100), ("   ", 100), (None, 100), ("Ok", -1), ("Ok", "x"), ("Ok", "nan"), ("Ok", float("inf")),
    ])
    def test_validation(self, conn, name, rate):
        with pytest.raises(ValidationError):
            store.create_package(conn, Package(None, name, "", rate))
        assert store.list_packages(conn) == []

    def test_store_rejection_is_not_reported_as_duplicate(self, conn, monkeypatch):
        """A NOT NULL failure must not read as 'name already exists'."""
        monkeypatch.setattr(store, "validate_package", lambda package: None)
        with pytest.raises(ValidationError, match="rejected by the store"):
            store.create_package(conn, Package(None, "Fresh", "", float("nan")))
        assert store.list_packages(conn) == []

    def test_get_missing_returns_none(self, conn):
        assert store.get_package(conn, 999) is None
        assert store.get_package(conn, None) is None

    def test_delete_missing_is_noop(self, conn, package):
        store.delete_package(conn, 999)
        assert store.list_packages(conn) == [package]
        store.delete_package(conn, package.id)
        assert store.list_packages(conn) == []


class TestCustomers:
    """Customer CRUD and the package join used for display."""

    def test_new_customer_defaults(self):
        now = datetime(2024, 3, 1, 8, 0)
        c = new_customer("C1", "Ali", "0300", "Street", 1, 1500.0, now=now)
        assert c.status == "Pending"
        assert c.expiry_date == date(2024, 3, 31)

    def test_create_and_read_back(self, conn, make_customer, package):
        c = store.create_customer(conn, make_customer(package_id=package.id))
        assert c.id is not None
        assert c.package_id == package.id
        assert c.expiry_date == date(2024, 3, 10)
        assert store.get_customer(conn, c.id) == c

    def test_list_ordered_by_name(self, conn, make_customer):
        store.create_customer(conn, make_customer(code="C1", name="Zara"))
        store.create_customer(conn, make_customer(code="C2", name="Adil"))
        assert [c.name for c in store.list_customers(conn)] == ["Adil", "Zara"]

    def test_duplicate_code_fails_and_keeps_original(self, conn, make_customer):
        original = store.create_customer(conn, make_customer(code="C1", name="First"))
        with pytest.raises(DuplicateError):
            store.create_customer(conn, make_customer(code="C1", name="Second"))
        assert store.list_customers(conn) == [original]

    def test_update_replaces_record(self, conn, make_customer):
        c = store.create_customer(conn, make_customer())
        store.update_customer(conn, replace(c, phone="0399", expiry_date=date(2024, 6, 1)))
        stored = store.get_customer(conn, c.id)
        assert stored.phone == "0399"
        assert stored.expiry_date == date(2024, 6, 1)

    def test_update_to_duplicate_code_fails(self, conn, make_customer):
        first = store.create_customer(conn, make_customer(code="C1", name="First"))
        second = store.create_customer(conn, make_customer(code="C2", name="Second"))
        with pytest.raises(DuplicateError):
            store.update_customer(conn, replace(second, customer_code="C1"))
        assert store.get_customer(conn, second.id) == second
        assert store.get_customer(conn, first.id) == first

    def test_update_missing_raises(self, conn, make_customer):
        with pytest.raises(NotFoundError):
            store.update_customer(conn, replace(make_customer(), id=77))

    @pytest.mark.parametrize("field,value", [
        ("customer_code", ""), ("customer_code", None), ("name", " "), ("name", None), ("phone", ""), ("address", ""),
        ("monthly_rate", -10), ("monthly_rate", float("nan")), ("monthly_rate", float("inf")), ("status", "Late"),
    ])
    def test_validation(self, conn, make_customer, field, value):
        with pytest.raises(ValidationError):
            store.create_customer(conn, replace(make_customer(), **{field: value}))
        assert store.list_customers(conn) == []

    def test_delete_missing_is_noop(self, conn, make_customer):
        c = store.create_customer(conn, make_customer())
        store.delete_customer(conn, c.id + 100)
        assert store.list_customers(conn) == [c]

    def test_package_name_for(self, conn, make_customer, package):
        linked = store.create_customer(conn, make_customer(code="C1", package_id=package.id))
        unlinked = store.create_customer(conn, make_customer(code="C2", package_id=None))
        dangling = store.create_customer(conn, make_customer(code="C3", package_id=package.id + 50))
        assert store.package_name_for(conn, linked) == package.name
        assert store.package_name_for(conn, unlinked) == "Unknown"
        assert store.package_name_for(conn, dangling) == "Unknown"

    def test_deleting_package_leaves_customer_reference(self, conn, make_customer, package):
        c = store.create_customer(conn, make_customer(package_id=package.id))
        store.delete_package(conn, package.id)
        assert store.get_customer(conn, c.id).package_id == package.id
        assert store.package_name_for(conn, c) == "Unknown"

    def test_legacy_text_package_reference_is_read_as_int(self, conn, make_customer):
        c = store.create_customer(conn, make_customer())
        db.execute(conn, "UPDATE customers SET packageId = ? WHERE id = ?", ("3", c.id))
        assert store.get_customer(conn, c.id).package_id == 3
        db.execute(conn, "UPDATE customers SET packageId = ? WHERE id = ?", ("abc", c.id))
        assert store.get_customer(conn, c.id).package_id is None
