"""
Tests for effective status, renewals, manual status changes and reminder selection.
"""

import pytest
from datetime import date, datetime, timedelta

import billing
import store
from errors import NotFoundError, ValidationError

NOW = datetime(2024, 3, 9, 10, 0)


class TestEffectiveStatus:
    """Derived status is computed on calendar dates."""

    def test_paid_with_future_expiry_is_paid(self, make_customer):
        c = make_customer(status="Paid", expiry=date(2024, 3, 20))
        assert billing.effective_status(c, NOW) == "Paid"

    @pytest.mark.parametrize("stored", ["Paid", "Pending", "Due"])
    def test_past_expiry_is_due_regardless_of_stored_status(self, make_customer, stored):
        c = make_customer(status=stored, expiry=date(2024, 3, 8))
        assert billing.effective_status(c, NOW) == "Due"

    @pytest.mark.parametrize("stored", ["Pending", "Due"])
    def test_unpaid_future_expiry_is_pending(self, make_customer, stored):
        c = make_customer(status=stored, expiry=date(2024, 3, 20))
        assert billing.effective_status(c, NOW) == "Pending"

    @pytest.mark.parametrize("hour", [0, 10, 23])
    def test_expiring_today_is_pending_at_any_time_of_day(self, make_customer, hour):
        """Date granularity: the clock time of `now` never matters."""
        now = datetime(2024, 3, 10, hour, 59)
        assert billing.effective_status(make_customer(status="Paid", expiry=date(2024, 3, 10)), now) == "Pending"
        assert billing.effective_status(make_customer(status="Due", expiry=date(2024, 3, 10)), now) == "Pending"

    def test_accepts_plain_date(self, make_customer):
        c = make_customer(status="Paid", expiry=date(2024, 3, 10))
        assert billing.effective_status(c, date(2024, 3, 9)) == "Paid"

    def test_stored_status_is_not_changed(self, make_customer):
        c = make_customer(status="Paid", expiry=date(2024, 3, 1))
        billing.effective_status(c, NOW)
        assert c.status == "Paid"


class TestRenew:
    """Payment renewal."""

    def test_renewal_scenario(self, conn, make_customer):
        c = store.create_customer(conn, make_customer(status="Due", expiry=date(2024, 3, 10)))
        paid_at = datetime(2024, 3, 15, 9, 30)

        renewal = billing.renew(conn, c, 1500, now=paid_at)

        assert renewal.old_expiry == date(2024, 3, 10)
        assert renewal.customer.expiry_date == date(2024, 4, 9)
        assert renewal.customer.status == "Paid"
        assert renewal.customer.last_payment_date == paid_at
        assert renewal.amount == 1500.0

        stored = store.get_customer(conn, c.id)
        assert stored == renewal.customer
        assert stored.last_payment_date.date() == date(2024, 3, 15)

    def test_renewal_extends_from_old_expiry_not_today(self, conn, make_customer):
        c = store.create_customer(conn, make_customer(status="Pending", expiry=date(2024, 5, 1)))
        renewal = billing.renew(conn, c, "2000", now=NOW)
        assert renewal.customer.expiry_date == date(2024, 5, 1) + timedelta(days=30)

    def test_other_fields_untouched(self, conn, make_customer):
        c = store.create_customer(conn, make_customer())
        renewal = billing.renew(conn, c, 1500, now=NOW)
        assert renewal.customer.name == c.name
        assert renewal.customer.monthly_rate == c.monthly_rate
        assert renewal.customer.package_id == c.package_id

    @pytest.mark.parametrize("amount", [0, -5, "abc", "", None, float("nan"), "nan", "inf", float("inf")])
    def test_rejects_invalid_amount_without_writing(self, conn, make_customer, amount):
        c = store.create_customer(conn, make_customer())
        with pytest.raises(ValidationError):
            billing.renew(conn, c, amount, now=NOW)
        assert store.get_customer(conn, c.id) == c

    def test_missing_customer_raises(self, conn, make_customer):
        c = store.create_customer(conn, make_customer())
        store.delete_customer(conn, c.id)
        with pytest.raises(NotFoundError):
            billing.renew(conn, c, 1500, now=NOW)
        assert store.list_customers(conn) == []


class TestSetStatus:
    """Manual status override."""

    def test_only_status_changes(self, conn, make_customer):
        c = store.create_customer(conn, make_customer(status="Paid"))
        updated = billing.set_status(conn, c, "Due")
        stored = store.get_customer(conn, c.id)
        assert updated.status == stored.status == "Due"
        assert stored.expiry_date == c.expiry_date
        assert stored.last_payment_date == c.last_payment_date

    def test_unknown_status_rejected(self, conn, make_customer):
        c = store.create_customer(conn, make_customer())
        with pytest.raises(ValidationError):
            billing.set_status(conn, c, "Overdue")
        assert store.get_customer(conn, c.id).status == "Pending"

    def test_missing_customer_raises(self, conn, make_customer):
        c = store.create_customer(conn, make_customer())
        store.delete_customer(conn, c.id)
        with pytest.raises(NotFoundError):
            billing.set_status(conn, c, "Due")


class TestSelectReminders:
    """Customers expiring tomorrow and not Paid."""

    def test_scenario(self, make_customer):
        first = make_customer(code="C1", expiry=date(2024, 3, 10), status="Pending")
        later = make_customer(code="C2", expiry=date(2024, 3, 11), status="Pending")
        paid = make_customer(code="C3", expiry=date(2024, 3, 10), status="Paid")
        assert billing.select_reminders([first, later, paid], NOW) == [first]

    def test_due_label_expiring_tomorrow_is_selected(self, make_customer):
        c = make_customer(expiry=date(2024, 3, 10), status="Due")
        assert billing.select_reminders([c], NOW) == [c]

    def test_time_of_day_is_ignored(self, make_customer):
        c = make_customer(expiry=date(2024, 3, 10))
        assert billing.select_reminders([c], datetime(2024, 3, 9, 23, 59)) == [c]
        assert billing.select_reminders([c], datetime(2024, 3, 9, 0, 0)) == [c]

    def test_preserves_input_order_and_is_idempotent(self, make_customer):
        customers = [
            make_customer(code="C3", name="Zara", expiry=date(2024, 3, 10)),
            make_customer(code="C1", name="Adil", expiry=date(2024, 3, 10)),
            make_customer(code="C2", name="Maha", expiry=date(2024, 3, 12)),
            make_customer(code="C4", name="Bina", expiry=date(2024, 3, 10)),
        ]
        first = billing.select_reminders(customers, NOW)
        assert [c.customer_code for c in first] == ["C3", "C1", "C4"]
        assert billing.select_reminders(customers, NOW) == first

    def test_empty(self):
        assert billing.select_reminders([], NOW) == []


class TestFilterAndSummary:
    """List filtering and the monthly report figures."""

    @pytest.fixture
    def customers(self, make_customer):
        return [
            make_customer(code="C1", name="Ali Raza", status="Paid", expiry=date(2024, 4, 1), rate=1500.0),
            make_customer(code="C2", name="Sana Khan", status="Pending", expiry=date(2024, 3, 1), rate=2500.0,
                          phone="0311999"),
            make_customer(code="C3", name="Bilal", status="Pending", expiry=date(2024, 3, 20), rate=1000.0),
        ]

    def test_filter_by_effective_status(self, customers):
        assert [c.customer_code for c in billing.filter_customers(customers, status="Due", now=NOW)] == ["C2"]
        assert len(billing.filter_customers(customers, status="All", now=NOW)) == 3

    def test_search_matches_name_code_or_phone(self, customers):
        assert [c.customer_code for c in billing.filter_customers(customers, "ali", now=NOW)] == ["C1"]
        assert [c.customer_code for c in billing.filter_customers(customers, "c3", now=NOW)] == ["C3"]
        assert [c.customer_code for c in billing.filter_customers(customers, "0311", now=NOW)] == ["C2"]

    def test_summary(self, customers):
        summary = billing.status_summary(customers, NOW)
        assert (summary.total, summary.paid, summary.pending, summary.due) == (3, 1, 1, 1)
        assert summary.expected_revenue == 5000.0
