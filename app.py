"""
app.py
Streamlit ISP Admin Panel (owner-only): customers, packages, renewals, reminders, backups.
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
from datetime import date, datetime

import streamlit as st

import auth
import backup
import billing
import db
import notify
import store
import utils
from config import configure_logging, load_settings
from errors import IspAdminError
from models import RENEWAL_PERIOD, STATUSES, STATUS_PAID, Customer, Package, new_customer

logger = logging.getLogger(__name__)

st.set_page_config(page_title="ISP Admin Panel", layout="wide")


@st.cache_resource
def get_settings():
    settings = load_settings()
    configure_logging(settings)
    return settings


@st.cache_resource
def get_conn():
    # One handle for the process lifetime, shared by every browser session.
    # The panel has a single owner; two tabs writing at once can interleave commits.
    conn = db.connect(get_settings().db_file)
    db.init_db(conn, auth.hash_password(auth.DEFAULT_PASSWORD))
    return conn


def require_login():
    if "logged_in" not in st.session_state:
        st.session_state.logged_in = False


def logout():
    st.session_state.logged_in = False
    st.success("Logged out.")


def login_screen(conn):
    st.title("🔐 ISP Admin Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        password = st.text_input("Owner password", type="password")
        if st.button("Login", type="primary"):
            if auth.login(conn, password):
                st.session_state.logged_in = True
                st.rerun()
            else:
                st.error("Invalid password.")

    with col2:
        st.info(
            "First run sets a default owner password: **admin123**\n\n"
            "You will be forced to change it on first login."
        )


def password_form(conn):
    p1 = st.text_input("New password", type="password")
    p2 = st.text_input("Confirm new password", type="password")
    if st.button("Update password", type="primary"):
        if len(p1) < 6:
            st.error("Password must be at least 6 characters.")
        elif p1 != p2:
            st.error("Passwords do not match.")
        else:
            auth.change_password(conn, p1)
            st.success("Password updated.")
            st.rerun()


def force_change_password_screen(conn):
    st.title("⚠️ Change Password (Required)")
    st.warning("You must change the default password before using the app.")
    password_form(conn)


# ---------- Pages ----------

def dashboard_page(conn):
    st.header("📊 Monthly Report")

    customers = store.list_customers(conn)
    summary = billing.status_summary(customers)
    settings = get_settings()

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total customers", summary.total)
    c2.metric("Expected revenue", notify.format_money(summary.expected_revenue, settings.currency))
    c3.metric("Paid this month", summary.paid)
    c4.metric("Payment due", summary.due)

    st.divider()

    st.subheader(f"Customer status breakdown ({summary.total} total)")
    names = utils.package_names(conn)
    for status in STATUSES:
        rows = [c for c in customers if billing.effective_status(c) == status]
        with st.expander(f"{status} customers ({len(rows)})"):
            if rows:
                st.dataframe(utils.customers_frame(rows, names), use_container_width=True, hide_index=True)
            else:
                st.caption(f"No {status.lower()} customers.")


def customer_form(conn, existing: Customer | None = None):
    if existing:
        st.subheader(f"✏️ Edit Customer ({existing.customer_code})")
    else:
        st.subheader("➕ Add Customer")

    packages = store.list_packages(conn)
    if not packages:
        st.info("No packages yet. Add a package first.")
        return

    by_id = {p.id: p for p in packages}
    col1, col2 = st.columns(2)
    with col1:
        code = st.text_input("Customer ID (e.g. C1001)", value=(existing.customer_code if existing else ""))
        name = st.text_input("Full name", value=(existing.name if existing else ""))
        phone = st.text_input("Contact number", value=(existing.phone if existing else ""))
        address = st.text_input("Street/Full address", value=(existing.address if existing else ""))

    with col2:
        ids = list(by_id.keys())
        current = existing.package_id if existing and existing.package_id in by_id else ids[0]
        package_id = st.selectbox(
            "Package", options=ids, index=ids.index(current), format_func=lambda i: by_id[i].name
        )
        # rate follows the package; existing customers keep their snapshot until the package changes
        rate = existing.monthly_rate if existing and existing.package_id == package_id else by_id[package_id].rate
        st.text_input("Monthly rate (auto-filled)", value=f"{rate:.0f}", disabled=True)
        default_expiry = existing.expiry_date if existing else date.today() + RENEWAL_PERIOD
        expiry = st.date_input("Subscription expiry date", value=default_expiry)

    if st.button("Save", type="primary"):
        try:
            if existing:
                updated = Customer(
                    id=existing.id,
                    customer_code=code.strip(),
                    name=name.strip(),
                    phone=phone.strip(),
                    address=address.strip(),
                    package_id=package_id,
                    monthly_rate=rate,
                    status=existing.status,
                    expiry_date=expiry,
                    last_payment_date=existing.last_payment_date,
                )
                store.update_customer(conn, updated)
                st.session_state.edit_customer_id = None
                st.success("Customer updated.")
            else:
                c = new_customer(code.strip(), name.strip(), phone.strip(), address.strip(), package_id, rate,
                                 expiry_date=expiry)
                store.create_customer(conn, c)
                st.success("Customer added.")
        except IspAdminError as e:
            st.error(str(e))
            return
        st.rerun()


def show_receipt(renewal: billing.Renewal, package_name: str):
    settings = get_settings()
    text = notify.receipt_text(renewal, package_name, settings)
    st.subheader("🧾 Payment slip")
    st.code(text, language=None)
    st.download_button(
        "Share slip",
        data=text.encode("utf-8"),
        file_name=f"receipt_{renewal.customer.customer_code}_{renewal.paid_at:%Y%m%d%H%M}.txt",
        mime="text/plain",
    )
    if st.button("Print slip"):
        # no printer driver ships with the panel; a session may register one
        error = notify.print_receipt(st.session_state.get("printer"), text)
        if error:
            st.warning(f"{error} Use 'Share slip' instead.")
        else:
            st.success("Slip sent to printer.")


def customer_actions(conn, customer: Customer):
    package_name = store.package_name_for(conn, customer)
    status = billing.effective_status(customer)
    st.write(
        f"**{customer.name}** ({customer.customer_code}) | Package: **{package_name}** | "
        f"Rate: **{customer.monthly_rate:.0f}** | Expires: **{customer.expiry_date:%b %d, %Y}** | "
        f"Status: **{status}**"
    )

    c1, c2, c3 = st.columns(3)
    with c1:
        amount = st.text_input("Amount paid", value=f"{customer.monthly_rate:.0f}")
        if st.button("Record payment", type="primary"):
            try:
                renewal = billing.renew(conn, customer, amount)
            except IspAdminError as e:
                st.error(str(e))
            else:
                st.session_state.last_renewal = (renewal, package_name)
                st.rerun()
    with c2:
        new_status = st.selectbox("Set status", [s for s in STATUSES if s != STATUS_PAID])
        if st.button("Update status"):
            try:
                billing.set_status(conn, customer, new_status)
            except IspAdminError as e:
                st.error(str(e))
            else:
                st.rerun()
    with c3:
        if st.button("Edit"):
            st.session_state.edit_customer_id = customer.id
            st.rerun()
        delete_confirm = st.checkbox("Confirm delete", value=False, key=f"del_customer_confirm_{customer.id}")
        if st.button("Delete", disabled=not delete_confirm):
            store.delete_customer(conn, customer.id)
            st.success("Customer deleted.")
            st.rerun()


def customers_page(conn):
    st.header("👥 Customers")

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (name/ID/phone)")
        status_filter = st.selectbox("Status", [billing.ALL_STATUSES, *STATUSES])

    customers = billing.filter_customers(store.list_customers(conn), search, status_filter)
    names = utils.package_names(conn)
    df = utils.customers_frame(customers, names)
    st.dataframe(df, use_container_width=True, hide_index=True)

    if st.session_state.get("last_renewal"):
        renewal, package_name = st.session_state.last_renewal
        show_receipt(renewal, package_name)
        if st.button("Done"):
            st.session_state.last_renewal = None
            st.rerun()

    st.divider()

    options = {f"{c.name} ({c.customer_code})": c.id for c in customers}
    chosen = st.selectbox("Select customer", ["(none)", *options.keys()])
    if chosen != "(none)":
        customer = store.get_customer(conn, options[chosen])
        if customer:
            customer_actions(conn, customer)

    st.divider()

    if st.session_state.get("edit_customer_id"):
        existing = store.get_customer(conn, st.session_state.edit_customer_id)
        if existing:
            customer_form(conn, existing=existing)
        if st.button("Cancel edit"):
            st.session_state.edit_customer_id = None
            st.rerun()
    else:
        customer_form(conn)


def packages_page(conn):
    st.header("📦 Packages")

    packages = store.list_packages(conn)
    st.dataframe(utils.packages_frame(packages), use_container_width=True, hide_index=True)

    st.divider()

    by_label = {p.name: p for p in packages}
    chosen = st.selectbox("Package", ["(new)", *by_label.keys()])
    existing = by_label.get(chosen)

    name = st.text_input("Package name", value=(existing.name if existing else ""))
    description = st.text_input("Description", value=(existing.description if existing else ""))
    rate_text = st.text_input("Monthly rate", value=(f"{existing.rate:.0f}" if existing else ""))

    c1, c2 = st.columns(2)
    with c1:
        if st.button("Save package", type="primary"):
            rate, errors = utils.parse_rate(rate_text)
            if errors:
                for e in errors:
                    st.error(e)
                return
            try:
                if existing:
                    store.update_package(conn, Package(existing.id, name, description, rate))
                else:
                    store.create_package(conn, Package(None, name, description, rate))
            except IspAdminError as e:
                st.error(str(e))
                return
            st.success("Package saved.")
            st.rerun()
    with c2:
        if existing:
            confirm = st.checkbox("Confirm delete", value=False, key="del_package_confirm")
            if st.button("Delete package", disabled=not confirm):
                store.delete_package(conn, existing.id)
                st.success("Package deleted.")
                st.rerun()


def reminders_page(conn):
    st.header("⏰ Expiring Tomorrow")

    settings = get_settings()
    selected = billing.select_reminders(store.list_customers(conn))
    if not selected:
        st.caption("No customers found expiring tomorrow.")
        return

    st.subheader(f"Send reminder to {len(selected)} customers?")
    st.text(notify.bulk_reminder_preview(selected, settings))

    phones = [c.phone for c in selected]
    st.link_button("Open messaging app (bulk)", notify.sms_uri(phones, notify.bulk_reminder_message(settings)))
    st.caption(f"If your device ignores multiple recipients, send manually to: {', '.join(phones)}")

    st.divider()

    if not settings.sms_enabled:
        st.caption("Automated SMS is off. Set AFRICASTALKING_USERNAME and AFRICASTALKING_API_KEY to enable it.")
        return
    if st.button("Send automated reminders", type="primary"):
        try:
            sender = notify.AfricasTalkingSender.from_settings(settings)
        except Exception as e:
            logger.error("SMS gateway unavailable: %s", e)
            st.error(f"SMS gateway unavailable: {e}")
            return
        result = notify.send_reminders(selected, sender, settings)
        if result.sent:
            st.success(f"Reminders sent: {len(result.sent)}")
        for code, err in result.failed.items():
            st.error(f"{code}: {err}")


def reports_page(conn):
    st.header("🧾 Reports & Backup")

    settings = get_settings()
    customers = store.list_customers(conn)
    packages = store.list_packages(conn)

    st.subheader("Export to CSV")
    c1, c2 = st.columns(2)
    with c1:
        st.download_button(
            "Download customers.csv",
            data=utils.frame_to_csv_bytes(utils.customers_frame(customers, utils.package_names(conn))),
            file_name="customers.csv",
            mime="text/csv",
            disabled=not customers,
        )
    with c2:
        st.download_button(
            "Download packages.csv",
            data=utils.frame_to_csv_bytes(utils.packages_frame(packages)),
            file_name="packages.csv",
            mime="text/csv",
            disabled=not packages,
        )

    st.subheader("Status breakdown")
    st.bar_chart(utils.status_breakdown(customers).set_index("status"))

    st.divider()

    st.subheader("Backup")
    st.download_button(
        "Download backup (JSON)",
        data=backup.dumps_backup(conn).encode("utf-8"),
        file_name=backup.backup_file_name(),
        mime="application/json",
    )
    if st.button("Save backup on server"):
        path = backup.write_backup(conn, settings.backup_dir)
        st.success(f"Backup saved to {path}")

    st.subheader("Restore")
    st.warning("Restoring replaces ALL customers and packages.")
    uploaded = st.file_uploader("Backup file", type=["json"])
    confirm = st.checkbox("I understand, replace current data", value=False)
    if uploaded is not None and st.button("Restore backup", disabled=not confirm):
        try:
            n_customers, n_packages = backup.import_backup(conn, uploaded.getvalue())
        except IspAdminError as e:
            st.error(str(e))
        else:
            st.success(f"Backup restored. Customers: {n_customers}, Packages: {n_packages}")


def settings_page(conn):
    st.header("⚙️ Settings")

    st.subheader("Change password")
    password_form(conn)

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert 2 sample packages + 4 customers for testing (existing IDs are skipped).")
    if st.button("Insert sample data"):
        added = utils.insert_sample_data(conn)
        st.success(f"Sample data inserted ({added} customers).")
        st.rerun()

    st.divider()
    st.caption(f"Database: {get_settings().db_file} | Today: {date.today():%b %d, %Y} | Now: {datetime.now():%H:%M}")


def main_app(conn):
    st.sidebar.title("📡 ISP Admin")

    pages = {
        "Dashboard": dashboard_page,
        "Customers": customers_page,
        "Packages": packages_page,
        "Reminders": reminders_page,
        "Reports": reports_page,
        "Settings": settings_page,
    }
    names = list(pages.keys())
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", names, index=names.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        logout()
        st.rerun()

    pages[st.session_state.page](conn)


# --------- App entry ---------

def run():
    conn = get_conn()
    require_login()

    if not st.session_state.logged_in:
        login_screen(conn)
        return

    if db.is_force_password_change(conn):
        force_change_password_screen(conn)
        return

    main_app(conn)


if __name__ == "__main__":
    run()
