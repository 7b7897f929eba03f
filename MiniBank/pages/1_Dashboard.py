"""
Dashboard Page - Unified interface with role-based conditional rendering.
Shows the account summary for customers and system statistics for admins.
"""

import streamlit as st

from utils.auth_guard import require_login, get_bank, is_admin, is_customer
from utils.sidebar import render_sidebar
from utils.formatters import format_currency, transactions_frame
from utils.exceptions import BankingSystemException

session = require_login()
render_sidebar()

bank = get_bank()

# Header
st.title("Dashboard Overview")
st.caption(f"Welcome, **{session.username}** ({session.role.value})")
st.markdown("---")

# ===============================================================
# CUSTOMER DASHBOARD
# ===============================================================
if is_customer():
    acct_svc = bank.account_svc

    if not acct_svc.has_account(session.username):
        if acct_svc.has_pending_request(session.username):
            st.info("Your account request is pending admin approval.")
        else:
            st.warning("You have no approved account yet. Request one below.")
            with st.form("request_account"):
                full_name = st.text_input("Full Name")
                national_id = st.text_input("National ID")
                c1, c2 = st.columns(2)
                phone = c1.text_input("Phone")
                address = c2.text_input("Address")
                deposit = st.number_input("Initial Deposit (OMR)", min_value=50.0, value=50.0, step=10.0)
                requested = st.form_submit_button("Submit Request")
            if requested:
                try:
                    bank.approval_svc.submit_account_request(
                        session.username, full_name, national_id, f"{deposit:.2f}", phone, address
                    )
                    st.success("Account request submitted!")
                    st.rerun()
                except BankingSystemException as e:
                    st.error(e.message)
    else:
        details = acct_svc.get_account_details(session.username)

        # 1. Account Info Card
        with st.container(border=True):
            c1, c2, c3, c4 = st.columns(4)
            c1.metric("Account Number", details["account_number"])
            c2.metric("Balance", format_currency(details["balance"]))
            c3.metric("National ID", details["national_id"])
            c4.metric("Phone", details["phone"])
            st.caption(f"Address: {details['address']}")

        # 2. Display-only conversion
        st.subheader("Balance in Other Currencies")
        converted = acct_svc.balance_in_currencies(session.username)
        cols = st.columns(len(converted))
        for col, (code, value) in zip(cols, converted.items()):
            col.metric(code, format_currency(value, symbol=code))

        st.markdown("---")

        # 3. Recent activity
        st.subheader("Last 5 Transactions")
        recent = bank.transaction_svc.last_transactions(details["account_number"], 5)
        if recent:
            st.dataframe(transactions_frame(reversed(recent)), use_container_width=True, hide_index=True)
        else:
            st.info("No transactions yet.")

# ===============================================================
# ADMIN DASHBOARD
# ===============================================================
elif is_admin():
    stats = bank.report_svc.system_stats()

    m1, m2, m3, m4 = st.columns(4)
    m1.metric("Accounts", stats["accounts"])
    m2.metric("Total Balance", format_currency(stats["total_balance"]))
    m3.metric("Average Balance",
              format_currency(stats["average_balance"]) if stats["average_balance"] is not None else "N/A")
    m4.metric("Locked Users", stats["locked_users"])

    st.markdown("---")
    st.subheader("Waiting for a Decision")
    q1, q2, q3, q4 = st.columns(4)
    q1.metric("Account Requests", stats["pending_account_requests"])
    q2.metric("Admin Requests", stats["pending_admin_requests"])
    q3.metric("Loans", stats["pending_loans"])
    q4.metric("Appointments", stats["pending_appointments"])

    if bank.is_dirty:
        st.warning("Some changes could not be written to disk yet.")
        if st.button("Retry saving"):
            try:
                bank.flush()
                st.success("All changes saved.")
            except BankingSystemException as e:
                st.error(e.message)
