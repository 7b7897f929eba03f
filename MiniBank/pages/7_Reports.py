"""
Reports Page - Balances, statistics, currency report, feedback and data maintenance.
Roles: admin
"""

import streamlit as st
import pandas as pd

from core.repositories.review_repository import FEEDBACK_SERVICES
from utils.auth_guard import require_role, get_bank, handle_logout
from utils.sidebar import render_sidebar
from utils.formatters import accounts_frame, format_currency, records_frame, transactions_frame
from utils.exceptions import BankingSystemException

require_role(["admin"])
render_sidebar()

bank = get_bank()
acct_svc = bank.account_svc
report_svc = bank.report_svc

st.title("Reports & Analytics")
st.markdown("---")

tab_bal, tab_stats, tab_fx, tab_txn, tab_voice, tab_data = st.tabs(
    ["Balances", "System Stats", "Currency", "All Transactions", "Reviews & Feedback", "Data"]
)

# ===========================
# TAB 1 - Balances
# ===========================
with tab_bal:
    b1, b2, b3 = st.columns(3)
    b1.metric("Total Balance", format_currency(acct_svc.total_balance()))
    average = acct_svc.average_balance()
    b2.metric("Average Balance", format_currency(average) if average is not None else "N/A")
    b3.metric("Customers", acct_svc.total_customers())

    st.markdown("#### Top 3 Richest Customers")
    richest = acct_svc.top_richest(3)
    if richest:
        st.dataframe(accounts_frame(richest), use_container_width=True, hide_index=True)

    st.markdown("#### Accounts Above a Threshold")
    threshold = st.number_input("Balance above", min_value=0.0, value=1000.0, step=100.0)
    above = acct_svc.accounts_above(f"{threshold:.2f}")
    if above:
        st.dataframe(accounts_frame(above), use_container_width=True, hide_index=True)
    else:
        st.info("No accounts above this balance.")

# ===========================
# TAB 2 - System Stats
# ===========================
with tab_stats:
    stats = report_svc.system_stats()
    st.dataframe(
        pd.DataFrame([{"Metric": k.replace("_", " ").title(), "Value": str(v)} for k, v in stats.items()]),
        use_container_width=True, hide_index=True
    )

# ===========================
# TAB 3 - Currency
# ===========================
with tab_fx:
    rates = report_svc.exchange_rates()
    with st.form("rates_form"):
        st.caption("1 OMR equals")
        r1, r2, r3 = st.columns(3)
        usd = r1.number_input("USD", value=float(rates.usd), min_value=0.0001, format="%.4f")
        eur = r2.number_input("EUR", value=float(rates.eur), min_value=0.0001, format="%.4f")
        sar = r3.number_input("SAR", value=float(rates.sar), min_value=0.0001, format="%.4f")
        if st.form_submit_button("Update Rates"):
            try:
                report_svc.update_exchange_rates(f"{usd:.4f}", f"{eur:.4f}", f"{sar:.4f}")
                st.success("Rates updated!")
            except BankingSystemException as e:
                st.error(e.message)

    currency_rows = report_svc.currency_report()
    if currency_rows:
        st.dataframe(records_frame(currency_rows), use_container_width=True, hide_index=True)

# ===========================
# TAB 4 - All Transactions
# ===========================
with tab_txn:
    histories = bank.transaction_svc.all_histories()
    if not histories:
        st.info("No accounts yet.")
    for number, rows in histories.items():
        with st.expander(f"Account {number} ({len(rows)} transactions)"):
            if rows:
                df = transactions_frame(rows)
                st.dataframe(df, use_container_width=True, hide_index=True)
                if "Type" in df.columns and len(df):
                    st.bar_chart(df.groupby("Type")["Amount"].sum())
            else:
                st.caption("No transactions.")

# ===========================
# TAB 5 - Reviews & Feedback
# ===========================
with tab_voice:
    st.markdown("#### Complaints / Reviews (newest first)")
    reviews = bank.review_svc.reviews()
    if reviews:
        for review in reviews:
            st.markdown(f"- {review}")
    else:
        st.info("No reviews.")

    st.markdown("#### Service Feedback")
    service = st.selectbox("Filter by service", ["All"] + list(FEEDBACK_SERVICES))
    entries = bank.review_svc.feedback(None if service == "All" else service)
    if entries:
        st.dataframe(
            pd.DataFrame([{"User": f.username, "Service": f.service, "Feedback": f.text,
                           "Submitted": f.submitted_at} for f in entries]),
            use_container_width=True, hide_index=True
        )
    else:
        st.info("No service feedback found for this filter.")

# ===========================
# TAB 6 - Data maintenance
# ===========================
with tab_data:
    if st.button("Backup All Data"):
        try:
            st.success(f"Backup created at {bank.backup()}")
        except BankingSystemException as e:
            st.error(e.message)

    st.markdown("---")
    st.error("Deleting removes all users, accounts, transactions, reviews and appointments. Backups are kept.")
    confirm = st.text_input("Type DELETE to confirm")
    if st.button("Delete All Data", disabled=confirm != "DELETE"):
        try:
            bank.delete_all_data()
            handle_logout("All data deleted. Log in again with the bootstrap admin.")
        except BankingSystemException as e:
            st.error(e.message)
