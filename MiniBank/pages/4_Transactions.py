"""
Transactions Page - Deposit, withdraw, transfer, history filters and statements.
Roles: customer
"""

import streamlit as st
from datetime import date, timedelta

from utils.auth_guard import require_role, get_bank
from utils.sidebar import render_sidebar
from utils.formatters import format_currency, transactions_frame
from utils.exceptions import BankingSystemException

session = require_role(["customer"])
render_sidebar()

bank = get_bank()
txn_svc = bank.transaction_svc

account = bank.accounts.find_by_owner(session.username)
if account is None:
    st.info("Transactions are available once your account has been approved.")
    st.stop()

st.title("Transactions")
st.caption(f"Account {account.account_number} - Balance {format_currency(account.balance)}")
st.markdown("---")

tab_ops, tab_history, tab_statement = st.tabs(["Deposit / Withdraw / Transfer", "History", "Monthly Statement"])

with tab_ops:
    c1, c2, c3 = st.columns(3)
    with c1:
        with st.form("deposit_form", clear_on_submit=True):
            st.subheader("Deposit")
            dep_amount = st.number_input("Amount", min_value=0.01, step=10.0, format="%.2f", key="dep")
            if st.form_submit_button("Deposit"):
                try:
                    result = txn_svc.deposit(account.account_number, f"{dep_amount:.2f}")
                    st.success(f"New balance: {format_currency(result['new_balance'])}")
                    if result['receipt']:
                        st.caption(f"Receipt saved to {result['receipt']}")
                    else:
                        st.warning("The receipt could not be saved.")
                except BankingSystemException as e:
                    st.error(e.message)
    with c2:
        with st.form("withdraw_form", clear_on_submit=True):
            st.subheader("Withdraw")
            wd_amount = st.number_input("Amount", min_value=0.01, step=10.0, format="%.2f", key="wd")
            if st.form_submit_button("Withdraw"):
                try:
                    result = txn_svc.withdraw(account.account_number, f"{wd_amount:.2f}")
                    st.success(f"New balance: {format_currency(result['new_balance'])}")
                    if result['receipt']:
                        st.caption(f"Receipt saved to {result['receipt']}")
                    else:
                        st.warning("The receipt could not be saved.")
                except BankingSystemException as e:
                    st.error(e.message)
    with c3:
        with st.form("transfer_form", clear_on_submit=True):
            st.subheader("Transfer")
            to_account = st.number_input("To Account", min_value=1, step=1)
            tr_amount = st.number_input("Amount", min_value=0.01, step=10.0, format="%.2f", key="tr")
            if st.form_submit_button("Transfer"):
                try:
                    result = txn_svc.transfer(account.account_number, int(to_account), f"{tr_amount:.2f}")
                    st.success(f"Transferred. Your balance: {format_currency(result['from_balance'])}")
                except BankingSystemException as e:
                    st.error(e.message)

with tab_history:
    mode = st.radio("Show", ["All", "Date range", "Type", "Amount"], horizontal=True)
    try:
        if mode == "Date range":
            d1, d2 = st.columns(2)
            start = d1.date_input("From", value=date.today() - timedelta(days=30))
            end = d2.date_input("To", value=date.today())
            rows = txn_svc.filter_by_date_range(account.account_number, start, end)
        elif mode == "Type":
            text = st.selectbox("Type", ["Deposit", "Withdraw", "Transfer", "Loan"])
            rows = txn_svc.filter_by_type(account.account_number, text)
        elif mode == "Amount":
            amount = st.number_input("Exact amount", min_value=0.01, value=100.0, step=10.0, format="%.2f")
            rows = txn_svc.filter_by_amount(account.account_number, f"{amount:.2f}")
        else:
            rows = txn_svc.get_history(account.account_number)

        if rows:
            df = transactions_frame(rows)
            st.dataframe(df, use_container_width=True, hide_index=True)
            st.download_button("Download CSV", df.to_csv(index=False),
                               file_name=f"transactions_{account.account_number}.csv", mime="text/csv")
        else:
            st.info("No transactions found.")
    except BankingSystemException as e:
        st.error(e.message)

with tab_statement:
    s1, s2 = st.columns(2)
    year = s1.number_input("Year", min_value=2000, max_value=2100, value=date.today().year, step=1)
    month = s2.number_input("Month", min_value=1, max_value=12, value=date.today().month, step=1)
    if st.button("Generate Statement"):
        try:
            statement = txn_svc.monthly_statement(account.account_number, int(year), int(month))
            if statement["transactions"]:
                st.dataframe(transactions_frame(statement["transactions"]),
                             use_container_width=True, hide_index=True)
            else:
                st.info("No transactions in this period.")
            st.caption(f"Statement saved to {statement['statement_file']}")
        except BankingSystemException as e:
            st.error(e.message)
