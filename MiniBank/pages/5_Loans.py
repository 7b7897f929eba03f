"""
Loans Page - Customers apply and track loans; admins decide pending ones.
Roles: customer, admin
"""

import streamlit as st

from core.models.entities import Verdict
from core.services.loan_service import LOAN_MIN_BALANCE, LOAN_INTEREST_RATE
from utils.auth_guard import require_role, get_bank, is_admin
from utils.sidebar import render_sidebar
from utils.formatters import format_currency, loans_frame
from utils.exceptions import BankingSystemException

session = require_role(["customer", "admin"])
render_sidebar()

bank = get_bank()
loan_svc = bank.loan_svc

st.title("Loans")
st.markdown("---")

if is_admin():
    tab_pending, tab_all = st.tabs(["Pending Requests", "All Loans"])

    with tab_pending:
        pending = bank.approval_svc.pending_loans()
        if not pending:
            st.info("No pending loan requests.")
        for loan in pending:
            with st.container(border=True):
                st.markdown(f"**Loan #{loan.loan_id}** - {loan.owner_username} requests "
                            f"{format_currency(loan.amount)} ({loan.reason})")
                c1, c2 = st.columns(2)
                try:
                    if c1.button("Approve", key=f"approve_{loan.loan_id}"):
                        bank.approval_svc.process_loan(loan.loan_id, Verdict.APPROVE)
                        st.rerun()
                    if c2.button("Reject", key=f"reject_{loan.loan_id}"):
                        bank.approval_svc.process_loan(loan.loan_id, Verdict.REJECT)
                        st.rerun()
                except BankingSystemException as e:
                    st.error(e.message)

    with tab_all:
        loans = loan_svc.all()
        if loans:
            st.dataframe(loans_frame(loans), use_container_width=True, hide_index=True)
        st.metric("Interest on Approved Loans", format_currency(loan_svc.total_interest()))

else:
    st.caption(f"Requires a balance of at least {format_currency(LOAN_MIN_BALANCE)}. "
               f"Fixed interest {LOAN_INTEREST_RATE * 100:.0f}%. One active loan at a time.")

    with st.form("loan_form", clear_on_submit=True):
        amount = st.number_input("Loan Amount (OMR)", min_value=1.0, step=100.0, format="%.2f")
        reason = st.text_input("Reason")
        apply = st.form_submit_button("Apply")

    if apply:
        try:
            loan_id = loan_svc.submit(session.username, f"{amount:.2f}", reason)
            st.success(f"Loan request #{loan_id} submitted.")
        except BankingSystemException as e:
            st.error(e.message)

    st.subheader("My Loans")
    mine = loan_svc.for_user(session.username)
    if mine:
        st.dataframe(loans_frame(mine), use_container_width=True, hide_index=True)
    else:
        st.info("No loan requests yet.")
