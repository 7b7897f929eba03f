"""
Approvals Page - Decide account, admin and appointment requests in arrival order.
Roles: admin
"""

import streamlit as st

from core.models.entities import RequestStatus, Verdict
from utils.auth_guard import require_role, get_bank
from utils.sidebar import render_sidebar
from utils.formatters import format_currency, appointments_frame
from utils.exceptions import BankingSystemException

require_role(["admin"])
render_sidebar()

approval_svc = get_bank().approval_svc

st.title("Approval Queues")
st.caption("Requests are decided oldest first.")
st.markdown("---")


def verdict_buttons(key: str):
    """Render Approve / Reject buttons and return the chosen verdict, if any."""
    c1, c2 = st.columns(2)
    if c1.button("Approve", key=f"{key}_approve", use_container_width=True):
        return Verdict.APPROVE
    if c2.button("Reject", key=f"{key}_reject", use_container_width=True):
        return Verdict.REJECT
    return None


def report(result):
    if result.status == RequestStatus.APPROVED:
        extra = f" Account number: {result.account_number}." if result.account_number else ""
        st.session_state["approval_message"] = f"Request approved.{extra}"
    elif result.status == RequestStatus.REJECTED:
        st.session_state["approval_message"] = "Request rejected."
    st.rerun()


message = st.session_state.pop("approval_message", None)
if message:
    st.success(message)

tab_accounts, tab_admins, tab_appointments = st.tabs(
    [f"Account Requests ({len(approval_svc.pending_account_requests())})",
     f"Admin Requests ({len(approval_svc.pending_admin_requests())})",
     f"Appointments ({len(approval_svc.pending_appointments())})"]
)

with tab_accounts:
    head = approval_svc.peek_account_request()
    if head is None:
        st.info("No requests.")
    else:
        with st.container(border=True):
            st.markdown(f"**{head.full_name}** ({head.owner_username})")
            st.markdown(f"National ID: {head.national_id} - Phone: {head.phone} - Address: {head.address}")
            st.markdown(f"Initial deposit: {format_currency(head.initial_deposit)}")
            verdict = verdict_buttons("acct")
        if verdict:
            try:
                report(approval_svc.process_next_account_request(verdict))
            except BankingSystemException as e:
                st.error(e.message)

with tab_admins:
    head = approval_svc.peek_admin_request()
    if head is None:
        st.info("No requests.")
    else:
        with st.container(border=True):
            st.markdown(f"**{head.full_name}** ({head.username})")
            st.markdown(f"National ID: {head.national_id} - Phone: {head.phone} - Address: {head.address}")
            verdict = verdict_buttons("admin")
        if verdict:
            try:
                report(approval_svc.process_next_admin_request(verdict))
            except BankingSystemException as e:
                st.error(e.message)

with tab_appointments:
    head = approval_svc.peek_appointment()
    if head is None:
        st.info("No pending appointments.")
    else:
        with st.container(border=True):
            st.markdown(f"**{head.owner_username}** - {head.service} on {head.date} at {head.time}")
            if head.reason:
                st.caption(head.reason)
            c1, c2, c3 = st.columns(3)
            chosen = None
            if c1.button("Approve", key="appt_approve", use_container_width=True):
                chosen = Verdict.APPROVE
            if c2.button("Reject", key="appt_reject", use_container_width=True):
                chosen = Verdict.REJECT
            if c3.button("Skip for now", key="appt_skip", use_container_width=True):
                chosen = Verdict.INVALID
        if chosen:
            try:
                report(approval_svc.process_next_appointment(chosen))
            except BankingSystemException as e:
                st.error(e.message)

    approved = approval_svc.approved_appointment_list()
    if approved:
        st.subheader("Approved Appointments")
        st.dataframe(appointments_frame(approved), use_container_width=True, hide_index=True)
