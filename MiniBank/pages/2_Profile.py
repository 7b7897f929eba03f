"""
Profile Page - Update personal details, reviews and service feedback.
"""

import streamlit as st

from core.repositories.review_repository import FEEDBACK_SERVICES
from utils.auth_guard import require_role, get_bank, is_customer, handle_logout
from utils.sidebar import render_sidebar
from utils.formatters import format_date
from utils.exceptions import BankingSystemException

session = require_role(["admin", "customer"])
render_sidebar()

bank = get_bank()

st.title("My Profile")
st.markdown("---")

col1, col2 = st.columns(2)
with col1:
    st.markdown("### Account Information")
    st.markdown(f"**Username:** {session.username}")
    st.markdown(f"**Role:** {session.role.value}")
with col2:
    st.markdown("### Session Information")
    st.markdown(f"**Login Time:** {format_date(session.login_time)}")
    st.markdown(f"**Last Activity:** {format_date(session.last_activity)}")

st.markdown("---")

# ---- Change password / details ----
st.subheader("Update My Information")

with st.form("update_info_form"):
    current = st.text_input("Current Password *", type="password")
    new_pwd = st.text_input("New Password", type="password")
    new_username = st.text_input("New Username") if is_customer() else ""
    phone = address = national_id = ""
    if is_customer():
        c1, c2, c3 = st.columns(3)
        phone = c1.text_input("New Phone")
        address = c2.text_input("New Address")
        national_id = c3.text_input("New National ID")
    update_submitted = st.form_submit_button("Update", use_container_width=True)

if update_submitted:
    try:
        if is_customer():
            result = bank.account_svc.update_info(
                session.username, current,
                new_username=new_username or None,
                new_password=new_pwd or None,
                phone=phone or None,
                address=address or None,
                national_id=national_id or None
            )
            if "username" in result["changed"]:
                handle_logout("Username changed. Please log in again.")
            st.success(f"Updated: {', '.join(result['changed']) or 'nothing'}")
        else:
            bank.auth_svc.change_password(session.username, current, new_pwd)
            st.success("Password updated.")
    except BankingSystemException as e:
        st.error(e.message)

# ---- Reviews & feedback (customers) ----
if is_customer():
    st.markdown("---")
    tab_review, tab_feedback = st.tabs(["Complaint / Review", "Service Feedback"])

    with tab_review:
        with st.form("review_form", clear_on_submit=True):
            review = st.text_input("Your complaint or review")
            sent = st.form_submit_button("Submit")
        if sent:
            try:
                bank.review_svc.submit_review(session.username, review)
                st.success("Complaint submitted.")
            except BankingSystemException as e:
                st.error(e.message)
        if st.button("Undo Last Complaint"):
            removed = bank.review_svc.undo_last_review()
            st.info("Last complaint removed!" if removed is not None else "No complaint to remove.")

    with tab_feedback:
        with st.form("feedback_form", clear_on_submit=True):
            service = st.selectbox("Service", FEEDBACK_SERVICES)
            text = st.text_area("Write your feedback")
            fb_sent = st.form_submit_button("Send Feedback")
        if fb_sent:
            try:
                bank.review_svc.submit_feedback(session.username, service, text)
                st.success("Service feedback submitted! Thank you for helping us improve.")
            except BankingSystemException as e:
                st.error(e.message)
