"""
Registration Page - MiniBank
Customer sign-up (login + account-opening request) or admin access request
"""

import streamlit as st

from utils.auth_guard import get_bank, is_logged_in
from utils.exceptions import BankingSystemException


# Redirect if already logged in
if is_logged_in():
    st.switch_page("pages/1_Dashboard.py")

auth_service = get_bank().auth_svc


# Header
st.markdown("""
<div style="text-align:center; padding:1.5rem 0 0.5rem;">
    <h1 style="margin:0;">MiniBank</h1>
    <p style="color:#888; margin-top:.25rem;">Create Your Account</p>
</div>
""", unsafe_allow_html=True)

st.divider()

signup_role = st.radio("I am signing up as", ["Customer", "Admin"], horizontal=True)

with st.form("registration_form", clear_on_submit=False):
    st.subheader("Personal Details")
    col1, col2 = st.columns(2)
    full_name = col1.text_input("Full Name *", max_chars=100)
    national_id = col2.text_input("National ID *", max_chars=20, placeholder="Digits only")
    col3, col4 = st.columns(2)
    phone = col3.text_input("Phone Number *", max_chars=15, placeholder="Digits only")
    address = col4.text_input("Address *", max_chars=120)

    initial_deposit = None
    if signup_role == "Customer":
        initial_deposit = st.number_input("Initial Deposit (OMR) *", min_value=50.0, value=50.0,
                                          step=10.0, format="%.2f")

    st.subheader("Login Credentials")
    col5, col6 = st.columns(2)
    username = col5.text_input("Username *", max_chars=30)
    password = col6.text_input("Password *", type="password")
    confirm = st.text_input("Confirm Password *", type="password")

    submitted = st.form_submit_button("Submit", use_container_width=True)

if submitted:
    if password != confirm:
        st.error("Passwords do not match.")
    else:
        try:
            if signup_role == "Customer":
                auth_service.signup_customer(
                    username, password, full_name, national_id,
                    f"{initial_deposit:.2f}", phone, address
                )
                st.success("Account request submitted! You can log in now; "
                           "banking opens once an admin approves your account.")
            else:
                auth_service.signup_admin(username, password, full_name, national_id, phone, address)
                st.success("Admin account request submitted for approval.")
        except BankingSystemException as e:
            st.error(e.message)

