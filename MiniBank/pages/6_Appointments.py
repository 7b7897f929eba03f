"""
Appointments Page - Book a branch appointment and see its status.
Roles: customer
"""

import streamlit as st
from datetime import date, time

from core.services.approval_service import APPOINTMENT_SERVICES
from utils.auth_guard import require_role, get_bank
from utils.sidebar import render_sidebar
from utils.formatters import appointments_frame
from utils.exceptions import BankingSystemException

session = require_role(["customer"])
render_sidebar()

approval_svc = get_bank().approval_svc

st.title("Appointments")
st.markdown("---")

with st.form("appointment_form", clear_on_submit=True):
    service = st.selectbox("Service", APPOINTMENT_SERVICES)
    c1, c2 = st.columns(2)
    preferred_date = c1.date_input("Preferred Date", value=date.today(), min_value=date.today())
    preferred_time = c2.time_input("Preferred Time", value=time(10, 0))
    reason = st.text_input("Reason (optional)")
    book = st.form_submit_button("Book")

if book:
    try:
        approval_svc.book_appointment(
            session.username, service, preferred_date.isoformat(),
            preferred_time.strftime("%H:%M"), reason
        )
        st.success("Appointment request submitted! Wait for admin approval.")
    except BankingSystemException as e:
        st.error(e.message)

st.subheader("My Appointments")
mine = approval_svc.appointments_for(session.username)
if mine:
    st.dataframe(appointments_frame(mine), use_container_width=True, hide_index=True)
else:
    st.info("No appointments yet.")
