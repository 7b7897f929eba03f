"""
Shared sidebar renderer for all authenticated pages.
Displays user info, account status, idle timer and logout button.
"""

import streamlit as st
from utils.auth_guard import handle_logout, get_bank, get_session, is_admin, is_customer


def render_sidebar():
    """Render the common sidebar on every authenticated page."""
    with st.sidebar:
        st.markdown("## 🏦 MiniBank")
        st.markdown("---")

        session = get_session()
        if session:
            st.markdown(f"**{session.username}**")
            st.caption(f"Role: {session.role.value}")

            # Customers without an approved account are still waiting on the admin queue
            if is_customer():
                account_svc = get_bank().account_svc
                if not account_svc.has_account(session.username):
                    label = "Pending approval" if account_svc.has_pending_request(session.username) else "No account"
                    st.caption(f"Status: {label}")

            remaining = session.remaining()
            if remaining is not None:
                st.caption(f"Auto-logout after {remaining.seconds // 60} min idle")

            st.markdown("---")

            # Role-based navigation hints
            if is_customer():
                st.caption("Customer Portal")
            elif is_admin():
                st.caption("Admin Control Center")

            st.markdown("---")

            if st.button("Logout", use_container_width=True, key="sidebar_logout"):
                handle_logout()
