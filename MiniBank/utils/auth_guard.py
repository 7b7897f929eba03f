"""
Authentication guard utilities for Streamlit pages.
Provides the shared engine, login-required and role-based access control.
"""

import streamlit as st

from core.bank import Bank
from utils.exceptions import SessionExpiredException
from utils.session import Session


@st.cache_resource
def get_bank() -> Bank:
    """One engine per server process, shared by every browser session."""
    return Bank.open()


def require_login() -> Session:
    """Stop page execution if user is not logged in."""
    session = get_session()
    if session is None:
        st.warning("Please log in to continue.")
        st.stop()
    _check_session_timeout(session)
    return session


def require_role(allowed_roles: list) -> Session:
    """Stop page execution if user role is not in allowed_roles."""
    session = require_login()
    if any(role.lower() == get_user_role() for role in allowed_roles):
        return session
    st.error("You do not have permission to access this page.")
    st.stop()


def get_session():
    """Return the live engine session for this browser, if any."""
    token = st.session_state.get("session_token")
    if not token:
        return None
    session = get_bank().auth_svc.validate_session(token)
    if session is None:
        del st.session_state["session_token"]
        st.session_state["logout_message"] = "Your session expired. Please log in again."
    return session


def get_current_user() -> dict:
    """Return current user info or empty dict."""
    session = get_session()
    if not session:
        return {}
    return {"username": session.username, "role": session.role.value, "session_token": session.token}


def get_user_role() -> str:
    """Return current user role string in lowercase."""
    return get_current_user().get("role", "customer").lower()


def is_logged_in() -> bool:
    """Check whether a user session exists."""
    return get_session() is not None


def start_session(session: Session):
    st.session_state["session_token"] = session.token


def handle_logout(message: str = None):
    """Logout the current user and rerun."""
    token = st.session_state.get("session_token")
    if token:
        get_bank().auth_svc.logout(token)

    # Ensure all auth-related state is cleared
    for key in list(st.session_state.keys()):
        del st.session_state[key]

    if message:
        st.session_state["logout_message"] = message
    st.rerun()


def _check_session_timeout(session: Session):
    """Auto-logout if session has been idle too long."""
    try:
        session.touch()
    except SessionExpiredException as e:
        handle_logout(e.message)


def is_admin() -> bool:
    """Check if current user is an admin."""
    return get_user_role() == "admin"


def is_customer() -> bool:
    """Check if current user is a customer."""
    return get_user_role() == "customer"
