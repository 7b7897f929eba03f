import streamlit as st

st.set_page_config(
    page_title="MiniBank",
    page_icon="🏦",
    layout="wide",
    initial_sidebar_state="collapsed",
)

from core.models.entities import UserRole
from utils.auth_guard import get_bank, get_session, start_session
from utils.exceptions import BankingSystemException

# Navigation per role: section title -> (page file, title)
PAGES_BY_ROLE = {
    UserRole.CUSTOMER: {
        "Main": [("pages/1_Dashboard.py", "Dashboard"), ("pages/2_Profile.py", "My Profile")],
        "Banking": [
            ("pages/4_Transactions.py", "Transactions"),
            ("pages/5_Loans.py", "Loans"),
            ("pages/6_Appointments.py", "Appointments"),
        ],
    },
    UserRole.ADMIN: {
        "Main": [("pages/1_Dashboard.py", "Dashboard"), ("pages/2_Profile.py", "My Profile")],
        "Administration": [
            ("pages/8_Approvals.py", "Approvals"),
            ("pages/5_Loans.py", "Loan Requests"),
            ("pages/3_Accounts.py", "Accounts"),
            ("pages/7_Reports.py", "Reports"),
        ],
    },
}


def _sign_in(attempt):
    """Run a login call and keep its session for this browser."""
    try:
        start_session(attempt())
        st.rerun()
    except BankingSystemException as e:
        st.error(e.message)


def login_page():
    _, middle, _ = st.columns([1, 2, 1])

    with middle:
        st.title("🏦 MiniBank")
        st.caption("Accounts, loans and branch appointments")
        st.divider()

        message = st.session_state.pop("logout_message", None)
        if message:
            st.info(message)

        by_name, by_nid = st.tabs(["Username", "National ID"])

        with by_name:
            with st.form("login_form"):
                role = st.radio("Login as", [r.value for r in UserRole], horizontal=True, index=1)
                username = st.text_input("Username")
                password = st.text_input("Password", type="password")
                submitted = st.form_submit_button("Login", use_container_width=True)
            if submitted:
                if not username or not password:
                    st.error("Please enter both username and password.")
                else:
                    _sign_in(lambda: get_bank().auth_svc.login(username, password, role))

        with by_nid:
            with st.form("nid_login_form"):
                national_id = st.text_input("National ID")
                nid_password = st.text_input("Password", type="password", key="nid_password")
                nid_submitted = st.form_submit_button("Login", use_container_width=True)
            if nid_submitted:
                _sign_in(lambda: get_bank().auth_svc.login_by_national_id(national_id, nid_password))

        st.divider()
        st.caption("No login yet? Use Register in the menu.")


session = get_session()
if session is None:
    navigation = st.navigation([
        st.Page(login_page, title="Login", default=True),
        st.Page("pages/0_Register.py", title="Register"),
    ])
else:
    sections = PAGES_BY_ROLE[session.role]
    navigation = st.navigation({
        section: [
            st.Page(path, title=title, default=(path == "pages/1_Dashboard.py" and section == "Main"))
            for path, title in entries
        ]
        for section, entries in sections.items()
    })
navigation.run()
