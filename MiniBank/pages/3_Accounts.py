"""
Accounts Page - Admin view, search, delete and export of approved accounts.
Roles: admin
"""

import streamlit as st

from utils.auth_guard import require_role, get_bank
from utils.sidebar import render_sidebar
from utils.formatters import accounts_frame, format_currency
from utils.exceptions import BankingSystemException

require_role(["admin"])
render_sidebar()

acct_svc = get_bank().account_svc

st.title("Account Management")
st.markdown("---")

tab_all, tab_search, tab_delete, tab_users = st.tabs(
    ["All Accounts", "Search", "Delete Account", "Locked Users"]
)

with tab_all:
    accounts = acct_svc.list_accounts()
    st.metric("Total Customers", acct_svc.total_customers())
    if accounts:
        df = accounts_frame(accounts)
        st.dataframe(df, use_container_width=True, hide_index=True)
        st.download_button("Download CSV", df.to_csv(index=False), file_name="accounts.csv", mime="text/csv")
    else:
        st.info("No approved accounts yet.")

    if st.button("Export accounts_export.txt"):
        try:
            path = acct_svc.export_accounts()
            st.success(f"Exported to {path}")
        except BankingSystemException as e:
            st.error(e.message)

with tab_search:
    term = st.text_input("National ID or username")
    if term:
        found = acct_svc.search_accounts(term)
        if found:
            st.dataframe(accounts_frame(found), use_container_width=True, hide_index=True)
        else:
            st.info("No account found.")

with tab_delete:
    with st.form("delete_account_form"):
        number = st.number_input("Account Number", min_value=1, step=1)
        confirm = st.checkbox("I understand this cannot be undone")
        delete = st.form_submit_button("Delete")
    if delete:
        if not confirm:
            st.warning("Please confirm the deletion.")
        else:
            try:
                removed = acct_svc.delete_account(int(number))
                st.success(f"Account {removed.account_number} ({removed.owner_username}, "
                           f"{format_currency(removed.balance)}) deleted.")
            except BankingSystemException as e:
                st.error(e.message)

with tab_users:
    locked = acct_svc.locked_users()
    if not locked:
        st.success("No locked users.")
    for user in locked:
        c1, c2 = st.columns([3, 1])
        c1.markdown(f"**{user.username}** ({user.role.value}), {user.failed_attempts} failed attempts")
        if c2.button("Unlock", key=f"unlock_{user.username}"):
            try:
                acct_svc.unlock_user(user.username)
                st.rerun()
            except BankingSystemException as e:
                st.error(e.message)
