"""
Formatting helpers shared across Streamlit pages.
Currency formatting, status badges, table rows.
"""

from decimal import Decimal, InvalidOperation
from datetime import datetime, date
from typing import Dict, Iterable, List, Union

import pandas as pd

from core.models.entities import Account, Appointment, LoanRequest, Transaction

CURRENCY_SYMBOL = "OMR"


def format_currency(amount: Union[int, float, Decimal, str], symbol: str = CURRENCY_SYMBOL) -> str:
    """Format amount as a currency string."""
    try:
        if not isinstance(amount, Decimal):
            amount = Decimal(str(amount))
        return f"{symbol} {amount:,.2f}"
    except (InvalidOperation, ValueError):
        return f"{symbol} {amount}"


def format_date(dt: Union[datetime, date, None]) -> str:
    """Format date for display."""
    if dt is None:
        return "N/A"
    if isinstance(dt, datetime):
        return dt.strftime("%d %b %Y, %I:%M %p")
    return dt.strftime("%d %b %Y")


def status_badge(status: str) -> str:
    """Return a display label for request and loan status values."""
    badges = {
        "Pending": "Awaiting Decision",
        "Approved": "Approved",
        "Rejected": "Rejected",
    }
    return badges.get(status, status.replace("_", " ").title())


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """Transactions as a table, oldest first."""
    return pd.DataFrame(
        [
            {
                "Date": t.txn_time,
                "Type": t.txn_type.value,
                "Amount": float(t.amount),
                "Balance": float(t.balance_after_txn),
            }
            for t in transactions
        ],
        columns=["Date", "Type", "Amount", "Balance"],
    )


def accounts_frame(accounts: Iterable[Account]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Account #": a.account_number,
                "Username": a.owner_username,
                "National ID": a.national_id,
                "Balance": float(a.balance),
                "Phone": a.phone,
                "Address": a.address,
            }
            for a in accounts
        ],
        columns=["Account #", "Username", "National ID", "Balance", "Phone", "Address"],
    )


def loans_frame(loans: Iterable[LoanRequest]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Loan ID": l.loan_id,
                "Username": l.owner_username,
                "Amount": float(l.amount),
                "Reason": l.reason,
                "Status": status_badge(l.status.value),
                "Interest": f"{l.interest_rate * 100:.1f}%",
            }
            for l in loans
        ],
        columns=["Loan ID", "Username", "Amount", "Reason", "Status", "Interest"],
    )


def appointments_frame(appointments: Iterable[Appointment]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "Username": a.owner_username,
                "Service": a.service,
                "Date": a.date,
                "Time": a.time,
                "Reason": a.reason,
                "Status": status_badge(a.status.value),
            }
            for a in appointments
        ],
        columns=["Username", "Service", "Date", "Time", "Reason", "Status"],
    )


def records_frame(rows: List[Dict]) -> pd.DataFrame:
    """Plain dict rows (reports) as a table with Decimal columns made numeric."""
    df = pd.DataFrame(rows)
    for column in df.columns:
        if len(df) and isinstance(df[column].iloc[0], Decimal):
            df[column] = df[column].astype(float)
    return df
