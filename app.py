import logging
from datetime import date

import pandas as pd
import streamlit as st

from chat import SUGGESTED_PROMPTS, ChatSession
from dashboard import (
    cat_spend,
    daily_trend,
    expenses_by_category,
    format_currency,
    recent_transactions,
    signed_amount,
    summarize,
)
from database import SessionLocal, init_db
from insights import InsightsPanel
from storage import LocalStorage, export_transactions
from transactions import (
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    TransactionStore,
    TransactionValidationError,
)

logging.basicConfig(level=logging.INFO)

# --- Configuration ---
st.set_page_config(page_title="Budget Tracker", layout="wide", page_icon="💰")
DAY_WINDOW = 7

# --- Session State ---
init_db()

if "db" not in st.session_state:
    st.session_state.db = SessionLocal()
if "store" not in st.session_state:
    st.session_state.store = TransactionStore(LocalStorage(st.session_state.db))
if "insights_panel" not in st.session_state:
    st.session_state.insights_panel = InsightsPanel()
if "chat" not in st.session_state:
    st.session_state.chat = ChatSession()
if "editing_id" not in st.session_state:
    st.session_state.editing_id = None

store: TransactionStore = st.session_state.store
transactions = store.list()


def transactions_frame(txns):
    return pd.DataFrame([{
        "Date": t.date,
        "Description": t.description,
        "Category": t.category,
        "Type": t.type.title(),
        "Amount": format_currency(signed_amount(t)),
    } for t in txns])


def transaction_form(key: str, existing=None):
    """Add/edit form. Returns the submitted fields or None."""
    txn_type = st.radio(
        "Type",
        ["expense", "income"],
        index=0 if existing is None or existing.type == "expense" else 1,
        horizontal=True,
        key=f"{key}_type",
    )
    categories = INCOME_CATEGORIES if txn_type == "income" else EXPENSE_CATEGORIES
    with st.form(key, clear_on_submit=existing is None):
        txn_date = st.date_input("Date", value=existing.date if existing else date.today())
        description = st.text_input("Description", value=existing.description if existing else "")
        amount = st.number_input(
            "Amount",
            min_value=0.0,
            step=0.01,
            format="%.2f",
            value=float(existing.amount) if existing else 0.0,
        )
        category_index = categories.index(existing.category) if existing and existing.category in categories else 0
        category = st.selectbox("Category", categories, index=category_index)
        submitted = st.form_submit_button("Save Changes" if existing else "Add Transaction")

    if not submitted:
        return None
    return {
        "txn_date": txn_date,
        "description": description,
        "amount": amount,
        "category": category,
        "txn_type": txn_type,
    }


st.title("💰 Budget Tracker")

tab1, tab2, tab3, tab4 = st.tabs(["📊 Dashboard", "💳 Transactions", "🧠 Insights", "💬 Assistant"])

with tab1:
    totals = summarize(transactions)
    col1, col2, col3 = st.columns(3)
    col1.metric("💰 Total Income", format_currency(totals["income"]))
    col2.metric("💸 Total Expenses", format_currency(totals["expenses"]))
    col3.metric("📈 Net Balance", format_currency(totals["net"]))

    if not transactions:
        st.info("No transactions yet. Add your first one in the Transactions tab.")
    else:
        c1, c2 = st.columns(2)
        with c1:
            if expenses_by_category(transactions):
                st.plotly_chart(cat_spend(transactions), use_container_width=True)
            else:
                st.caption("No expenses recorded yet.")
        with c2:
            st.plotly_chart(daily_trend(transactions, days=DAY_WINDOW), use_container_width=True)

        st.subheader("Recent Transactions")
        st.dataframe(transactions_frame(recent_transactions(transactions)), hide_index=True, use_container_width=True)

with tab2:
    st.header("💳 Transactions")

    editing = store.get(st.session_state.editing_id) if st.session_state.editing_id else None
    with st.expander("✏️ Edit Transaction" if editing else "➕ Add Transaction", expanded=editing is not None):
        fields = transaction_form("edit_txn" if editing else "add_txn", existing=editing)
        if fields:
            try:
                if editing:
                    store.update(
                        editing.id,
                        date=fields["txn_date"],
                        description=fields["description"],
                        amount=fields["amount"],
                        category=fields["category"],
                        type=fields["txn_type"],
                    )
                    st.session_state.editing_id = None
                else:
                    store.add(**fields)
                st.rerun()
            except TransactionValidationError as e:
                st.error(str(e))
        if editing and st.button("Cancel Edit"):
            st.session_state.editing_id = None
            st.rerun()

    if not transactions:
        st.info("No transactions recorded.")
    else:
        for txn in recent_transactions(transactions, limit=len(transactions)):
            c_date, c_desc, c_cat, c_amt, c_edit, c_del = st.columns([2, 4, 3, 2, 1, 1])
            c_date.write(txn.date.isoformat())
            c_desc.write(txn.description)
            c_cat.write(txn.category)
            c_amt.write(format_currency(signed_amount(txn)))
            if c_edit.button("✏️", key=f"edit_{txn.id}"):
                st.session_state.editing_id = txn.id
                st.rerun()
            if c_del.button("🗑️", key=f"del_{txn.id}"):
                store.delete(txn.id)
                st.rerun()

        if st.button("Export CSV Backup"):
            path = export_transactions(transactions)
            st.success(f"Saved backup to {path}")

with tab3:
    st.header("🧠 AI Insights")
    panel: InsightsPanel = st.session_state.insights_panel

    if st.button("Generate Insights", disabled=panel.loading):
        with st.spinner("Analyzing your transactions..."):
            panel.generate(transactions)

    if panel.error:
        st.error(panel.error)
        if st.button("Dismiss", key="dismiss_insights"):
            panel.dismiss_error()
            st.rerun()

    insights = panel.insights
    if insights is not None:
        totals = insights.summary_totals()
        if totals:
            i1, i2, i3 = st.columns(3)
            i1.metric("Income", format_currency(totals.get("total_income", 0.0)))
            i2.metric("Expenses", format_currency(totals.get("total_expenses", 0.0)))
            i3.metric("Net", format_currency(totals.get("net_balance", 0.0)))
        narrative = insights.narrative()
        if narrative:
            st.subheader("Analysis")
            st.write(narrative)
        tips = insights.tip_texts()
        if tips:
            st.subheader("Tips")
            for tip in tips:
                st.markdown(f"- {tip}")
        confidence = insights.confidence_ratio()
        if confidence is not None:
            st.caption(f"Confidence: {confidence:.0%}")
        elif insights.confidence is not None:
            st.caption(f"Confidence: {insights.confidence}")
    elif not panel.error:
        st.caption("Click Generate Insights to get an AI review of your spending.")

with tab4:
    chat: ChatSession = st.session_state.chat

    header, action = st.columns([4, 1])
    count = len(chat.messages)
    header.caption("Start a conversation" if chat.is_empty else f"{count} message{'s' if count != 1 else ''}")
    if not chat.is_empty and action.button("➕ New Chat"):
        chat.new_chat()
        st.rerun()

    if chat.is_empty:
        st.subheader("Ask me anything about budgeting")
        cols = st.columns(2)
        for idx, prompt in enumerate(SUGGESTED_PROMPTS):
            if cols[idx % 2].button(prompt, key=f"suggested_{idx}"):
                with st.spinner("Thinking..."):
                    chat.send(prompt)
                st.rerun()

    for message in chat.messages:
        with st.chat_message(message.role):
            st.write(message.content)
            st.caption(message.timestamp.strftime("%H:%M"))

    if chat.error:
        st.error(chat.error)
        if st.button("Dismiss", key="dismiss_chat"):
            chat.dismiss_error()
            st.rerun()

    text = st.chat_input("Type your message...", disabled=chat.loading)
    if text:
        with st.spinner("Thinking..."):
            chat.send(text)
        st.rerun()
