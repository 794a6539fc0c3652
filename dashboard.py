# dashboard.py: aggregate figures for the dashboard tab (recomputed on every render)

import plotly.express as px
import plotly.graph_objects as go
import pandas as pd
from datetime import date, timedelta
from typing import Dict, List, Optional

FRAME_COLUMNS = ["ID", "Date", "Description", "Amount", "Category", "Type"]


def _prep(transactions):
    """
    Turns the transaction list into a dataframe with helper columns.
    """
    if not transactions:
        return pd.DataFrame(columns=FRAME_COLUMNS + ["Signed"])

    df = pd.DataFrame([{
        "ID": t.id,
        "Date": pd.Timestamp(t.date),
        "Description": t.description,
        "Amount": float(t.amount),
        "Category": t.category,
        "Type": t.type,
    } for t in transactions])

    # Amount is stored non-negative; the sign only exists for display
    df["Signed"] = df["Amount"].where(df["Type"] == "income", -df["Amount"])
    return df


def signed_amount(txn) -> float:
    return txn.amount if txn.type == "income" else -txn.amount


def format_currency(value: float) -> str:
    if value < 0:
        return f"-${abs(value):,.2f}"
    return f"${value:,.2f}"


def summarize(transactions) -> Dict[str, float]:
    """Totals shown in the KPI cards. ``net`` is always income minus expenses."""
    df = _prep(transactions)
    income = float(df[df["Type"] == "income"]["Amount"].sum())
    expenses = float(df[df["Type"] == "expense"]["Amount"].sum())
    return {
        "income": income,
        "expenses": expenses,
        "net": income - expenses,
        "count": len(df),
    }


def expenses_by_category(transactions) -> Dict[str, float]:
    """Expense totals per category, largest first."""
    df = _prep(transactions)
    expenses = df[df["Type"] == "expense"]
    if expenses.empty:
        return {}
    by_cat = expenses.groupby("Category")["Amount"].sum().sort_values(ascending=False)
    return {cat: float(total) for cat, total in by_cat.items()}


def daily_totals(transactions, days: int = 7, today: Optional[date] = None) -> List[dict]:
    """
    Buckets income and expenses into the trailing ``days``-day window ending today.

    Always returns exactly ``days`` rows, oldest first, with zeros for quiet days.
    """
    today = today or date.today()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    buckets = {day: {"date": day, "income": 0.0, "expenses": 0.0} for day in window}

    for txn in transactions:
        bucket = buckets.get(txn.date)
        if bucket is None:
            continue
        key = "income" if txn.type == "income" else "expenses"
        bucket[key] += float(txn.amount)

    return [buckets[day] for day in window]


def recent_transactions(transactions, limit: int = 5):
    """Newest first; ties keep insertion order reversed (latest added on top)."""
    ordered = list(reversed(transactions))
    ordered.sort(key=lambda t: t.date, reverse=True)
    return ordered[:limit]


def cat_spend(transactions):
    """
    Donut chart of spending by category.
    """
    by_cat = expenses_by_category(transactions)
    frame = pd.DataFrame({"Category": list(by_cat.keys()), "Amount": list(by_cat.values())})

    fig = px.pie(frame, values="Amount", names="Category", hole=0.4, title="Spending by Category")
    fig.update_traces(textposition="inside", textinfo="percent+label")
    return fig


def daily_trend(transactions, days: int = 7, today: Optional[date] = None):
    """
    Bar chart of income vs expenses per day for the trailing window.
    """
    daily = pd.DataFrame(daily_totals(transactions, days=days, today=today))

    fig = go.Figure()
    fig.add_trace(go.Bar(x=daily["date"], y=daily["income"], name="Income", marker_color="#4CAF50"))
    fig.add_trace(go.Bar(x=daily["date"], y=daily["expenses"], name="Expenses", marker_color="#FF5252"))

    fig.update_layout(barmode="group", title=f"Last {days} Days", height=350)
    return fig
