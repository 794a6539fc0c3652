"""Budget Tracker package.

A personal budget tracker: record income and expenses, review dashboard
totals, and ask an external AI agent for insights or a chat.  See
``app.py`` (Streamlit page) and ``api.py`` (agent proxy) for entry points.
"""
