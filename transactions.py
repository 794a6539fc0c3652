"""
transactions.py
---------------
Transaction records, the category lists they draw from, and the store that
keeps the user's list in local storage.

The whole list lives under a single storage key as a JSON array. Every
mutation builds a new list and re-serializes it in full.
"""

from __future__ import annotations

import json
import time
import datetime as dt
from typing import Callable, List, Literal, Optional

from pydantic import BaseModel, Field

from storage import LocalStorage

STORAGE_KEY = "budget-tracker-transactions"

INCOME_CATEGORIES = ["Salary", "Freelance", "Investments", "Gifts", "Other Income"]
EXPENSE_CATEGORIES = [
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Bills & Utilities",
    "Entertainment",
    "Healthcare",
    "Education",
    "Housing",
    "Travel",
    "Other",
]

TransactionType = Literal["income", "expense"]


class TransactionValidationError(ValueError):
    """Raised when a submitted transaction form is incomplete or inconsistent."""


class Transaction(BaseModel):
    id: str
    date: dt.date
    description: str
    amount: float = Field(..., ge=0, description="Always stored non-negative; sign comes from type")
    category: str
    type: TransactionType


def categories_for(txn_type: str) -> List[str]:
    if txn_type == "income":
        return INCOME_CATEGORIES
    if txn_type == "expense":
        return EXPENSE_CATEGORIES
    raise TransactionValidationError(f"Unknown transaction type: {txn_type!r}")


def validate_transaction_form(
    txn_date: Optional[dt.date],
    description: Optional[str],
    amount,
    category: Optional[str],
    txn_type: Optional[str],
) -> dict:
    """Check the add/edit form fields and return them normalized."""

    if txn_type not in ("income", "expense"):
        raise TransactionValidationError("Type must be 'income' or 'expense'.")
    if txn_date is None:
        raise TransactionValidationError("Date is required.")
    description = (description or "").strip()
    if not description:
        raise TransactionValidationError("Description is required.")
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        raise TransactionValidationError("Amount is required.")
    try:
        amount = float(amount)
    except (TypeError, ValueError):
        raise TransactionValidationError(f"Amount must be a number, got {amount!r}.")
    if amount <= 0:
        raise TransactionValidationError("Amount must be greater than zero.")
    if not category:
        raise TransactionValidationError("Category is required.")
    if category not in categories_for(txn_type):
        raise TransactionValidationError(f"{category!r} is not a valid {txn_type} category.")

    return {
        "date": txn_date,
        "description": description,
        "amount": amount,
        "category": category,
        "type": txn_type,
    }


def load_transactions(storage: LocalStorage) -> List[Transaction]:
    raw = storage.get_item(STORAGE_KEY)
    if raw is None:
        return []
    return [Transaction.model_validate(item) for item in json.loads(raw)]


def save_transactions(storage: LocalStorage, transactions: List[Transaction]) -> None:
    payload = json.dumps([t.model_dump(mode="json") for t in transactions])
    storage.set_item(STORAGE_KEY, payload)


def _next_id(existing: set, now_ms: int) -> str:
    candidate = now_ms
    while str(candidate) in existing:
        candidate += 1
    return str(candidate)


class TransactionStore:
    """
    The user's transaction list with write-through persistence.

    ``clock`` returns seconds since the epoch and is only used to derive ids.
    """

    def __init__(self, storage: LocalStorage, clock: Callable[[], float] = time.time):
        self.storage = storage
        self.clock = clock
        self._transactions: List[Transaction] = load_transactions(storage)

    def list(self) -> List[Transaction]:
        return self._transactions

    def get(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self._transactions if t.id == transaction_id), None)

    def add(self, txn_date: dt.date, description: str, amount, category: str, txn_type: str) -> Transaction:
        fields = validate_transaction_form(txn_date, description, amount, category, txn_type)
        existing = {t.id for t in self._transactions}
        txn = Transaction(id=_next_id(existing, int(self.clock() * 1000)), **fields)
        self._commit([*self._transactions, txn])
        return txn

    def update(self, transaction_id: str, **changes) -> Transaction:
        current = self.get(transaction_id)
        if current is None:
            raise KeyError(transaction_id)

        merged = current.model_dump()
        merged.update(changes)
        fields = validate_transaction_form(
            merged["date"], merged["description"], merged["amount"], merged["category"], merged["type"]
        )
        updated = Transaction(id=transaction_id, **fields)
        self._commit([updated if t.id == transaction_id else t for t in self._transactions])
        return updated

    def delete(self, transaction_id: str) -> None:
        self._commit([t for t in self._transactions if t.id != transaction_id])

    def reload(self) -> List[Transaction]:
        self._transactions = load_transactions(self.storage)
        return self._transactions

    def _commit(self, transactions: List[Transaction]) -> None:
        self._transactions = transactions
        save_transactions(self.storage, transactions)
