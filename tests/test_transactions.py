import json
from datetime import date

import pytest

from transactions import (
    STORAGE_KEY,
    Transaction,
    TransactionStore,
    TransactionValidationError,
    load_transactions,
    save_transactions,
    validate_transaction_form,
)


def make_store(storage, clock):
    return TransactionStore(storage, clock=clock)


def test_empty_storage_loads_empty_list(storage):
    assert load_transactions(storage) == []


def test_save_then_load_round_trip(storage):
    txns = [
        Transaction(id="1", date=date(2024, 1, 5), description="Pay", amount=100, category="Salary", type="income"),
        Transaction(id="2", date=date(2024, 1, 6), description="Bus", amount=2.75, category="Transportation", type="expense"),
    ]
    save_transactions(storage, txns)

    assert load_transactions(storage) == txns
    stored = json.loads(storage.get_item(STORAGE_KEY))
    assert stored[0] == {
        "id": "1",
        "date": "2024-01-05",
        "description": "Pay",
        "amount": 100.0,
        "category": "Salary",
        "type": "income",
    }


def test_add_uses_timestamp_id_and_persists(storage, clock):
    store = make_store(storage, clock)

    txn = store.add(date(2024, 2, 1), "  Groceries ", "45.10", "Food & Dining", "expense")

    assert txn.id == "1700000000000"
    assert txn.description == "Groceries"
    assert txn.amount == 45.10
    assert store.list() == [txn]
    assert load_transactions(storage) == [txn]


def test_same_millisecond_ids_do_not_collide(storage, clock):
    store = make_store(storage, clock)

    first = store.add(date(2024, 2, 1), "A", 1, "Other", "expense")
    second = store.add(date(2024, 2, 1), "B", 2, "Other", "expense")

    assert first.id != second.id
    assert second.id == "1700000000001"


def test_add_then_delete_restores_prior_list(storage, clock):
    store = make_store(storage, clock)
    store.add(date(2024, 2, 1), "Salary", 3000, "Salary", "income")
    clock.now += 1
    before = list(store.list())

    txn = store.add(date(2024, 2, 2), "Coffee", 4, "Food & Dining", "expense")
    store.delete(txn.id)

    assert store.list() == before
    assert load_transactions(storage) == before


def test_delete_unknown_id_is_noop(storage, clock):
    store = make_store(storage, clock)
    store.add(date(2024, 2, 1), "Salary", 3000, "Salary", "income")

    store.delete("missing")

    assert len(store.list()) == 1


def test_mutation_replaces_list_instead_of_mutating(storage, clock):
    store = make_store(storage, clock)
    snapshot = store.list()

    store.add(date(2024, 2, 1), "Salary", 3000, "Salary", "income")

    assert snapshot == []
    assert len(store.list()) == 1


def test_update_keeps_id_and_position(storage, clock):
    store = make_store(storage, clock)
    a = store.add(date(2024, 2, 1), "Rent", 1200, "Housing", "expense")
    clock.now += 1
    b = store.add(date(2024, 2, 2), "Pay", 3000, "Salary", "income")

    updated = store.update(a.id, amount=1250, description="Rent (Feb)")

    assert updated.id == a.id
    assert [t.id for t in store.list()] == [a.id, b.id]
    assert store.get(a.id).amount == 1250
    assert load_transactions(storage)[0].description == "Rent (Feb)"


def test_update_rejects_category_from_other_type(storage, clock):
    store = make_store(storage, clock)
    a = store.add(date(2024, 2, 1), "Rent", 1200, "Housing", "expense")

    with pytest.raises(TransactionValidationError):
        store.update(a.id, type="income")
    assert store.get(a.id).type == "expense"


def test_update_unknown_id_raises(storage, clock):
    store = make_store(storage, clock)
    with pytest.raises(KeyError):
        store.update("missing", amount=1)


def test_store_reads_existing_storage(storage, clock):
    make_store(storage, clock).add(date(2024, 2, 1), "Pay", 10, "Salary", "income")

    assert len(make_store(storage, clock).list()) == 1


@pytest.mark.parametrize(
    "fields",
    [
        dict(txn_date=None, description="x", amount=1, category="Other", txn_type="expense"),
        dict(txn_date=date(2024, 1, 1), description="   ", amount=1, category="Other", txn_type="expense"),
        dict(txn_date=date(2024, 1, 1), description="x", amount="", category="Other", txn_type="expense"),
        dict(txn_date=date(2024, 1, 1), description="x", amount="abc", category="Other", txn_type="expense"),
        dict(txn_date=date(2024, 1, 1), description="x", amount=-5, category="Other", txn_type="expense"),
        dict(txn_date=date(2024, 1, 1), description="x", amount=0, category="Other", txn_type="expense"),
        dict(txn_date=date(2024, 1, 1), description="x", amount=1, category="", txn_type="expense"),
        dict(txn_date=date(2024, 1, 1), description="x", amount=1, category="Salary", txn_type="expense"),
        dict(txn_date=date(2024, 1, 1), description="x", amount=1, category="Other", txn_type="refund"),
    ],
)
def test_form_validation_rejects(fields):
    with pytest.raises(TransactionValidationError):
        validate_transaction_form(**fields)


def test_failed_add_leaves_storage_untouched(storage, clock):
    store = make_store(storage, clock)

    with pytest.raises(TransactionValidationError):
        store.add(date(2024, 2, 1), "", 10, "Salary", "income")

    assert storage.get_item(STORAGE_KEY) is None


def test_iso_date_string_is_parsed_to_date():
    txn = Transaction(id="1", date="2024-02-29", description="Leap", amount=1, category="Other", type="expense")

    assert txn.date == date(2024, 2, 29)
    assert txn.model_dump(mode="json")["date"] == "2024-02-29"
