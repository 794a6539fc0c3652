import logging
from datetime import date, timedelta

from database import init_db, SessionLocal
from storage import LocalStorage
from transactions import TransactionStore

logger = logging.getLogger(__name__)

SAMPLE_TRANSACTIONS = [
    (0, "Monthly salary", 4200.00, "Salary", "income"),
    (1, "Grocery run", 86.40, "Food & Dining", "expense"),
    (1, "Bus pass", 45.00, "Transportation", "expense"),
    (2, "Electricity bill", 112.75, "Bills & Utilities", "expense"),
    (3, "Logo design gig", 350.00, "Freelance", "income"),
    (4, "Cinema tickets", 28.00, "Entertainment", "expense"),
    (5, "Rent", 1450.00, "Housing", "expense"),
]


def seed_transactions(store: TransactionStore, today=None):
    if store.list():
        logger.info("Transactions already exist. Skipping seed.")
        return 0

    today = today or date.today()
    for days_ago, description, amount, category, txn_type in SAMPLE_TRANSACTIONS:
        store.add(today - timedelta(days=days_ago), description, amount, category, txn_type)
    logger.info("Seeded %d sample transactions.", len(SAMPLE_TRANSACTIONS))
    return len(SAMPLE_TRANSACTIONS)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    db = SessionLocal()
    try:
        seed_transactions(TransactionStore(LocalStorage(db)))
    finally:
        db.close()
