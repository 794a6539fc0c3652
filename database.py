import os
from sqlalchemy import create_engine, Column, String, Text
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database Setup
# Default to local SQLite, but allow override (e.g. Postgres) through DATABASE_URL
DB_URL = os.getenv("DATABASE_URL", "sqlite:///budget_tracker.db")

engine = create_engine(DB_URL, connect_args={"check_same_thread": False} if "sqlite" in DB_URL else {})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# --- Models ---

class StorageItem(Base):
    """One key of the local key/value store (the app's equivalent of browser storage)."""
    __tablename__ = "storage_items"

    key = Column(String, primary_key=True, index=True)
    value = Column(Text, nullable=False)  # Serialized JSON, stored verbatim

# --- Init DB ---
def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
