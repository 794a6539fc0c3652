import logging
import os
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional

import boto3
import pandas as pd
from sqlalchemy.orm import Session

from database import StorageItem

logger = logging.getLogger(__name__)

# Environment variables
S3_BUCKET = os.environ.get("S3_BUCKET")
AWS_REGION = os.environ.get("AWS_REGION", "us-east-1")
EXPORT_DIR = os.environ.get("EXPORT_DIR", "exports")

EXPORT_COLUMNS = ["id", "date", "description", "amount", "category", "type"]


class LocalStorage:
    """
    Minimal key/value store with browser ``localStorage`` semantics.

    Values are strings; the caller owns serialization. Every ``set_item`` and
    ``remove_item`` commits immediately. Database errors are not caught here.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_item(self, key: str) -> Optional[str]:
        item = self.db.get(StorageItem, key)
        return item.value if item is not None else None

    def set_item(self, key: str, value: str) -> None:
        item = self.db.get(StorageItem, key)
        if item is None:
            self.db.add(StorageItem(key=key, value=value))
        else:
            item.value = value
        self.db.commit()

    def remove_item(self, key: str) -> None:
        item = self.db.get(StorageItem, key)
        if item is not None:
            self.db.delete(item)
            self.db.commit()

    def keys(self) -> list[str]:
        return [row.key for row in self.db.query(StorageItem).order_by(StorageItem.key).all()]


def get_s3_client():
    return boto3.client("s3", region_name=AWS_REGION)


def transactions_to_frame(transactions: Iterable) -> pd.DataFrame:
    rows = [t.model_dump(mode="json") if hasattr(t, "model_dump") else dict(t) for t in transactions]
    if not rows:
        return pd.DataFrame(columns=EXPORT_COLUMNS)
    return pd.DataFrame(rows)[EXPORT_COLUMNS]


def export_transactions(transactions: Iterable, file_name: Optional[str] = None, folder: str = "backups") -> str:
    """
    Saves a CSV backup of the transactions to either local disk or S3.

    Returns the S3 key or the local path that was written.
    """
    file_name = file_name or f"transactions_{datetime.now():%Y%m%d_%H%M%S}.csv"
    df = transactions_to_frame(transactions)

    if S3_BUCKET:
        s3 = get_s3_client()
        key = f"{folder}/{file_name}"
        csv_buffer = BytesIO()
        df.to_csv(csv_buffer, index=False)
        s3.put_object(Bucket=S3_BUCKET, Key=key, Body=csv_buffer.getvalue())
        logger.info("Exported %d transactions to s3://%s/%s", len(df), S3_BUCKET, key)
        return key

    # Local fallback
    local_path = Path(EXPORT_DIR) / folder / file_name
    local_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(local_path, index=False)
    logger.info("Exported %d transactions to %s", len(df), local_path)
    return str(local_path)


def list_exports(folder: str = "backups") -> list[str]:
    """
    Lists backup files in a folder (Local or S3).
    """
    if S3_BUCKET:
        s3 = get_s3_client()
        response = s3.list_objects_v2(Bucket=S3_BUCKET, Prefix=f"{folder}/")
        if "Contents" in response:
            return [obj["Key"].split("/")[-1] for obj in response["Contents"]]
        return []

    local_path = Path(EXPORT_DIR) / folder
    if local_path.exists():
        return sorted(f.name for f in local_path.glob("*.csv") if f.is_file())
    return []
