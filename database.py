"""
Database handle

The MongoDB client is created explicitly by the application factory and
closed on shutdown. Collection names are the lowercase entity names:
- Vendor -> "vendor"
- Store -> "store"
- Product -> "product"
- Order -> "order"
- OrderNote -> "order_note"
"""

import os
from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "vendor_backend")


def connect(url: str = DATABASE_URL) -> MongoClient:
    return MongoClient(url)


def get_database(client: MongoClient, name: str = DATABASE_NAME) -> Database:
    return client[name]


def ensure_indexes(db: Database) -> None:
    db["vendor"].create_index("email", unique=True)
    # one store per vendor
    db["store"].create_index("vendor_id", unique=True)
    db["product"].create_index([("store_id", ASCENDING), ("created_at", DESCENDING)])
    db["order"].create_index([("store_id", ASCENDING), ("created_at", DESCENDING)])
    db["order_note"].create_index([("order_id", ASCENDING), ("created_at", DESCENDING)])


def utcnow() -> datetime:
    # naive UTC, the form pymongo hands back on reads
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat().replace("+00:00", "Z")


def _public_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return to_iso(value)
    if isinstance(value, dict):
        return serialize_doc(value)
    if isinstance(value, list):
        return [_public_value(v) for v in value]
    return value


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    if not doc:
        return doc
    out = {}
    for k, v in doc.items():
        if k == "_id":
            out["id"] = str(v)
        else:
            out[k] = _public_value(v)
    return out
