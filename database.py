"""
MongoDB access for the blog platform.

``db`` is created lazily from DATABASE_URL / DATABASE_NAME; route handlers
receive it through the ``get_db`` dependency so tests can swap in another
database object.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from config import DATABASE_NAME, DATABASE_URL
from errors import NotFound

logger = logging.getLogger(__name__)

client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000) if DATABASE_URL else None
db: Optional[Database] = client[DATABASE_NAME] if client is not None else None

# fields that never leave the server
PRIVATE_USER_FIELDS = ("password_hash", "algo", "answer")


def get_db() -> Database:
    if db is None:
        raise RuntimeError("Database not available")
    return db


def ensure_indexes(database: Database) -> None:
    database["user"].create_index([("email", ASCENDING)], unique=True)
    database["category"].create_index([("slug", ASCENDING)])
    database["blogpost"].create_index([("tags", ASCENDING)])
    logger.info("Indexes ensured on %s", database.name)


def now() -> datetime:
    return datetime.now(timezone.utc)


def parse_object_id(value: str, entity: str = "Document") -> ObjectId:
    """Convert a path id to an ObjectId, treating malformed ids as missing."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFound(f"{entity} not found")


def create_document(database: Database, collection_name: str, data: Any) -> str:
    if isinstance(data, BaseModel):
        doc = data.model_dump()
    else:
        doc = dict(data)
    stamp = now()
    doc.setdefault("created_at", stamp)
    doc.setdefault("updated_at", stamp)
    result = database[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(database: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  limit: Optional[int] = None, newest_first: bool = True) -> List[dict]:
    cursor = database[collection_name].find(filter_dict or {})
    if newest_first:
        cursor = cursor.sort("created_at", -1)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def serialize(doc: Optional[dict]) -> Optional[dict]:
    """Expose ``_id`` as a string ``id``."""
    if doc is None:
        return None
    out = dict(doc)
    out["id"] = str(out.pop("_id", ""))
    return out


def serialize_user(doc: Optional[dict]) -> Optional[dict]:
    out = serialize(doc)
    if out is None:
        return None
    for field in PRIVATE_USER_FIELDS:
        out.pop(field, None)
    return out


def users_by_id(database: Database, ids: Iterable[str]) -> Dict[str, dict]:
    object_ids = [ObjectId(i) for i in set(ids) if i and ObjectId.is_valid(i)]
    if not object_ids:
        return {}
    found = database["user"].find({"_id": {"$in": object_ids}})
    return {str(u["_id"]): serialize_user(u) for u in found}


def update_fields(data: BaseModel) -> dict:
    """Fields a client actually supplied for a partial update; nulls are dropped."""
    return {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
