"""
MongoDB access helpers.

One ``MongoClient`` is created lazily per process and shared by every
request; handlers receive the database through the ``get_db`` dependency
so tests can swap in a mongomock database.
"""
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi.encoders import jsonable_encoder
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .config import get_settings
from .errors import UpstreamError, ValidationError
from .log import get_logger

logger = get_logger(__name__)

USERS = "users"
CATEGORIES = "categories"
PRODUCTS = "products"
ORDERS = "orders"

# Never sent to clients.
PRIVATE_FIELDS = ("password", "answer", "photo")

_client: Optional[MongoClient] = None


def get_client() -> MongoClient:
    global _client
    if _client is None:
        _client = MongoClient(get_settings().DATABASE_URL)
    return _client


def get_db() -> Database:
    return get_client()[get_settings().DATABASE_NAME]


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None


def ensure_indexes(db: Database) -> None:
    try:
        db[USERS].create_index([("email", ASCENDING)], unique=True)
        db[CATEGORIES].create_index([("name", ASCENDING)], unique=True)
        db[CATEGORIES].create_index([("slug", ASCENDING)])
        db[PRODUCTS].create_index([("slug", ASCENDING)])
        db[PRODUCTS].create_index([("createdAt", -1)])
        db[ORDERS].create_index([("buyer", ASCENDING), ("createdAt", -1)])
    except PyMongoError as exc:
        logger.warning("Unable to ensure indexes: %s", exc)


def now() -> datetime:
    return datetime.now(timezone.utc)


def create_document(db: Database, collection_name: str, data: Any) -> dict:
    """Insert ``data`` (dict or pydantic model) with timestamps and return the stored document."""
    if hasattr(data, "model_dump"):
        data = data.model_dump()
    doc = dict(data)
    stamp = now()
    doc.setdefault("createdAt", stamp)
    doc["updatedAt"] = stamp
    result = db[collection_name].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


def get_documents(db: Database, collection_name: str, filter_dict: Optional[dict] = None,
                  limit: Optional[int] = None):
    cursor = db[collection_name].find(filter_dict or {})
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def to_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise ValidationError(f"Invalid id: {value}")


def _strip(doc: dict, exclude: Iterable[str]) -> dict:
    return {k: v for k, v in doc.items() if k not in exclude}


def to_json(value: Any, exclude: Iterable[str] = PRIVATE_FIELDS) -> Any:
    """Convert documents (or lists of them) into JSON-safe data."""
    exclude = tuple(exclude)

    def clean(item):
        if isinstance(item, dict):
            return {k: clean(v) for k, v in _strip(item, exclude).items()}
        if isinstance(item, list):
            return [clean(v) for v in item]
        return item

    return jsonable_encoder(clean(value), custom_encoder={ObjectId: str})


@contextmanager
def database_errors(message: str, status_code: int = 500):
    """Log driver failures and re-raise them as ``UpstreamError(message)``."""
    try:
        yield
    except PyMongoError as exc:
        logger.exception(message)
        raise UpstreamError(message, status_code=status_code) from exc
