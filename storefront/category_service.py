import re
import unicodedata
from typing import Optional
from uuid import uuid4

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from .database import CATEGORIES, create_document, get_documents, now, to_object_id
from .errors import ConflictError, NotFoundError, ValidationError
from .log import get_logger
from .schemas import Category

logger = get_logger(__name__)


def slugify(value: Optional[str]) -> str:
    """Lowercase, ASCII-fold and hyphenate ``value`` for use in URLs."""
    normalized = " ".join((value or "").split()).lower()
    ascii_name = (
        unicodedata.normalize("NFKD", normalized)
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_name).strip("-")
    if not slug:
        slug = uuid4().hex
    return slug


def create_category(db: Database, name: Optional[str]) -> dict:
    if not name:
        raise ValidationError("Name is required", status_code=401)

    if db[CATEGORIES].find_one({"name": name}):
        raise ConflictError("Category Already Exists", status_code=200)

    category = Category(name=name, slug=slugify(name))
    try:
        return create_document(db, CATEGORIES, category)
    except DuplicateKeyError:
        raise ConflictError("Category Already Exists", status_code=200)


def update_category(db: Database, category_id: str, name: Optional[str]) -> dict:
    if not name:
        raise ValidationError("Name is required", status_code=401)
    try:
        updated = db[CATEGORIES].find_one_and_update(
            {"_id": to_object_id(category_id)},
            {"$set": {"name": name, "slug": slugify(name), "updatedAt": now()}},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise ConflictError("Category Already Exists", status_code=200)
    if updated is None:
        raise NotFoundError("Category not found")
    return updated


def list_categories(db: Database):
    return get_documents(db, CATEGORIES)


def get_category(db: Database, slug: str) -> Optional[dict]:
    return db[CATEGORIES].find_one({"slug": slug})


def delete_category(db: Database, category_id: str) -> None:
    result = db[CATEGORIES].delete_one({"_id": to_object_id(category_id)})
    if not result.deleted_count:
        logger.info("Category %s was already gone", category_id)
