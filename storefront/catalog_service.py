"""
Product catalog: CRUD, inline photo storage and the storefront queries.

Every listing excludes the photo bytes; they are only served by
``get_photo``. Listings that show a category resolve the reference with one
extra query per page (``populate_category``).
"""
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pydantic import ValidationError as SchemaError
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from .category_service import slugify
from .database import CATEGORIES, PRODUCTS, create_document, now, to_object_id
from .errors import NotFoundError, ValidationError
from .log import get_logger
from .schemas import Photo, Product, ProductForm

logger = get_logger(__name__)

MAX_PHOTO_BYTES = 1_000_000
PER_PAGE = 6
HOME_PAGE_LIMIT = 12
RELATED_LIMIT = 3

NO_PHOTO = {"photo": 0}

REQUIRED_FIELDS = (
    ("name", "Name is required"),
    ("description", "Description is required"),
    ("price", "Price is required"),
    ("category", "Category is required"),
    ("quantity", "Quantity is required"),
)


@dataclass
class PhotoUpload:
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


def _as_bool(value: Optional[str]) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _build_product(form: ProductForm, photo: Optional[PhotoUpload]) -> Product:
    # Missing fields and oversized photos answer 500 for compatibility.
    for field, message in REQUIRED_FIELDS:
        if getattr(form, field) in (None, ""):
            raise ValidationError(message, status_code=500)
    if photo is not None and photo.size > MAX_PHOTO_BYTES:
        raise ValidationError("Photo should be less than 1mb", status_code=500)

    try:
        price = float(form.price)
        quantity = int(form.quantity)
    except ValueError:
        raise ValidationError("Price and quantity must be numbers", status_code=500)
    if price < 0:
        raise ValidationError("Price must not be negative", status_code=500)
    if quantity < 0:
        raise ValidationError("Quantity must not be negative", status_code=500)

    try:
        category = to_object_id(form.category)
    except ValidationError as exc:
        raise ValidationError(exc.message, status_code=500)

    try:
        return Product(
            name=form.name,
            slug=slugify(form.name),
            description=form.description,
            price=price,
            category=category,
            quantity=quantity,
            shipping=_as_bool(form.shipping),
            photo=Photo(data=photo.data, contentType=photo.content_type) if photo else None,
        )
    except SchemaError as exc:
        raise ValidationError(f"Invalid product: {exc.errors()[0]['msg']}", status_code=500)


def create_product(db: Database, form: ProductForm, photo: Optional[PhotoUpload] = None) -> dict:
    product = _build_product(form, photo)
    doc = create_document(db, PRODUCTS, product.model_dump(exclude_none=True))
    logger.info("Created product %s (%s)", doc["_id"], doc["slug"])
    return doc


def update_product(db: Database, product_id: str, form: ProductForm,
                   photo: Optional[PhotoUpload] = None) -> dict:
    product = _build_product(form, photo)
    # Without a new upload the stored photo is kept as is.
    changes = product.model_dump(exclude={"photo"} if photo is None else None)
    changes["updatedAt"] = now()
    updated = db[PRODUCTS].find_one_and_update(
        {"_id": to_object_id(product_id)},
        {"$set": changes},
        projection=NO_PHOTO,
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFoundError("Product not found")
    return updated


def delete_product(db: Database, product_id: str) -> None:
    db[PRODUCTS].delete_one({"_id": to_object_id(product_id)})


def populate_category(db: Database, products: List[dict]) -> List[dict]:
    ids = {p["category"] for p in products if p.get("category") is not None}
    if not ids:
        return products
    categories = {c["_id"]: c for c in db[CATEGORIES].find({"_id": {"$in": list(ids)}})}
    for p in products:
        if p.get("category") in categories:
            p["category"] = categories[p["category"]]
    return products


def get_products(db: Database) -> List[dict]:
    cursor = (
        db[PRODUCTS]
        .find({}, NO_PHOTO)
        .sort("createdAt", DESCENDING)
        .limit(HOME_PAGE_LIMIT)
    )
    return populate_category(db, list(cursor))


def get_product(db: Database, slug: str) -> Optional[dict]:
    product = db[PRODUCTS].find_one({"slug": slug}, NO_PHOTO)
    if product is None:
        return None
    return populate_category(db, [product])[0]


def get_photo(db: Database, product_id: str) -> PhotoUpload:
    product = db[PRODUCTS].find_one({"_id": to_object_id(product_id)}, {"photo": 1})
    photo = (product or {}).get("photo") or {}
    if not photo.get("data"):
        raise NotFoundError("Photo not found")
    return PhotoUpload(data=bytes(photo["data"]), content_type=photo.get("contentType", ""))


def build_filter_query(checked: Sequence[str], radio: Sequence[float]) -> dict:
    """Translate the storefront's category checkboxes and price radio into a query."""
    args = {}
    if checked:
        args["category"] = {"$in": [to_object_id(c) for c in checked]}
    if radio:
        args["price"] = {"$gte": radio[0], "$lte": radio[-1]}
    return args


def filter_products(db: Database, checked: Sequence[str], radio: Sequence[float]) -> List[dict]:
    return list(db[PRODUCTS].find(build_filter_query(checked, radio), NO_PHOTO))


def count_products(db: Database) -> int:
    return db[PRODUCTS].estimated_document_count()


def page_window(page: Optional[int]):
    """Return ``(skip, limit)`` for a 1-indexed page number."""
    page = page if page and page > 0 else 1
    return (page - 1) * PER_PAGE, PER_PAGE


def list_products(db: Database, page: Optional[int] = 1) -> List[dict]:
    skip, limit = page_window(page)
    cursor = (
        db[PRODUCTS]
        .find({}, NO_PHOTO)
        .sort("createdAt", DESCENDING)
        .skip(skip)
        .limit(limit)
    )
    return list(cursor)


def search_query(keyword: str) -> dict:
    pattern = re.escape(keyword)
    return {
        "$or": [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]
    }


def search_products(db: Database, keyword: str) -> List[dict]:
    return list(db[PRODUCTS].find(search_query(keyword), NO_PHOTO))


def related_products(db: Database, product_id: str, category_id: str) -> List[dict]:
    cursor = db[PRODUCTS].find(
        {"category": to_object_id(category_id), "_id": {"$ne": to_object_id(product_id)}},
        NO_PHOTO,
    ).limit(RELATED_LIMIT)
    return populate_category(db, list(cursor))


def products_by_category(db: Database, slug: str):
    """Return ``(category, products)`` for a category slug."""
    category = db[CATEGORIES].find_one({"slug": slug})
    if category is None:
        return None, []
    products = list(db[PRODUCTS].find({"category": category["_id"]}, NO_PHOTO))
    for p in products:
        p["category"] = category
    return category, products
