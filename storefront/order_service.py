"""
Checkout and order management.

Payment capture and order persistence are two separate writes: a sale that
succeeds at the gateway is followed by an insert that can still fail. That
case is logged with the transaction id so it can be reconciled by hand.
"""
from decimal import Decimal
from typing import List, Optional, Sequence

from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .database import ORDERS, PRODUCTS, USERS, create_document, now, to_object_id
from .errors import NotFoundError, UpstreamError, ValidationError
from .log import get_logger
from .payment_gateway import BraintreePaymentGateway, GatewayError
from .schemas import CartItem, Order

logger = get_logger(__name__)


def cart_total(cart: Sequence[CartItem]) -> Decimal:
    """Sum of the prices the client sent."""
    return sum((Decimal(str(item.price)) for item in cart), Decimal("0"))


def catalog_total(db: Database, cart: Sequence[CartItem]) -> Decimal:
    """Sum of the current catalog prices of the cart's products."""
    ids = [to_object_id(item.id) for item in cart if item.id]
    if len(ids) != len(cart):
        raise ValidationError("Every cart item needs a product id")
    prices = {
        p["_id"]: p.get("price", 0)
        for p in db[PRODUCTS].find({"_id": {"$in": ids}}, {"price": 1})
    }
    missing = [str(i) for i in ids if i not in prices]
    if missing:
        raise NotFoundError(f"Products not found: {', '.join(missing)}")
    return sum((Decimal(str(prices[i])) for i in ids), Decimal("0"))


def cart_product_ids(cart: Sequence[CartItem]) -> List:
    return [to_object_id(item.id) for item in cart if item.id]


def get_client_token(gateway: BraintreePaymentGateway) -> str:
    try:
        return gateway.generate_client_token()
    except GatewayError as exc:
        logger.error("Client token request failed: %s", exc)
        raise UpstreamError("Error while generating payment token") from exc


def process_payment(db: Database, gateway: BraintreePaymentGateway, buyer_id: str,
                    nonce: Optional[str], cart: Sequence[CartItem],
                    reprice: bool = False) -> dict:
    if not nonce:
        raise ValidationError("Payment nonce is required")
    if not cart:
        raise ValidationError("Cart is empty")

    amount = catalog_total(db, cart) if reprice else cart_total(cart)

    try:
        result = gateway.sale(amount, nonce)
    except GatewayError as exc:
        logger.error("Sale of %s failed: %s", amount, exc)
        raise UpstreamError("Payment failed") from exc
    if not result.success:
        raise UpstreamError(f"Payment failed: {result.message}")

    order = Order(
        products=cart_product_ids(cart),
        payment=result.as_payment(),
        buyer=to_object_id(buyer_id),
    )
    try:
        doc = create_document(db, ORDERS, order.to_document())
    except PyMongoError:
        logger.exception(
            "Transaction %s captured but the order could not be saved",
            result.transaction_id,
        )
        raise
    logger.info("Order %s created for transaction %s", doc["_id"], result.transaction_id)
    return doc


def _populate(db: Database, orders: List[dict]) -> List[dict]:
    product_ids = {pid for o in orders for pid in o.get("products", [])}
    buyer_ids = {o["buyer"] for o in orders if o.get("buyer") is not None}
    products = {
        p["_id"]: p for p in db[PRODUCTS].find({"_id": {"$in": list(product_ids)}}, {"photo": 0})
    }
    buyers = {
        u["_id"]: u for u in db[USERS].find({"_id": {"$in": list(buyer_ids)}}, {"name": 1})
    }
    for o in orders:
        o["products"] = [products[pid] for pid in o.get("products", []) if pid in products]
        o["buyer"] = buyers.get(o.get("buyer"), o.get("buyer"))
    return orders


def get_orders(db: Database, buyer_id: str) -> List[dict]:
    orders = list(db[ORDERS].find({"buyer": to_object_id(buyer_id)}))
    return _populate(db, orders)


def get_all_orders(db: Database) -> List[dict]:
    orders = list(db[ORDERS].find({}).sort("createdAt", DESCENDING))
    return _populate(db, orders)


def update_order_status(db: Database, order_id: str, status: str) -> dict:
    # Any status overwrites any other; transitions are not checked.
    updated = db[ORDERS].find_one_and_update(
        {"_id": to_object_id(order_id)},
        {"$set": {"status": status, "updatedAt": now()}},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFoundError("Order not found")
    return updated
