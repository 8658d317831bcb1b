from decimal import Decimal

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError

from conftest import auth_header
from storefront import order_service
from storefront.database import ORDERS
from storefront.payment_gateway import GatewayError, SaleResult, format_amount
from storefront.schemas import CartItem


def test_cart_total_sums_client_prices():
    cart = [CartItem(price=100), CartItem(price=200)]

    assert order_service.cart_total(cart) == Decimal("300")


def test_catalog_total_uses_stored_prices(db, make_product):
    a = make_product(price=100)
    b = make_product(price=250)
    cart = [CartItem(_id=str(a["_id"]), price=1), CartItem(_id=str(b["_id"]), price=1)]

    assert order_service.catalog_total(db, cart) == Decimal("350")


def test_format_amount():
    assert format_amount(Decimal("300")) == "300.00"
    assert format_amount(19.999) == "20.00"


def test_braintree_token(client, gateway):
    res = client.get("/api/v1/product/braintree/token")

    assert res.status_code == 200
    assert res.json() == {"clientToken": "fake-client-token"}


def test_braintree_token_gateway_error(client, gateway):
    gateway.token_error = GatewayError("Authentication failed")

    res = client.get("/api/v1/product/braintree/token")

    assert res.status_code == 500
    assert res.json()["success"] is False


def test_braintree_token_unexpected_error_still_answers(lenient_client, gateway):
    gateway.token_error = RuntimeError("boom")

    res = lenient_client.get("/api/v1/product/braintree/token")

    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "Something went wrong"}


def test_payment_success_creates_order(client, db, gateway, customer, make_product):
    p1 = make_product(price=100)
    p2 = make_product(price=200)
    cart = [
        {"_id": str(p1["_id"]), "price": 100, "name": "Product 1"},
        {"_id": str(p2["_id"]), "price": 200, "name": "Product 2"},
    ]

    res = client.post(
        "/api/v1/product/braintree/payment",
        json={"nonce": "test-nonce", "cart": cart},
        headers=auth_header(customer),
    )

    assert res.status_code == 200
    assert res.json() == {"ok": True}
    assert gateway.sales == [{"amount": Decimal("300"), "nonce": "test-nonce"}]

    order = db[ORDERS].find_one({})
    assert order["buyer"] == customer["_id"]
    assert order["products"] == [p1["_id"], p2["_id"]]
    assert order["status"] == "Not Process"
    assert order["payment"]["success"] is True
    assert order["payment"]["transaction"]["id"] == "txn123"


def test_payment_amount_for_cart_without_ids(client, gateway, customer):
    cart = [{"price": 100}, {"price": 200}]

    res = client.post(
        "/api/v1/product/braintree/payment",
        json={"nonce": "test-nonce", "cart": cart},
        headers=auth_header(customer),
    )

    assert res.status_code == 200
    assert gateway.sales[0]["amount"] == 300


def test_payment_declined_creates_no_order(client, db, gateway, customer):
    gateway.decline_message = "Processor Declined"

    res = client.post(
        "/api/v1/product/braintree/payment",
        json={"nonce": "test-nonce", "cart": [{"price": 100}]},
        headers=auth_header(customer),
    )

    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "Payment failed: Processor Declined"}
    assert db[ORDERS].count_documents({}) == 0


def test_payment_gateway_error_creates_no_order(client, db, gateway, customer):
    gateway.sale_error = GatewayError("timeout")

    res = client.post(
        "/api/v1/product/braintree/payment",
        json={"nonce": "test-nonce", "cart": [{"price": 100}]},
        headers=auth_header(customer),
    )

    assert res.status_code == 500
    assert res.json()["message"] == "Payment failed"
    assert db[ORDERS].count_documents({}) == 0


def test_payment_unexpected_error_still_answers(lenient_client, db, gateway, customer):
    gateway.sale_error = RuntimeError("boom")

    res = lenient_client.post(
        "/api/v1/product/braintree/payment",
        json={"nonce": "test-nonce", "cart": [{"price": 100}]},
        headers=auth_header(customer),
    )

    assert res.status_code == 500
    assert db[ORDERS].count_documents({}) == 0


def test_payment_requires_sign_in(client, gateway):
    res = client.post("/api/v1/product/braintree/payment", json={"nonce": "n", "cart": [{"price": 1}]})

    assert res.status_code == 401
    assert gateway.sales == []


def test_payment_requires_nonce(client, gateway, customer):
    res = client.post(
        "/api/v1/product/braintree/payment", json={"cart": [{"price": 1}]}, headers=auth_header(customer),
    )

    assert res.status_code == 400
    assert gateway.sales == []


def test_reprice_ignores_client_prices(db, gateway, customer, make_product):
    product = make_product(price=80)
    cart = [CartItem(_id=str(product["_id"]), price=1)]

    order_service.process_payment(db, gateway, str(customer["_id"]), "nonce", cart, reprice=True)

    assert gateway.sales[0]["amount"] == Decimal("80")


@pytest.fixture
def placed_order(db, customer, make_product):
    product = make_product(photo={"data": b"img", "contentType": "image/png"})
    doc = {
        "products": [product["_id"]],
        "payment": SaleResult(success=True, transaction_id="txn1").as_payment(),
        "buyer": customer["_id"],
        "status": "Shipped",
    }
    doc["_id"] = db[ORDERS].insert_one(doc).inserted_id
    return doc


@pytest.mark.parametrize("new_status", ["Delivered", "Not Process", "anything at all"])
def test_order_status_is_unconditional_overwrite(client, db, admin, placed_order, new_status):
    res = client.put(
        f"/api/v1/auth/order-status/{placed_order['_id']}",
        json={"status": new_status},
        headers=auth_header(admin),
    )

    assert res.status_code == 200
    assert res.json()["status"] == new_status
    assert res.json()["_id"] == str(placed_order["_id"])
    assert db[ORDERS].find_one({"_id": placed_order["_id"]})["status"] == new_status


def test_order_status_unknown_order(client, admin):
    res = client.put(
        f"/api/v1/auth/order-status/{ObjectId()}", json={"status": "Shipped"}, headers=auth_header(admin),
    )

    assert res.status_code == 404


def test_buyer_sees_own_orders_populated(client, customer, placed_order):
    res = client.get("/api/v1/auth/orders", headers=auth_header(customer))

    orders = res.json()
    assert len(orders) == 1
    assert orders[0]["buyer"] == {"_id": str(customer["_id"]), "name": customer["name"]}
    assert orders[0]["products"][0]["_id"] == str(placed_order["products"][0])
    assert "photo" not in orders[0]["products"][0]


def test_all_orders_is_admin_only(client, customer, admin, placed_order):
    assert client.get("/api/v1/auth/all-orders", headers=auth_header(customer)).status_code == 401

    res = client.get("/api/v1/auth/all-orders", headers=auth_header(admin))
    assert [o["_id"] for o in res.json()] == [str(placed_order["_id"])]


def test_order_save_failure_after_capture(client, db, gateway, customer, monkeypatch):
    def failing_insert(*args, **kwargs):
        raise PyMongoError("write concern error")

    monkeypatch.setattr(order_service, "create_document", failing_insert)

    res = client.post(
        "/api/v1/product/braintree/payment",
        json={"nonce": "test-nonce", "cart": [{"price": 100}]},
        headers=auth_header(customer),
    )

    assert res.status_code == 500
    assert res.json() == {"success": False, "message": "Error while saving order"}
    assert len(gateway.sales) == 1
    assert db[ORDERS].count_documents({}) == 0
