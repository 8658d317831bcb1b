from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from fastapi.testclient import TestClient

from storefront.database import CATEGORIES, PRODUCTS, USERS, ensure_indexes, get_db
from storefront.main import create_app
from storefront.payment_gateway import SaleResult, get_gateway
from storefront.schemas import ADMIN, CUSTOMER
from storefront.security import create_token, hash_password


class FakeGateway:
    """Stands in for Braintree; records every sale it is asked for."""

    def __init__(self):
        self.client_token = "fake-client-token"
        self.sales = []
        self.token_error = None
        self.sale_error = None
        self.decline_message = None

    def generate_client_token(self):
        if self.token_error:
            raise self.token_error
        return self.client_token

    def sale(self, amount, nonce):
        self.sales.append({"amount": amount, "nonce": nonce})
        if self.sale_error:
            raise self.sale_error
        if self.decline_message:
            return SaleResult(success=False, message=self.decline_message)
        return SaleResult(
            success=True,
            transaction_id="txn123",
            status="submitted_for_settlement",
            amount=str(amount),
        )


@pytest.fixture
def db():
    database = mongomock.MongoClient()["storefront_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(db, gateway):
    application = create_app(lifespan=None)
    application.dependency_overrides[get_db] = lambda: db
    application.dependency_overrides[get_gateway] = lambda: gateway
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def lenient_client(app):
    # Lets the catch-all handler answer instead of re-raising into the test.
    return TestClient(app, raise_server_exceptions=False)


def make_user(db, email, role=CUSTOMER, password="secret123", answer="blue"):
    doc = {
        "name": email.split("@")[0].title(),
        "email": email,
        "password": hash_password(password),
        "phone": "1234567890",
        "address": "123 Main St",
        "answer": answer,
        "role": role,
    }
    doc["_id"] = db[USERS].insert_one(doc).inserted_id
    return doc


def auth_header(user):
    return {"Authorization": create_token(user["_id"])}


@pytest.fixture
def customer(db):
    return make_user(db, "john@example.com")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role=ADMIN)


@pytest.fixture
def category(db):
    doc = {"name": "Electronics", "slug": "electronics"}
    doc["_id"] = db[CATEGORIES].insert_one(doc).inserted_id
    return doc


@pytest.fixture
def make_product(db, category):
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(name=None, price=10.0, category_id=None, photo=None, description="A product"):
        counter["n"] += 1
        n = counter["n"]
        name = name or f"Product {n}"
        doc = {
            "name": name,
            "slug": name.lower().replace(" ", "-"),
            "description": description,
            "price": price,
            "category": category_id or category["_id"],
            "quantity": 5,
            "shipping": True,
            "createdAt": base + timedelta(minutes=n),
            "updatedAt": base + timedelta(minutes=n),
        }
        if photo is not None:
            doc["photo"] = photo
        doc["_id"] = db[PRODUCTS].insert_one(doc).inserted_id
        return doc

    return _make
