import os

# Must be set before any service module builds its settings and limiter
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SESSION_SECRET_KEY", "test-session-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx
import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from services.cart_service.main import app as cart_app
from services.order_service.main import app as order_app, get_cart_client
from services.order_service.cart_client import CartClient
from services.review_service.main import app as review_app
from services.session_service.main import app as session_app
from services.user_service.main import app as user_app

CART_BASE_URL = "http://cart-service.test/cart"


def attach_db(app, mongo, db_name):
    """Point a service at an in-memory database without running its startup hook."""
    app.mongodb_client = mongo
    app.mongodb = mongo[db_name]


@pytest.fixture
def mongo():
    return AsyncMongoMockClient()


@pytest.fixture
def cart_api(mongo):
    attach_db(cart_app, mongo, "cart_db")
    return TestClient(cart_app)


@pytest.fixture
def order_api(mongo, cart_api):
    """Order service wired to the real cart service over an in-process ASGI transport."""
    attach_db(order_app, mongo, "orders_db")
    transport = httpx.ASGITransport(app=cart_app)
    order_app.dependency_overrides[get_cart_client] = lambda: CartClient(
        base_url=CART_BASE_URL, transport=transport
    )
    yield TestClient(order_app)
    order_app.dependency_overrides.clear()


@pytest.fixture
def review_api(mongo):
    attach_db(review_app, mongo, "reviews_db")
    return TestClient(review_app)


@pytest.fixture
def session_api(mongo):
    attach_db(session_app, mongo, "sessions_db")
    return TestClient(session_app)


@pytest.fixture
def user_api(mongo):
    attach_db(user_app, mongo, "users_db")
    return TestClient(user_app)


def cart_item(item_id, price, quantity, size="Medium", **extra):
    body = {
        "customerId": "cust-1",
        "restaurantId": "rest-1",
        "itemId": item_id,
        "itemName": f"Item {item_id}",
        "quantity": quantity,
        "price": price,
        "potionSize": size,
        "image": f"https://img.test/{item_id}.png",
    }
    body.update(extra)
    return body


@pytest.fixture
def filled_cart(cart_api):
    """The two-line cart used in the order examples: 2 x 10.0 and 1 x 5.0."""
    cart_api.post("/cart/add", json=cart_item("i1", 10.0, 2))
    response = cart_api.post("/cart/add", json=cart_item("i2", 5.0, 1, size="Large"))
    assert response.status_code == 200
    return response.json()["data"]
