import asyncio
import hashlib
import hmac
import json
import os
import tempfile
import time

import pytest

# Environment must be in place before the app (and its engine) is imported
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("CLIENT_URL", "http://shop.test")

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import select, update  # noqa: E402

from storefront import config  # noqa: E402
from storefront.database import Base, async_session_maker, engine  # noqa: E402
from storefront.main import app  # noqa: E402
from storefront.models import Product, User  # noqa: E402

SHIPPING = {
    "full_name": "Jane Doe",
    "street": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "zip_code": "62701",
    "country": "US",
    "phone": "555-0100",
}


async def _reset_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


def run_db(fn, *args):
    """Run ``fn(session, *args)`` against the test database and return its result."""
    async def runner():
        async with async_session_maker() as session:
            result = await fn(session, *args)
            await session.commit()
            return result
    return asyncio.run(runner())


@pytest.fixture
def client():
    asyncio.run(_reset_db())
    with TestClient(app) as c:
        yield c


def register(client, email="user@example.com", password="password123", name="Test User"):
    r = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert r.status_code == 201, r.text
    # don't let the session cookie leak between simulated users
    client.cookies.clear()
    return {"Authorization": f"Bearer {r.json()['token']}"}


async def _promote(session, email):
    await session.execute(update(User).where(User.email == email).values(role="admin"))


async def _stock(session, product_id):
    res = await session.execute(select(Product.stock).where(Product.id == product_id))
    return res.scalar_one()


def product_stock(product_id):
    return run_db(_stock, product_id)


@pytest.fixture
def user_headers(client):
    return register(client)


@pytest.fixture
def admin_headers(client):
    headers = register(client, email="admin@example.com", name="Admin")
    run_db(_promote, "admin@example.com")
    return headers


def create_category(client, headers, name="Shirts", slug="shirts", **extra):
    r = client.post("/api/categories", json={"name": name, "slug": slug, **extra}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def create_product(client, headers, category_id, **overrides):
    data = {
        "name": "Basic Tee",
        "slug": "basic-tee",
        "description": "Plain cotton tee",
        "price": 20.0,
        "images": ["https://img.test/tee.jpg"],
        "category_id": category_id,
        "sizes": ["S", "M", "L"],
        "colors": ["Black"],
        "stock": 10,
    }
    data.update(overrides)
    r = client.post("/api/products", json=data, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture
def category(client, admin_headers):
    return create_category(client, admin_headers)


def sign_payload(payload: bytes, secret=None, timestamp=None) -> str:
    """Build a Stripe-Signature header value for ``payload``."""
    secret = secret or config.STRIPE_WEBHOOK_SECRET
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_completed_event(order_id, **session_fields) -> bytes:
    obj = {
        "id": "cs_test_123",
        "object": "checkout.session",
        "metadata": {"order_id": str(order_id)},
        "payment_intent": "pi_test_123",
        "payment_status": "paid",
        "customer_email": "buyer@example.com",
    }
    obj.update(session_fields)
    return json.dumps({
        "id": "evt_test_1",
        "object": "event",
        "type": "checkout.session.completed",
        "data": {"object": obj},
    }).encode()
