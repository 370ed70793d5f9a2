import json

import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.exceptions import PaymentSessionCreationFailed
from storefront.main import create_app
from storefront.models.product import Product
from storefront.models.users import User
from storefront.utils.hashing import get_password_hash
from storefront.utils.stripe_client import PaymentSession
from storefront.utils.tokenJWT import Principal, create_access_token
from storefront.utils.webhook_signature import sign_payload

WEBHOOK_SECRET = "whsec_test_secret"
DEFAULT_PASSWORD = "password123"


class FakeGateway:
    """Stands in for the payment processor; records every session request."""

    def __init__(self):
        self.calls = []
        self.fail = False

    async def create_session(self, **kwargs):
        self.calls.append(kwargs)
        if self.fail:
            raise PaymentSessionCreationFailed()
        n = len(self.calls)
        return PaymentSession(id=f"cs_test_{n}", url=f"https://checkout.test/pay/cs_test_{n}")


@pytest.fixture
def settings(tmp_path):
    # File-backed SQLite: parallel reads use their own connections in worker threads
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite:///{tmp_path / 'storefront-test.db'}",
        JWT_SECRET="test-jwt-secret",
        FRONTEND_BASE_URL="http://shop.test",
        STRIPE_SECRET_KEY="sk_test_123",
        STRIPE_WEBHOOK_SECRET=WEBHOOK_SECRET,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(settings, gateway):
    return create_app(settings, payment_gateway=gateway)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(client, app):
    session = app.state.db.session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    def _make(email="user@example.com", name="Test User", password=DEFAULT_PASSWORD, is_admin=False, enabled=True):
        user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            is_admin=is_admin,
            enabled=enabled,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_product(db):
    def _make(name="Product", price=1000, stock=5, sales_count=0, is_featured=False, **extra):
        product = Product(
            name=name, price=price, stock=stock, sales_count=sales_count, is_featured=is_featured, **extra
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


@pytest.fixture
def auth_headers(settings):
    def _headers(user):
        principal = Principal(user_id=user.id, name=user.name, email=user.email, is_admin=user.is_admin)
        return {"Authorization": f"Bearer {create_access_token(principal, settings)}"}

    return _headers


def completed_event(order_id, user_id, event_type="checkout.session.completed"):
    return json.dumps({
        "id": "evt_test_1",
        "type": event_type,
        "data": {"object": {"id": "cs_test_1", "metadata": {"orderId": str(order_id), "userId": str(user_id)}}},
    }).encode("utf-8")


def signed_headers(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None):
    return {"Stripe-Signature": sign_payload(payload, secret, timestamp), "Content-Type": "application/json"}


@pytest.fixture
def anyio_backend():
    return "asyncio"
