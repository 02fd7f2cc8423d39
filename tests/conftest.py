"""
Test configuration and fixtures for the storefront API.

DATABASE_URL points at a throwaway SQLite file before the app is imported;
the schema is created once per session and every table is emptied before
each test.
"""

import asyncio
import os
import tempfile
from decimal import Decimal
from typing import Generator
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

test_db_path = tempfile.mktemp(suffix=".db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_path}"
os.environ.setdefault("LIQPAY_PUBLIC_KEY", "sandbox_public")
os.environ.setdefault("LIQPAY_PRIVATE_KEY", "sandbox_private")
os.environ.pop("REDIS_URL", None)

from app.features.auth.models.user import User  # noqa: E402
from app.features.auth.utils.security import create_access_token, hash_password  # noqa: E402
from app.features.payments.services.checkout import CheckoutBuilder, LiqPayCredentials  # noqa: E402
from app.features.payments.services.payment_service import PaymentService, get_payment_service  # noqa: E402
from app.features.products.models.product import Product  # noqa: E402
from app.platform.cache.store import InMemoryStore  # noqa: E402
from app.platform.db.models import Base  # noqa: E402
from app.platform.db.session import SessionLocal, engine  # noqa: E402


async def _create_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


async def _truncate():
    async with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())


async def _add(*objects):
    async with SessionLocal() as session:
        session.add_all(objects)
        await session.commit()
    return objects


@pytest.fixture(scope="session", autouse=True)
def database_schema():
    asyncio.run(_create_schema())
    yield
    asyncio.run(engine.dispose())
    if os.path.exists(test_db_path):
        os.remove(test_db_path)


@pytest.fixture(autouse=True)
def clean_tables(database_schema):
    asyncio.run(_truncate())
    yield


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from app.main import app

    return app


@pytest.fixture
def email_sender():
    sender = MagicMock(return_value="<message-id@test>")
    return sender


@pytest.fixture
def checkout_builder():
    credentials = LiqPayCredentials(
        public_key="sandbox_public",
        private_key="sandbox_private",
        checkout_url="https://www.liqpay.ua/api/3/checkout",
        sandbox=True,
    )
    return CheckoutBuilder(
        credentials,
        frontend_url="https://shop.example.com",
        server_url="https://api.example.com/api/v1/payments/webhook",
    )


@pytest.fixture
def payment_service(checkout_builder, email_sender):
    return PaymentService(InMemoryStore(), checkout_builder, send_verification_email=email_sender)


@pytest.fixture(scope="function")
def client(test_app, payment_service) -> Generator[TestClient, None, None]:
    """
    Create a test client for making HTTP requests.
    The payment service is replaced by one backed by an in-memory store and a
    mocked email sender.
    """
    test_app.dependency_overrides[get_payment_service] = lambda: payment_service
    with TestClient(test_app) as test_client:
        yield test_client
    test_app.dependency_overrides.pop(get_payment_service, None)


@pytest.fixture
def make_user():
    """Factory inserting a user row; returns (user, bearer token)."""

    def _make_user(email="buyer@example.com", name="Olena Buyer", password="Secret123", is_admin=False):
        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password) if password else None,
            auth_provider="email",
            is_admin=is_admin,
        )
        asyncio.run(_add(user))
        return user, create_access_token(data={"sub": user.id, "email": user.email})

    return _make_user


@pytest.fixture
def make_product():
    def _make_product(title="Spring songbook", price="150.00"):
        product = Product(title=title, description=f"{title} (PDF)", price=Decimal(price))
        asyncio.run(_add(product))
        return product

    return _make_product


@pytest.fixture
def auth_client(client, make_user):
    """Client sending a valid bearer token for a regular user."""
    user, token = make_user()
    client.headers.update({"Authorization": f"Bearer {token}"})
    client.user = user
    yield client
    client.headers.pop("Authorization", None)


@pytest_asyncio.fixture
async def db_session():
    async with SessionLocal() as session:
        yield session
