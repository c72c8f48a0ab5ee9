"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable, Generator
from contextlib import ExitStack
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient
from jwt.algorithms import ECAlgorithm

from tests.fakes import ITEM_A_ID, ITEM_B_ID, FakeSupabaseClient

# Signing key for test tokens; the public half is configured as the Supabase JWK
_TEST_SIGNING_KEY = ec.generate_private_key(ec.SECP256R1())

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ["SUPABASE_SIGNING_KEY_JWK"] = ECAlgorithm.to_jwk(_TEST_SIGNING_KEY.public_key())
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key_id")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "test_key_secret")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "test_webhook_secret")

SERVICE_MODULES = (
    "storefront.core.supabase",
    "storefront.services.catalog_service",
    "storefront.services.coupon_service",
    "storefront.services.order_service",
    "storefront.services.payment_service",
    "storefront.services.lifecycle_service",
    "storefront.services.profile_service",
)


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from storefront.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def signing_key_pem() -> str:
    """PEM of the private key matching SUPABASE_SIGNING_KEY_JWK."""
    return _TEST_SIGNING_KEY.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture
def fake_supabase() -> Generator[FakeSupabaseClient, None, None]:
    """Swap the Supabase client for an in-memory fake in every service module.

    Yields:
        FakeSupabaseClient: The shared fake database.
    """
    fake = FakeSupabaseClient()
    with ExitStack() as stack:
        for module in SERVICE_MODULES:
            stack.enter_context(patch(f"{module}.get_supabase_client", return_value=fake))
        yield fake


@pytest.fixture
def seeded_catalog(fake_supabase: FakeSupabaseClient) -> FakeSupabaseClient:
    """Catalog with a pizza (A) and a discounted drink (B)."""
    fake_supabase.seed(
        "menu_items",
        {
            "id": ITEM_A_ID,
            "name": "Margherita",
            "base_price": 200,
            "discount_price": None,
            "image_url": "https://img.example/a.png",
            "size_options": [
                {"name": "Regular", "extra_price": 0},
                {"name": "Large", "extra_price": 50},
            ],
            "extra_ingredients": [
                {"name": "Olives", "extra_price": 30},
                {"name": "Cheese", "extra_price": 40},
            ],
        },
        {
            "id": ITEM_B_ID,
            "name": "Cold Coffee",
            "base_price": 120,
            "discount_price": 99,
            "size_options": [],
            "extra_ingredients": [],
        },
    )
    return fake_supabase


@pytest.fixture
def gateway_orders() -> Generator[MagicMock, None, None]:
    """Replace Razorpay order creation with a mock returning unique order ids.

    Yields:
        MagicMock: The patched client.order.create, for call assertions.
    """
    counter = {"n": 0}

    def _create_order(data: dict[str, Any]) -> dict[str, Any]:
        counter["n"] += 1
        return {
            "id": f"order_test{counter['n']:04d}",
            "entity": "order",
            "amount": data["amount"],
            "currency": data["currency"],
            "receipt": data["receipt"],
            "status": "created",
        }

    from storefront.core.payment_gateway import get_payment_gateway

    gateway = get_payment_gateway()
    with patch.object(gateway.order, "create", MagicMock(side_effect=_create_order)) as mock_create:
        yield mock_create


@pytest.fixture
def make_principal() -> Callable[..., Any]:
    """Factory for request principals."""
    from storefront.schemas.auth import Principal

    def _make(email: str = "alice@example.com", is_admin: bool = False, is_banned: bool = False) -> Principal:
        return Principal(
            user_id=uuid4(),
            profile_id=uuid4(),
            email=email,
            display_name=email.split("@")[0],
            is_admin=is_admin,
            is_banned=is_banned,
        )

    return _make


@pytest.fixture
def client(fake_supabase: FakeSupabaseClient) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Dependency overrides set by a test are cleared afterwards.

    Yields:
        TestClient: FastAPI test client.
    """
    from storefront.main import app

    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(client: TestClient, make_principal: Callable[..., Any]) -> Callable[..., Any]:
    """Authenticate subsequent client requests as a principal.

    Bypasses token decoding and profile lookup by overriding
    get_current_principal; the banned and admin checks still run.
    """
    from storefront.api.deps import get_current_principal
    from storefront.main import app

    def _login(email: str = "alice@example.com", is_admin: bool = False, is_banned: bool = False) -> Any:
        principal = make_principal(email, is_admin=is_admin, is_banned=is_banned)
        app.dependency_overrides[get_current_principal] = lambda: principal
        return principal

    return _login
