from pathlib import Path
from typing import AsyncGenerator, Callable
from unittest.mock import AsyncMock, Mock

import pytest
from faker import Faker
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from jose import jwt

from app.api.v1.deps.services import (
    get_app_store_gateway,
    get_google_play_gateway,
    get_reconciliation_engine,
    get_subscription_store,
    get_token_codec,
)
from app.main import app
from app.repos.subscription_store import SubscriptionStore
from app.schemas import StoreEnvironment
from app.services.payments.app_store import AppStoreGateway
from app.services.payments.google_play import GooglePlayGateway
from app.services.reconciliation import ReconciliationEngine
from app.services.token_codec import TokenCodec

# Signature is never verified, any key produces a decodable token
SIGNING_KEY = "test-signing-key"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def faker() -> Faker:
    """Create a Faker instance for generating test data."""
    return Faker()


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "subscriptions.json"


@pytest.fixture
def store(store_path: Path) -> SubscriptionStore:
    """Empty subscription store backed by a temporary file."""
    return SubscriptionStore(store_path)


@pytest.fixture
def engine(store: SubscriptionStore) -> ReconciliationEngine:
    return ReconciliationEngine(store, default_environment=StoreEnvironment.PRODUCTION)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec()


@pytest.fixture
def sign() -> Callable[[dict], str]:
    """Encode claims as a compact JWS."""

    def _sign(claims: dict) -> str:
        return jwt.encode(claims, SIGNING_KEY, algorithm="HS256")

    return _sign


@pytest.fixture
def transaction_claims(faker: Faker) -> dict:
    """Decoded signedTransactionInfo of a monthly subscription."""
    purchase_date = 1_700_000_000_000

    return {
        "originalTransactionId": str(faker.random_number(digits=15, fix_len=True)),
        "transactionId": str(faker.random_number(digits=15, fix_len=True)),
        "productId": "com.example.premium.monthly",
        "bundleId": "com.example.app",
        "purchaseDate": purchase_date,
        "expiresDate": purchase_date + 30 * 24 * 3600 * 1000,
        "environment": "Sandbox",
    }


@pytest.fixture
def notification_payload(sign: Callable[[dict], str]) -> Callable[[str, dict], str]:
    """Build the signedPayload of an App Store Server Notification V2."""

    def _notification_payload(notification_type: str, transaction_info: dict) -> str:
        return sign(
            {
                "notificationType": notification_type,
                "notificationUUID": "8b4b5c6a-1111-2222-3333-444455556666",
                "version": "2.0",
                "data": {
                    "bundleId": "com.example.app",
                    "environment": transaction_info.get("environment", "Production"),
                    "signedTransactionInfo": sign(transaction_info),
                },
            }
        )

    return _notification_payload


@pytest.fixture
def mock_app_store_gateway() -> Mock:
    gateway = Mock(spec=AppStoreGateway)
    gateway.current_environment = StoreEnvironment.PRODUCTION
    gateway.fetch_transaction = AsyncMock()
    gateway.verify_legacy_receipt = AsyncMock()
    gateway.get_subscription_group_subscriptions = AsyncMock()
    return gateway


@pytest.fixture
def mock_google_play_gateway() -> Mock:
    gateway = Mock(spec=GooglePlayGateway)
    gateway.verify_product = AsyncMock()
    gateway.verify_subscription = AsyncMock()
    return gateway


@pytest.fixture
def test_app(
    store: SubscriptionStore,
    engine: ReconciliationEngine,
    codec: TokenCodec,
    mock_app_store_gateway: Mock,
    mock_google_play_gateway: Mock,
):
    """The application with its services replaced by per-test instances."""
    app.dependency_overrides[get_subscription_store] = lambda: store
    app.dependency_overrides[get_reconciliation_engine] = lambda: engine
    app.dependency_overrides[get_token_codec] = lambda: codec
    app.dependency_overrides[get_app_store_gateway] = lambda: mock_app_store_gateway
    app.dependency_overrides[get_google_play_gateway] = lambda: mock_google_play_gateway

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
        yield ac
