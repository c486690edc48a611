from typing import Callable
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from faker import Faker

from app.schemas import AppStoreConnectCredentials, AppStoreCredentials, StoreEnvironment


@pytest.fixture(scope="session")
def ec_private_key() -> str:
    """A real P-256 key in PEM, as App Store Connect issues them."""
    key = ec.generate_private_key(ec.SECP256R1())

    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def app_store_credentials(faker: Faker, ec_private_key: str) -> AppStoreCredentials:
    return AppStoreCredentials(
        private_key=ec_private_key,
        key_id=faker.lexify(text="??????????", letters="ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"),
        issuer_id=faker.uuid4(),
        bundle_id="com.example.app",
    )


@pytest.fixture
def app_store_connect_credentials(faker: Faker, ec_private_key: str) -> AppStoreConnectCredentials:
    return AppStoreConnectCredentials(
        private_key=ec_private_key,
        key_id=faker.lexify(text="??????????", letters="ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"),
        issuer_id=faker.uuid4(),
    )


@pytest.fixture
def store_settings() -> Mock:
    """Settings without any store credentials."""
    settings = Mock()
    settings.app_store_credentials = None
    settings.app_store_connect_credentials = None
    settings.apple_environment = StoreEnvironment.SANDBOX
    settings.apple_shared_secret = None
    settings.store_request_timeout = 5.0
    settings.google_service_account_info = None
    settings.google_play_package_name = "com.example.app"
    return settings


@pytest.fixture
def http_response() -> Callable[..., MagicMock]:
    """Build the async context manager aiohttp returns from session.get/post."""

    def _http_response(
        status: int, payload=None, text: str = "", json_error: Exception | None = None
    ) -> MagicMock:
        response = Mock()
        response.status = status
        response.json = AsyncMock(return_value=payload, side_effect=json_error)
        response.text = AsyncMock(return_value=text)

        context = MagicMock()
        context.__aenter__ = AsyncMock(return_value=response)
        context.__aexit__ = AsyncMock(return_value=False)
        return context

    return _http_response


@pytest.fixture
def mock_session() -> Mock:
    session = Mock()
    session.closed = False
    session.close = AsyncMock()
    return session
