import io
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from gcloud.aio.auth import Token
from loguru import logger
from yarl import URL

from app.core.config import settings
from app.core.constants import StoreURL
from app.core.exceptions.domain import ValidationError
from app.core.exceptions.google_play import (
    GooglePlayAuthenticationException,
    GooglePlayConnectionErrorException,
    GooglePlayNotConfiguredException,
    GooglePlayPurchaseNotFoundException,
)


@dataclass(init=False)
class GooglePlayGateway:
    """
    Async client for the Google Play Developer (Android Publisher v3) API.

    Authenticates with a service account through gcloud-aio-auth and reads
    purchase state for one-time products and subscriptions.

    Example usage:
        gateway = GooglePlayGateway()
        purchase = await gateway.verify_subscription("premium_monthly", purchase_token)
        await gateway.close()
    """

    _token: Token | None = field(default=None)
    _session: aiohttp.ClientSession | None = field(default=None)

    def __init__(
        self,
        service_account_info: str | None = None,
        package_name: str | None = None,
        timeout: float | None = None,
    ):
        """
        Args:
            service_account_info: Key file path or service account JSON, settings when omitted
            package_name: Android package name, settings when omitted
            timeout: Total timeout of a store call in seconds
        """
        self._service_account_info = service_account_info or settings.google_service_account_info
        self._package_name = package_name or settings.google_play_package_name
        self._timeout = timeout or settings.store_request_timeout
        self._token = None
        self._session = None

        if self._service_account_info is None:
            logger.warning("Google service account missing, Android verification disabled")

    @property
    def is_configured(self) -> bool:
        return self._service_account_info is not None and bool(self._package_name)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )

        return self._session

    async def _access_token(self) -> str:
        """
        Raises:
            GooglePlayNotConfiguredException: If no service account is configured
            GooglePlayAuthenticationException: If no access token can be obtained
        """
        if not self.is_configured:
            raise GooglePlayNotConfiguredException(
                "Google service account or package name not configured"
            )

        if self._token is None:
            service_file: str | io.StringIO = self._service_account_info

            if self._service_account_info.lstrip().startswith("{"):
                service_file = io.StringIO(self._service_account_info)

            try:
                self._token = Token(
                    service_file=service_file,
                    session=await self._get_session(),
                    scopes=[StoreURL.ANDROID_PUBLISHER_SCOPE],
                )
            except Exception as err:
                logger.exception("Invalid Google service account")
                raise GooglePlayAuthenticationException(
                    "Invalid Google service account", err
                ) from err

        try:
            return await self._token.get()
        except Exception as err:
            logger.exception("Failed to obtain Google access token")
            raise GooglePlayAuthenticationException(
                f"Failed to obtain Google access token: {err}", err
            ) from err

    async def _get_purchase(self, url: URL, what: str) -> dict[str, Any]:
        access_token = await self._access_token()
        session = await self._get_session()

        try:
            async with session.get(
                str(url), headers={"Authorization": f"Bearer {access_token}"}
            ) as response:
                if response.status in (404, 410):
                    logger.error(f"{what} not found on Google Play")
                    raise GooglePlayPurchaseNotFoundException(f"{what} not found on Google Play")
                if response.status == 401:
                    raise GooglePlayAuthenticationException(
                        "Google Play rejected the access token"
                    )
                if response.status >= 400:
                    error_text = await response.text()
                    logger.error(f"Android Publisher HTTP {response.status}: {error_text}")
                    raise GooglePlayConnectionErrorException(
                        f"Google Play verification failed: HTTP {response.status}"
                    )

                purchase = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError, ValueError) as err:
            logger.exception(f"Android Publisher request failed for {what}")
            raise GooglePlayConnectionErrorException(
                f"Google Play verification failed: {err!r}", err
            ) from err

        if not isinstance(purchase, dict):
            logger.error(f"Android Publisher returned a non-object body for {what}")
            raise GooglePlayConnectionErrorException(
                "Google Play verification failed: unexpected response body"
            )

        return purchase

    def _purchases_url(self, kind: str, product_id: str, token: str) -> URL:
        if not product_id or not token:
            raise ValidationError("productId and token are required")

        return (
            StoreURL.ANDROID_PUBLISHER
            / "applications"
            / self._package_name
            / "purchases"
            / kind
            / product_id
            / "tokens"
            / token
        )

    async def verify_product(self, product_id: str, token: str) -> dict[str, Any]:
        """
        Read a one-time product purchase (purchases.products.get).

        Raises:
            ValidationError: If product_id or token is empty
            GooglePlayException: If the purchase cannot be read
        """
        url = self._purchases_url("products", product_id, token)
        logger.info(f"Verifying Android product purchase {product_id}")

        return await self._get_purchase(url, f"Product purchase {product_id}")

    async def verify_subscription(self, subscription_id: str, token: str) -> dict[str, Any]:
        """
        Read a subscription purchase (purchases.subscriptions.get).

        Raises:
            ValidationError: If subscription_id or token is empty
            GooglePlayException: If the purchase cannot be read
        """
        url = self._purchases_url("subscriptions", subscription_id, token)
        logger.info(f"Verifying Android subscription {subscription_id}")

        return await self._get_purchase(url, f"Subscription {subscription_id}")

    async def close(self) -> None:
        """Close the HTTP session shared with the token"""
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.info("Google Play session closed successfully")
