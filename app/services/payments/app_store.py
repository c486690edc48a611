import time
from dataclasses import dataclass, field
from typing import Any

import aiohttp
from appstoreserverlibrary.api_client import APIException, AsyncAppStoreServerAPIClient
from appstoreserverlibrary.models.Environment import Environment
from appstoreserverlibrary.models.TransactionInfoResponse import TransactionInfoResponse
from jose import jwt
from jose.exceptions import JOSEError
from loguru import logger

from app.core.config import settings
from app.core.constants import APP_STORE_CONNECT_TOKEN_TTL, RECEIPT_STATUS_OK, StoreURL
from app.core.exceptions.app_store import (
    AppStoreClientNotInitializedException,
    AppStoreConnectionErrorException,
    AppStoreInvalidCredentialsException,
    AppStoreNotFoundException,
    AppStoreRateLimitExceededException,
    AppStoreReceiptException,
)
from app.core.exceptions.domain import ValidationError
from app.schemas import AppStoreConnectCredentials, AppStoreCredentials, StoreEnvironment

LIBRARY_ENVIRONMENTS = {
    StoreEnvironment.PRODUCTION: Environment.PRODUCTION,
    StoreEnvironment.SANDBOX: Environment.SANDBOX,
}


@dataclass
class AppStoreGateway:
    """
    Apple store gateway.

    Wraps the three Apple APIs the service talks to:
    - App Store Server API (transaction lookup) through app-store-server-library
    - Legacy verifyReceipt endpoint
    - App Store Connect API (subscription groups)

    Calls are never retried here; failures surface as AppStoreException,
    which the API layer reports as a verification failure.
    """

    _client: AsyncAppStoreServerAPIClient | None = field(init=False, default=None)
    _session: aiohttp.ClientSession | None = field(init=False, default=None)
    _credentials: AppStoreCredentials | None = field(init=False, default=None)
    _connect_credentials: AppStoreConnectCredentials | None = field(init=False, default=None)
    _environment: StoreEnvironment = field(init=False, default=StoreEnvironment.PRODUCTION)

    def __init__(
        self,
        credentials: AppStoreCredentials | None = None,
        connect_credentials: AppStoreConnectCredentials | None = None,
        environment: StoreEnvironment | None = None,
        shared_secret: str | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the Apple store gateway.

        Args:
            credentials: App Store Server API credentials, settings when omitted
            connect_credentials: App Store Connect API credentials, settings when omitted
            environment: Sandbox or Production, settings when omitted
            shared_secret: App-specific shared secret for verifyReceipt
            timeout: Total timeout of a store call in seconds
        """
        self._credentials = credentials or settings.app_store_credentials
        self._connect_credentials = connect_credentials or settings.app_store_connect_credentials
        self._environment = environment or settings.apple_environment
        self._shared_secret = shared_secret or settings.apple_shared_secret
        self._timeout = timeout or settings.store_request_timeout
        self._client = None
        self._client_error = "App Store Server API credentials are not configured"
        self._session = None

        self.initialize_client()

    @property
    def client(self) -> AsyncAppStoreServerAPIClient:
        """
        Get the App Store Server API client instance.

        Raises:
            AppStoreClientNotInitializedException: If no credentials are configured
        """
        if self._client is None:
            raise AppStoreClientNotInitializedException(self._client_error)

        return self._client

    @property
    def current_environment(self) -> StoreEnvironment:
        return self._environment

    def initialize_client(self) -> None:
        """
        Initialize the App Store Server API client.

        Missing or invalid credentials leave the client uninitialized so that
        webhooks and the other stores keep working.
        """
        if self._credentials is None:
            logger.warning("App Store Server API credentials missing, transaction lookup disabled")
            return

        try:
            self._client = AsyncAppStoreServerAPIClient(
                signing_key=self._credentials.private_key.encode("utf-8"),
                key_id=self._credentials.key_id,
                issuer_id=self._credentials.issuer_id,
                bundle_id=self._credentials.bundle_id,
                environment=LIBRARY_ENVIRONMENTS[self._environment],
            )
            logger.info(
                f"App Store Server API client initialized ({self._environment.value})"
            )
        except Exception:
            logger.exception("Invalid App Store Server API credentials, lookup disabled")
            self._client = None
            self._client_error = "App Store Server API credentials are invalid"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )

        return self._session

    async def close_client(self) -> None:
        """
        Release the API client and the HTTP session.
        """
        if self._client is not None:
            await self._client.async_close()
            logger.info("App Store Server API client closed successfully")

        if self._session is not None and not self._session.closed:
            await self._session.close()

    def _validate_identifier(self, value: str, name: str) -> None:
        """
        Raises:
            ValidationError: If the identifier is empty or not a string
        """
        if not value or not isinstance(value, str) or not value.strip():
            logger.error(f"{name} is empty or invalid")
            raise ValidationError(f"{name} must be a non-empty string")

    async def fetch_transaction(self, transaction_id: str) -> dict[str, Any]:
        """
        Look up a transaction with the App Store Server API.

        Example:
            >>> gateway = AppStoreGateway()
            >>> response = await gateway.fetch_transaction("2000000000000001")
            >>> response["signedTransactionInfo"]

        Args:
            transaction_id: Any transaction id of the purchase

        Returns:
            dict: {"signedTransactionInfo": <JWS>}

        Raises:
            ValidationError: If transaction_id is empty
            AppStoreClientNotInitializedException: If credentials are missing
            AppStoreNotFoundException: If the transaction does not exist
            AppStoreInvalidCredentialsException: If Apple rejects the credentials
            AppStoreRateLimitExceededException: If rate limited
            AppStoreConnectionErrorException: For any other failure
        """
        self._validate_identifier(transaction_id, "Transaction ID")
        client = self.client

        try:
            logger.info(f"Fetching transaction {transaction_id} ({self._environment.value})")
            response: TransactionInfoResponse = await client.get_transaction_info(transaction_id)
        except APIException as err:
            if err.http_status_code in (400, 404):
                logger.error(f"Transaction {transaction_id} not found: {err}")
                raise AppStoreNotFoundException(
                    f"Transaction {transaction_id} not found in the App Store"
                ) from err
            elif err.http_status_code == 401:
                logger.exception("App Store Server API authentication failed")
                raise AppStoreInvalidCredentialsException("Invalid App Store credentials") from err
            elif err.http_status_code == 429:
                logger.exception(f"Rate limit exceeded for transaction: {transaction_id}")
                raise AppStoreRateLimitExceededException(
                    "App Store Server API rate limit exceeded"
                ) from err
            else:
                logger.exception(f"App Store Server API error ({err.http_status_code}): {err}")
                raise AppStoreConnectionErrorException(
                    f"Failed to fetch transaction: HTTP {err.http_status_code}"
                ) from err
        except Exception as err:
            logger.exception(f"Unexpected error fetching transaction {transaction_id}")
            raise AppStoreConnectionErrorException(
                f"Failed to fetch transaction: {err}", err
            ) from err

        return {"signedTransactionInfo": response.signedTransactionInfo}

    async def verify_legacy_receipt(self, receipt_data: str) -> dict[str, Any]:
        """
        Verify a base64 app receipt with the legacy verifyReceipt endpoint.

        Args:
            receipt_data: Base64 encoded receipt

        Returns:
            dict: The verifyReceipt response, including latest_receipt_info

        Raises:
            ValidationError: If receipt_data is empty
            AppStoreReceiptException: If Apple answers with a non-zero status
            AppStoreConnectionErrorException: If the call fails
        """
        self._validate_identifier(receipt_data, "Receipt data")

        url = (
            StoreURL.RECEIPT_PRODUCTION
            if self._environment == StoreEnvironment.PRODUCTION
            else StoreURL.RECEIPT_SANDBOX
        )
        body: dict[str, Any] = {
            "receipt-data": receipt_data,
            "exclude-old-transactions": True,
        }

        if self._shared_secret:
            body["password"] = self._shared_secret
        else:
            logger.warning(
                "Apple shared secret is not set, auto-renewable subscription receipts may fail"
            )

        session = await self._get_session()

        try:
            logger.info(f"Verifying legacy receipt at {url}")

            async with session.post(str(url), json=body) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    logger.error(f"verifyReceipt HTTP {response.status}: {error_text}")
                    raise AppStoreConnectionErrorException(
                        f"Receipt verification failed: HTTP {response.status}"
                    )

                data = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError, ValueError) as err:
            logger.exception("verifyReceipt request failed")
            raise AppStoreConnectionErrorException(
                f"Receipt verification failed: {err!r}", err
            ) from err

        if not isinstance(data, dict):
            logger.error(f"verifyReceipt returned a non-object body: {type(data).__name__}")
            raise AppStoreConnectionErrorException(
                "Receipt verification failed: unexpected response body"
            )

        status = data.get("status")

        if status != RECEIPT_STATUS_OK:
            logger.error(f"verifyReceipt rejected the receipt with status {status}")
            raise AppStoreReceiptException(
                f"Receipt verification failed with status {status}", status=status
            )

        return data

    def _generate_connect_token(self) -> str:
        """
        Sign a short-lived App Store Connect API token (ES256, no bundle id).

        Raises:
            AppStoreClientNotInitializedException: If the credentials are missing
            AppStoreInvalidCredentialsException: If the private key cannot sign
        """
        if self._connect_credentials is None:
            raise AppStoreClientNotInitializedException(
                "App Store Connect API credentials are not configured"
            )

        now = int(time.time())
        payload = {
            "iss": self._connect_credentials.issuer_id,
            "iat": now,
            "exp": now + APP_STORE_CONNECT_TOKEN_TTL,
            "aud": "appstoreconnect-v1",
        }

        try:
            return jwt.encode(
                payload,
                self._connect_credentials.private_key,
                algorithm="ES256",
                headers={"kid": self._connect_credentials.key_id, "typ": "JWT"},
            )
        except JOSEError as err:
            logger.exception("Failed to sign App Store Connect token")
            raise AppStoreInvalidCredentialsException(
                "Invalid App Store Connect private key", err
            ) from err

    async def get_subscription_group_subscriptions(self, group_id: str) -> dict[str, Any]:
        """
        List the subscriptions of a subscription group (App Store Connect API).

        Args:
            group_id: Subscription group id

        Returns:
            dict: The App Store Connect response document

        Raises:
            ValidationError: If group_id is empty
            AppStoreClientNotInitializedException: If credentials are missing
            AppStoreNotFoundException: If the group does not exist
            AppStoreInvalidCredentialsException: If Apple rejects the token
            AppStoreConnectionErrorException: For any other failure
        """
        self._validate_identifier(group_id, "Subscription group ID")
        token = self._generate_connect_token()
        url = StoreURL.APP_STORE_CONNECT / "subscriptionGroups" / group_id / "subscriptions"
        session = await self._get_session()

        try:
            logger.info(f"Fetching subscriptions of group {group_id}")

            async with session.get(
                str(url), headers={"Authorization": f"Bearer {token}"}
            ) as response:
                if response.status == 404:
                    raise AppStoreNotFoundException(f"Subscription group {group_id} not found")
                if response.status == 401:
                    raise AppStoreInvalidCredentialsException(
                        "App Store Connect rejected the credentials"
                    )
                if response.status >= 400:
                    error_text = await response.text()
                    logger.error(f"App Store Connect HTTP {response.status}: {error_text}")
                    raise AppStoreConnectionErrorException(
                        f"Failed to fetch subscription group: HTTP {response.status}"
                    )

                document = await response.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError, ValueError) as err:
            logger.exception(f"App Store Connect request failed for group {group_id}")
            raise AppStoreConnectionErrorException(
                f"Failed to fetch subscription group: {err!r}", err
            ) from err

        if not isinstance(document, dict):
            logger.error(f"App Store Connect returned a non-object body for group {group_id}")
            raise AppStoreConnectionErrorException(
                "Failed to fetch subscription group: unexpected response body"
            )

        return document
