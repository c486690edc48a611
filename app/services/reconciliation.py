from typing import Any, Mapping

from loguru import logger

from app.core.constants import NotificationType
from app.core.exceptions.domain import MalformedTokenError, ValidationError
from app.core.types import (
    AndroidSubscriptionPurchaseDict,
    LegacyReceiptItemDict,
    NotificationClaimsDict,
    TransactionClaimsDict,
)
from app.core.utils import optional_str, parse_millis, strip_order_suffix
from app.repos.subscription_store import SubscriptionStore
from app.schemas import (
    Platform,
    StoreEnvironment,
    SubscriptionDefaults,
    SubscriptionPatch,
    SubscriptionRecord,
    SubscriptionStatus,
)
from app.services.token_codec import TokenCodec

NOTIFICATION_STATUSES: dict[str, SubscriptionStatus] = {
    NotificationType.SUBSCRIBED: SubscriptionStatus.ACTIVE,
    NotificationType.DID_RENEW: SubscriptionStatus.ACTIVE,
    NotificationType.EXPIRED: SubscriptionStatus.EXPIRED,
    NotificationType.DID_FAIL_TO_RENEW: SubscriptionStatus.GRACE_PERIOD,
}

# Google Play purchaseType of a license-tester purchase
ANDROID_TEST_PURCHASE = 0


def status_for_notification(notification_type: str) -> SubscriptionStatus | None:
    """Status a notification type maps to; None leaves the status unchanged"""
    return NOTIFICATION_STATUSES.get(notification_type)


def parse_environment(value: Any, default: StoreEnvironment) -> StoreEnvironment:
    if value is None:
        return default

    try:
        return StoreEnvironment(value)
    except ValueError:
        logger.warning(f"Unknown store environment {value!r}, using {default.value}")
        return default


def require_original_transaction_id(claims: Any, source: str) -> str:
    """
    Raises:
        ValidationError: If claims are not a mapping or lack originalTransactionId
    """
    if not isinstance(claims, Mapping):
        raise ValidationError(f"{source} claims must be an object")

    original_transaction_id = optional_str(claims.get("originalTransactionId"))

    if original_transaction_id is None:
        logger.error(f"{source} claims without originalTransactionId")
        raise ValidationError(f"{source} is missing originalTransactionId")

    return original_transaction_id


def patch_from_transaction(
    claims: TransactionClaimsDict,
    default_environment: StoreEnvironment,
) -> SubscriptionPatch:
    """Patch for a StoreKit 2 transaction verified through the App Store Server API"""
    original_transaction_id = require_original_transaction_id(claims, "Transaction")

    return SubscriptionPatch(
        original_transaction_id=original_transaction_id,
        transaction_id=optional_str(claims.get("transactionId")),
        product_id=optional_str(claims.get("productId")),
        purchase_date=parse_millis(claims.get("purchaseDate"), "purchaseDate"),
        expiration_date=parse_millis(claims.get("expiresDate"), "expiresDate"),
        environment=parse_environment(claims.get("environment"), default_environment),
        platform=Platform.APPLE,
        status=SubscriptionStatus.ACTIVE,
    )


def select_latest_receipt_item(items: list[LegacyReceiptItemDict]) -> LegacyReceiptItemDict:
    """
    Pick the newest entry of latest_receipt_info: the greatest expires_date_ms,
    or purchase_date_ms for entries that never expire.
    """

    def sort_key(item: LegacyReceiptItemDict) -> int:
        expires = parse_millis(item.get("expires_date_ms"), "expires_date_ms")
        if expires is not None:
            return expires

        return parse_millis(item.get("purchase_date_ms"), "purchase_date_ms") or 0

    return max(items, key=sort_key)


def patch_from_legacy_receipt(
    response: Mapping[str, Any],
    default_environment: StoreEnvironment,
) -> SubscriptionPatch | None:
    """
    Patch for a verifyReceipt response, or None when it holds no
    latest_receipt_info entry.

    Raises:
        ValidationError: If the selected entry is incomplete or its dates are not numeric
    """
    items = response.get("latest_receipt_info") or []

    if not isinstance(items, list):
        raise ValidationError("latest_receipt_info must be a list")

    items = [item for item in items if isinstance(item, Mapping)]

    if not items:
        return None

    item = select_latest_receipt_item(items)
    original_transaction_id = optional_str(item.get("original_transaction_id"))

    if original_transaction_id is None:
        raise ValidationError("Receipt entry is missing original_transaction_id")

    return SubscriptionPatch(
        original_transaction_id=original_transaction_id,
        transaction_id=optional_str(item.get("transaction_id")),
        product_id=optional_str(item.get("product_id")),
        purchase_date=parse_millis(item.get("purchase_date_ms"), "purchase_date_ms"),
        expiration_date=parse_millis(item.get("expires_date_ms"), "expires_date_ms"),
        environment=parse_environment(response.get("environment"), default_environment),
        platform=Platform.APPLE_LEGACY,
        status=SubscriptionStatus.ACTIVE,
    )


def patch_from_android_subscription(
    subscription_id: str,
    token: str,
    purchase: AndroidSubscriptionPurchaseDict,
) -> SubscriptionPatch:
    """
    Patch for a Google Play subscription purchase.

    Renewals share the order id up to their "..N" suffix, which makes the
    stripped order id the lineage key.
    """
    order_id = optional_str(purchase.get("orderId"))
    original_transaction_id = strip_order_suffix(order_id) if order_id else token

    return SubscriptionPatch(
        original_transaction_id=original_transaction_id,
        transaction_id=order_id or token,
        product_id=subscription_id,
        purchase_date=parse_millis(purchase.get("startTimeMillis"), "startTimeMillis"),
        expiration_date=parse_millis(purchase.get("expiryTimeMillis"), "expiryTimeMillis"),
        environment=(
            StoreEnvironment.SANDBOX
            if purchase.get("purchaseType") == ANDROID_TEST_PURCHASE
            else StoreEnvironment.PRODUCTION
        ),
        platform=Platform.ANDROID,
        status=SubscriptionStatus.ACTIVE,
    )


class ReconciliationEngine:
    """
    Derives subscription records from store verifications and App Store
    Server Notifications and merges them into the subscription store.
    """

    def __init__(
        self,
        store: SubscriptionStore,
        default_environment: StoreEnvironment = StoreEnvironment.PRODUCTION,
    ):
        """
        Args:
            store: Where records are persisted
            default_environment: Used when verification claims carry no environment
        """
        self.store = store
        self.default_environment = default_environment

    async def record_transaction(self, claims: TransactionClaimsDict) -> SubscriptionRecord:
        """
        Persist a verified App Store transaction as ACTIVE.

        Raises:
            ValidationError: If the claims lack originalTransactionId or hold bad dates
            PersistenceError: If the store cannot be written
        """
        patch = patch_from_transaction(claims, self.default_environment)

        return await self.store.upsert(patch)

    async def record_legacy_receipt(
        self, response: Mapping[str, Any]
    ) -> SubscriptionRecord | None:
        """
        Persist the newest lineage of a verified legacy receipt as ACTIVE.

        Returns:
            SubscriptionRecord | None: None when the receipt has no subscription entries
        """
        patch = patch_from_legacy_receipt(response, self.default_environment)

        if patch is None:
            logger.info("Legacy receipt has no latest_receipt_info, nothing persisted")
            return None

        return await self.store.upsert(patch)

    async def record_android_purchase(
        self,
        product_id: str,
        token: str,
        purchase: Mapping[str, Any],
        is_subscription: bool,
    ) -> SubscriptionRecord | None:
        """
        Persist a verified Google Play subscription as ACTIVE.

        One-time products have no lineage and are never persisted.
        """
        if not is_subscription:
            return None

        patch = patch_from_android_subscription(product_id, token, purchase)

        return await self.store.upsert(patch)

    async def apply_notification(
        self,
        notification_type: str,
        transaction_info: TransactionClaimsDict,
    ) -> SubscriptionRecord:
        """
        Merge an App Store Server Notification into the store.

        The resulting status depends only on the notification type, so a
        redelivered notification leaves the record as it was (bar updatedAt).

        Args:
            notification_type: e.g. "DID_RENEW"
            transaction_info: Decoded signedTransactionInfo of the notification

        Raises:
            ValidationError: If transaction_info lacks originalTransactionId
            PersistenceError: If the store cannot be written
        """
        original_transaction_id = require_original_transaction_id(
            transaction_info, "Notification transaction"
        )
        transaction_id = optional_str(transaction_info.get("transactionId"))
        expiration_date = parse_millis(transaction_info.get("expiresDate"), "expiresDate")
        status = status_for_notification(notification_type)

        if status is None:
            logger.info(f"Notification type {notification_type} does not change status")

        def resolve(
            existing: SubscriptionRecord | None,
        ) -> tuple[SubscriptionPatch, SubscriptionDefaults | None]:
            if existing is not None:
                return (
                    SubscriptionPatch(
                        original_transaction_id=original_transaction_id,
                        latest_transaction_id=transaction_id,
                        expiration_date=expiration_date,
                        last_notification_type=notification_type,
                        status=status,
                    ),
                    None,
                )

            logger.info(
                f"Notification {notification_type} for unknown lineage "
                f"{original_transaction_id}, creating it"
            )

            return (
                SubscriptionPatch(
                    original_transaction_id=original_transaction_id,
                    transaction_id=transaction_id,
                    latest_transaction_id=transaction_id,
                    product_id=optional_str(transaction_info.get("productId")),
                    purchase_date=parse_millis(
                        transaction_info.get("purchaseDate"), "purchaseDate"
                    ),
                    expiration_date=expiration_date,
                    environment=parse_environment(
                        transaction_info.get("environment"), StoreEnvironment.PRODUCTION
                    ),
                    platform=Platform.APPLE,
                    status=status,
                    last_notification_type=notification_type,
                ),
                SubscriptionDefaults(
                    environment=StoreEnvironment.PRODUCTION,
                    platform=Platform.APPLE,
                    status=SubscriptionStatus.ACTIVE,
                ),
            )

        return await self.store.reconcile(original_transaction_id, resolve)

    async def handle_signed_notification(
        self,
        signed_payload: str,
        codec: TokenCodec,
    ) -> tuple[str, SubscriptionRecord]:
        """
        Decode an App Store Server Notification V2 and apply it.

        Returns:
            tuple: The notification type and the persisted record

        Raises:
            MalformedTokenError: If the payload or its transaction cannot be decoded
            ValidationError: If required notification fields are missing
        """
        claims: NotificationClaimsDict = codec.decode_or_raise(
            signed_payload, "notification payload"
        )

        notification_type = optional_str(claims.get("notificationType"))
        if notification_type is None:
            raise ValidationError("Notification is missing notificationType")

        data = claims.get("data")
        signed_transaction_info = data.get("signedTransactionInfo") if isinstance(data, Mapping) else None
        if not signed_transaction_info:
            raise MalformedTokenError("Notification is missing data.signedTransactionInfo")

        transaction_info = codec.decode_or_raise(signed_transaction_info, "signedTransactionInfo")

        logger.info(
            f"Applying notification {notification_type} "
            f"({claims.get('notificationUUID', 'no uuid')})"
        )

        record = await self.apply_notification(notification_type, transaction_info)

        return notification_type, record

    async def list_subscriptions(self) -> list[SubscriptionRecord]:
        return await self.store.list()
