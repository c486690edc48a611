from typing import TypedDict


class TransactionClaimsDict(TypedDict, total=False):
    """Decoded JWSTransaction payload (App Store Server API, StoreKit 2)."""

    originalTransactionId: str
    transactionId: str
    productId: str
    purchaseDate: int  # Epoch millis
    expiresDate: int  # Epoch millis, subscriptions only
    environment: str  # "Sandbox" or "Production"
    bundleId: str
    webOrderLineItemId: str


class NotificationDataDict(TypedDict, total=False):
    """The "data" object of an App Store Server Notification V2."""

    bundleId: str
    bundleVersion: str
    environment: str
    signedTransactionInfo: str
    signedRenewalInfo: str


class NotificationClaimsDict(TypedDict, total=False):
    """Decoded App Store Server Notification V2 signedPayload."""

    notificationType: str
    subtype: str
    notificationUUID: str
    version: str
    signedDate: int
    data: NotificationDataDict


class LegacyReceiptItemDict(TypedDict, total=False):
    """An entry of latest_receipt_info in a verifyReceipt response. Dates are strings."""

    original_transaction_id: str
    transaction_id: str
    product_id: str
    purchase_date_ms: str
    expires_date_ms: str


class AndroidSubscriptionPurchaseDict(TypedDict, total=False):
    """purchases.subscriptions resource (Android Publisher v3). Dates are strings."""

    orderId: str
    startTimeMillis: str
    expiryTimeMillis: str
    purchaseType: int  # 0 = test, 1 = promo, 2 = rewarded
    linkedPurchaseToken: str
