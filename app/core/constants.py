from yarl import URL


class NotificationType:
    """
    App Store Server Notification V2 types the reconciliation engine maps to a status.

    Every other type (REFUND, DID_CHANGE_RENEWAL_PREF, ...) is still recorded
    as lastNotificationType but leaves the status unchanged.
    """

    SUBSCRIBED = "SUBSCRIBED"
    DID_RENEW = "DID_RENEW"
    EXPIRED = "EXPIRED"
    DID_FAIL_TO_RENEW = "DID_FAIL_TO_RENEW"


class StoreURL:
    """Endpoints of the Apple and Google store APIs."""

    # Legacy verifyReceipt
    RECEIPT_PRODUCTION = URL("https://buy.itunes.apple.com/verifyReceipt")
    RECEIPT_SANDBOX = URL("https://sandbox.itunes.apple.com/verifyReceipt")

    # App Store Connect API
    APP_STORE_CONNECT = URL("https://api.appstoreconnect.apple.com/v1")

    # Google Play Developer API
    ANDROID_PUBLISHER = URL("https://androidpublisher.googleapis.com/androidpublisher/v3")
    ANDROID_PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"


# verifyReceipt "status" for a valid receipt
RECEIPT_STATUS_OK = 0

# App Store Connect tokens must expire within 20 minutes
APP_STORE_CONNECT_TOKEN_TTL = 300
