from .base import BaseSchema, CamelSchema
from .healthcheck import HealthCheckResponse
from .credentials import AppStoreConnectCredentials, AppStoreCredentials
from .subscription import (
    Platform,
    StoreEnvironment,
    SubscriptionDefaults,
    SubscriptionPatch,
    SubscriptionRecord,
    SubscriptionStatus,
)
from .verification import (
    AndroidPurchaseRequest,
    AndroidVerificationResponse,
    AppleTransactionRequest,
    AppleVerificationResponse,
    AppleWebhookRequest,
    DecodeTokenRequest,
    DecodeTokenResponse,
    LegacyReceiptRequest,
    LegacyReceiptResponse,
    SubscriptionGroupResponse,
    SubscriptionListResponse,
    WebhookResponse,
)

__all__ = [
    "BaseSchema",
    "CamelSchema",
    "HealthCheckResponse",
    "AppStoreConnectCredentials",
    "AppStoreCredentials",
    "Platform",
    "StoreEnvironment",
    "SubscriptionDefaults",
    "SubscriptionPatch",
    "SubscriptionRecord",
    "SubscriptionStatus",
    "AndroidPurchaseRequest",
    "AndroidVerificationResponse",
    "AppleTransactionRequest",
    "AppleVerificationResponse",
    "AppleWebhookRequest",
    "DecodeTokenRequest",
    "DecodeTokenResponse",
    "LegacyReceiptRequest",
    "LegacyReceiptResponse",
    "SubscriptionGroupResponse",
    "SubscriptionListResponse",
    "WebhookResponse",
]
