from typing import Any

from pydantic import Field

from app.schemas.base import CamelSchema
from app.schemas.subscription import StoreEnvironment, SubscriptionRecord

# ==================== Requests ====================


class AppleTransactionRequest(CamelSchema):
    transaction_id: str = Field(..., min_length=1, description="App Store transaction id")


class LegacyReceiptRequest(CamelSchema):
    receipt_data: str = Field(..., min_length=1, description="Base64 encoded app receipt")


class AndroidPurchaseRequest(CamelSchema):
    product_id: str = Field(..., min_length=1, description="Product or subscription id")
    token: str = Field(..., min_length=1, description="Google Play purchase token")
    is_subscription: bool = False


class DecodeTokenRequest(CamelSchema):
    token: str = Field(..., min_length=1)


class AppleWebhookRequest(CamelSchema):
    signed_payload: str = Field(
        ..., min_length=1, description="App Store Server Notification V2 signed payload"
    )


# ==================== Responses ====================


class AppleVerificationResponse(CamelSchema):
    success: bool = True
    environment: StoreEnvironment
    data: dict[str, Any]
    decoded: dict[str, Any] | None = None
    subscription: SubscriptionRecord | None = None


class LegacyReceiptResponse(CamelSchema):
    success: bool = True
    environment: StoreEnvironment
    data: dict[str, Any]
    subscription: SubscriptionRecord | None = None


class AndroidVerificationResponse(CamelSchema):
    success: bool = True
    data: dict[str, Any]
    subscription: SubscriptionRecord | None = None


class DecodeTokenResponse(CamelSchema):
    success: bool = True
    decoded: dict[str, Any]


class WebhookResponse(CamelSchema):
    success: bool = True
    notification_type: str
    subscription: SubscriptionRecord


class SubscriptionListResponse(CamelSchema):
    success: bool = True
    data: list[SubscriptionRecord]


class SubscriptionGroupResponse(CamelSchema):
    success: bool = True
    data: dict[str, Any]
