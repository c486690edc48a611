from datetime import datetime
from enum import StrEnum

from pydantic import Field

from app.schemas.base import BaseSchema, CamelSchema


class StoreEnvironment(StrEnum):
    SANDBOX = "Sandbox"
    PRODUCTION = "Production"


class Platform(StrEnum):
    APPLE = "apple"
    APPLE_LEGACY = "apple_legacy"
    ANDROID = "android"


class SubscriptionStatus(StrEnum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    GRACE_PERIOD = "GRACE_PERIOD"


class SubscriptionRecord(CamelSchema):
    """One stored subscription lineage, keyed by its original transaction id"""

    original_transaction_id: str = Field(..., min_length=1)
    transaction_id: str
    latest_transaction_id: str | None = None
    product_id: str | None = None
    purchase_date: int | None = None  # epoch millis
    expiration_date: int | None = None  # epoch millis
    environment: StoreEnvironment
    platform: Platform
    status: SubscriptionStatus
    last_notification_type: str | None = None
    created_at: datetime
    updated_at: datetime


class SubscriptionPatch(CamelSchema):
    """
    Partial record applied through the store's upsert.

    A field left as None is absent: it never overwrites a stored value.
    """

    original_transaction_id: str = Field(..., min_length=1)
    transaction_id: str | None = None
    latest_transaction_id: str | None = None
    product_id: str | None = None
    purchase_date: int | None = None
    expiration_date: int | None = None
    environment: StoreEnvironment | None = None
    platform: Platform | None = None
    status: SubscriptionStatus | None = None
    last_notification_type: str | None = None


class SubscriptionDefaults(BaseSchema):
    """Values used only when an upsert creates a new record"""

    environment: StoreEnvironment | None = None
    platform: Platform | None = None
    status: SubscriptionStatus | None = None
