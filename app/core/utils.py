import re
from datetime import UTC, datetime
from typing import Any

from app.core.exceptions.domain import ValidationError

ANDROID_RENEWAL_SUFFIX = re.compile(r"\.\.\d+$")


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_millis(value: Any, field_name: str) -> int | None:
    """
    Parse an epoch-millisecond value into an int.

    Legacy receipts and Google Play send these as strings ("1700000000000"),
    StoreKit 2 claims as numbers.

    Args:
        value: The raw claim value
        field_name: Claim name used in the error message

    Returns:
        int | None: Milliseconds, or None when the claim is absent

    Raises:
        ValidationError: If the value is not an integral number
    """
    if value is None or value == "":
        return None

    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be epoch milliseconds, got {value!r}")

    if isinstance(value, int):
        return value

    if isinstance(value, float) and value.is_integer():
        return int(value)

    if isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        return int(value.strip())

    raise ValidationError(f"{field_name} must be epoch milliseconds, got {value!r}")


def optional_str(value: Any) -> str | None:
    """Return a claim as a non-empty string, or None"""
    if value is None:
        return None

    text = str(value).strip()

    return text or None


def strip_order_suffix(order_id: str) -> str:
    """
    Remove the renewal suffix Google Play appends to subscription order ids.

    "GPA.1234-5678-9012-34567..2" -> "GPA.1234-5678-9012-34567"
    """
    return ANDROID_RENEWAL_SUFFIX.sub("", order_id)
