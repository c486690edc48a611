import pytest

from app.core.exceptions.domain import ValidationError
from app.core.utils import optional_str, parse_millis, strip_order_suffix


class TestParseMillis:
    """Test epoch millisecond coercion."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("1700000000000", 1700000000000),
            (" 1700000000000 ", 1700000000000),
            (1700000000000, 1700000000000),
            (1700000000000.0, 1700000000000),
            (None, None),
            ("", None),
        ],
    )
    def test_valid_values(self, value, expected):
        assert parse_millis(value, "purchase_date_ms") == expected

    @pytest.mark.parametrize("value", ["tomorrow", "17e11", "-5", "²", "١٧٠٠", 1.5, True, [], {}])
    def test_invalid_values(self, value):
        with pytest.raises(ValidationError, match="purchase_date_ms"):
            parse_millis(value, "purchase_date_ms")


class TestHelpers:
    def test_optional_str(self):
        assert optional_str(None) is None
        assert optional_str("  ") is None
        assert optional_str(1000) == "1000"
        assert optional_str(" abc ") == "abc"

    @pytest.mark.parametrize(
        "order_id, expected",
        [
            ("GPA.1234-5678-9012-34567", "GPA.1234-5678-9012-34567"),
            ("GPA.1234-5678-9012-34567..0", "GPA.1234-5678-9012-34567"),
            ("GPA.1234-5678-9012-34567..12", "GPA.1234-5678-9012-34567"),
        ],
    )
    def test_strip_order_suffix(self, order_id, expected):
        assert strip_order_suffix(order_id) == expected
