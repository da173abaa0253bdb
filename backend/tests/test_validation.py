"""
Request parser tests.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from agrimarket.errors import ValidationError
from agrimarket.services.delivery_service import UNSET
from agrimarket.validation import (
    coerce_decimal,
    coerce_int,
    coerce_price,
    coerce_quantity,
    parse_delivery_update,
    parse_order_create,
    parse_pagination,
    parse_role_grant,
)


class TestCoercion:

    @pytest.mark.parametrize("value,expected", [(3, 3), ("42", 42), (" 7 ", 7)])
    def test_coerce_int(self, value, expected):
        assert coerce_int(value, "id") == expected

    @pytest.mark.parametrize("value", [True, 1.5, "1.5", "abc", None, [1]])
    def test_coerce_int_rejects(self, value):
        with pytest.raises(ValidationError):
            coerce_int(value, "id")

    def test_coerce_decimal_keeps_printed_float(self):
        assert coerce_decimal(2.5, "price") == Decimal("2.5")
        assert coerce_decimal("0.10", "price") == Decimal("0.10")

    @pytest.mark.parametrize("value", ["NaN", "Infinity", "ten", None, False])
    def test_coerce_decimal_rejects(self, value):
        with pytest.raises(ValidationError):
            coerce_decimal(value, "price")

    @pytest.mark.parametrize("value", ["1e30", "10000000", "0", "-1", "0.0004"])
    def test_coerce_quantity_rejects_out_of_range(self, value):
        with pytest.raises(ValidationError) as exc_info:
            coerce_quantity(value, "quantity")
        assert exc_info.value.details["field"] == "quantity"

    def test_coerce_quantity_upper_bound_is_inclusive(self):
        assert coerce_quantity("9999999.999", "quantity") == Decimal("9999999.999")

    @pytest.mark.parametrize("value", ["1e12", "100000", "-0.01"])
    def test_coerce_price_rejects_out_of_range(self, value):
        with pytest.raises(ValidationError):
            coerce_price(value, "proposedPrice")

    def test_coerce_price_allows_free_goods(self):
        assert coerce_price("0", "proposedPrice") == Decimal("0")


class TestParsers:

    def test_order_create_camel_and_snake(self):
        parsed = parse_order_create({
            "warehouse_id": "3",
            "paymentMethod": "cash",
            "items": [{"product_id": 1, "quantity": "2.5"}, {"productId": 2, "quantity": 1}],
        })

        assert parsed == {
            "client_id": None,
            "warehouse_id": 3,
            "payment_method": "CASH",
            "lines": [(1, Decimal("2.5")), (2, Decimal("1"))],
        }

    def test_order_line_quantity_is_bounded(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_order_create({
                "warehouseId": 1,
                "paymentMethod": "CASH",
                "items": [{"productId": 1, "quantity": 2}, {"productId": 2, "quantity": "1e30"}],
            })
        assert exc_info.value.details["field"] == "items[1].quantity"

    def test_delivery_update_distinguishes_absent_and_null(self):
        assert parse_delivery_update({"status": "in_transit"}) == {"driver_id": UNSET, "status": "IN_TRANSIT"}
        assert parse_delivery_update({"driverId": None}) == {"driver_id": None, "status": None}
        assert parse_delivery_update({"driverId": "9"})["driver_id"] == 9

    def test_delivery_update_requires_a_field(self):
        with pytest.raises(ValidationError):
            parse_delivery_update({"notes": "hello"})

    def test_role_grant_expiry_is_utc_naive(self):
        parsed = parse_role_grant({"roleType": "DELIVERY_DRIVER", "expiresAt": "2026-12-31T23:00:00+01:00"})
        assert parsed["expires_at"] == datetime(2026, 12, 31, 22, 0, 0)


class TestPagination:

    def test_defaults_and_clamp(self, app):
        with app.app_context():
            assert parse_pagination({}) == (1, 10)
            assert parse_pagination({"page": "2", "limit": "500"}) == (2, 100)

    @pytest.mark.parametrize("args", [{"page": "0"}, {"limit": "0"}, {"page": "x"}])
    def test_rejects_bad_values(self, app, args):
        with app.app_context():
            with pytest.raises(ValidationError):
                parse_pagination(args)
