# Overview: Request body and query-string parsers; normalize API input before any unit of work opens.

"""
Request Parsers

Bodies use the camelCase keys of the public API (productId, proposedPrice);
snake_case spellings are accepted as aliases. Each parser returns a dict of
clean Python values (int ids, Decimal amounts, UTC-naive datetimes) or
raises ValidationError naming the offending field.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable

from flask import current_app

from .errors import ValidationError
from .money import MAX_QUANTITY, MAX_UNIT_PRICE, quantize_quantity
from .models import ApprovisionnementStatus, OrderStatus, PaymentMethod, RoleType
from .services.delivery_service import UNSET
from .time_utils import parse_iso_datetime

MISSING = object()


def _snake(key: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in key)


def _get(payload: dict, key: str) -> Any:
    if key in payload:
        return payload[key]
    return payload.get(_snake(key), MISSING)


def _require(payload: dict, key: str) -> Any:
    value = _get(payload, key)
    if value is MISSING or value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{key} is required", details={"field": key})
    return value


def coerce_int(value: Any, field: str) -> int:
    # bool is an int subclass; reject it along with floats
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be an integer", details={"field": field})
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.lstrip("-").isdigit():
            return int(stripped)
    raise ValidationError(f"{field} must be an integer", details={"field": field})


def coerce_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number", details={"field": field})
    try:
        # str() first so floats keep their printed value (2.5, not 2.4999...)
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", details={"field": field})
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number", details={"field": field})
    return result


def coerce_quantity(value: Any, field: str) -> Decimal:
    """Strictly positive after rounding to 3 places, at most MAX_QUANTITY."""
    result = coerce_decimal(value, field)
    if result > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}", details={"field": field})
    if result <= 0 or quantize_quantity(result) <= 0:
        raise ValidationError(f"{field} must be greater than 0", details={"field": field})
    return result


def coerce_price(value: Any, field: str) -> Decimal:
    result = coerce_decimal(value, field)
    if result > MAX_UNIT_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_UNIT_PRICE}", details={"field": field})
    if result < 0:
        raise ValidationError(f"{field} must be >= 0", details={"field": field})
    return result


def coerce_datetime(value: Any, field: str) -> datetime:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 datetime", details={"field": field})
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime", details={"field": field})
    if dt is None:
        raise ValidationError(f"{field} must be an ISO-8601 datetime", details={"field": field})
    return dt


def coerce_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    allowed = list(choices)
    normalized = str(value).strip().upper()
    if normalized not in allowed:
        raise ValidationError(
            f"{field} must be one of: {', '.join(allowed)}",
            details={"field": field, "allowed": allowed},
        )
    return normalized


def _optional_str(payload: dict, key: str) -> str | None:
    value = _get(payload, key)
    if value is MISSING or value is None:
        return None
    return str(value).strip() or None


def parse_approvisionnement_create(payload: dict) -> dict:
    quantity = coerce_quantity(_require(payload, "quantity"), "quantity")
    proposed_price = coerce_price(_require(payload, "proposedPrice"), "proposedPrice")

    return {
        "product_id": coerce_int(_require(payload, "productId"), "productId"),
        "warehouse_id": coerce_int(_require(payload, "warehouseId"), "warehouseId"),
        "quantity": quantity,
        "proposed_price": proposed_price,
        "delivery_date": coerce_datetime(_require(payload, "deliveryDate"), "deliveryDate"),
        "notes": _optional_str(payload, "notes"),
    }


def status_parser(choices: Iterable[str]) -> Callable[[dict], dict]:
    """Parser for {status} bodies restricted to `choices`."""
    allowed = list(choices)

    def _parse(payload: dict) -> dict:
        return {"status": coerce_choice(_require(payload, "status"), "status", allowed)}

    return _parse


parse_approvisionnement_update = status_parser(s.value for s in ApprovisionnementStatus)
parse_order_update = status_parser(s.value for s in OrderStatus)


def parse_order_create(payload: dict) -> dict:
    items = _require(payload, "items")
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list", details={"field": "items"})

    lines = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError("Each item must be an object", details={"field": f"items[{index}]"})
        product_id = coerce_int(_require(item, "productId"), f"items[{index}].productId")
        quantity = coerce_quantity(_require(item, "quantity"), f"items[{index}].quantity")
        lines.append((product_id, quantity))

    client_id = _get(payload, "clientId")
    return {
        "client_id": None if client_id in (MISSING, None) else coerce_int(client_id, "clientId"),
        "warehouse_id": coerce_int(_require(payload, "warehouseId"), "warehouseId"),
        "payment_method": coerce_choice(
            _require(payload, "paymentMethod"), "paymentMethod", (m.value for m in PaymentMethod)
        ),
        "lines": lines,
    }


def parse_delivery_update(payload: dict) -> dict:
    """
    driverId absent -> not supplied; driverId null -> unassign.
    Status labels come from DELIVERY_STATUS_TRANSITIONS and are checked by the service.
    """
    driver_id = _get(payload, "driverId")
    status = _get(payload, "status")

    if driver_id is MISSING and status in (MISSING, None):
        raise ValidationError("Request body must contain driverId or status")

    return {
        "driver_id": UNSET if driver_id is MISSING else (
            None if driver_id is None else coerce_int(driver_id, "driverId")
        ),
        "status": None if status in (MISSING, None) else str(status).strip().upper(),
    }


def parse_role_grant(payload: dict) -> dict:
    expires_raw = _get(payload, "expiresAt")
    return {
        "role_type": coerce_choice(_require(payload, "roleType"), "roleType", (r.value for r in RoleType)),
        "expires_at": None if expires_raw in (MISSING, None, "") else coerce_datetime(expires_raw, "expiresAt"),
    }


def parse_role_revoke(payload: dict) -> dict:
    return {
        "role_type": coerce_choice(_require(payload, "roleType"), "roleType", (r.value for r in RoleType)),
    }


def parse_pagination(args) -> tuple[int, int]:
    """page/limit from a query string, clamped to MAX_PAGE_SIZE."""
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 100)

    page = coerce_int(args.get("page", 1), "page")
    limit = coerce_int(args.get("limit", default_limit), "limit")
    if page < 1:
        raise ValidationError("page must be >= 1", details={"field": "page"})
    if limit < 1:
        raise ValidationError("limit must be >= 1", details={"field": "limit"})
    return page, min(limit, max_limit)


def optional_int_arg(args, key: str) -> int | None:
    value = args.get(key)
    if value is None:
        value = args.get(_snake(key))
    if value in (None, ""):
        return None
    return coerce_int(value, key)
