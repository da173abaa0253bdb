# Overview: Error taxonomy shared by services and routes; every error maps to an HTTP status and code.

"""
Marketplace Errors

Every failure a caller can react to is a MarketError carrying:
- code: machine-readable code (e.g. INSUFFICIENT_STOCK, FORBIDDEN)
- message: human-readable message
- status_code: HTTP status used by the API error handler
- details: structured context (offending product, current status, ...)

Propagation:
- ValidationError / AuthenticationError / AuthorizationError raised by the
  request guards happen before any unit of work is opened.
- InvalidStateTransitionError / InsufficientStockError / NotFoundError raised
  inside a unit of work roll the whole unit back.
- ConflictError is raised by the unit of work itself on lock contention.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class MarketError(Exception):
    """Base class for all errors surfaced through the API envelope."""

    status_code = 500
    default_code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, *, code: str | None = None, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def as_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.details.items()
            },
        }


class AuthenticationError(MarketError):
    """No valid actor identity on the request."""
    status_code = 401
    default_code = "AUTH_TOKEN_MISSING"


class AuthorizationError(MarketError):
    """Valid actor lacks the role/permission for the requested action."""
    status_code = 403
    default_code = "FORBIDDEN"


class ValidationError(MarketError):
    """400-level input problem."""
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(MarketError):
    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any, message: str | None = None, **kwargs):
        code = kwargs.pop("code", None) or f"{entity.upper()}_NOT_FOUND"
        details = {"entity": entity, "id": entity_id}
        details.update(kwargs.pop("details", None) or {})
        super().__init__(
            message or f"{entity.replace('_', ' ').capitalize()} {entity_id} not found",
            code=code,
            details=details,
        )


class ProductNotFoundError(NotFoundError):
    """A requested product has no stock entry in the warehouse."""

    def __init__(self, product_id: int, warehouse_id: int):
        super().__init__(
            "product",
            product_id,
            f"Product {product_id} not found in warehouse {warehouse_id}",
            details={"product_id": product_id, "warehouse_id": warehouse_id},
        )


class InvalidStateTransitionError(MarketError):
    """Entity exists but its current status does not allow the requested one."""
    status_code = 409
    default_code = "INVALID_STATE_TRANSITION"

    def __init__(self, entity: str, entity_id: Any, current: str, requested: str):
        super().__init__(
            f"Cannot move {entity} {entity_id} from {current} to {requested}",
            details={
                "entity": entity,
                "id": entity_id,
                "current_status": current,
                "requested_status": requested,
            },
        )


class InsufficientStockError(MarketError):
    """The ledger cannot satisfy a decrement."""
    status_code = 409
    default_code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, warehouse_id: int, available: Decimal, requested: Decimal):
        super().__init__(
            f"Insufficient stock for product {product_id}. Available: {available}",
            details={
                "product_id": product_id,
                "warehouse_id": warehouse_id,
                "available": available,
                "requested": requested,
            },
        )

    @property
    def available(self) -> Decimal:
        return self.details["available"]


class ConflictError(MarketError):
    """Lock or isolation conflict; safe to retry with a fresh read."""
    status_code = 409
    default_code = "CONFLICT"

    def __init__(self, message: str = "Concurrent modification detected, please retry", **kwargs):
        details = {"retryable": True}
        details.update(kwargs.pop("details", None) or {})
        super().__init__(message, details=details, **kwargs)
