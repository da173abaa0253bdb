"""
Closed enumerations for marketplace models.

Stored as their string values in String columns.
"""

import enum


class RoleType(str, enum.Enum):
    ADMIN = "ADMIN"
    BUSINESS = "BUSINESS"
    SUPPLIER = "SUPPLIER"
    STOCK_MANAGER = "STOCK_MANAGER"
    CLIENT = "CLIENT"
    COMMAND_MANAGER = "COMMAND_MANAGER"
    DELIVERY_DRIVER = "DELIVERY_DRIVER"


class GrantState(str, enum.Enum):
    """Lifecycle of a role grant. Grants are never deleted."""
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"


class ApprovisionnementStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    RECEIVED = "RECEIVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    CARD = "CARD"
    MOBILE_MONEY = "MOBILE_MONEY"
    BANK_TRANSFER = "BANK_TRANSFER"


class DeliveryStatus(str, enum.Enum):
    ASSIGNED = "ASSIGNED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
