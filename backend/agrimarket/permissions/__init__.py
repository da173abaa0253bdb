# Overview: Permission system package.
# Re-exports all public APIs.

from ..models.enums import RoleType
from .definitions import (
    PERMISSION_DEFINITIONS,
    USER_PERMISSIONS,
    APPROVISIONNEMENT_PERMISSIONS,
    STOCK_PERMISSIONS,
    ORDER_PERMISSIONS,
    DELIVERY_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import ROLE_DEFINITIONS, DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    split_permission_code,
    get_all_permission_codes,
    validate_permission_code,
)
from .gates import (
    Gate,
    GateDecision,
    authorize_transition,
    delivery_transitions,
    APPROVISIONNEMENT_CREATE_ROLES,
    APPROVISIONNEMENT_READ_GATE,
    APPROVISIONNEMENT_TRANSITIONS,
    ORDER_MANAGER_ROLES,
    ORDER_STAFF_ROLES,
    ORDER_CREATE_GATE,
    ORDER_READ_GATE,
    ORDER_DELETE_ROLES,
    ORDER_TRANSITIONS,
    ORDER_SHIPPED_STATUSES,
    DELIVERY_LIST_ROLES,
    DELIVERY_READ_GATE,
    DELIVERY_ASSIGN_GATE,
    DELIVERY_STATUS_GATE,
    STOCK_READ_ROLES,
)

__all__ = [
    "RoleType",
    "PERMISSION_DEFINITIONS",
    "USER_PERMISSIONS",
    "APPROVISIONNEMENT_PERMISSIONS",
    "STOCK_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "DELIVERY_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "ROLE_DEFINITIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "split_permission_code",
    "get_all_permission_codes",
    "validate_permission_code",
    "Gate",
    "GateDecision",
    "authorize_transition",
    "delivery_transitions",
    "APPROVISIONNEMENT_CREATE_ROLES",
    "APPROVISIONNEMENT_READ_GATE",
    "APPROVISIONNEMENT_TRANSITIONS",
    "ORDER_MANAGER_ROLES",
    "ORDER_STAFF_ROLES",
    "ORDER_CREATE_GATE",
    "ORDER_READ_GATE",
    "ORDER_DELETE_ROLES",
    "ORDER_TRANSITIONS",
    "ORDER_SHIPPED_STATUSES",
    "DELIVERY_LIST_ROLES",
    "DELIVERY_READ_GATE",
    "DELIVERY_ASSIGN_GATE",
    "DELIVERY_STATUS_GATE",
    "STOCK_READ_ROLES",
]
