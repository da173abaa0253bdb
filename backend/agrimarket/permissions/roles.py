# Overview: Role catalogue and default role -> permission mapping.

from ..models.enums import RoleType
from .helpers import get_all_permission_codes


# (type, name, description, is_default)
ROLE_DEFINITIONS = [
    (RoleType.ADMIN, "Administrator", "Full system access and management", False),
    (RoleType.BUSINESS, "Business Manager", "Business operations and supply approval", False),
    (RoleType.SUPPLIER, "Supplier", "Proposes stock to warehouses", False),
    (RoleType.STOCK_MANAGER, "Stock Manager", "Receives supply into warehouse stock", False),
    (RoleType.CLIENT, "Client", "Customer with purchasing capabilities", True),
    (RoleType.COMMAND_MANAGER, "Command Manager", "Order and delivery management", False),
    (RoleType.DELIVERY_DRIVER, "Delivery Driver", "Package delivery and logistics", False),
]

ALL_PERMISSION_CODES = get_all_permission_codes()

DEFAULT_ROLE_PERMISSIONS = {
    RoleType.ADMIN: list(ALL_PERMISSION_CODES),
    RoleType.BUSINESS: [
        "users:read", "roles:read", "profile:read", "profile:update",
        "approvisionnements:read", "approvisionnements:approve",
        "stocks:read", "stocks:reprice",
        "orders:create", "orders:read", "orders:delete",
        "deliveries:read", "analytics:read",
    ],
    RoleType.SUPPLIER: [
        "profile:read", "profile:update",
        "approvisionnements:create", "approvisionnements:read",
    ],
    RoleType.STOCK_MANAGER: [
        "profile:read", "profile:update",
        "approvisionnements:read", "approvisionnements:receive",
        "stocks:read",
    ],
    RoleType.CLIENT: [
        "profile:read", "profile:update",
        "orders:create", "orders:read", "deliveries:read",
    ],
    RoleType.COMMAND_MANAGER: [
        "profile:read", "profile:update",
        "orders:create", "orders:read", "orders:manage",
        "deliveries:read", "deliveries:assign", "deliveries:update",
    ],
    RoleType.DELIVERY_DRIVER: [
        "profile:read", "profile:update",
        "deliveries:read", "deliveries:update",
    ],
}
