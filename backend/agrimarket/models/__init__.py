from .enums import (
    RoleType,
    GrantState,
    ApprovisionnementStatus,
    OrderStatus,
    PaymentMethod,
    DeliveryStatus,
)
from .auth import User, Role, UserRole, Permission, RolePermission, SessionToken
from .security import SecurityEvent
from .catalog import ProductCategory, Product, Warehouse
from .inventory import StockEntry, Approvisionnement
from .orders import Order, OrderItem, Delivery

__all__ = [
    'RoleType', 'GrantState', 'ApprovisionnementStatus', 'OrderStatus', 'PaymentMethod', 'DeliveryStatus',
    'User', 'Role', 'UserRole', 'Permission', 'RolePermission', 'SessionToken',
    'SecurityEvent',
    'ProductCategory', 'Product', 'Warehouse',
    'StockEntry', 'Approvisionnement',
    'Order', 'OrderItem', 'Delivery',
]
