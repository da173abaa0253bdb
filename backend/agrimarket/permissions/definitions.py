# Overview: All permission definitions organized by resource.
# Each permission is defined as: (resource, action, name, description)


# -- USERS & ROLES --

USER_PERMISSIONS = [
    ("users", "create", "Create Users", "Create new user accounts"),
    ("users", "read", "Read Users", "View user information"),
    ("users", "update", "Update Users", "Modify user accounts"),
    ("users", "delete", "Delete Users", "Deactivate user accounts"),
    ("roles", "manage", "Manage Roles", "Grant and revoke user roles"),
    ("roles", "read", "Read Roles", "View roles and role grants"),
    ("profile", "read", "Read Profile", "View own profile"),
    ("profile", "update", "Update Profile", "Update own profile"),
]


# -- SUPPLY --

APPROVISIONNEMENT_PERMISSIONS = [
    ("approvisionnements", "create", "Propose Stock", "Create supply requests for a warehouse"),
    ("approvisionnements", "read", "Read Supply Requests", "View supply requests"),
    ("approvisionnements", "approve", "Approve Supply Requests", "Approve or reject pending supply requests"),
    ("approvisionnements", "receive", "Receive Supply", "Receive approved supply into warehouse stock"),
]


# -- STOCK --

STOCK_PERMISSIONS = [
    ("stocks", "read", "Read Stock", "View warehouse stock quantities and value"),
    ("stocks", "reprice", "Reprice Stock", "Change the unit price of a stock entry"),
]


# -- ORDERS & DELIVERIES --

ORDER_PERMISSIONS = [
    ("orders", "create", "Create Orders", "Place orders against warehouse stock"),
    ("orders", "read", "Read Orders", "View orders"),
    ("orders", "manage", "Manage Orders", "Move orders through fulfillment statuses"),
    ("orders", "delete", "Delete Orders", "Remove orders (administrative)"),
]

DELIVERY_PERMISSIONS = [
    ("deliveries", "read", "Read Deliveries", "View deliveries"),
    ("deliveries", "assign", "Assign Drivers", "Assign or reassign delivery drivers"),
    ("deliveries", "update", "Update Deliveries", "Advance delivery status"),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    ("system", "manage", "System Settings", "Manage system settings"),
    ("analytics", "read", "View Analytics", "View marketplace analytics"),
]


# Combined list of all permissions
PERMISSION_DEFINITIONS = (
    USER_PERMISSIONS
    + APPROVISIONNEMENT_PERMISSIONS
    + STOCK_PERMISSIONS
    + ORDER_PERMISSIONS
    + DELIVERY_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
