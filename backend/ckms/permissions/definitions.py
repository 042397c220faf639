# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- SUPPLY ORDERS --

SUPPLY_ORDER_PERMISSIONS = [
    (
        "VIEW_ALL_SUPPLY_ORDERS",
        "View All Supply Orders",
        "View supply orders of every store",
        PermissionCategory.SUPPLY_ORDERS,
    ),
    (
        "VIEW_STORE_SUPPLY_ORDERS",
        "View Store Supply Orders",
        "View supply orders of the user's own store",
        PermissionCategory.SUPPLY_ORDERS,
    ),
    (
        "CREATE_SUPPLY_ORDERS",
        "Create Supply Orders",
        "Submit supply orders for the user's own store",
        PermissionCategory.SUPPLY_ORDERS,
    ),
    (
        "REVIEW_SUPPLY_ORDERS",
        "Review Supply Orders",
        "Approve, partly approve or reject submitted order items",
        PermissionCategory.SUPPLY_ORDERS,
    ),
    (
        "DELIVER_SUPPLY_ORDERS",
        "Deliver Supply Orders",
        "Start delivery of reviewed orders (debits central inventory)",
        PermissionCategory.SUPPLY_ORDERS,
    ),
    (
        "RECEIVE_SUPPLY_ORDERS",
        "Receive Supply Orders",
        "Confirm received quantities of delivered orders",
        PermissionCategory.SUPPLY_ORDERS,
    ),
    (
        "STOCK_SUPPLY_ORDERS",
        "Stock Supply Orders",
        "Move received quantities into store inventory",
        PermissionCategory.SUPPLY_ORDERS,
    ),
    (
        "CANCEL_SUPPLY_ORDERS",
        "Cancel Supply Orders",
        "Cancel reviewed orders before delivery",
        PermissionCategory.SUPPLY_ORDERS,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View inventory quantities and expiry status",
        PermissionCategory.INVENTORY,
    ),
    (
        "DISPOSE_INVENTORY",
        "Dispose Inventory",
        "Dispose expired, defective or wrongly recorded inventory",
        PermissionCategory.INVENTORY,
    ),
    (
        "REFRESH_INVENTORY_STATUS",
        "Refresh Inventory Status",
        "Recompute expiry status of all inventory rows",
        PermissionCategory.INVENTORY,
    ),
]


# -- PRODUCTION --

PRODUCTION_PERMISSIONS = [
    (
        "VIEW_BATCHES",
        "View Batches",
        "View production batches",
        PermissionCategory.PRODUCTION,
    ),
    (
        "MANAGE_BATCHES",
        "Manage Batches",
        "Plan, produce, stock and cancel production batches",
        PermissionCategory.PRODUCTION,
    ),
]


# Combined list of all permissions
PERMISSION_DEFINITIONS = (
    SUPPLY_ORDER_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + PRODUCTION_PERMISSIONS
)
