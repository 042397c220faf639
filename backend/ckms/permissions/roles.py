# Overview: Static role -> permission mapping.

from ..models.auth import Role


DEFAULT_ROLE_PERMISSIONS = {
    Role.ADMIN: [
        # Read-only on supply orders
        "VIEW_ALL_SUPPLY_ORDERS",
        "VIEW_INVENTORY",
        "DISPOSE_INVENTORY",
        "REFRESH_INVENTORY_STATUS",
        "VIEW_BATCHES",
        "MANAGE_BATCHES",
    ],
    Role.CENTRAL_STAFF: [
        "VIEW_ALL_SUPPLY_ORDERS",
        "REVIEW_SUPPLY_ORDERS",
        "DELIVER_SUPPLY_ORDERS",
        "CANCEL_SUPPLY_ORDERS",
        "VIEW_INVENTORY",
        "DISPOSE_INVENTORY",
        "REFRESH_INVENTORY_STATUS",
        "VIEW_BATCHES",
        "MANAGE_BATCHES",
    ],
    Role.STORE_STAFF: [
        "VIEW_STORE_SUPPLY_ORDERS",
        "CREATE_SUPPLY_ORDERS",
        "RECEIVE_SUPPLY_ORDERS",
        "STOCK_SUPPLY_ORDERS",
        "CANCEL_SUPPLY_ORDERS",
        "VIEW_INVENTORY",
        "DISPOSE_INVENTORY",
    ],
}
