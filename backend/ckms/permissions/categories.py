# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for grouping and display."""
    SUPPLY_ORDERS = "SUPPLY_ORDERS"
    INVENTORY = "INVENTORY"
    PRODUCTION = "PRODUCTION"
