# Overview: Permission system package.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    SUPPLY_ORDER_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    PRODUCTION_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    role_permissions_by_category,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "SUPPLY_ORDER_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "PRODUCTION_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permission_definition",
    "role_permissions_by_category",
    "validate_permission_code",
]
