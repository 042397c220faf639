# Overview: Lookups over the static permission catalog.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


_BY_CODE = {perm[0]: perm for perm in PERMISSION_DEFINITIONS}


def get_all_permission_codes():
    return list(_BY_CODE)


def get_permission_definition(code):
    """Full definition for a permission code, or None."""
    perm = _BY_CODE.get(code)
    if perm is None:
        return None
    return {"code": perm[0], "name": perm[1], "description": perm[2], "category": perm[3]}


def validate_permission_code(code):
    """Raise ValueError for a code missing from the catalog."""
    if code not in _BY_CODE:
        raise ValueError(f"Unknown permission code: {code}")
    return code


def role_permissions_by_category(role):
    """A role's granted definitions grouped by category, catalog order kept."""
    granted = set(DEFAULT_ROLE_PERMISSIONS.get(role, ()))
    grouped = {}
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] in granted:
            grouped.setdefault(perm[3], []).append(get_permission_definition(perm[0]))
    return grouped
