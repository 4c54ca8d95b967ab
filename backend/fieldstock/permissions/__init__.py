# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    LOAD_PERMISSIONS,
    SETTLEMENT_PERMISSIONS,
    SALES_PERMISSIONS,
    REPORTING_PERMISSIONS,
    FIELD_PERMISSIONS,
    USER_PERMISSIONS,
)
from .roles import (
    DEFAULT_ROLE_PERMISSIONS,
    VALID_ROLES,
    ROLE_IT_ADMIN,
    ROLE_SALES_MANAGER,
    ROLE_ACCOUNTANT,
    ROLE_COMPANY_OWNER,
    ROLE_AGENT,
)
from .helpers import is_known_permission, permission_catalogue

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "LOAD_PERMISSIONS",
    "SETTLEMENT_PERMISSIONS",
    "SALES_PERMISSIONS",
    "REPORTING_PERMISSIONS",
    "FIELD_PERMISSIONS",
    "USER_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "VALID_ROLES",
    "ROLE_IT_ADMIN",
    "ROLE_SALES_MANAGER",
    "ROLE_ACCOUNTANT",
    "ROLE_COMPANY_OWNER",
    "ROLE_AGENT",
    "is_known_permission",
    "permission_catalogue",
]
