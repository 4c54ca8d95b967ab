# Overview: Lookups over the permission catalogue.

from .categories import PermissionCategory
from .definitions import PERMISSION_DEFINITIONS


_CODES = frozenset(perm[0] for perm in PERMISSION_DEFINITIONS)


def is_known_permission(code) -> bool:
    """True only for a catalogued code; non-strings are never known."""
    return isinstance(code, str) and code in _CODES


def permission_catalogue() -> dict[str, list[dict]]:
    """Permission descriptions grouped by category, in declaration order."""
    catalogue = {category: [] for category in PermissionCategory.ALL}
    for code, name, description, category in PERMISSION_DEFINITIONS:
        catalogue[category].append({
            "code": code,
            "name": name,
            "description": description,
            "category": category,
        })
    return catalogue
