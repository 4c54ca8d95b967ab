# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    LOADS = "LOADS"
    SETTLEMENT = "SETTLEMENT"
    SALES = "SALES"
    REPORTING = "REPORTING"
    FIELD = "FIELD"
    USERS = "USERS"

    ALL = (LOADS, SETTLEMENT, SALES, REPORTING, FIELD, USERS)
