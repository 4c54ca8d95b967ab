# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- LOADS --

LOAD_PERMISSIONS = [
    (
        "REQUEST_LOAD",
        "Request Load",
        "Request stock for an agent's vehicle",
        PermissionCategory.LOADS,
    ),
    (
        "APPROVE_LOAD",
        "Approve Load",
        "Approve requested load quantities",
        PermissionCategory.LOADS,
    ),
    (
        "RELEASE_LOAD",
        "Release Load",
        "Release approved stock from the warehouse",
        PermissionCategory.LOADS,
    ),
    (
        "REJECT_LOAD",
        "Reject Load",
        "Reject a load request",
        PermissionCategory.LOADS,
    ),
    (
        "VIEW_LOADS",
        "View Loads",
        "View load requests of all agents",
        PermissionCategory.LOADS,
    ),
]


# -- SETTLEMENT --

SETTLEMENT_PERMISSIONS = [
    (
        "SUBMIT_RECONCILIATION",
        "Submit Reconciliation",
        "Close the day with unload and cash figures",
        PermissionCategory.SETTLEMENT,
    ),
    (
        "APPROVE_RECONCILIATION",
        "Approve Reconciliation",
        "Accept a submitted end-of-day settlement",
        PermissionCategory.SETTLEMENT,
    ),
    (
        "DISPUTE_RECONCILIATION",
        "Dispute Reconciliation",
        "Reject a submitted end-of-day settlement",
        PermissionCategory.SETTLEMENT,
    ),
    (
        "VIEW_RECONCILIATIONS",
        "View Reconciliations",
        "View settlements of all agents",
        PermissionCategory.SETTLEMENT,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "RECORD_SALE",
        "Record Sale",
        "Create invoices in the field",
        PermissionCategory.SALES,
    ),
    (
        "RECORD_VISIT",
        "Record Visit",
        "Check in and out of customer visits",
        PermissionCategory.SALES,
    ),
]


# -- REPORTING --

REPORTING_PERMISSIONS = [
    (
        "VIEW_LEDGER",
        "View Ledger",
        "View loaded/sold/remaining stock of any agent",
        PermissionCategory.REPORTING,
    ),
    (
        "VIEW_KPIS",
        "View KPIs",
        "View productivity, strike rate, drop size and target progress",
        PermissionCategory.REPORTING,
    ),
]


# -- FIELD --

FIELD_PERMISSIONS = [
    (
        "SEND_HEARTBEAT",
        "Send Heartbeat",
        "Report device presence and location",
        PermissionCategory.FIELD,
    ),
    (
        "VIEW_PRESENCE",
        "View Presence",
        "See which agents are online",
        PermissionCategory.FIELD,
    ),
    (
        "MANAGE_JOURNEY_PLANS",
        "Manage Journey Plans",
        "Create route plans for agents",
        PermissionCategory.FIELD,
    ),
    (
        "VIEW_JOURNEY_PLANS",
        "View Journey Plans",
        "View route plans",
        PermissionCategory.FIELD,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        "MANAGE_PERMISSIONS",
        "Manage Permissions",
        "Grant or deny per-user permission overrides",
        PermissionCategory.USERS,
    ),
]


PERMISSION_DEFINITIONS = (
    LOAD_PERMISSIONS
    + SETTLEMENT_PERMISSIONS
    + SALES_PERMISSIONS
    + REPORTING_PERMISSIONS
    + FIELD_PERMISSIONS
    + USER_PERMISSIONS
)
