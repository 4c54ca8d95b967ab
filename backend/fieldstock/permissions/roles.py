# Overview: Role names and the permission codes each role holds by default.

from .definitions import PERMISSION_DEFINITIONS


ROLE_IT_ADMIN = "it_admin"
ROLE_SALES_MANAGER = "sales_manager"
ROLE_ACCOUNTANT = "accountant"
ROLE_COMPANY_OWNER = "company_owner"
ROLE_AGENT = "agent"

VALID_ROLES = {
    ROLE_IT_ADMIN,
    ROLE_SALES_MANAGER,
    ROLE_ACCOUNTANT,
    ROLE_COMPANY_OWNER,
    ROLE_AGENT,
}


DEFAULT_ROLE_PERMISSIONS = {
    ROLE_IT_ADMIN: [perm[0] for perm in PERMISSION_DEFINITIONS],
    ROLE_SALES_MANAGER: [
        "APPROVE_LOAD",
        "RELEASE_LOAD",
        "REJECT_LOAD",
        "VIEW_LOADS",
        "VIEW_RECONCILIATIONS",
        "VIEW_LEDGER",
        "VIEW_KPIS",
        "VIEW_PRESENCE",
        "MANAGE_JOURNEY_PLANS",
        "VIEW_JOURNEY_PLANS",
    ],
    ROLE_ACCOUNTANT: [
        "APPROVE_RECONCILIATION",
        "DISPUTE_RECONCILIATION",
        "VIEW_RECONCILIATIONS",
        "VIEW_LOADS",
        "VIEW_LEDGER",
        "VIEW_KPIS",
    ],
    ROLE_COMPANY_OWNER: [
        "VIEW_LOADS",
        "VIEW_RECONCILIATIONS",
        "VIEW_LEDGER",
        "VIEW_KPIS",
        "VIEW_PRESENCE",
        "VIEW_JOURNEY_PLANS",
    ],
    ROLE_AGENT: [
        "REQUEST_LOAD",
        "SUBMIT_RECONCILIATION",
        "RECORD_SALE",
        "RECORD_VISIT",
        "SEND_HEARTBEAT",
    ],
}
