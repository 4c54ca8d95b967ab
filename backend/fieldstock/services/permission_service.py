# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission resolution and enforcement.

WHY: Approvals in the load and settlement workflows are role-gated. A user's
effective permissions are

    PermissionSet = RoleDefaults(user.role) ∪ GRANT overrides − DENY overrides

resolved once per request and cached on flask.g, so a request never sees two
different answers for the same actor.

DESIGN PRINCIPLES:
- Fail closed: unknown or inactive actors hold no permissions
- Log denials only: permission grants are not logged
- Protected permissions come from roles only, never from overrides
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import g, has_request_context

from ..errors import NotFoundError, PermissionDenied, ValidationError
from ..extensions import db
from ..models import User, UserPermissionOverride
from ..permissions import DEFAULT_ROLE_PERMISSIONS, is_known_permission
from fieldstock.time_utils import utcnow
from fieldstock.validation import optional_text
from .audit_service import append_event


# Admin-level permissions cannot be altered by per-user overrides.
PROTECTED_PERMISSIONS = {
    "MANAGE_PERMISSIONS",
}

OVERRIDE_GRANT = "GRANT"
OVERRIDE_DENY = "DENY"


@dataclass(frozen=True)
class PermissionSet:
    """Effective permissions of one actor."""
    user_id: int
    role: str | None
    codes: frozenset

    def has(self, code: str) -> bool:
        return code in self.codes

    def has_any(self, *codes: str) -> bool:
        return any(code in self.codes for code in codes)


def _request_cache() -> dict | None:
    if not has_request_context():
        return None
    if not hasattr(g, "_permission_sets"):
        g._permission_sets = {}
    return g._permission_sets


def _resolve(user_id: int) -> PermissionSet:
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return PermissionSet(user_id=user_id, role=user.role if user else None, codes=frozenset())

    codes = set(DEFAULT_ROLE_PERMISSIONS.get(user.role, []))

    overrides = db.session.query(UserPermissionOverride).filter_by(
        user_id=user_id,
        is_active=True,
    ).all()

    # GRANTs first so a DENY on the same code always wins
    for override in sorted(overrides, key=lambda o: o.override_type != OVERRIDE_GRANT):
        if override.permission_code in PROTECTED_PERMISSIONS:
            continue
        if override.override_type == OVERRIDE_GRANT:
            codes.add(override.permission_code)
        elif override.override_type == OVERRIDE_DENY:
            codes.discard(override.permission_code)

    return PermissionSet(user_id=user_id, role=user.role, codes=frozenset(codes))


def resolve_permission_set(user_id: int) -> PermissionSet:
    """Resolve (or fetch the request-cached) permission set of a user."""
    cache = _request_cache()
    if cache is not None and user_id in cache:
        return cache[user_id]

    permissions = _resolve(user_id)
    if cache is not None:
        cache[user_id] = permissions
    return permissions


def invalidate_cached_permissions(user_id: int | None = None) -> None:
    cache = _request_cache()
    if cache is None:
        return
    if user_id is None:
        cache.clear()
    else:
        cache.pop(user_id, None)


def user_has_permission(user_id: int, permission_code: str) -> bool:
    return resolve_permission_set(user_id).has(permission_code)


def log_permission_denied(user_id: int | None, action: str, resource: str | None = None) -> None:
    """
    Record a denial in the audit log and commit it.

    WHY commit: the denied operation is rolled back by the caller, the
    record of the attempt must survive that rollback.
    """
    append_event(
        event_type="security.permission_denied",
        event_category="security",
        entity_type="user",
        entity_id=user_id,
        actor_user_id=user_id,
        occurred_at=utcnow(),
        note=f"Missing permission: {action}",
        payload=f"resource={resource}" if resource else None,
    )
    db.session.commit()


def require_permission(
    user_id: int | None,
    permission_code: str,
    resource: str | None = None,
) -> PermissionSet:
    """
    Require the actor to hold a permission, raise PermissionDenied if not.

    Usage:
        require_permission(approver_id, "APPROVE_LOAD", resource=f"stock_load:{load_id}")
    """
    if user_id is None:
        raise PermissionDenied(f"Permission denied: {permission_code} (no actor)")

    permissions = resolve_permission_set(user_id)
    if not permissions.has(permission_code):
        log_permission_denied(user_id, permission_code, resource)
        raise PermissionDenied(f"Permission denied: {permission_code}")
    return permissions


def grant_permission_override(
    *,
    user_id: int,
    permission_code: str,
    granted_by_user_id: int,
    override_type: str,
    reason: str | None = None,
) -> UserPermissionOverride:
    """
    Grant or deny a permission via per-user override.

    override_type must be "GRANT" or "DENY". An existing override for the
    same code is replaced (reactivated with the new type).
    """
    require_permission(granted_by_user_id, "MANAGE_PERMISSIONS", resource=f"user:{user_id}")

    if not is_known_permission(permission_code):
        raise ValidationError(f"Unknown permission code: {permission_code}")
    if permission_code in PROTECTED_PERMISSIONS:
        raise ValidationError("Permission overrides cannot modify admin permissions")
    if isinstance(override_type, str):
        override_type = override_type.upper()
    if override_type not in (OVERRIDE_GRANT, OVERRIDE_DENY):
        raise ValidationError("override_type must be GRANT or DENY")
    if not db.session.get(User, user_id):
        raise NotFoundError(f"User {user_id} not found")
    reason = optional_text(reason, "reason")

    override = db.session.query(UserPermissionOverride).filter_by(
        user_id=user_id,
        permission_code=permission_code,
    ).first()

    if override:
        override.override_type = override_type
        override.granted_by_user_id = granted_by_user_id
        override.granted_at = utcnow()
        override.reason = reason
        override.is_active = True
        override.revoked_by_user_id = None
        override.revoked_at = None
    else:
        override = UserPermissionOverride(
            user_id=user_id,
            permission_code=permission_code,
            override_type=override_type,
            granted_by_user_id=granted_by_user_id,
            reason=reason,
            is_active=True,
        )
        db.session.add(override)
    db.session.flush()

    append_event(
        event_type=f"permission_override.{override_type.lower()}",
        event_category="security",
        entity_type="user_permission_override",
        entity_id=override.id,
        actor_user_id=granted_by_user_id,
        occurred_at=utcnow(),
        note=reason,
        payload=f"user_id={user_id},permission_code={permission_code}",
    )

    invalidate_cached_permissions(user_id)
    return override


def revoke_permission_override(*, override_id: int, revoked_by_user_id: int) -> UserPermissionOverride:
    """Deactivate an override; the user falls back to role defaults."""
    override = db.session.get(UserPermissionOverride, override_id)
    if not override:
        raise NotFoundError(f"Permission override {override_id} not found")

    require_permission(revoked_by_user_id, "MANAGE_PERMISSIONS", resource=f"user:{override.user_id}")

    if not override.is_active:
        raise ValidationError("Permission override already revoked")

    override.is_active = False
    override.revoked_by_user_id = revoked_by_user_id
    override.revoked_at = utcnow()
    db.session.flush()

    append_event(
        event_type="permission_override.revoked",
        event_category="security",
        entity_type="user_permission_override",
        entity_id=override.id,
        actor_user_id=revoked_by_user_id,
        occurred_at=override.revoked_at,
        payload=f"user_id={override.user_id},permission_code={override.permission_code}",
    )

    invalidate_cached_permissions(override.user_id)
    return override
