"""
Permission resolution tests.

Verifies:
- Role defaults
- GRANT / DENY overrides (DENY wins)
- Protected permissions cannot be overridden
- Revocation falls back to role defaults
- Denials are audited
- Per-request caching
"""

import pytest

from fieldstock.errors import NotFoundError, PermissionDenied, ValidationError
from fieldstock.models import AuditEvent, UserPermissionOverride
from fieldstock.permissions import (
    DEFAULT_ROLE_PERMISSIONS,
    PERMISSION_DEFINITIONS,
    is_known_permission,
    permission_catalogue,
)
from fieldstock.services import load_service, permission_service


def _override(admin, user, code, kind):
    override = permission_service.grant_permission_override(
        user_id=user.id,
        permission_code=code,
        granted_by_user_id=admin.id,
        override_type=kind,
        reason="test",
    )
    return override


class TestRoleDefaults:

    def test_every_role_default_is_a_known_code(self):
        for role, codes in DEFAULT_ROLE_PERMISSIONS.items():
            assert all(is_known_permission(code) for code in codes), role

    @pytest.mark.parametrize("code", [None, 5, ["APPROVE_LOAD"], "approve_load", "NOPE"])
    def test_unknown_codes(self, code):
        assert not is_known_permission(code)

    def test_catalogue_lists_each_code_once(self):
        catalogue = permission_catalogue()
        listed = [entry["code"] for entries in catalogue.values() for entry in entries]
        assert sorted(listed) == sorted(perm[0] for perm in PERMISSION_DEFINITIONS)
        assert all(entry["category"] == category for category, entries in catalogue.items() for entry in entries)

    def test_it_admin_holds_everything(self, admin):
        codes = permission_service.resolve_permission_set(admin.id).codes
        assert codes == frozenset(perm[0] for perm in PERMISSION_DEFINITIONS)

    def test_manager_cannot_settle(self, manager):
        permissions = permission_service.resolve_permission_set(manager.id)
        assert permissions.has("APPROVE_LOAD")
        assert not permissions.has("APPROVE_RECONCILIATION")

    def test_inactive_user_holds_nothing(self, db_session, manager):
        manager.is_active = False
        db_session.commit()
        assert permission_service.resolve_permission_set(manager.id).codes == frozenset()

    def test_unknown_user_holds_nothing(self, db_session):
        assert not permission_service.user_has_permission(999_999, "VIEW_LOADS")


class TestOverrides:

    def test_grant_adds_permission(self, admin, owner):
        assert not permission_service.user_has_permission(owner.id, "APPROVE_LOAD")
        _override(admin, owner, "APPROVE_LOAD", "GRANT")
        assert permission_service.user_has_permission(owner.id, "APPROVE_LOAD")

    def test_deny_blocks_workflow(self, db_session, admin, manager, agent, agent_user, water):
        _override(admin, manager, "APPROVE_LOAD", "DENY")
        db_session.commit()

        load = load_service.request_load(
            agent.id,
            [{"product_id": water.id, "requested_quantity": 1}],
            requested_by_user_id=agent_user.id,
        )
        with pytest.raises(PermissionDenied):
            load_service.approve_load(load.id, manager.id)

    def test_regrant_replaces_deny(self, db_session, admin, manager):
        first = _override(admin, manager, "APPROVE_LOAD", "DENY")
        second = _override(admin, manager, "APPROVE_LOAD", "GRANT")

        assert first.id == second.id
        assert db_session.query(UserPermissionOverride).count() == 1
        assert permission_service.user_has_permission(manager.id, "APPROVE_LOAD")

    def test_protected_permission_rejected(self, admin, manager):
        with pytest.raises(ValidationError):
            _override(admin, manager, "MANAGE_PERMISSIONS", "GRANT")

    def test_unknown_code_rejected(self, admin, manager):
        with pytest.raises(ValidationError):
            _override(admin, manager, "LAUNCH_ROCKETS", "GRANT")

    def test_bad_override_type_rejected(self, admin, manager):
        with pytest.raises(ValidationError):
            _override(admin, manager, "APPROVE_LOAD", "MAYBE")

    def test_only_admins_manage_overrides(self, manager, owner):
        with pytest.raises(PermissionDenied):
            _override(manager, owner, "APPROVE_LOAD", "GRANT")

    def test_revoke_restores_role_defaults(self, db_session, admin, manager):
        override = _override(admin, manager, "APPROVE_LOAD", "DENY")
        assert not permission_service.user_has_permission(manager.id, "APPROVE_LOAD")

        permission_service.revoke_permission_override(override_id=override.id, revoked_by_user_id=admin.id)
        assert permission_service.user_has_permission(manager.id, "APPROVE_LOAD")

        with pytest.raises(ValidationError):
            permission_service.revoke_permission_override(override_id=override.id, revoked_by_user_id=admin.id)

    def test_revoke_unknown_override(self, db_session, admin):
        with pytest.raises(NotFoundError):
            permission_service.revoke_permission_override(override_id=999_999, revoked_by_user_id=admin.id)


class TestEnforcement:

    def test_denial_is_audited(self, db_session, owner):
        with pytest.raises(PermissionDenied):
            permission_service.require_permission(owner.id, "RELEASE_LOAD", resource="stock_load:1")

        event = db_session.query(AuditEvent).filter_by(event_type="security.permission_denied").one()
        assert event.actor_user_id == owner.id
        assert event.note == "Missing permission: RELEASE_LOAD"
        assert event.payload == "resource=stock_load:1"

    def test_no_actor_is_denied(self, db_session):
        with pytest.raises(PermissionDenied):
            permission_service.require_permission(None, "VIEW_LOADS")


class TestRequestCache:

    def test_resolved_once_per_request(self, app, db_session, admin, owner):
        with app.test_request_context():
            assert not permission_service.user_has_permission(owner.id, "APPROVE_LOAD")

            db_session.add(UserPermissionOverride(
                user_id=owner.id,
                permission_code="APPROVE_LOAD",
                override_type="GRANT",
                granted_by_user_id=admin.id,
                is_active=True,
            ))
            db_session.commit()

            # Same request: cached answer
            assert not permission_service.user_has_permission(owner.id, "APPROVE_LOAD")

            permission_service.invalidate_cached_permissions(owner.id)
            assert permission_service.user_has_permission(owner.id, "APPROVE_LOAD")

    def test_grant_invalidates_cache_in_request(self, app, admin, owner):
        with app.test_request_context():
            assert permission_service.user_has_permission(owner.id, "VIEW_PRESENCE")
            permission_service.grant_permission_override(
                user_id=owner.id,
                permission_code="VIEW_PRESENCE",
                granted_by_user_id=admin.id,
                override_type="DENY",
            )
            assert not permission_service.user_has_permission(owner.id, "VIEW_PRESENCE")
