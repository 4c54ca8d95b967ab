"""
Stock load workflow tests.

Verifies:
- Request validation (empty, all-zero, duplicates, unknown products)
- Status only moves forward; replays fail
- Quantity ceilings between stages
- Role enforcement on approve/release/reject
"""

import pytest
from sqlalchemy import text

from fieldstock.errors import (
    InvalidStateTransition,
    NotFoundError,
    PermissionDenied,
    QuantityExceeded,
    ValidationError,
)
from fieldstock.models import AuditEvent, StockLoad
from fieldstock.services import load_service


def _request(agent, agent_user, *lines):
    return load_service.request_load(
        agent.id,
        [{"product_id": p.id, "requested_quantity": q} for p, q in lines],
        requested_by_user_id=agent_user.id,
    )


class TestRequestLoad:

    def test_creates_requested_load(self, db_session, agent, agent_user, water, juice):
        load = _request(agent, agent_user, (water, 100), (juice, 40))

        assert load.status == "requested"
        assert load.requested_by_user_id == agent_user.id
        assert {i.product_id: i.requested_quantity for i in load.items} == {water.id: 100, juice.id: 40}
        assert all(i.approved_quantity is None for i in load.items)

    def test_zero_lines_are_dropped(self, db_session, agent, agent_user, water, juice):
        load = _request(agent, agent_user, (water, 10), (juice, 0))
        assert [i.product_id for i in load.items] == [water.id]

    def test_all_zero_request_rejected(self, db_session, agent, agent_user, water, juice):
        with pytest.raises(ValidationError):
            _request(agent, agent_user, (water, 0), (juice, 0))

    def test_empty_request_rejected(self, db_session, agent, agent_user):
        with pytest.raises(ValidationError):
            load_service.request_load(agent.id, [], requested_by_user_id=agent_user.id)

    def test_negative_quantity_rejected(self, db_session, agent, agent_user, water):
        with pytest.raises(ValidationError):
            _request(agent, agent_user, (water, -5))

    def test_duplicate_product_rejected(self, db_session, agent, agent_user, water):
        with pytest.raises(ValidationError):
            _request(agent, agent_user, (water, 5), (water, 6))

    def test_unknown_product_rejected(self, db_session, agent, agent_user):
        with pytest.raises(ValidationError):
            load_service.request_load(
                agent.id,
                [{"product_id": 9999, "requested_quantity": 3}],
                requested_by_user_id=agent_user.id,
            )

    def test_inactive_product_rejected(self, db_session, agent, agent_user, water):
        water.is_active = False
        db_session.commit()
        with pytest.raises(ValidationError):
            _request(agent, agent_user, (water, 3))

    def test_agent_cannot_request_for_another_agent(self, db_session, agent, agent_user, other_agent, water):
        with pytest.raises(PermissionDenied):
            load_service.request_load(
                other_agent.id,
                [{"product_id": water.id, "requested_quantity": 3}],
                requested_by_user_id=agent_user.id,
            )

    def test_request_is_audited(self, db_session, agent, agent_user, water):
        load = _request(agent, agent_user, (water, 7))
        events = db_session.query(AuditEvent).filter_by(entity_type="stock_load", entity_id=load.id).all()
        assert [e.event_type for e in events] == ["stock_load.requested"]


class TestApproveAndRelease:

    def test_approve_defaults_to_requested(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 100))
        load = load_service.approve_load(load.id, manager.id)

        assert load.status == "approved"
        assert load.approved_by_user_id == manager.id
        assert load.approved_at is not None
        assert load.items[0].approved_quantity == 100

    def test_approve_can_cut_quantity(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 100))
        load = load_service.approve_load(
            load.id, manager.id, [{"product_id": water.id, "approved_quantity": 80}]
        )
        assert load.items[0].approved_quantity == 80

    def test_approve_above_requested_fails(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 10))
        with pytest.raises(QuantityExceeded):
            load_service.approve_load(load.id, manager.id, [{"product_id": water.id, "approved_quantity": 11}])
        assert db_session.get(StockLoad, load.id).status == "requested"

    def test_release_above_approved_fails(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 100))
        load_service.approve_load(load.id, manager.id, [{"product_id": water.id, "approved_quantity": 80}])
        with pytest.raises(QuantityExceeded):
            load_service.release_load(load.id, manager.id, [{"product_id": water.id, "released_quantity": 81}])

    def test_release_defaults_to_approved(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 100))
        load_service.approve_load(load.id, manager.id, [{"product_id": water.id, "approved_quantity": 80}])
        load = load_service.release_load(load.id, manager.id)

        assert load.status == "released"
        assert load.released_by_user_id == manager.id
        assert load.items[0].released_quantity == 80
        assert load.items[0].loaded_quantity == 80

    def test_items_not_on_load_rejected(self, db_session, agent, agent_user, manager, water, juice):
        load = _request(agent, agent_user, (water, 5))
        with pytest.raises(ValidationError):
            load_service.approve_load(load.id, manager.id, [{"product_id": juice.id, "approved_quantity": 1}])

    def test_unknown_load(self, db_session, manager):
        with pytest.raises(NotFoundError):
            load_service.approve_load(4242, manager.id)


class TestMonotonicTransitions:

    def test_cannot_reapprove(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 5))
        load_service.approve_load(load.id, manager.id)
        with pytest.raises(InvalidStateTransition):
            load_service.approve_load(load.id, manager.id)

    def test_cannot_release_before_approval(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 5))
        with pytest.raises(InvalidStateTransition):
            load_service.release_load(load.id, manager.id)

    def test_nothing_leaves_released(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 5))
        load_service.approve_load(load.id, manager.id)
        load_service.release_load(load.id, manager.id)

        with pytest.raises(InvalidStateTransition):
            load_service.release_load(load.id, manager.id)
        with pytest.raises(InvalidStateTransition):
            load_service.reject_load(load.id, "too late", rejected_by_user_id=manager.id)
        with pytest.raises(InvalidStateTransition):
            load_service.approve_load(load.id, manager.id)

    def test_nothing_leaves_rejected(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 5))
        load = load_service.reject_load(load.id, "stock out", rejected_by_user_id=manager.id)

        assert load.status == "rejected"
        assert load.rejection_reason == "stock out"
        with pytest.raises(InvalidStateTransition):
            load_service.approve_load(load.id, manager.id)
        with pytest.raises(InvalidStateTransition):
            load_service.release_load(load.id, manager.id)

    def test_cannot_reject_approved(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 5))
        load_service.approve_load(load.id, manager.id)
        with pytest.raises(InvalidStateTransition):
            load_service.reject_load(load.id, "changed mind", rejected_by_user_id=manager.id)

    def test_reject_requires_reason(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 5))
        with pytest.raises(ValidationError):
            load_service.reject_load(load.id, "  ", rejected_by_user_id=manager.id)

    @pytest.mark.parametrize("reason", [None, 5, {"text": "stock out"}])
    def test_reject_reason_must_be_a_string(self, db_session, agent, agent_user, manager, water, reason):
        load = _request(agent, agent_user, (water, 5))
        with pytest.raises(ValidationError):
            load_service.reject_load(load.id, reason, rejected_by_user_id=manager.id)
        assert db_session.get(StockLoad, load.id).status == "requested"

    def test_approval_loses_to_concurrent_writer(self, db_session, agent, agent_user, manager, water):
        load = _request(agent, agent_user, (water, 5))
        db_session.execute(
            text("UPDATE stock_loads SET status = 'approved' WHERE id = :id"),
            {"id": load.id},
        )
        # The session still holds the row as requested
        assert load.status == "requested"

        with pytest.raises(InvalidStateTransition, match="status is approved"):
            load_service.approve_load(load.id, manager.id)

        db_session.refresh(load)
        assert load.status == "approved"
        assert load.approved_by_user_id is None
        assert db_session.query(AuditEvent).filter_by(event_type="stock_load.approved").count() == 0


class TestRoleEnforcement:

    def test_agent_cannot_approve(self, db_session, agent, agent_user, water):
        load = _request(agent, agent_user, (water, 5))
        with pytest.raises(PermissionDenied):
            load_service.approve_load(load.id, agent_user.id)
        assert db_session.get(StockLoad, load.id).status == "requested"

    def test_accountant_cannot_approve(self, db_session, agent, agent_user, accountant, water):
        load = _request(agent, agent_user, (water, 5))
        with pytest.raises(PermissionDenied):
            load_service.approve_load(load.id, accountant.id)

    def test_it_admin_can_approve(self, db_session, agent, agent_user, admin, water):
        load = _request(agent, agent_user, (water, 5))
        assert load_service.approve_load(load.id, admin.id).status == "approved"

    def test_owner_cannot_release_or_reject(self, db_session, agent, agent_user, manager, owner, water):
        load = _request(agent, agent_user, (water, 5))
        with pytest.raises(PermissionDenied):
            load_service.reject_load(load.id, "no", rejected_by_user_id=owner.id)
        load_service.approve_load(load.id, manager.id)
        with pytest.raises(PermissionDenied):
            load_service.release_load(load.id, owner.id)

    def test_denial_is_audited(self, db_session, agent, agent_user, water):
        load = _request(agent, agent_user, (water, 5))
        with pytest.raises(PermissionDenied):
            load_service.approve_load(load.id, agent_user.id)
        denied = db_session.query(AuditEvent).filter_by(event_type="security.permission_denied").all()
        assert len(denied) == 1
        assert denied[0].actor_user_id == agent_user.id


def test_list_loads_filters(db_session, agent, agent_user, other_agent, manager, water):
    first = _request(agent, agent_user, (water, 5))
    second = _request(agent, agent_user, (water, 6))
    load_service.approve_load(second.id, manager.id)

    assert [l.id for l in load_service.list_loads(agent_id=agent.id)] == [second.id, first.id]
    assert [l.id for l in load_service.list_loads(status="approved")] == [second.id]
    assert load_service.list_loads(agent_id=other_agent.id) == []
    with pytest.raises(ValidationError):
        load_service.list_loads(status="shipped")
