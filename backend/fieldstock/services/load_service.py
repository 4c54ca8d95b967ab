# backend/fieldstock/services/load_service.py
"""
Stock load workflow (warehouse -> agent vehicle).

WHY: An agent cannot sell what was never handed over, and a manager must
sign off before stock leaves the warehouse. The load record carries the
quantities of every stage so the ledger can tell what is actually on the
vehicle.

LIFECYCLE:
1. requested: Agent asked for stock
2. approved: Manager approved (quantities may be cut)
3. released: Warehouse handed the stock over (terminal)
4. rejected: Manager refused the request (terminal)

Every transition is a compare-and-set on status, so a replayed or racing
approval fails with InvalidStateTransition instead of double-applying.
"""
from __future__ import annotations

from ..errors import InvalidStateTransition, NotFoundError, QuantityExceeded, ValidationError
from ..extensions import db
from ..models import Product, StockLoad, StockLoadItem
from fieldstock.time_utils import utcnow
from fieldstock.validation import optional_text, parse_quantity_lines, require_text
from .agent_service import ensure_acts_for_agent, get_active_agent
from .audit_service import append_event
from .concurrency import compare_and_set_status, run_with_retry
from .permission_service import require_permission


LOAD_STATUS_REQUESTED = "requested"
LOAD_STATUS_APPROVED = "approved"
LOAD_STATUS_RELEASED = "released"
LOAD_STATUS_REJECTED = "rejected"

LOAD_STATUSES = (
    LOAD_STATUS_REQUESTED,
    LOAD_STATUS_APPROVED,
    LOAD_STATUS_RELEASED,
    LOAD_STATUS_REJECTED,
)


def _format_lines(lines: dict[int, int]) -> str:
    return ",".join(f"{product_id}:{qty}" for product_id, qty in lines.items())


def get_load(load_id: int) -> StockLoad:
    load = db.session.get(StockLoad, load_id)
    if not load:
        raise NotFoundError(f"Stock load {load_id} not found")
    return load


def list_loads(agent_id: int | None = None, status: str | None = None) -> list[StockLoad]:
    query = db.session.query(StockLoad)
    if agent_id is not None:
        query = query.filter(StockLoad.agent_id == agent_id)
    if status is not None:
        if status not in LOAD_STATUSES:
            raise ValidationError(f"Unknown load status: {status}")
        query = query.filter(StockLoad.status == status)
    return query.order_by(StockLoad.id.desc()).all()


def request_load(
    agent_id: int,
    items: list[dict],
    *,
    requested_by_user_id: int,
    notes: str | None = None,
) -> StockLoad:
    """
    Create a load request (status: requested).

    Zero-quantity lines are dropped; a request that is all zeros is refused.
    Carry-over stock is never netted here.

    Raises:
        ValidationError: empty/invalid items, all-zero request, unknown or
            inactive product, unknown or inactive agent
        PermissionDenied: actor lacks REQUEST_LOAD
    """
    def _op():
        get_active_agent(agent_id)
        require_permission(requested_by_user_id, "REQUEST_LOAD", resource=f"agent:{agent_id}")
        ensure_acts_for_agent(requested_by_user_id, agent_id)

        request_notes = optional_text(notes, "notes")
        lines = parse_quantity_lines(items, "requested_quantity")
        lines = {product_id: qty for product_id, qty in lines.items() if qty > 0}
        if not lines:
            raise ValidationError("Load request must contain at least one non-zero quantity")

        products = {
            p.id: p
            for p in db.session.query(Product).filter(Product.id.in_(list(lines))).all()
        }
        for product_id in lines:
            product = products.get(product_id)
            if not product:
                raise ValidationError(f"Product {product_id} not found")
            if not product.is_active:
                raise ValidationError(f"Product {product_id} is not active")

        now = utcnow()
        load = StockLoad(
            agent_id=agent_id,
            status=LOAD_STATUS_REQUESTED,
            notes=request_notes,
            requested_by_user_id=requested_by_user_id,
            requested_at=now,
        )
        db.session.add(load)
        db.session.flush()

        for product_id, qty in lines.items():
            db.session.add(StockLoadItem(
                stock_load_id=load.id,
                product_id=product_id,
                requested_quantity=qty,
            ))
        db.session.flush()

        append_event(
            event_type="stock_load.requested",
            event_category="loads",
            entity_type="stock_load",
            entity_id=load.id,
            actor_user_id=requested_by_user_id,
            agent_id=agent_id,
            occurred_at=now,
            note=request_notes,
            payload=_format_lines(lines),
        )
        return load

    return run_with_retry(_op)


def _ensure_status(load: StockLoad, expected: str) -> None:
    if load.status != expected:
        raise InvalidStateTransition(
            f"Stock load {load.id} is {load.status}, expected {expected}"
        )


def _resolve_stage_quantities(
    load: StockLoad,
    items: list[dict] | None,
    *,
    quantity_field: str,
    ceiling,
    ceiling_name: str,
) -> dict[int, int]:
    """
    Quantities for one stage, keyed by load item.

    Lines the caller leaves out default to their ceiling (requested for
    approval, approved for release).
    """
    given = parse_quantity_lines(items, quantity_field, allow_empty=True)
    by_product = {item.product_id: item for item in load.items}

    unknown = [product_id for product_id in given if product_id not in by_product]
    if unknown:
        raise ValidationError(f"Products {unknown} are not on stock load {load.id}")

    resolved = {}
    for product_id, item in by_product.items():
        limit = ceiling(item)
        qty = given.get(product_id, limit)
        if qty > limit:
            raise QuantityExceeded(
                f"{quantity_field} {qty} for product {product_id} exceeds "
                f"{ceiling_name} {limit}"
            )
        resolved[product_id] = qty
    return resolved


def approve_load(load_id: int, approver_id: int, items: list[dict] | None = None) -> StockLoad:
    """
    Approve a requested load (manager action).

    Raises:
        NotFoundError, PermissionDenied (APPROVE_LOAD),
        InvalidStateTransition (not requested), QuantityExceeded
    """
    def _op():
        load = get_load(load_id)
        require_permission(approver_id, "APPROVE_LOAD", resource=f"stock_load:{load_id}")
        _ensure_status(load, LOAD_STATUS_REQUESTED)

        quantities = _resolve_stage_quantities(
            load,
            items,
            quantity_field="approved_quantity",
            ceiling=lambda item: item.requested_quantity,
            ceiling_name="requested_quantity",
        )

        now = utcnow()
        compare_and_set_status(
            StockLoad,
            load_id,
            expected=LOAD_STATUS_REQUESTED,
            new=LOAD_STATUS_APPROVED,
            approved_at=now,
            approved_by_user_id=approver_id,
        )

        for item in load.items:
            item.approved_quantity = quantities[item.product_id]
        db.session.flush()
        db.session.refresh(load)

        append_event(
            event_type="stock_load.approved",
            event_category="loads",
            entity_type="stock_load",
            entity_id=load.id,
            actor_user_id=approver_id,
            agent_id=load.agent_id,
            occurred_at=now,
            payload=_format_lines(quantities),
        )
        return load

    return run_with_retry(_op)


def release_load(load_id: int, releaser_id: int, items: list[dict] | None = None) -> StockLoad:
    """
    Release an approved load to the agent (warehouse action).

    The released quantities are what the inventory ledger counts as loaded.

    Raises:
        NotFoundError, PermissionDenied (RELEASE_LOAD),
        InvalidStateTransition (not approved), QuantityExceeded
    """
    def _op():
        load = get_load(load_id)
        require_permission(releaser_id, "RELEASE_LOAD", resource=f"stock_load:{load_id}")
        _ensure_status(load, LOAD_STATUS_APPROVED)

        quantities = _resolve_stage_quantities(
            load,
            items,
            quantity_field="released_quantity",
            ceiling=lambda item: item.approved_quantity or 0,
            ceiling_name="approved_quantity",
        )

        now = utcnow()
        compare_and_set_status(
            StockLoad,
            load_id,
            expected=LOAD_STATUS_APPROVED,
            new=LOAD_STATUS_RELEASED,
            released_at=now,
            released_by_user_id=releaser_id,
        )

        for item in load.items:
            item.released_quantity = quantities[item.product_id]
        db.session.flush()
        db.session.refresh(load)

        append_event(
            event_type="stock_load.released",
            event_category="loads",
            entity_type="stock_load",
            entity_id=load.id,
            actor_user_id=releaser_id,
            agent_id=load.agent_id,
            occurred_at=now,
            payload=_format_lines(quantities),
        )
        return load

    return run_with_retry(_op)


def reject_load(load_id: int, reason: str, *, rejected_by_user_id: int) -> StockLoad:
    """
    Reject a requested load. Terminal.

    Raises:
        NotFoundError, PermissionDenied (REJECT_LOAD),
        InvalidStateTransition (not requested), ValidationError (no reason)
    """
    def _op():
        load = get_load(load_id)
        require_permission(rejected_by_user_id, "REJECT_LOAD", resource=f"stock_load:{load_id}")
        _ensure_status(load, LOAD_STATUS_REQUESTED)

        rejection_reason = require_text(reason, "reason")

        now = utcnow()
        compare_and_set_status(
            StockLoad,
            load_id,
            expected=LOAD_STATUS_REQUESTED,
            new=LOAD_STATUS_REJECTED,
            rejected_at=now,
            rejected_by_user_id=rejected_by_user_id,
            rejection_reason=rejection_reason,
        )
        db.session.refresh(load)

        append_event(
            event_type="stock_load.rejected",
            event_category="loads",
            entity_type="stock_load",
            entity_id=load.id,
            actor_user_id=rejected_by_user_id,
            agent_id=load.agent_id,
            occurred_at=now,
            note=rejection_reason,
        )
        return load

    return run_with_retry(_op)
