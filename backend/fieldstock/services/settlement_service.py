# Overview: Service-layer operations for end-of-day settlement; reconciliation and cash variance.

"""
End-of-day settlement (reconciliation) for field agents.

WHY: At shift end the agent declares what goes back to the warehouse and
how much cash was collected. The engine derives what *should* have been
collected from the ledger and the catalog price, and records the variance
for finance to approve or dispute.

Per product:
    remaining = ledger.loaded - ledger.sold
    unload    = clamp(requested unload, 0, remaining)
    keep      = remaining - unload            (stays on the vehicle)
    loaded    = sold + unload + keep          (conservation)

Day totals:
    expected_cash = sum(sold * catalog unit price)
    variance      = cash_collected - expected_cash   (negative = shortfall)

LIFECYCLE:
- submitted -> approved (terminal)
- submitted -> disputed (terminal; the agent resubmits a new record that
  points back through supersedes_id)

Variance is recorded only. Approval never adjusts inventory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import (
    InvalidStateTransition,
    NotFoundError,
    QuantityExceeded,
    ValidationError,
)
from ..extensions import db
from ..models import Product, Reconciliation, ReconciliationItem
from fieldstock.time_utils import utcnow
from fieldstock.validation import coerce_cents, optional_text, parse_quantity_lines, require_text
from .agent_service import ensure_acts_for_agent, get_agent
from .audit_service import append_event
from .concurrency import compare_and_set_status, run_with_retry
from .ledger_service import loaded_by_product, sold_by_product
from .permission_service import require_permission


RECONCILIATION_STATUS_PENDING = "pending"
RECONCILIATION_STATUS_SUBMITTED = "submitted"
RECONCILIATION_STATUS_APPROVED = "approved"
RECONCILIATION_STATUS_DISPUTED = "disputed"


@dataclass(frozen=True)
class SettlementLine:
    product_id: int
    loaded: int
    sold: int
    unload: int
    keep: int
    unit_price_cents: int

    @property
    def total_value_cents(self) -> int:
        return self.sold * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "loaded_quantity": self.loaded,
            "sold_quantity": self.sold,
            "returned_quantity": self.unload,
            "remaining_quantity": self.keep,
            "unit_price_cents": self.unit_price_cents,
            "total_value_cents": self.total_value_cents,
        }


@dataclass(frozen=True)
class SettlementComputation:
    agent_id: int
    day: date
    cash_collected_cents: int
    lines: list[SettlementLine] = field(default_factory=list)

    @property
    def total_loaded(self) -> int:
        return sum(line.loaded for line in self.lines)

    @property
    def total_sold(self) -> int:
        return sum(line.sold for line in self.lines)

    @property
    def total_returned(self) -> int:
        return sum(line.unload for line in self.lines)

    @property
    def total_kept(self) -> int:
        return sum(line.keep for line in self.lines)

    @property
    def expected_cash_cents(self) -> int:
        return sum(line.total_value_cents for line in self.lines)

    @property
    def variance_cents(self) -> int:
        return self.cash_collected_cents - self.expected_cash_cents

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "date": self.day.isoformat(),
            "status": RECONCILIATION_STATUS_PENDING,
            "total_loaded": self.total_loaded,
            "total_sold": self.total_sold,
            "total_returned": self.total_returned,
            "total_kept": self.total_kept,
            "cash_collected_cents": self.cash_collected_cents,
            "expected_cash_cents": self.expected_cash_cents,
            "variance_cents": self.variance_cents,
            "items": [line.to_dict() for line in self.lines],
        }


def _strict_unload() -> bool:
    return bool(current_app.config.get("SETTLEMENT_STRICT_UNLOAD", False))


def compute_settlement(
    agent_id: int,
    day: date,
    items: list[dict] | None,
    cash_collected_cents,
) -> SettlementComputation:
    """
    Settlement figures for an agent/day without persisting anything.

    Products loaded or sold that day but absent from ``items`` are settled
    with an unload of 0 (everything stays on the vehicle).
    """
    cash = coerce_cents(cash_collected_cents, "cash_collected_cents")
    unloads = parse_quantity_lines(items, "unload_quantity", allow_empty=True)

    loaded = loaded_by_product(agent_id, day)
    sold = sold_by_product(agent_id, day)
    product_ids = sorted(set(loaded) | set(sold))

    stray = [product_id for product_id in unloads if product_id not in product_ids]
    if stray:
        raise ValidationError(f"Products {stray} were neither loaded nor sold on {day.isoformat()}")

    prices = {
        p.id: p.unit_price_cents
        for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    } if product_ids else {}

    strict = _strict_unload()
    lines = []
    for product_id in product_ids:
        loaded_qty = loaded.get(product_id, 0)
        sold_qty = sold.get(product_id, 0)
        remaining = loaded_qty - sold_qty
        max_unload = max(remaining, 0)

        requested = unloads.get(product_id, 0)
        if requested > max_unload:
            if strict:
                raise QuantityExceeded(
                    f"Unload {requested} for product {product_id} exceeds remaining {max_unload}"
                )
            requested = max_unload

        lines.append(SettlementLine(
            product_id=product_id,
            loaded=loaded_qty,
            sold=sold_qty,
            unload=requested,
            keep=remaining - requested,
            unit_price_cents=prices.get(product_id, 0),
        ))

    return SettlementComputation(
        agent_id=agent_id,
        day=day,
        cash_collected_cents=cash,
        lines=lines,
    )


def preview_reconciliation(
    agent_id: int,
    day: date,
    items: list[dict] | None = None,
    cash_collected_cents=0,
) -> SettlementComputation:
    """Same figures as submit_reconciliation, reported as status "pending"."""
    get_agent(agent_id)
    return compute_settlement(agent_id, day, items, cash_collected_cents)


def get_reconciliation(reconciliation_id: int) -> Reconciliation:
    rec = db.session.get(Reconciliation, reconciliation_id)
    if not rec:
        raise NotFoundError(f"Reconciliation {reconciliation_id} not found")
    return rec


def list_reconciliations(
    agent_id: int | None = None,
    status: str | None = None,
    day: date | None = None,
) -> list[Reconciliation]:
    query = db.session.query(Reconciliation)
    if agent_id is not None:
        query = query.filter(Reconciliation.agent_id == agent_id)
    if status is not None:
        query = query.filter(Reconciliation.status == status)
    if day is not None:
        query = query.filter(Reconciliation.date == day)
    return query.order_by(Reconciliation.id.desc()).all()


def submit_reconciliation(
    agent_id: int,
    day: date,
    items: list[dict] | None,
    cash_collected_cents,
    notes: str | None = None,
    *,
    submitted_by_user_id: int,
) -> Reconciliation:
    """
    Close an agent's day.

    Raises:
        ValidationError: negative cash, unknown settlement products
        QuantityExceeded: over-unload while SETTLEMENT_STRICT_UNLOAD is on
        InvalidStateTransition: the day already has a submitted or approved
            reconciliation
        PermissionDenied: actor lacks SUBMIT_RECONCILIATION
    """
    def _op():
        get_agent(agent_id)
        require_permission(submitted_by_user_id, "SUBMIT_RECONCILIATION", resource=f"agent:{agent_id}")
        ensure_acts_for_agent(submitted_by_user_id, agent_id)
        submit_notes = optional_text(notes, "notes")

        previous = (
            db.session.query(Reconciliation)
            .filter(Reconciliation.agent_id == agent_id, Reconciliation.date == day)
            .order_by(Reconciliation.id.desc())
            .all()
        )
        open_or_closed = [
            r for r in previous
            if r.status in (RECONCILIATION_STATUS_SUBMITTED, RECONCILIATION_STATUS_APPROVED)
        ]
        if open_or_closed:
            raise InvalidStateTransition(
                f"Agent {agent_id} already has a {open_or_closed[0].status} "
                f"reconciliation for {day.isoformat()}"
            )
        superseded = previous[0] if previous else None

        computation = compute_settlement(agent_id, day, items, cash_collected_cents)

        now = utcnow()
        rec = Reconciliation(
            agent_id=agent_id,
            date=day,
            status=RECONCILIATION_STATUS_SUBMITTED,
            total_loaded=computation.total_loaded,
            total_sold=computation.total_sold,
            total_returned=computation.total_returned,
            cash_collected_cents=computation.cash_collected_cents,
            expected_cash_cents=computation.expected_cash_cents,
            variance_cents=computation.variance_cents,
            notes=submit_notes,
            supersedes_id=superseded.id if superseded else None,
            submitted_by_user_id=submitted_by_user_id,
            submitted_at=now,
        )
        try:
            with db.session.begin_nested():
                db.session.add(rec)
        except IntegrityError:
            # Another submission for the same day committed after the check above
            raise InvalidStateTransition(
                f"Agent {agent_id} already has an open reconciliation for {day.isoformat()}"
            )

        for line in computation.lines:
            db.session.add(ReconciliationItem(
                reconciliation_id=rec.id,
                product_id=line.product_id,
                loaded_quantity=line.loaded,
                sold_quantity=line.sold,
                returned_quantity=line.unload,
                remaining_quantity=line.keep,
                unit_price_cents=line.unit_price_cents,
                total_value_cents=line.total_value_cents,
            ))
        db.session.flush()

        append_event(
            event_type="reconciliation.submitted",
            event_category="settlement",
            entity_type="reconciliation",
            entity_id=rec.id,
            actor_user_id=submitted_by_user_id,
            agent_id=agent_id,
            occurred_at=now,
            note=submit_notes,
            payload=(
                f"expected={computation.expected_cash_cents},"
                f"cash={computation.cash_collected_cents},"
                f"variance={computation.variance_cents}"
            ),
        )
        return rec

    return run_with_retry(_op)


def approve_reconciliation(reconciliation_id: int, approver_id: int) -> Reconciliation:
    """Finance accepts a submitted reconciliation. Terminal."""
    def _op():
        rec = get_reconciliation(reconciliation_id)
        require_permission(approver_id, "APPROVE_RECONCILIATION", resource=f"reconciliation:{reconciliation_id}")

        now = utcnow()
        compare_and_set_status(
            Reconciliation,
            reconciliation_id,
            expected=RECONCILIATION_STATUS_SUBMITTED,
            new=RECONCILIATION_STATUS_APPROVED,
            approved_at=now,
            approved_by_user_id=approver_id,
        )
        db.session.refresh(rec)

        append_event(
            event_type="reconciliation.approved",
            event_category="settlement",
            entity_type="reconciliation",
            entity_id=rec.id,
            actor_user_id=approver_id,
            agent_id=rec.agent_id,
            occurred_at=now,
        )
        return rec

    return run_with_retry(_op)


def dispute_reconciliation(
    reconciliation_id: int,
    notes: str,
    *,
    disputed_by_user_id: int,
) -> Reconciliation:
    """
    Finance rejects a submitted reconciliation. Terminal.

    The dispute notes replace the record's notes; the agent's original
    notes remain on the reconciliation.submitted audit event.
    """
    def _op():
        rec = get_reconciliation(reconciliation_id)
        require_permission(
            disputed_by_user_id,
            "DISPUTE_RECONCILIATION",
            resource=f"reconciliation:{reconciliation_id}",
        )

        dispute_notes = require_text(notes, "notes")

        now = utcnow()
        compare_and_set_status(
            Reconciliation,
            reconciliation_id,
            expected=RECONCILIATION_STATUS_SUBMITTED,
            new=RECONCILIATION_STATUS_DISPUTED,
            disputed_at=now,
            disputed_by_user_id=disputed_by_user_id,
            notes=dispute_notes,
        )
        db.session.refresh(rec)

        append_event(
            event_type="reconciliation.disputed",
            event_category="settlement",
            entity_type="reconciliation",
            entity_id=rec.id,
            actor_user_id=disputed_by_user_id,
            agent_id=rec.agent_id,
            occurred_at=now,
            note=dispute_notes,
        )
        return rec

    return run_with_retry(_op)
