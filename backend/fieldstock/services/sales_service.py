"""
Field sales and visits.

WHY: Invoices are the consumption facts the inventory ledger subtracts,
and visits are the denominator of every KPI. Prices are snapshotted from
the catalog at sale time; invoice numbers come from the INVOICE document
sequence so two devices syncing at the same second never collide.
"""

from __future__ import annotations

from datetime import date, datetime

from ..errors import InvalidStateTransition, NotFoundError, ValidationError
from ..extensions import db
from ..models import AgentVisit, Invoice, InvoiceItem, Product
from fieldstock.time_utils import utcnow
from fieldstock.validation import optional_text, parse_quantity_lines, require_text
from .agent_service import ensure_acts_for_agent, get_active_agent
from .audit_service import append_event
from .concurrency import run_with_retry
from .document_service import next_document_number


PAYMENT_METHODS = ("cash", "credit")
VISIT_TYPES = ("scheduled", "unscheduled")
SALE_OUTCOME = "sale"


def get_visit(visit_id: int) -> AgentVisit:
    visit = db.session.get(AgentVisit, visit_id)
    if not visit:
        raise NotFoundError(f"Visit {visit_id} not found")
    return visit


def record_sale(
    agent_id: int,
    customer_id: int,
    items: list[dict],
    *,
    payment_method: str = "cash",
    visit_id: int | None = None,
    created_at: datetime | None = None,
    notes: str | None = None,
    actor_user_id: int | None = None,
) -> Invoice:
    """
    Record an invoice for a customer.

    ``created_at`` is set when a device syncs a sale made offline; the sale
    then counts towards that day in the ledger. With ``visit_id`` the visit
    is linked to the invoice and closed; without it an unscheduled visit is
    created for the sale.
    """
    def _op():
        get_active_agent(agent_id)
        ensure_acts_for_agent(actor_user_id, agent_id)

        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")
        if customer_id is None:
            raise ValidationError("customer_id is required")

        invoice_notes = optional_text(notes, "notes")
        lines = parse_quantity_lines(items, "quantity")
        zero = [product_id for product_id, qty in lines.items() if qty == 0]
        if zero:
            raise ValidationError(f"Quantity must be positive for products {zero}")

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

        visit = None
        if visit_id is not None:
            visit = get_visit(visit_id)
            if visit.agent_id != agent_id:
                raise ValidationError(f"Visit {visit_id} belongs to another agent")
            if visit.invoice_id is not None:
                raise InvalidStateTransition(f"Visit {visit_id} already has invoice {visit.invoice_id}")

        now = utcnow()
        sold_at = created_at or now

        invoice = Invoice(
            invoice_number=next_document_number(document_type="INVOICE", prefix="INV"),
            agent_id=agent_id,
            customer_id=customer_id,
            payment_method=payment_method,
            payment_status="paid" if payment_method == "cash" else "pending",
            offline_created=created_at is not None,
            notes=invoice_notes,
            created_at=sold_at,
        )
        db.session.add(invoice)
        db.session.flush()

        subtotal = 0
        for product_id, qty in lines.items():
            price = products[product_id].unit_price_cents
            db.session.add(InvoiceItem(
                invoice_id=invoice.id,
                product_id=product_id,
                quantity=qty,
                unit_price_cents=price,
                line_total_cents=price * qty,
            ))
            subtotal += price * qty

        invoice.subtotal_cents = subtotal
        invoice.total_cents = subtotal

        if visit is None:
            visit = AgentVisit(
                agent_id=agent_id,
                customer_id=customer_id,
                visit_date=sold_at.date(),
                visit_type="unscheduled",
                check_in_at=sold_at,
            )
            db.session.add(visit)
        visit.invoice_id = invoice.id
        visit.outcome = SALE_OUTCOME
        if visit.check_out_at is None:
            visit.check_out_at = sold_at
        db.session.flush()

        append_event(
            event_type="invoice.created",
            event_category="sales",
            entity_type="invoice",
            entity_id=invoice.id,
            actor_user_id=actor_user_id,
            agent_id=agent_id,
            occurred_at=sold_at,
            note=invoice.invoice_number,
            payload=f"total_cents={invoice.total_cents},offline={invoice.offline_created}",
        )
        return invoice

    return run_with_retry(_op)


def record_visit(
    agent_id: int,
    customer_id: int | None,
    *,
    visit_type: str = "scheduled",
    outcome: str | None = None,
    visit_date: date | None = None,
    notes: str | None = None,
    actor_user_id: int | None = None,
) -> AgentVisit:
    """Check an agent in at a customer. An outcome closes the visit at once."""
    get_active_agent(agent_id)
    ensure_acts_for_agent(actor_user_id, agent_id)

    if visit_type not in VISIT_TYPES:
        raise ValidationError(f"visit_type must be one of {', '.join(VISIT_TYPES)}")
    outcome = optional_text(outcome, "outcome")
    notes = optional_text(notes, "notes")

    now = utcnow()
    visit = AgentVisit(
        agent_id=agent_id,
        customer_id=customer_id,
        visit_date=visit_date or now.date(),
        visit_type=visit_type,
        check_in_at=now,
        check_out_at=now if outcome else None,
        outcome=outcome,
        notes=notes,
    )
    db.session.add(visit)
    db.session.flush()

    append_event(
        event_type="visit.recorded",
        event_category="sales",
        entity_type="agent_visit",
        entity_id=visit.id,
        actor_user_id=actor_user_id,
        agent_id=agent_id,
        occurred_at=now,
        note=outcome,
    )
    return visit


def close_visit(visit_id: int, outcome: str, *, actor_user_id: int | None = None) -> AgentVisit:
    visit = get_visit(visit_id)
    ensure_acts_for_agent(actor_user_id, visit.agent_id)

    outcome = require_text(outcome, "outcome")
    if visit.check_out_at is not None:
        raise InvalidStateTransition(f"Visit {visit_id} is already closed")

    now = utcnow()
    visit.outcome = outcome
    visit.check_out_at = now
    db.session.flush()

    append_event(
        event_type="visit.closed",
        event_category="sales",
        entity_type="agent_visit",
        entity_id=visit.id,
        actor_user_id=actor_user_id,
        agent_id=visit.agent_id,
        occurred_at=now,
        note=visit.outcome,
    )
    return visit
