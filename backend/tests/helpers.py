"""Shared builders for service-level tests."""

from datetime import datetime

from fieldstock.extensions import db
from fieldstock.services import load_service, sales_service


def released_load(agent, quantities: dict, *, requester, manager, released=None):
    """
    Push a load through request -> approve -> release.

    ``quantities`` maps product -> requested quantity; ``released`` optionally
    maps product -> released quantity (defaults to the full request).
    """
    load = load_service.request_load(
        agent.id,
        [{"product_id": p.id, "requested_quantity": q} for p, q in quantities.items()],
        requested_by_user_id=requester.id,
    )
    load_service.approve_load(load.id, manager.id)
    items = None
    if released:
        items = [{"product_id": p.id, "released_quantity": q} for p, q in released.items()]
    load_service.release_load(load.id, manager.id, items)
    db.session.commit()
    return load


def sell(agent, product, quantity: int, *, created_at: datetime | None = None, customer_id: int = 501):
    invoice = sales_service.record_sale(
        agent.id,
        customer_id,
        [{"product_id": product.id, "quantity": quantity}],
        created_at=created_at,
    )
    db.session.commit()
    return invoice
