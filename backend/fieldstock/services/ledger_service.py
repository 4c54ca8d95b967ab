# Overview: Service-layer operations for the inventory ledger; read-only vehicle stock position.

"""
Inventory ledger for agent vehicle stock.

Per agent, product and business day:

    loaded    = released quantity (falling back to approved) of the day's load(s)
    sold      = sum of invoice item quantities of the agent's invoices that day
    remaining = loaded - sold

Invariants
- Pure read: no writes, no audit events, same answer on every call.
- The day is the half-open UTC window [00:00, next 00:00).
- Only released loads count; approved-but-unreleased stock is still in the
  warehouse.

Which loads count is governed by LEDGER_LOAD_POLICY:
- "latest": only the most recently released load of the day
- "cumulative": every load released that day, summed
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Invoice, InvoiceItem, StockLoad, StockLoadItem
from fieldstock.time_utils import day_bounds
from .agent_service import get_agent
from .catalog_service import get_product


LOAD_POLICY_LATEST = "latest"
LOAD_POLICY_CUMULATIVE = "cumulative"


@dataclass(frozen=True)
class LedgerEntry:
    agent_id: int
    product_id: int
    day: date
    loaded: int
    sold: int

    @property
    def remaining(self) -> int:
        return self.loaded - self.sold

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "product_id": self.product_id,
            "date": self.day.isoformat(),
            "loaded": self.loaded,
            "sold": self.sold,
            "remaining": self.remaining,
        }


def _load_policy() -> str:
    policy = current_app.config.get("LEDGER_LOAD_POLICY", LOAD_POLICY_LATEST)
    if policy not in (LOAD_POLICY_LATEST, LOAD_POLICY_CUMULATIVE):
        raise ValueError(f"Unsupported LEDGER_LOAD_POLICY: {policy!r}")
    return policy


def _released_loads(agent_id: int, day: date) -> list[StockLoad]:
    start, end = day_bounds(day)
    loads = (
        db.session.query(StockLoad)
        .filter(
            StockLoad.agent_id == agent_id,
            StockLoad.status == "released",
            StockLoad.released_at >= start,
            StockLoad.released_at < end,
        )
        .order_by(StockLoad.released_at.desc(), StockLoad.id.desc())
        .all()
    )
    if _load_policy() == LOAD_POLICY_LATEST:
        return loads[:1]
    return loads


def loaded_by_product(agent_id: int, day: date) -> dict[int, int]:
    loaded: dict[int, int] = {}
    load_ids = [load.id for load in _released_loads(agent_id, day)]
    if not load_ids:
        return loaded

    items = (
        db.session.query(StockLoadItem)
        .filter(StockLoadItem.stock_load_id.in_(load_ids))
        .all()
    )
    for item in items:
        loaded[item.product_id] = loaded.get(item.product_id, 0) + item.loaded_quantity
    return loaded


def sold_by_product(agent_id: int, day: date) -> dict[int, int]:
    start, end = day_bounds(day)
    rows = (
        db.session.query(InvoiceItem.product_id, func.coalesce(func.sum(InvoiceItem.quantity), 0))
        .join(Invoice, Invoice.id == InvoiceItem.invoice_id)
        .filter(
            Invoice.agent_id == agent_id,
            Invoice.created_at >= start,
            Invoice.created_at < end,
        )
        .group_by(InvoiceItem.product_id)
        .all()
    )
    return {product_id: int(total) for product_id, total in rows}


def get_ledger(agent_id: int, product_id: int, day: date) -> LedgerEntry:
    """Stock position of one product on an agent's vehicle for a day."""
    get_agent(agent_id)
    get_product(product_id)
    return LedgerEntry(
        agent_id=agent_id,
        product_id=product_id,
        day=day,
        loaded=loaded_by_product(agent_id, day).get(product_id, 0),
        sold=sold_by_product(agent_id, day).get(product_id, 0),
    )


def get_agent_ledger(agent_id: int, day: date) -> list[LedgerEntry]:
    """One entry per product that was loaded or sold that day, by product id."""
    get_agent(agent_id)
    loaded = loaded_by_product(agent_id, day)
    sold = sold_by_product(agent_id, day)
    return [
        LedgerEntry(
            agent_id=agent_id,
            product_id=product_id,
            day=day,
            loaded=loaded.get(product_id, 0),
            sold=sold.get(product_id, 0),
        )
        for product_id in sorted(set(loaded) | set(sold))
    ]
