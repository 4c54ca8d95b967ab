# Overview: Service-layer operations for agent KPIs; derived from visits and invoices.

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import func, or_

from ..errors import ValidationError
from ..extensions import db
from ..models import AgentVisit, Invoice, InvoiceItem
from fieldstock.time_utils import day_bounds, today
from .agent_service import get_agent


# Progress figures saturate here so one huge invoice cannot dominate a chart
PROGRESS_CAP = Decimal("150")

# Rough packaging estimates (no per-product carton data is kept)
CENTS_PER_TARGET_CARTON = 100 * 100
KG_PER_CARTON = Decimal("0.5")

SUCCESSFUL_OUTCOMES = ("sale", "successful")


def _round(value: Decimal, places: int) -> Decimal:
    """Half-up rounding to a fixed number of decimal places."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def _ratio(numerator, denominator) -> Decimal:
    """numerator / denominator, 0 when the denominator is 0."""
    if not denominator:
        return Decimal(0)
    return Decimal(numerator) / Decimal(denominator)


def _progress(actual, target) -> Decimal:
    return min(_round(_ratio(actual, target) * 100, 1), PROGRESS_CAP)


def current_month_range(reference: date | None = None) -> tuple[date, date]:
    reference = reference or today()
    last_day = calendar.monthrange(reference.year, reference.month)[1]
    return reference.replace(day=1), reference.replace(day=last_day)


@dataclass(frozen=True)
class AgentKPIs:
    agent_id: int
    date_from: date
    date_to: date
    total_visits: int
    successful_visits: int
    total_invoices: int
    total_sales_cents: int
    target_cents: int
    total_quantity: int

    @property
    def productivity(self) -> Decimal:
        """Invoices per visit."""
        return _round(_ratio(self.total_invoices, self.total_visits), 2)

    @property
    def strike_rate(self) -> Decimal:
        """Successful visits as a percentage of all visits."""
        return _round(_ratio(self.successful_visits, self.total_visits) * 100, 1)

    @property
    def drop_size_cents(self) -> int:
        """Average invoice value."""
        return int(_round(_ratio(self.total_sales_cents, self.total_invoices), 0))

    @property
    def target_progress(self) -> Decimal:
        return _progress(self.total_sales_cents, self.target_cents)

    @property
    def target_cartons(self) -> int:
        return int(_round(_ratio(self.target_cents, CENTS_PER_TARGET_CARTON), 0))

    @property
    def actual_cartons(self) -> int:
        return self.total_quantity

    @property
    def cartons_progress(self) -> Decimal:
        return _progress(self.actual_cartons, self.target_cartons)

    @property
    def target_tons(self) -> Decimal:
        return self.target_cartons * KG_PER_CARTON / 1000

    @property
    def actual_tons(self) -> Decimal:
        return self.actual_cartons * KG_PER_CARTON / 1000

    @property
    def tons_progress(self) -> Decimal:
        return _progress(self.actual_tons, self.target_tons)

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "from": self.date_from.isoformat(),
            "to": self.date_to.isoformat(),
            "productivity": float(self.productivity),
            "strike_rate": float(self.strike_rate),
            "drop_size_cents": self.drop_size_cents,
            "total_visits": self.total_visits,
            "successful_visits": self.successful_visits,
            "total_invoices": self.total_invoices,
            "total_sales_cents": self.total_sales_cents,
            "target_cents": self.target_cents,
            "actual_cents": self.total_sales_cents,
            "target_progress": float(self.target_progress),
            "target_cartons": self.target_cartons,
            "actual_cartons": self.actual_cartons,
            "cartons_progress": float(self.cartons_progress),
            "target_tons": float(_round(self.target_tons, 2)),
            "actual_tons": float(_round(self.actual_tons, 2)),
            "tons_progress": float(self.tons_progress),
        }


def get_agent_kpis(
    agent_id: int,
    date_from: date | None = None,
    date_to: date | None = None,
) -> AgentKPIs:
    """
    Field performance of one agent over an inclusive day range.

    Missing bounds default to the current calendar month. A visit is
    successful when it produced an invoice or its outcome says so.
    """
    agent = get_agent(agent_id)

    month_start, month_end = current_month_range()
    date_from = date_from or month_start
    date_to = date_to or month_end
    if date_from > date_to:
        raise ValidationError("from must not be after to")

    start, _ = day_bounds(date_from)
    _, end = day_bounds(date_to)

    visit_filter = (
        AgentVisit.agent_id == agent_id,
        AgentVisit.visit_date >= date_from,
        AgentVisit.visit_date <= date_to,
    )
    total_visits = db.session.query(func.count(AgentVisit.id)).filter(*visit_filter).scalar() or 0
    successful_visits = (
        db.session.query(func.count(AgentVisit.id))
        .filter(
            *visit_filter,
            or_(AgentVisit.invoice_id.isnot(None), AgentVisit.outcome.in_(SUCCESSFUL_OUTCOMES)),
        )
        .scalar()
        or 0
    )

    invoice_filter = (
        Invoice.agent_id == agent_id,
        Invoice.created_at >= start,
        Invoice.created_at < end,
    )
    total_invoices, total_sales_cents = (
        db.session.query(func.count(Invoice.id), func.coalesce(func.sum(Invoice.total_cents), 0))
        .filter(*invoice_filter)
        .one()
    )
    total_quantity = (
        db.session.query(func.coalesce(func.sum(InvoiceItem.quantity), 0))
        .join(Invoice, Invoice.id == InvoiceItem.invoice_id)
        .filter(*invoice_filter)
        .scalar()
    )

    return AgentKPIs(
        agent_id=agent_id,
        date_from=date_from,
        date_to=date_to,
        total_visits=int(total_visits),
        successful_visits=int(successful_visits),
        total_invoices=int(total_invoices),
        total_sales_cents=int(total_sales_cents),
        target_cents=agent.monthly_target_cents or 0,
        total_quantity=int(total_quantity or 0),
    )
