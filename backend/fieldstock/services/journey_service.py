# Overview: Service-layer operations for journey plans; dated and weekly visit routes.

from __future__ import annotations

from datetime import date

from ..errors import ValidationError
from ..extensions import db
from ..models import JourneyPlan, JourneyPlanStop
from fieldstock.time_utils import utcnow
from fieldstock.validation import coerce_int, optional_text
from .agent_service import get_active_agent, get_agent
from .audit_service import append_event
from .permission_service import require_permission


def create_plan(
    agent_id: int,
    customer_ids: list,
    *,
    plan_date: date | None = None,
    day_of_week: int | None = None,
    notes: str | None = None,
    created_by_user_id: int,
) -> JourneyPlan:
    """
    Create a journey plan.

    Exactly one of plan_date (one-off) or day_of_week (weekly, 0=Monday)
    must be given. Stops are sequenced in the order of customer_ids.
    """
    get_active_agent(agent_id)
    require_permission(created_by_user_id, "MANAGE_JOURNEY_PLANS", resource=f"agent:{agent_id}")

    if (plan_date is None) == (day_of_week is None):
        raise ValidationError("Exactly one of plan_date or day_of_week is required")
    if day_of_week is not None:
        day_of_week = coerce_int(day_of_week, "day_of_week")
        if not 0 <= day_of_week <= 6:
            raise ValidationError("day_of_week must be between 0 (Monday) and 6 (Sunday)")

    if not isinstance(customer_ids, list) or not customer_ids:
        raise ValidationError("customer_ids must be a non-empty list")
    customers = [coerce_int(c, "customer_ids[]") for c in customer_ids]
    notes = optional_text(notes, "notes")
    if len(set(customers)) != len(customers):
        raise ValidationError("customer_ids must not repeat")

    plan = JourneyPlan(
        agent_id=agent_id,
        plan_date=plan_date,
        day_of_week=day_of_week,
        status="planned",
        notes=notes,
        created_by_user_id=created_by_user_id,
    )
    db.session.add(plan)
    db.session.flush()

    for sequence, customer_id in enumerate(customers, start=1):
        db.session.add(JourneyPlanStop(
            journey_plan_id=plan.id,
            customer_id=customer_id,
            sequence=sequence,
        ))
    db.session.flush()

    append_event(
        event_type="journey_plan.created",
        event_category="field",
        entity_type="journey_plan",
        entity_id=plan.id,
        actor_user_id=created_by_user_id,
        agent_id=agent_id,
        occurred_at=utcnow(),
    )
    return plan


def plans_for_day(agent_id: int, day: date) -> list[JourneyPlan]:
    """Dated plans for ``day`` followed by weekly plans for its weekday."""
    get_agent(agent_id)
    base = db.session.query(JourneyPlan).filter(
        JourneyPlan.agent_id == agent_id,
        JourneyPlan.status != "cancelled",
    )
    dated = base.filter(JourneyPlan.plan_date == day).order_by(JourneyPlan.id).all()
    weekly = base.filter(JourneyPlan.day_of_week == day.weekday()).order_by(JourneyPlan.id).all()
    return dated + weekly
