# Overview: Flask API routes for journey plans.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_any_permission, require_auth, require_permission
from ..errors import DomainError, ValidationError
from ..services import journey_service
from ..services.concurrency import commit_with_retry
from fieldstock.time_utils import today
from fieldstock.validation import optional_int, parse_day
from . import domain_error_response, scoped_agent_id, unexpected_error_response


journey_plans_bp = Blueprint("journey_plans", __name__, url_prefix="/api/journey-plans")


@journey_plans_bp.post("")
@require_auth
@require_permission("MANAGE_JOURNEY_PLANS")
def create_plan():
    """
    Request body:
    {
        "agent_id": int,
        "customer_ids": [int, ...] (visit order),
        "plan_date": "YYYY-MM-DD"  -- or --  "day_of_week": 0..6 (0=Monday),
        "notes": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        agent_id = optional_int(data.get("agent_id"), "agent_id")
        if agent_id is None:
            raise ValidationError("agent_id is required")

        plan = journey_service.create_plan(
            agent_id,
            data.get("customer_ids"),
            plan_date=parse_day(data.get("plan_date"), "plan_date"),
            day_of_week=data.get("day_of_week"),
            notes=data.get("notes"),
            created_by_user_id=g.current_user.id,
        )
        commit_with_retry()
        return jsonify(plan.to_dict()), 201

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("creating journey plan")


@journey_plans_bp.get("")
@require_auth
@require_any_permission("VIEW_JOURNEY_PLANS", "RECORD_VISIT")
def plans_for_day():
    """Query params: agent_id, date (default today)."""
    try:
        agent_id = scoped_agent_id(optional_int(request.args.get("agent_id"), "agent_id"))
        if agent_id is None:
            raise ValidationError("agent_id is required")
        day = parse_day(request.args.get("date")) or today()

        plans = journey_service.plans_for_day(agent_id, day)
        return jsonify({
            "agent_id": agent_id,
            "date": day.isoformat(),
            "plans": [plan.to_dict() for plan in plans],
        }), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("listing journey plans")
