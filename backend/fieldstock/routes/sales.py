# Overview: Flask API routes for field sales and visits.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import DomainError, ValidationError
from ..services import sales_service
from ..services.concurrency import commit_with_retry
from fieldstock.validation import optional_int, parse_day, parse_timestamp
from . import domain_error_response, scoped_agent_id, unexpected_error_response


sales_bp = Blueprint("sales", __name__, url_prefix="/api")


def _agent_from(data: dict) -> int:
    agent_id = scoped_agent_id(optional_int(data.get("agent_id"), "agent_id"))
    if agent_id is None:
        raise ValidationError("agent_id is required")
    return agent_id


@sales_bp.post("/sales")
@require_auth
@require_permission("RECORD_SALE")
def record_sale():
    """
    Request body:
    {
        "agent_id": int (optional for agent logins),
        "customer_id": int,
        "items": [{"product_id": int, "quantity": int}],
        "payment_method": "cash" | "credit",
        "visit_id": int (optional),
        "created_at": ISO-8601 (optional, offline sales),
        "notes": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        invoice = sales_service.record_sale(
            _agent_from(data),
            optional_int(data.get("customer_id"), "customer_id"),
            data.get("items"),
            payment_method=data.get("payment_method", "cash"),
            visit_id=optional_int(data.get("visit_id"), "visit_id"),
            created_at=parse_timestamp(data.get("created_at"), "created_at"),
            notes=data.get("notes"),
            actor_user_id=g.current_user.id,
        )
        commit_with_retry()
        return jsonify(invoice.to_dict()), 201

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("recording sale")


@sales_bp.post("/visits")
@require_auth
@require_permission("RECORD_VISIT")
def record_visit():
    """
    Request body:
    {
        "agent_id": int (optional for agent logins),
        "customer_id": int,
        "visit_type": "scheduled" | "unscheduled",
        "outcome": str (optional, closes the visit),
        "visit_date": "YYYY-MM-DD" (optional),
        "notes": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        visit = sales_service.record_visit(
            _agent_from(data),
            optional_int(data.get("customer_id"), "customer_id"),
            visit_type=data.get("visit_type", "scheduled"),
            outcome=data.get("outcome"),
            visit_date=parse_day(data.get("visit_date"), "visit_date"),
            notes=data.get("notes"),
            actor_user_id=g.current_user.id,
        )
        commit_with_retry()
        return jsonify(visit.to_dict()), 201

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("recording visit")


@sales_bp.post("/visits/<int:visit_id>/close")
@require_auth
@require_permission("RECORD_VISIT")
def close_visit(visit_id: int):
    """
    Request body:
    {"outcome": str}
    """
    data = request.get_json(silent=True) or {}

    try:
        visit = sales_service.close_visit(
            visit_id,
            data.get("outcome"),
            actor_user_id=g.current_user.id,
        )
        commit_with_retry()
        return jsonify(visit.to_dict()), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("closing visit")
