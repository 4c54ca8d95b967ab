# backend/fieldstock/routes/reconciliations.py
"""
End-of-day settlement API routes.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_any_permission, require_auth, require_permission
from ..errors import DomainError, ValidationError
from ..services import settlement_service
from ..services.concurrency import commit_with_retry
from fieldstock.time_utils import today
from fieldstock.validation import optional_int, parse_day
from . import domain_error_response, scoped_agent_id, unexpected_error_response


reconciliations_bp = Blueprint("reconciliations", __name__, url_prefix="/api/reconciliations")


def _settlement_args(data: dict):
    agent_id = scoped_agent_id(optional_int(data.get("agent_id"), "agent_id"))
    if agent_id is None:
        raise ValidationError("agent_id is required")
    day = parse_day(data.get("date")) or today()
    return agent_id, day


@reconciliations_bp.route("", methods=["POST"])
@require_auth
@require_permission("SUBMIT_RECONCILIATION")
def submit_reconciliation():
    """
    Close an agent's day.

    Request body:
    {
        "agent_id": int (optional for agent logins),
        "date": "YYYY-MM-DD" (default today),
        "items": [{"product_id": int, "unload_quantity": int}],
        "cash_collected_cents": int,
        "notes": str (optional)
    }

    Returns:
        201: Submitted
        400: Invalid request / over-unload in strict mode
        409: Day already submitted or approved
    """
    data = request.get_json(silent=True) or {}

    try:
        agent_id, day = _settlement_args(data)
        rec = settlement_service.submit_reconciliation(
            agent_id,
            day,
            data.get("items"),
            data.get("cash_collected_cents", 0),
            data.get("notes"),
            submitted_by_user_id=g.current_user.id,
        )
        commit_with_retry()
        return jsonify(rec.to_dict()), 201

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("submitting reconciliation")


@reconciliations_bp.route("/preview", methods=["POST"])
@require_auth
@require_permission("SUBMIT_RECONCILIATION")
def preview_reconciliation():
    """Same body as submit; nothing is saved."""
    data = request.get_json(silent=True) or {}

    try:
        agent_id, day = _settlement_args(data)
        computation = settlement_service.preview_reconciliation(
            agent_id,
            day,
            data.get("items"),
            data.get("cash_collected_cents", 0),
        )
        return jsonify(computation.to_dict()), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("previewing reconciliation")


@reconciliations_bp.route("/<int:reconciliation_id>/approve", methods=["POST"])
@require_auth
@require_permission("APPROVE_RECONCILIATION")
def approve_reconciliation(reconciliation_id: int):
    try:
        rec = settlement_service.approve_reconciliation(reconciliation_id, g.current_user.id)
        commit_with_retry()
        return jsonify(rec.to_dict()), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("approving reconciliation")


@reconciliations_bp.route("/<int:reconciliation_id>/dispute", methods=["POST"])
@require_auth
@require_permission("DISPUTE_RECONCILIATION")
def dispute_reconciliation(reconciliation_id: int):
    """
    Request body:
    {"notes": str}
    """
    data = request.get_json(silent=True) or {}

    try:
        rec = settlement_service.dispute_reconciliation(
            reconciliation_id,
            data.get("notes"),
            disputed_by_user_id=g.current_user.id,
        )
        commit_with_retry()
        return jsonify(rec.to_dict()), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("disputing reconciliation")


@reconciliations_bp.route("", methods=["GET"])
@require_auth
@require_any_permission("VIEW_RECONCILIATIONS", "SUBMIT_RECONCILIATION")
def list_reconciliations():
    """Query params: agent_id, status, date."""
    try:
        agent_id = scoped_agent_id(optional_int(request.args.get("agent_id"), "agent_id"))
        recs = settlement_service.list_reconciliations(
            agent_id=agent_id,
            status=request.args.get("status"),
            day=parse_day(request.args.get("date")),
        )
        return jsonify({"reconciliations": [rec.to_dict() for rec in recs]}), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("listing reconciliations")


@reconciliations_bp.route("/<int:reconciliation_id>", methods=["GET"])
@require_auth
@require_any_permission("VIEW_RECONCILIATIONS", "SUBMIT_RECONCILIATION")
def get_reconciliation(reconciliation_id: int):
    try:
        rec = settlement_service.get_reconciliation(reconciliation_id)
        scoped_agent_id(rec.agent_id)
        return jsonify(rec.to_dict()), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("loading reconciliation")
