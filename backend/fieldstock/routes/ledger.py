# Overview: Flask API routes for the inventory ledger; read-only vehicle stock.

from flask import Blueprint, jsonify, request

from ..decorators import require_any_permission, require_auth
from ..errors import DomainError, ValidationError
from ..services import ledger_service
from fieldstock.time_utils import today
from fieldstock.validation import coerce_int, optional_int, parse_day
from . import domain_error_response, scoped_agent_id, unexpected_error_response


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
@require_auth
@require_any_permission("VIEW_LEDGER", "SUBMIT_RECONCILIATION")
def get_ledger_route():
    """
    Loaded / sold / remaining for one agent, product and day.

    Query params: agent_id, product_id, date (YYYY-MM-DD, default today)
    """
    try:
        agent_id = scoped_agent_id(optional_int(request.args.get("agent_id"), "agent_id"))
        if agent_id is None:
            raise ValidationError("agent_id is required")
        if request.args.get("product_id") is None:
            raise ValidationError("product_id is required")
        product_id = coerce_int(request.args.get("product_id"), "product_id")
        day = parse_day(request.args.get("date")) or today()

        entry = ledger_service.get_ledger(agent_id, product_id, day)
        return jsonify(entry.to_dict()), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("reading ledger")


@ledger_bp.get("/agents/<int:agent_id>")
@require_auth
@require_any_permission("VIEW_LEDGER", "SUBMIT_RECONCILIATION")
def get_agent_ledger_route(agent_id: int):
    """Every product the agent loaded or sold on ``date`` (default today)."""
    try:
        scoped_agent_id(agent_id)
        day = parse_day(request.args.get("date")) or today()
        entries = ledger_service.get_agent_ledger(agent_id, day)

        return jsonify({
            "agent_id": agent_id,
            "date": day.isoformat(),
            "items": [entry.to_dict() for entry in entries],
            "total_loaded": sum(entry.loaded for entry in entries),
            "total_sold": sum(entry.sold for entry in entries),
            "total_remaining": sum(entry.remaining for entry in entries),
        }), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("reading agent ledger")
