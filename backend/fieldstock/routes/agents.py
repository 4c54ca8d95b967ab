# Overview: Flask API routes for agents; KPIs and presence.

from flask import Blueprint, jsonify, request

from ..decorators import require_any_permission, require_auth, require_permission
from ..errors import DomainError, ValidationError
from ..services import kpi_service, presence_service
from ..services.concurrency import commit_with_retry
from fieldstock.validation import parse_day
from . import domain_error_response, scoped_agent_id, unexpected_error_response


agents_bp = Blueprint("agents", __name__, url_prefix="/api/agents")


def _optional_coordinate(data: dict, key: str, low: float, high: float):
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{key} must be a number")
    if not low <= value <= high:
        raise ValidationError(f"{key} must be between {low} and {high}")
    return float(value)


@agents_bp.get("/<int:agent_id>/kpis")
@require_auth
@require_any_permission("VIEW_KPIS", "RECORD_SALE")
def agent_kpis(agent_id: int):
    """
    Query params: from, to (YYYY-MM-DD, inclusive; default current month)
    """
    try:
        scoped_agent_id(agent_id)
        kpis = kpi_service.get_agent_kpis(
            agent_id,
            date_from=parse_day(request.args.get("from"), "from"),
            date_to=parse_day(request.args.get("to"), "to"),
        )
        return jsonify(kpis.to_dict()), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("computing agent KPIs")


@agents_bp.post("/<int:agent_id>/heartbeat")
@require_auth
@require_permission("SEND_HEARTBEAT")
def heartbeat(agent_id: int):
    """
    Request body (optional):
    {"latitude": float, "longitude": float}
    """
    data = request.get_json(silent=True) or {}

    try:
        scoped_agent_id(agent_id)
        hb = presence_service.record_heartbeat(
            agent_id,
            latitude=_optional_coordinate(data, "latitude", -90, 90),
            longitude=_optional_coordinate(data, "longitude", -180, 180),
        )
        commit_with_retry()
        return jsonify(hb.to_dict()), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("recording heartbeat")


@agents_bp.get("/presence")
@require_auth
@require_permission("VIEW_PRESENCE")
def presence():
    try:
        return jsonify({"agents": presence_service.list_presence()}), 200
    except Exception:
        return unexpected_error_response("listing presence")
