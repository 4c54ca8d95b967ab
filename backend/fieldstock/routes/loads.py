# backend/fieldstock/routes/loads.py
"""
Stock load API routes (request -> approve -> release, or reject).
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_any_permission, require_auth, require_permission
from ..errors import DomainError, ValidationError
from ..services import carry_over_service, load_service
from ..services.concurrency import commit_with_retry
from fieldstock.validation import coerce_int, optional_int, parse_day
from . import domain_error_response, scoped_agent_id, unexpected_error_response


loads_bp = Blueprint("loads", __name__, url_prefix="/api/loads")


@loads_bp.route("", methods=["POST"])
@require_auth
@require_permission("REQUEST_LOAD")
def request_load():
    """
    Request stock for an agent's vehicle.

    Request body:
    {
        "agent_id": int (optional for agent logins),
        "items": [{"product_id": int, "requested_quantity": int}],
        "notes": str (optional)
    }

    Returns:
        201: Load requested
        400: Invalid request
        403: Forbidden
    """
    data = request.get_json(silent=True) or {}

    try:
        agent_id = scoped_agent_id(optional_int(data.get("agent_id"), "agent_id"))
        if agent_id is None:
            raise ValidationError("agent_id is required")

        load = load_service.request_load(
            agent_id,
            data.get("items"),
            requested_by_user_id=g.current_user.id,
            notes=data.get("notes"),
        )
        commit_with_retry()

        return jsonify(_load_payload(load)), 201

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("requesting stock load")


@loads_bp.route("/<int:load_id>/approve", methods=["POST"])
@require_auth
@require_permission("APPROVE_LOAD")
def approve_load(load_id: int):
    """
    Approve a requested load. Omitted items are approved in full.

    Request body (optional):
    {"items": [{"product_id": int, "approved_quantity": int}]}

    Returns:
        200: Approved
        400: Quantity above requested
        404: Load not found
        409: Load not in requested status
    """
    data = request.get_json(silent=True) or {}

    try:
        load = load_service.approve_load(load_id, g.current_user.id, data.get("items"))
        commit_with_retry()
        return jsonify(_load_payload(load)), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("approving stock load")


@loads_bp.route("/<int:load_id>/release", methods=["POST"])
@require_auth
@require_permission("RELEASE_LOAD")
def release_load(load_id: int):
    """
    Release an approved load. Omitted items are released as approved.

    Request body (optional):
    {"items": [{"product_id": int, "released_quantity": int}]}
    """
    data = request.get_json(silent=True) or {}

    try:
        load = load_service.release_load(load_id, g.current_user.id, data.get("items"))
        commit_with_retry()
        return jsonify(_load_payload(load)), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("releasing stock load")


@loads_bp.route("/<int:load_id>/reject", methods=["POST"])
@require_auth
@require_permission("REJECT_LOAD")
def reject_load(load_id: int):
    """
    Reject a requested load.

    Request body:
    {"reason": str}
    """
    data = request.get_json(silent=True) or {}

    try:
        load = load_service.reject_load(
            load_id,
            data.get("reason"),
            rejected_by_user_id=g.current_user.id,
        )
        commit_with_retry()
        return jsonify(_load_payload(load)), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("rejecting stock load")


@loads_bp.route("", methods=["GET"])
@require_auth
@require_any_permission("VIEW_LOADS", "REQUEST_LOAD")
def list_loads():
    """
    List loads, newest first.

    Query params:
        agent_id: filter by agent (forced to the caller's agent for agent logins)
        status: requested | approved | released | rejected
    """
    try:
        agent_id = scoped_agent_id(optional_int(request.args.get("agent_id"), "agent_id"))
        loads = load_service.list_loads(agent_id=agent_id, status=request.args.get("status"))
        return jsonify({"loads": [_load_payload(load) for load in loads]}), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("listing stock loads")


@loads_bp.route("/carry-over", methods=["GET"])
@require_auth
@require_any_permission("VIEW_LEDGER", "REQUEST_LOAD")
def carry_over():
    """
    Stock still on the vehicle, shown as a hint next to a new request.

    Query params:
        agent_id: required for back-office users
        product_id: optional; without it every product with stock left is listed
        date: business day (default today)
    """
    try:
        agent_id = scoped_agent_id(optional_int(request.args.get("agent_id"), "agent_id"))
        if agent_id is None:
            raise ValidationError("agent_id is required")
        day = parse_day(request.args.get("date"))

        product_id = request.args.get("product_id")
        if product_id is not None:
            product_id = coerce_int(product_id, "product_id")
            remaining = carry_over_service.get_carry_over(agent_id, product_id, day)
            return jsonify({
                "agent_id": agent_id,
                "product_id": product_id,
                "carry_over": remaining,
            }), 200

        entries = carry_over_service.get_carry_over_for_agent(agent_id, day)
        return jsonify({
            "agent_id": agent_id,
            "items": [
                {"product_id": entry.product_id, "carry_over": entry.remaining}
                for entry in entries
            ],
        }), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("computing carry-over")


@loads_bp.route("/<int:load_id>", methods=["GET"])
@require_auth
@require_any_permission("VIEW_LOADS", "REQUEST_LOAD")
def get_load(load_id: int):
    try:
        load = load_service.get_load(load_id)
        scoped_agent_id(load.agent_id)
        return jsonify(_load_payload(load)), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("loading stock load")


def _load_payload(load) -> dict:
    payload = load.to_dict()
    payload["items"] = [item.to_dict() for item in load.items]
    return payload
