# Overview: Flask API routes for permission administration.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import DomainError, ValidationError
from ..permissions import permission_catalogue
from ..services import audit_service, permission_service
from ..services.concurrency import commit_with_retry
from fieldstock.validation import optional_int
from . import domain_error_response, unexpected_error_response


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/permissions")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def list_permissions():
    """Permission catalogue grouped by category."""
    return jsonify({"categories": permission_catalogue()}), 200


@admin_bp.post("/permission-overrides")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def grant_override():
    """
    Request body:
    {
        "user_id": int,
        "permission_code": str,
        "override_type": "GRANT" | "DENY",
        "reason": str (optional)
    }
    """
    data = request.get_json(silent=True) or {}

    try:
        user_id = optional_int(data.get("user_id"), "user_id")
        if user_id is None:
            raise ValidationError("user_id is required")

        override = permission_service.grant_permission_override(
            user_id=user_id,
            permission_code=data.get("permission_code"),
            override_type=data.get("override_type"),
            granted_by_user_id=g.current_user.id,
            reason=data.get("reason"),
        )
        commit_with_retry()
        return jsonify(override.to_dict()), 201

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("granting permission override")


@admin_bp.delete("/permission-overrides/<int:override_id>")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def revoke_override(override_id: int):
    try:
        override = permission_service.revoke_permission_override(
            override_id=override_id,
            revoked_by_user_id=g.current_user.id,
        )
        commit_with_retry()
        return jsonify(override.to_dict()), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("revoking permission override")


@admin_bp.get("/audit-events")
@require_auth
@require_permission("MANAGE_PERMISSIONS")
def list_audit_events():
    """
    Newest audit events first.

    Query params: entity_type, entity_id, agent_id, limit (default 100, max 500)
    """
    try:
        limit = optional_int(request.args.get("limit"), "limit")
        if limit is None:
            limit = 100
        if not 1 <= limit <= 500:
            raise ValidationError("limit must be between 1 and 500")

        events = audit_service.list_events(
            entity_type=request.args.get("entity_type"),
            entity_id=optional_int(request.args.get("entity_id"), "entity_id"),
            agent_id=optional_int(request.args.get("agent_id"), "agent_id"),
            limit=limit,
        )
        return jsonify({"events": [event.to_dict() for event in events]}), 200

    except DomainError as e:
        return domain_error_response(e)
    except Exception:
        return unexpected_error_response("listing audit events")
