# Overview: Shared helpers for the JSON API blueprints.

from flask import current_app, g, jsonify

from ..errors import DomainError, PermissionDenied
from ..extensions import db


def domain_error_response(e: DomainError):
    """Roll back and translate a business-rule failure to its HTTP status."""
    db.session.rollback()
    return jsonify({"error": str(e)}), e.http_status


def unexpected_error_response(action: str):
    """Roll back, log the traceback, and hide the details from the client."""
    db.session.rollback()
    current_app.logger.exception("Unexpected error while %s", action)
    return jsonify({"error": "Internal server error"}), 500


def scoped_agent_id(requested: int | None) -> int | None:
    """
    Agent logins only ever see their own agent.

    Back-office users get the requested agent id back unchanged.
    """
    own = getattr(g, "agent_id", None)
    if own is None:
        return requested
    if requested is not None and requested != own:
        raise PermissionDenied(f"Agent {own} cannot access agent {requested}")
    return own
