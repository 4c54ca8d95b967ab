# Overview: Domain error hierarchy shared by services and routes.

"""
Domain errors for the field stock engine.

These are business-rule failures, not technical errors. Services raise them
unmodified; routes roll back the session and map ``http_status`` onto the
JSON response. No automatic retry is applied to any of them.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for every business-rule failure."""
    http_status = 400


class ValidationError(DomainError, ValueError):
    """Structurally invalid request (e.g. an all-zero load request)."""
    http_status = 400


class QuantityExceeded(DomainError):
    """A quantity is above its ceiling (released > approved, unload > remaining)."""
    http_status = 400


class PermissionDenied(DomainError):
    """The actor's resolved permission set lacks the operation's permission."""
    http_status = 403


class NotFoundError(DomainError):
    """Referenced entity does not exist."""
    http_status = 404


class InvalidStateTransition(DomainError):
    """
    Operation attempted from a status that does not permit it.

    Also raised when a compare-and-set on ``status`` loses a race: the row
    moved on between the read and the write.
    """
    http_status = 409
