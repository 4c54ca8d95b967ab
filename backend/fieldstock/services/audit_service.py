# Overview: Service-layer operations for the audit log; append-only event records.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..extensions import db
from ..models import AuditEvent
from fieldstock.time_utils import utcnow
"""
Audit log invariants

- Append-only: no deletes/updates of existing events.
- No domain/business logic in the log itself.
- Events are written inside the same DB transaction as the change they record.
- occurred_at is business time; created_at is system time (DB default).
"""


def append_event(
    *,
    event_type: str,
    event_category: str,
    entity_type: str,
    entity_id: int | None,
    actor_user_id: int | None = None,
    agent_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[str] = None,
) -> AuditEvent:
    """Append one audit event (flush only; the caller owns the commit)."""
    ev = AuditEvent(
        event_type=event_type,
        event_category=event_category,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        agent_id=agent_id,
        occurred_at=occurred_at or utcnow(),
        note=note[:255] if note else None,
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def list_events(
    *,
    entity_type: str | None = None,
    entity_id: int | None = None,
    agent_id: int | None = None,
    limit: int = 100,
) -> list[AuditEvent]:
    query = db.session.query(AuditEvent)
    if entity_type:
        query = query.filter(AuditEvent.entity_type == entity_type)
    if entity_id is not None:
        query = query.filter(AuditEvent.entity_id == entity_id)
    if agent_id is not None:
        query = query.filter(AuditEvent.agent_id == agent_id)
    return query.order_by(AuditEvent.id.desc()).limit(limit).all()
