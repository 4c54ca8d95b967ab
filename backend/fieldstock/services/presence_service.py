# Overview: Service-layer operations for agent presence; heartbeat with TTL.

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import Agent, AgentHeartbeat
from fieldstock.time_utils import to_utc_z, utcnow
from .agent_service import get_active_agent


def _ttl() -> timedelta:
    return timedelta(seconds=current_app.config.get("AGENT_PRESENCE_TTL_SECONDS", 3600))


def record_heartbeat(
    agent_id: int,
    latitude: float | None = None,
    longitude: float | None = None,
    *,
    seen_at: datetime | None = None,
) -> AgentHeartbeat:
    """Upsert the agent's last-seen row (flush only)."""
    get_active_agent(agent_id)
    seen_at = seen_at or utcnow()

    heartbeat = db.session.query(AgentHeartbeat).filter_by(agent_id=agent_id).first()
    if heartbeat is None:
        heartbeat = AgentHeartbeat(agent_id=agent_id, last_seen_at=seen_at)
        db.session.add(heartbeat)

    heartbeat.last_seen_at = seen_at
    heartbeat.latitude = latitude
    heartbeat.longitude = longitude
    db.session.flush()
    return heartbeat


def _online(heartbeat: AgentHeartbeat | None, now: datetime) -> bool:
    if heartbeat is None:
        return False
    return now - heartbeat.last_seen_at < _ttl()


def is_online(agent_id: int, now: datetime | None = None) -> bool:
    heartbeat = db.session.query(AgentHeartbeat).filter_by(agent_id=agent_id).first()
    return _online(heartbeat, now or utcnow())


def list_presence(now: datetime | None = None) -> list[dict]:
    """Presence of every active agent, online ones first."""
    now = now or utcnow()
    heartbeats = {hb.agent_id: hb for hb in db.session.query(AgentHeartbeat).all()}
    agents = db.session.query(Agent).filter(Agent.is_active.is_(True)).order_by(Agent.id).all()

    rows = []
    for agent in agents:
        heartbeat = heartbeats.get(agent.id)
        rows.append({
            "agent_id": agent.id,
            "name": agent.name,
            "online": _online(heartbeat, now),
            "last_seen_at": to_utc_z(heartbeat.last_seen_at) if heartbeat else None,
            "latitude": heartbeat.latitude if heartbeat else None,
            "longitude": heartbeat.longitude if heartbeat else None,
        })
    rows.sort(key=lambda row: not row["online"])
    return rows
