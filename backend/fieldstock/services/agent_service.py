# Overview: Service-layer operations for agents; lookups shared by the field workflows.

from __future__ import annotations

from ..errors import NotFoundError, PermissionDenied, ValidationError
from ..extensions import db
from ..models import Agent, User
from ..permissions import ROLE_AGENT
from fieldstock.time_utils import utcnow
from .audit_service import append_event


def get_agent(agent_id: int) -> Agent:
    agent = db.session.get(Agent, agent_id)
    if not agent:
        raise NotFoundError(f"Agent {agent_id} not found")
    return agent


def get_active_agent(agent_id: int) -> Agent:
    agent = get_agent(agent_id)
    if not agent.is_active:
        raise ValidationError(f"Agent {agent_id} is not active")
    return agent


def ensure_acts_for_agent(user_id: int | None, agent_id: int) -> None:
    """
    An agent login may only act for its own agent record.

    Back-office users (no agent profile) may act for any agent, subject to
    their permission set.
    """
    if user_id is None:
        return
    user = db.session.get(User, user_id)
    if user and user.agent is not None and user.agent.id != agent_id:
        raise PermissionDenied(f"User {user_id} cannot act for agent {agent_id}")


def create_agent(
    *,
    name: str,
    user_id: int | None = None,
    phone: str | None = None,
    monthly_target_cents: int = 0,
) -> Agent:
    if not name or not name.strip():
        raise ValidationError("name is required")
    if monthly_target_cents < 0:
        raise ValidationError("monthly_target_cents must be >= 0")

    if user_id is not None:
        user = db.session.get(User, user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        if user.role != ROLE_AGENT:
            raise ValidationError("Only users with the agent role can be linked to an agent")
        if user.agent is not None:
            raise ValidationError(f"User {user_id} is already linked to agent {user.agent.id}")

    agent = Agent(
        name=name.strip(),
        user_id=user_id,
        phone=phone,
        monthly_target_cents=monthly_target_cents,
        is_active=True,
    )
    db.session.add(agent)
    db.session.flush()

    append_event(
        event_type="agent.created",
        event_category="field",
        entity_type="agent",
        entity_id=agent.id,
        agent_id=agent.id,
        occurred_at=utcnow(),
    )
    return agent
