from __future__ import annotations

from ..extensions import db
from fieldstock.time_utils import to_utc_z


class Agent(db.Model):
    """
    Field sales representative carrying a vehicle stock.

    user_id is the login that acts for the agent (requests loads, records
    sales, submits the end-of-day settlement).
    monthly_target_cents feeds KPI target progress.
    """
    __tablename__ = "agents"
    __table_args__ = (
        db.UniqueConstraint("user_id", name="uq_agents_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    monthly_target_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    user = db.relationship("User", backref=db.backref("agent", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "phone": self.phone,
            "monthly_target_cents": self.monthly_target_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class AgentVisit(db.Model):
    """
    A customer visit. Source of KPI inputs.

    outcome: free-form result recorded by the agent ("sale", "no_sale",
    "closed", ...). invoice_id links the visit to the sale it produced.
    """
    __tablename__ = "agent_visits"
    __table_args__ = (
        db.Index("ix_agent_visits_agent_date", "agent_id", "visit_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=False, index=True)

    # Customer Directory is external; only the id is kept
    customer_id = db.Column(db.Integer, nullable=True, index=True)

    visit_date = db.Column(db.Date, nullable=False)
    # scheduled, unscheduled
    visit_type = db.Column(db.String(16), nullable=False, default="scheduled")

    check_in_at = db.Column(db.DateTime(timezone=True), nullable=True)
    check_out_at = db.Column(db.DateTime(timezone=True), nullable=True)

    outcome = db.Column(db.String(32), nullable=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True, index=True)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    agent = db.relationship("Agent", backref=db.backref("visits", lazy=True))
    invoice = db.relationship("Invoice")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "customer_id": self.customer_id,
            "visit_date": self.visit_date.isoformat() if self.visit_date else None,
            "visit_type": self.visit_type,
            "check_in_at": to_utc_z(self.check_in_at) if self.check_in_at else None,
            "check_out_at": to_utc_z(self.check_out_at) if self.check_out_at else None,
            "outcome": self.outcome,
            "invoice_id": self.invoice_id,
            "notes": self.notes,
        }


class AgentHeartbeat(db.Model):
    """
    Last-seen record per agent.

    WHY: "Online" is derived from last_seen_at and a TTL at read time rather
    than a stored flag that nobody clears when a device goes dark.
    """
    __tablename__ = "agent_heartbeats"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=False, unique=True, index=True)

    last_seen_at = db.Column(db.DateTime(timezone=True), nullable=False)
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    agent = db.relationship("Agent", backref=db.backref("heartbeat", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "last_seen_at": to_utc_z(self.last_seen_at),
            "latitude": self.latitude,
            "longitude": self.longitude,
        }


class JourneyPlan(db.Model):
    """
    Planned route for an agent.

    Either a one-off plan (plan_date set) or a weekly plan (day_of_week set,
    0=Monday .. 6=Sunday). Exactly one of the two is populated.
    """
    __tablename__ = "journey_plans"
    __table_args__ = (
        db.CheckConstraint(
            "(plan_date IS NULL) <> (day_of_week IS NULL)",
            name="ck_journey_plans_date_or_weekday",
        ),
        db.CheckConstraint(
            "day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)",
            name="ck_journey_plans_day_of_week",
        ),
        db.Index("ix_journey_plans_agent_weekday", "agent_id", "day_of_week"),
        db.Index("ix_journey_plans_agent_date", "agent_id", "plan_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=False, index=True)

    plan_date = db.Column(db.Date, nullable=True)
    day_of_week = db.Column(db.Integer, nullable=True)

    # planned, completed, cancelled
    status = db.Column(db.String(16), nullable=False, default="planned")
    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    agent = db.relationship("Agent", backref=db.backref("journey_plans", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "plan_date": self.plan_date.isoformat() if self.plan_date else None,
            "day_of_week": self.day_of_week,
            "status": self.status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "stops": [stop.to_dict() for stop in sorted(self.stops, key=lambda s: s.sequence)],
        }


class JourneyPlanStop(db.Model):
    """Ordered customer stop on a journey plan."""
    __tablename__ = "journey_plan_stops"
    __table_args__ = (
        db.UniqueConstraint("journey_plan_id", "sequence", name="uq_journey_plan_stops_seq"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    journey_plan_id = db.Column(db.Integer, db.ForeignKey("journey_plans.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, nullable=False)
    sequence = db.Column(db.Integer, nullable=False)

    journey_plan = db.relationship("JourneyPlan", backref=db.backref("stops", lazy=True))

    def to_dict(self) -> dict:
        return {
            "customer_id": self.customer_id,
            "sequence": self.sequence,
        }
