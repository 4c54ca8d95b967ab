from __future__ import annotations

from ..extensions import db
from fieldstock.time_utils import to_utc_z


class Reconciliation(db.Model):
    """
    End-of-day settlement for one agent.

    LIFECYCLE:
    - submitted: Agent closed the day, awaiting finance review
    - approved: Accepted by finance (terminal)
    - disputed: Rejected by finance (terminal); the agent files a new
      reconciliation for the same day, linked through supersedes_id

    "pending" is the status reported for an unsaved preview.

    variance_cents = cash_collected_cents - expected_cash_cents
    (negative = shortfall, positive = surplus). Variance is recorded only;
    approval never adjusts inventory.
    """
    __tablename__ = "reconciliations"
    __table_args__ = (
        db.Index("ix_reconciliations_agent_date", "agent_id", "date"),
        # At most one submitted or approved reconciliation per agent and day
        db.Index(
            "uq_reconciliations_open_agent_date",
            "agent_id",
            "date",
            unique=True,
            sqlite_where=db.text("status IN ('submitted', 'approved')"),
            postgresql_where=db.text("status IN ('submitted', 'approved')"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False)

    # pending, submitted, approved, disputed
    status = db.Column(db.String(16), nullable=False, default="submitted", index=True)

    total_loaded = db.Column(db.Integer, nullable=False, default=0)
    total_sold = db.Column(db.Integer, nullable=False, default=0)
    total_returned = db.Column(db.Integer, nullable=False, default=0)

    cash_collected_cents = db.Column(db.Integer, nullable=False, default=0)
    expected_cash_cents = db.Column(db.Integer, nullable=False, default=0)
    variance_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)

    supersedes_id = db.Column(db.Integer, db.ForeignKey("reconciliations.id"), nullable=True)

    submitted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    disputed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    submitted_at = db.Column(db.DateTime(timezone=True), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    disputed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    agent = db.relationship("Agent", backref=db.backref("reconciliations", lazy=True))
    supersedes = db.relationship("Reconciliation", remote_side=[id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "date": self.date.isoformat(),
            "status": self.status,
            "total_loaded": self.total_loaded,
            "total_sold": self.total_sold,
            "total_returned": self.total_returned,
            "cash_collected_cents": self.cash_collected_cents,
            "expected_cash_cents": self.expected_cash_cents,
            "variance_cents": self.variance_cents,
            "notes": self.notes,
            "supersedes_id": self.supersedes_id,
            "submitted_by_user_id": self.submitted_by_user_id,
            "approved_by_user_id": self.approved_by_user_id,
            "disputed_by_user_id": self.disputed_by_user_id,
            "submitted_at": to_utc_z(self.submitted_at) if self.submitted_at else None,
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "disputed_at": to_utc_z(self.disputed_at) if self.disputed_at else None,
            "items": [item.to_dict() for item in self.items],
        }


class ReconciliationItem(db.Model):
    """
    Per-product settlement line.

    Conservation: loaded_quantity = sold_quantity + returned_quantity + remaining_quantity
    returned_quantity is what the agent unloads back to the warehouse,
    remaining_quantity is what stays on the vehicle (carry-over).
    """
    __tablename__ = "reconciliation_items"
    __table_args__ = (
        db.UniqueConstraint("reconciliation_id", "product_id", name="uq_reconciliation_items_product"),
        db.CheckConstraint(
            "loaded_quantity = sold_quantity + returned_quantity + remaining_quantity",
            name="ck_reconciliation_items_conservation",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    reconciliation_id = db.Column(db.Integer, db.ForeignKey("reconciliations.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    loaded_quantity = db.Column(db.Integer, nullable=False)
    sold_quantity = db.Column(db.Integer, nullable=False)
    returned_quantity = db.Column(db.Integer, nullable=False)
    remaining_quantity = db.Column(db.Integer, nullable=False)

    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_value_cents = db.Column(db.Integer, nullable=False)

    reconciliation = db.relationship("Reconciliation", backref=db.backref("items", lazy=True, order_by="ReconciliationItem.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "reconciliation_id": self.reconciliation_id,
            "product_id": self.product_id,
            "loaded_quantity": self.loaded_quantity,
            "sold_quantity": self.sold_quantity,
            "returned_quantity": self.returned_quantity,
            "remaining_quantity": self.remaining_quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_value_cents": self.total_value_cents,
        }
