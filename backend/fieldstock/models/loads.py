from __future__ import annotations

from ..extensions import db
from fieldstock.time_utils import to_utc_z


class StockLoad(db.Model):
    """
    A batch of stock requested by, approved for, and released to an agent.

    LIFECYCLE:
    1. requested: Agent asked for stock, awaiting manager approval
    2. approved: Quantities approved, waiting for the warehouse
    3. released: Stock physically handed over (terminal)
    4. rejected: Request refused (terminal)

    Status only moves forward. Transitions are written as a compare-and-set
    on status (see services.concurrency.compare_and_set_status).
    """
    __tablename__ = "stock_loads"
    __table_args__ = (
        db.Index("ix_stock_loads_agent_status_released", "agent_id", "status", "released_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=False, index=True)

    # requested, approved, released, rejected
    status = db.Column(db.String(16), nullable=False, default="requested", index=True)

    notes = db.Column(db.Text, nullable=True)

    requested_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    released_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    rejected_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    requested_at = db.Column(db.DateTime(timezone=True), nullable=False)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    released_at = db.Column(db.DateTime(timezone=True), nullable=True)
    rejected_at = db.Column(db.DateTime(timezone=True), nullable=True)

    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    agent = db.relationship("Agent", backref=db.backref("stock_loads", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "status": self.status,
            "notes": self.notes,
            "requested_by_user_id": self.requested_by_user_id,
            "approved_by_user_id": self.approved_by_user_id,
            "released_by_user_id": self.released_by_user_id,
            "rejected_by_user_id": self.rejected_by_user_id,
            "requested_at": to_utc_z(self.requested_at),
            "approved_at": to_utc_z(self.approved_at) if self.approved_at else None,
            "released_at": to_utc_z(self.released_at) if self.released_at else None,
            "rejected_at": to_utc_z(self.rejected_at) if self.rejected_at else None,
            "rejection_reason": self.rejection_reason,
            "created_at": to_utc_z(self.created_at),
        }


class StockLoadItem(db.Model):
    """
    One product line on a stock load.

    released_quantity <= approved_quantity <= requested_quantity.
    approved_quantity and released_quantity stay NULL until their stage runs.
    """
    __tablename__ = "stock_load_items"
    __table_args__ = (
        db.UniqueConstraint("stock_load_id", "product_id", name="uq_stock_load_items_product"),
        db.CheckConstraint("requested_quantity >= 0", name="ck_stock_load_items_requested_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    stock_load_id = db.Column(db.Integer, db.ForeignKey("stock_loads.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    requested_quantity = db.Column(db.Integer, nullable=False)
    approved_quantity = db.Column(db.Integer, nullable=True)
    released_quantity = db.Column(db.Integer, nullable=True)

    stock_load = db.relationship("StockLoad", backref=db.backref("items", lazy=True, order_by="StockLoadItem.id"))
    product = db.relationship("Product")

    @property
    def loaded_quantity(self) -> int:
        """What the agent actually carries: released, falling back to approved."""
        if self.released_quantity is not None:
            return self.released_quantity
        return self.approved_quantity or 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stock_load_id": self.stock_load_id,
            "product_id": self.product_id,
            "requested_quantity": self.requested_quantity,
            "approved_quantity": self.approved_quantity,
            "released_quantity": self.released_quantity,
        }
