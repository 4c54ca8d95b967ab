from __future__ import annotations

from ..extensions import db
from fieldstock.time_utils import to_utc_z


class Invoice(db.Model):
    """
    A sale made by an agent in the field.

    invoice_number comes from the INVOICE document sequence ("INV-000001"),
    never from a client clock.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_invoices_number"),
        db.Index("ix_invoices_agent_created", "agent_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(64), nullable=False)

    agent_id = db.Column(db.Integer, db.ForeignKey("agents.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, nullable=False, index=True)

    # cash, credit
    payment_method = db.Column(db.String(16), nullable=False, default="cash")
    # paid, pending
    payment_status = db.Column(db.String(16), nullable=False, default="paid")

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    # Set when the device created the sale offline and synced it later
    offline_created = db.Column(db.Boolean, nullable=False, default=False)

    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    agent = db.relationship("Agent", backref=db.backref("invoices", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "agent_id": self.agent_id,
            "customer_id": self.customer_id,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "subtotal_cents": self.subtotal_cents,
            "total_cents": self.total_cents,
            "offline_created": self.offline_created,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class InvoiceItem(db.Model):
    """Product line on an invoice. Consumption record for the ledger."""
    __tablename__ = "invoice_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)

    # Price snapshot at sale time
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    invoice = db.relationship("Invoice", backref=db.backref("items", lazy=True, order_by="InvoiceItem.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
