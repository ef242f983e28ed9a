from __future__ import annotations

from ..extensions import db


class SaleTransaction(db.Model):
    """
    Ledger row for a completed SALE or RESTOCK.

    Append-only: rows are written once at checkout/restock and never updated.
    Line items carry their own price and cost snapshot so historical reports
    do not depend on the current catalog.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint("type IN ('SALE', 'RESTOCK')", name="ck_transactions_type"),
    )

    id = db.Column(db.String(16), primary_key=True)
    type = db.Column(db.String(16), nullable=False, index=True)
    total_cents = db.Column(db.Integer, nullable=False)
    total_cost_cents = db.Column(db.Integer, nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, index=True)
    recorded_by = db.Column(db.String(255), nullable=True)

    items = db.relationship(
        "SaleTransactionItem",
        backref="transaction",
        lazy="selectin",
        order_by="SaleTransactionItem.position",
        cascade="all, delete-orphan",
    )


class SaleTransactionItem(db.Model):
    __tablename__ = "transaction_items"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.String(16), db.ForeignKey("transactions.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)

    # No FK: the product may be deleted later, the snapshot must survive
    product_id = db.Column(db.String(32), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(32), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_price_at_sale_cents = db.Column(db.Integer, nullable=False)
