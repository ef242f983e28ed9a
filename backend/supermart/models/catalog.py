from __future__ import annotations

from ..extensions import db


class Product(db.Model):
    """
    Product master data.

    SKU DESIGN DECISION:
    Product.sku is generated once, on create, from the product name and the
    store-wide SKU sequence (see SkuSequence). It never changes afterwards,
    even when the product is renamed.

    Quantity is a stored, mutable stock level. It is driven down by checkout
    and up by restock, and is never negative.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.CheckConstraint("cost_price_cents >= 0", name="ck_products_cost_non_negative"),
        db.Index("ix_products_name", "name"),
    )

    # Opaque identifier (uuid4 hex), assigned by the service layer
    id = db.Column(db.String(32), primary_key=True)

    sku = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_threshold = db.Column(db.Integer, nullable=False, default=0)

    expiry_date = db.Column(db.Date, nullable=True)
    tags = db.Column(db.JSON, nullable=True)

    last_updated = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} qty={self.quantity}>"


class SkuSequence(db.Model):
    """
    Store-wide SKU counter.

    A single row (id=1). Updated in the same DB transaction as the product
    insert that consumes the value, so counter and catalog never diverge.
    """
    __tablename__ = "sku_sequences"

    id = db.Column(db.Integer, primary_key=True)
    next_value = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
