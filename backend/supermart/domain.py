"""
Storage-independent domain records.

Repositories translate between these dataclasses and whatever backs them
(SQLAlchemy rows, in-process dicts). Services only ever see these types.
"""
from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime

from supermart.time_utils import to_utc_z

SALE = "SALE"
RESTOCK = "RESTOCK"
TRANSACTION_TYPES = (SALE, RESTOCK)


def new_id() -> str:
    return uuid.uuid4().hex


def new_transaction_id() -> str:
    """Short receipt-friendly id, e.g. '9F2C07AB'."""
    return secrets.token_hex(4).upper()


@dataclass
class Product:
    id: str
    sku: str
    name: str
    price_cents: int
    cost_price_cents: int
    quantity: int
    min_threshold: int
    last_updated: datetime
    expiry_date: date | None = None
    tags: list[str] = field(default_factory=list)

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity <= 0

    @property
    def is_low_stock(self) -> bool:
        # A product at zero is out of stock only, even when min_threshold == 0
        return 0 < self.quantity <= self.min_threshold

    def copy(self, **changes) -> "Product":
        changes.setdefault("tags", list(self.tags))
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "quantity": self.quantity,
            "min_threshold": self.min_threshold,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "tags": list(self.tags),
            "is_low_stock": self.is_low_stock,
            "is_out_of_stock": self.is_out_of_stock,
            "last_updated": to_utc_z(self.last_updated),
        }


@dataclass(frozen=True)
class TransactionItem:
    product_id: str
    name: str
    sku: str
    quantity: int
    price_cents: int
    cost_price_at_sale_cents: int

    @property
    def line_total_cents(self) -> int:
        return self.price_cents * self.quantity

    @property
    def line_cost_cents(self) -> int:
        return self.cost_price_at_sale_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "sku": self.sku,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "cost_price_at_sale_cents": self.cost_price_at_sale_cents,
            "line_total_cents": self.line_total_cents,
        }


@dataclass(frozen=True)
class Transaction:
    """Point-in-time snapshot of a sale or restock. Never mutated."""
    id: str
    items: tuple[TransactionItem, ...]
    total_cents: int
    total_cost_cents: int
    type: str
    timestamp: datetime
    recorded_by: str | None = None

    @property
    def profit_cents(self) -> int:
        return self.total_cents - self.total_cost_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "items": [item.to_dict() for item in self.items],
            "total_cents": self.total_cents,
            "total_cost_cents": self.total_cost_cents,
            "timestamp": to_utc_z(self.timestamp),
            "recorded_by": self.recorded_by,
        }


@dataclass
class CartLine:
    """
    A product snapshot taken when the line was first added, plus a quantity.

    Checkout prices from this snapshot, not from a re-fetch.
    """
    product: Product
    cart_quantity: int = 1

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def line_total_cents(self) -> int:
        return self.product.price_cents * self.cart_quantity

    @property
    def line_cost_cents(self) -> int:
        return self.product.cost_price_cents * self.cart_quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product.id,
            "sku": self.product.sku,
            "name": self.product.name,
            "price_cents": self.product.price_cents,
            "cart_quantity": self.cart_quantity,
            "line_total_cents": self.line_total_cents,
        }
