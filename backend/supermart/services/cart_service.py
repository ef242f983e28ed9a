"""
Register cart.

Session-local and never persisted. Lines hold the product snapshot taken on
first add; adding the same product again only bumps the quantity.
"""
from __future__ import annotations

from ..domain import CartLine, Product
from ..validation import NotFoundError


class Cart:
    def __init__(self):
        self._lines: dict[str, CartLine] = {}

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)

    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    def get(self, product_id: str) -> CartLine | None:
        return self._lines.get(product_id)

    def add(self, product: Product) -> CartLine:
        line = self._lines.get(product.id)
        if line is not None:
            line.cart_quantity += 1
            return line
        line = CartLine(product=product.copy(), cart_quantity=1)
        self._lines[product.id] = line
        return line

    def update_quantity(self, product_id: str, delta: int) -> CartLine:
        """Adjust a line's quantity. Never drops below 1; use remove() to delete."""
        line = self._lines.get(product_id)
        if line is None:
            raise NotFoundError("Product not in cart")
        line.cart_quantity = max(1, line.cart_quantity + delta)
        return line

    def remove(self, product_id: str) -> None:
        if self._lines.pop(product_id, None) is None:
            raise NotFoundError("Product not in cart")

    def drop_product(self, product_id: str) -> bool:
        """Remove a line if present; used when the product leaves the catalog."""
        return self._lines.pop(product_id, None) is not None

    def clear(self) -> None:
        self._lines.clear()

    def total_cents(self) -> int:
        return sum(line.line_total_cents for line in self._lines.values())

    def total_cost_cents(self) -> int:
        return sum(line.line_cost_cents for line in self._lines.values())

    def item_count(self) -> int:
        return sum(line.cart_quantity for line in self._lines.values())

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self._lines.values()],
            "line_count": len(self._lines),
            "item_count": self.item_count(),
            "total_cents": self.total_cents(),
        }
