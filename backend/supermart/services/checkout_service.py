"""
Checkout - turns a cart into a SALE transaction.

Sequence:
1. Empty cart -> no-op (returns None).
2. Totals from the cart's product snapshots (no re-fetch).
3. Build the SALE transaction (fresh id, now, item snapshots).
4. Decrement stock for every line per the oversell policy.
5. Append the transaction to the ledger.
6. Commit 4 and 5 as one unit of work.
7. Clear the cart.

Any failure in 3-6 rolls the unit of work back and leaves the cart as it
was, so stock and ledger either both change or neither does.
"""
from __future__ import annotations

import logging

from ..domain import SALE, Transaction, TransactionItem, new_transaction_id
from ..repositories import Repositories
from ..time_utils import utcnow
from . import catalog_service, ledger_service
from .cart_service import Cart
from .concurrency import run_with_retry

logger = logging.getLogger(__name__)


def build_sale(cart: Cart, *, recorded_by: str | None = None) -> Transaction:
    lines = cart.lines()
    return Transaction(
        id=new_transaction_id(),
        items=tuple(
            TransactionItem(
                product_id=line.product.id,
                name=line.product.name,
                sku=line.product.sku,
                quantity=line.cart_quantity,
                price_cents=line.product.price_cents,
                cost_price_at_sale_cents=line.product.cost_price_cents,
            )
            for line in lines
        ),
        total_cents=sum(line.line_total_cents for line in lines),
        total_cost_cents=sum(line.line_cost_cents for line in lines),
        type=SALE,
        timestamp=utcnow(),
        recorded_by=recorded_by,
    )


class CheckoutProcessor:
    def __init__(self, repos: Repositories, *, oversell_policy: str = catalog_service.OVERSELL_CLAMP):
        if oversell_policy not in catalog_service.OVERSELL_POLICIES:
            raise ValueError(f"unknown oversell policy: {oversell_policy}")
        self.repos = repos
        self.oversell_policy = oversell_policy

    def complete_checkout(self, cart: Cart, *, recorded_by: str | None = None) -> Transaction | None:
        if not cart:
            return None

        def _op() -> Transaction:
            tx = build_sale(cart, recorded_by=recorded_by)
            for item in tx.items:
                catalog_service.decrement_stock(
                    self.repos,
                    item.product_id,
                    item.quantity,
                    policy=self.oversell_policy,
                    commit=False,
                )
            ledger_service.append(self.repos, tx, commit=False)
            self.repos.commit()
            return tx

        try:
            tx = run_with_retry(_op, rollback=self.repos.rollback)
        except Exception:
            self.repos.rollback()
            raise

        cart.clear()
        logger.info(
            "Checkout %s recorded: %d lines, total_cents=%d",
            tx.id, len(tx.items), tx.total_cents,
        )
        return tx
