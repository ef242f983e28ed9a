"""
Persistence collaborators for the catalog, the ledger and the SKU counter.

Services depend on the protocols below, never on SQLAlchemy directly, so the
checkout and catalog logic can run against either backend:

- SqlRepositories: Flask-SQLAlchemy session (default).
- MemoryRepositories: process-local state with snapshot rollback.

A `Repositories` bundle is one unit of work. Nothing written through it is
durable until `commit()`; `rollback()` discards everything since the last
commit. Counter, catalog and ledger writes made in one unit of work are
committed together.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from flask import current_app, g
from sqlalchemy import case, func, update

from .domain import Product, Transaction, TransactionItem
from .extensions import db
from .models import Product as ProductRow
from .models import SaleTransaction, SaleTransactionItem, SkuSequence
from .validation import InsufficientStockError

SKU_SEQUENCE_ROW_ID = 1


class CatalogRepository(Protocol):
    def list_all(self) -> list[Product]:
        ...

    def get(self, product_id: str) -> Product | None:
        ...

    def get_by_sku(self, sku: str) -> Product | None:
        ...

    def count(self) -> int:
        ...

    def save(self, product: Product) -> Product:
        ...

    def delete(self, product_id: str) -> bool:
        ...

    def adjust_quantity(
        self, product_id: str, delta: int, *, floor_at_zero: bool, now: datetime
    ) -> Product | None:
        ...


class LedgerRepository(Protocol):
    def append(self, transaction: Transaction) -> Transaction:
        ...

    def list_all(self) -> list[Transaction]:
        ...

    def get(self, transaction_id: str) -> Transaction | None:
        ...


class SkuCounterRepository(Protocol):
    def allocate(self, seed: int) -> int:
        ...

    def peek(self) -> int | None:
        ...


class Repositories(Protocol):
    catalog: CatalogRepository
    ledger: LedgerRepository
    sku_counter: SkuCounterRepository

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


def _insufficient(product_id: str, on_hand: int, requested: int) -> InsufficientStockError:
    return InsufficientStockError(
        "Insufficient stock",
        details={"product_id": product_id, "on_hand": on_hand, "requested_quantity": requested},
    )


# =============================================================================
# SQLAlchemy backend
# =============================================================================

def _product_from_row(row: ProductRow) -> Product:
    return Product(
        id=row.id,
        sku=row.sku,
        name=row.name,
        price_cents=row.price_cents,
        cost_price_cents=row.cost_price_cents,
        quantity=row.quantity,
        min_threshold=row.min_threshold,
        last_updated=row.last_updated,
        expiry_date=row.expiry_date,
        tags=list(row.tags or []),
    )


def _transaction_from_row(row: SaleTransaction) -> Transaction:
    return Transaction(
        id=row.id,
        items=tuple(
            TransactionItem(
                product_id=item.product_id,
                name=item.name,
                sku=item.sku,
                quantity=item.quantity,
                price_cents=item.price_cents,
                cost_price_at_sale_cents=item.cost_price_at_sale_cents,
            )
            for item in row.items
        ),
        total_cents=row.total_cents,
        total_cost_cents=row.total_cost_cents,
        type=row.type,
        timestamp=row.timestamp,
        recorded_by=row.recorded_by,
    )


class SqlCatalogRepository:
    def list_all(self) -> list[Product]:
        rows = db.session.query(ProductRow).order_by(ProductRow.name.asc(), ProductRow.id.asc()).all()
        return [_product_from_row(r) for r in rows]

    def get(self, product_id: str) -> Product | None:
        row = db.session.get(ProductRow, product_id)
        return _product_from_row(row) if row else None

    def get_by_sku(self, sku: str) -> Product | None:
        row = db.session.query(ProductRow).filter_by(sku=sku).first()
        return _product_from_row(row) if row else None

    def count(self) -> int:
        return db.session.query(func.count(ProductRow.id)).scalar() or 0

    def save(self, product: Product) -> Product:
        row = db.session.get(ProductRow, product.id)
        if row is None:
            row = ProductRow(id=product.id)
            db.session.add(row)
        row.sku = product.sku
        row.name = product.name
        row.price_cents = product.price_cents
        row.cost_price_cents = product.cost_price_cents
        row.quantity = product.quantity
        row.min_threshold = product.min_threshold
        row.expiry_date = product.expiry_date
        row.tags = list(product.tags)
        row.last_updated = product.last_updated
        db.session.flush()
        return _product_from_row(row)

    def delete(self, product_id: str) -> bool:
        row = db.session.get(ProductRow, product_id)
        if row is None:
            return False
        db.session.delete(row)
        db.session.flush()
        return True

    def adjust_quantity(
        self, product_id: str, delta: int, *, floor_at_zero: bool, now: datetime
    ) -> Product | None:
        """
        Relative UPDATE evaluated by the database, so two concurrent sales of
        the same product cannot both read the old quantity and overwrite
        each other.
        """
        new_quantity = ProductRow.quantity + delta
        stmt = update(ProductRow).where(ProductRow.id == product_id)
        if floor_at_zero:
            stmt = stmt.values(
                quantity=case((new_quantity < 0, 0), else_=new_quantity),
                last_updated=now,
            )
        else:
            stmt = stmt.where(new_quantity >= 0).values(quantity=new_quantity, last_updated=now)

        result = db.session.execute(stmt.execution_options(synchronize_session=False))
        if not result.rowcount:
            row = db.session.get(ProductRow, product_id)
            if row is None:
                return None
            raise _insufficient(product_id, row.quantity, -delta)

        row = db.session.get(ProductRow, product_id, populate_existing=True)
        return _product_from_row(row)


class SqlLedgerRepository:
    def append(self, transaction: Transaction) -> Transaction:
        row = SaleTransaction(
            id=transaction.id,
            type=transaction.type,
            total_cents=transaction.total_cents,
            total_cost_cents=transaction.total_cost_cents,
            timestamp=transaction.timestamp,
            recorded_by=transaction.recorded_by,
        )
        for position, item in enumerate(transaction.items):
            row.items.append(SaleTransactionItem(
                position=position,
                product_id=item.product_id,
                name=item.name,
                sku=item.sku,
                quantity=item.quantity,
                price_cents=item.price_cents,
                cost_price_at_sale_cents=item.cost_price_at_sale_cents,
            ))
        db.session.add(row)
        db.session.flush()
        return transaction

    def list_all(self) -> list[Transaction]:
        rows = (
            db.session.query(SaleTransaction)
            .order_by(SaleTransaction.timestamp.desc(), SaleTransaction.id.asc())
            .all()
        )
        return [_transaction_from_row(r) for r in rows]

    def get(self, transaction_id: str) -> Transaction | None:
        row = db.session.get(SaleTransaction, transaction_id)
        return _transaction_from_row(row) if row else None


class SqlSkuCounterRepository:
    def allocate(self, seed: int) -> int:
        """
        Atomically hand out the next SKU sequence value.

        First use inserts the row with `seed`; later calls increment in place.
        """
        stmt = (
            update(SkuSequence)
            .where(SkuSequence.id == SKU_SEQUENCE_ROW_ID)
            .values(next_value=SkuSequence.next_value + 1)
            .execution_options(synchronize_session=False)
        )
        result = db.session.execute(stmt)
        if result.rowcount:
            current = (
                db.session.query(SkuSequence.next_value)
                .filter_by(id=SKU_SEQUENCE_ROW_ID)
                .scalar()
            )
            return current - 1

        db.session.add(SkuSequence(id=SKU_SEQUENCE_ROW_ID, next_value=seed + 1))
        db.session.flush()
        return seed

    def peek(self) -> int | None:
        return (
            db.session.query(SkuSequence.next_value)
            .filter_by(id=SKU_SEQUENCE_ROW_ID)
            .scalar()
        )


class SqlRepositories:
    def __init__(self):
        self.catalog = SqlCatalogRepository()
        self.ledger = SqlLedgerRepository()
        self.sku_counter = SqlSkuCounterRepository()

    def commit(self) -> None:
        db.session.commit()

    def rollback(self) -> None:
        db.session.rollback()


# =============================================================================
# In-process backend
# =============================================================================

@dataclass
class MemoryState:
    products: dict[str, Product] = field(default_factory=dict)
    transactions: list[Transaction] = field(default_factory=list)
    sku_next: int | None = None


class MemoryStore:
    """
    Committed state shared by every MemoryRepositories unit of work.

    One writer at a time: a unit of work holds `lock` from its first access
    until commit or rollback.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.committed = MemoryState()

    def clear(self) -> None:
        with self.lock:
            self.committed = MemoryState()


class _MemoryCatalog:
    def __init__(self, uow: "MemoryRepositories"):
        self._uow = uow

    @property
    def _products(self) -> dict[str, Product]:
        return self._uow.state.products

    def list_all(self) -> list[Product]:
        return [p.copy() for p in sorted(self._products.values(), key=lambda p: (p.name, p.id))]

    def get(self, product_id: str) -> Product | None:
        p = self._products.get(product_id)
        return p.copy() if p else None

    def get_by_sku(self, sku: str) -> Product | None:
        for p in self._products.values():
            if p.sku == sku:
                return p.copy()
        return None

    def count(self) -> int:
        return len(self._products)

    def save(self, product: Product) -> Product:
        self._products[product.id] = product.copy()
        return product.copy()

    def delete(self, product_id: str) -> bool:
        return self._products.pop(product_id, None) is not None

    def adjust_quantity(
        self, product_id: str, delta: int, *, floor_at_zero: bool, now: datetime
    ) -> Product | None:
        p = self._products.get(product_id)
        if p is None:
            return None
        new_quantity = p.quantity + delta
        if new_quantity < 0:
            if not floor_at_zero:
                raise _insufficient(product_id, p.quantity, -delta)
            new_quantity = 0
        p.quantity = new_quantity
        p.last_updated = now
        return p.copy()


class _MemoryLedger:
    def __init__(self, uow: "MemoryRepositories"):
        self._uow = uow

    def append(self, transaction: Transaction) -> Transaction:
        self._uow.state.transactions.append(transaction)
        return transaction

    def list_all(self) -> list[Transaction]:
        return sorted(self._uow.state.transactions, key=lambda t: t.timestamp, reverse=True)

    def get(self, transaction_id: str) -> Transaction | None:
        for t in self._uow.state.transactions:
            if t.id == transaction_id:
                return t
        return None


class _MemorySkuCounter:
    def __init__(self, uow: "MemoryRepositories"):
        self._uow = uow

    def allocate(self, seed: int) -> int:
        state = self._uow.state
        value = seed if state.sku_next is None else state.sku_next
        state.sku_next = value + 1
        return value

    def peek(self) -> int | None:
        return self._uow.state.sku_next


class MemoryRepositories:
    """Unit of work over a MemoryStore. Works on a private copy until commit."""

    def __init__(self, store: MemoryStore):
        self._store = store
        self._state: MemoryState | None = None
        self.catalog = _MemoryCatalog(self)
        self.ledger = _MemoryLedger(self)
        self.sku_counter = _MemorySkuCounter(self)

    @property
    def state(self) -> MemoryState:
        if self._state is None:
            self._store.lock.acquire()
            committed = self._store.committed
            # Transactions are frozen, only products need copying
            self._state = MemoryState(
                products={pid: p.copy() for pid, p in committed.products.items()},
                transactions=list(committed.transactions),
                sku_next=committed.sku_next,
            )
        return self._state

    def _release(self) -> None:
        self._state = None
        self._store.lock.release()

    def commit(self) -> None:
        if self._state is None:
            return
        self._store.committed = self._state
        self._release()

    def rollback(self) -> None:
        if self._state is None:
            return
        self._release()


# =============================================================================
# Request wiring
# =============================================================================

MEMORY_STORE_KEY = "supermart.memory_store"


def get_repositories() -> Repositories:
    """Unit of work for the current request, created on first use."""
    if "repositories" not in g:
        if current_app.config["STORAGE_BACKEND"] == "memory":
            g.repositories = MemoryRepositories(current_app.extensions[MEMORY_STORE_KEY])
        else:
            g.repositories = SqlRepositories()
    return g.repositories


def release_repositories(exc=None) -> None:
    """Teardown hook: discard anything the request did not commit."""
    repos = g.pop("repositories", None)
    if repos is not None:
        repos.rollback()
