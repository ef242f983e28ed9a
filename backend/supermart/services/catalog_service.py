# Overview: Service-layer operations for the product catalog; SKU allocation, stock mutation and search.

"""
Catalog Service

Invariants (authoritative):
- quantity is a non-negative integer at all times.
- price_cents and cost_price_cents are non-negative.
- sku is assigned exactly once, on create, and never changes.
- The SKU sequence is consumed in the same unit of work as the product
  insert, so a failed create never burns or duplicates a sequence value.

Oversell policy:
- "clamp" (default): a decrement larger than on-hand floors stock at 0 and
  the sale goes through.
- "reject": the decrement raises InsufficientStockError and nothing changes.
"""
from __future__ import annotations

import re

from rapidfuzz import fuzz, process

from ..domain import RESTOCK, Product, Transaction, TransactionItem, new_id, new_transaction_id
from ..repositories import Repositories
from ..time_utils import utcnow
from ..validation import ConflictError, NotFoundError, ValidationError

OVERSELL_CLAMP = "clamp"
OVERSELL_REJECT = "reject"
OVERSELL_POLICIES = (OVERSELL_CLAMP, OVERSELL_REJECT)

# Sequence seed offset on first allocation: catalog size + 100
SKU_SEED_OFFSET = 100

# Fuzzy threshold 0.3 (0 = exact, 1 = anything) expressed as a 0-100 score
SEARCH_SCORE_CUTOFF = 70

PRODUCT_MUTABLE_FIELDS = {
    "name", "price_cents", "cost_price_cents", "quantity",
    "min_threshold", "expiry_date", "tags",
}


# Opening brackets and quotes ahead of a word; digits are not stripped
_LEADING_PUNCT_RE = re.compile(r"^[^\w\s]+")


def _alphabetic_words(name: str) -> list[str]:
    words = (_LEADING_PUNCT_RE.sub("", w) for w in name.split())
    return [w for w in words if w[:1].isalpha()]


def generate_sku(name: str, sequence: int) -> str:
    """
    Derive a SKU from a product name and a sequence number.

    The code letters come from the name's alphabetic words (tokens that
    start with a letter once leading brackets or quotes are dropped): the
    first letter of the first such word and the last letter of the last
    one. Names without such a word get P and X.

        generate_sku("Red Apples", 7)   -> "RS007"
        generate_sku("Red (Apples)", 7) -> "RS007"
        generate_sku("7-Up", 3)         -> "PX003"
    """
    words = _alphabetic_words(name or "")
    if words:
        first = words[0][0].upper()
        last = [c for c in words[-1] if c.isalpha()][-1].upper()
    else:
        first, last = "P", "X"
    return f"{first}{last}{sequence:03d}"


def _apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        if k == "tags":
            v = list(v or [])
        setattr(p, k, v)


def list_products(repos: Repositories, search: str | None = None) -> list[Product]:
    products = repos.catalog.list_all()
    if search:
        return search_products(products, search)
    return products


def find_by_id(repos: Repositories, product_id: str) -> Product | None:
    return repos.catalog.get(product_id)


def require_product(repos: Repositories, product_id: str) -> Product:
    product = repos.catalog.get(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def create_product(repos: Repositories, *, patch: dict) -> Product:
    """
    Create a product from a validated patch dict and assign its SKU.

    Raises:
        ValidationError: if name is missing
        ConflictError: if the generated SKU is already taken
    """
    name = (patch.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required")

    try:
        sequence = repos.sku_counter.allocate(repos.catalog.count() + SKU_SEED_OFFSET)
        sku = generate_sku(name, sequence)
        if repos.catalog.get_by_sku(sku) is not None:
            raise ConflictError(f"SKU {sku} already exists")

        product = Product(
            id=new_id(),
            sku=sku,
            name=name,
            price_cents=0,
            cost_price_cents=0,
            quantity=0,
            min_threshold=0,
            last_updated=utcnow(),
        )
        _apply_product_patch(product, patch)
        saved = repos.catalog.save(product)
        repos.commit()
    except Exception:
        repos.rollback()
        raise
    return saved


def update_product(repos: Repositories, *, product_id: str, patch: dict) -> Product:
    """Edit an existing product. id and sku are immutable."""
    try:
        product = require_product(repos, product_id)
        _apply_product_patch(product, patch)
        product.last_updated = utcnow()
        saved = repos.catalog.save(product)
        repos.commit()
    except Exception:
        repos.rollback()
        raise
    return saved


def upsert(repos: Repositories, product: Product) -> Product:
    """Create-or-update by id. Callers supply the SKU for new ids."""
    if product.quantity < 0 or product.price_cents < 0 or product.cost_price_cents < 0:
        raise ValidationError("quantity, price_cents and cost_price_cents must be >= 0")
    try:
        existing = repos.catalog.get_by_sku(product.sku)
        if existing is not None and existing.id != product.id:
            raise ConflictError(f"SKU {product.sku} already exists")
        saved = repos.catalog.save(product.copy(last_updated=utcnow()))
        repos.commit()
    except Exception:
        repos.rollback()
        raise
    return saved


def remove_product(repos: Repositories, product_id: str) -> bool:
    """
    Delete a product. Returns False if it did not exist.

    Cart lines referencing the product are not touched here; the caller
    purges them from the live sessions (SessionRegistry.drop_product_from_carts).
    """
    try:
        removed = repos.catalog.delete(product_id)
        repos.commit()
    except Exception:
        repos.rollback()
        raise
    return removed


def decrement_stock(
    repos: Repositories,
    product_id: str,
    amount: int,
    *,
    policy: str = OVERSELL_CLAMP,
    commit: bool = True,
) -> Product:
    """
    Reduce stock by `amount`.

    Result is max(0, previous - amount) under the clamp policy. Under the
    reject policy an oversell raises InsufficientStockError.

    Raises:
        NotFoundError: unknown product id
        InsufficientStockError: reject policy and amount > on hand
    """
    if amount < 0:
        raise ValidationError("amount must be >= 0")
    if policy not in OVERSELL_POLICIES:
        raise ValueError(f"unknown oversell policy: {policy}")

    product = repos.catalog.adjust_quantity(
        product_id,
        -amount,
        floor_at_zero=(policy == OVERSELL_CLAMP),
        now=utcnow(),
    )
    if product is None:
        raise NotFoundError("Product not found")
    if commit:
        repos.commit()
    return product


def restock(
    repos: Repositories,
    product_id: str,
    amount: int,
    *,
    recorded_by: str | None = None,
) -> tuple[Product, Transaction]:
    """
    Receive `amount` units of a product and record a RESTOCK transaction
    valued at the current cost price. Stock and ledger commit together.
    """
    if amount <= 0:
        raise ValidationError("amount must be > 0")

    try:
        now = utcnow()
        product = repos.catalog.adjust_quantity(product_id, amount, floor_at_zero=True, now=now)
        if product is None:
            raise NotFoundError("Product not found")

        value = product.cost_price_cents * amount
        tx = Transaction(
            id=new_transaction_id(),
            items=(TransactionItem(
                product_id=product.id,
                name=product.name,
                sku=product.sku,
                quantity=amount,
                price_cents=product.cost_price_cents,
                cost_price_at_sale_cents=product.cost_price_cents,
            ),),
            total_cents=value,
            total_cost_cents=value,
            type=RESTOCK,
            timestamp=now,
            recorded_by=recorded_by,
        )
        repos.ledger.append(tx)
        repos.commit()
    except Exception:
        repos.rollback()
        raise
    return product, tx


def search_products(products: list[Product], term: str, *, limit: int | None = None) -> list[Product]:
    """
    Fuzzy product search over name and SKU.

    Case-insensitive substring hits come first (catalog order), followed by
    fuzzy matches scoring at least SEARCH_SCORE_CUTOFF, best first.
    """
    term = (term or "").strip()
    if not term:
        return list(products)

    needle = term.lower()
    exact = [p for p in products if needle in p.name.lower() or needle in p.sku.lower()]
    exact_ids = {p.id for p in exact}

    remaining = [p for p in products if p.id not in exact_ids]
    choices = {p.id: f"{p.name} {p.sku}" for p in remaining}
    matches = process.extract(
        term,
        choices,
        scorer=fuzz.WRatio,
        processor=str.lower,
        score_cutoff=SEARCH_SCORE_CUTOFF,
        limit=None,
    )
    by_id = {p.id: p for p in remaining}
    fuzzy = [by_id[key] for _, _, key in matches]

    results = exact + fuzzy
    return results[:limit] if limit else results


def low_stock_products(products: list[Product]) -> list[Product]:
    return [p for p in products if p.is_low_stock or p.is_out_of_stock]
