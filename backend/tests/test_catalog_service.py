"""
Catalog service tests, run against both storage backends.

Verifies:
- Stock decrement clamps at zero (default) or rejects (reject policy)
- Unknown product ids are fatal to the operation
- upsert / remove / restock semantics
"""

import pytest

from supermart.domain import RESTOCK
from supermart.services import catalog_service
from supermart.services.catalog_service import OVERSELL_REJECT
from supermart.validation import ConflictError, InsufficientStockError, NotFoundError, ValidationError

BACKENDS = pytest.mark.parametrize("storage_backend", ["sql", "memory"])


@BACKENDS
class TestDecrementStock:

    @pytest.mark.parametrize("start,amount,expected", [(10, 3, 7), (10, 10, 0), (10, 25, 0), (0, 4, 0), (5, 0, 5)])
    def test_clamps_at_zero(self, repos, make_product, storage_backend, start, amount, expected):
        product = make_product(quantity=start)

        updated = catalog_service.decrement_stock(repos, product.id, amount)

        assert updated.quantity == expected
        assert catalog_service.require_product(repos, product.id).quantity == expected

    def test_reject_policy_leaves_stock_unchanged(self, repos, make_product, storage_backend):
        product = make_product(quantity=2)

        with pytest.raises(InsufficientStockError) as exc:
            catalog_service.decrement_stock(repos, product.id, 3, policy=OVERSELL_REJECT)
        repos.rollback()

        assert exc.value.details == {"product_id": product.id, "on_hand": 2, "requested_quantity": 3}
        assert catalog_service.require_product(repos, product.id).quantity == 2

    def test_reject_policy_allows_exact_sellout(self, repos, make_product, storage_backend):
        product = make_product(quantity=2)
        updated = catalog_service.decrement_stock(repos, product.id, 2, policy=OVERSELL_REJECT)
        assert updated.quantity == 0
        assert updated.is_out_of_stock

    def test_unknown_product_is_not_found(self, repos, storage_backend):
        with pytest.raises(NotFoundError):
            catalog_service.decrement_stock(repos, "does-not-exist", 1)

    def test_negative_amount_rejected(self, repos, make_product, storage_backend):
        product = make_product()
        with pytest.raises(ValidationError):
            catalog_service.decrement_stock(repos, product.id, -1)

    def test_bumps_last_updated(self, repos, make_product, storage_backend):
        product = make_product(quantity=5)
        updated = catalog_service.decrement_stock(repos, product.id, 1)
        assert updated.last_updated >= product.last_updated


@BACKENDS
class TestCatalogMaintenance:

    def test_create_requires_name(self, repos, storage_backend):
        with pytest.raises(ValidationError):
            catalog_service.create_product(repos, patch={"name": "   ", "price_cents": 10})

    def test_create_defaults(self, repos, storage_backend):
        product = catalog_service.create_product(repos, patch={"name": "Salt", "price_cents": 50})
        assert product.quantity == 0
        assert product.cost_price_cents == 0
        assert product.tags == []
        assert product.is_out_of_stock

    def test_update_unknown_product(self, repos, storage_backend):
        with pytest.raises(NotFoundError):
            catalog_service.update_product(repos, product_id="nope", patch={"name": "x"})

    def test_upsert_creates_and_updates(self, repos, make_product, storage_backend):
        product = make_product(price_cents=100)

        catalog_service.upsert(repos, product.copy(price_cents=150))
        assert catalog_service.require_product(repos, product.id).price_cents == 150

        fresh = product.copy(id="manual-id", sku="ZZ001", name="Manual")
        catalog_service.upsert(repos, fresh)
        assert catalog_service.find_by_id(repos, "manual-id").sku == "ZZ001"

    def test_upsert_rejects_duplicate_sku(self, repos, make_product, storage_backend):
        product = make_product()
        with pytest.raises(ConflictError):
            catalog_service.upsert(repos, product.copy(id="other-id"))

    def test_upsert_rejects_negative_values(self, repos, make_product, storage_backend):
        product = make_product()
        with pytest.raises(ValidationError):
            catalog_service.upsert(repos, product.copy(quantity=-1))

    def test_remove_product(self, repos, make_product, storage_backend):
        product = make_product()
        assert catalog_service.remove_product(repos, product.id) is True
        assert catalog_service.find_by_id(repos, product.id) is None
        assert catalog_service.remove_product(repos, product.id) is False

    def test_restock_records_transaction(self, repos, make_product, storage_backend):
        product = make_product(quantity=1, cost_price_cents=60)

        updated, tx = catalog_service.restock(repos, product.id, 9, recorded_by="Super Admin")

        assert updated.quantity == 10
        assert tx.type == RESTOCK
        assert tx.total_cost_cents == 540
        assert tx.items[0].quantity == 9
        assert repos.ledger.get(tx.id) is not None

    def test_restock_unknown_product_writes_nothing(self, repos, storage_backend):
        with pytest.raises(NotFoundError):
            catalog_service.restock(repos, "nope", 5)
        assert repos.ledger.list_all() == []


def test_low_stock_products(make_product):
    ok = make_product(name="Plenty", quantity=50, min_threshold=5)
    low = make_product(name="Edge", quantity=5, min_threshold=5)
    out = make_product(name="Gone", quantity=0, min_threshold=0)

    flagged = {p.id for p in catalog_service.low_stock_products([ok, low, out])}

    assert flagged == {low.id, out.id}
    assert low.is_low_stock and not low.is_out_of_stock
    assert out.is_out_of_stock and not out.is_low_stock
