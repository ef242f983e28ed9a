# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/supermart/routes/products.py
"""
Product catalog routes.

SECURITY: All routes require an open session.
- Reads are open to both roles
- Create / edit / delete / restock are Admin only
"""
from flask import Blueprint, request, g, current_app

from ..models import Product
from ..repositories import get_repositories
from ..services import catalog_service
from ..services.auth_service import ROLE_ADMIN
from ..services.session_service import get_session_registry
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_quantity,
    ValidationError,
    ConflictError,
    NotFoundError,
)
from ..decorators import require_auth, require_role

# sku is generated on create and is never client-writable
PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "price_cents", "cost_price_cents", "quantity",
        "min_threshold", "expiry_date", "tags",
    },
    required_on_create={"name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List the catalog.

    Query params:
    - q: str (optional) - fuzzy search over name and SKU
    - low_stock: bool (optional) - only low / out-of-stock products
    """
    search = request.args.get("q", "").strip() or None
    products = catalog_service.list_products(get_repositories(), search=search)
    if request.args.get("low_stock") in ("1", "true", "yes"):
        products = catalog_service.low_stock_products(products)
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/<product_id>")
@require_auth
def get_product(product_id: str):
    try:
        product = catalog_service.require_product(get_repositories(), product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return product.to_dict()


@products_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_product_route():
    """Create a product. The SKU is generated from the name and the store sequence."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = catalog_service.create_product(get_repositories(), patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    current_app.logger.info("Product created: %s (%s)", created.sku, created.name)
    return created.to_dict(), 201


@products_bp.put("/<product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def update_product_route(product_id: str):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = catalog_service.update_product(get_repositories(), product_id=product_id, patch=patch)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ConflictError as e:
        return {"error": str(e)}, 409
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return updated.to_dict(), 200


@products_bp.delete("/<product_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_product_route(product_id: str):
    """Delete a product and drop it from every open cart."""
    try:
        deleted = catalog_service.remove_product(get_repositories(), product_id)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Internal server error"}, 500

    if not deleted:
        return {"error": "Product not found"}, 404

    dropped = get_session_registry().drop_product_from_carts(product_id)
    return {"ok": True, "cart_lines_removed": dropped}, 200


@products_bp.post("/<product_id>/restock")
@require_auth
@require_role(ROLE_ADMIN)
def restock_product_route(product_id: str):
    """Body: {"quantity": int > 0}. Records a RESTOCK transaction."""
    payload = request.get_json(silent=True) or {}

    try:
        quantity = parse_quantity(payload.get("quantity"))
        product, tx = catalog_service.restock(
            get_repositories(), product_id, quantity, recorded_by=g.current_user.name,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to restock product")
        return {"error": "Internal server error"}, 500

    return {"product": product.to_dict(), "transaction": tx.to_dict()}, 200
