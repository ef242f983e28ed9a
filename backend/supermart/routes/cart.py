# Overview: Flask API routes for the register cart; operates on the caller's session cart.

from flask import Blueprint, request, g

from ..repositories import get_repositories
from ..services import catalog_service
from ..validation import ValidationError, NotFoundError, parse_int
from ..decorators import require_auth

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
def get_cart():
    return g.session_state.cart.to_dict()


@cart_bp.delete("")
@require_auth
def clear_cart():
    g.session_state.cart.clear()
    return g.session_state.cart.to_dict()


@cart_bp.post("/items")
@require_auth
def add_item():
    """
    Body: {"product_id": str}

    Adds one unit. The line keeps the product snapshot taken on first add.
    """
    payload = request.get_json(silent=True) or {}
    product_id = payload.get("product_id")
    if not product_id:
        return {"error": "product_id is required"}, 400

    try:
        product = catalog_service.require_product(get_repositories(), product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404

    line = g.session_state.cart.add(product)
    return {"line": line.to_dict(), "cart": g.session_state.cart.to_dict()}, 201


@cart_bp.patch("/items/<product_id>")
@require_auth
def update_item(product_id: str):
    """Body: {"delta": int}. Quantity never drops below 1."""
    payload = request.get_json(silent=True) or {}

    try:
        delta = parse_int(payload.get("delta"), key="delta")
        line = g.session_state.cart.update_quantity(product_id, delta)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"line": line.to_dict(), "cart": g.session_state.cart.to_dict()}


@cart_bp.delete("/items/<product_id>")
@require_auth
def remove_item(product_id: str):
    try:
        g.session_state.cart.remove(product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return g.session_state.cart.to_dict()
