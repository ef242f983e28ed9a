# Overview: Flask API route for checkout; turns the session cart into a SALE transaction.

from flask import Blueprint, current_app, g

from ..repositories import get_repositories
from ..services.checkout_service import CheckoutProcessor
from ..validation import InsufficientStockError, NotFoundError
from ..decorators import require_auth

checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


@checkout_bp.post("")
@require_auth
def checkout_route():
    """
    Complete checkout for the caller's cart.

    Stock decrements and the ledger append commit together; on any failure
    neither is applied and the cart is left as it was.
    """
    cart = g.session_state.cart
    if not cart:
        return {"error": "Cart is empty"}, 400

    processor = CheckoutProcessor(
        get_repositories(),
        oversell_policy=current_app.config["STOCK_OVERSELL_POLICY"],
    )

    try:
        tx = processor.complete_checkout(cart, recorded_by=g.current_user.name)
    except InsufficientStockError as e:
        return {"error": str(e), "details": e.details}, 409
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except Exception:
        current_app.logger.exception("Failed to complete checkout")
        return {"error": "Internal server error"}, 500

    return {"transaction": tx.to_dict(), "cart": cart.to_dict()}, 201
