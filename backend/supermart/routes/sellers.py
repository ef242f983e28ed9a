# Overview: Flask API routes for seller accounts (Admin only).

from flask import Blueprint, request, current_app

from ..services import auth_service
from ..services.auth_service import ROLE_ADMIN, DuplicateIdentityError
from ..services.session_service import get_session_registry
from ..validation import ValidationError
from ..decorators import require_auth, require_role

sellers_bp = Blueprint("sellers", __name__, url_prefix="/api/sellers")


@sellers_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def list_sellers_route():
    sellers = auth_service.list_sellers()
    return {"items": [s.to_dict() for s in sellers], "count": len(sellers)}


@sellers_bp.post("")
@require_auth
@require_role(ROLE_ADMIN)
def create_seller_route():
    """Body: {"email": str, "name": str, "password": str}"""
    payload = request.get_json(silent=True) or {}

    try:
        seller = auth_service.create_seller(
            email=payload.get("email"),
            name=payload.get("name"),
            password=payload.get("password"),
        )
    except DuplicateIdentityError as e:
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to create seller")
        return {"error": "Internal server error"}, 500

    return seller.to_dict(), 201


@sellers_bp.delete("/<seller_id>")
@require_auth
@require_role(ROLE_ADMIN)
def delete_seller_route(seller_id: str):
    """Delete a seller and close any sessions they have open."""
    if not auth_service.delete_seller(seller_id):
        return {"error": "Seller not found"}, 404
    closed = get_session_registry().end_for_seller(seller_id)
    return {"ok": True, "sessions_closed": closed}, 200
