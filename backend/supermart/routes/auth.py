# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/supermart/routes/auth.py
"""
Authentication API routes

A successful login opens a register session and returns its bearer token.
Failed logins return the role-specific message and may be retried at once.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services.auth_service import InvalidCredentialError
from ..services.session_service import get_session_registry
from ..validation import ValidationError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Body: {"role": "Admin", "password": "..."}
       or {"role": "Seller", "email": "...", "password": "..."}
    """
    try:
        data = request.get_json(silent=True) or {}
        role = data.get("role")
        password = data.get("password")

        if not role or not password:
            return jsonify({"error": "role and password required"}), 400

        identity = auth_service.authenticate(role, data.get("email"), password)
        state, token = get_session_registry().create(identity)
        current_app.logger.info("Login: %s (%s)", identity.name, identity.role)

        return jsonify({
            "user": state.to_dict(),
            "token": token,
            "message": "Login successful",
        }), 200

    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InvalidCredentialError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Close the register session. Its cart is discarded."""
    get_session_registry().end(g.auth_token)
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({
        "user": g.session_state.to_dict(),
        "cart": g.session_state.cart.to_dict(),
    }), 200
