# Overview: Flask API routes for store settings (Admin only).

from flask import Blueprint, request, current_app

from ..services import auth_service
from ..services.auth_service import ROLE_ADMIN
from ..validation import ValidationError
from ..decorators import require_auth, require_role

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
@require_role(ROLE_ADMIN)
def get_settings_route():
    return auth_service.get_settings().to_dict()


@settings_bp.put("")
@require_auth
@require_role(ROLE_ADMIN)
def update_settings_route():
    """
    Body (all optional): {"name": str, "logo_url": str, "admin_password": str}
    """
    payload = request.get_json(silent=True) or {}

    try:
        settings = auth_service.update_settings(
            name=payload.get("name"),
            logo_url=payload.get("logo_url"),
        )
        if payload.get("admin_password") is not None:
            auth_service.set_admin_password(payload["admin_password"])
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return {"error": "Internal server error"}, 500

    return settings.to_dict(), 200
