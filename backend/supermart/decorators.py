# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .services.session_service import get_session_registry


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_auth(f):
    """
    Require an open register session.

    Sets the following Flask g attributes:
    - g.session_state: the SessionState (identity + cart)
    - g.current_user: the authenticated Identity
    - g.auth_token: the bearer token, for logout

    Returns 401 if the Authorization header is missing or the token does not
    match an open session.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if not token:
            return jsonify({"error": "Authentication required"}), 401

        state = get_session_registry().get(token)
        if state is None:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.session_state = state
        g.current_user = state.identity
        g.auth_token = token

        return f(*args, **kwargs)

    return decorated_function


def require_role(role: str):
    """Require the session's role to be `role`. Apply after @require_auth."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return jsonify({"error": "Authentication required"}), 401

            if g.current_user.role != role:
                return jsonify({
                    "error": "Permission denied",
                    "required_role": role,
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
