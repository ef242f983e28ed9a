# Overview: Service-layer operations for session; bearer tokens mapped to in-process register state.

"""
Register Session Management

Each successful login opens a register session: the authenticated identity
plus that register's cart. Sessions live in process memory only and are
never written to the database, so a restart logs everyone out and empties
every cart.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before they are used as registry keys
- Revocable on logout
"""

import hashlib
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app

from .auth_service import ROLE_ADMIN, Identity
from .cart_service import Cart
from supermart.time_utils import to_utc_z, utcnow

SESSION_REGISTRY_KEY = "supermart.sessions"


@dataclass
class SessionState:
    identity: Identity
    cart: Cart = field(default_factory=Cart)
    created_at: datetime = field(default_factory=utcnow)

    @property
    def role(self) -> str:
        return self.identity.role

    @property
    def display_name(self) -> str:
        return self.identity.name

    @property
    def is_admin(self) -> bool:
        return self.identity.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        data = self.identity.to_dict()
        data["created_at"] = to_utc_z(self.created_at)
        return data


def generate_token() -> str:
    """Returns 64-character hex string (32 bytes of entropy)."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


class SessionRegistry:
    """Thread-safe map of hashed bearer token -> SessionState."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sessions: dict[str, SessionState] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, identity: Identity) -> tuple[SessionState, str]:
        """Open a session. The plaintext token is returned once and never stored."""
        token = generate_token()
        state = SessionState(identity=identity)
        with self._lock:
            self._sessions[hash_token(token)] = state
        return state, token

    def get(self, token: str | None) -> SessionState | None:
        if not token:
            return None
        with self._lock:
            return self._sessions.get(hash_token(token))

    def end(self, token: str) -> bool:
        """Logout. The session's cart is discarded with it."""
        with self._lock:
            state = self._sessions.pop(hash_token(token), None)
        if state is not None:
            state.cart.clear()
        return state is not None

    def end_for_seller(self, seller_id: str) -> int:
        """Revoke every session held by a seller that has been deleted."""
        with self._lock:
            doomed = [k for k, s in self._sessions.items() if s.identity.seller_id == seller_id]
            for key in doomed:
                self._sessions.pop(key)
        return len(doomed)

    def drop_product_from_carts(self, product_id: str) -> int:
        """Remove a deleted product from every open cart. Returns lines dropped."""
        with self._lock:
            states = list(self._sessions.values())
        return sum(1 for s in states if s.cart.drop_product(product_id))

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()


def get_session_registry() -> SessionRegistry:
    return current_app.extensions[SESSION_REGISTRY_KEY]
