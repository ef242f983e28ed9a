# Overview: Service-layer operations for auth; admin passphrase, seller accounts and login.

"""
Authentication Service

Two roles:
- Admin: a single store-wide passphrase (StoreSettings.admin_password_hash).
- Seller: email + password pairs managed by the admin.

SECURITY NOTES:
- Passwords and the admin passphrase are hashed with bcrypt (cost factor 12)
- Seller emails are unique, compared case-insensitively
- Failed logins are reported with a role-specific message and may be
  retried immediately (no lockout)
"""

import re
from dataclasses import dataclass

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..domain import new_id
from ..extensions import db
from ..models import Seller, StoreSettings
from ..validation import ConflictError, ValidationError
from supermart.time_utils import utcnow

ROLE_ADMIN = "Admin"
ROLE_SELLER = "Seller"
ROLES = (ROLE_ADMIN, ROLE_SELLER)

ADMIN_DISPLAY_NAME = "Super Admin"
SETTINGS_ROW_ID = 1
MIN_PASSWORD_LENGTH = 4

# ~500KB image once base64-encoded into a data: URL
MAX_LOGO_URL_LENGTH = 700_000

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class InvalidCredentialError(Exception):
    """Raised when a login attempt does not match any configured credential."""
    pass


class DuplicateIdentityError(ConflictError):
    """Raised when a seller email is already registered."""
    pass


@dataclass(frozen=True)
class Identity:
    role: str
    name: str
    seller_id: str | None = None
    email: str | None = None

    def to_dict(self) -> dict:
        return {
            "role": self.role,
            "name": self.name,
            "seller_id": self.seller_id,
            "email": self.email,
        }


def validate_password(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for length before hashing.
    """
    validate_password(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt verification. Malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


# =============================================================================
# Store settings
# =============================================================================

def get_settings() -> StoreSettings:
    """
    Return the settings row, creating it from configuration on first use
    (STORE_NAME, ADMIN_PASSWORD).
    """
    settings = db.session.get(StoreSettings, SETTINGS_ROW_ID)
    if settings is None:
        settings = StoreSettings(
            id=SETTINGS_ROW_ID,
            name=current_app.config["STORE_NAME"],
            logo_url="",
            admin_password_hash=hash_password(current_app.config["ADMIN_PASSWORD"]),
        )
        db.session.add(settings)
        db.session.commit()
    return settings


def update_settings(*, name: str | None = None, logo_url: str | None = None) -> StoreSettings:
    settings = get_settings()
    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError("name cannot be blank")
        if len(name) > 120:
            raise ValidationError("name exceeds max length 120")
        settings.name = name
    if logo_url is not None:
        if len(logo_url) > MAX_LOGO_URL_LENGTH:
            raise ValidationError("Logo too large. Please use an image smaller than 500KB.")
        settings.logo_url = logo_url
    db.session.commit()
    return settings


def set_admin_password(password: str) -> None:
    settings = get_settings()
    settings.admin_password_hash = hash_password(password)
    db.session.commit()


# =============================================================================
# Sellers
# =============================================================================

def list_sellers() -> list[Seller]:
    return db.session.query(Seller).order_by(Seller.name.asc(), Seller.id.asc()).all()


def create_seller(*, email: str, name: str, password: str) -> Seller:
    """
    Register a seller.

    Raises:
        ValidationError: bad email, blank name or short password
        DuplicateIdentityError: email already registered (nothing is written)
    """
    email = normalize_email(email)
    name = (name or "").strip()
    if not EMAIL_RE.match(email):
        raise ValidationError("A valid email is required")
    if not name:
        raise ValidationError("name is required")

    if db.session.query(Seller).filter_by(email=email).first():
        raise DuplicateIdentityError("A seller with this email already exists")

    seller = Seller(
        id=new_id(),
        email=email,
        name=name,
        password_hash=hash_password(password),
        created_at=utcnow(),
    )
    db.session.add(seller)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        db.session.rollback()
        raise DuplicateIdentityError("A seller with this email already exists")
    return seller


def delete_seller(seller_id: str) -> bool:
    seller = db.session.get(Seller, seller_id)
    if seller is None:
        return False
    db.session.delete(seller)
    db.session.commit()
    return True


# =============================================================================
# Login
# =============================================================================

def authenticate(role: str, email: str | None, password: str | None) -> Identity:
    """
    Resolve a role + credential to an Identity.

    Raises InvalidCredentialError with the message shown on the login form.
    """
    if role == ROLE_ADMIN:
        settings = get_settings()
        if not verify_password(password or "", settings.admin_password_hash):
            raise InvalidCredentialError("Invalid Administrator Pin")
        return Identity(role=ROLE_ADMIN, name=ADMIN_DISPLAY_NAME)

    if role == ROLE_SELLER:
        seller = db.session.query(Seller).filter_by(email=normalize_email(email)).first()
        if seller is None or not verify_password(password or "", seller.password_hash):
            raise InvalidCredentialError("Invalid Seller Credentials")
        return Identity(role=ROLE_SELLER, name=seller.name, seller_id=seller.id, email=seller.email)

    raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
