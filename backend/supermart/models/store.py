from __future__ import annotations

from ..extensions import db
from supermart.time_utils import to_utc_z


class StoreSettings(db.Model):
    """Single-row store configuration (id=1): branding and the admin passphrase."""
    __tablename__ = "store_settings"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    logo_url = db.Column(db.Text, nullable=True)
    admin_password_hash = db.Column(db.String(255), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "logo_url": self.logo_url,
            "updated_at": to_utc_z(self.updated_at),
        }


class Seller(db.Model):
    """Staff account allowed to run the register."""
    __tablename__ = "sellers"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_sellers_email"),
    )

    id = db.Column(db.String(32), primary_key=True)
    # Stored lower-cased; uniqueness is case-insensitive
    email = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)

    def __repr__(self) -> str:
        return f"<Seller id={self.id} email={self.email!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "created_at": to_utc_z(self.created_at),
        }
