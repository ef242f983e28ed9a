# backend/supermart/config.py
from __future__ import annotations
import os


def _csv(value: str) -> set[str]:
    return {item.strip() for item in value.split(",") if item.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/supermart.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///supermart.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # "sql" persists through SQLAlchemy, "memory" keeps everything in-process
    STORAGE_BACKEND = os.environ.get("STORAGE_BACKEND", "sql")

    # Store identity; only used until settings are saved through the API
    STORE_NAME = os.environ.get("STORE_NAME", "SUPERMART PRO")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin")
    STORE_TIMEZONE = os.environ.get("STORE_TIMEZONE", "UTC")

    # "clamp" floors stock at zero on oversell, "reject" refuses the sale
    STOCK_OVERSELL_POLICY = os.environ.get("STOCK_OVERSELL_POLICY", "clamp")

    GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
    GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
    ADVISORY_WORKERS = int(os.environ.get("ADVISORY_WORKERS", "1"))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    CORS_ORIGINS = _csv(os.environ.get(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    ))


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    STORAGE_BACKEND = "sql"
    ADMIN_PASSWORD = "admin"
    STORE_NAME = "TEST MART"
    STOCK_OVERSELL_POLICY = "clamp"
    GEMINI_API_KEY = None
    BCRYPT_ROUNDS = 4
    LOG_LEVEL = "DEBUG"
