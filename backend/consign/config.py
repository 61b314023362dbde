# backend/consign/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/consign.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///consign.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Alert thresholds
    LOW_STOCK_THRESHOLD = _int_env("LOW_STOCK_THRESHOLD", 5)  # boxes, inclusive
    PAYMENT_OVERDUE_DAYS = _int_env("PAYMENT_OVERDUE_DAYS", 14)

    # CURRENT: live override-aware wholesale price (historical behavior)
    # DELIVERY_SNAPSHOT: price frozen on the period's DELIVER_TO_STORE rows
    RECONCILIATION_PRICING = os.environ.get("RECONCILIATION_PRICING", "CURRENT").upper()

    # Bearer secret for the external alert-scan trigger; None disables the endpoint
    CRON_SECRET = os.environ.get("CRON_SECRET")

    SESSION_TTL_HOURS = _int_env("SESSION_TTL_HOURS", 24)

    # bcrypt work factor; tests lower it
    BCRYPT_ROUNDS = _int_env("BCRYPT_ROUNDS", 12)

    # Browser origins allowed to call the API (comma-separated)
    CORS_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
        if o.strip()
    )
