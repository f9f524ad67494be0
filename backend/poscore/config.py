# backend/poscore/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/poscore.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///poscore.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Stock holds
    RESERVATION_TTL_MINUTES = _env_int("RESERVATION_TTL_MINUTES", 15)
    RESERVATION_SWEEP_INTERVAL_SECONDS = _env_int("RESERVATION_SWEEP_INTERVAL_SECONDS", 180)

    # Pricing snapshot refresh (promotions + VAT)
    PROMOTION_REFRESH_SECONDS = _env_int("PROMOTION_REFRESH_SECONDS", 120)

    # Returns
    RETURN_WINDOW_DAYS = _env_int("RETURN_WINDOW_DAYS", 7)

    # Background threads are off unless explicitly enabled (tests, CLI)
    SCHEDULER_ENABLED = _env_bool("SCHEDULER_ENABLED", False)
    DISPATCH_MAX_WORKERS = _env_int("DISPATCH_MAX_WORKERS", 4)
