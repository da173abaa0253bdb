# backend/agrimarket/config.py
from __future__ import annotations
import os


def _engine_options(database_uri: str, lock_timeout: float) -> dict:
    """
    Bound the time a writer waits on a locked row/database.

    SQLite takes a busy timeout on connect; Postgres takes lock_timeout
    as a session option. Other drivers keep their defaults.
    """
    if database_uri.startswith("sqlite"):
        return {"connect_args": {"timeout": lock_timeout}}
    if database_uri.startswith("postgresql"):
        millis = int(lock_timeout * 1000)
        return {"connect_args": {"options": f"-c lock_timeout={millis}"}}
    return {}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/agrimarket.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///agrimarket.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Seconds a transaction may wait for a row lock before surfacing CONFLICT
    DB_LOCK_TIMEOUT_SECONDS = float(os.environ.get("DB_LOCK_TIMEOUT_SECONDS", "5"))
    SQLALCHEMY_ENGINE_OPTIONS = _engine_options(SQLALCHEMY_DATABASE_URI, DB_LOCK_TIMEOUT_SECONDS)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))

    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "100"))

    ALLOWED_ORIGINS = [
        o.strip()
        for o in os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
        if o.strip()
    ]

    # Delivery status graph: current status -> statuses it may move to.
    # Labels are free-form; ASSIGNED must stay the entry state.
    DELIVERY_STATUS_TRANSITIONS = {
        "ASSIGNED": ["IN_TRANSIT"],
        "IN_TRANSIT": ["DELIVERED", "FAILED"],
        "DELIVERED": [],
        "FAILED": [],
    }


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    LOG_LEVEL = "WARNING"
