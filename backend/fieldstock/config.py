# backend/fieldstock/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/fieldstock.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///fieldstock.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # How several released loads on the same agent/day feed the ledger:
    # "latest" (most recently released load only) or "cumulative" (sum of all)
    LEDGER_LOAD_POLICY = os.environ.get("LEDGER_LOAD_POLICY", "latest")

    # False: unload quantities are clamped to [0, remaining]
    # True: an unload above remaining raises QuantityExceeded
    SETTLEMENT_STRICT_UNLOAD = _env_bool("SETTLEMENT_STRICT_UNLOAD", False)

    # An agent counts as online while its last heartbeat is younger than this
    AGENT_PRESENCE_TTL_SECONDS = int(os.environ.get("AGENT_PRESENCE_TTL_SECONDS", "3600"))

    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "2"))

    # Browser origins allowed to call the API (comma separated)
    CORS_ALLOWED_ORIGINS = tuple(
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if origin.strip()
    )
