# backend/shelfkeep/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shelfkeep.sqlite3 unless DATABASE_URL is set
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///shelfkeep.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
    }

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Identity tokens issued by the external auth provider.
    # HS* algorithms take a shared secret, RS*/ES* take the issuer's PEM public key.
    AUTH_JWT_KEY = os.environ.get("AUTH_JWT_KEY")
    AUTH_JWT_ALGORITHMS = _env_list("AUTH_JWT_ALGORITHMS", ["RS256"])
    AUTH_JWT_ISSUER = os.environ.get("AUTH_JWT_ISSUER")
    AUTH_JWT_AUDIENCE = os.environ.get("AUTH_JWT_AUDIENCE")
    AUTH_JWT_LEEWAY_SECONDS = int(os.environ.get("AUTH_JWT_LEEWAY_SECONDS", "0"))

    # Shared counter store for the rate limiter (Redis protocol).
    REDIS_URL = os.environ.get("REDIS_URL")
    REDIS_SOCKET_TIMEOUT = float(os.environ.get("REDIS_SOCKET_TIMEOUT", "0.5"))

    RATE_LIMIT_ENABLED = _env_bool("RATE_LIMIT_ENABLED", True)
    RATE_LIMIT_REQUESTS = int(os.environ.get("RATE_LIMIT_REQUESTS", "100"))
    RATE_LIMIT_WINDOW_SECONDS = int(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", "60"))
    RATE_LIMIT_KEY_PREFIX = os.environ.get("RATE_LIMIT_KEY_PREFIX", "shelfkeep:ratelimit")
    RATE_LIMIT_EXEMPT_ENDPOINTS = {"system.health"}
    # Number of trusted reverse proxies in front of the app. 0 keys anonymous
    # callers on the socket address; N > 0 applies ProxyFix(x_for=N).
    PROXY_FIX_X_FOR = int(os.environ.get("PROXY_FIX_X_FOR", "0"))

    # Inventory policy
    ALLOW_NEGATIVE_STOCK = _env_bool("ALLOW_NEGATIVE_STOCK", False)
    # "reject": a barcode owned by another account cannot be upserted.
    # "transfer": last writer wins and the row moves to the submitting owner.
    BARCODE_CROSS_OWNER_POLICY = os.environ.get("BARCODE_CROSS_OWNER_POLICY", "reject")

    CORS_ALLOWED_ORIGINS = _env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:8081",
            "http://127.0.0.1:8081",
            "http://localhost:19006",
            "http://127.0.0.1:19006",
        ],
    )

    DEFAULT_CATEGORIES = [
        "Snacks",
        "Drinks",
        "Canned Goods",
        "Toiletries",
        "Rice & Grains",
        "Baby Needs",
        "Frozen Items",
        "E-Load",
    ]
