# foundation/config/config.py
# Site configuration. Every setting reads from the environment first and
# falls back to a local-dev default.

from __future__ import annotations

import os
from typing import Optional

_TRUE_WORDS = frozenset({"1", "true", "yes", "on", "y"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off", "n"})


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Trimmed env value; blank counts as unset."""
    value = (os.getenv(name) or "").strip()
    return value or default


def _bool(name: str, default: bool = False) -> bool:
    word = (_env(name) or "").lower()
    if word in _TRUE_WORDS:
        return True
    if word in _FALSE_WORDS:
        return False
    return default


def _int(name: str, default: int) -> int:
    try:
        return int(_env(name, str(default)))
    except ValueError:
        return default


def _database_uri(fallback: str) -> str:
    return _env("SQLALCHEMY_DATABASE_URI") or _env("DATABASE_URL") or fallback


class BaseConfig:
    ENV = (_env("APP_ENV") or _env("ENV") or _env("FLASK_ENV") or "base").lower()
    DEBUG = _bool("FLASK_DEBUG")
    TESTING = _bool("TESTING")
    SECRET_KEY = _env("SECRET_KEY", "dev-change-me")

    # --- admin back-office ---
    # Shared secret for /api/content/admin/*; empty locks every admin route.
    ADMIN_API_KEY = _env("ADMIN_API_KEY", "")
    ADMIN_HEADER = _env("ADMIN_HEADER", "X-Admin-Key")

    # --- content store ---
    CONTENT_SEARCH_LIMIT = _int("CONTENT_SEARCH_LIMIT", 100)
    CONTENT_SNIPPET_SPAN = _int("CONTENT_SNIPPET_SPAN", 80)
    # Saving a published block as DRAFT clears publishedAt unless this is on
    CONTENT_DRAFT_KEEPS_PUBLISHED_AT = _bool("CONTENT_DRAFT_KEEPS_PUBLISHED_AT")

    # --- persistence ---
    SQLALCHEMY_DATABASE_URI = _database_uri("sqlite:///foundation-dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}
    AUTO_CREATE_SQLITE = _bool("AUTO_CREATE_SQLITE", True)

    # --- edge ---
    TRUST_PROXY = _bool("TRUST_PROXY")
    CORS_ORIGINS = _env("CORS_ORIGINS", "*")
    CORS_SUPPORTS_CREDENTIALS = _bool("CORS_SUPPORTS_CREDENTIALS")

    # --- observability ---
    LOG_LEVEL = _env("LOG_LEVEL", "INFO")
    WERKZEUG_LOG_LEVEL = _env("WERKZEUG_LOG_LEVEL", "WARNING")
    SENTRY_DSN = _env("SENTRY_DSN")
    # A missing admin key fails /ready instead of degrading it
    STRICT_HEALTH = _bool("STRICT_HEALTH")

    @classmethod
    def init_app(cls, app) -> None:
        """Called by create_app() right after from_object()."""
        uri = str(app.config.get("SQLALCHEMY_DATABASE_URI") or "")
        if uri.startswith("sqlite:"):
            # dev server threads share the one file
            opts = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
            opts["connect_args"] = {"check_same_thread": False, **(opts.get("connect_args") or {})}
            app.config["SQLALCHEMY_ENGINE_OPTIONS"] = opts


class DevelopmentConfig(BaseConfig):
    ENV = "development"
    DEBUG = True
    LOG_LEVEL = _env("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    ENV = "testing"
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    ADMIN_API_KEY = "test-admin-key"
    LOG_LEVEL = "WARNING"
    SENTRY_DSN = None


class ProductionConfig(BaseConfig):
    ENV = "production"
    DEBUG = False
    TRUST_PROXY = _bool("TRUST_PROXY", True)
    AUTO_CREATE_SQLITE = _bool("AUTO_CREATE_SQLITE", False)

    @classmethod
    def init_app(cls, app) -> None:
        super().init_app(app)

        if app.config.get("SECRET_KEY") in (None, "", "dev-change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong random value in production.")
        if not str(app.config.get("ADMIN_API_KEY") or "").strip():
            raise RuntimeError("ADMIN_API_KEY must be set in production.")
        if app.config.get("DEBUG") or _bool("FLASK_DEBUG"):
            raise RuntimeError("FLASK_DEBUG must be 0 in production.")
