# foundation/__init__.py
# Foundation site: content API app factory
#
# create_app(config) wires, in order:
#   config → ProxyFix → logging (rid-stamped) → Sentry → extensions →
#   admin guard → request hooks → JSON errors → blueprints → CLI
#
# The content blueprint is mandatory; optional blueprints can be switched
# off with DISABLE_BPS=health,...

from __future__ import annotations

import logging
import os
import time
from importlib import import_module
from typing import Any, Dict, Optional, Type, Union
from uuid import uuid4

import sentry_sdk
from dotenv import load_dotenv
from flask import Blueprint, Flask, g, jsonify, request
from sentry_sdk.integrations.flask import FlaskIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

# real env vars always win over .env
load_dotenv(override=False)

from foundation.config import CONFIG_BY_NAME  # noqa: E402
from foundation.errors import ContentError  # noqa: E402
from foundation.extensions import db, init_all_extensions  # noqa: E402
from foundation.security import EXTENSION_KEY, AdminKeyGuard  # noqa: E402

ConfigLike = Union[str, Type[Any]]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [rid=%(request_id)s]: %(message)s"

_ENV_ALIASES = {"prod": "production", "dev": "development", "local": "development", "test": "testing"}

# (module, url_prefix, required)
BLUEPRINTS = (
    ("foundation.blueprints.content", "/api/content", True),
    ("foundation.blueprints.health", None, False),
)


# -----------------------------------------------------------------------------
# Environment + config
# -----------------------------------------------------------------------------
def _env_name() -> str:
    for key in ("APP_ENV", "ENV", "FLASK_ENV"):
        raw = (os.getenv(key) or "").strip().lower()
        if raw:
            return _ENV_ALIASES.get(raw, raw)
    return "development"


def _resolve_config(target: Optional[ConfigLike]) -> Type[Any]:
    """
    Explicit argument, then FLASK_CONFIG, then the class for the env name.
    Strings may be a dotted path ("foundation.config.ProductionConfig") or an
    env name ("production").
    """
    target = target or (os.getenv("FLASK_CONFIG") or "").strip() or _env_name()
    if not isinstance(target, str):
        return target

    name = _ENV_ALIASES.get(target.lower(), target.lower())
    if name in CONFIG_BY_NAME:
        return CONFIG_BY_NAME[name]

    module_name, _, cls_name = target.rpartition(".")
    try:
        return getattr(import_module(module_name), cls_name)
    except (ImportError, AttributeError, ValueError) as exc:
        raise RuntimeError(f"Invalid FLASK_CONFIG {target!r}: {exc}") from exc


# -----------------------------------------------------------------------------
# Logging with request_id
# -----------------------------------------------------------------------------
class _RequestIDFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        try:
            record.request_id = getattr(g, "request_id", "-")
        except RuntimeError:
            # no app context (CLI, startup)
            record.request_id = "-"
        return True


def _configure_logging(app: Flask) -> None:
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    for h in root.handlers:
        if not any(isinstance(f, _RequestIDFilter) for f in h.filters):
            h.addFilter(_RequestIDFilter())

    root.setLevel(str(app.config.get("LOG_LEVEL") or "INFO").upper())
    logging.getLogger("werkzeug").setLevel(str(app.config.get("WERKZEUG_LOG_LEVEL") or "WARNING").upper())


# -----------------------------------------------------------------------------
# Integrations
# -----------------------------------------------------------------------------
def _init_sentry(app: Flask) -> None:
    dsn = (app.config.get("SENTRY_DSN") or "").strip()
    if not dsn:
        return
    sentry_sdk.init(
        dsn=dsn,
        integrations=[
            FlaskIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0")),
        send_default_pii=False,
        environment=app.config["ENV"],
    )
    app.logger.info("Sentry initialized")


def _cors_origins(app: Flask) -> Union[str, list]:
    raw = str(app.config.get("CORS_ORIGINS") or "*").strip()
    if raw == "*":
        return "*"
    return [o.strip() for o in raw.split(",") if o.strip()]


def _create_sqlite_tables(app: Flask) -> None:
    uri = str(app.config.get("SQLALCHEMY_DATABASE_URI") or "")
    if not uri.startswith("sqlite") or not app.config.get("AUTO_CREATE_SQLITE", True):
        return

    import foundation.models  # noqa: F401  (tables must be on the metadata)

    with app.app_context():
        db.create_all()


# -----------------------------------------------------------------------------
# Request hooks + JSON errors
# -----------------------------------------------------------------------------
def _error_body(message: str, status: int, **detail: Any) -> Dict[str, Any]:
    return {
        "ok": False,
        "message": message,
        "error": {"code": status, "message": message, "request_id": getattr(g, "request_id", "-"), **detail},
    }


def _wants_json() -> bool:
    if request.path.startswith(("/api/", "/health", "/ready", "/live")):
        return True
    return request.accept_mimetypes.best == "application/json"


def _register_request_hooks(app: Flask) -> None:
    @app.before_request
    def _stamp_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid4().hex
        g.started = time.perf_counter()

    @app.after_request
    def _timing_headers(resp):
        resp.headers["X-Request-ID"] = getattr(g, "request_id", "-")
        if hasattr(g, "started"):
            resp.headers["X-Response-Time-ms"] = str(int((time.perf_counter() - g.started) * 1000))
        return resp

    @app.errorhandler(ContentError)
    def _content_error(err: ContentError):
        if err.status_code >= 500:
            app.logger.error("%s: %s %s", type(err).__name__, err.message, err.detail)
        return jsonify(_error_body(err.message, err.status_code, **err.detail)), err.status_code

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        if not _wants_json():
            return err
        code = err.code or 500
        return jsonify(_error_body(err.description or err.name, code)), code

    @app.errorhandler(Exception)
    def _unhandled(err: Exception):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify(_error_body("Internal Server Error", 500)), 500


# -----------------------------------------------------------------------------
# Blueprints
# -----------------------------------------------------------------------------
def _disabled_blueprints() -> set:
    return {p.strip().lower() for p in os.getenv("DISABLE_BPS", "").split(",") if p.strip()}


def _register_blueprints(app: Flask) -> None:
    disabled = _disabled_blueprints()
    for dotted, prefix, required in BLUEPRINTS:
        short = dotted.rsplit(".", 1)[-1]
        if short in disabled and not required:
            app.logger.info("Blueprint disabled: %s", dotted)
            continue

        bp = getattr(import_module(dotted), "bp", None)
        if not isinstance(bp, Blueprint):
            if required:
                raise RuntimeError(f"❌ {dotted} must define `bp = Blueprint(...)`")
            app.logger.warning("No blueprint in %s; skipping", dotted)
            continue

        app.register_blueprint(bp, url_prefix=prefix)
        app.logger.debug("Registered blueprint: %-10s → %s", bp.name, prefix or "/")


# -----------------------------------------------------------------------------
# App Factory
# -----------------------------------------------------------------------------
def create_app(config_class: Optional[ConfigLike] = None, *, admin_guard: Optional[AdminKeyGuard] = None) -> Flask:
    """
    Build the app. ``admin_guard`` replaces the guard built from
    ADMIN_API_KEY (tests inject one; so can a host app with its own secret
    source).
    """
    app = Flask(__name__, static_folder=None)

    cfg = _resolve_config(config_class)
    app.config.from_object(cfg)
    if callable(getattr(cfg, "init_app", None)):
        cfg.init_app(app)

    env = str(app.config.get("ENV") or "").strip().lower()
    app.config["ENV"] = env if env and env != "base" else _env_name()
    app.url_map.strict_slashes = False

    if app.config.get("TRUST_PROXY"):
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=1)
        app.config["PREFERRED_URL_SCHEME"] = "https"

    _configure_logging(app)
    _init_sentry(app)

    init_all_extensions(app, cors_origins=_cors_origins(app))
    _create_sqlite_tables(app)

    guard = admin_guard or AdminKeyGuard.from_config(app.config)
    app.extensions[EXTENSION_KEY] = guard
    if not guard.configured:
        app.logger.warning("ADMIN_API_KEY is empty; every admin request will be rejected")

    _register_request_hooks(app)
    _register_blueprints(app)

    from foundation.cli import content_cli

    app.cli.add_command(content_cli)

    app.logger.info("Foundation content API ready (ENV=%s, DEBUG=%s)", app.config["ENV"], app.debug)
    return app


__all__ = ["create_app"]
