import logging
from typing import Any, Callable

from flask_compress import Compress
from flask_cors import CORS
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from foundation.errors import ConflictError, StoreError

log = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Core singletons
# ─────────────────────────────────────────────────────────────
db = SQLAlchemy()
migrate = Migrate()
cors = CORS()
compress = Compress()


# ─────────────────────────────────────────────────────────────
# Safe DB helpers
# ─────────────────────────────────────────────────────────────
def safe_commit() -> bool:
    try:
        db.session.commit()
        return True
    except Exception as e:
        log.error("DB commit failed: %s", e, exc_info=True)
        db.session.rollback()
        return False


def _raise_store_failure(op: str, sess: Any, exc: SQLAlchemyError, context: dict) -> None:
    sess.rollback()
    if isinstance(exc, IntegrityError):
        log.warning("%s: integrity error %s (%s)", op, _ctx(context), exc.orig)
        raise ConflictError(f"{op}: unique constraint violated", **context) from exc
    log.exception("%s: store error %s", op, _ctx(context))
    raise StoreError(f"{op}: database error") from exc


def tx_commit(op: str, *, session: Any = None, **context: Any) -> None:
    """
    Commit ``session`` (default ``db.session``) or translate the failure into
    the content error taxonomy. The session is always rolled back on failure.
    """
    sess = db.session if session is None else session
    try:
        sess.commit()
    except SQLAlchemyError as e:
        _raise_store_failure(op, sess, e, context)


def in_transaction(op: str, fn: Callable[[], Any], *, session: Any = None, **context: Any) -> Any:
    """
    Run ``fn`` and commit once. Any exception raised by ``fn`` or the commit
    rolls back every change made inside it.
    """
    sess = db.session if session is None else session
    try:
        result = fn()
    except SQLAlchemyError as e:
        _raise_store_failure(op, sess, e, context)
    except Exception:
        sess.rollback()
        raise
    tx_commit(op, session=sess, **context)
    return result


def _ctx(context: dict) -> str:
    return " ".join(f"{k}={v!r}" for k, v in context.items()) or "-"


# ─────────────────────────────────────────────────────────────
# Init all extensions
# ─────────────────────────────────────────────────────────────
def init_all_extensions(app: Any, *, cors_origins: Any = "*") -> None:
    db.init_app(app)
    migrate.init_app(app, db, compare_type=True, render_as_batch=True)
    compress.init_app(app)

    if cors_origins is not None:
        # Browser rule: cannot use credentials with wildcard origin
        supports_credentials = bool(app.config.get("CORS_SUPPORTS_CREDENTIALS", False))
        if cors_origins == "*":
            supports_credentials = False

        cors.init_app(
            app,
            supports_credentials=supports_credentials,
            resources={r"/api/*": {"origins": cors_origins}},
            expose_headers=["X-Request-ID"],
            allow_headers=[
                "Content-Type",
                "Authorization",
                str(app.config.get("ADMIN_HEADER") or "X-Admin-Key"),
                "X-Request-ID",
            ],
            methods=["GET", "POST", "PATCH", "OPTIONS"],
        )


__all__ = [
    "db",
    "migrate",
    "cors",
    "compress",
    "safe_commit",
    "tx_commit",
    "in_transaction",
    "init_all_extensions",
]
