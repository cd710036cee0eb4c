# foundation/security.py
# ─────────────────────────────────────────────────────────────────────────────
# Admin shared-secret guard
# ─────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import hmac
import logging
from functools import wraps
from typing import Any, Optional

from flask import current_app, request
from werkzeug.exceptions import Unauthorized

log = logging.getLogger(__name__)

EXTENSION_KEY = "admin_guard"
DEFAULT_HEADER = "X-Admin-Key"


class AdminKeyGuard:
    """
    Holds the admin secret and answers "is this caller an admin?".

    Created once per app by the factory (or injected by the caller) and
    stored in ``app.extensions["admin_guard"]``.
    """

    def __init__(self, secret: Optional[str], header: str = DEFAULT_HEADER) -> None:
        self._secret = (secret or "").strip()
        self.header = header or DEFAULT_HEADER

    @classmethod
    def from_config(cls, config: Any) -> "AdminKeyGuard":
        return cls(config.get("ADMIN_API_KEY"), config.get("ADMIN_HEADER") or DEFAULT_HEADER)

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def is_admin(self, presented: Optional[str]) -> bool:
        if not self._secret or presented is None:
            return False
        return hmac.compare_digest(presented.encode("utf-8"), self._secret.encode("utf-8"))

    def check_request(self) -> bool:
        return self.is_admin(request.headers.get(self.header))

    def __repr__(self) -> str:  # pragma: no cover
        return f"<AdminKeyGuard header={self.header!r} configured={self.configured}>"


def admin_guard() -> AdminKeyGuard:
    guard = current_app.extensions.get(EXTENSION_KEY)
    if guard is None:
        raise RuntimeError("AdminKeyGuard not installed; create the app through create_app()")
    return guard


def require_admin(fn):
    """
    Decorator for admin-only views.
    Example:
        @bp.get("/admin/list")
        @require_admin
        def admin_list(): ...
    """

    @wraps(fn)
    def wrapped(*args, **kwargs):
        if not admin_guard().check_request():
            log.warning("admin: rejected %s %s", request.method, request.path)
            raise Unauthorized("Unauthorized")
        return fn(*args, **kwargs)

    return wrapped


__all__ = ["AdminKeyGuard", "admin_guard", "require_admin", "EXTENSION_KEY"]
