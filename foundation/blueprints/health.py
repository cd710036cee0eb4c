"""
Health endpoints for load balancers and uptime checks.

  /healthz  cheap liveness ping (no I/O)
  /health   full report: database, admin key, slug drift
  /ready    same report, 503 when any part fails
  /live     process uptime
"""

from __future__ import annotations

import os
import socket
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict

from flask import Blueprint, current_app, jsonify
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError

from foundation.extensions import db
from foundation.models import ContentBlock, ContentStatus
from foundation.security import admin_guard

bp = Blueprint("health", __name__)

BOOTED_AT = time.time()

Part = Dict[str, Any]


def _strict() -> bool:
    return bool(current_app.config.get("STRICT_HEALTH", False))


def _soft_failure() -> str:
    return "fail" if _strict() else "degraded"


def _rollup(parts: Dict[str, Part]) -> str:
    worst = "ok"
    for part in parts.values():
        state = part.get("status", "ok")
        if state == "fail":
            return "fail"
        if state == "degraded":
            worst = "degraded"
    return worst


# ----------------------------
# Parts
# ----------------------------
def _database() -> Part:
    started = time.perf_counter()
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.warning("health: database unreachable: %s", e)
        return {"status": "fail", "error": type(e).__name__}
    return {"status": "ok", "ms": round((time.perf_counter() - started) * 1000, 2)}


def _admin_key() -> Part:
    if admin_guard().configured:
        return {"status": "ok", "header": admin_guard().header}
    return {"status": _soft_failure(), "reason": "admin-key-missing"}


def _content() -> Part:
    """Block counts per status, plus slugs that still need `flask content fix-slugs`."""
    try:
        counts = dict(
            db.session.execute(
                select(ContentBlock.status, func.count()).group_by(ContentBlock.status)
            ).all()
        )
        drifted = db.session.execute(
            select(func.count()).where(ContentBlock.slug != func.lower(func.trim(ContentBlock.slug)))
        ).scalar_one()
    except SQLAlchemyError as e:
        db.session.rollback()
        return {"status": "fail", "error": type(e).__name__}

    part: Part = {
        "status": "ok",
        "blocks": {s.value: int(counts.get(s, 0)) for s in ContentStatus},
        "unnormalized_slugs": int(drifted),
    }
    if drifted:
        part.update(status="degraded", reason="slug-drift")
    return part


CHECKS: Dict[str, Callable[[], Part]] = {
    "database": _database,
    "admin": _admin_key,
    "content": _content,
}


def _report() -> Dict[str, Any]:
    parts = {name: check() for name, check in CHECKS.items()}
    return {
        "status": _rollup(parts),
        "env": current_app.config.get("ENV", "unknown"),
        "version": os.getenv("BUILD_VERSION") or os.getenv("GIT_SHA", "")[:12] or "dev",
        "host": socket.gethostname(),
        "uptime_s": int(time.time() - BOOTED_AT),
        "checked_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        "strict": _strict(),
        "parts": parts,
    }


# ----------------------------
# Routes
# ----------------------------
@bp.get("/healthz")
def healthz():
    return jsonify({"ok": True, "status": "ok", "env": current_app.config.get("ENV", "unknown")})


@bp.get("/health")
def health():
    return jsonify(_report())


@bp.get("/ready")
def ready():
    report = _report()
    return jsonify(report), (503 if report["status"] == "fail" else 200)


@bp.get("/live")
def live():
    return jsonify({"status": "ok", "uptime_s": int(time.time() - BOOTED_AT)})
