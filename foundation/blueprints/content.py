"""
Content API Blueprint

Mount: /api/content  (register blueprint with url_prefix="/api/content")

Public:
  GET   /api/content/                       published blocks
  GET   /api/content/by-slugs?slugs=a,b     {data: {slug: {content, updatedAt}}}
  GET   /api/content/<slug>?t=...           one published block (404 if none)

Admin (X-Admin-Key header):
  GET   /api/content/admin/list             every block, newest edit first
  GET   /api/content/admin/search?q=...     substring search with snippets
  GET   /api/content/admin/get/<id>         one block, any status
  POST  /api/content/admin/content          save (update by id or upsert by slug)
  PATCH /api/content/admin/content/<id>/publish
  PATCH /api/content/admin/content/<id>/unpublish
  POST  /api/content/admin/fix-slugs[?dry_run=1]

Contracts:
- slugs are normalized (trim + lowercase) on every read and write
- API-style JSON: never cached
- errors: {ok: false, message, error: {code, message, ...}}
"""

from __future__ import annotations

from typing import Any, Dict, Optional, cast

from flask import Blueprint, current_app, g, jsonify, request
from werkzeug.exceptions import Unauthorized

from foundation.errors import ContentError
from foundation.helpers.slugs import normalize_slug, parse_slug_list
from foundation.models import ContentStatus
from foundation.security import require_admin
from foundation.services import content_store, publishing
from foundation.services.slug_canonicalizer import canonicalize_slugs

bp = Blueprint("content", __name__)

_TRUTHY = {"1", "true", "yes", "on", "y"}


# ----------------------------
# JSON helpers
# ----------------------------
def _truthy(v: Any) -> bool:
    return str(v or "").strip().lower() in _TRUTHY


def _request_payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return cast(Dict[str, Any], data)
    if request.form:
        return cast(Dict[str, Any], request.form.to_dict(flat=True))
    return {}


def _json_response(payload: Any, status: int = 200):
    resp = jsonify(payload)
    resp.status_code = int(status)
    resp.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, proxy-revalidate"
    resp.headers["Pragma"] = "no-cache"
    resp.headers["Expires"] = "0"
    resp.headers["Surrogate-Control"] = "no-store"
    return resp


def _json_error(message: str, status: int, extra: Optional[Dict[str, Any]] = None):
    body: Dict[str, Any] = {
        "ok": False,
        "message": message,
        "error": {"code": int(status), "message": message, "request_id": getattr(g, "request_id", "-")},
    }
    if extra:
        body["error"].update(extra)
        for k, v in extra.items():
            if k not in body:
                body[k] = v
    return _json_response(body, status)


@bp.errorhandler(ContentError)
def _content_error(err: ContentError):
    if err.status_code >= 500:
        current_app.logger.error("content: %s %s", type(err).__name__, err.message)
    return _json_error(err.message, err.status_code, extra=err.detail or None)


@bp.errorhandler(Unauthorized)
def _unauthorized(_err: Unauthorized):
    return _json_error("Unauthorized", 401)


# ----------------------------
# Public
# ----------------------------
@bp.get("/")
def list_published():
    items = [b.to_dict() for b in content_store.list_published()]
    current_app.logger.info("content:list published_count=%d", len(items))
    return _json_response({"items": items})


@bp.get("/by-slugs")
def by_slugs():
    slugs = parse_slug_list(request.args.get("slugs"))
    if not slugs:
        return _json_response({"data": {}})
    data = content_store.get_many_by_slugs(slugs)
    current_app.logger.info("content:by-slugs requested=%d found=%d", len(slugs), len(data))
    return _json_response({"data": data})


@bp.get("/<slug>")
def get_by_slug(slug: str):
    key = normalize_slug(slug)
    current_app.logger.info("content:get slug=%r t=%s", key, request.args.get("t") or "-")

    block = content_store.get_by_slug(key)
    if block is None:
        current_app.logger.warning("content:get NOT_FOUND slug=%r", key)
        return _json_error("Not found", 404, extra={"slug": key})

    current_app.logger.info(
        "content:get OK slug=%r id=%s hash=%s",
        key,
        block.id,
        content_store.content_hash(block.content),
    )
    return _json_response(block.to_dict())


# ----------------------------
# Admin
# ----------------------------
@bp.get("/admin/list")
@require_admin
def admin_list():
    raw = (request.args.get("status") or "").strip()
    status = None
    if raw:
        try:
            status = ContentStatus.parse(raw)
        except ValueError:
            return _json_error(f"Unknown status {raw!r}", 400, extra={"fields": {"status": ["Unknown status"]}})
    items = [b.to_dict() for b in content_store.list_all(status)]
    current_app.logger.info("content:admin:list count=%d", len(items))
    return _json_response({"items": items})


@bp.get("/admin/search")
@require_admin
def admin_search():
    q = (request.args.get("q") or "").strip()
    items = content_store.search(q)
    current_app.logger.info("content:admin:search q=%r hits=%d", q, len(items))
    return _json_response({"items": items})


@bp.get("/admin/get/<block_id>")
@require_admin
def admin_get(block_id: str):
    return _json_response(content_store.get_by_id(block_id).to_dict())


@bp.post("/admin/content")
@require_admin
def admin_save():
    draft = publishing.ContentDraft.from_payload(_request_payload())
    block = publishing.save(draft)
    return _json_response(block.to_dict())


@bp.patch("/admin/content/<block_id>/publish")
@require_admin
def admin_publish(block_id: str):
    return _json_response(publishing.publish(block_id).to_dict())


@bp.patch("/admin/content/<block_id>/unpublish")
@require_admin
def admin_unpublish(block_id: str):
    return _json_response(publishing.unpublish(block_id).to_dict())


@bp.post("/admin/fix-slugs")
@require_admin
def admin_fix_slugs():
    report = canonicalize_slugs(dry_run=_truthy(request.args.get("dry_run")))
    return _json_response(report.as_dict())
