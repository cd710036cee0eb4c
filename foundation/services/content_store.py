"""
Content block repository + read paths.

Every slug that enters or is looked up here goes through ``normalize_slug``
first, so ``"  Home.Hero "`` and ``"home.hero"`` address the same block.
Writes commit through ``in_transaction`` and surface failures as
ConflictError / StoreError; reads never raise for a miss.
"""

from __future__ import annotations

import logging
import re
from hashlib import sha1
from typing import Any, Dict, Iterable, List, Optional

from flask import current_app, has_app_context
from sqlalchemy import case, or_, select

from foundation.errors import ConflictError, NotFoundError, ValidationError
from foundation.extensions import db, in_transaction
from foundation.helpers.slugs import normalize_slug
from foundation.models import ContentBlock, ContentStatus

log = logging.getLogger(__name__)

MIN_SLUG_LEN = 2
MIN_SECTION_LEN = 2
HEAD_SNIPPET_LEN = 160
ELLIPSIS = "…"

_WRITABLE = ("slug", "section", "content", "status", "published_at")


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _cfg_int(name: str, default: int) -> int:
    if not has_app_context():
        return default
    try:
        return int(current_app.config.get(name, default))
    except (TypeError, ValueError):
        return default


def content_hash(content: Optional[str]) -> str:
    return sha1((content or "").encode("utf-8")).hexdigest()[:12]


def field_errors(slug: Optional[str], section: Optional[str]) -> Dict[str, List[str]]:
    """Length checks shared by the repository and the request parser."""
    errors: Dict[str, List[str]] = {}
    if len(normalize_slug(slug)) < MIN_SLUG_LEN:
        errors["slug"] = [f"String must contain at least {MIN_SLUG_LEN} character(s)"]
    if len((section or "").strip()) < MIN_SECTION_LEN:
        errors["section"] = [f"String must contain at least {MIN_SECTION_LEN} character(s)"]
    return errors


def _require_valid(slug: Optional[str], section: Optional[str]) -> None:
    errors = field_errors(slug, section)
    if errors:
        raise ValidationError(errors)


def _assign(block: ContentBlock, fields: Dict[str, Any]) -> None:
    for name in _WRITABLE:
        if name in fields:
            setattr(block, name, fields[name])


def _relevance_order():
    """PUBLISHED first, then newest publish, then newest edit."""
    return (
        case((ContentBlock.status == ContentStatus.PUBLISHED, 0), else_=1),
        ContentBlock.published_at.desc().nulls_last(),
        ContentBlock.last_updated.desc(),
    )


def _find_exact(slug: str) -> Optional[ContentBlock]:
    stmt = select(ContentBlock).where(ContentBlock.slug == slug).limit(1)
    return db.session.execute(stmt).scalars().first()


# ─────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────
def upsert_by_slug(slug: str, fields: Dict[str, Any]) -> ContentBlock:
    """
    Update the block holding exactly ``normalize_slug(slug)`` or insert a new
    one. An insert that loses a unique-slug race is retried once as an update.
    """
    key = normalize_slug(slug)
    section = fields.get("section")
    if section is not None:
        section = str(section).strip()
    _require_valid(key, section)
    values = dict(fields, slug=key, section=section)

    def _write() -> ContentBlock:
        block = _find_exact(key)
        if block is None:
            block = ContentBlock(**{k: values[k] for k in _WRITABLE if k in values})
            db.session.add(block)
        else:
            _assign(block, values)
        db.session.flush()
        return block

    try:
        block = in_transaction("content:upsert", _write, slug=key)
    except ConflictError:
        log.info("content:upsert slug=%r lost insert race; retrying as update", key)
        block = in_transaction("content:upsert", _write, slug=key)

    log.info(
        "content:upsert slug=%r id=%s status=%s hash=%s",
        block.slug,
        block.id,
        block.status.value,
        content_hash(block.content),
    )
    return block


def update_by_id(block_id: str, fields: Dict[str, Any]) -> ContentBlock:
    block = db.session.get(ContentBlock, block_id) if block_id else None
    if block is None:
        raise NotFoundError(f"No content block with id {block_id!r}", id=block_id)

    values = dict(fields)
    if "slug" in values:
        values["slug"] = normalize_slug(values["slug"])
    if "section" in values and values["section"] is not None:
        values["section"] = str(values["section"]).strip()
    if "slug" in values or "section" in values:
        _require_valid(values.get("slug", block.slug), values.get("section", block.section))

    def _write() -> ContentBlock:
        _assign(block, values)
        db.session.flush()
        return block

    in_transaction("content:update", _write, id=block_id, slug=values.get("slug", block.slug))
    log.info(
        "content:update id=%s slug=%r status=%s hash=%s",
        block.id,
        block.slug,
        block.status.value,
        content_hash(block.content),
    )
    return block


# ─────────────────────────────────────────────────────────────
# Reads
# ─────────────────────────────────────────────────────────────
def get_by_id(block_id: str) -> ContentBlock:
    block = db.session.get(ContentBlock, block_id) if block_id else None
    if block is None:
        raise NotFoundError(f"No content block with id {block_id!r}", id=block_id)
    return block


def get_by_slug(
    slug: str, status: Optional[ContentStatus] = ContentStatus.PUBLISHED
) -> Optional[ContentBlock]:
    """Most relevant block for ``slug``; ``status=None`` matches any status."""
    key = normalize_slug(slug)
    if not key:
        return None
    stmt = select(ContentBlock).where(ContentBlock.slug == key)
    if status is not None:
        stmt = stmt.where(ContentBlock.status == status)
    stmt = stmt.order_by(*_relevance_order()).limit(1)
    return db.session.execute(stmt).scalars().first()


def get_many_by_slugs(slugs: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """
    ``{slug: {"content", "updatedAt"}}`` for the newest published block per
    requested slug. Slugs with no published match are left out.
    """
    keys = []
    for s in slugs:
        k = normalize_slug(s)
        if k and k not in keys:
            keys.append(k)
    if not keys:
        return {}

    stmt = (
        select(ContentBlock)
        .where(ContentBlock.slug.in_(keys), ContentBlock.status == ContentStatus.PUBLISHED)
        .order_by(ContentBlock.published_at.desc().nulls_last(), ContentBlock.last_updated.desc())
    )
    out: Dict[str, Dict[str, Any]] = {}
    for block in db.session.execute(stmt).scalars():
        if block.slug in out:
            continue
        data = block.to_dict()
        out[block.slug] = {
            "content": data["content"],
            "updatedAt": data["publishedAt"] or data["lastUpdated"],
        }
    return out


def make_snippet(text: Optional[str], query: str, span: Optional[int] = None) -> str:
    """
    Excerpt of ``text`` centered on the first (case-insensitive) match of
    ``query``, with ellipsis markers where the text was cut.
    """
    text = text or ""
    span = _cfg_int("CONTENT_SNIPPET_SPAN", 80) if span is None else span
    match = re.search(re.escape(query), text, re.IGNORECASE) if query else None
    if match is None:
        head = text[:HEAD_SNIPPET_LEN]
        return head + (ELLIPSIS if len(text) > HEAD_SNIPPET_LEN else "")

    start = max(0, match.start() - span)
    end = min(len(text), match.end() + span)
    return (ELLIPSIS if start > 0 else "") + text[start:end] + (ELLIPSIS if end < len(text) else "")


def search(query: Optional[str], limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Substring search over section, slug and content, newest first."""
    q = (query or "").strip()
    if not q:
        return []
    limit = _cfg_int("CONTENT_SEARCH_LIMIT", 100) if limit is None else limit

    stmt = (
        select(ContentBlock)
        .where(
            or_(
                ContentBlock.section.contains(q, autoescape=True),
                ContentBlock.slug.contains(q, autoescape=True),
                ContentBlock.content.contains(q, autoescape=True),
            )
        )
        .order_by(ContentBlock.published_at.desc().nulls_last(), ContentBlock.last_updated.desc())
        .limit(max(1, int(limit)))
    )
    items = []
    for block in db.session.execute(stmt).scalars():
        data = block.to_dict()
        data["snippet"] = make_snippet(block.content, q)
        items.append(data)
    return items


def list_published() -> List[ContentBlock]:
    stmt = (
        select(ContentBlock)
        .where(ContentBlock.status == ContentStatus.PUBLISHED)
        .order_by(
            ContentBlock.section.asc(),
            ContentBlock.published_at.desc().nulls_last(),
            ContentBlock.last_updated.desc(),
        )
    )
    return list(db.session.execute(stmt).scalars())


def list_all(status: Optional[ContentStatus] = None) -> List[ContentBlock]:
    stmt = select(ContentBlock)
    if status is not None:
        stmt = stmt.where(ContentBlock.status == status)
    stmt = stmt.order_by(ContentBlock.last_updated.desc())
    return list(db.session.execute(stmt).scalars())
