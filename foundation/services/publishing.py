"""
Publish lifecycle for content blocks.

    DRAFT ──publish──▶ PUBLISHED ──unpublish──▶ DRAFT
      ▲                                          │
      └──────────────── save(status) ◀───────────┘

``publish`` and ``unpublish`` are allowed from any state. ``save`` publishes
when ``publishNow`` is set or the requested status is PUBLISHED; otherwise it
stores the requested status (DRAFT by default). ARCHIVED is storable through
``save`` but has no dedicated transition.

publishedAt policy for non-published saves is controlled by
CONTENT_DRAFT_KEEPS_PUBLISHED_AT: off (default) clears it, on keeps the
previous publish timestamp.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from flask import current_app, has_app_context

from foundation.errors import ValidationError
from foundation.models import ContentBlock, ContentStatus, utcnow
from foundation.services import content_store

log = logging.getLogger(__name__)

_STATUS_CHOICES = ", ".join(s.value for s in ContentStatus)


# ----------------------------
# Normalized request model
# ----------------------------
@dataclass(frozen=True)
class ContentDraft:
    slug: str
    section: str
    content: str = ""
    status: ContentStatus = ContentStatus.DRAFT
    publish_now: bool = False
    id: Optional[str] = None

    @property
    def will_publish(self) -> bool:
        return self.publish_now or self.status == ContentStatus.PUBLISHED

    @property
    def target_status(self) -> ContentStatus:
        return ContentStatus.PUBLISHED if self.will_publish else self.status

    @classmethod
    def from_payload(cls, data: Any) -> "ContentDraft":
        if not isinstance(data, dict):
            raise ValidationError({"body": ["Expected a JSON object"]})

        errors: Dict[str, List[str]] = {}

        raw_id = data.get("id")
        block_id: Optional[str] = None
        if raw_id is not None:
            if not isinstance(raw_id, str):
                errors["id"] = ["Expected string"]
            else:
                block_id = raw_id.strip() or None

        slug = data.get("slug")
        section = data.get("section")
        for name, value in (("slug", slug), ("section", section)):
            if not isinstance(value, str):
                errors[name] = ["Required" if value is None else "Expected string"]
        length_errors = content_store.field_errors(
            slug if isinstance(slug, str) else "",
            section if isinstance(section, str) else "",
        )
        for name, msgs in length_errors.items():
            errors.setdefault(name, msgs)

        content = data.get("content", "")
        if content is None:
            content = ""
        if not isinstance(content, str):
            errors["content"] = ["Expected string"]

        status = ContentStatus.DRAFT
        raw_status = data.get("status")
        if raw_status is not None:
            try:
                status = ContentStatus.parse(raw_status)
            except ValueError:
                errors["status"] = [f"Expected one of: {_STATUS_CHOICES}"]

        publish_now = data.get("publishNow", data.get("publish_now"))
        if publish_now is None:
            publish_now = False
        elif not isinstance(publish_now, bool):
            errors["publishNow"] = ["Expected boolean"]

        if errors:
            log.warning("content:save BAD_REQUEST fields=%s", sorted(errors))
            raise ValidationError(errors)

        return cls(
            slug=slug,
            section=section.strip(),
            content=content,
            status=status,
            publish_now=bool(publish_now),
            id=block_id,
        )


# ----------------------------
# Transitions
# ----------------------------
def _draft_keeps_published_at() -> bool:
    if not has_app_context():
        return False
    return bool(current_app.config.get("CONTENT_DRAFT_KEEPS_PUBLISHED_AT", False))


def resolve_status(draft: ContentDraft) -> ContentStatus:
    return draft.target_status


def publication_fields(status: ContentStatus, *, keep_published_at: bool = False) -> Dict[str, Any]:
    """publishedAt bookkeeping that goes with moving a block to ``status``."""
    if status == ContentStatus.PUBLISHED:
        return {"status": status, "published_at": utcnow()}
    if keep_published_at:
        return {"status": status}
    return {"status": status, "published_at": None}


def save(draft: ContentDraft, *, keep_published_at: Optional[bool] = None) -> ContentBlock:
    """Update by id when the draft carries one, otherwise upsert by slug."""
    if keep_published_at is None:
        keep_published_at = _draft_keeps_published_at()

    fields: Dict[str, Any] = {"section": draft.section, "content": draft.content}
    fields.update(publication_fields(resolve_status(draft), keep_published_at=keep_published_at))

    if draft.id:
        return content_store.update_by_id(draft.id, dict(fields, slug=draft.slug))
    return content_store.upsert_by_slug(draft.slug, fields)


def publish(block_id: str) -> ContentBlock:
    block = content_store.update_by_id(block_id, publication_fields(ContentStatus.PUBLISHED))
    log.info("content:publish id=%s slug=%r", block.id, block.slug)
    return block


def unpublish(block_id: str) -> ContentBlock:
    block = content_store.update_by_id(block_id, publication_fields(ContentStatus.DRAFT))
    log.info("content:unpublish id=%s slug=%r", block.id, block.slug)
    return block
