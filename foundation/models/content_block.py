from __future__ import annotations

# -----------------------------------------------------------------------------
# ContentBlock: one CMS-managed text/JSON payload addressed by a slug.
# - slug is unique at rest once canonicalized (see slug_canonicalizer)
# - content is opaque: plain text or a serialized rich-text / JSON document
# - status DRAFT | PUBLISHED | ARCHIVED, publishedAt tracks the live version
# -----------------------------------------------------------------------------
import enum
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from sqlalchemy import Index
from sqlalchemy.orm import Mapped, mapped_column

from foundation.extensions import db

from .mixins import TimestampMixin, iso_utc


class ContentStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"

    @classmethod
    def parse(cls, raw: Any) -> "ContentStatus":
        if isinstance(raw, cls):
            return raw
        return cls(str(raw).strip().upper())


def _new_id() -> str:
    return uuid4().hex


class ContentBlock(db.Model, TimestampMixin):
    __tablename__ = "content_blocks"
    __table_args__ = (
        Index("ix_content_blocks_status_section", "status", "section"),
        Index("ix_content_blocks_status_published", "status", "published_at"),
    )

    id: Mapped[str] = mapped_column(db.String(32), primary_key=True, default=_new_id)
    slug: Mapped[str] = mapped_column(
        db.String(200),
        unique=True,
        index=True,
        nullable=False,
        doc="Normalized (trimmed, lowercased) address of the block",
    )
    section: Mapped[str] = mapped_column(
        db.String(120),
        nullable=False,
        doc="Descriptive grouping label (home, about, footer...)",
    )
    content: Mapped[str] = mapped_column(db.Text, nullable=False, default="")
    status: Mapped[ContentStatus] = mapped_column(
        db.Enum(ContentStatus, name="content_status"),
        nullable=False,
        default=ContentStatus.DRAFT,
        index=True,
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(
        db.DateTime,
        nullable=True,
        doc="Set by publish; cleared by unpublish.",
    )

    @property
    def is_published(self) -> bool:
        return self.status == ContentStatus.PUBLISHED

    # ==========================================================
    # Serialization (wire shape is camelCase)
    # ==========================================================
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "section": self.section,
            "content": self.content or "",
            "status": self.status.value if self.status else None,
            "publishedAt": iso_utc(self.published_at),
            "lastUpdated": iso_utc(self.last_updated),
            "createdAt": iso_utc(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<ContentBlock {self.slug!r} {self.status.value if self.status else '?'}>"
