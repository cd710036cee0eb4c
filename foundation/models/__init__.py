from __future__ import annotations

from foundation.extensions import db
from foundation.models.content_block import ContentBlock, ContentStatus
from foundation.models.mixins import TimestampMixin, iso_utc, utcnow

__all__ = ["db", "ContentBlock", "ContentStatus", "TimestampMixin", "iso_utc", "utcnow"]
