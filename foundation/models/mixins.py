# foundation/models/mixins.py
"""Shared SQLAlchemy mixins for timestamps."""

from datetime import datetime, timezone

from sqlalchemy import event

from foundation.extensions import db


def utcnow() -> datetime:
    """Naive UTC timestamp (what the DateTime columns store)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso_utc(value):
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).isoformat()


class TimestampMixin:
    """
    created_at plus last_updated, stamped on insert and on every update.

    last_updated orders the admin listings and breaks ties between blocks
    that share a slug key during `fix-slugs`, so it must move on each write.
    """

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    last_updated = db.Column(
        db.DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
        index=True,
    )

    @staticmethod
    def _set_last_updated(mapper, connection, target):
        target.last_updated = utcnow()

    @classmethod
    def __declare_last__(cls):
        event.listen(cls, "before_update", cls._set_last_updated)
