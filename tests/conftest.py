"""Test configuration."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

import pytest

from foundation import create_app
from foundation.config import TestingConfig
from foundation.extensions import db
from foundation.models import ContentBlock, ContentStatus, utcnow
from foundation.security import AdminKeyGuard

ADMIN_KEY = "s3cret-admin-key"


@pytest.fixture
def app(tmp_path):
    cfg = type(
        "FileBackedTestingConfig",
        (TestingConfig,),
        {"SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'content.db'}"},
    )
    flask_app = create_app(cfg, admin_guard=AdminKeyGuard(ADMIN_KEY))

    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers():
    return {"X-Admin-Key": ADMIN_KEY}


@pytest.fixture
def make_block(app):
    """
    Insert a row as-is, bypassing normalization and validation, so tests can
    reproduce legacy slug drift the write paths would never create.
    """

    def _make(
        slug: str,
        *,
        section: str = "home",
        content: str = "",
        status: ContentStatus = ContentStatus.DRAFT,
        published_at: Optional[datetime] = None,
        last_updated: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
        id: Optional[str] = None,
    ) -> ContentBlock:
        now = utcnow()
        block = ContentBlock(
            id=id or uuid4().hex,
            slug=slug,
            section=section,
            content=content,
            status=status,
            published_at=published_at,
            created_at=created_at or now,
            last_updated=last_updated or now,
        )
        db.session.add(block)
        db.session.commit()
        return block

    return _make
