from foundation.extensions import db
from foundation.models import ContentBlock


def reload_block(block_id: str) -> ContentBlock:
    """Fetch a fresh copy, discarding whatever the session has cached."""
    db.session.expire_all()
    return db.session.get(ContentBlock, block_id)


def all_slugs():
    db.session.expire_all()
    return sorted(b.slug for b in db.session.query(ContentBlock).all())
