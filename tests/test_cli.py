from datetime import datetime

from foundation.models import ContentBlock, ContentStatus
from foundation.extensions import db

from .helpers import all_slugs


def _invoke(app, *args):
    return app.test_cli_runner().invoke(args=["content", *args])


def test_list(app, make_block):
    make_block("home.hero", section="home")
    make_block("about.story", section="about", status=ContentStatus.PUBLISHED, published_at=datetime(2024, 1, 1))

    result = _invoke(app, "list", "--status", "published")

    assert result.exit_code == 0
    assert "about.story" in result.output
    assert "home.hero" not in result.output
    assert "1 block(s)" in result.output


def test_fix_slugs_dry_run_then_apply(app, make_block):
    make_block("Home.Hero", last_updated=datetime(2024, 2, 1))
    make_block("home.hero ", last_updated=datetime(2024, 1, 1))

    preview = _invoke(app, "fix-slugs", "--dry-run")
    assert preview.exit_code == 0
    assert "would change 2" in preview.output
    assert "home.hero" not in all_slugs()

    applied = _invoke(app, "fix-slugs")
    assert applied.exit_code == 0
    assert "canonicalized" in applied.output
    assert "home.hero" in all_slugs()


def test_publish_and_unpublish(app, make_block):
    block = make_block("home.hero")

    assert _invoke(app, "publish", block.id).exit_code == 0
    db.session.expire_all()
    assert db.session.get(ContentBlock, block.id).status is ContentStatus.PUBLISHED

    assert _invoke(app, "unpublish", block.id).exit_code == 0
    db.session.expire_all()
    assert db.session.get(ContentBlock, block.id).published_at is None


def test_publish_unknown_id(app):
    result = _invoke(app, "publish", "missing")
    assert result.exit_code != 0
    assert "No content block" in result.output


def test_seed_demo(app):
    result = _invoke(app, "seed-demo", "--count", "3", "--publish")

    assert result.exit_code == 0, result.output
    blocks = db.session.query(ContentBlock).all()
    assert len(blocks) == 3
    assert all(b.status is ContentStatus.PUBLISHED and b.published_at for b in blocks)


def test_seed_demo_clear_and_extra_blocks(app, make_block):
    make_block("stale.block")

    result = _invoke(app, "seed-demo", "--clear", "--count", "10")

    assert result.exit_code == 0, result.output
    slugs = all_slugs()
    assert "stale.block" not in slugs
    assert len(slugs) == 10
    assert "home.hero" in slugs


def test_seed_demo_clear_refused_in_production(app, make_block):
    make_block("kept.block")
    app.config["ENV"] = "production"

    result = _invoke(app, "seed-demo", "--clear", "--count", "1")

    assert result.exit_code != 0
    assert "disabled in production" in result.output
    assert all_slugs() == ["kept.block"]
