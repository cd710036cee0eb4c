from datetime import datetime

import pytest

from foundation.errors import ConflictError, NotFoundError, ValidationError
from foundation.models import ContentStatus
from foundation.services import content_store

from .helpers import all_slugs, reload_block


def test_upsert_normalizes_and_updates_in_place(app):
    first = content_store.upsert_by_slug("  Home.Hero ", {"section": " home ", "content": "hi"})
    assert first.slug == "home.hero"
    assert first.section == "home"

    second = content_store.upsert_by_slug("HOME.HERO", {"section": "home", "content": "updated"})
    assert second.id == first.id
    assert reload_block(first.id).content == "updated"


@pytest.mark.parametrize(
    "slug, section, field",
    [("a", "home", "slug"), ("   ", "home", "slug"), ("home.hero", "h", "section"), ("home.hero", None, "section")],
)
def test_upsert_rejects_short_fields(app, slug, section, field):
    with pytest.raises(ValidationError) as exc:
        content_store.upsert_by_slug(slug, {"section": section})
    assert field in exc.value.fields
    assert exc.value.status_code == 400


def test_update_by_id_unknown(app):
    with pytest.raises(NotFoundError):
        content_store.update_by_id("nope", {"content": "x"})


def test_update_by_id_validates_renames(app, make_block):
    block = make_block("about.story", section="about")
    with pytest.raises(ValidationError):
        content_store.update_by_id(block.id, {"slug": " x "})
    assert reload_block(block.id).slug == "about.story"


def test_get_by_id(app, make_block):
    block = make_block("about.story")
    assert content_store.get_by_id(block.id).slug == "about.story"
    with pytest.raises(NotFoundError):
        content_store.get_by_id("missing")


def test_get_by_slug_is_case_and_whitespace_insensitive(app, make_block):
    block = make_block(
        "home.hero", status=ContentStatus.PUBLISHED, published_at=datetime(2024, 1, 1)
    )
    found = content_store.get_by_slug("  Home.Hero  ")
    assert found is not None
    assert found.id == block.id


def test_get_by_slug_defaults_to_published(app, make_block):
    make_block("home.draft")
    assert content_store.get_by_slug("home.draft") is None
    assert content_store.get_by_slug("home.draft", status=None) is not None
    assert content_store.get_by_slug("") is None


def test_get_many_omits_unpublished_and_missing(app, make_block):
    make_block("a")
    make_block("b", content="bee", status=ContentStatus.PUBLISHED, published_at=datetime(2024, 3, 1))

    data = content_store.get_many_by_slugs(["a", " B ", "c"])

    assert list(data) == ["b"]
    assert data["b"]["content"] == "bee"
    assert data["b"]["updatedAt"].startswith("2024-03-01T00:00:00")


def test_list_published_orders_by_section_then_recency(app, make_block):
    make_block("z.one", section="about", status=ContentStatus.PUBLISHED, published_at=datetime(2024, 1, 1))
    make_block("z.two", section="about", status=ContentStatus.PUBLISHED, published_at=datetime(2024, 5, 1))
    make_block("a.one", section="home", status=ContentStatus.PUBLISHED, published_at=datetime(2024, 9, 1))
    make_block("a.draft", section="aaa")

    assert [b.slug for b in content_store.list_published()] == ["z.two", "z.one", "a.one"]


def test_list_all_filters_by_status(app, make_block):
    make_block("one.draft", last_updated=datetime(2024, 1, 1))
    make_block("two.draft", last_updated=datetime(2024, 2, 1))
    make_block("pub", status=ContentStatus.PUBLISHED, published_at=datetime(2024, 1, 1))

    assert [b.slug for b in content_store.list_all(ContentStatus.DRAFT)] == ["two.draft", "one.draft"]
    assert len(content_store.list_all()) == 3


def test_search_matches_section_slug_and_content(app, make_block):
    make_block("home.hero", section="home", content="Welcome to our foundation")
    make_block("about.story", section="about", content="Founded in 1999")
    make_block("donate.cta", section="donate", content="Give today")

    assert {i["slug"] for i in content_store.search("FOUND")} == {"home.hero", "about.story"}
    assert [i["slug"] for i in content_store.search("donate")] == ["donate.cta"]
    assert content_store.search("   ") == []


def test_search_treats_wildcards_literally(app, make_block):
    make_block("pct.block", content="100% match")
    make_block("plain.block", content="1000 match")
    assert [i["slug"] for i in content_store.search("0%")] == ["pct.block"]


def test_search_respects_limit(app, make_block):
    for n in range(5):
        make_block(f"block.{n}", content="needle")
    assert len(content_store.search("needle", limit=3)) == 3


def test_snippet_centers_on_match():
    text = "x" * 200 + "needle" + "y" * 200
    snippet = content_store.make_snippet(text, "NEEDLE", span=80)

    assert snippet.startswith("…")
    assert snippet.endswith("…")
    assert "needle" in snippet
    assert len(snippet) == 80 + len("needle") + 80 + 2


def test_snippet_without_match_uses_head():
    text = "a" * 200
    assert content_store.make_snippet(text, "zzz") == "a" * 160 + "…"
    assert content_store.make_snippet("short", "zzz") == "short"


def test_snippet_match_at_start_has_no_leading_ellipsis():
    assert content_store.make_snippet("needle in a haystack", "needle", span=5) == "needle in a…"


def test_snippet_offsets_follow_original_text():
    # "İ".lower() is two characters long
    text = "İİİ" + "a" * 10 + "needle" + "b" * 10
    assert content_store.make_snippet(text, "NEEDLE", span=2) == "…aaneedlebb…"


def _miss_first_lookups(monkeypatch, misses):
    real = content_store._find_exact
    calls = {"n": 0}

    def _find(slug):
        calls["n"] += 1
        return None if calls["n"] <= misses else real(slug)

    monkeypatch.setattr(content_store, "_find_exact", _find)
    return calls


def test_upsert_retries_lost_insert_as_update(app, make_block, monkeypatch):
    existing = make_block("home.hero", content="old")
    calls = _miss_first_lookups(monkeypatch, misses=1)

    block = content_store.upsert_by_slug("home.hero", {"section": "home", "content": "new"})

    assert calls["n"] == 2
    assert block.id == existing.id
    assert reload_block(existing.id).content == "new"
    assert all_slugs() == ["home.hero"]


def test_upsert_raises_conflict_when_retry_also_loses(app, make_block, monkeypatch):
    existing = make_block("home.hero", content="old")
    calls = _miss_first_lookups(monkeypatch, misses=2)

    with pytest.raises(ConflictError) as exc:
        content_store.upsert_by_slug("home.hero", {"section": "home", "content": "new"})

    assert calls["n"] == 2
    assert exc.value.status_code == 500
    assert reload_block(existing.id).content == "old"
    assert all_slugs() == ["home.hero"]
