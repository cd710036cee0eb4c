from datetime import datetime

import pytest

from foundation.models import ContentStatus

from .helpers import all_slugs, reload_block

BASE = "/api/content"


def _published(make_block, slug, **kw):
    kw.setdefault("published_at", datetime(2024, 1, 1))
    return make_block(slug, status=ContentStatus.PUBLISHED, **kw)


# ----------------------------
# Public reads
# ----------------------------
def test_list_published(client, make_block):
    _published(make_block, "home.hero", content="Hello")
    make_block("home.draft")

    resp = client.get(f"{BASE}/")
    assert resp.status_code == 200
    assert [i["slug"] for i in resp.get_json()["items"]] == ["home.hero"]


def test_get_by_slug_normalizes_and_sets_no_cache(client, make_block):
    block = _published(make_block, "home.hero", content="Hello")

    resp = client.get(f"{BASE}/%20%20Home.Hero%20%20?t=12345")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["id"] == block.id
    assert body["status"] == "PUBLISHED"
    assert body["publishedAt"] == "2024-01-01T00:00:00+00:00"
    assert "no-store" in resp.headers["Cache-Control"]
    assert resp.headers["Pragma"] == "no-cache"
    assert resp.headers["Expires"] == "0"


def test_get_by_slug_hides_drafts(client, make_block):
    make_block("home.draft")

    resp = client.get(f"{BASE}/Home.Draft")

    assert resp.status_code == 404
    body = resp.get_json()
    assert body["ok"] is False
    assert body["message"] == "Not found"
    assert body["slug"] == "home.draft"


def test_by_slugs(client, make_block):
    make_block("a")
    _published(make_block, "b", content="bee")

    resp = client.get(f"{BASE}/by-slugs?slugs=a,%20B%20,c")

    assert resp.status_code == 200
    assert list(resp.get_json()["data"]) == ["b"]
    assert resp.get_json()["data"]["b"]["content"] == "bee"


def test_by_slugs_without_param(client):
    resp = client.get(f"{BASE}/by-slugs")
    assert resp.get_json() == {"data": {}}


def test_request_id_is_echoed(client):
    resp = client.get(f"{BASE}/", headers={"X-Request-ID": "rid-123"})
    assert resp.headers["X-Request-ID"] == "rid-123"
    assert "X-Response-Time-ms" in resp.headers


# ----------------------------
# Admin guard
# ----------------------------
@pytest.mark.parametrize("headers", [{}, {"X-Admin-Key": "wrong"}, {"X-Admin-Key": ""}])
def test_admin_routes_require_key(client, headers):
    resp = client.get(f"{BASE}/admin/list", headers=headers)
    assert resp.status_code == 401
    assert resp.get_json()["ok"] is False
    assert resp.get_json()["message"] == "Unauthorized"


def test_admin_write_requires_key(client):
    resp = client.post(f"{BASE}/admin/content", json={"slug": "home.hero", "section": "home"})
    assert resp.status_code == 401
    assert all_slugs() == []


# ----------------------------
# Admin operations
# ----------------------------
def test_admin_save_then_publish_flow(client, admin_headers):
    resp = client.post(
        f"{BASE}/admin/content",
        json={"slug": "  Home.Hero ", "section": "home", "content": "Hi"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    saved = resp.get_json()
    assert saved["slug"] == "home.hero"
    assert saved["status"] == "DRAFT"
    assert saved["publishedAt"] is None

    assert client.get(f"{BASE}/home.hero").status_code == 404

    resp = client.patch(f"{BASE}/admin/content/{saved['id']}/publish", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "PUBLISHED"
    assert resp.get_json()["publishedAt"] is not None

    assert client.get(f"{BASE}/home.hero").get_json()["content"] == "Hi"

    resp = client.patch(f"{BASE}/admin/content/{saved['id']}/unpublish", headers=admin_headers)
    assert resp.get_json()["status"] == "DRAFT"
    assert resp.get_json()["publishedAt"] is None
    assert client.get(f"{BASE}/home.hero").status_code == 404


def test_admin_save_publish_now(client, admin_headers):
    resp = client.post(
        f"{BASE}/admin/content",
        json={"slug": "donate.cta", "section": "donate", "content": "Give", "publishNow": True},
        headers=admin_headers,
    )
    assert resp.get_json()["status"] == "PUBLISHED"
    assert client.get(f"{BASE}/donate.cta").status_code == 200


def test_admin_save_by_id(client, admin_headers, make_block):
    block = make_block("old.slug")
    resp = client.post(
        f"{BASE}/admin/content",
        json={"id": block.id, "slug": "new.slug", "section": "home", "content": "moved"},
        headers=admin_headers,
    )
    assert resp.status_code == 200
    assert reload_block(block.id).slug == "new.slug"


def test_admin_save_validation_error(client, admin_headers):
    resp = client.post(
        f"{BASE}/admin/content",
        json={"slug": "x", "section": "home"},
        headers=admin_headers,
    )
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["ok"] is False
    assert body["fields"]["slug"] == ["String must contain at least 2 character(s)"]
    assert all_slugs() == []


def test_admin_publish_unknown_id(client, admin_headers):
    resp = client.patch(f"{BASE}/admin/content/missing/publish", headers=admin_headers)
    assert resp.status_code == 404
    assert resp.get_json()["ok"] is False


def test_admin_get(client, admin_headers, make_block):
    block = make_block("home.draft")
    resp = client.get(f"{BASE}/admin/get/{block.id}", headers=admin_headers)
    assert resp.get_json()["slug"] == "home.draft"
    assert client.get(f"{BASE}/admin/get/missing", headers=admin_headers).status_code == 404


def test_admin_list_filters(client, admin_headers, make_block):
    make_block("home.draft")
    _published(make_block, "home.hero")

    resp = client.get(f"{BASE}/admin/list?status=draft", headers=admin_headers)
    assert [i["slug"] for i in resp.get_json()["items"]] == ["home.draft"]

    assert len(client.get(f"{BASE}/admin/list", headers=admin_headers).get_json()["items"]) == 2
    assert client.get(f"{BASE}/admin/list?status=bogus", headers=admin_headers).status_code == 400


def test_admin_search(client, admin_headers, make_block):
    make_block("about.story", content="Our foundation was started by volunteers.")

    resp = client.get(f"{BASE}/admin/search?q=volunteers", headers=admin_headers)

    items = resp.get_json()["items"]
    assert [i["slug"] for i in items] == ["about.story"]
    assert "volunteers" in items[0]["snippet"]


def test_admin_search_caps_results_at_default_limit(client, admin_headers, make_block):
    for n in range(105):
        make_block(f"block.{n:03d}", content="needle in the haystack")

    resp = client.get(f"{BASE}/admin/search?q=needle", headers=admin_headers)

    assert resp.status_code == 200
    assert len(resp.get_json()["items"]) == 100


def test_admin_fix_slugs(client, admin_headers, make_block):
    make_block("Home.Hero", last_updated=datetime(2024, 2, 1))
    make_block("home.hero ", last_updated=datetime(2024, 1, 1))

    preview = client.post(f"{BASE}/admin/fix-slugs?dry_run=1", headers=admin_headers).get_json()
    assert preview["dry_run"] is True
    assert len(preview["actions"]) == 2
    assert "home.hero" not in all_slugs()

    resp = client.post(f"{BASE}/admin/fix-slugs", headers=admin_headers)
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["ok"] is True
    assert body["normalized_groups"] == 1
    assert [a["action"] for a in body["actions"]] == ["deduped", "canonicalized"]
    assert "home.hero" in all_slugs()

    again = client.post(f"{BASE}/admin/fix-slugs", headers=admin_headers).get_json()
    assert again["actions"] == []


def test_unknown_api_route_is_json(client):
    resp = client.get("/api/nothing-here")
    assert resp.status_code == 404
    assert resp.get_json()["ok"] is False
