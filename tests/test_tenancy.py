import pytest

from app.villagecms.db import session_scope
from app.villagecms.modules.content.models import Article, NewsItem, Page
from app.villagecms.modules.content.service import KINDS, get_published, list_for_village, list_published


def _id_of(app, model, title):
    with session_scope(app) as s:
        return s.query(model).filter(model.title == title).one().id


def test_public_home_shows_only_default_village_published(client):
    r = client.get("/")
    assert r.status_code == 200
    assert b"Green Hollow" in r.data
    assert b"Harvest Festival" in r.data
    assert b"Road Works Start" in r.data
    assert b"Secret Draft Article" not in r.data
    assert b"Unpublished Council News" not in r.data
    assert b"Ridge Quarry Report" not in r.data
    assert b"Ridge Market Day" not in r.data


def test_public_menu_is_village_scoped(client):
    r = client.get("/")
    assert b"/page/about" in r.data
    assert b"Ridge Links" not in r.data


@pytest.mark.parametrize(
    "path,visible,hidden",
    [
        ("/news", b"Road Works Start", [b"Unpublished Council News", b"Ridge Market Day"]),
        ("/articles", b"Harvest Festival", [b"Secret Draft Article", b"Ridge Quarry Report"]),
    ],
)
def test_public_listings_filter_village_and_status(client, path, visible, hidden):
    r = client.get(path)
    assert r.status_code == 200
    assert visible in r.data
    for title in hidden:
        assert title not in r.data


def test_public_detail_of_other_village_is_404(client, app):
    other = _id_of(app, Article, "Ridge Quarry Report")
    r = client.get(f"/articles/{other}")
    assert r.status_code == 404

    other_news = _id_of(app, NewsItem, "Ridge Market Day")
    assert client.get(f"/news/{other_news}").status_code == 404


def test_public_detail_of_draft_is_404(client, app):
    draft = _id_of(app, Article, "Secret Draft Article")
    assert client.get(f"/articles/{draft}").status_code == 404


def test_public_detail_published_ok(client, app):
    news_id = _id_of(app, NewsItem, "Road Works Start")
    r = client.get(f"/news/{news_id}")
    assert r.status_code == 200
    assert b"Road Works Start" in r.data


def test_public_pages_by_slug(client):
    assert client.get("/page/about").status_code == 200
    assert client.get("/page/hidden").status_code == 404
    assert client.get("/page/history").status_code == 404  # belongs to village 2
    assert client.get("/page/missing").status_code == 404


def test_logged_in_visitor_sees_own_village_public_site(client, login):
    login(email="admin2@example.com")
    r = client.get("/")
    assert b"Stone Ridge" in r.data
    assert b"Ridge Market Day" in r.data
    assert b"Harvest Festival" not in r.data
    assert client.get("/page/history").status_code == 200


def test_public_listing_paginates(client, app):
    with session_scope(app) as s:
        for i in range(12):
            s.add(NewsItem(village_id=1, title=f"Bulletin {i:02d}", status="published"))

    first = client.get("/news")
    assert b"Older" in first.data
    second = client.get("/news?page=2")
    assert second.status_code == 200
    assert b"Newer" in second.data
    assert b"Page 2" in second.data

    bad = client.get("/news?page=abc")
    assert b"Page 1" in bad.data


def test_admin_list_is_village_scoped(client, login):
    login()
    r = client.get("/admin/articles")
    assert r.status_code == 200
    assert b"Harvest Festival" in r.data
    assert b"Secret Draft Article" in r.data  # admins see drafts
    assert b"Ridge Quarry Report" not in r.data


def test_admin_cannot_edit_other_village_item(client, app, login, csrf):
    other = _id_of(app, Article, "Ridge Quarry Report")
    login()
    assert client.get(f"/admin/articles/{other}/edit").status_code == 404

    token = csrf()
    r = client.post(f"/admin/articles/{other}/edit", data={"title": "Hijacked", "csrf_token": token})
    assert r.status_code == 404
    r = client.post(f"/admin/articles/{other}/delete", data={"csrf_token": token})
    assert r.status_code == 404

    with session_scope(app) as s:
        assert s.get(Article, other).title == "Ridge Quarry Report"


@pytest.mark.parametrize("model", [Article, NewsItem, Page])
def test_published_queries_never_cross_villages(app, model):
    with session_scope(app) as s:
        for village_id in (1, 2):
            rows = list_published(s, model, village_id, limit=100)
            assert rows
            assert all(r.village_id == village_id and r.status == "published" for r in rows)
            for r in s.query(model).filter(model.village_id != village_id).all():
                assert get_published(s, model, r.id, village_id) is None


def test_admin_queries_only_return_own_village(app):
    with session_scope(app) as s:
        for kind in KINDS.values():
            rows = list_for_village(s, kind, 2)
            assert rows
            assert {r.village_id for r in rows} == {2}
