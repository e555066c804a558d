from __future__ import annotations

from types import SimpleNamespace
from typing import Any

from flask import Blueprint, abort, current_app, render_template, request
from sqlalchemy.exc import SQLAlchemyError

from app.villagecms.constants import HOME_ARTICLES_LIMIT, HOME_NEWS_LIMIT, PUBLIC_PAGE_SIZE
from app.villagecms.db import db_session
from app.villagecms.modules.content.models import Article, NewsItem
from app.villagecms.modules.content.service import get_published, get_published_page, list_published
from app.villagecms.modules.menu.service import list_menu
from app.villagecms.modules.settings.service import get_village
from app.villagecms.tenancy import current_village_id

bp = Blueprint("public", __name__)

_LISTINGS = {
    "news": (NewsItem, "News"),
    "articles": (Article, "Articles"),
}


def _page_arg() -> int:
    try:
        page = int(request.args.get("page") or "1")
    except ValueError:
        return 1
    return page if page >= 1 else 1


def _site(village_id: int) -> dict[str, Any]:
    """Village record + menu for the layout. Missing or failing lookups fall back to defaults."""
    s = db_session()
    try:
        village = get_village(s, village_id)
        menu = list_menu(s, village_id)
    except SQLAlchemyError:
        current_app.logger.exception("Site context load failed (village_id=%s)", village_id)
        s.rollback()
        village, menu = None, []
    if village is None:
        village = SimpleNamespace(name=current_app.config.get("SITE_NAME") or "Village CMS", description=None, theme_color=None)
    return {"village": village, "public_menu": menu}


@bp.get("/")
def index():
    village_id = current_village_id()
    s = db_session()
    error = None
    try:
        news = list_published(s, NewsItem, village_id, limit=HOME_NEWS_LIMIT)
        articles = list_published(s, Article, village_id, limit=HOME_ARTICLES_LIMIT)
    except SQLAlchemyError:
        current_app.logger.exception("Home page load failed (village_id=%s)", village_id)
        s.rollback()
        news, articles, error = [], [], "Error loading content"
    return render_template("public/home.html", news=news, articles=articles, error=error, **_site(village_id))


def _listing(kind: str):
    model, label = _LISTINGS[kind]
    village_id = current_village_id()
    page = _page_arg()
    s = db_session()
    error = None
    try:
        rows = list_published(s, model, village_id, limit=PUBLIC_PAGE_SIZE + 1, offset=(page - 1) * PUBLIC_PAGE_SIZE)
    except SQLAlchemyError:
        current_app.logger.exception("%s listing failed (village_id=%s)", label, village_id)
        s.rollback()
        rows, page, error = [], 1, f"Error loading {label.lower()}"
    return render_template(
        "public/list.html",
        kind=kind,
        label=label,
        items=rows[:PUBLIC_PAGE_SIZE],
        current_page=page,
        has_prev=page > 1,
        has_next=len(rows) > PUBLIC_PAGE_SIZE,
        error=error,
        **_site(village_id),
    )


def _single(kind: str, item_id: int):
    model, label = _LISTINGS[kind]
    village_id = current_village_id()
    item = get_published(db_session(), model, item_id, village_id)
    if item is None:
        abort(404)
    return render_template("public/detail.html", kind=kind, label=label, item=item, **_site(village_id))


@bp.get("/news")
def news_list():
    return _listing("news")


@bp.get("/news/<int:item_id>")
def news_detail(item_id: int):
    return _single("news", item_id)


@bp.get("/articles")
def articles_list():
    return _listing("articles")


@bp.get("/articles/<int:item_id>")
def articles_detail(item_id: int):
    return _single("articles", item_id)


@bp.get("/page/<slug>")
def page_detail(slug: str):
    village_id = current_village_id()
    page = get_published_page(db_session(), slug, village_id)
    if page is None:
        abort(404)
    return render_template("public/page.html", page=page, **_site(village_id))


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container probes. No DB access, minimal overhead.
    """
    return "ok", 200
