from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from flask import Blueprint, Flask, current_app, g, render_template
from sqlalchemy.exc import SQLAlchemyError

from app.villagecms.constants import DASHBOARD_RECENT_LIMIT
from app.villagecms.db import db_session, session_scope
from app.villagecms.modules.content.models import Article, NewsItem, Page
from app.villagecms.modules.content.service import KINDS, count_for_village, recent_for_village
from app.villagecms.rbac import admin_required, current_identity, login_required

bp = Blueprint("admin", __name__)

_STAT_MODELS = {"articles": Article, "news": NewsItem, "pages": Page}


def dashboard_stats(app: Flask, village_id: int) -> dict[str, int]:
    """
    Count each content type for one village. The counts are independent, so
    each runs on its own pooled connection and the results are joined here.
    """

    def _count(model) -> int:
        with session_scope(app) as s:
            return count_for_village(s, model, village_id)

    with ThreadPoolExecutor(max_workers=len(_STAT_MODELS)) as pool:
        futures = {key: pool.submit(_count, model) for key, model in _STAT_MODELS.items()}
        return {key: fut.result() for key, fut in futures.items()}


def recent_items(village_id: int) -> list[tuple]:
    """Latest edits per content type, as (kind, items) pairs."""
    s = db_session()
    return [(kind, recent_for_village(s, kind, village_id, limit=DASHBOARD_RECENT_LIMIT)) for kind in KINDS.values()]


@bp.get("/")
@admin_required
def index():
    identity = current_identity()
    error = None
    try:
        stats = dashboard_stats(current_app._get_current_object(), identity.village_id)
        recent = recent_items(identity.village_id)
    except SQLAlchemyError:
        current_app.logger.exception("Dashboard stats failed (request_id=%s)", getattr(g, "request_id", None))
        stats = {key: 0 for key in _STAT_MODELS}
        recent = []
        error = "Error loading dashboard statistics"
    return render_template("admin/index.html", identity=identity, stats=stats, recent=recent, error=error)


@bp.get("/me")
@login_required
def me():
    return render_template("admin/me.html", identity=current_identity())
