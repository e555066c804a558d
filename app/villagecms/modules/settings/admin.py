from __future__ import annotations

from flask import Blueprint, current_app, render_template
from sqlalchemy.exc import SQLAlchemyError

from app.villagecms.db import db_session
from app.villagecms.modules.settings.service import get_village
from app.villagecms.rbac import admin_required, current_identity

bp = Blueprint("settings", __name__)


@bp.get("/settings")
@admin_required
def settings_index():
    identity = current_identity()
    error = None
    try:
        village = get_village(db_session(), identity.village_id)
    except SQLAlchemyError:
        current_app.logger.exception("Settings load failed (village_id=%s)", identity.village_id)
        village, error = None, "Error loading settings"
    return render_template("admin/settings.html", village=village, error=error)
