from __future__ import annotations

from flask import Blueprint, current_app, render_template
from sqlalchemy.exc import SQLAlchemyError

from app.villagecms.constants import MENU_TYPES
from app.villagecms.db import db_session
from app.villagecms.modules.menu.service import list_menu
from app.villagecms.rbac import admin_required, current_identity

bp = Blueprint("menu", __name__)


@bp.get("/menu")
@admin_required
def menu_index():
    identity = current_identity()
    error = None
    try:
        items = list_menu(db_session(), identity.village_id)
    except SQLAlchemyError:
        current_app.logger.exception("Menu load failed (village_id=%s)", identity.village_id)
        items, error = [], "Error loading menu items"
    return render_template("admin/menu.html", menu_items=items, menu_types=MENU_TYPES, error=error)
