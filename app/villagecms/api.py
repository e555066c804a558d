"""
JSON API used by the admin panel scripts (menu drag-and-drop, settings form).

Every route answers ``{"success": true, ...}`` or ``{"error": "..."}``.
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from app.villagecms.credentials import Identity
from app.villagecms.db import db_session
from app.villagecms.modules.menu.service import (
    create_menu_item,
    delete_menu_item,
    parse_reorder_payload,
    reorder_menu,
    validate_menu_item_payload,
)
from app.villagecms.modules.settings.service import get_village, update_village_settings, validate_settings_payload
from app.villagecms.rbac import api_admin_required, current_identity

bp = Blueprint("api", __name__)


def _identity() -> Identity:
    identity = current_identity()
    if identity is None:
        raise RuntimeError("No current identity")
    return identity


def _bad_request(errors: list[str]):
    return jsonify({"error": " ".join(errors)}), 400


@bp.post("/menu/reorder")
@api_admin_required
def menu_reorder():
    ids, errors = parse_reorder_payload(request.get_json(silent=True))
    if errors:
        return _bad_request(errors)
    s = db_session()
    try:
        reorder_menu(s, ids, _identity())
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Menu reorder failed")
        return jsonify({"error": "Error updating menu order"}), 500
    return jsonify({"success": True})


@bp.post("/menu")
@api_admin_required
def menu_create():
    payload = request.get_json(silent=True)
    errors = validate_menu_item_payload(payload)
    if errors:
        return _bad_request(errors)
    s = db_session()
    try:
        item = create_menu_item(s, payload, _identity())
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Add menu item failed")
        return jsonify({"error": "Error adding menu item"}), 500
    return jsonify({"success": True, "menu_item": item.to_dict()})


@bp.delete("/menu/<int:item_id>")
@api_admin_required
def menu_delete(item_id: int):
    s = db_session()
    try:
        deleted = delete_menu_item(s, item_id, _identity())
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Delete menu item id=%s failed", item_id)
        return jsonify({"error": "Error deleting menu item"}), 500
    if not deleted:
        return jsonify({"error": "Menu item not found"}), 404
    return jsonify({"success": True})


@bp.post("/settings")
@api_admin_required
def settings_update():
    payload = request.get_json(silent=True)
    errors = validate_settings_payload(payload)
    if errors:
        return _bad_request(errors)
    identity = _identity()
    s = db_session()
    try:
        village = get_village(s, identity.village_id)
        if village is None:
            return jsonify({"error": "Village not found"}), 404
        update_village_settings(s, village, payload, identity)
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Update settings failed (village_id=%s)", identity.village_id)
        return jsonify({"error": "Error updating settings"}), 500
    return jsonify({"success": True})
