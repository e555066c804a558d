from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, redirect, render_template, request, url_for
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.villagecms.credentials import Identity
from app.villagecms.db import db_session
from app.villagecms.modules.content.service import (
    KINDS,
    ContentKind,
    content_payload_from_form,
    create_content,
    delete_content,
    get_for_village,
    list_for_village,
    update_content,
    validate_content_payload,
)
from app.villagecms.rbac import admin_required, current_identity

bp = Blueprint("content", __name__)

_KIND_SEGMENT = "<any(articles, news, pages):kind>"
_SLUG_TAKEN = "A page with this slug already exists."


def _identity() -> Identity:
    identity = current_identity()
    if identity is None:
        raise RuntimeError("No current identity")
    return identity


def _kind(key: str) -> ContentKind:
    kind = KINDS.get(key)
    if kind is None:
        abort(404)
    return kind


def _render_form(kind: ContentKind, *, item=None, payload=None, error: str | None = None, status: int = 200):
    return (
        render_template(
            "admin/content/form.html",
            kind=kind,
            item=item,
            payload=payload or {},
            error=error,
        ),
        status,
    )


# ---------- List ----------
@bp.get(f"/{_KIND_SEGMENT}")
@admin_required
def content_list(kind: str):
    k = _kind(kind)
    identity = _identity()
    try:
        items = list_for_village(db_session(), k, identity.village_id)
        error = None
    except SQLAlchemyError:
        current_app.logger.exception("Listing %s failed (village_id=%s)", k.key, identity.village_id)
        items, error = [], f"Error loading {k.plural.lower()}"
    return render_template("admin/content/list.html", kind=k, items=items, error=error)


# ---------- New ----------
@bp.get(f"/{_KIND_SEGMENT}/new")
@admin_required
def content_new_get(kind: str):
    return _render_form(_kind(kind))


@bp.post(f"/{_KIND_SEGMENT}/new")
@admin_required
def content_new_post(kind: str):
    k = _kind(kind)
    identity = _identity()
    payload = content_payload_from_form(request.form, k)

    errors = validate_content_payload(payload, k)
    if errors:
        for e in errors:
            flash(e.message, "danger")
        return _render_form(k, payload=payload, status=400)

    s = db_session()
    try:
        create_content(s, k, payload, identity)
        s.commit()
    except SQLAlchemyError as e:
        s.rollback()
        if k.has_slug and isinstance(e, IntegrityError):
            return _render_form(k, payload=payload, error=_SLUG_TAKEN, status=400)
        current_app.logger.exception("Create %s failed (village_id=%s)", k.key, identity.village_id)
        return _render_form(k, payload=payload, error=f"Error creating {k.label.lower()}", status=500)

    flash(f"{k.label} created.", "success")
    return redirect(url_for("content.content_list", kind=k.key))


# ---------- Edit ----------
@bp.get(f"/{_KIND_SEGMENT}/<int:item_id>/edit")
@admin_required
def content_edit_get(kind: str, item_id: int):
    k = _kind(kind)
    item = get_for_village(db_session(), k, item_id, _identity().village_id)
    if item is None:
        abort(404)
    return _render_form(k, item=item)


@bp.post(f"/{_KIND_SEGMENT}/<int:item_id>/edit")
@admin_required
def content_edit_post(kind: str, item_id: int):
    k = _kind(kind)
    identity = _identity()
    s = db_session()
    item = get_for_village(s, k, item_id, identity.village_id)
    if item is None:
        abort(404)

    payload = content_payload_from_form(request.form, k)
    errors = validate_content_payload(payload, k)
    if errors:
        for e in errors:
            flash(e.message, "danger")
        return _render_form(k, item=item, payload=payload, status=400)

    try:
        update_content(s, k, item, payload, identity)
        s.commit()
    except SQLAlchemyError as e:
        s.rollback()
        if k.has_slug and isinstance(e, IntegrityError):
            return _render_form(k, item=item, payload=payload, error=_SLUG_TAKEN, status=400)
        current_app.logger.exception("Update %s id=%s failed", k.key, item_id)
        return _render_form(k, item=item, payload=payload, error=f"Error updating {k.label.lower()}", status=500)

    flash(f"{k.label} updated.", "success")
    return redirect(url_for("content.content_list", kind=k.key))


# ---------- Delete ----------
@bp.post(f"/{_KIND_SEGMENT}/<int:item_id>/delete")
@admin_required
def content_delete(kind: str, item_id: int):
    k = _kind(kind)
    identity = _identity()
    s = db_session()
    item = get_for_village(s, k, item_id, identity.village_id)
    if item is None:
        abort(404)
    try:
        delete_content(s, k, item, identity)
        s.commit()
        flash(f"{k.label} deleted.", "success")
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Delete %s id=%s failed", k.key, item_id)
        flash(f"Error deleting {k.label.lower()}", "danger")
    return redirect(url_for("content.content_list", kind=k.key))
