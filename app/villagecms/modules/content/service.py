from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.villagecms.audit import record_event
from app.villagecms.constants import STATUS_DRAFT, VALID_STATUSES
from app.villagecms.modules.content.models import Article, NewsItem, Page
from app.villagecms.tenancy import published, scoped

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.villagecms.credentials import Identity


@dataclass(frozen=True)
class ContentKind:
    key: str  # URL segment: articles, news, pages
    model: Any
    label: str
    plural: str
    has_excerpt: bool = False
    has_slug: bool = False


KINDS: dict[str, ContentKind] = {
    "articles": ContentKind("articles", Article, "Article", "Articles", has_excerpt=True),
    "news": ContentKind("news", NewsItem, "News", "News", has_excerpt=True),
    "pages": ContentKind("pages", Page, "Page", "Pages", has_slug=True),
}


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


def normalize_text(value: Any) -> str:
    return (str(value) if value is not None else "").strip()


def slugify(title: str) -> str:
    slug = re.sub(r"\s+", "-", title.strip().lower())
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    return re.sub(r"-{2,}", "-", slug).strip("-")


def content_payload_from_form(form: Any, kind: ContentKind) -> dict[str, str]:
    fields = ["title", "content", "status"]
    if kind.has_excerpt:
        fields.append("excerpt")
    if kind.has_slug:
        fields.append("slug")
    return {f: normalize_text(form.get(f)) for f in fields}


def validate_content_payload(payload: dict[str, Any], kind: ContentKind) -> list[ValidationError]:
    errs: list[ValidationError] = []
    if not normalize_text(payload.get("title")):
        errs.append(ValidationError("title", "Title is required."))
    status = normalize_text(payload.get("status"))
    if status and status not in VALID_STATUSES:
        errs.append(ValidationError("status", f"Status must be one of: {', '.join(VALID_STATUSES)}"))
    if kind.has_slug:
        slug = normalize_text(payload.get("slug")) or slugify(normalize_text(payload.get("title")))
        if normalize_text(payload.get("title")) and not slug:
            errs.append(ValidationError("slug", "Slug could not be derived from the title; enter one."))
        elif slug and slug != slugify(slug):
            errs.append(ValidationError("slug", "Slug may only contain lower-case letters, digits and dashes."))
    return errs


# ---------- reads ----------
def list_for_village(s: "Session", kind: ContentKind, village_id: int) -> list[Any]:
    model = kind.model
    return scoped(s.query(model), model, village_id).order_by(model.created_at.desc(), model.id.desc()).all()


def get_for_village(s: "Session", kind: ContentKind, item_id: int, village_id: int) -> Any | None:
    model = kind.model
    return scoped(s.query(model), model, village_id).filter(model.id == item_id).one_or_none()


def recent_for_village(s: "Session", kind: ContentKind, village_id: int, *, limit: int) -> list[Any]:
    model = kind.model
    return (
        scoped(s.query(model), model, village_id)
        .order_by(model.updated_at.desc(), model.id.desc())
        .limit(limit)
        .all()
    )


def count_for_village(s: "Session", model: Any, village_id: int) -> int:
    return scoped(s.query(model), model, village_id).count()


def list_published(s: "Session", model: Any, village_id: int, *, limit: int, offset: int = 0) -> list[Any]:
    return (
        published(s.query(model), model, village_id)
        .order_by(model.created_at.desc(), model.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_published(s: "Session", model: Any, item_id: int, village_id: int) -> Any | None:
    return published(s.query(model), model, village_id).filter(model.id == item_id).one_or_none()


def get_published_page(s: "Session", slug: str, village_id: int) -> Page | None:
    return published(s.query(Page), Page, village_id).filter(Page.slug == slug).one_or_none()


# ---------- writes ----------
def _apply(item: Any, payload: dict[str, Any], kind: ContentKind) -> dict[str, dict[str, Any]]:
    changes: dict[str, dict[str, Any]] = {}

    def _set(field: str, value: Any) -> None:
        old = getattr(item, field, None)
        if old != value:
            changes[field] = {"old": old, "new": value}
            setattr(item, field, value)

    title = normalize_text(payload.get("title"))
    _set("title", title)
    _set("content", normalize_text(payload.get("content")) or None)
    _set("status", normalize_text(payload.get("status")) or STATUS_DRAFT)
    if kind.has_excerpt:
        _set("excerpt", normalize_text(payload.get("excerpt")) or None)
    if kind.has_slug:
        _set("slug", normalize_text(payload.get("slug")) or slugify(title))
    return changes


def create_content(s: "Session", kind: ContentKind, payload: dict[str, Any], identity: "Identity") -> Any:
    """Create a content row owned by the identity's village. Caller commits."""
    now = datetime.utcnow()
    item = kind.model(
        village_id=identity.village_id,
        author_id=identity.user_id,
        created_at=now,
        updated_at=now,
    )
    _apply(item, payload, kind)
    s.add(item)
    s.flush()

    record_event(
        s,
        actor=identity,
        action=f"{kind.key}.create",
        entity_type=kind.model.__name__,
        entity_id=str(item.id),
        metadata={"title": item.title, "status": item.status},
    )
    return item


def update_content(s: "Session", kind: ContentKind, item: Any, payload: dict[str, Any], identity: "Identity") -> Any:
    changes = _apply(item, payload, kind)
    item.updated_at = datetime.utcnow()
    s.flush()
    record_event(
        s,
        actor=identity,
        action=f"{kind.key}.edit",
        entity_type=kind.model.__name__,
        entity_id=str(item.id),
        metadata={"title": item.title, "changes": changes},
    )
    return item


def delete_content(s: "Session", kind: ContentKind, item: Any, identity: "Identity") -> None:
    record_event(
        s,
        actor=identity,
        action=f"{kind.key}.delete",
        entity_type=kind.model.__name__,
        entity_id=str(item.id),
        metadata={"title": item.title},
    )
    s.delete(item)
    s.flush()
