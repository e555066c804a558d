from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from app.villagecms.audit import record_event
from app.villagecms.constants import MENU_APPEND_INDEX, MENU_TYPES
from app.villagecms.modules.menu.models import MenuItem
from app.villagecms.tenancy import scoped

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.villagecms.credentials import Identity


def list_menu(s: "Session", village_id: int) -> list[MenuItem]:
    return (
        scoped(s.query(MenuItem), MenuItem, village_id)
        .order_by(MenuItem.order_index.asc(), MenuItem.id.asc())
        .all()
    )


def _is_safe_menu_url(url: str) -> bool:
    if url.startswith("/"):
        return not url.startswith(("//", "/\\"))
    parts = urlsplit(url)
    return parts.scheme in ("http", "https") and bool(parts.netloc)


def validate_menu_item_payload(payload: Any) -> list[str]:
    if not isinstance(payload, dict):
        return ["Request body must be a JSON object."]
    errors = []
    for field in ("title", "url"):
        value = payload.get(field)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"{field} is required.")
    url = payload.get("url")
    if isinstance(url, str) and url.strip() and not _is_safe_menu_url(url.strip()):
        errors.append("url must be a site path (/...) or an http(s) address.")
    item_type = payload.get("type")
    if item_type is not None and item_type not in MENU_TYPES:
        errors.append(f"type must be one of: {', '.join(MENU_TYPES)}")
    return errors


def parse_reorder_payload(payload: Any) -> tuple[list[int], list[str]]:
    """Extract the ordered id list from ``{"items": [{"id": 1}, ...]}``."""
    if not isinstance(payload, dict) or not isinstance(payload.get("items"), list):
        return [], ["items must be a list."]
    ids: list[int] = []
    for entry in payload["items"]:
        raw = entry.get("id") if isinstance(entry, dict) else None
        # bool is an int subclass; reject it explicitly.
        if isinstance(raw, bool):
            return [], ["Each item needs an integer id."]
        try:
            ids.append(int(raw))
        except (TypeError, ValueError):
            return [], ["Each item needs an integer id."]
    return ids, []


def create_menu_item(s: "Session", payload: dict[str, Any], identity: "Identity") -> MenuItem:
    item = MenuItem(
        village_id=identity.village_id,
        title=payload["title"].strip(),
        url=payload["url"].strip(),
        type=payload.get("type") or "custom",
        order_index=MENU_APPEND_INDEX,
        created_at=datetime.utcnow(),
    )
    s.add(item)
    s.flush()
    record_event(
        s,
        actor=identity,
        action="menu.create",
        entity_type="MenuItem",
        entity_id=str(item.id),
        metadata={"title": item.title, "url": item.url},
    )
    return item


def reorder_menu(s: "Session", ordered_ids: list[int], identity: "Identity") -> int:
    """
    Assign order_index by list position. Ids belonging to another village are
    ignored. Returns the number of rows updated.
    """
    items = {
        item.id: item
        for item in scoped(s.query(MenuItem), MenuItem, identity.village_id).filter(MenuItem.id.in_(ordered_ids))
    }
    updated = 0
    for position, item_id in enumerate(ordered_ids):
        item = items.get(item_id)
        if item is None:
            continue
        item.order_index = position
        updated += 1
    record_event(
        s,
        actor=identity,
        action="menu.reorder",
        entity_type="MenuItem",
        metadata={"order": ordered_ids, "updated": updated},
    )
    return updated


def delete_menu_item(s: "Session", item_id: int, identity: "Identity") -> bool:
    item = scoped(s.query(MenuItem), MenuItem, identity.village_id).filter(MenuItem.id == item_id).one_or_none()
    if item is None:
        return False
    record_event(
        s,
        actor=identity,
        action="menu.delete",
        entity_type="MenuItem",
        entity_id=str(item.id),
        metadata={"title": item.title},
    )
    s.delete(item)
    s.flush()
    return True
