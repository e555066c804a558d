from __future__ import annotations

import re
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.villagecms.audit import record_event
from app.villagecms.models import Village

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.villagecms.credentials import Identity

SETTINGS_FIELDS = ("name", "description", "theme_color", "contact_email", "address")

_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def get_village(s: "Session", village_id: int) -> Village | None:
    return s.get(Village, village_id)


def validate_settings_payload(payload: Any) -> list[str]:
    """Validate a village settings update. Returns list of errors."""
    if not isinstance(payload, dict):
        return ["Request body must be a JSON object."]
    errors = []
    for field in SETTINGS_FIELDS:
        value = payload.get(field)
        if value is not None and not isinstance(value, str):
            errors.append(f"{field} must be a string.")
    if errors:
        return errors
    if not (payload.get("name") or "").strip():
        errors.append("Name is required.")
    color = (payload.get("theme_color") or "").strip()
    if color and not _COLOR_RE.match(color):
        errors.append("Theme color must be a hex color like #2e7d32.")
    email = (payload.get("contact_email") or "").strip()
    if email and not _EMAIL_RE.match(email):
        errors.append("Contact email is not a valid address.")
    return errors


def update_village_settings(s: "Session", village: Village, payload: dict[str, Any], identity: "Identity") -> Village:
    changes = {}
    for field in SETTINGS_FIELDS:
        # Omitted keys keep their stored value; an explicit empty string clears it.
        if field not in payload:
            continue
        new = (payload.get(field) or "").strip() or None
        if field == "name":
            new = new or village.name
        old = getattr(village, field)
        if new != old:
            changes[field] = {"old": old, "new": new}
            setattr(village, field, new)
    village.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=identity,
        action="village.settings_update",
        entity_type="Village",
        entity_id=str(village.id),
        metadata={"changes": changes},
    )
    return village
