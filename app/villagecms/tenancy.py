"""
Village scoping for content queries.

Admin handlers filter by the identity's village; public handlers filter by the
visitor's village (falling back to DEFAULT_VILLAGE_ID) and by published status.
All content reads go through these helpers so the two filters are applied the
same way for every content type.
"""
from __future__ import annotations

from typing import Any, TypeVar

from flask import current_app
from sqlalchemy.orm import Query

from app.villagecms.constants import STATUS_PUBLISHED
from app.villagecms.rbac import current_identity

Q = TypeVar("Q", bound=Query)


def current_village_id() -> int:
    identity = current_identity()
    if identity is not None:
        return identity.village_id
    return int(current_app.config.get("DEFAULT_VILLAGE_ID", 1))


def scoped(query: Q, model: Any, village_id: int) -> Q:
    return query.filter(model.village_id == village_id)


def published(query: Q, model: Any, village_id: int) -> Q:
    return scoped(query, model, village_id).filter(model.status == STATUS_PUBLISHED)
