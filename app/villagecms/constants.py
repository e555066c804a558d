"""
Central constants for the Village CMS application.
"""
from __future__ import annotations

ROLE_ADMIN = "admin"
ROLE_EDITOR = "editor"
VALID_ROLES = frozenset({ROLE_ADMIN, ROLE_EDITOR})

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"
VALID_STATUSES = (STATUS_DRAFT, STATUS_PUBLISHED)

MENU_TYPES = ("custom", "page", "article", "news")
MENU_APPEND_INDEX = 999

# Fixed session lifetime, counted from login (not refreshed by activity).
SESSION_LIFETIME_HOURS = 24

PUBLIC_PAGE_SIZE = 10
HOME_NEWS_LIMIT = 5
HOME_ARTICLES_LIMIT = 3
DASHBOARD_RECENT_LIMIT = 5
