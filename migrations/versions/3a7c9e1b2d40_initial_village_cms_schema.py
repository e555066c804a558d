"""initial village cms schema

Revision ID: 3a7c9e1b2d40
Revises:
Create Date: 2026-10-12 09:15:42.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3a7c9e1b2d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _content_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("village_id", sa.Integer(), sa.ForeignKey("villages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create villages, users, content, menu and audit tables."""
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = set(inspector.get_table_names())

    if "villages" not in existing_tables:
        op.create_table(
            "villages",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("theme_color", sa.String(32), nullable=True),
            sa.Column("contact_email", sa.String(320), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("email", sa.String(320), nullable=False, unique=True),
            sa.Column("password_hash", sa.String(255), nullable=False),
            sa.Column("role", sa.String(32), nullable=False, server_default="admin"),
            sa.Column("village_id", sa.Integer(), sa.ForeignKey("villages.id", ondelete="CASCADE"), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_users_village_id", "users", ["village_id"])

    if "articles" not in existing_tables:
        op.create_table("articles", *_content_columns(), sa.Column("excerpt", sa.Text(), nullable=True))
        op.create_index("idx_articles_village_status", "articles", ["village_id", "status"])

    if "news" not in existing_tables:
        op.create_table("news", *_content_columns(), sa.Column("excerpt", sa.Text(), nullable=True))
        op.create_index("idx_news_village_status", "news", ["village_id", "status"])

    if "pages" not in existing_tables:
        op.create_table(
            "pages",
            *_content_columns(),
            sa.Column("slug", sa.String(255), nullable=False),
            sa.UniqueConstraint("village_id", "slug", name="uq_pages_village_slug"),
        )
        op.create_index("idx_pages_village_status", "pages", ["village_id", "status"])

    if "menu_items" not in existing_tables:
        op.create_table(
            "menu_items",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("village_id", sa.Integer(), sa.ForeignKey("villages.id", ondelete="CASCADE"), nullable=False),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("url", sa.String(1024), nullable=False),
            sa.Column("type", sa.String(32), nullable=False, server_default="custom"),
            sa.Column("order_index", sa.Integer(), nullable=False, server_default="999"),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_menu_items_village_order", "menu_items", ["village_id", "order_index"])

    if "audit_events" not in existing_tables:
        op.create_table(
            "audit_events",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("request_id", sa.String(64), nullable=True),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
            sa.Column("actor_user_email", sa.String(320), nullable=True),
            sa.Column("village_id", sa.Integer(), sa.ForeignKey("villages.id", ondelete="SET NULL"), nullable=True),
            sa.Column("action", sa.String(128), nullable=False),
            sa.Column("entity_type", sa.String(128), nullable=True),
            sa.Column("entity_id", sa.String(128), nullable=True),
            sa.Column("reason", sa.String(512), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("client_ip", sa.String(64), nullable=True),
        )


def downgrade() -> None:
    for table in ("audit_events", "menu_items", "pages", "news", "articles", "users", "villages"):
        op.drop_table(table)
