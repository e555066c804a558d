from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.villagecms.models import Base


class ContentMixin:
    """Columns shared by every village-owned, publishable content type."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    village_id: Mapped[int] = mapped_column(ForeignKey("villages.id", ondelete="CASCADE"), nullable=False)
    author_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="draft")  # draft, published

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)


class Article(ContentMixin, Base):
    __tablename__ = "articles"
    __table_args__ = (
        Index("idx_articles_village_status", "village_id", "status"),
    )

    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)


class NewsItem(ContentMixin, Base):
    __tablename__ = "news"
    __table_args__ = (
        Index("idx_news_village_status", "village_id", "status"),
    )

    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)


class Page(ContentMixin, Base):
    __tablename__ = "pages"
    __table_args__ = (
        UniqueConstraint("village_id", "slug", name="uq_pages_village_slug"),
        Index("idx_pages_village_status", "village_id", "status"),
    )

    slug: Mapped[str] = mapped_column(String(255), nullable=False)
