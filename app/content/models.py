"""
SQLAlchemy model for the books table.

Owned by the catalogue service; only the columns needed to promote a
book are mapped here.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Book(Base):
    """Catalogue book (read-only)."""

    __tablename__ = "books"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    title_somali: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description_somali: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Plain names or a JSON-encoded list of names
    authors: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    authors_somali: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    cover_image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    rating: Mapped[Optional[float]] = mapped_column(
        Numeric(3, 2, asdecimal=False), nullable=True
    )
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_new_release: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title={self.title})>"
