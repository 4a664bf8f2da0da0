"""
Value types for promotable content.

Localized text columns arrive in several shapes (plain text, JSON-encoded
lists of author names, empty strings). They are normalized here, once, into
`LocalizedText` so the composer never has to inspect raw column values.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

from app.content.models import Book


def normalize_text(raw: Any) -> Optional[str]:
    """
    Collapse a raw column value into a single display string.

    - None / blank -> None
    - JSON list ("[\"A\", \"B\"]") -> first non-blank entry
    - anything else -> stripped string
    """
    if raw is None:
        return None
    if isinstance(raw, (list, tuple)):
        for item in raw:
            value = normalize_text(item)
            if value:
                return value
        return None

    text = str(raw).strip()
    if not text:
        return None

    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except ValueError:
            return text
        if isinstance(decoded, list):
            return normalize_text(decoded)
    return text


@dataclass(frozen=True)
class LocalizedText:
    """A primary-language string with an optional localized variant."""
    primary: Optional[str]
    localized: Optional[str] = None

    @classmethod
    def from_raw(cls, primary: Any, localized: Any = None) -> "LocalizedText":
        return cls(primary=normalize_text(primary), localized=normalize_text(localized))

    def resolve(self, use_localized: bool, placeholder: str) -> str:
        """localized -> primary -> placeholder; never returns an empty string."""
        if use_localized and self.localized:
            return self.localized
        return self.primary or placeholder


@dataclass(frozen=True)
class PromotableContent:
    """Immutable snapshot of a book taken at selection time."""
    id: str
    title: LocalizedText
    description: LocalizedText
    author: LocalizedText
    cover_image_url: str
    is_featured: bool
    is_new_release: bool
    rating: float

    @classmethod
    def from_book(cls, book: Book) -> "PromotableContent":
        return cls(
            id=str(book.id),
            title=LocalizedText.from_raw(book.title, book.title_somali),
            description=LocalizedText.from_raw(book.description, book.description_somali),
            author=LocalizedText.from_raw(book.authors, book.authors_somali),
            cover_image_url=book.cover_image_url or "",
            is_featured=bool(book.is_featured),
            is_new_release=bool(book.is_new_release),
            rating=float(book.rating or 0),
        )

    def summary(self) -> dict:
        """Plain dict used in API responses."""
        return {
            "id": self.id,
            "title": self.title.primary,
            "title_somali": self.title.localized,
            "author": self.author.primary or "Unknown Author",
            "is_featured": self.is_featured,
            "is_new_release": self.is_new_release,
            "rating": self.rating,
        }
