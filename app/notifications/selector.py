"""
Content selector - picks the book promoted by one broadcast cycle.

Two tiers:
  1. featured / new-release / rating >= threshold, random sample of 20
  2. any book, random sample of 10
Each tier is chosen from uniformly. No book at all means no broadcast.
"""

import logging
import random
from typing import Optional

from app.content.repository import ContentRepository
from app.content.schemas import PromotableContent

logger = logging.getLogger(__name__)


class ContentSelector:
    """Tiered random choice of promotable content."""

    def __init__(
        self,
        repository: ContentRepository,
        promotable_sample_size: int = 20,
        fallback_sample_size: int = 10,
        min_rating: float = 4.0,
        rng: Optional[random.Random] = None,
    ):
        self.repository = repository
        self.promotable_sample_size = promotable_sample_size
        self.fallback_sample_size = fallback_sample_size
        self.min_rating = min_rating
        self.rng = rng or random.Random()

    async def select_content(self) -> Optional[PromotableContent]:
        """Return one book snapshot, or None when the catalogue is empty."""
        pool = await self.repository.sample_promotable(
            self.promotable_sample_size, self.min_rating
        )
        if not pool:
            logger.info("[ContentSelector] No featured books found, sampling any books")
            pool = await self.repository.sample_any(self.fallback_sample_size)

        if not pool:
            logger.info("[ContentSelector] No books available")
            return None

        book = self.rng.choice(list(pool))
        logger.info(f"[ContentSelector] Selected book: {book.title} (ID: {book.id})")
        return PromotableContent.from_book(book)
