"""
Message composer - localized title/body for a (language, book) pair.

Two locales: English (primary) and Somali (localized). Any other language
gets the English template. Each slot falls back localized -> primary ->
placeholder, so composing never fails and never yields an empty slot.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict

from app.content.schemas import PromotableContent
from app.notifications.schemas import PushMessage

PRIMARY_LANGUAGE = "en"
LOCALIZED_LANGUAGE = "so"


class MessageKind(str, Enum):
    """Type tag carried in the push data payload."""
    RANDOM_BOOK = "random_book"
    TEST = "test"


@dataclass(frozen=True)
class MessageTemplate:
    title: str
    book_placeholder: str
    author_placeholder: str
    description_placeholder: str


TEMPLATES: Dict[MessageKind, Dict[str, MessageTemplate]] = {
    MessageKind.RANDOM_BOOK: {
        PRIMARY_LANGUAGE: MessageTemplate(
            title="📚 Featured Book Alert!",
            book_placeholder="Book",
            author_placeholder="Author",
            description_placeholder="Discover this amazing book from our homepage collections!",
        ),
        LOCALIZED_LANGUAGE: MessageTemplate(
            title="📚 Buug Xiiso Leh!",
            book_placeholder="Buug",
            author_placeholder="Qoraaga",
            description_placeholder="Buug xiiso leh oo ka mid ah kuwa bogga hore!",
        ),
    },
    MessageKind.TEST: {
        PRIMARY_LANGUAGE: MessageTemplate(
            title="📚 Test Book Alert!",
            book_placeholder="Book",
            author_placeholder="Author",
            description_placeholder="This is a test notification with a real book from Teekoob!",
        ),
        LOCALIZED_LANGUAGE: MessageTemplate(
            title="📚 Tijaabada Buug!",
            book_placeholder="Buug",
            author_placeholder="Qoraaga",
            description_placeholder="Buug xiiso leh oo ka mid ah kuwa bogga hore!",
        ),
    },
}


def locale_for(language: str) -> str:
    """Map a user language preference onto a supported template locale."""
    if language and language.strip().lower() == LOCALIZED_LANGUAGE:
        return LOCALIZED_LANGUAGE
    return PRIMARY_LANGUAGE


class MessageComposer:
    """Renders push messages from book snapshots."""

    def __init__(self, platform: str = "mobile"):
        self.platform = platform

    def compose(
        self,
        language: str,
        content: PromotableContent,
        kind: MessageKind = MessageKind.RANDOM_BOOK,
    ) -> PushMessage:
        locale = locale_for(language)
        template = TEMPLATES[kind][locale]
        use_localized = locale == LOCALIZED_LANGUAGE

        book_title = content.title.resolve(use_localized, template.book_placeholder)
        author = content.author.resolve(use_localized, template.author_placeholder)
        description = content.description.resolve(
            use_localized, template.description_placeholder
        )

        return PushMessage(
            title=template.title,
            body=f"{book_title}\n\n{author}\n\n{description}",
            data=self.build_data(content, kind),
        )

    def build_data(self, content: PromotableContent, kind: MessageKind) -> Dict[str, str]:
        """Structured payload sent alongside the text; not localized, string values only."""
        return {
            "bookId": content.id,
            "type": kind.value,
            "platform": self.platform,
            "bookTitle": content.title.primary or "",
            "bookTitleSomali": content.title.localized or content.title.primary or "",
            "coverImage": content.cover_image_url,
            "isFeatured": "true" if content.is_featured else "false",
            "isNewRelease": "true" if content.is_new_release else "false",
            "rating": str(content.rating) if content.rating else "0",
        }
