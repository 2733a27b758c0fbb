"""Content loading service: reads CMS content and hotel listings from MongoDB."""
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from pymongo.database import Database

from models.document import SourceDocument
from services.chunking_engine import flatten

logger = logging.getLogger(__name__)

SUPPORTED_LOCALES = ("en", "de", "tr")
DEFAULT_LOCALE = "en"
# Shorter flattened texts are treated as noise (labels, empty sections)
MIN_SOURCE_TEXT_LENGTH = 20

CONTENT_COLLECTION = "content_entries"
HOTEL_COLLECTION = "hotels"

PAGE_PATHS = {
    "page.home": "/",
    "page.services": "/services",
    "page.amenities": "/amenities",
    "page.reservation": "/reservation",
    "page.contact": "/contact",
}


def locale_prefix(locale: str) -> str:
    return "" if not locale or locale == DEFAULT_LOCALE else f"/{locale}"


def content_url_for_key(key: str, locale: str) -> str:
    """Public page a content entry is rendered on."""
    return f"{locale_prefix(locale)}{PAGE_PATHS.get(key, '/')}"


def hotel_url(slug: str, locale: str) -> str:
    return f"{locale_prefix(locale)}/hotels/{slug}"


def to_iso(value: Any) -> Optional[str]:
    """Render a stored timestamp as ISO-8601 (UTC 'Z' suffix for naive datetimes)."""
    if not value:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    return str(value)


class ContentLoader:
    """Materializes SourceDocuments from the CMS document store."""

    def __init__(self, db: Database, min_text_length: int = MIN_SOURCE_TEXT_LENGTH):
        """
        Initialize ContentLoader.

        Args:
            db: MongoDB database holding the CMS collections
            min_text_length: Documents with shorter flattened text are skipped
        """
        self.db = db
        self.min_text_length = min_text_length

    def load_documents(self) -> List[SourceDocument]:
        """Load content entries followed by hotel listings."""
        documents = self.load_content_entries() + self.load_hotels()
        logger.info(f"Loaded {len(documents)} source documents")
        return documents

    def load_content_entries(self) -> List[SourceDocument]:
        rows = self.db.get_collection(CONTENT_COLLECTION).find(
            {},
            {"_id": 0, "key": 1, "locale": 1, "value": 1, "updatedAt": 1}
        )

        documents = []
        for row in rows:
            key = str(row.get("key") or "").strip()
            locale = str(row.get("locale") or DEFAULT_LOCALE).strip()
            if not key:
                continue

            text = flatten(row.get("value"))
            if len(text) < self.min_text_length:
                logger.debug(f"Skipping content entry {key} ({locale}): text too short")
                continue

            documents.append(SourceDocument(
                source_id=f"content:{key}:{locale}",
                title=f"{key} ({locale})",
                locale=locale,
                url=content_url_for_key(key, locale),
                updated_at=to_iso(row.get("updatedAt")),
                text=text
            ))

        logger.info(f"Loaded {len(documents)} content entries")
        return documents

    def load_hotels(self) -> List[SourceDocument]:
        """One document per active hotel and locale that has localized data."""
        rows = self.db.get_collection(HOTEL_COLLECTION).find(
            {"active": {"$ne": False}},
            {"_id": 0, "slug": 1, "locales": 1, "updatedAt": 1}
        )

        documents = []
        for row in rows:
            slug = str(row.get("slug") or "").strip()
            if not slug:
                continue

            locales = row.get("locales") or {}
            for locale in SUPPORTED_LOCALES:
                data = locales.get(locale)
                if not isinstance(data, dict) or not data:
                    continue

                text = flatten(data)
                if len(text) < self.min_text_length:
                    continue

                documents.append(SourceDocument(
                    source_id=f"hotel:{slug}:{locale}",
                    title=f"hotel.{slug} ({locale})",
                    locale=locale,
                    url=hotel_url(slug, locale),
                    updated_at=to_iso(row.get("updatedAt")),
                    text=text
                ))

        logger.info(f"Loaded {len(documents)} hotel documents")
        return documents
