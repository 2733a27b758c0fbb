"""Unit tests for ContentLoader."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from datetime import datetime
from unittest.mock import MagicMock
from services.content_loader import ContentLoader, content_url_for_key, hotel_url, to_iso

LONG_HERO = {"hero": {"title": "Welcome to Meri Boarding", "subtitle": "Serviced apartments in Stuttgart"}}
FLAMINGO_EN = {"name": "Flamingo", "description": "Furnished apartments close to Stuttgart city centre."}
FLAMINGO_DE = {"name": "Flamingo", "description": "Möblierte Apartments nahe der Stuttgarter Innenstadt."}


def _db(content_rows=(), hotel_rows=()):
    """MagicMock database whose collections return fixed rows."""
    collections = {
        "content_entries": MagicMock(),
        "hotels": MagicMock(),
    }
    collections["content_entries"].find.return_value = list(content_rows)
    collections["hotels"].find.return_value = list(hotel_rows)

    db = MagicMock()
    db.get_collection.side_effect = lambda name: collections[name]
    return db, collections


class TestUrlHelpers:
    """Test suite for URL helpers."""

    def test_content_urls(self):
        """Test known page keys map to their path, prefixed for non-default locales."""
        assert content_url_for_key("page.home", "en") == "/"
        assert content_url_for_key("page.services", "de") == "/de/services"
        assert content_url_for_key("page.unknown", "tr") == "/tr/"

    def test_hotel_urls(self):
        """Test hotel pages live under /hotels/<slug>."""
        assert hotel_url("flamingo", "en") == "/hotels/flamingo"
        assert hotel_url("flamingo", "tr") == "/tr/hotels/flamingo"

    def test_to_iso(self):
        """Test naive datetimes are rendered as UTC with a Z suffix."""
        assert to_iso(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05Z"
        assert to_iso(None) is None
        assert to_iso("2024-01-02") == "2024-01-02"


class TestContentLoader:
    """Test suite for ContentLoader."""

    def test_load_content_entries(self):
        """Test content entries become documents with id, title and URL."""
        db, _ = _db(content_rows=[
            {"key": "page.home", "locale": "en", "value": LONG_HERO, "updatedAt": datetime(2024, 1, 2, 3, 4, 5)},
            {"key": "page.services", "locale": "de", "value": LONG_HERO},
        ])

        documents = ContentLoader(db).load_content_entries()

        assert [doc.source_id for doc in documents] == ["content:page.home:en", "content:page.services:de"]
        home = documents[0]
        assert home.title == "page.home (en)"
        assert home.url == "/"
        assert home.updated_at == "2024-01-02T03:04:05Z"
        assert "title: Welcome to Meri Boarding" in home.text
        assert documents[1].url == "/de/services"

    def test_short_and_keyless_entries_skipped(self):
        """Test entries with too little text or no key are dropped."""
        db, _ = _db(content_rows=[
            {"key": "page.contact", "locale": "en", "value": "Hi"},
            {"key": "", "locale": "en", "value": LONG_HERO},
        ])

        assert ContentLoader(db).load_content_entries() == []

    def test_load_hotels_per_locale(self):
        """Test one document per locale with localized data."""
        db, collections = _db(hotel_rows=[
            {"slug": "flamingo", "locales": {"en": FLAMINGO_EN, "de": FLAMINGO_DE, "tr": {}}},
        ])

        documents = ContentLoader(db).load_hotels()

        assert [doc.source_id for doc in documents] == ["hotel:flamingo:en", "hotel:flamingo:de"]
        assert documents[0].title == "hotel.flamingo (en)"
        assert documents[1].url == "/de/hotels/flamingo"
        assert collections["hotels"].find.call_args[0][0] == {"active": {"$ne": False}}

    def test_hotel_without_slug_skipped(self):
        """Test hotels without a slug are ignored."""
        db, _ = _db(hotel_rows=[{"slug": "", "locales": {"en": FLAMINGO_EN}}])

        assert ContentLoader(db).load_hotels() == []

    def test_load_documents_orders_content_before_hotels(self):
        """Test the combined load keeps content entries first."""
        db, _ = _db(
            content_rows=[{"key": "page.home", "locale": "en", "value": LONG_HERO}],
            hotel_rows=[{"slug": "flamingo", "locales": {"en": FLAMINGO_EN}}],
        )

        documents = ContentLoader(db).load_documents()

        assert [doc.source_id for doc in documents] == ["content:page.home:en", "hotel:flamingo:en"]

    def test_min_text_length_configurable(self):
        """Test the length threshold can be lowered."""
        db, _ = _db(content_rows=[{"key": "page.contact", "locale": "en", "value": "Call us"}])

        documents = ContentLoader(db, min_text_length=5).load_content_entries()

        assert len(documents) == 1
