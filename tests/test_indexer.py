"""Unit tests for the offline Indexer."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import re
import uuid
import pytest
from unittest.mock import Mock
from models.chunk import Chunk
from models.document import SourceDocument
from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel
from services.indexer import Indexer, stable_point_id

UUID_SHAPE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-5[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


class InMemoryStore:
    """Vector store stand-in keyed by point id."""

    def __init__(self):
        self.points = {}
        self.dimensions = []
        self.batches = []

    def ensure_collection(self, dimension):
        self.dimensions.append(dimension)

    def upsert_points(self, points):
        self.batches.append(len(points))
        for point in points:
            self.points[point.id] = point


def _chunks(count):
    return [
        Chunk(
            source_id="content:page.home:en",
            title="page.home (en)",
            locale="en",
            url="/",
            updated_at=None,
            chunk_index=i,
            text=f"Serviced apartments chunk number {i}",
        )
        for i in range(count)
    ]


class TestStablePointId:
    """Test suite for deterministic point ids."""

    def test_uuid_shape_version_and_variant(self):
        """Test ids look like RFC 4122 version-5 UUIDs."""
        point_id = stable_point_id("content:page.home:en:0")

        assert UUID_SHAPE.match(point_id)
        parsed = uuid.UUID(point_id)
        assert parsed.version == 5
        assert parsed.variant == uuid.RFC_4122

    def test_deterministic_and_distinct(self):
        """Test the same key always maps to the same id and different keys differ."""
        assert stable_point_id("content:page.home:en:0") == stable_point_id("content:page.home:en:0")
        assert stable_point_id("content:page.home:en:0") != stable_point_id("content:page.home:en:1")
        assert stable_point_id("hotel:flamingo:de:0") != stable_point_id("hotel:flamingo:en:0")


class TestIndexer:
    """Test suite for Indexer.run()."""

    def _indexer(self, chunks, store, batch_size=2):
        content_loader = Mock()
        content_loader.load_documents.return_value = [Mock()]
        chunking_engine = Mock()
        chunking_engine.chunk_documents.return_value = chunks
        return Indexer(
            content_loader=content_loader,
            chunking_engine=chunking_engine,
            embedding_model=EmbeddingModel(provider="local", dimension=16),
            vector_store=store,
            batch_size=batch_size,
        )

    def test_upserts_in_batches_with_progress(self):
        """Test chunks are written in batches and progress is reported per batch."""
        store = InMemoryStore()
        progress = Mock()

        report = self._indexer(_chunks(5), store).run(progress=progress)

        assert store.batches == [2, 2, 1]
        assert [c[0] for c in progress.call_args_list] == [(2, 5), (4, 5), (5, 5)]
        assert report.points_upserted == 5
        assert report.chunks == 5
        assert report.dimension == 16
        assert store.dimensions == [16]

    def test_points_carry_payload_and_stable_ids(self):
        """Test each point id derives from its chunk key and the payload is the chunk."""
        store = InMemoryStore()
        chunks = _chunks(1)

        self._indexer(chunks, store).run()

        point = store.points[stable_point_id("content:page.home:en:0")]
        assert point.payload == chunks[0].to_payload()
        assert len(point.vector) == 16

    def test_rerun_is_idempotent(self):
        """Test indexing the same content twice leaves the same point set."""
        store = InMemoryStore()
        indexer = self._indexer(_chunks(3), store)

        indexer.run()
        first = {pid: point.vector for pid, point in store.points.items()}
        indexer.run()

        assert {pid: point.vector for pid, point in store.points.items()} == first

    def test_no_documents_touches_nothing(self):
        """Test an empty CMS writes nothing and creates no collection."""
        store = InMemoryStore()
        indexer = self._indexer([], store)
        indexer.content_loader.load_documents.return_value = []

        report = indexer.run()

        assert report.documents == 0
        assert store.dimensions == []
        assert store.batches == []

    def test_upsert_failure_aborts_run(self):
        """Test a store failure propagates to the caller."""
        store = Mock()
        store.upsert_points.side_effect = RuntimeError("qdrant down")

        with pytest.raises(RuntimeError, match="qdrant down"):
            self._indexer(_chunks(3), store).run()

    def test_end_to_end_with_real_chunking(self):
        """Test loader documents flow through chunking into points."""
        store = InMemoryStore()
        document = SourceDocument(
            source_id="hotel:flamingo:en",
            title="hotel.flamingo (en)",
            locale="en",
            url="/hotels/flamingo",
            updated_at=None,
            text=" ".join(f"word{i}" for i in range(60)),
        )
        content_loader = Mock()
        content_loader.load_documents.return_value = [document]

        Indexer(
            content_loader=content_loader,
            chunking_engine=ChunkingEngine(chunk_size=100, chunk_overlap=20),
            embedding_model=EmbeddingModel(provider="local", dimension=16),
            vector_store=store,
        ).run()

        assert len(store.points) > 1
        assert all(p.payload["sourceId"] == "hotel:flamingo:en" for p in store.points.values())

    def test_batch_size_must_be_positive(self):
        """Test a zero batch size is rejected."""
        with pytest.raises(ValueError):
            self._indexer([], InMemoryStore(), batch_size=0)
