"""Offline indexer: CMS content -> chunks -> embeddings -> vector store."""
import hashlib
import logging
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional

from models.chunk import Chunk, Point
from services.chunking_engine import ChunkingEngine
from services.content_loader import ContentLoader
from services.embedding_model import EmbeddingModel
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 32

ProgressCallback = Callable[[int, int], None]


def stable_point_id(key: str) -> str:
    """
    Deterministic UUID-shaped id for a chunk key such as "content:page.home:en:0".

    The first 32 hex digits of the SHA-1 digest are used, with the version
    nibble forced to 5 and the variant bits to the RFC 4122 layout.
    """
    chars = list(hashlib.sha1(key.encode("utf-8")).hexdigest()[:32])
    chars[12] = "5"
    chars[16] = format((int(chars[16], 16) & 0x3) | 0x8, "x")
    return str(uuid.UUID("".join(chars)))


@dataclass
class IndexReport:
    """Summary of one indexing run."""
    documents: int = 0
    chunks: int = 0
    points_upserted: int = 0
    dimension: int = 0


class Indexer:
    """Rebuilds the vector collection from the current CMS content."""

    def __init__(
        self,
        content_loader: ContentLoader,
        chunking_engine: ChunkingEngine,
        embedding_model: EmbeddingModel,
        vector_store: VectorStore,
        batch_size: int = DEFAULT_BATCH_SIZE
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")

        self.content_loader = content_loader
        self.chunking_engine = chunking_engine
        self.embedding_model = embedding_model
        self.vector_store = vector_store
        self.batch_size = batch_size

    def build_point(self, chunk: Chunk) -> Point:
        """Embed a chunk and wrap it as a point with its deterministic id."""
        return Point(
            id=stable_point_id(chunk.chunk_id),
            vector=self.embedding_model.embed_text(chunk.text),
            payload=chunk.to_payload()
        )

    def run(self, progress: Optional[ProgressCallback] = None) -> IndexReport:
        """
        Index all content.

        Any failure (loading, embedding, upsert) propagates and aborts the run;
        re-running is safe because point ids are deterministic.

        Args:
            progress: Called with (processed, total) after each upserted batch

        Returns:
            IndexReport describing what was written
        """
        report = IndexReport()

        documents = self.content_loader.load_documents()
        report.documents = len(documents)
        if not documents:
            logger.info("No source documents found, nothing to index")
            return report

        chunks = self.chunking_engine.chunk_documents(documents)
        report.chunks = len(chunks)
        if not chunks:
            logger.info("No chunks generated, nothing to index")
            return report

        report.dimension = len(self.embedding_model.embed_text(chunks[0].text))
        self.vector_store.ensure_collection(report.dimension)

        total = len(chunks)
        for start in range(0, total, self.batch_size):
            batch = chunks[start:start + self.batch_size]
            points = [self.build_point(chunk) for chunk in batch]
            self.vector_store.upsert_points(points)

            report.points_upserted += len(points)
            logger.info(f"Upserted {report.points_upserted} / {total}")
            if progress:
                progress(report.points_upserted, total)

        logger.info(
            f"Indexing done: {report.documents} documents, {report.chunks} chunks, "
            f"dimension {report.dimension}"
        )
        return report
