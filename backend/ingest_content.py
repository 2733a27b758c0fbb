"""
Content ingestion script for the Meri RAG service.

This script:
1. Loads CMS content entries and active hotels from MongoDB
2. Flattens and chunks them per locale
3. Embeds each chunk
4. Upserts the points into Qdrant with deterministic ids

Re-running is safe: unchanged chunks overwrite their own points.

Usage:
    python ingest_content.py [--batch-size N]
"""
import argparse
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from pymongo import MongoClient

from config import (
    LOG_LEVEL,
    LOG_FORMAT,
    MONGODB_URI,
    MONGODB_DB,
    QDRANT_COLLECTION,
)
from logger import setup_logging
from services.chunking_engine import ChunkingEngine
from services.content_loader import ContentLoader
from services.embedding_model import EmbeddingModel
from services.indexer import DEFAULT_BATCH_SIZE, Indexer
from services.vector_store import VectorStore

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index CMS content into the vector store.")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Points per upsert request (default: {DEFAULT_BATCH_SIZE})"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main ingestion process."""
    args = parse_args(argv)
    setup_logging(LOG_LEVEL, LOG_FORMAT)

    logger.info(f"Starting content ingestion into collection {QDRANT_COLLECTION}")

    vector_store = VectorStore()
    try:
        with MongoClient(MONGODB_URI) as mongo:
            indexer = Indexer(
                content_loader=ContentLoader(mongo[MONGODB_DB]),
                chunking_engine=ChunkingEngine(),
                embedding_model=EmbeddingModel(),
                vector_store=vector_store,
                batch_size=args.batch_size
            )
            report = indexer.run()
    except Exception as e:
        logger.error(f"Ingestion failed: {e}", exc_info=True)
        return 1
    finally:
        vector_store.close()

    logger.info(
        f"Ingestion complete: documents={report.documents}, chunks={report.chunks}, "
        f"points={report.points_upserted}, dimension={report.dimension}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
