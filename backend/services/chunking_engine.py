"""Chunking engine: flattens CMS content trees and splits text into overlapping chunks."""
import logging
import math
import re
from typing import Dict, List, Union

from models.document import SourceDocument
from models.chunk import Chunk
from config import RAG_CHUNK_SIZE, RAG_CHUNK_OVERLAP

logger = logging.getLogger(__name__)

# Any value a CMS content entry can hold once decoded from BSON/JSON.
JSONValue = Union[str, int, float, bool, None, List["JSONValue"], Dict[str, "JSONValue"]]

MAX_FLATTEN_DEPTH = 6
# Boundary back-off never moves a window end below this fraction of the window.
MIN_WINDOW_FRACTION = 0.6

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim."""
    return _WHITESPACE.sub(" ", str(text or "")).strip()


def flatten(value: JSONValue, level: int = 0) -> str:
    """
    Convert a nested content value into plain search text.

    Strings are trimmed, numbers and booleans stringified, lists joined by
    newline and mappings rendered as ``key: value`` lines. Empty results are
    dropped. Anything deeper than ``MAX_FLATTEN_DEPTH`` levels is ignored,
    which also stops cyclic structures.

    Args:
        value: Decoded content value
        level: Current recursion depth

    Returns:
        Flattened text, possibly empty
    """
    if level > MAX_FLATTEN_DEPTH or value is None:
        return ""

    if isinstance(value, str):
        return value.strip()

    # bool is a subclass of int, so it has to be matched first
    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, (int, float)):
        return str(value)

    if isinstance(value, (list, tuple)):
        parts = [flatten(item, level + 1) for item in value]
        return "\n".join(part for part in parts if part)

    if isinstance(value, dict):
        lines = []
        for key, item in value.items():
            nested = flatten(item, level + 1)
            if not nested:
                continue
            lines.append(f"{key}: {nested}")
        return "\n".join(lines)

    return ""


def chunk_text(text: str, max_len: int = RAG_CHUNK_SIZE, overlap: int = RAG_CHUNK_OVERLAP) -> List[str]:
    """
    Split text into overlapping, length-bounded pieces.

    The input is whitespace-normalized first. Windows of ``max_len`` characters
    are cut at the last space when one exists past 60% of the window, so words
    are not split; the next window starts ``overlap`` characters before the
    previous end.

    Args:
        text: Text to split
        max_len: Maximum chunk length in characters
        overlap: Characters shared by consecutive chunks

    Returns:
        Ordered list of chunks (empty for blank input)
    """
    max_len = max(1, int(max_len))
    overlap = max(0, int(overlap))
    normalized = normalize_whitespace(text)

    if not normalized:
        return []
    if len(normalized) <= max_len:
        return [normalized]

    chunks: List[str] = []
    start = 0
    total = len(normalized)

    while start < total:
        end = min(start + max_len, total)
        if end < total:
            probe_start = start + math.floor(max_len * MIN_WINDOW_FRACTION)
            last_space = normalized.rfind(" ", 0, end + 1)
            if last_space > probe_start:
                end = last_space

        piece = normalized[start:end].strip()
        if piece:
            chunks.append(piece)

        if end >= total:
            break

        next_start = max(0, end - overlap)
        # overlap >= window would otherwise never advance
        start = next_start if next_start > start else end

    return chunks


class ChunkingEngine:
    """Segments source documents into retrievable chunks."""

    def __init__(self, chunk_size: int = RAG_CHUNK_SIZE, chunk_overlap: int = RAG_CHUNK_OVERLAP):
        """
        Initialize ChunkingEngine.

        Args:
            chunk_size: Maximum chunk length in characters
            chunk_overlap: Overlap between consecutive chunks in characters
        """
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def chunk_document(self, document: SourceDocument) -> List[Chunk]:
        """Chunk one document, copying its metadata onto every chunk."""
        pieces = chunk_text(document.text, self.chunk_size, self.chunk_overlap)
        return [
            Chunk(
                source_id=document.source_id,
                title=document.title,
                locale=document.locale,
                url=document.url,
                updated_at=document.updated_at,
                chunk_index=idx,
                text=piece,
            )
            for idx, piece in enumerate(pieces)
        ]

    def chunk_documents(self, documents: List[SourceDocument]) -> List[Chunk]:
        """Chunk documents into one flat, ordered list."""
        all_chunks: List[Chunk] = []
        for document in documents:
            chunks = self.chunk_document(document)
            logger.debug(f"Chunked {document.source_id} into {len(chunks)} chunks")
            all_chunks.extend(chunks)

        logger.info(f"Created {len(all_chunks)} chunks from {len(documents)} documents")
        return all_chunks
