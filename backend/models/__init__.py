"""Data models for the Meri RAG service."""
from .document import SourceDocument
from .chunk import Chunk, Point, RetrievalHit
from .conversation import Turn
from .api import QueryRequest, QueryResponse, HistoryTurn, Source

__all__ = [
    "SourceDocument",
    "Chunk",
    "Point",
    "RetrievalHit",
    "Turn",
    "QueryRequest",
    "QueryResponse",
    "HistoryTurn",
    "Source",
]
