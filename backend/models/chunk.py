"""Chunk, point and retrieval hit data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class Chunk:
    """A bounded-length slice of a source document's text plus its parent metadata."""
    source_id: str
    title: str
    locale: str
    url: str
    updated_at: Optional[str]
    chunk_index: int  # zero-based position within the parent document
    text: str

    @property
    def chunk_id(self) -> str:
        """Key the deterministic point id is derived from, e.g. "content:page.home:en:0"."""
        return f"{self.source_id}:{self.chunk_index}"

    def to_payload(self) -> Dict[str, Any]:
        """Payload stored next to the vector."""
        return {
            "sourceId": self.source_id,
            "title": self.title,
            "locale": self.locale,
            "url": self.url,
            "updatedAt": self.updated_at,
            "chunkIndex": self.chunk_index,
            "text": self.text,
        }


@dataclass
class Point:
    """Unit persisted in the vector database."""
    id: str
    vector: List[float]
    payload: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "vector": self.vector, "payload": self.payload}


@dataclass
class RetrievalHit:
    """Point returned by a similarity search, with its score."""
    id: str
    score: float
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_result(cls, row: Dict[str, Any]) -> "RetrievalHit":
        """Build a hit from one entry of a Qdrant search response."""
        return cls(
            id=str(row.get("id", "")),
            score=float(row.get("score") or 0.0),
            payload=row.get("payload") or {},
        )

    @property
    def source_id(self) -> str:
        return str(self.payload.get("sourceId") or self.payload.get("title") or self.id or "source").strip()

    @property
    def title(self) -> str:
        return str(self.payload.get("title") or self.source_id)

    @property
    def locale(self) -> str:
        return str(self.payload.get("locale") or "")

    @property
    def url(self) -> str:
        return str(self.payload.get("url") or "")

    @property
    def text(self) -> str:
        return str(self.payload.get("text") or "").strip()
