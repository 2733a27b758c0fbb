"""Source document data models."""
from dataclasses import dataclass
from typing import Optional


@dataclass
class SourceDocument:
    """One piece of indexable CMS content, materialized during an indexing run."""
    source_id: str  # Format: "content:{key}:{locale}" or "hotel:{slug}:{locale}"
    title: str
    locale: str
    url: str
    updated_at: Optional[str]  # ISO-8601
    text: str  # flattened searchable text
