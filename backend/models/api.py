"""Request and response models for the query API."""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys while keeping snake_case attributes."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HistoryTurn(CamelModel):
    """One prior message of the conversation, as supplied by the caller."""
    role: Literal["user", "assistant"]
    content: str = ""


class QueryRequest(CamelModel):
    """Body of POST /query."""
    question: str = ""
    locale: Optional[str] = None
    top_k: Optional[int] = None
    session_id: Optional[str] = None
    history: List[HistoryTurn] = Field(default_factory=list)
    retrieval_question: Optional[str] = None


class Source(CamelModel):
    """Citation for one source document that contributed context."""
    source_id: str
    title: str
    locale: str = ""
    url: str = ""
    score: float = 0.0


class QueryResponse(CamelModel):
    """Body returned by POST /query."""
    ok: bool = True
    model: str
    answer_locale: str
    preferred_locale: str
    answer: str
    sources: List[Source] = Field(default_factory=list)
