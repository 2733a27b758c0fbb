"""Retrieval engine for orchestrating query embedding and locale-aware chunk retrieval."""
import logging
from typing import Iterable, List, Optional, Sequence

from models.chunk import RetrievalHit
from models.conversation import Turn, USER
from models.api import Source
from services.chunking_engine import normalize_whitespace
from services.vector_store import VectorStore
from services.embedding_model import EmbeddingModel
from config import RAG_TOP_K, RAG_MAX_CONTEXT_CHUNKS, RAG_MIN_TOP_SCORE, RAG_RELATIVE_SCORE_CUTOFF

logger = logging.getLogger(__name__)

MAX_PRIOR_USER_TURNS = 2
MAX_RETRIEVAL_PART_CHARS = 400


def build_retrieval_question(
    question: str,
    history: Sequence[Turn] = (),
    max_prior_turns: int = MAX_PRIOR_USER_TURNS,
    max_chars: int = MAX_RETRIEVAL_PART_CHARS
) -> str:
    """
    Fold recent user turns into the text used for vector search.

    Follow-ups like "is there parking there?" only retrieve well together
    with the turn that named the place, so the last few user turns are
    prepended to the question. Assistant turns are never included.

    Args:
        question: Current question
        history: Prior turns, oldest first
        max_prior_turns: How many earlier user turns to keep
        max_chars: Cap for each part after whitespace normalization

    Returns:
        Newline-joined retrieval question
    """
    prior = [
        normalize_whitespace(turn.content)[:max_chars]
        for turn in history
        if turn.role == USER and normalize_whitespace(turn.content)
    ]
    parts = prior[-max_prior_turns:] if max_prior_turns > 0 else []
    parts.append(normalize_whitespace(question)[:max_chars])

    folded: List[str] = []
    for part in parts:
        if part and (not folded or folded[-1] != part):
            folded.append(part)

    return "\n".join(folded)


def dedupe_hits(hits: Iterable[RetrievalHit]) -> List[RetrievalHit]:
    """Drop repeated point ids, keeping the first occurrence and the original order."""
    seen = set()
    unique = []
    for hit in hits:
        if not hit.id or hit.id in seen:
            continue
        seen.add(hit.id)
        unique.append(hit)
    return unique


def build_sources(hits: Iterable[RetrievalHit]) -> List[Source]:
    """One citation per source document, carrying the first score seen for it."""
    by_source = {}
    for hit in hits:
        source_id = hit.source_id
        if not source_id or source_id in by_source:
            continue
        by_source[source_id] = Source(
            source_id=source_id,
            title=hit.title,
            locale=hit.locale,
            url=hit.url,
            score=hit.score
        )
    return list(by_source.values())


class RetrievalEngine:
    """Embed the retrieval question and gather context hits, locale first."""

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_model: EmbeddingModel,
        max_context_chunks: int = RAG_MAX_CONTEXT_CHUNKS,
        min_top_score: float = RAG_MIN_TOP_SCORE,
        relative_score_cutoff: float = RAG_RELATIVE_SCORE_CUTOFF
    ):
        """
        Initialize the retrieval engine.

        Args:
            vector_store: VectorStore instance for similarity search
            embedding_model: EmbeddingModel instance for query embedding
            max_context_chunks: Upper bound on hits passed to the generator
            min_top_score: Results are discarded when the best score is below this
            relative_score_cutoff: Hits below this fraction of the best score are dropped
        """
        self.vector_store = vector_store
        self.embedding_model = embedding_model
        self.max_context_chunks = max_context_chunks
        self.min_top_score = min_top_score
        self.relative_score_cutoff = relative_score_cutoff
        logger.info("Initialized RetrievalEngine")

    def retrieve(
        self,
        query: str,
        locales: Sequence[Optional[str]] = (),
        top_k: int = RAG_TOP_K
    ) -> List[RetrievalHit]:
        """
        Retrieve context hits for a retrieval question.

        1. Embed the query and make sure the collection exists
        2. Search each locale scope in order until ``top_k`` distinct hits are found
        3. If still short, add one unscoped (global) search
        4. Dedupe by point id (scoped hits keep priority) and truncate to
           ``max_context_chunks``
        5. Drop everything if the best score is below ``min_top_score``
        6. Drop hits scoring below ``relative_score_cutoff`` times the best score

        Args:
            query: Retrieval question
            locales: Locale scopes in priority order; empty or None entries are skipped
            top_k: Hits requested per search

        Returns:
            Hits to use as context, possibly empty

        Raises:
            VectorStoreError: If the vector store fails
        """
        if not query or not query.strip():
            logger.warning("Empty query string provided, returning empty results")
            return []

        vector = self.embedding_model.embed_text(query)
        self.vector_store.ensure_collection(len(vector))

        scopes: List[str] = []
        for locale in locales:
            if locale and locale not in scopes:
                scopes.append(locale)

        scoped_hits: List[RetrievalHit] = []
        for scope in scopes:
            scoped_hits.extend(self.vector_store.search(vector, limit=top_k, locale=scope))
            if len(dedupe_hits(scoped_hits)) >= top_k:
                break

        global_hits: List[RetrievalHit] = []
        if len(dedupe_hits(scoped_hits)) < top_k:
            global_hits = self.vector_store.search(vector, limit=top_k)

        hits = self.merge_hits(scoped_hits, global_hits)
        if not hits:
            logger.info(f"No hits found (scopes={scopes or 'none'})")
            return []

        best_score = max(hit.score for hit in hits)
        if best_score < self.min_top_score:
            logger.info(
                f"Top score {best_score:.3f} below threshold {self.min_top_score:.3f}, "
                f"discarding {len(hits)} hits"
            )
            return []

        hits = self.filter_weak_hits(hits, best_score)

        logger.info(
            f"Retrieved {len(hits)} hits "
            f"(scoped={len(scoped_hits)}, global={len(global_hits)}, scopes={scopes or 'none'})"
        )
        return hits

    def merge_hits(
        self,
        scoped_hits: Sequence[RetrievalHit],
        global_hits: Sequence[RetrievalHit]
    ) -> List[RetrievalHit]:
        """Scoped hits first, then unseen global hits, capped at the context size."""
        return dedupe_hits(list(scoped_hits) + list(global_hits))[:self.max_context_chunks]

    def filter_weak_hits(self, hits: Sequence[RetrievalHit], best_score: float) -> List[RetrievalHit]:
        """Keep hits within ``relative_score_cutoff`` of the best one, preserving order."""
        if self.relative_score_cutoff <= 0 or best_score <= 0:
            return list(hits)

        floor = best_score * self.relative_score_cutoff
        kept = [hit for hit in hits if hit.score >= floor]
        if len(kept) < len(hits):
            logger.debug(f"Dropped {len(hits) - len(kept)} hits below score {floor:.3f}")
        return kept
