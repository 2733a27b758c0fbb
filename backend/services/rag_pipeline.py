"""Online query path: validation, policy, retrieval, generation."""
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from models.api import Source
from models.conversation import Turn
from services import policy
from services.answer_generator import AnswerGenerator
from services.chunking_engine import normalize_whitespace
from services.llm_client import LLMClientError
from services.locale_resolver import language_name, normalize_locale, resolve_answer_locale
from services.retrieval_engine import RetrievalEngine, build_retrieval_question, build_sources
from config import RAG_TOP_K

logger = logging.getLogger(__name__)

MIN_QUESTION_CHARS = 3
MAX_QUESTION_CHARS = 2000
MIN_TOP_K = 1
MAX_TOP_K = 12


class InvalidQuestionError(ValueError):
    """The question is missing, too short or too long."""


@dataclass
class RagAnswer:
    """Result of one query."""
    answer: str
    model: str
    answer_locale: str
    preferred_locale: str
    sources: List[Source] = field(default_factory=list)


def validate_question(question: Optional[str]) -> str:
    """
    Trim and bound-check a question.

    Raises:
        InvalidQuestionError: If shorter than 3 or longer than 2000 characters
    """
    text = str(question or "").strip()
    if len(text) < MIN_QUESTION_CHARS:
        raise InvalidQuestionError(f"Question must be at least {MIN_QUESTION_CHARS} characters.")
    if len(text) > MAX_QUESTION_CHARS:
        raise InvalidQuestionError(f"Question must be at most {MAX_QUESTION_CHARS} characters.")
    return text


def clamp_top_k(top_k: Optional[int], default: int = RAG_TOP_K) -> int:
    value = top_k if top_k else default
    return max(MIN_TOP_K, min(MAX_TOP_K, int(value)))


class RagPipeline:
    """Answers one guest question from indexed content."""

    def __init__(
        self,
        retrieval_engine: RetrievalEngine,
        answer_generator: AnswerGenerator,
        default_top_k: int = RAG_TOP_K
    ):
        self.retrieval_engine = retrieval_engine
        self.answer_generator = answer_generator
        self.default_top_k = default_top_k

    def answer(
        self,
        question: str,
        locale: Optional[str] = None,
        top_k: Optional[int] = None,
        history: Sequence[Turn] = (),
        session_id: Optional[str] = None,
        retrieval_question: Optional[str] = None
    ) -> RagAnswer:
        """
        Answer a question.

        Steps:
        1. Validate the question and resolve the answer locale
        2. Return a policy reply for price and fact-shortcut questions
        3. Retrieve context (locale scopes first, then global)
        4. Without context, return the "no relevant content" reply without calling the model
        5. Generate; generation failures become a localized apology
        6. Replace answers that leak a price with the reservation hand-off

        Raises:
            InvalidQuestionError: For invalid questions (no downstream calls made)
            VectorStoreError: If the vector store is unavailable
        """
        start_time = time.time()
        question = validate_question(question)
        requested_locale = normalize_locale(locale)
        if locale and not requested_locale:
            logger.debug(f"Ignoring unsupported locale '{locale}'")

        answer_locale = resolve_answer_locale(question, requested_locale)
        preferred = language_name(requested_locale) if requested_locale else "none"
        top_k = clamp_top_k(top_k, self.default_top_k)

        shortcut = policy.shortcut_reply(question, answer_locale)
        if shortcut:
            logger.info(
                f"Policy reply {shortcut.model} ({shortcut.fact_id or 'price'}) "
                f"session={session_id or '-'} locale={answer_locale}"
            )
            return RagAnswer(shortcut.answer, shortcut.model, answer_locale, preferred, shortcut.sources)

        search_text = (
            normalize_whitespace(retrieval_question or "")[:MAX_QUESTION_CHARS]
            or build_retrieval_question(question, history)
        )
        hits = self.retrieval_engine.retrieve(
            search_text,
            locales=[answer_locale, requested_locale],
            top_k=top_k
        )

        if not hits:
            logger.info(f"No context found, session={session_id or '-'} locale={answer_locale}")
            return RagAnswer(
                policy.no_context_message(answer_locale),
                policy.MODEL_NO_CONTEXT,
                answer_locale,
                preferred
            )

        try:
            generated = self.answer_generator.generate(
                question=question,
                answer_locale=answer_locale,
                preferred_locale=requested_locale,
                hits=hits,
                history=history
            )
            answer, model = generated.answer, generated.model
        except LLMClientError as e:
            logger.error(
                f"Answer generation failed: {e.error.code} {e.error.message}",
                extra={"error_details": e.error.details, "session_id": session_id}
            )
            answer, model = policy.generation_failed_message(answer_locale), policy.MODEL_ERROR

        if policy.contains_price_like_value(answer):
            logger.warning(f"Generated answer contained a price, replaced (model={model})")
            answer, model = policy.no_price_message(answer_locale), policy.MODEL_NO_PRICE

        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Answered query: model={model}, locale={answer_locale}, hits={len(hits)}, "
            f"session={session_id or '-'}, latency={latency_ms}ms"
        )

        return RagAnswer(
            answer=answer,
            model=model,
            answer_locale=answer_locale,
            preferred_locale=preferred,
            sources=build_sources(hits)
        )
