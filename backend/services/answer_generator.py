"""Grounded answer generation with a primary/fallback model tier."""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from models.chunk import RetrievalHit
from models.conversation import Turn, USER
from services.fallback import Strategy, run_with_fallback
from services.llm_client import LLMClient, LLMClientError
from services.locale_resolver import language_name
from services import policy
from config import GROQ_MODEL, GROQ_FALLBACK_MODEL, RESERVATION_PHONE, RESERVATION_EMAIL

logger = logging.getLogger(__name__)

MAX_HISTORY_TURNS = 12
MAX_HISTORY_TURN_CHARS = 500

MISSING_KEY_ANSWER = (
    "Answer generation is not configured: retrieval is ready, but GROQ_API_KEY "
    "must be set to connect a language model."
)


@dataclass
class GeneratedAnswer:
    """Generated text and the model that produced it."""
    answer: str
    model: str


def _is_retryable(error: Exception) -> bool:
    return isinstance(error, LLMClientError) and error.retryable


class AnswerGenerator:
    """Builds the grounded prompt and calls the chat model, falling back to a second tier."""

    def __init__(
        self,
        llm_client: Optional[LLMClient],
        primary_model: str = GROQ_MODEL,
        fallback_model: Optional[str] = GROQ_FALLBACK_MODEL
    ):
        """
        Initialize the answer generator.

        Args:
            llm_client: Chat client; None when no API key is configured
            primary_model: Model tried first
            fallback_model: Model tried once after a rate-limit, server or timeout error
        """
        self.llm_client = llm_client
        self.primary_model = primary_model
        self.fallback_model = fallback_model if fallback_model and fallback_model != primary_model else None

    @staticmethod
    def build_system_prompt(answer_locale: str, preferred_locale: Optional[str]) -> str:
        answer_lang = language_name(answer_locale)
        preferred_lang = language_name(preferred_locale)
        return " ".join([
            "You are a customer-support assistant for Meri Boarding Group.",
            'Assistant identity is "Meri", a warm and solution-oriented guest assistant.',
            f"Reply language must be {answer_lang}.",
            f"Site locale preference is {preferred_lang}, but do not override reply language with it.",
            "You can respond in German, Turkish, and English.",
            "Only use the provided context chunks as the source of facts.",
            "If the context is insufficient, clearly say you do not have enough information.",
            "Use the conversation history only to understand what the guest refers to "
            "(for example \"there\" or \"that apartment\"), never as a source of facts.",
            "Never provide any price, tariff, fee amount, discount, or currency value.",
            "For price-related questions, always hand off to the reservation team: "
            f"{RESERVATION_PHONE}, {RESERVATION_EMAIL}.",
            "Do not invent prices, availability, addresses, or policy details.",
            "Keep the answer concise and practical (ideally 2-4 short sentences).",
        ])

    @staticmethod
    def build_history(history: Sequence[Turn]) -> str:
        lines = []
        for turn in list(history)[-MAX_HISTORY_TURNS:]:
            content = " ".join(str(turn.content or "").split())[:MAX_HISTORY_TURN_CHARS]
            if not content:
                continue
            role = "User" if turn.role == USER else "Assistant"
            lines.append(f"{role}: {content}")
        return "\n".join(lines)

    @staticmethod
    def build_context(hits: Sequence[RetrievalHit]) -> str:
        blocks = []
        for idx, hit in enumerate(hits, start=1):
            label = hit.title
            if hit.source_id and hit.source_id != label:
                label = f"{label} ({hit.source_id})"
            blocks.append(f"[#{idx}] {label}\n{hit.text}")
        return "\n\n".join(blocks)

    def build_messages(
        self,
        question: str,
        answer_locale: str,
        preferred_locale: Optional[str],
        hits: Sequence[RetrievalHit],
        history: Sequence[Turn] = ()
    ) -> List[Dict[str, str]]:
        """System + user messages for the chat completion."""
        sections = [f"Question:\n{question}"]
        history_block = self.build_history(history)
        if history_block:
            sections.append(f"Conversation history:\n{history_block}")
        sections.append(f"Context:\n{self.build_context(hits)}")

        return [
            {"role": "system", "content": self.build_system_prompt(answer_locale, preferred_locale)},
            {"role": "user", "content": "\n\n".join(sections)},
        ]

    def generate(
        self,
        question: str,
        answer_locale: str,
        preferred_locale: Optional[str],
        hits: Sequence[RetrievalHit],
        history: Sequence[Turn] = ()
    ) -> GeneratedAnswer:
        """
        Generate a grounded answer.

        Returns a fixed diagnostic when no client is configured. The primary
        model is retried once on the fallback model for retryable errors only.

        Raises:
            LLMClientError: When the final attempt fails or the error is not retryable
        """
        if self.llm_client is None:
            logger.warning("GROQ_API_KEY is not configured, skipping generation")
            return GeneratedAnswer(answer=MISSING_KEY_ANSWER, model=policy.MODEL_NONE)

        messages = self.build_messages(question, answer_locale, preferred_locale, hits, history)

        models = [self.primary_model] + ([self.fallback_model] if self.fallback_model else [])
        strategies = [
            Strategy(model, lambda model=model: self.llm_client.generate(model=model, messages=messages), _is_retryable)
            for model in models
        ]
        model_used, response = run_with_fallback(strategies, label="generation")

        answer = response.text or policy.insufficient_context_message(answer_locale)
        return GeneratedAnswer(answer=answer, model=model_used)
