"""Tests for the online RAG pipeline."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock
from models.chunk import RetrievalHit
from models.conversation import Turn, USER
from models.document import SourceDocument
from services import policy
from services.answer_generator import AnswerGenerator, GeneratedAnswer
from services.chunking_engine import ChunkingEngine
from services.embedding_model import EmbeddingModel
from services.indexer import Indexer
from services.llm_client import LLMError, LLMClientError, LLMResponse
from services.rag_pipeline import InvalidQuestionError, RagPipeline, clamp_top_k, validate_question
from services.retrieval_engine import RetrievalEngine

PRIMARY = "llama-3.3-70b-versatile"
FALLBACK = "llama-3.1-8b-instant"


class InMemoryVectorStore:
    """Cosine-similarity store with the VectorStore interface."""

    def __init__(self):
        self.points = {}

    def ensure_collection(self, dimension):
        pass

    def upsert_points(self, points):
        for point in points:
            self.points[point.id] = point

    def search(self, vector, limit, locale=None):
        scored = [
            RetrievalHit(
                id=point.id,
                score=sum(a * b for a, b in zip(vector, point.vector)),
                payload=point.payload,
            )
            for point in self.points.values()
            if not locale or point.payload.get("locale") == locale
        ]
        scored.sort(key=lambda hit: hit.score, reverse=True)
        return scored[:limit]


def _document(source_id, locale, text):
    return SourceDocument(
        source_id=source_id,
        title=source_id,
        locale=locale,
        url=f"/hotels/{source_id.split(':')[1]}",
        updated_at=None,
        text=text,
    )


DOCUMENTS = [
    _document("hotel:flamingo:en", "en", "Flamingo apartments are located in Stuttgart Vaihingen with underground parking."),
    _document("hotel:europaplatz:en", "en", "Europaplatz offers serviced studios near the central station."),
    _document("hotel:flamingo:de", "de", "Die Flamingo Apartments liegen in Stuttgart Vaihingen mit Tiefgarage."),
]


def _hit(point_id="p1", source_id="hotel:flamingo:en"):
    return RetrievalHit(
        id=point_id,
        score=0.8,
        payload={"sourceId": source_id, "title": source_id, "locale": "en", "url": "/hotels/flamingo", "text": "Flamingo text"},
    )


@pytest.fixture
def indexed_store():
    """Store populated through the real indexer with local embeddings."""
    store = InMemoryVectorStore()
    loader = Mock()
    loader.load_documents.return_value = DOCUMENTS
    Indexer(loader, ChunkingEngine(), EmbeddingModel(provider="local", dimension=384), store).run()
    return store


def _pipeline(store, llm):
    retrieval = RetrievalEngine(store, EmbeddingModel(provider="local", dimension=384))
    return RagPipeline(retrieval, AnswerGenerator(llm, PRIMARY, FALLBACK), default_top_k=5)


class TestEndToEnd:
    """Index-then-query scenarios over an in-memory store."""

    def test_flamingo_question_grounded_on_flamingo(self, indexed_store):
        """Test a Flamingo question is answered from the Flamingo document."""
        llm = Mock()
        llm.generate.return_value = LLMResponse("Flamingo is in Stuttgart Vaihingen.", 10, 5, 3, PRIMARY)

        result = _pipeline(indexed_store, llm).answer("Where is the Flamingo apartment located?", locale="en")

        assert result.model == PRIMARY
        assert result.answer == "Flamingo is in Stuttgart Vaihingen."
        assert result.answer_locale == "en"
        assert result.preferred_locale == "English"
        assert result.sources[0].source_id == "hotel:flamingo:en"
        prompt = llm.generate.call_args[1]["messages"][1]["content"]
        assert "Flamingo apartments are located in Stuttgart Vaihingen" in prompt

    def test_question_language_scopes_retrieval(self, indexed_store):
        """Test a German question on an English site prefers German content."""
        llm = Mock()
        llm.generate.return_value = LLMResponse("Ja, es gibt eine Tiefgarage.", 10, 5, 3, PRIMARY)

        result = _pipeline(indexed_store, llm).answer("Gibt es eine Tiefgarage im Flamingo?", locale="en")

        assert result.answer_locale == "de"
        assert result.preferred_locale == "English"
        assert result.sources[0].source_id == "hotel:flamingo:de"
        system_prompt = llm.generate.call_args[1]["messages"][0]["content"]
        assert "Reply language must be German." in system_prompt

    def test_amenities_question_cites_only_related_sources(self):
        """Test two Flamingo amenity chunks are cited and an unrelated billing chunk is not."""
        store = InMemoryVectorStore()
        loader = Mock()
        loader.load_documents.return_value = [
            _document("content:flamingo.amenities:en", "en",
                      "Flamingo apartment amenities include a fitness room, washing machines and a fully equipped kitchen."),
            _document("hotel:flamingo:en", "en",
                      "Every Flamingo apartment offers amenities such as fast wifi and weekly cleaning."),
            _document("content:billing:en", "en",
                      "Invoices are issued monthly and settled by bank transfer."),
        ]
        Indexer(loader, ChunkingEngine(), EmbeddingModel(provider="local", dimension=384), store).run()
        llm = Mock()
        llm.generate.return_value = LLMResponse("Flamingo offers a fitness room, wifi and a kitchen.", 10, 5, 3, PRIMARY)

        result = _pipeline(store, llm).answer("What amenities does the Flamingo apartment have?", locale="en")

        assert result.answer_locale == "en"
        assert result.answer
        assert sorted(s.source_id for s in result.sources) == ["content:flamingo.amenities:en", "hotel:flamingo:en"]

    def test_empty_index_answers_without_model(self):
        """Test an empty collection yields the no-context reply and no model call."""
        llm = Mock()

        result = _pipeline(InMemoryVectorStore(), llm).answer("Where is the Flamingo apartment located?", locale="en")

        assert result.model == policy.MODEL_NO_CONTEXT
        assert result.answer == policy.no_context_message("en")
        assert result.sources == []
        assert not llm.generate.called


class TestRagPipeline:
    """Test suite for RagPipeline.answer() with mocked collaborators."""

    @pytest.fixture
    def retrieval(self):
        engine = Mock()
        engine.retrieve.return_value = [_hit()]
        return engine

    @pytest.fixture
    def generator(self):
        generator = Mock()
        generator.generate.return_value = GeneratedAnswer("There is underground parking.", PRIMARY)
        return generator

    @pytest.mark.parametrize("question", ["", "hi", "   ab   ", "x" * 2001])
    def test_invalid_questions_rejected_before_retrieval(self, retrieval, generator, question):
        """Test out-of-range questions raise and make no downstream calls."""
        with pytest.raises(InvalidQuestionError):
            RagPipeline(retrieval, generator).answer(question)

        assert not retrieval.retrieve.called
        assert not generator.generate.called

    def test_price_question_short_circuits(self, retrieval, generator):
        """Test price questions get the hand-off without retrieval."""
        result = RagPipeline(retrieval, generator).answer("How much is a studio per month?", locale="en")

        assert result.model == policy.MODEL_NO_PRICE
        assert result.answer == policy.no_price_message("en")
        assert result.sources == []
        assert not retrieval.retrieve.called

    def test_fact_shortcut(self, retrieval, generator):
        """Test fact questions are answered from the fixed replies."""
        result = RagPipeline(retrieval, generator).answer("Wann ist der Check-in?", locale="de")

        assert result.model == policy.MODEL_FACT_SHORTCUT
        assert "14:00" in result.answer
        assert not generator.generate.called

    def test_location_count_cites_fact_source(self, retrieval, generator):
        """Test the location-count reply carries its fixed citation."""
        result = RagPipeline(retrieval, generator).answer("How many locations do you have?", locale="en")

        assert result.model == policy.MODEL_FACT_SHORTCUT
        assert [s.source_id for s in result.sources] == ["forai:qa:gen-locations-count:en"]
        assert not retrieval.retrieve.called

    def test_free_of_charge_question_reaches_retrieval(self, retrieval, generator):
        """Test a Turkish "is it free" question is answered, not handed off."""
        result = RagPipeline(retrieval, generator).answer("Flamingo dairelerinde wifi ücretsiz mi?", locale="tr")

        assert result.model == PRIMARY
        assert retrieval.retrieve.called

    def test_generated_answer_with_sources(self, retrieval, generator):
        """Test the normal path returns the model answer and citations."""
        result = RagPipeline(retrieval, generator).answer("Is there parking at Flamingo?", locale="de")

        assert result.answer == "There is underground parking."
        assert result.model == PRIMARY
        assert result.answer_locale == "en"
        assert result.preferred_locale == "German"
        assert [s.source_id for s in result.sources] == ["hotel:flamingo:en"]
        assert retrieval.retrieve.call_args[1]["locales"] == ["en", "de"]
        assert generator.generate.call_args[1]["preferred_locale"] == "de"

    def test_generation_failure_becomes_apology(self, retrieval, generator):
        """Test model errors produce the localized apology with model "error"."""
        generator.generate.side_effect = LLMClientError(
            LLMError("RATE_LIMIT_ERROR", "Rate limit exceeded.", {"status_code": 429, "retryable": True})
        )

        result = RagPipeline(retrieval, generator).answer("Is there parking at Flamingo?", locale="en")

        assert result.model == policy.MODEL_ERROR
        assert result.answer == policy.generation_failed_message("en")

    def test_price_leak_replaced(self, retrieval, generator):
        """Test an answer mentioning a price is replaced by the hand-off."""
        generator.generate.return_value = GeneratedAnswer("Parking is 80 EUR per month.", PRIMARY)

        result = RagPipeline(retrieval, generator).answer("Is there parking at Flamingo?", locale="en")

        assert result.model == policy.MODEL_NO_PRICE
        assert result.answer == policy.no_price_message("en")

    def test_retrieval_question_from_history(self, retrieval, generator):
        """Test prior user turns are folded into the search text."""
        history = [Turn(USER, "Tell me about the Flamingo apartments")]

        RagPipeline(retrieval, generator).answer("Is there parking there?", history=history)

        assert retrieval.retrieve.call_args[0][0] == "Tell me about the Flamingo apartments\nIs there parking there?"
        assert generator.generate.call_args[1]["history"] == history

    def test_explicit_retrieval_question(self, retrieval, generator):
        """Test a caller-supplied retrieval question is used verbatim."""
        RagPipeline(retrieval, generator).answer(
            "Is there parking there?",
            retrieval_question="Flamingo parking",
        )

        assert retrieval.retrieve.call_args[0][0] == "Flamingo parking"

    def test_retrieval_question_normalized_and_capped(self, retrieval, generator):
        """Test a caller-supplied retrieval question is whitespace-collapsed and length-capped."""
        pipeline = RagPipeline(retrieval, generator)

        pipeline.answer("Is there parking there?", retrieval_question="  Flamingo \n\t parking  ")
        assert retrieval.retrieve.call_args[0][0] == "Flamingo parking"

        pipeline.answer("Is there parking there?", retrieval_question="x" * 5000)
        assert len(retrieval.retrieve.call_args[0][0]) == 2000

    def test_blank_retrieval_question_uses_question(self, retrieval, generator):
        """Test a whitespace-only retrieval question falls back to the question."""
        RagPipeline(retrieval, generator).answer("Is there parking there?", retrieval_question=" \n ")

        assert retrieval.retrieve.call_args[0][0] == "Is there parking there?"

    def test_unsupported_locale_ignored(self, retrieval, generator):
        """Test an unknown site locale neither fails nor scopes retrieval."""
        result = RagPipeline(retrieval, generator).answer("Is there parking at Flamingo?", locale="fr")

        assert result.preferred_locale == "none"
        assert retrieval.retrieve.call_args[1]["locales"] == ["en", None]

    def test_top_k_clamped(self, retrieval, generator):
        """Test topK is clamped to 1..12 with the configured default."""
        pipeline = RagPipeline(retrieval, generator, default_top_k=5)

        pipeline.answer("Is there parking at Flamingo?", top_k=50)
        assert retrieval.retrieve.call_args[1]["top_k"] == 12

        pipeline.answer("Is there parking at Flamingo?")
        assert retrieval.retrieve.call_args[1]["top_k"] == 5


class TestHelpers:
    """Test suite for validation helpers."""

    def test_validate_question_trims(self):
        assert validate_question("  Is there parking?  ") == "Is there parking?"

    def test_clamp_top_k(self):
        assert clamp_top_k(None, 5) == 5
        assert clamp_top_k(0, 5) == 5
        assert clamp_top_k(-3, 5) == 1
        assert clamp_top_k(99, 5) == 12
