"""Main entry point for the Meri RAG API."""
import logging

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import (
    HOST,
    PORT,
    LOG_LEVEL,
    LOG_FORMAT,
    CORS_ORIGINS,
    GROQ_API_KEY,
    GROQ_MODEL,
    GROQ_FALLBACK_MODEL,
    RAG_TOP_K,
)
from logger import setup_logging
from models.api import QueryRequest, QueryResponse
from models.conversation import Turn
from services.answer_generator import AnswerGenerator
from services.embedding_model import EmbeddingModel
from services.llm_client import LLMClient
from services.rag_pipeline import InvalidQuestionError, RagPipeline
from services.retrieval_engine import RetrievalEngine
from services.vector_store import VectorStore, VectorStoreError

setup_logging(LOG_LEVEL, LOG_FORMAT)
logger = logging.getLogger(__name__)

SERVICE_NAME = "meri-rag"

# Initialize FastAPI app
app = FastAPI(
    title="Meri RAG Assistant",
    description="Guest-support question answering over Meri Boarding Group content",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
vector_store: VectorStore = None
embedding_model: EmbeddingModel = None
rag_pipeline: RagPipeline = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global vector_store, embedding_model, rag_pipeline

    logger.info("Initializing Meri RAG services...")

    try:
        embedding_model = EmbeddingModel()
        vector_store = VectorStore()
        retrieval_engine = RetrievalEngine(vector_store, embedding_model)

        llm_client = LLMClient(api_key=GROQ_API_KEY) if GROQ_API_KEY else None
        if llm_client is None:
            logger.warning("GROQ_API_KEY is not set, answers will be diagnostic only")

        answer_generator = AnswerGenerator(llm_client, GROQ_MODEL, GROQ_FALLBACK_MODEL)
        rag_pipeline = RagPipeline(retrieval_engine, answer_generator, default_top_k=RAG_TOP_K)

        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    if vector_store is not None:
        vector_store.close()


@app.get("/")
async def root():
    """Liveness probe."""
    return {"ok": True, "message": "Meri RAG API"}


@app.get("/health")
def health():
    """Readiness details: vector store reachability and configured providers."""
    return {
        "ok": True,
        "service": SERVICE_NAME,
        "qdrant": vector_store is not None and vector_store.health(),
        "embeddingProvider": embedding_model.provider if embedding_model is not None else "unknown",
        "model": GROQ_MODEL if GROQ_API_KEY else "none",
    }


@app.post("/query", response_model=QueryResponse)
def query_endpoint(request: QueryRequest) -> QueryResponse:
    """
    Answer one guest question.

    Declared without ``async`` so the blocking HTTP calls to Qdrant and Groq
    run in FastAPI's threadpool.

    Raises:
        HTTPException: 400 for invalid questions, 503 when the vector store is
            unavailable, 500 for anything unexpected
    """
    try:
        history = [Turn(role=turn.role, content=turn.content) for turn in request.history]

        result = rag_pipeline.answer(
            question=request.question,
            locale=request.locale,
            top_k=request.top_k,
            history=history,
            session_id=request.session_id,
            retrieval_question=request.retrieval_question
        )

        return QueryResponse(
            ok=True,
            model=result.model,
            answer_locale=result.answer_locale,
            preferred_locale=result.preferred_locale,
            answer=result.answer,
            sources=result.sources
        )

    except InvalidQuestionError as e:
        raise HTTPException(status_code=400, detail={"error": str(e)})
    except VectorStoreError as e:
        logger.error(
            f"Vector store error: {e}",
            extra={"status_code": e.status_code, "path": e.path}
        )
        raise HTTPException(status_code=503, detail={"error": "Vector store unavailable."})
    except Exception as e:
        logger.error(f"Unexpected error processing query: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": "Internal server error."})


if __name__ == "__main__":
    uvicorn.run(app, host=HOST, port=PORT)
