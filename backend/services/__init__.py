"""Services for the Meri RAG service."""
from .chunking_engine import ChunkingEngine
from .content_loader import ContentLoader
from .embedding_model import EmbeddingModel
from .vector_store import VectorStore, VectorStoreError
from .indexer import Indexer, IndexReport
from .llm_client import LLMClient, LLMResponse, LLMError, LLMClientError
from .answer_generator import AnswerGenerator, GeneratedAnswer
from .retrieval_engine import RetrievalEngine
from .rag_pipeline import RagPipeline, RagAnswer, InvalidQuestionError

__all__ = [
    'ChunkingEngine', 'ContentLoader', 'EmbeddingModel', 'VectorStore', 'VectorStoreError',
    'Indexer', 'IndexReport', 'LLMClient', 'LLMResponse', 'LLMError', 'LLMClientError',
    'AnswerGenerator', 'GeneratedAnswer', 'RetrievalEngine', 'RagPipeline', 'RagAnswer',
    'InvalidQuestionError'
]
