"""Configuration management for the Meri RAG service."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(float(raw))
    except ValueError:
        return default


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _str_env(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


# Server Configuration
HOST = _str_env("RAG_HOST", "0.0.0.0")
PORT = _int_env("RAG_PORT", 4100)
LOG_LEVEL = _str_env("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = _str_env("LOG_FORMAT", "json").lower()

# CORS Configuration
CORS_ORIGINS = [
    origin.strip()
    for origin in _str_env(
        "CORS_ORIGINS",
        "http://localhost:3000,http://localhost:3001"
    ).split(",")
    if origin.strip()
]

# Vector Store (Qdrant)
QDRANT_URL = _str_env("QDRANT_URL", "http://qdrant:6333").rstrip("/")
QDRANT_COLLECTION = _str_env("QDRANT_COLLECTION", "meri_content_chunks")
QDRANT_TIMEOUT_SECONDS = _float_env("QDRANT_TIMEOUT_SECONDS", 10.0)

# Document Store (MongoDB)
MONGODB_URI = _str_env("MONGODB_URI", "mongodb://mongo:27017")
MONGODB_DB = _str_env("MONGODB_DB", "meri_boarding")

# Generation (Groq)
GROQ_API_KEY = _str_env("GROQ_API_KEY")
GROQ_MODEL = _str_env("GROQ_MODEL", "llama-3.3-70b-versatile")
GROQ_FALLBACK_MODEL = _str_env("GROQ_FALLBACK_MODEL", "llama-3.1-8b-instant")
GROQ_TIMEOUT_SECONDS = _float_env("GROQ_TIMEOUT_SECONDS", 30.0)
GROQ_TEMPERATURE = _float_env("GROQ_TEMPERATURE", 0.2)

# Embedding Configuration
EMBEDDING_PROVIDER = _str_env("EMBEDDING_PROVIDER", "local").lower()
EMBEDDING_DIM = _int_env("EMBEDDING_DIM", 384)
EMBEDDING_TIMEOUT_SECONDS = _float_env("EMBEDDING_TIMEOUT_SECONDS", 10.0)
EMBEDDING_API_URL = _str_env("EMBEDDING_API_URL", "https://api.groq.com/openai/v1").rstrip("/")
GROQ_EMBED_MODEL = _str_env("GROQ_EMBED_MODEL")
HUGGINGFACE_API_KEY = _str_env("HUGGINGFACE_API_KEY")
HUGGINGFACE_EMBED_MODEL = _str_env(
    "HUGGINGFACE_EMBED_MODEL",
    "sentence-transformers/all-MiniLM-L6-v2"
)

# Retrieval Configuration
RAG_TOP_K = _int_env("RAG_TOP_K", 5)
RAG_MAX_CONTEXT_CHUNKS = _int_env("RAG_MAX_CONTEXT_CHUNKS", 6)
RAG_MIN_TOP_SCORE = _float_env("RAG_MIN_TOP_SCORE", 0.0)
# Hits scoring below this fraction of the best hit are dropped (0 disables)
RAG_RELATIVE_SCORE_CUTOFF = _float_env("RAG_RELATIVE_SCORE_CUTOFF", 0.5)

# Chunking Configuration
RAG_CHUNK_SIZE = _int_env("RAG_CHUNK_SIZE", 900)  # characters
RAG_CHUNK_OVERLAP = _int_env("RAG_CHUNK_OVERLAP", 120)  # characters

# Reservation hand-off channel used by policy replies
RESERVATION_PHONE = _str_env("RESERVATION_PHONE", "+49 152 064 19253")
RESERVATION_EMAIL = _str_env("RESERVATION_EMAIL", "reservation@meri-group.de")
