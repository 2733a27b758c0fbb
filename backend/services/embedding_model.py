"""Embedding model: deterministic local hashing with optional remote providers."""
import logging
import re
import time
from typing import List, Optional

import httpx
import numpy as np

from config import (
    EMBEDDING_PROVIDER,
    EMBEDDING_DIM,
    EMBEDDING_TIMEOUT_SECONDS,
    EMBEDDING_API_URL,
    GROQ_API_KEY,
    GROQ_EMBED_MODEL,
    HUGGINGFACE_API_KEY,
    HUGGINGFACE_EMBED_MODEL,
)
from services.fallback import Strategy, run_with_fallback

logger = logging.getLogger(__name__)

LOCAL = "local"
GROQ = "groq"
HUGGINGFACE = "huggingface"
REMOTE_PROVIDERS = (GROQ, HUGGINGFACE)

HUGGINGFACE_API_BASE = "https://api-inference.huggingface.co/models"

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619
SHINGLE_SIZE = 3
SHINGLE_WEIGHT = 0.25

# Everything that is not a letter, digit or whitespace (underscore counts as punctuation)
_NON_WORD = re.compile(r"[^\w\s]|_")


def stable_hash(value: str) -> int:
    """32-bit FNV-1a hash; identical across processes and platforms."""
    h = FNV_OFFSET_BASIS
    for ch in value:
        h ^= ord(ch)
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return h


def normalize_vector(vector) -> List[float]:
    """Scale a vector to unit length; the zero vector is returned unchanged."""
    arr = np.asarray(vector, dtype=np.float64)
    norm = float(np.linalg.norm(arr)) or 1.0
    return (arr / norm).tolist()


def tokenize(text: str) -> List[str]:
    return _NON_WORD.sub(" ", str(text or "").lower()).split()


class EmbeddingModel:
    """Converts text into unit-norm vectors, locally or through a remote API."""

    def __init__(
        self,
        provider: str = EMBEDDING_PROVIDER,
        dimension: int = EMBEDDING_DIM,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        api_url: str = EMBEDDING_API_URL,
        timeout: float = EMBEDDING_TIMEOUT_SECONDS
    ):
        """
        Initialize the embedding model.

        Args:
            provider: "local", "groq" (OpenAI-compatible embeddings API) or "huggingface"
            dimension: Vector size of the local hashing embedding
            api_key: Remote provider key (defaults to the provider's key from config)
            model_name: Remote model name (defaults to the provider's model from config)
            api_url: Base URL of the OpenAI-compatible embeddings API
            timeout: Remote request timeout in seconds
        """
        provider = (provider or LOCAL).lower()
        if provider not in (LOCAL,) + REMOTE_PROVIDERS:
            logger.warning(f"Unknown embedding provider '{provider}', using local embeddings")
            provider = LOCAL

        if dimension <= 0:
            raise ValueError("Embedding dimension must be positive")

        self.provider = provider
        self.dimension = dimension
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

        if provider == GROQ:
            self.api_key = api_key if api_key is not None else GROQ_API_KEY
            self.model_name = model_name if model_name is not None else GROQ_EMBED_MODEL
        elif provider == HUGGINGFACE:
            self.api_key = api_key if api_key is not None else HUGGINGFACE_API_KEY
            self.model_name = model_name if model_name is not None else HUGGINGFACE_EMBED_MODEL
        else:
            self.api_key = api_key
            self.model_name = model_name

        logger.info(f"Initialized EmbeddingModel with provider: {provider}")

    def embed_text(self, text: str) -> List[float]:
        """
        Generate a unit-norm embedding for a single text.

        Remote providers are tried first; any failure is logged and answered
        with the local embedding, so this method does not raise for
        provider errors.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats
        """
        if self.provider == LOCAL:
            return self.local_embedding(text)

        _, vector = run_with_fallback(
            [
                Strategy(self.provider, lambda: self._remote_embedding(text)),
                Strategy(LOCAL, lambda: self.local_embedding(text)),
            ],
            label="embedding",
        )
        return vector

    def local_embedding(self, text: str) -> List[float]:
        """
        Deterministic hashing embedding.

        Each token adds +/-1 at a hashed index; tokens longer than three
        characters also add +/-0.25 per three-character shingle so that
        related word forms land near each other.
        """
        dim = self.dimension
        vector = np.zeros(dim, dtype=np.float64)

        for token in tokenize(text):
            base_hash = stable_hash(token)
            vector[base_hash % dim] += 1.0 if ((base_hash >> 8) & 1) == 0 else -1.0

            if len(token) > SHINGLE_SIZE:
                for i in range(len(token) - SHINGLE_SIZE + 1):
                    n_hash = stable_hash(token[i:i + SHINGLE_SIZE])
                    vector[n_hash % dim] += SHINGLE_WEIGHT if ((n_hash >> 9) & 1) == 0 else -SHINGLE_WEIGHT

        return normalize_vector(vector)

    def _remote_embedding(self, text: str) -> List[float]:
        """
        Call the configured remote provider.

        Raises:
            RuntimeError: On missing configuration, network errors, non-2xx
                responses or an empty vector
        """
        if not self.api_key or not self.model_name:
            raise RuntimeError(
                f"{self.provider} embedding is selected but its API key / model is not configured"
            )

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        if self.provider == GROQ:
            url = f"{self.api_url}/embeddings"
            payload = {"model": self.model_name, "input": str(text or "")}
        else:
            url = f"{HUGGINGFACE_API_BASE}/{self.model_name}"
            payload = {"inputs": [str(text or "")], "options": {"wait_for_model": True}}

        start_time = time.time()
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as e:
            raise RuntimeError(f"{self.provider} embedding request failed: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            raise RuntimeError(
                f"{self.provider} embedding failed ({response.status_code}): {response.text}"
            )

        vector = self._extract_vector(response.json())
        if not vector:
            raise RuntimeError(f"{self.provider} embedding response is empty")

        elapsed = time.time() - start_time
        logger.debug(f"Generated remote embedding ({len(vector)}d) in {elapsed:.2f}s")
        return normalize_vector([float(x or 0) for x in vector])

    def _extract_vector(self, data) -> List[float]:
        """Pull the vector out of a provider response body."""
        try:
            if self.provider == GROQ:
                return data["data"][0]["embedding"] or []
            # Hugging Face returns one vector per input
            first = data[0]
            return first if first and not isinstance(first[0], list) else first[0]
        except (KeyError, IndexError, TypeError):
            return []
