"""LLM Client for Groq API integration."""
import time
from dataclasses import dataclass
from typing import List, Optional, Dict, Any
from groq import Groq
from groq import (
    RateLimitError,
    AuthenticationError,
    APIError,
    APIStatusError,
    APITimeoutError,
    APIConnectionError,
)
import logging

from config import GROQ_API_KEY, GROQ_TIMEOUT_SECONDS, GROQ_TEMPERATURE

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)

    @property
    def status_code(self) -> Optional[int]:
        return self.error.details.get("status_code")

    @property
    def retryable(self) -> bool:
        """Rate limits, server errors, timeouts and connection failures are worth another model."""
        return bool(self.error.details.get("retryable"))


def is_retryable_status(status_code: Optional[int]) -> bool:
    return status_code is not None and (status_code == 429 or status_code >= 500)


class LLMClient:
    """Client for interfacing with Groq API for chat completion."""

    def __init__(self, api_key: Optional[str] = None, timeout: float = GROQ_TIMEOUT_SECONDS):
        """
        Initialize LLM client with Groq API key.

        SDK-level retries are disabled; the caller decides whether a failed
        request is retried against another model.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.timeout = timeout
        self.client = Groq(api_key=self.api_key, timeout=timeout, max_retries=0)
        logger.info("LLMClient initialized successfully")

    def generate(
        self,
        model: str,
        messages: List[Dict[str, str]],
        temperature: float = GROQ_TEMPERATURE,
        max_tokens: int = 600
    ) -> LLMResponse:
        """
        Generate a chat completion.

        Args:
            model: Model name (e.g. llama-3.3-70b-versatile)
            messages: Chat messages (system + user)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}")

            response = self.client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature
            )

            latency_ms = int((time.time() - start_time) * 1000)

            text = (response.choices[0].message.content or "").strip()

            usage = response.usage
            tokens_input = getattr(usage, "prompt_tokens", 0) or 0
            tokens_output = getattr(usage, "completion_tokens", 0) or 0

            logger.info(
                f"Generated response: model={model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=model
            )

        except RateLimitError as e:
            raise self._error(
                "RATE_LIMIT_ERROR",
                "Rate limit exceeded. Please try again in a few moments.",
                model, start_time, e,
                status_code=429, retryable=True, retry_after=60
            )

        except AuthenticationError as e:
            raise self._error(
                "AUTHENTICATION_ERROR",
                "Authentication failed. Please check your API key.",
                model, start_time, e,
                status_code=401, retryable=False
            )

        except APITimeoutError as e:
            raise self._error(
                "TIMEOUT_ERROR",
                "Request timed out. Please try again.",
                model, start_time, e,
                retryable=True
            )

        except APIConnectionError as e:
            raise self._error(
                "CONNECTION_ERROR",
                "Could not reach the Groq API.",
                model, start_time, e,
                retryable=True
            )

        except APIStatusError as e:
            raise self._error(
                "API_ERROR",
                f"Groq API error ({e.status_code})",
                model, start_time, e,
                status_code=e.status_code, retryable=is_retryable_status(e.status_code)
            )

        except APIError as e:
            raise self._error(
                "API_ERROR",
                f"Groq API error: {str(e)}",
                model, start_time, e,
                retryable=False
            )

        except Exception as e:
            raise self._error(
                "UNKNOWN_ERROR",
                f"Unexpected error during generation: {str(e)}",
                model, start_time, e,
                retryable=False, error_type=type(e).__name__
            )

    def _error(
        self,
        code: str,
        message: str,
        model: str,
        start_time: float,
        original: Exception,
        status_code: Optional[int] = None,
        retryable: bool = False,
        **extra: Any
    ) -> LLMClientError:
        """Build (and log) the structured error for a failed request."""
        latency_ms = int((time.time() - start_time) * 1000)
        error = LLMError(
            code=code,
            message=message,
            details={
                "model": model,
                "latency_ms": latency_ms,
                "status_code": status_code,
                "retryable": retryable,
                "original_error": str(original),
                **extra
            }
        )
        logger.error(
            f"{code}: model={model}, latency={latency_ms}ms, error={original}",
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)
