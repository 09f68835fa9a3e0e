"""LLM client for hosted (Groq, multi-key) and self-hosted (Ollama) completion."""
import time
from dataclasses import dataclass
from typing import Dict, Any, Iterable, Optional
import httpx
from groq import Groq
import logging

from config import (
    COMPLETION_MAX_TOKENS,
    COMPLETION_MODEL,
    COMPLETION_TEMPERATURE,
    GROQ_API_KEYS,
    LLM_PROVIDER,
    OLLAMA_BASE_URL,
    OLLAMA_MODEL,
)
from services.key_pool import ApiKeyPool

logger = logging.getLogger(__name__)


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


class GroqBackend:
    """Hosted completion through Groq, rotating across a pool of API keys."""

    name = "groq"

    def __init__(
        self,
        api_keys: Optional[Iterable[str]] = None,
        model: str = COMPLETION_MODEL,
        temperature: float = COMPLETION_TEMPERATURE,
        max_tokens: int = COMPLETION_MAX_TOKENS,
        key_pool: Optional[ApiKeyPool] = None
    ):
        if key_pool is None:
            keys = list(api_keys) if api_keys is not None else GROQ_API_KEYS
            if not keys:
                raise ValueError("GROQ_API_KEYS must be provided or set in environment")
            # Completion keys are retired independently of embedding keys
            key_pool = ApiKeyPool(keys, name="completion")

        self.key_pool = key_pool
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._clients: Dict[str, Groq] = {}

    def _client_for(self, api_key: str) -> Groq:
        client = self._clients.get(api_key)
        if client is None:
            client = Groq(api_key=api_key)
            self._clients[api_key] = client
        return client

    def _generate(self, api_key: str, prompt: str) -> str:
        response = self._client_for(api_key).chat.completions.create(
            model=self.model,
            messages=[
                {
                    "role": "user",
                    "content": prompt
                }
            ],
            max_tokens=self.max_tokens,
            temperature=self.temperature
        )
        usage = getattr(response, "usage", None)
        if usage is not None:
            logger.debug(
                f"Groq usage: input_tokens={usage.prompt_tokens}, "
                f"output_tokens={usage.completion_tokens}"
            )
        return (response.choices[0].message.content or "").strip()

    def complete(self, prompt: str) -> str:
        return self.key_pool.call(lambda key: self._generate(key, prompt))


class OllamaBackend:
    """Self-hosted completion through a single Ollama endpoint, no rotation."""

    name = "ollama"

    def __init__(
        self,
        base_url: str = OLLAMA_BASE_URL,
        model: str = OLLAMA_MODEL,
        temperature: float = COMPLETION_TEMPERATURE,
        num_predict: int = COMPLETION_MAX_TOKENS,
        timeout: float = 300.0
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.num_predict = num_predict
        self.timeout = timeout

    def complete(self, prompt: str) -> str:
        """
        Generate a completion with Ollama's /api/generate.

        Raises:
            LLMClientError: On any non-2xx response, with status and body
        """
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.num_predict
            }
        }

        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(f"{self.base_url}/api/generate", json=payload)

        if not response.is_success:
            error = LLMError(
                code="OLLAMA_ERROR",
                message=f"Ollama error ({response.status_code}): {response.text}",
                details={
                    "model": self.model,
                    "status_code": response.status_code,
                    "body": response.text
                }
            )
            logger.error(error.message, extra={"error_code": error.code, "provider": self.name})
            raise LLMClientError(error)

        data = response.json()
        return (data.get("response") or "").strip()


class LLMClient:
    """Client that sends fully-built prompts to the configured completion backend."""

    def __init__(self, backend=None):
        """
        Initialize LLM client.

        Args:
            backend: GroqBackend or OllamaBackend (defaults to LLM_PROVIDER)
        """
        self.backend = backend or self.create_backend(LLM_PROVIDER)
        logger.info(f"LLMClient initialized with backend: {self.backend.name}")

    @staticmethod
    def create_backend(provider: str):
        """
        Build a backend from a provider name.

        Raises:
            ValueError: If provider is not supported
        """
        if provider == "ollama":
            return OllamaBackend()
        if provider == "groq":
            return GroqBackend()
        raise ValueError(f"Unknown LLM provider: '{provider}'. Supported: groq, ollama")

    def complete(self, prompt: str) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Complete prompt with context and instructions

        Returns:
            Generated text, stripped

        Raises:
            AllKeysDeadError / KeysExhaustedError: Hosted backend unavailable
            LLMClientError: Self-hosted backend returned an error
        """
        start_time = time.time()
        text = self.backend.complete(prompt)
        latency_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Generated response: backend={self.backend.name}, "
            f"chars={len(text)}, latency={latency_ms}ms",
            extra={"provider": self.backend.name, "latency_ms": latency_ms}
        )
        return text
