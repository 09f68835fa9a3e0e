"""Embedding model integration with Hugging Face Inference API."""
import time
import logging
from typing import Any, Iterable, List, Optional
import httpx
from config import HUGGINGFACE_API_KEYS, EMBEDDING_MODEL
from services.key_pool import ApiKeyPool

logger = logging.getLogger(__name__)


class EmbeddingAPIError(Exception):
    """Non-200 response from the embedding provider."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        super().__init__(f"Embedding request failed with status {status_code}: {message}")


class EmbeddingModel:
    """Wrapper for Hugging Face Inference API embedding model with key rotation."""

    def __init__(
        self,
        api_keys: Optional[Iterable[str]] = None,
        model_name: str = EMBEDDING_MODEL,
        timeout: float = 120.0,
        key_pool: Optional[ApiKeyPool] = None
    ):
        """
        Initialize the embedding model client.

        Args:
            api_keys: Hugging Face API keys (defaults to HUGGINGFACE_API_KEYS)
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            timeout: Request timeout in seconds
            key_pool: Pre-built pool, mainly for sharing or tests

        Raises:
            ValueError: If no API key is configured
        """
        if key_pool is None:
            keys = list(api_keys) if api_keys is not None else HUGGINGFACE_API_KEYS
            if not keys:
                raise ValueError("HUGGINGFACE_API_KEYS environment variable is required")
            key_pool = ApiKeyPool(keys, name="embedding")

        self.key_pool = key_pool
        self.model_name = model_name
        self.timeout = timeout
        self.api_url = f"https://api-inference.huggingface.co/models/{model_name}"

        logger.info(
            f"Initialized EmbeddingModel with model: {model_name} ({len(key_pool)} keys)"
        )

    def embed_text(self, text: str) -> List[float]:
        """
        Generate embedding for a single text string.

        Args:
            text: Text to embed

        Returns:
            Embedding vector as list of floats

        Raises:
            ValueError: If text is empty
            AllKeysDeadError: If every key has been retired
            KeysExhaustedError: If every live key failed
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        return self.key_pool.call(lambda key: self._request_embedding(key, text))

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts, one request per text.

        Requests are sequential so upload bursts stay bounded and each text
        gets the full key rotation on its own.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors in input order
        """
        embeddings = []
        start_time = time.time()
        for text in texts:
            embeddings.append(self.embed_text(text))
        logger.debug(f"Generated {len(embeddings)} embeddings in {time.time() - start_time:.2f}s")
        return embeddings

    def _request_embedding(self, api_key: str, text: str) -> List[float]:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "inputs": [text],
            "options": {
                "wait_for_model": True  # Wait for model to load if sleeping
            }
        }

        with httpx.Client(timeout=self.timeout) as client:
            response = client.post(self.api_url, headers=headers, json=payload)

        if response.status_code != 200:
            raise EmbeddingAPIError(response.status_code, response.text)

        return self._parse_vector(response.json())

    @staticmethod
    def _parse_vector(data: Any) -> List[float]:
        # Batched input returns [[...]]; some deployments return a flat vector
        if isinstance(data, list) and data and isinstance(data[0], list):
            data = data[0]
        if not isinstance(data, list) or not data:
            raise ValueError(f"Unexpected embedding response shape: {type(data).__name__}")
        return [float(value) for value in data]
