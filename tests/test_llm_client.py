"""Unit tests for LLMClient and its completion backends."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, MagicMock, patch
from groq import AuthenticationError, RateLimitError
from services.key_pool import ApiKeyPool, AllKeysDeadError, KeysExhaustedError
from services.llm_client import (
    GroqBackend,
    LLMClient,
    LLMClientError,
    OllamaBackend,
)


def make_completion(content):
    response = Mock()
    response.choices = [Mock()]
    response.choices[0].message.content = content
    response.usage = Mock(prompt_tokens=10, completion_tokens=5)
    return response


def make_pool(keys, start=0):
    rng = Mock()
    rng.randrange.return_value = start
    return ApiKeyPool(keys, name="completion", rng=rng)


def rate_limit_error():
    return RateLimitError(
        message="Rate limit exceeded",
        response=Mock(status_code=429),
        body=None
    )


def invalid_key_error():
    return AuthenticationError(
        message="Invalid API Key",
        response=Mock(status_code=401),
        body=None
    )


class TestGroqBackend:
    """Test suite for the hosted completion backend."""

    def test_initialization_without_keys(self):
        """Test that initialization fails without keys."""
        with patch('services.llm_client.GROQ_API_KEYS', []):
            with pytest.raises(ValueError, match="GROQ_API_KEYS"):
                GroqBackend()

    @patch('services.llm_client.Groq')
    def test_complete_success(self, mock_groq_class):
        """Test a successful completion is stripped and uses the configured model."""
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = make_completion("  Answer text \n")
        mock_groq_class.return_value = mock_client

        backend = GroqBackend(key_pool=make_pool(["gsk_a"]), model="test-model", temperature=0.3)
        result = backend.complete("prompt")

        assert result == "Answer text"
        call_kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "test-model"
        assert call_kwargs["temperature"] == 0.3
        assert call_kwargs["messages"] == [{"role": "user", "content": "prompt"}]
        mock_groq_class.assert_called_once_with(api_key="gsk_a")

    @patch('services.llm_client.Groq')
    def test_rate_limit_rotates_keys(self, mock_groq_class):
        """Test a rate-limited key falls through to the next key."""
        clients = {"gsk_a": MagicMock(), "gsk_b": MagicMock()}
        clients["gsk_a"].chat.completions.create.side_effect = rate_limit_error()
        clients["gsk_b"].chat.completions.create.return_value = make_completion("ok")
        mock_groq_class.side_effect = lambda api_key: clients[api_key]

        backend = GroqBackend(key_pool=make_pool(["gsk_a", "gsk_b"]))

        assert backend.complete("prompt") == "ok"
        assert backend.key_pool.dead_count == 0

    @patch('services.llm_client.Groq')
    def test_invalid_keys_become_dead(self, mock_groq_class):
        """Test invalid keys are retired and later calls make no requests."""
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = invalid_key_error()
        mock_groq_class.return_value = mock_client

        backend = GroqBackend(key_pool=make_pool(["gsk_a", "gsk_b"]))

        with pytest.raises(AllKeysDeadError):
            backend.complete("prompt")
        assert mock_client.chat.completions.create.call_count == 2

        with pytest.raises(AllKeysDeadError):
            backend.complete("prompt")
        assert mock_client.chat.completions.create.call_count == 2

    @patch('services.llm_client.Groq')
    def test_exhausted_keys(self, mock_groq_class):
        """Test all keys rate limited raises KeysExhaustedError with the last error."""
        mock_client = MagicMock()
        mock_client.chat.completions.create.side_effect = rate_limit_error()
        mock_groq_class.return_value = mock_client

        backend = GroqBackend(key_pool=make_pool(["gsk_a", "gsk_b"]))

        with pytest.raises(KeysExhaustedError) as exc_info:
            backend.complete("prompt")
        assert isinstance(exc_info.value.last_error, RateLimitError)

    @patch('services.llm_client.Groq')
    def test_clients_cached_per_key(self, mock_groq_class):
        """Test one SDK client is built per key across calls."""
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = make_completion("ok")
        mock_groq_class.return_value = mock_client

        backend = GroqBackend(key_pool=make_pool(["gsk_a"]))
        backend.complete("one")
        backend.complete("two")

        assert mock_groq_class.call_count == 1


class TestOllamaBackend:
    """Test suite for the self-hosted completion backend."""

    @patch('httpx.Client')
    def test_complete_success(self, mock_client_class):
        """Test the generate endpoint is called with non-streaming options."""
        response = Mock(is_success=True, status_code=200)
        response.json.return_value = {"response": "  Local answer  "}
        mock_client = MagicMock()
        mock_client.post.return_value = response
        mock_client_class.return_value.__enter__.return_value = mock_client

        backend = OllamaBackend(base_url="http://localhost:11434/", model="llama3",
                                temperature=0.3, num_predict=256)
        result = backend.complete("prompt")

        assert result == "Local answer"
        url = mock_client.post.call_args.args[0]
        payload = mock_client.post.call_args.kwargs["json"]
        assert url == "http://localhost:11434/api/generate"
        assert payload == {
            "model": "llama3",
            "prompt": "prompt",
            "stream": False,
            "options": {"temperature": 0.3, "num_predict": 256},
        }

    @patch('httpx.Client')
    def test_error_status_raises(self, mock_client_class):
        """Test a non-2xx response raises LLMClientError with status and body."""
        response = Mock(is_success=False, status_code=500, text="model not loaded")
        mock_client = MagicMock()
        mock_client.post.return_value = response
        mock_client_class.return_value.__enter__.return_value = mock_client

        backend = OllamaBackend(base_url="http://localhost:11434", model="llama3")

        with pytest.raises(LLMClientError) as exc_info:
            backend.complete("prompt")

        error = exc_info.value.error
        assert error.code == "OLLAMA_ERROR"
        assert "500" in error.message
        assert "model not loaded" in error.message
        assert error.details["status_code"] == 500
        assert error.details["body"] == "model not loaded"


class TestLLMClient:
    """Test suite for LLMClient backend selection and delegation."""

    def test_create_ollama_backend(self):
        assert isinstance(LLMClient.create_backend("ollama"), OllamaBackend)

    def test_create_groq_backend(self):
        with patch('services.llm_client.GROQ_API_KEYS', ["gsk_a"]):
            assert isinstance(LLMClient.create_backend("groq"), GroqBackend)

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            LLMClient.create_backend("gemini")

    def test_complete_delegates_to_backend(self):
        """Test complete returns the backend text unchanged."""
        backend = Mock()
        backend.name = "groq"
        backend.complete.return_value = "generated"

        client = LLMClient(backend=backend)

        assert client.complete("prompt") == "generated"
        backend.complete.assert_called_once_with("prompt")

    def test_complete_propagates_backend_errors(self):
        """Test pool errors reach the caller."""
        backend = Mock()
        backend.name = "groq"
        backend.complete.side_effect = KeysExhaustedError("completion", 2, None)

        client = LLMClient(backend=backend)

        with pytest.raises(KeysExhaustedError):
            client.complete("prompt")
