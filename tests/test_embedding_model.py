"""Unit tests for EmbeddingModel."""
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from unittest.mock import Mock, MagicMock, patch
from services.embedding_model import EmbeddingModel, EmbeddingAPIError
from services.key_pool import ApiKeyPool, AllKeysDeadError, KeysExhaustedError


def make_response(status_code=200, json_data=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = json_data
    response.text = text
    return response


def make_pool(keys, start=0):
    rng = Mock()
    rng.randrange.return_value = start
    return ApiKeyPool(keys, name="embedding", rng=rng)


def wire_client(mock_client_class, responses):
    mock_client = MagicMock()
    mock_client.post.side_effect = responses
    mock_client_class.return_value.__enter__.return_value = mock_client
    return mock_client


class TestEmbeddingModel:
    """Test suite for EmbeddingModel class."""

    def test_initialization_without_keys(self):
        """Test that initialization fails when no key is configured."""
        with patch('services.embedding_model.HUGGINGFACE_API_KEYS', []):
            with pytest.raises(ValueError, match="HUGGINGFACE_API_KEYS"):
                EmbeddingModel()

    def test_initialization_builds_pool(self):
        """Test that explicit keys become an embedding pool."""
        model = EmbeddingModel(api_keys=["hf_a", "hf_b"], model_name="test/model")

        assert len(model.key_pool) == 2
        assert model.key_pool.name == "embedding"
        assert model.api_url == "https://api-inference.huggingface.co/models/test/model"

    @patch('httpx.Client')
    def test_embed_text_success(self, mock_client_class):
        """Test embedding a single text returns floats from a nested response."""
        mock_client = wire_client(mock_client_class, [make_response(json_data=[[0.1, 0.2, 0.3]])])
        model = EmbeddingModel(key_pool=make_pool(["hf_a"]))

        embedding = model.embed_text("Newton's first law")

        assert embedding == [0.1, 0.2, 0.3]
        call_kwargs = mock_client.post.call_args.kwargs
        assert call_kwargs["headers"]["Authorization"] == "Bearer hf_a"
        assert call_kwargs["json"]["inputs"] == ["Newton's first law"]
        assert call_kwargs["json"]["options"]["wait_for_model"] is True

    @patch('httpx.Client')
    def test_embed_text_flat_response(self, mock_client_class):
        """Test a flat vector response is accepted."""
        wire_client(mock_client_class, [make_response(json_data=[1, 2])])
        model = EmbeddingModel(key_pool=make_pool(["hf_a"]))

        assert model.embed_text("text") == [1.0, 2.0]

    def test_embed_empty_text(self):
        """Test that empty text raises ValueError without any request."""
        model = EmbeddingModel(key_pool=make_pool(["hf_a"]))

        with pytest.raises(ValueError, match="Text cannot be empty"):
            model.embed_text("   ")

    @patch('httpx.Client')
    def test_rate_limited_key_rotates_to_next(self, mock_client_class):
        """Test a 429 on the first key falls through to the second key."""
        mock_client = wire_client(mock_client_class, [
            make_response(429, text="Rate limit reached"),
            make_response(json_data=[[0.5, 0.5]]),
        ])
        model = EmbeddingModel(key_pool=make_pool(["hf_a", "hf_b"]))

        assert model.embed_text("text") == [0.5, 0.5]
        used_keys = [c.kwargs["headers"]["Authorization"] for c in mock_client.post.call_args_list]
        assert used_keys == ["Bearer hf_a", "Bearer hf_b"]
        assert model.key_pool.dead_count == 0

    @patch('httpx.Client')
    def test_invalid_key_is_retired(self, mock_client_class):
        """Test an invalid-key response retires the key for later calls."""
        mock_client = wire_client(mock_client_class, [
            make_response(401, text='{"error":"Invalid API key"}'),
            make_response(json_data=[[1.0]]),
            make_response(json_data=[[2.0]]),
        ])
        model = EmbeddingModel(key_pool=make_pool(["hf_a", "hf_b"]))

        model.embed_text("first")
        model.embed_text("second")

        assert model.key_pool.is_dead("hf_a")
        assert mock_client.post.call_count == 3
        last_key = mock_client.post.call_args.kwargs["headers"]["Authorization"]
        assert last_key == "Bearer hf_b"

    @patch('httpx.Client')
    def test_all_keys_forbidden(self, mock_client_class):
        """Test every key returning 403 raises AllKeysDeadError."""
        wire_client(mock_client_class, [make_response(403, text="Forbidden")] * 2)
        model = EmbeddingModel(key_pool=make_pool(["hf_a", "hf_b"]))

        with pytest.raises(AllKeysDeadError):
            model.embed_text("text")

    @patch('httpx.Client')
    def test_invalid_credentials_on_every_key(self, mock_client_class):
        """Test revoked Hugging Face tokens end in AllKeysDeadError and are not retried."""
        mock_client = wire_client(mock_client_class, [
            make_response(401, text='{"error":"Invalid credentials in Authorization header"}')
        ] * 2)
        model = EmbeddingModel(key_pool=make_pool(["hf_a", "hf_b"]))

        with pytest.raises(AllKeysDeadError):
            model.embed_text("text")
        with pytest.raises(AllKeysDeadError):
            model.embed_text("text")

        assert mock_client.post.call_count == 2

    @patch('httpx.Client')
    def test_all_keys_exhausted(self, mock_client_class):
        """Test every key failing transiently raises KeysExhaustedError."""
        wire_client(mock_client_class, [make_response(500, text="Internal error")] * 2)
        model = EmbeddingModel(key_pool=make_pool(["hf_a", "hf_b"]))

        with pytest.raises(KeysExhaustedError) as exc_info:
            model.embed_text("text")

        assert isinstance(exc_info.value.last_error, EmbeddingAPIError)
        assert exc_info.value.last_error.status_code == 500

    @patch('httpx.Client')
    def test_embed_batch_preserves_order(self, mock_client_class):
        """Test batch embedding issues one request per text in order."""
        mock_client = wire_client(mock_client_class, [
            make_response(json_data=[[1.0]]),
            make_response(json_data=[[2.0]]),
            make_response(json_data=[[3.0]]),
        ])
        model = EmbeddingModel(key_pool=make_pool(["hf_a"]))

        embeddings = model.embed_batch(["a", "b", "c"])

        assert embeddings == [[1.0], [2.0], [3.0]]
        sent = [c.kwargs["json"]["inputs"] for c in mock_client.post.call_args_list]
        assert sent == [["a"], ["b"], ["c"]]

    def test_parse_vector_rejects_empty(self):
        """Test an empty response body is rejected."""
        with pytest.raises(ValueError, match="Unexpected embedding response"):
            EmbeddingModel._parse_vector([])
