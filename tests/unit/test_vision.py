"""
Tests for the Doubao vision client and recognition fallbacks.

Tests cover:
- Error classification and retryability
- Fallback suggestions
- Client construction from client keys and environment
- Recognition requests, retries and failures
"""

import json

import pytest
import requests
from unittest.mock import patch

from recipe_genius.retry import RetryStrategy
from recipe_genius.vision import (
    API_KEY_MISSING,
    API_NETWORK_ERROR,
    API_QUOTA_EXCEEDED,
    API_TIMEOUT,
    IMAGE_INVALID_FORMAT,
    PARSING_ERROR,
    UNKNOWN_ERROR,
    DoubaoVisionClient,
    RecognitionError,
    classify_error,
    estimate_image_size_mb,
    generate_fallback_ingredients,
    is_retryable,
)

IMAGE = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


@pytest.fixture
def vision_client():
    """Client that retries without sleeping."""
    client = DoubaoVisionClient("dk-test", "ep-vision")
    client.retry_strategy = RetryStrategy(max_retries=2, base_delay_ms=0, sleep=lambda s: None)
    return client


# =============================================================================
# Error Classification Tests
# =============================================================================

class TestClassifyError:

    @pytest.mark.parametrize("message, expected", [
        ("Invalid API key", API_KEY_MISSING),
        ("豆包API密钥无效或已过期", API_KEY_MISSING),
        ("monthly quota reached", API_QUOTA_EXCEEDED),
        ("请求超时，请重试", API_TIMEOUT),
        ("network unreachable", API_NETWORK_ERROR),
        ("unsupported format", IMAGE_INVALID_FORMAT),
        ("JSON parse failure", PARSING_ERROR),
        ("something odd", UNKNOWN_ERROR),
    ])
    def test_classification(self, message, expected):
        assert classify_error(message) == expected

    def test_retryability(self):
        assert not is_retryable(RecognitionError("x", API_KEY_MISSING))
        assert not is_retryable(RuntimeError("quota exceeded"))
        assert is_retryable(RecognitionError("请求超时", API_TIMEOUT))
        assert is_retryable(RuntimeError("something odd"))


def test_fallback_ingredients():
    fallback = generate_fallback_ingredients()

    assert fallback["ingredients"] == []
    assert fallback["confidence"] == 0
    assert fallback["suggestions"] == ["土豆", "番茄", "洋葱", "鸡蛋", "鸡肉", "盐", "糖"]
    assert fallback["categories"] == ["蔬菜", "肉类", "调料"]
    assert fallback["source"] == "fallback"


def test_estimate_image_size_mb():
    assert estimate_image_size_mb("A" * (4 * 1024 * 1024)) == 3.0


# =============================================================================
# Construction Tests
# =============================================================================

class TestFromApiKeys:

    def test_client_keys(self):
        client = DoubaoVisionClient.from_api_keys({"doubao": {"key": "ck", "endpointId": "ep-c"}})
        assert (client.api_key, client.endpoint_id) == ("ck", "ep-c")

    def test_env_fallback(self, monkeypatch):
        monkeypatch.setenv("DOUBAO_API_KEY", "ek")
        monkeypatch.setenv("DOUBAO_ENDPOINT_ID", "ep-e")

        client = DoubaoVisionClient.from_api_keys({"doubao": {"key": "ck", "endpointId": ""}})
        assert (client.api_key, client.endpoint_id) == ("ek", "ep-e")

    def test_not_configured(self):
        assert DoubaoVisionClient.from_api_keys() is None

    def test_call_budget_options(self):
        client = DoubaoVisionClient.from_api_keys(
            {"doubao": {"key": "ck", "endpointId": "ep-c"}},
            timeout=5,
            max_retries=4,
            retry_delay_ms=250,
        )

        assert client.timeout == 5
        assert client.retry_strategy.max_retries == 4
        assert client.retry_strategy.base_delay_ms == 250

    def test_repr_masks_key(self):
        client = DoubaoVisionClient("dk-0123456789", "ep")
        assert "0123456789" not in repr(client)


# =============================================================================
# Recognition Tests
# =============================================================================

class TestRecognizeIngredients:
    """Tests for the vision request cycle."""

    def test_request_shape(self, vision_client):
        payload = vision_client.build_request(IMAGE)

        content = payload["messages"][0]["content"]
        assert payload["model"] == "ep-vision"
        assert content[1] == {"type": "image_url", "image_url": {"url": IMAGE, "detail": "high"}}
        assert payload["max_tokens"] == 1000
        assert payload["temperature"] == 0.1

    @patch("recipe_genius.vision.requests.post")
    def test_success(self, mock_post, vision_client, fake_response, completion):
        reply = json.dumps({"ingredients": ["番茄", "鸡蛋"], "confidence": 0.9}, ensure_ascii=False)
        mock_post.return_value = fake_response(200, completion(reply))

        result = vision_client.recognize_ingredients(IMAGE)

        assert result["ingredients"] == ["番茄", "鸡蛋"]
        assert result["confidence"] == 0.9
        assert mock_post.call_args.kwargs["timeout"] == 30
        assert mock_post.call_args.kwargs["headers"]["Authorization"] == "Bearer dk-test"

    @patch("recipe_genius.vision.requests.post")
    def test_prose_reply_uses_keywords(self, mock_post, vision_client, fake_response, completion):
        mock_post.return_value = fake_response(200, completion("我看到了一些土豆和番茄"))

        result = vision_client.recognize_ingredients(IMAGE)

        assert result["ingredients"] == ["土豆", "番茄"]
        assert result["confidence"] == 0.6

    @patch("recipe_genius.vision.requests.post")
    def test_invalid_key_not_retried(self, mock_post, vision_client, fake_response):
        mock_post.return_value = fake_response(401, {"error": {"message": "unauthorized"}})

        with pytest.raises(RecognitionError) as exc_info:
            vision_client.recognize_ingredients(IMAGE)

        assert exc_info.value.error_type == API_KEY_MISSING
        assert mock_post.call_count == 1

    @patch("recipe_genius.vision.requests.post")
    def test_timeout_is_retried(self, mock_post, vision_client, fake_response, completion):
        mock_post.side_effect = [
            requests.exceptions.Timeout(),
            fake_response(200, completion('{"ingredients": ["白菜"]}')),
        ]

        result = vision_client.recognize_ingredients(IMAGE)

        assert result["ingredients"] == ["白菜"]
        assert mock_post.call_count == 2

    @patch("recipe_genius.vision.requests.post")
    def test_empty_recognition_fails(self, mock_post, vision_client, fake_response, completion):
        mock_post.return_value = fake_response(200, completion('{"ingredients": []}'))

        with pytest.raises(RecognitionError, match="未能识别出任何食材"):
            vision_client.recognize_ingredients(IMAGE)
        assert mock_post.call_count == 2


class TestConnection:

    @patch("recipe_genius.vision.requests.post")
    def test_ok(self, mock_post, vision_client, fake_response, completion):
        mock_post.return_value = fake_response(200, completion("连接正常"))

        assert vision_client.test_connection() == {"success": True, "message": "豆包API连接正常"}
        assert mock_post.call_args.kwargs["json"]["max_tokens"] == 10
        assert mock_post.call_args.kwargs["timeout"] == 10

    @patch("recipe_genius.vision.requests.post")
    def test_network_failure(self, mock_post, vision_client):
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")

        result = vision_client.test_connection()

        assert result["success"] is False
        assert result["message"].startswith("连接异常")
