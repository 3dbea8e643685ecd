"""
Ingredient recognition from photos via the Doubao vision model.

A recognition failure is never fatal for the user: callers can always fall
back to generate_fallback_ingredients() and let the user type ingredients.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .config import RECOGNITION_MAX_RETRIES, RECOGNITION_RETRY_DELAY_MS, VISION_TIMEOUT_SECONDS, get_env_var
from .llm_provider import PROVIDER_SPECS, VISION_PROVIDER, mask_api_key
from .prompt_builder import RECOGNITION_PROMPT
from .response_parser import parse_recognition_result
from .retry import RetryStrategy

logger = logging.getLogger(__name__)

# Recognition error types
API_KEY_MISSING = "api_key_missing"
API_QUOTA_EXCEEDED = "api_quota_exceeded"
API_TIMEOUT = "api_timeout"
API_NETWORK_ERROR = "api_network_error"
IMAGE_TOO_LARGE = "image_too_large"
IMAGE_INVALID_FORMAT = "image_invalid_format"
IMAGE_CORRUPTED = "image_corrupted"
PARSING_ERROR = "parsing_error"
UNKNOWN_ERROR = "unknown_error"

NON_RETRYABLE_ERRORS = {
    API_KEY_MISSING,
    API_QUOTA_EXCEEDED,
    IMAGE_TOO_LARGE,
    IMAGE_INVALID_FORMAT,
    IMAGE_CORRUPTED,
}

FALLBACK_VEGETABLES = ["土豆", "番茄", "洋葱", "胡萝卜", "白菜", "菠菜", "韭菜", "芹菜", "青椒", "茄子"]
FALLBACK_PROTEINS = ["鸡蛋", "鸡肉", "猪肉", "牛肉", "鱼", "虾", "豆腐", "腊肉", "香肠"]
FALLBACK_SEASONINGS = ["盐", "糖", "醋", "酱油", "料酒", "蒜", "姜", "葱", "辣椒", "花椒", "八角"]


class RecognitionError(Exception):
    """Raised when the vision model could not produce a usable result."""

    def __init__(self, message: str, error_type: Optional[str] = None):
        super().__init__(message)
        self.error_type = error_type or classify_error(message)


def classify_error(error: Any) -> str:
    """Map an error (or message) to a recognition error type."""
    message = str(error).lower()

    if "api" in message and ("key" in message or "密钥" in message):
        return API_KEY_MISSING
    if "quota" in message or "limit" in message or "配额" in message:
        return API_QUOTA_EXCEEDED
    if "timeout" in message or "超时" in message:
        return API_TIMEOUT
    if "network" in message or "fetch" in message or "网络" in message:
        return API_NETWORK_ERROR
    if "too large" in message or "过大" in message:
        return IMAGE_TOO_LARGE
    if "format" in message or "格式" in message:
        return IMAGE_INVALID_FORMAT
    if "corrupted" in message or "损坏" in message:
        return IMAGE_CORRUPTED
    if "parse" in message or "json" in message or "解析" in message:
        return PARSING_ERROR
    return UNKNOWN_ERROR


def is_retryable(error: Exception) -> bool:
    error_type = getattr(error, "error_type", None) or classify_error(error)
    return error_type not in NON_RETRYABLE_ERRORS


def generate_fallback_ingredients() -> Dict[str, Any]:
    """Suggestions shown when automatic recognition is unavailable."""
    return {
        "ingredients": [],
        "confidence": 0,
        "description": "无法自动识别，请手动添加食材",
        "suggestions": FALLBACK_VEGETABLES[:3] + FALLBACK_PROTEINS[:2] + FALLBACK_SEASONINGS[:2],
        "categories": ["蔬菜", "肉类", "调料"],
        "source": "fallback",
    }


def estimate_image_size_mb(image_data_url: str) -> float:
    """Decoded size estimate of a base64 data URL, in megabytes."""
    return (len(image_data_url) * 3 / 4) / (1024 * 1024)


class DoubaoVisionClient:
    """
    Client for the Doubao (Volcengine Ark) vision chat-completions API.

    Calls are made one at a time: each attempt is bounded by `timeout`
    seconds at the HTTP layer, and the next attempt starts only after the
    previous one has returned or failed.
    """

    def __init__(
        self,
        api_key: str,
        endpoint_id: str,
        timeout: float = VISION_TIMEOUT_SECONDS,
        max_retries: int = RECOGNITION_MAX_RETRIES,
        retry_delay_ms: int = RECOGNITION_RETRY_DELAY_MS,
    ):
        self.api_key = api_key
        self.endpoint_id = endpoint_id
        self.base_url = PROVIDER_SPECS[VISION_PROVIDER].base_url
        self.timeout = timeout
        self.retry_strategy = RetryStrategy(max_retries=max_retries, base_delay_ms=retry_delay_ms, max_delay_ms=5000)

    @classmethod
    def from_api_keys(cls, api_keys: Optional[Dict[str, Any]] = None, **kwargs) -> Optional["DoubaoVisionClient"]:
        """
        Build a client from client-supplied keys, falling back to env vars.

        Returns:
            DoubaoVisionClient, or None if key or endpoint id is missing
        """
        entry = (api_keys or {}).get(VISION_PROVIDER) if isinstance(api_keys, dict) else None
        if isinstance(entry, dict) and entry.get("key") and entry.get("endpointId"):
            logger.info("Using client-supplied Doubao credentials")
            return cls(entry["key"].strip(), entry["endpointId"].strip(), **kwargs)

        spec = PROVIDER_SPECS[VISION_PROVIDER]
        api_key = get_env_var(spec.env_key)
        endpoint_id = get_env_var(spec.env_endpoint)
        if api_key and endpoint_id:
            return cls(api_key, endpoint_id, **kwargs)

        logger.warning("Doubao vision credentials are not configured")
        return None

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def build_request(self, image_data_url: str) -> Dict[str, Any]:
        return {
            "model": self.endpoint_id,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": RECOGNITION_PROMPT},
                        {"type": "image_url", "image_url": {"url": image_data_url, "detail": "high"}},
                    ],
                }
            ],
            "max_tokens": 1000,
            "temperature": 0.1,
            "top_p": 0.9,
        }

    def _post(self, payload: Dict[str, Any], timeout: float) -> requests.Response:
        try:
            return requests.post(self.base_url, headers=self.headers, json=payload, timeout=timeout)
        except requests.exceptions.Timeout:
            raise RecognitionError("请求超时，请重试", API_TIMEOUT)
        except requests.exceptions.RequestException as e:
            raise RecognitionError(f"网络连接失败，请检查网络后重试: {e}", API_NETWORK_ERROR)

    def _recognize_once(self, image_data_url: str) -> Dict[str, Any]:
        logger.info(f"Calling Doubao vision ({self.endpoint_id}), image {len(image_data_url)} chars")
        response = self._post(self.build_request(image_data_url), self.timeout)

        if not response.ok:
            logger.error(f"Doubao vision returned {response.status_code}: {response.text[:200]}")
            if response.status_code == 401:
                raise RecognitionError("豆包API密钥无效或已过期", API_KEY_MISSING)
            if response.status_code == 429:
                raise RecognitionError("API调用配额已用完，请稍后重试", API_QUOTA_EXCEEDED)
            raise RecognitionError(f"豆包API调用失败: {response.status_code}")

        try:
            choices = response.json().get("choices") or []
            content = choices[0]["message"]["content"]
        except (ValueError, AttributeError, KeyError, IndexError, TypeError):
            raise RecognitionError("豆包API返回空结果")

        result = parse_recognition_result(content)
        if not result["ingredients"]:
            raise RecognitionError("未能识别出任何食材")
        return result

    def recognize_ingredients(self, image_data_url: str) -> Dict[str, Any]:
        """
        Recognise ingredients in a data-URL image.

        Returns:
            {"ingredients", "confidence", "description", optional
            "suggestions" and "categories"}

        Raises:
            RecognitionError: after retries, with error_type set
        """
        return self.retry_strategy.execute(
            lambda: self._recognize_once(image_data_url),
            should_retry=is_retryable,
        )

    def test_connection(self) -> Dict[str, Any]:
        """Minimal text-only call to check the key and endpoint id."""
        payload = {
            "model": self.endpoint_id,
            "messages": [{"role": "user", "content": [{"type": "text", "text": '你好，请回复"连接正常"'}]}],
            "max_tokens": 10,
        }
        try:
            response = self._post(payload, timeout=10)
        except RecognitionError as e:
            return {"success": False, "message": f"连接异常: {e}"}

        if response.ok:
            return {"success": True, "message": "豆包API连接正常"}
        return {"success": False, "message": f"连接失败: {response.status_code} {response.reason}"}

    def __repr__(self) -> str:
        return f"DoubaoVisionClient(endpoint_id={self.endpoint_id!r}, api_key={mask_api_key(self.api_key)!r})"
