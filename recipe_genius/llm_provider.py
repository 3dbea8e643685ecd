"""
LLM Provider registry.

Provides a unified interface over the LLM providers the service can call:
- OpenAICompatibleAdapter: DeepSeek, Doubao, GLM (chat-completions shape)
- DashScopeAdapter: Qwen (input/parameters shape)
- GeminiAdapter: Google Gemini (key in query string, contents/parts shape)
- AnthropicAdapter: Claude via the anthropic SDK

Each provider is one PROVIDER_SPECS entry pairing its endpoint, model and
credential env vars with an adapter. Which providers are usable is decided
per request from client-supplied keys, falling back to the environment.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from .config import get_env_var
from .data.models import AIProvider
from .errors import ProviderCallError

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000

# Doubao credentials are reserved for image recognition unless preferred
VISION_PROVIDER = "doubao"
RECIPE_PROVIDER_ORDER = ["deepseek", "qwen", "glm", "gemini"]


def mask_api_key(api_key: str) -> str:
    """Mask an API key for display and logs."""
    if not api_key or len(api_key) < 8:
        return "****"
    return f"{api_key[:4]}****{api_key[-4:]}"


@dataclass
class PreparedRequest:
    """An HTTP request ready to send to a provider."""
    url: str
    headers: Dict[str, str]
    payload: Dict[str, Any]


class ProviderAdapter(ABC):
    """Request/response strategy for one provider API shape."""

    def bearer_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    @abstractmethod
    def build_request(
        self,
        provider: AIProvider,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: Optional[float] = DEFAULT_TEMPERATURE,
    ) -> PreparedRequest:
        """Build the provider-specific request for a single user prompt."""
        pass

    @abstractmethod
    def parse_response(self, body: Dict[str, Any]) -> Optional[str]:
        """Extract output text from a successful response body."""
        pass

    def error_message(self, body: Any) -> str:
        """Best-effort error message from a failed response body."""
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str):
                return error
            if body.get("message"):
                return str(body["message"])
        return "未知错误"

    def invoke(
        self,
        provider: AIProvider,
        prompt: str,
        timeout: float,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: Optional[float] = DEFAULT_TEMPERATURE,
    ) -> str:
        """
        Send one prompt and return the output text.

        Raises:
            ProviderCallError: on network failure, timeout, non-2xx status
                or a body without output text
        """
        prepared = self.build_request(provider, prompt, max_tokens=max_tokens, temperature=temperature)

        try:
            response = requests.post(
                prepared.url,
                headers=prepared.headers,
                json=prepared.payload,
                timeout=timeout,
            )
        except requests.exceptions.Timeout:
            raise ProviderCallError(provider.name, f"request timeout after {timeout}s")
        except requests.exceptions.RequestException as e:
            raise ProviderCallError(provider.name, f"network error: {e}")

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            message = self.error_message(body) if body is not None else response.text[:200]
            raise ProviderCallError(
                provider.name,
                f"({response.status_code}) {message}",
                status_code=response.status_code,
            )

        if not isinstance(body, dict):
            raise ProviderCallError(provider.name, "malformed response body")

        text = self.parse_response(body)
        if not isinstance(text, str) or not text.strip():
            raise ProviderCallError(provider.name, "response contained no output text")
        return text


class OpenAICompatibleAdapter(ProviderAdapter):
    """Chat-completions shape used by DeepSeek, Doubao and GLM."""

    def build_request(self, provider, prompt, max_tokens=DEFAULT_MAX_TOKENS, temperature=DEFAULT_TEMPERATURE):
        payload = {
            "model": provider.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
        }
        if temperature is not None:
            payload["temperature"] = temperature
        return PreparedRequest(url=provider.base_url, headers=dict(provider.headers), payload=payload)

    def parse_response(self, body):
        try:
            return body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None


class DashScopeAdapter(ProviderAdapter):
    """Alibaba DashScope text-generation shape (Qwen)."""

    def build_request(self, provider, prompt, max_tokens=DEFAULT_MAX_TOKENS, temperature=DEFAULT_TEMPERATURE):
        parameters = {"max_tokens": max_tokens}
        if temperature is not None:
            parameters["temperature"] = temperature
        payload = {
            "model": provider.model,
            "input": {"messages": [{"role": "user", "content": prompt}]},
            "parameters": parameters,
        }
        return PreparedRequest(url=provider.base_url, headers=dict(provider.headers), payload=payload)

    def parse_response(self, body):
        output = body.get("output")
        return output.get("text") if isinstance(output, dict) else None


class GeminiAdapter(ProviderAdapter):
    """Google Gemini generateContent. The key travels as a query parameter."""

    def bearer_headers(self, api_key: str) -> Dict[str, str]:
        return {"Content-Type": "application/json"}

    def build_request(self, provider, prompt, max_tokens=DEFAULT_MAX_TOKENS, temperature=DEFAULT_TEMPERATURE):
        return PreparedRequest(
            url=f"{provider.base_url}?key={provider.api_key}",
            headers=dict(provider.headers),
            payload={"contents": [{"parts": [{"text": prompt}]}]},
        )

    def parse_response(self, body):
        try:
            return body["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None

    def invoke(self, provider, prompt, timeout, max_tokens=DEFAULT_MAX_TOKENS, temperature=DEFAULT_TEMPERATURE):
        try:
            return super().invoke(provider, prompt, timeout, max_tokens=max_tokens, temperature=temperature)
        except ProviderCallError as e:
            # requests puts the URL (and so the key) into some exception texts
            detail = e.detail.replace(provider.api_key, mask_api_key(provider.api_key))
            raise ProviderCallError(provider.name, detail, status_code=e.status_code)


class AnthropicAdapter(ProviderAdapter):
    """Claude via the anthropic SDK rather than a raw REST call."""

    def bearer_headers(self, api_key: str) -> Dict[str, str]:
        return {}

    def build_request(self, provider, prompt, max_tokens=DEFAULT_MAX_TOKENS, temperature=DEFAULT_TEMPERATURE):
        payload = {
            "model": provider.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        return PreparedRequest(url=provider.base_url, headers={}, payload=payload)

    def parse_response(self, body):
        for block in body.get("content") or []:
            if isinstance(block, dict) and block.get("type") == "text":
                return block.get("text")
        return None

    def invoke(self, provider, prompt, timeout, max_tokens=DEFAULT_MAX_TOKENS, temperature=DEFAULT_TEMPERATURE):
        import anthropic

        prepared = self.build_request(provider, prompt, max_tokens=max_tokens, temperature=temperature)
        client = anthropic.Anthropic(api_key=provider.api_key, timeout=timeout, max_retries=0)

        try:
            message = client.messages.create(**prepared.payload)
        except anthropic.APITimeoutError:
            raise ProviderCallError(provider.name, f"request timeout after {timeout}s")
        except anthropic.APIStatusError as e:
            raise ProviderCallError(provider.name, f"({e.status_code}) {e.message}", status_code=e.status_code)
        except anthropic.APIError as e:
            raise ProviderCallError(provider.name, f"network error: {e}")

        text = self.parse_response(message.model_dump())
        if not isinstance(text, str) or not text.strip():
            raise ProviderCallError(provider.name, "response contained no output text")
        return text


@dataclass(frozen=True)
class ProviderSpec:
    """Static description of one provider."""
    name: str
    display_name: str
    base_url: str
    model: str
    env_key: str
    adapter: ProviderAdapter
    env_endpoint: Optional[str] = None  # Set when the model is an endpoint id

    @property
    def requires_endpoint(self) -> bool:
        return self.env_endpoint is not None


_OPENAI_COMPATIBLE = OpenAICompatibleAdapter()

# Insertion order is the registry's detection order
PROVIDER_SPECS: Dict[str, ProviderSpec] = {
    "deepseek": ProviderSpec(
        name="deepseek",
        display_name="DeepSeek",
        base_url="https://api.deepseek.com/chat/completions",
        model="deepseek-chat",
        env_key="DEEPSEEK_API_KEY",
        adapter=_OPENAI_COMPATIBLE,
    ),
    "doubao": ProviderSpec(
        name="doubao",
        display_name="豆包 (字节跳动)",
        base_url="https://ark.cn-beijing.volces.com/api/v3/chat/completions",
        model="",  # Replaced by the endpoint id
        env_key="DOUBAO_API_KEY",
        env_endpoint="DOUBAO_ENDPOINT_ID",
        adapter=_OPENAI_COMPATIBLE,
    ),
    "qwen": ProviderSpec(
        name="qwen",
        display_name="通义千问 (阿里云)",
        base_url="https://dashscope.aliyuncs.com/api/v1/services/aigc/text-generation/generation",
        model="qwen-turbo",
        env_key="QWEN_API_KEY",
        adapter=DashScopeAdapter(),
    ),
    "glm": ProviderSpec(
        name="glm",
        display_name="智谱AI (ChatGLM)",
        base_url="https://open.bigmodel.cn/api/paas/v4/chat/completions",
        model="glm-4-flash",
        env_key="GLM_API_KEY",
        adapter=_OPENAI_COMPATIBLE,
    ),
    "gemini": ProviderSpec(
        name="gemini",
        display_name="Google Gemini",
        base_url="https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent",
        model="gemini-1.5-flash",
        env_key="GOOGLE_API_KEY",
        adapter=GeminiAdapter(),
    ),
    "claude": ProviderSpec(
        name="claude",
        display_name="Anthropic Claude",
        base_url="https://api.anthropic.com/v1/messages",
        model="claude-3-5-haiku-20241022",
        env_key="ANTHROPIC_API_KEY",
        adapter=AnthropicAdapter(),
    ),
}


def get_adapter(provider_name: str) -> ProviderAdapter:
    """Adapter for a provider name. Raises KeyError for unknown names."""
    return PROVIDER_SPECS[provider_name].adapter


def _non_empty(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _client_credentials(name: str, api_keys: Optional[Dict[str, Any]]) -> tuple:
    """(key, endpoint_id) supplied by the client for one provider."""
    if not isinstance(api_keys, dict):
        return None, None
    entry = api_keys.get(name)
    if isinstance(entry, dict):
        return _non_empty(entry.get("key")), _non_empty(entry.get("endpointId"))
    return _non_empty(entry), None


def build_provider(name: str, api_key: str, endpoint_id: Optional[str] = None) -> Optional[AIProvider]:
    """
    Build one provider configuration from explicit credentials.

    Returns:
        AIProvider, or None if the provider is unknown or a required
        credential is empty
    """
    spec = PROVIDER_SPECS.get(name)
    api_key = _non_empty(api_key)
    if spec is None or api_key is None:
        return None

    model = spec.model
    if spec.requires_endpoint:
        endpoint_id = _non_empty(endpoint_id)
        if endpoint_id is None:
            return None
        model = endpoint_id

    return AIProvider(
        name=spec.name,
        base_url=spec.base_url,
        model=model,
        api_key=api_key,
        headers=spec.adapter.bearer_headers(api_key),
    )


def get_available_providers(api_keys: Optional[Dict[str, Any]] = None) -> List[AIProvider]:
    """
    Get every provider with complete credentials.

    Args:
        api_keys: Optional client keys, e.g.
            {"deepseek": "sk-...", "doubao": {"key": "...", "endpointId": "ep-..."}}

    Returns:
        Providers in registry order

    Environment Variables:
        DEEPSEEK_API_KEY, DOUBAO_API_KEY, DOUBAO_ENDPOINT_ID, QWEN_API_KEY,
        GLM_API_KEY, GOOGLE_API_KEY, ANTHROPIC_API_KEY
    """
    providers: List[AIProvider] = []

    for name, spec in PROVIDER_SPECS.items():
        client_key, client_endpoint = _client_credentials(name, api_keys)
        api_key = client_key or get_env_var(spec.env_key)
        endpoint_id = None
        if spec.requires_endpoint:
            endpoint_id = client_endpoint or get_env_var(spec.env_endpoint)

        provider = build_provider(name, api_key, endpoint_id)
        if provider is not None:
            providers.append(provider)

    logger.debug(f"Available providers: {[p.name for p in providers]}")
    return providers


def get_recipe_providers(
    api_keys: Optional[Dict[str, Any]] = None,
    preferred_provider: Optional[str] = None,
) -> List[AIProvider]:
    """
    Get providers for recipe generation, in fallback order.

    The vision provider is left out unless it is explicitly preferred. A
    usable preferred provider goes first; the rest follow
    RECIPE_PROVIDER_ORDER, then any remaining providers.
    """
    all_providers = get_available_providers(api_keys)
    text_providers = [p for p in all_providers if p.name != VISION_PROVIDER]

    ordered: List[AIProvider] = []
    if preferred_provider:
        preferred = next((p for p in all_providers if p.name == preferred_provider), None)
        if preferred is not None:
            ordered.append(preferred)

    for name in RECIPE_PROVIDER_ORDER:
        for provider in text_providers:
            if provider.name == name and provider not in ordered:
                ordered.append(provider)

    for provider in text_providers:
        if provider not in ordered:
            ordered.append(provider)

    logger.info(f"Recipe provider order: {[p.name for p in ordered]}")
    return ordered


def get_provider_status(api_keys: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Summary of configured providers for status endpoints."""
    all_providers = get_available_providers(api_keys)
    recipe_providers = get_recipe_providers(api_keys)

    return {
        "available": [p.name for p in all_providers],
        "configured": len(all_providers),
        "total": len(PROVIDER_SPECS),
        "recommended": recipe_providers[0].name if recipe_providers else "none",
        "recipeProviders": [p.name for p in recipe_providers],
        "environment": {
            name: get_env_var(spec.env_key) is not None for name, spec in PROVIDER_SPECS.items()
        },
    }
