"""
AI invocation engine.

Sends a prompt to an ordered list of providers, one at a time, falling
back to the next provider whenever a call fails. The first successful
response wins; if every provider fails the last error propagates.
"""

import logging
from typing import Any, Dict, List, Optional

from .config import KEY_TEST_TIMEOUT_SECONDS, RECIPE_TIMEOUT_SECONDS
from .data.models import AIProvider
from .errors import NoProviderConfiguredError, ProviderCallError
from .llm_provider import (
    PROVIDER_SPECS,
    build_provider,
    get_adapter,
    get_available_providers,
    get_recipe_providers,
    mask_api_key,
)
from .prompt_builder import CONNECTION_TEST_PROMPT

logger = logging.getLogger(__name__)


def execute_ai_call(
    providers: List[AIProvider],
    prompt: str,
    timeout: float = RECIPE_TIMEOUT_SECONDS,
) -> str:
    """
    Call providers in order until one returns output text.

    Args:
        providers: Ordered provider list, best first
        prompt: Fully rendered prompt
        timeout: Per-call timeout in seconds

    Returns:
        Raw model output text

    Raises:
        NoProviderConfiguredError: If providers is empty
        ProviderCallError: The last provider's error when all of them fail
    """
    if not providers:
        raise NoProviderConfiguredError()

    last_error: Optional[ProviderCallError] = None

    for index, provider in enumerate(providers):
        try:
            logger.info(f"Calling {provider.name} ({index + 1}/{len(providers)})")
            text = get_adapter(provider.name).invoke(provider, prompt, timeout)
            logger.info(f"{provider.name} responded ({len(text)} chars)")
            return text
        except ProviderCallError as e:
            last_error = e
            if index + 1 < len(providers):
                logger.warning(f"{e}; falling back to {providers[index + 1].name}")
            else:
                logger.error(f"All {len(providers)} providers failed, last error: {e}")

    raise last_error


def call_recipe_ai(
    prompt: str,
    api_keys: Optional[Dict[str, Any]] = None,
    preferred_provider: Optional[str] = None,
) -> str:
    """Invoke the recipe provider list (vision provider excluded)."""
    providers = get_recipe_providers(api_keys, preferred_provider)
    return execute_ai_call(providers, prompt)


def call_ai(prompt: str, api_keys: Optional[Dict[str, Any]] = None) -> str:
    """Invoke every available provider in registry order."""
    providers = get_available_providers(api_keys)
    return execute_ai_call(providers, prompt)


def _check_key_format(provider: str, api_key: str) -> Optional[str]:
    """Cheap local checks before spending a live call. Returns an error or None."""
    if provider == "deepseek" and (not api_key.startswith("sk-") or len(api_key) < 20):
        return "DeepSeek API密钥格式错误，必须以sk-开头且长度超过20个字符"
    return None


def verify_provider_key(provider: str, api_key: str, endpoint_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify a client-supplied key with a minimal live call.

    Returns:
        {"success": True, "message": ...} or {"success": False, "error": ...}
    """
    if not provider or not api_key or not api_key.strip():
        return {"success": False, "error": "缺少必要参数"}

    if provider not in PROVIDER_SPECS:
        return {"success": False, "error": "不支持的提供商"}

    api_key = api_key.strip()
    format_error = _check_key_format(provider, api_key)
    if format_error:
        return {"success": False, "error": format_error}

    if PROVIDER_SPECS[provider].requires_endpoint and not (endpoint_id and endpoint_id.strip()):
        return {"success": False, "error": "豆包需要提供端点ID"}

    ai_provider = build_provider(provider, api_key, endpoint_id)
    logger.info(f"Testing {provider} key {mask_api_key(api_key)}")

    try:
        get_adapter(provider).invoke(
            ai_provider,
            CONNECTION_TEST_PROMPT,
            KEY_TEST_TIMEOUT_SECONDS,
            max_tokens=10,
            temperature=None,
        )
    except ProviderCallError as e:
        logger.warning(f"Key test failed for {provider}: {e}")
        if e.status_code == 401:
            return {"success": False, "error": "API密钥无效，请检查密钥是否正确"}
        return {"success": False, "error": str(e)}

    return {"success": True, "message": f"{PROVIDER_SPECS[provider].display_name} API密钥验证成功"}
