"""
Error taxonomy for recipe generation.

- ValidationError: bad client input, never retried
- NoProviderConfiguredError: no usable API key, never retried
- ProviderCallError: one provider failed; triggers fallback to the next
- InvalidModelOutputError / IncompleteModelOutputError: retried as a whole
- AllIngredientsFilteredError: terminal, nothing safe left to cook with
"""

from typing import List


class RecipeGeniusError(Exception):
    """Base class for all recipe generation errors."""
    pass


class ValidationError(RecipeGeniusError):
    """Raised when client input is missing or malformed."""
    pass


class NoProviderConfiguredError(RecipeGeniusError):
    """Raised when no LLM provider has usable credentials."""

    def __init__(self, message: str = "没有可用的AI提供商，请配置至少一个API密钥"):
        super().__init__(message)


class ProviderCallError(RecipeGeniusError):
    """Raised when a single provider call fails (network, status, body)."""

    def __init__(self, provider: str, message: str, status_code: int = None):
        super().__init__(f"{provider} API错误: {message}")
        self.provider = provider
        self.detail = message
        self.status_code = status_code


class InvalidModelOutputError(RecipeGeniusError):
    """Raised when no JSON object can be extracted from model output."""
    pass


class IncompleteModelOutputError(RecipeGeniusError):
    """Raised when parsed model output lacks title, ingredients or steps."""
    pass


class AllIngredientsFilteredError(RecipeGeniusError):
    """Raised when the safety filter leaves no usable ingredient."""

    def __init__(self, filtered_ingredients: List[str], filter_reasons: List[str], explanation: str):
        super().__init__("没有安全的食材可用于生成菜谱")
        self.filtered_ingredients = filtered_ingredients
        self.filter_reasons = filter_reasons
        self.explanation = explanation
