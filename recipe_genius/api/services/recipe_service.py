"""
Async Recipe Service for FastAPI.

Wraps the synchronous generation pipeline with:
- Async execution via thread pool
- Whole-pipeline retry with linear backoff
- Sequential, per-call bounded image recognition
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

from ...config import (
    DEFAULT_MAX_RETRIES,
    GENERATION_RETRY_DELAY_MS,
    NUTRITION_RETRY_DELAY_MS,
    RECOGNITION_MAX_RETRIES,
    RECOGNITION_RETRY_DELAY_MS,
    RECOGNITION_TIMEOUT_MS,
)
from ...ai_engine import verify_provider_key
from ...data.models import NutritionInfo, Recipe, UserPreferences
from ...errors import AllIngredientsFilteredError, NoProviderConfiguredError, ValidationError
from ...llm_provider import get_provider_status
from ...recipe_generator import analyze_nutrition, generate_nutrition_recommendations, generate_recipe
from ...retry import with_retry
from ...vision import API_KEY_MISSING, DoubaoVisionClient, RecognitionError

logger = logging.getLogger(__name__)

# Thread pool for running blocking provider calls
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="recipe_")

NON_RETRYABLE = (ValidationError, NoProviderConfiguredError, AllIngredientsFilteredError)


class AsyncRecipeService:
    """
    Async facade over recipe generation, nutrition analysis, image
    recognition and key verification.

    Delays are constructor arguments so tests can run the retry paths
    without sleeping for seconds.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_MAX_RETRIES,
        generation_delay_ms: int = GENERATION_RETRY_DELAY_MS,
        nutrition_delay_ms: int = NUTRITION_RETRY_DELAY_MS,
        recognition_delay_ms: int = RECOGNITION_RETRY_DELAY_MS,
    ):
        self.max_retries = max_retries
        self.generation_delay_ms = generation_delay_ms
        self.nutrition_delay_ms = nutrition_delay_ms
        self.recognition_delay_ms = recognition_delay_ms

    async def _run(self, func, *args):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(_executor, lambda: func(*args))

    async def generate_recipe(
        self,
        ingredients: List[str],
        preferences: UserPreferences,
        api_keys: Optional[Dict[str, Any]] = None,
        preferred_provider: Optional[str] = None,
    ) -> Recipe:
        """Run the generation pipeline, retrying it as a whole."""
        logger.info(f"Generating recipe from {ingredients}")
        return await with_retry(
            lambda: self._run(generate_recipe, ingredients, preferences, api_keys, preferred_provider),
            max_retries=self.max_retries,
            delay_ms=self.generation_delay_ms,
            non_retryable=NON_RETRYABLE,
        )

    async def analyze_nutrition(
        self,
        recipe: Recipe,
        api_keys: Optional[Dict[str, Any]] = None,
    ) -> Tuple[NutritionInfo, List[str]]:
        """Nutrition totals plus per-serving recommendations."""
        logger.info(f"Analyzing nutrition for '{recipe.title}'")
        nutrition = await with_retry(
            lambda: self._run(analyze_nutrition, recipe, api_keys),
            max_retries=self.max_retries,
            delay_ms=self.nutrition_delay_ms,
            non_retryable=NON_RETRYABLE,
        )
        return nutrition, generate_nutrition_recommendations(nutrition, recipe.servings)

    async def recognize_ingredients(
        self,
        image_data_url: str,
        api_keys: Optional[Dict[str, Any]] = None,
        max_retries: int = RECOGNITION_MAX_RETRIES,
        timeout_ms: int = RECOGNITION_TIMEOUT_MS,
    ) -> Dict[str, Any]:
        """
        Recognise ingredients in an image.

        Runs in one worker thread: the vision client makes at most
        max_retries sequential calls, each bounded by timeout_ms at the
        HTTP layer, and stops early on key or quota errors.

        Raises:
            RecognitionError: not configured, or every attempt failed
        """
        client = DoubaoVisionClient.from_api_keys(
            api_keys,
            timeout=timeout_ms / 1000,
            max_retries=max_retries,
            retry_delay_ms=self.recognition_delay_ms,
        )
        if client is None:
            raise RecognitionError("豆包API未配置", API_KEY_MISSING)

        return await self._run(client.recognize_ingredients, image_data_url)

    async def vision_status(self, api_keys: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Connectivity of the vision provider."""
        client = DoubaoVisionClient.from_api_keys(api_keys)
        if client is None:
            return {"success": False, "message": "豆包API密钥或端点ID未配置"}
        return await self._run(client.test_connection)

    async def verify_api_key(
        self,
        provider: str,
        api_key: str,
        endpoint_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self._run(verify_provider_key, provider, api_key, endpoint_id)

    def provider_status(self, api_keys: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return get_provider_status(api_keys)


# Global service instance (initialized in lifespan)
_recipe_service: Optional[AsyncRecipeService] = None


def get_recipe_service() -> AsyncRecipeService:
    """Get the global recipe service instance."""
    if _recipe_service is None:
        raise RuntimeError("Recipe service not initialized. Call init_recipe_service() first.")
    return _recipe_service


def init_recipe_service(**kwargs) -> AsyncRecipeService:
    """Initialize the global recipe service."""
    global _recipe_service
    _recipe_service = AsyncRecipeService(**kwargs)
    return _recipe_service
