"""
Recipe routes for the FastAPI application.

Provides endpoints for:
- Generating a recipe from ingredients and preferences
- Analyzing the nutrition of a recipe
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ...data.models import Recipe, UserPreferences
from ...errors import AllIngredientsFilteredError, NoProviderConfiguredError, ValidationError
from ...recipe_generator import clean_ingredients
from ..dependencies import ai_rate_limit
from ..services.recipe_service import AsyncRecipeService, get_recipe_service

logger = logging.getLogger(__name__)

router = APIRouter()


class GenerateRecipeRequest(BaseModel):
    """Request body for recipe generation."""
    model_config = ConfigDict(populate_by_name=True)

    ingredients: Optional[List[Any]] = None
    preferences: Optional[Dict[str, Any]] = None
    api_keys: Optional[Dict[str, Any]] = Field(default=None, alias="apiKeys")
    preferred_provider: Optional[str] = Field(default=None, alias="preferredProvider")


class AnalyzeNutritionRequest(BaseModel):
    """Request body for nutrition analysis."""
    model_config = ConfigDict(populate_by_name=True)

    recipe: Optional[Dict[str, Any]] = None
    api_keys: Optional[Dict[str, Any]] = Field(default=None, alias="apiKeys")


def get_service(request: Request) -> AsyncRecipeService:
    """Dependency to get the recipe service."""
    return get_recipe_service()


def error_response(status_code: int, error: str, data: Optional[Dict[str, Any]] = None) -> JSONResponse:
    content: Dict[str, Any] = {"success": False, "error": error}
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=status_code, content=content)


def map_ai_error(error: Exception, default_message: str) -> Tuple[int, str]:
    """
    HTTP status and user-facing message for a failed AI operation.

    Known types first, then message substrings from provider errors.
    """
    if isinstance(error, ValidationError):
        return 400, str(error)
    if isinstance(error, NoProviderConfiguredError):
        return 503, str(error)

    message = str(error)
    if "API key" in message:
        return 503, "AI服务配置错误，请联系管理员"
    if "quota" in message or "limit" in message:
        return 503, "AI服务暂时不可用，请稍后重试"
    if "timeout" in message:
        return 408, "请求超时，请重试"
    return 500, default_message


@router.post("/generate-recipe", dependencies=[Depends(ai_rate_limit)])
async def generate_recipe(
    body: GenerateRecipeRequest,
    service: AsyncRecipeService = Depends(get_service),
):
    """
    Generate a recipe.

    Unsafe ingredients are filtered before any model is called; if nothing
    safe remains the response is a 400 listing what was removed and why.
    """
    if not body.ingredients:
        return error_response(400, "请至少提供一种食材")
    if body.preferences is None:
        return error_response(400, "请提供用户偏好设置")

    ingredients = clean_ingredients(body.ingredients)
    if not ingredients:
        return error_response(400, "请提供有效的食材名称")

    preferences = UserPreferences.from_dict(body.preferences)

    try:
        recipe = await service.generate_recipe(
            ingredients,
            preferences,
            api_keys=body.api_keys,
            preferred_provider=body.preferred_provider,
        )
    except AllIngredientsFilteredError as e:
        return error_response(400, str(e), data={
            "filteredIngredients": e.filtered_ingredients,
            "filterReasons": e.filter_reasons,
            "explanation": e.explanation,
        })
    except Exception as e:
        logger.exception(f"Recipe generation failed: {e}")
        status_code, message = map_ai_error(e, "菜谱生成失败，请稍后重试")
        return error_response(status_code, message)

    logger.info(f"Recipe generated: {recipe.title}")
    return {
        "success": True,
        "data": {"recipe": recipe.to_dict()},
        "message": "菜谱生成成功",
    }


@router.post("/analyze-nutrition", dependencies=[Depends(ai_rate_limit)])
async def analyze_nutrition(
    body: AnalyzeNutritionRequest,
    service: AsyncRecipeService = Depends(get_service),
):
    """Estimate nutrition for a recipe and derive per-serving advice."""
    if not body.recipe:
        return error_response(400, "请提供菜谱信息")

    recipe = Recipe.from_dict(body.recipe)
    if not recipe.title or not recipe.ingredients:
        return error_response(400, "菜谱信息不完整")

    try:
        nutrition, recommendations = await service.analyze_nutrition(recipe, api_keys=body.api_keys)
    except Exception as e:
        logger.exception(f"Nutrition analysis failed: {e}")
        status_code, message = map_ai_error(e, "营养分析失败，请稍后重试")
        return error_response(status_code, message)

    return {
        "success": True,
        "data": {
            "nutrition": nutrition.to_dict(),
            "recommendations": recommendations,
        },
        "message": "营养分析完成",
    }
