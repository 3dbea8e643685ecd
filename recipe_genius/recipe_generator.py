"""
Recipe generation pipeline.

filter -> prompt -> provider call with fallback -> parse. Everything here
is synchronous and blocking; the API layer runs it in a worker thread and
wraps it with with_retry().
"""

import logging
from typing import Any, Dict, List, Optional

from .ai_engine import call_ai, call_recipe_ai
from .config import MAX_INGREDIENT_LENGTH
from .data.models import HealthInfo, NutritionInfo, Recipe, UserPreferences
from .errors import AllIngredientsFilteredError, ValidationError
from .ingredient_filter import filter_ingredients, generate_filter_explanation
from .prompt_builder import build_nutrition_prompt, build_recipe_prompt
from .response_parser import parse_nutrition, parse_recipe

logger = logging.getLogger(__name__)


def clean_ingredients(ingredients: List[Any]) -> List[str]:
    """Trim names, drop empty or overlong ones, de-duplicate keeping order."""
    cleaned: List[str] = []
    for item in ingredients:
        if not isinstance(item, str):
            continue
        name = item.strip()
        if 0 < len(name) <= MAX_INGREDIENT_LENGTH and name not in cleaned:
            cleaned.append(name)
    return cleaned


def _merge_health_info(recipe: Recipe, filtered: List[str], reasons: List[str]) -> None:
    """Make sure locally filtered ingredients are reported on the recipe."""
    if not filtered:
        return
    if recipe.health_info is None:
        recipe.health_info = HealthInfo()
    info = recipe.health_info
    for name in filtered:
        if name not in info.filtered_ingredients:
            info.filtered_ingredients.append(name)
    for reason in reasons:
        if reason not in info.filter_reasons:
            info.filter_reasons.append(reason)


def generate_recipe(
    ingredients: List[str],
    preferences: UserPreferences,
    api_keys: Optional[Dict[str, Any]] = None,
    preferred_provider: Optional[str] = None,
) -> Recipe:
    """
    Generate one recipe from cleaned ingredients.

    Raises:
        ValidationError: No ingredients given
        AllIngredientsFilteredError: Nothing safe is left; no model is called
        NoProviderConfiguredError, ProviderCallError,
        InvalidModelOutputError, IncompleteModelOutputError
    """
    if not ingredients:
        raise ValidationError("请至少提供一种食材")

    result = filter_ingredients(ingredients, preferences)
    if not result.allowed_ingredients:
        explanation = generate_filter_explanation(result.filtered_ingredients, result.filter_reasons)
        logger.warning(f"All ingredients filtered: {result.filtered_ingredients}")
        raise AllIngredientsFilteredError(result.filtered_ingredients, result.filter_reasons, explanation)

    prompt = build_recipe_prompt(result.allowed_ingredients, preferences)
    logger.debug(f"Recipe prompt is {len(prompt)} chars for {result.allowed_ingredients}")

    text = call_recipe_ai(prompt, api_keys, preferred_provider)
    recipe = parse_recipe(text, preferences)
    _merge_health_info(recipe, result.filtered_ingredients, result.filter_reasons)

    logger.info(f"Generated recipe '{recipe.title}' ({len(recipe.ingredients)} ingredients)")
    return recipe


def analyze_nutrition(recipe: Recipe, api_keys: Optional[Dict[str, Any]] = None) -> NutritionInfo:
    """Ask a model for the nutrition totals of an existing recipe."""
    if not recipe.title or not recipe.ingredients:
        raise ValidationError("菜谱信息不完整")

    text = call_ai(build_nutrition_prompt(recipe), api_keys)
    return parse_nutrition(text)


def generate_nutrition_recommendations(nutrition: NutritionInfo, servings: int) -> List[str]:
    """Per-serving advice derived from fixed nutrient thresholds."""
    per_serving = nutrition.per_serving(servings)
    recommendations: List[str] = []

    if per_serving.calories > 600:
        recommendations.append("这道菜热量较高，建议搭配清淡的蔬菜或汤品")
    elif per_serving.calories < 200:
        recommendations.append("这道菜热量较低，可以作为轻食或配菜")

    if per_serving.protein > 25:
        recommendations.append("蛋白质含量丰富，适合健身或需要补充蛋白质的人群")
    elif per_serving.protein < 10:
        recommendations.append("蛋白质含量较低，建议搭配肉类、蛋类或豆制品")

    if per_serving.fiber > 8:
        recommendations.append("膳食纤维丰富，有助于消化和肠道健康")
    elif per_serving.fiber < 3:
        recommendations.append("建议增加蔬菜或全谷物来提高膳食纤维含量")

    if per_serving.fat > 20:
        recommendations.append("脂肪含量较高，建议适量食用")
    elif per_serving.fat < 5:
        recommendations.append("脂肪含量较低，可以适当添加健康油脂如橄榄油")

    if per_serving.carbs > 50:
        recommendations.append("碳水化合物含量较高，适合运动前后食用")

    if not recommendations:
        recommendations.append("营养搭配均衡，是一道健康的菜品")

    return recommendations
