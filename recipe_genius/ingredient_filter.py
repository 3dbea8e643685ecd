"""
Ingredient safety filter.

Removes ingredients that conflict with the user's dietary restrictions,
allergies or health conditions before a prompt is ever rendered. Rules are
evaluated independently and unioned; any match filters the ingredient.

The soy product list and the gout seafood lists overlap with the health
condition catalog on purpose: both layers are kept so that a literal name
the catalog misses is still caught.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .data.health_conditions import get_health_condition
from .data.models import UserPreferences

logger = logging.getLogger(__name__)

# Restriction and allergen labels, as sent by the Chinese UI or by API clients
VEGAN_LABELS = {"纯素食", "vegan"}
VEGETARIAN_LABELS = {"素食", "vegetarian"}
SOY_ALLERGENS = {"大豆", "soy"}
SEAFOOD_ALLERGENS = {"海鲜", "seafood"}
GOUT_MARKERS = ("痛风", "gout")
GOUT_CONDITION_ID = "gout"

ANIMAL_PRODUCTS = [
    "肉", "牛肉", "猪肉", "鸡肉", "鸭肉", "羊肉", "鱼", "鱼肉", "虾", "蟹", "螃蟹",
    "蛤蜊", "青口", "扇贝", "牡蛎", "鸡蛋", "鸭蛋", "鹌鹑蛋", "牛奶", "奶酪", "黄油", "蜂蜜",
]

MEAT_PRODUCTS = [
    "肉", "牛肉", "猪肉", "鸡肉", "鸭肉", "羊肉", "鱼", "鱼肉", "虾", "蟹", "螃蟹",
    "蛤蜊", "青口", "扇贝", "牡蛎",
]

SOY_PRODUCTS = ["豆腐", "豆浆", "豆皮", "腐竹", "豆瓣酱", "生抽", "老抽", "豆豉"]

# High-purine seafood keywords applied whenever gout is selected
GOUT_SEAFOOD_KEYWORDS = [
    "蛤", "蜊", "青口", "扇贝", "牡蛎", "生蚝", "虾", "蟹", "螃蟹", "龙虾", "海鲜", "鱼", "鲍鱼", "海参",
]

# Exact-name safety net, independent of the catalog
COMMON_SEAFOOD = ["蛤蜊", "青口", "扇贝", "牡蛎", "生蚝", "虾", "蟹", "螃蟹", "龙虾", "鲍鱼", "海参"]


@dataclass
class FilterResult:
    """Partition of an ingredient list into allowed and filtered names."""
    allowed_ingredients: List[str] = field(default_factory=list)
    filtered_ingredients: List[str] = field(default_factory=list)
    filter_reasons: List[str] = field(default_factory=list)  # "name: reason1；reason2"
    reasons_by_ingredient: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def all_filtered(self) -> bool:
        return bool(self.filtered_ingredients) and not self.allowed_ingredients


def _contains_any(ingredient: str, keywords: List[str]) -> bool:
    lowered = ingredient.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def _has_gout_concern(preferences: UserPreferences) -> bool:
    if GOUT_CONDITION_ID in preferences.health_conditions:
        return True
    for diet in preferences.dietary_restrictions:
        if any(marker in diet.lower() for marker in GOUT_MARKERS):
            return True
    return any(allergen.lower() in SEAFOOD_ALLERGENS for allergen in preferences.allergies)


def _reasons_for(ingredient: str, preferences: UserPreferences) -> List[str]:
    """Collect every unique reason an ingredient must be filtered."""
    reasons: List[str] = []

    def add(reason: str) -> None:
        if reason not in reasons:
            reasons.append(reason)

    restrictions = {r.lower() for r in preferences.dietary_restrictions}

    if restrictions & VEGAN_LABELS and _contains_any(ingredient, ANIMAL_PRODUCTS):
        add("纯素食限制：不能食用动物性食材")

    if restrictions & VEGETARIAN_LABELS and _contains_any(ingredient, MEAT_PRODUCTS):
        add("素食限制：不能食用肉类和海鲜")

    lowered = ingredient.lower()
    for allergen in preferences.allergies:
        if allergen and allergen.lower() in lowered:
            add(f"{allergen}过敏：避免过敏反应")
        if allergen.lower() in SOY_ALLERGENS and _contains_any(ingredient, SOY_PRODUCTS):
            add("大豆过敏：避免所有大豆制品")

    for condition_id in preferences.health_conditions:
        condition = get_health_condition(condition_id)
        if condition is None:
            logger.debug(f"Unknown health condition id: {condition_id}")
            continue

        for forbidden in condition.forbidden_ingredients:
            if forbidden in ingredient or ingredient in forbidden:
                add(f"{condition.name}限制：{forbidden}属于禁止食材")

        if condition.id == GOUT_CONDITION_ID and _contains_any(ingredient, GOUT_SEAFOOD_KEYWORDS):
            add(f"痛风限制：{ingredient}属于高嘌呤海鲜，会加重病情")

    if ingredient in COMMON_SEAFOOD and _has_gout_concern(preferences):
        add(f"海鲜过滤：{ingredient}属于高嘌呤食物，不适合痛风患者")

    return reasons


def filter_ingredients(ingredients: List[str], preferences: UserPreferences) -> FilterResult:
    """
    Partition ingredients by the user's dietary constraints.

    Args:
        ingredients: Raw ingredient names
        preferences: Validated user preferences

    Returns:
        FilterResult with allowed names, filtered names and one reason line
        per filtered ingredient
    """
    result = FilterResult()

    for raw in ingredients:
        ingredient = raw.strip()
        if not ingredient:
            continue

        reasons = _reasons_for(ingredient, preferences)
        if reasons:
            result.filtered_ingredients.append(ingredient)
            result.reasons_by_ingredient[ingredient] = reasons
            result.filter_reasons.append(f"{ingredient}: {'；'.join(reasons)}")
        else:
            result.allowed_ingredients.append(ingredient)

    if result.filtered_ingredients:
        logger.info(
            f"Filtered {len(result.filtered_ingredients)} of {len(ingredients)} ingredients: "
            f"{result.filtered_ingredients}"
        )

    return result


def generate_filter_explanation(filtered_ingredients: List[str], filter_reasons: List[str]) -> str:
    """Human-readable summary of what was removed and why."""
    if not filtered_ingredients:
        return "所有食材都符合您的饮食要求 ✅"

    lines = ["为了您的健康，我们过滤了以下食材：", ""]
    lines.extend(f"❌ {reason}" for reason in filter_reasons)
    lines.append("")
    lines.append("💡 建议：使用剩余的安全食材制作菜谱，或选择替代食材。")
    return "\n".join(lines)
