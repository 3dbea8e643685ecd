"""
Parsing of free-form model output into typed records.

Models wrap their JSON in prose or markdown fences, so the first complete
JSON object is located with a balanced-brace scan that skips braces inside
string literals, then mapped field by field with safe defaults.
"""

import json
import logging
import re
from typing import Any, Dict, List

from .data.models import (
    DIFFICULTIES,
    HealthInfo,
    Ingredient,
    NutritionInfo,
    Recipe,
    UserPreferences,
    _string_list,
    is_finite_number,
)
from .errors import IncompleteModelOutputError, InvalidModelOutputError

logger = logging.getLogger(__name__)

# Fallback ingredient extraction for recognition replies that are not JSON
COMMON_INGREDIENT_KEYWORDS = [
    "土豆", "番茄", "洋葱", "胡萝卜", "白菜", "菠菜", "韭菜", "芹菜",
    "豆腐", "鸡蛋", "鸡肉", "猪肉", "牛肉", "鱼", "虾", "蟹",
    "大米", "面条", "面粉", "油", "盐", "糖", "醋", "酱油",
    "蒜", "姜", "葱", "辣椒", "花椒",
]
CJK_WORD_PATTERN = re.compile(r"[一-龥]{2,4}")

DEFAULT_CONFIDENCE = 0.8
KEYWORD_CONFIDENCE = 0.6
RAW_WORDS_CONFIDENCE = 0.3


def _candidate_objects(text: str):
    """Yield each balanced {...} span in text, outermost first, left to right."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        end = None

        for i in range(start, len(text)):
            char = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break

        # An unclosed brace may be prose; keep scanning from the next one
        if end is not None:
            yield text[start:end + 1]
        start = text.find("{", start + 1)


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Return the first syntactically complete JSON object in text.

    Raises:
        InvalidModelOutputError: If text holds no parseable object
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidModelOutputError("AI响应为空")

    for candidate in _candidate_objects(text):
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value

    logger.debug(f"No JSON object in model output: {text[:200]!r}")
    raise InvalidModelOutputError("AI响应格式错误，无法解析JSON")


def parse_recipe(text: str, preferences: UserPreferences) -> Recipe:
    """
    Map model output onto a Recipe.

    Missing optional fields fall back to empty values; cooking time,
    servings and difficulty fall back to the user's preferences.

    Raises:
        InvalidModelOutputError: No JSON object in the output
        IncompleteModelOutputError: title, ingredients or steps missing
    """
    data = extract_json_object(text)

    title = data.get("title")
    ingredients = data.get("ingredients")
    steps = data.get("steps")
    if not isinstance(title, str) or not title.strip() or not ingredients or not steps:
        raise IncompleteModelOutputError("AI生成的菜谱数据不完整")
    if not isinstance(ingredients, list) or not isinstance(steps, list):
        raise IncompleteModelOutputError("AI生成的菜谱数据不完整")

    cooking_time = data.get("cookingTime")
    servings = data.get("servings")
    difficulty = data.get("difficulty")
    description = data.get("description")
    health_info = data.get("healthInfo")

    return Recipe(
        title=title.strip(),
        description=description if isinstance(description, str) else "",
        ingredients=[i for i in (Ingredient.from_dict(item) for item in ingredients) if i.name],
        steps=[s for s in _string_list(steps) if s.strip()],
        cooking_time=_positive_int(cooking_time, preferences.cooking_time),
        servings=_positive_int(servings, preferences.servings),
        difficulty=difficulty if difficulty in DIFFICULTIES else preferences.difficulty,
        nutrition=NutritionInfo.from_dict(data.get("nutrition")),
        tags=_string_list(data.get("tags")),
        tips=_string_list(data.get("tips")),
        health_info=HealthInfo.from_dict(health_info) if isinstance(health_info, dict) else None,
    )


def _positive_int(value: Any, default: int) -> int:
    if not is_finite_number(value) or value <= 0:
        return default
    return int(value)


def parse_nutrition(text: str) -> NutritionInfo:
    """Map a nutrition analysis reply onto NutritionInfo."""
    return NutritionInfo.from_dict(extract_json_object(text))


def _unique(items: List[str]) -> List[str]:
    seen = []
    for item in items:
        item = item.strip()
        if item and item not in seen:
            seen.append(item)
    return seen


def _extract_from_prose(text: str) -> Dict[str, Any]:
    found = [keyword for keyword in COMMON_INGREDIENT_KEYWORDS if keyword in text]
    if found:
        return {
            "ingredients": found,
            "confidence": KEYWORD_CONFIDENCE,
            "description": "从描述中提取的食材信息",
        }

    words = _unique(CJK_WORD_PATTERN.findall(text)[:5])
    return {
        "ingredients": words or ["未知食材"],
        "confidence": RAW_WORDS_CONFIDENCE,
        "description": "图片识别结果不确定，请手动确认",
    }


def parse_recognition_result(text: str) -> Dict[str, Any]:
    """
    Parse an image-recognition reply.

    JSON replies are normalised (confidence clamped to 0..1, ingredients
    de-duplicated); anything else goes through keyword extraction.
    """
    try:
        data = extract_json_object(text)
    except InvalidModelOutputError:
        logger.info("Recognition reply is not JSON, extracting keywords")
        return _extract_from_prose(text or "")

    confidence = data.get("confidence")
    if not is_finite_number(confidence):
        confidence = DEFAULT_CONFIDENCE
    description = data.get("description")

    result: Dict[str, Any] = {
        "ingredients": _unique(_string_list(data.get("ingredients"))),
        "confidence": max(0.0, min(1.0, float(confidence))),
        "description": description if isinstance(description, str) and description else "已识别图片中的食材",
    }
    suggestions = _string_list(data.get("suggestions"))
    if suggestions:
        result["suggestions"] = suggestions
    categories = _string_list(data.get("categories"))
    if categories:
        result["categories"] = categories
    return result
