"""
Tests for model output parsing.

Tests cover:
- Balanced-brace JSON extraction from prose
- Recipe field mapping and defaults
- Recognition result normalisation and keyword fallback
"""

import json

import pytest

from recipe_genius.data.models import UserPreferences
from recipe_genius.errors import IncompleteModelOutputError, InvalidModelOutputError
from recipe_genius.response_parser import (
    extract_json_object,
    parse_nutrition,
    parse_recipe,
    parse_recognition_result,
)


# =============================================================================
# JSON Extraction Tests
# =============================================================================

class TestExtractJsonObject:
    """Tests for the balanced-brace scanner."""

    def test_embedded_in_prose(self):
        text = 'Here is your recipe: {"title": "X", "steps": ["a"]} Enjoy!'
        assert extract_json_object(text) == {"title": "X", "steps": ["a"]}

    def test_braces_inside_strings(self):
        text = '结果如下 {"title": "a } b {", "n": 1} 以上'
        assert extract_json_object(text) == {"title": "a } b {", "n": 1}

    def test_escaped_quotes(self):
        text = '{"title": "say \\"hi\\" }", "n": 2}'
        assert extract_json_object(text)["n"] == 2

    def test_nested_objects(self):
        text = 'x {"a": {"b": {"c": 1}}} y {"d": 2}'
        assert extract_json_object(text) == {"a": {"b": {"c": 1}}}

    def test_skips_invalid_candidate(self):
        """Stops at the first object that actually parses."""
        text = '{not json} then {"ok": true}'
        assert extract_json_object(text) == {"ok": True}

    def test_trailing_prose_with_braces(self):
        """Greedy first-to-last brace matching would fail here."""
        text = '{"title": "A"} 注意 {事项}'
        assert extract_json_object(text) == {"title": "A"}

    def test_unclosed_brace_before_object(self):
        """A stray opening brace in prose does not hide a later object."""
        text = '提示 {适量 调整\n{"title": "A", "ingredients": ["x"], "steps": ["s"]}'
        assert extract_json_object(text) == {"title": "A", "ingredients": ["x"], "steps": ["s"]}

    @pytest.mark.parametrize("text", ["", "no json here", "{unclosed", None])
    def test_no_object(self, text):
        with pytest.raises(InvalidModelOutputError):
            extract_json_object(text)


# =============================================================================
# Recipe Parsing Tests
# =============================================================================

class TestParseRecipe:
    """Tests for recipe field mapping."""

    def test_full_recipe(self, recipe_text):
        recipe = parse_recipe(recipe_text, UserPreferences())

        assert recipe.title == "白菜炖豆腐"
        assert [i.name for i in recipe.ingredients] == ["白菜", "豆腐"]
        assert recipe.ingredients[1].quantity == "1"
        assert len(recipe.steps) == 3
        assert recipe.nutrition.calories == 320
        assert recipe.health_info.health_benefits == ["低嘌呤，适合痛风患者"]
        assert recipe.id

    def test_missing_title(self, recipe_json):
        del recipe_json["title"]
        with pytest.raises(IncompleteModelOutputError):
            parse_recipe(json.dumps(recipe_json), UserPreferences())

    def test_empty_steps(self, recipe_json):
        recipe_json["steps"] = []
        with pytest.raises(IncompleteModelOutputError):
            parse_recipe(json.dumps(recipe_json), UserPreferences())

    def test_defaults_from_preferences(self):
        """Missing time, servings and difficulty come from the request."""
        text = json.dumps({"title": "T", "ingredients": ["土豆"], "steps": ["煮"]})
        prefs = UserPreferences(cooking_time=45, servings=4, difficulty="hard")

        recipe = parse_recipe(text, prefs)

        assert recipe.cooking_time == 45
        assert recipe.servings == 4
        assert recipe.difficulty == "hard"
        assert recipe.ingredients[0].name == "土豆"
        assert recipe.nutrition.to_dict() == {"calories": 0, "protein": 0, "carbs": 0, "fat": 0, "fiber": 0}
        assert recipe.tags == []
        assert recipe.health_info is None

    def test_wrong_types_are_defaulted(self):
        text = json.dumps({
            "title": "T",
            "ingredients": [{"name": "土豆"}],
            "steps": ["煮"],
            "tags": "not-a-list",
            "nutrition": {"calories": "lots", "protein": 10},
            "difficulty": "extreme",
        })
        recipe = parse_recipe(text, UserPreferences())

        assert recipe.tags == []
        assert recipe.nutrition.calories == 0
        assert recipe.nutrition.protein == 10
        assert recipe.difficulty == "easy"

    def test_non_finite_numbers_are_defaulted(self):
        """json.loads accepts Infinity and NaN; neither may reach int()."""
        text = ('{"title": "T", "ingredients": ["土豆"], "steps": ["煮"], '
                '"cookingTime": Infinity, "servings": NaN, "nutrition": {"calories": NaN, "fat": -Infinity}}')
        prefs = UserPreferences(cooking_time=45, servings=4)

        recipe = parse_recipe(text, prefs)

        assert recipe.cooking_time == 45
        assert recipe.servings == 4
        assert recipe.nutrition.calories == 0
        assert recipe.nutrition.fat == 0

    def test_not_json(self):
        with pytest.raises(InvalidModelOutputError):
            parse_recipe("抱歉，我无法生成菜谱。", UserPreferences())


def test_parse_nutrition():
    nutrition = parse_nutrition('分析结果：{"calories": 500, "protein": 30, "sodium": 800}')

    assert nutrition.calories == 500
    assert nutrition.protein == 30
    assert nutrition.fiber == 0


# =============================================================================
# Recognition Parsing Tests
# =============================================================================

class TestParseRecognitionResult:
    """Tests for image recognition replies."""

    def test_json_reply(self):
        text = json.dumps({
            "ingredients": ["土豆", " 土豆 ", "胡萝卜"],
            "confidence": 1.5,
            "description": "一篮蔬菜",
            "categories": ["蔬菜"],
        }, ensure_ascii=False)
        result = parse_recognition_result(text)

        assert result["ingredients"] == ["土豆", "胡萝卜"]
        assert result["confidence"] == 1.0
        assert result["description"] == "一篮蔬菜"
        assert result["categories"] == ["蔬菜"]
        assert "suggestions" not in result

    def test_json_defaults(self):
        result = parse_recognition_result('{"ingredients": ["鸡蛋"]}')

        assert result["confidence"] == 0.8
        assert result["description"] == "已识别图片中的食材"

    def test_keyword_fallback(self):
        result = parse_recognition_result("图片中有鸡蛋和土豆")

        assert result["ingredients"] == ["土豆", "鸡蛋"]
        assert result["confidence"] == 0.6

    def test_raw_word_fallback(self):
        result = parse_recognition_result("Sorry, I cannot tell.")

        assert result["ingredients"] == ["未知食材"]
        assert result["confidence"] == 0.3
