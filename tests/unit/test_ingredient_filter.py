"""
Tests for the ingredient safety filter.

Tests cover:
- Vegan and vegetarian restrictions
- Allergen substring matching and the soy product list
- Health condition forbidden lists and gout seafood rules
- Explanation text when ingredients are removed
"""

from recipe_genius.data.models import UserPreferences
from recipe_genius.ingredient_filter import filter_ingredients, generate_filter_explanation


# =============================================================================
# Dietary Restriction Tests
# =============================================================================

class TestDietaryRestrictions:
    """Tests for vegan and vegetarian rules."""

    def test_vegan_removes_animal_products(self):
        """Meat, eggs and dairy are removed, plants stay."""
        prefs = UserPreferences(dietary_restrictions=["纯素食"])
        result = filter_ingredients(["牛肉", "白菜", "鸡蛋", "牛奶", "豆腐"], prefs)

        assert result.allowed_ingredients == ["白菜", "豆腐"]
        assert result.filtered_ingredients == ["牛肉", "鸡蛋", "牛奶"]
        assert "纯素食限制" in result.reasons_by_ingredient["鸡蛋"][0]

    def test_vegan_english_label(self):
        """The English label behaves like the Chinese one."""
        prefs = UserPreferences(dietary_restrictions=["Vegan"])
        result = filter_ingredients(["蜂蜜", "菠菜"], prefs)

        assert result.filtered_ingredients == ["蜂蜜"]

    def test_vegetarian_keeps_eggs_and_dairy(self):
        """Vegetarians may eat eggs and milk but not meat or seafood."""
        prefs = UserPreferences(dietary_restrictions=["素食"])
        result = filter_ingredients(["鸡蛋", "牛奶", "猪肉", "虾"], prefs)

        assert result.allowed_ingredients == ["鸡蛋", "牛奶"]
        assert result.filtered_ingredients == ["猪肉", "虾"]

    def test_no_preferences_keeps_everything(self):
        """Without constraints nothing is filtered."""
        result = filter_ingredients(["牛肉", "虾", "豆腐"], UserPreferences())

        assert result.allowed_ingredients == ["牛肉", "虾", "豆腐"]
        assert result.filtered_ingredients == []
        assert result.filter_reasons == []


# =============================================================================
# Allergy Tests
# =============================================================================

class TestAllergies:
    """Tests for allergen matching."""

    def test_allergen_substring_match(self):
        """An allergen matches any ingredient containing it."""
        prefs = UserPreferences(allergies=["花生"])
        result = filter_ingredients(["花生酱", "黄瓜"], prefs)

        assert result.filtered_ingredients == ["花生酱"]
        assert result.reasons_by_ingredient["花生酱"] == ["花生过敏：避免过敏反应"]

    def test_soy_allergy_removes_soy_products(self):
        """Soy products are caught even though they do not contain 大豆."""
        prefs = UserPreferences(allergies=["大豆"])
        result = filter_ingredients(["豆腐", "生抽", "白菜"], prefs)

        assert result.allowed_ingredients == ["白菜"]
        assert result.filtered_ingredients == ["豆腐", "生抽"]
        assert "大豆过敏：避免所有大豆制品" in result.reasons_by_ingredient["豆腐"]

    def test_blank_ingredients_are_skipped(self):
        """Empty names are neither allowed nor filtered."""
        result = filter_ingredients(["  ", "白菜"], UserPreferences(allergies=["花生"]))

        assert result.allowed_ingredients == ["白菜"]
        assert result.filtered_ingredients == []


# =============================================================================
# Health Condition Tests
# =============================================================================

class TestHealthConditions:
    """Tests for condition catalog rules."""

    def test_gout_removes_shrimp(self, gout_preferences):
        """Shrimp is high-purine and must go for gout."""
        result = filter_ingredients(["虾", "白菜", "豆腐"], gout_preferences)

        assert result.allowed_ingredients == ["白菜", "豆腐"]
        assert result.filtered_ingredients == ["虾"]
        reason = result.filter_reasons[0]
        assert reason.startswith("虾: ")
        assert "嘌呤" in reason
        assert "痛风" in reason

    def test_gout_and_soy_allergy(self):
        """Soy allergy on top of gout also removes tofu."""
        prefs = UserPreferences(health_conditions=["gout"], allergies=["大豆"])
        result = filter_ingredients(["虾", "白菜", "豆腐"], prefs)

        assert result.allowed_ingredients == ["白菜"]
        assert result.filtered_ingredients == ["虾", "豆腐"]

    def test_forbidden_match_is_bidirectional(self):
        """A forbidden item contained in the ingredient name matches, and vice versa."""
        prefs = UserPreferences(health_conditions=["diabetes"])
        result = filter_ingredients(["白糖水", "蛋糕"], prefs)

        assert result.filtered_ingredients == ["白糖水", "蛋糕"]
        assert "糖尿病限制：白糖属于禁止食材" in result.reasons_by_ingredient["白糖水"]

    def test_reasons_are_unique(self, gout_preferences):
        """Several rules hitting one ingredient never duplicate a reason."""
        result = filter_ingredients(["虾"], gout_preferences)

        reasons = result.reasons_by_ingredient["虾"]
        assert len(reasons) == len(set(reasons))
        assert len(reasons) > 1

    def test_unknown_condition_is_ignored(self):
        """Unknown ids do not filter anything."""
        prefs = UserPreferences(health_conditions=["not-a-condition"])
        result = filter_ingredients(["虾"], prefs)

        assert result.allowed_ingredients == ["虾"]


class TestSeafoodOverride:
    """Tests for the gout seafood safety net."""

    def test_gout_mentioned_in_restrictions(self):
        """A free-text restriction mentioning gout triggers seafood filtering."""
        prefs = UserPreferences(dietary_restrictions=["痛风饮食"])
        result = filter_ingredients(["扇贝", "冬瓜"], prefs)

        assert result.filtered_ingredients == ["扇贝"]
        assert "高嘌呤" in result.filter_reasons[0]

    def test_seafood_allergy(self):
        """A seafood allergy removes common seafood by name."""
        prefs = UserPreferences(allergies=["海鲜"])
        result = filter_ingredients(["虾", "牡蛎", "土豆"], prefs)

        assert result.filtered_ingredients == ["虾", "牡蛎"]
        assert result.allowed_ingredients == ["土豆"]


# =============================================================================
# Explanation Tests
# =============================================================================

class TestFilterExplanation:
    """Tests for the user-facing explanation."""

    def test_all_filtered(self, gout_preferences):
        """When nothing is left the result says so and explains every removal."""
        result = filter_ingredients(["虾", "螃蟹"], gout_preferences)

        assert result.all_filtered
        explanation = generate_filter_explanation(result.filtered_ingredients, result.filter_reasons)
        assert "❌ 虾:" in explanation
        assert "❌ 螃蟹:" in explanation

    def test_nothing_filtered(self):
        """An empty removal list yields the all-clear message."""
        assert "符合" in generate_filter_explanation([], [])
