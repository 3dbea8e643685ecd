"""
Data models for Recipe Genius.

These records flow through the generation pipeline:
- UserPreferences: dietary, allergy and health constraints for one request
- Ingredient / NutritionInfo / HealthInfo: parts of a generated recipe
- Recipe: the canonical output of a generation call

All records serialize to the camelCase JSON shape the web client expects.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

DIFFICULTIES = ("easy", "medium", "hard")
INGREDIENT_CATEGORIES = ("protein", "vegetable", "grain", "dairy", "spice", "other")

DIFFICULTY_LABELS = {
    "easy": "简单",
    "medium": "中等",
    "hard": "困难",
}


def is_finite_number(value: Any) -> bool:
    """True for int/float values other than bools, NaN and infinities."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _clamp(value: Any, low: int, high: int, default: int) -> int:
    """Clamp a numeric client value, falling back to default when falsy or non-numeric."""
    if not is_finite_number(value) or not value:
        return default
    return int(max(low, min(high, value)))


def _string_list(value: Any) -> List[str]:
    """Keep only the string items of a list-like client value."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _number(value: Any) -> float:
    """Finite numeric value or 0 for anything else (bools included)."""
    if not is_finite_number(value):
        return 0
    return value


def generate_id() -> str:
    """Random recipe identifier."""
    return uuid.uuid4().hex


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class UserPreferences:
    """Per-request dietary preferences. Never persisted server-side."""
    dietary_restrictions: List[str] = field(default_factory=list)
    cuisine_type: List[str] = field(default_factory=list)
    cooking_time: int = 30  # Minutes
    servings: int = 2
    difficulty: str = "easy"
    allergies: List[str] = field(default_factory=list)
    health_conditions: List[str] = field(default_factory=list)  # HealthCondition ids

    def to_dict(self) -> Dict[str, Any]:
        """Convert to camelCase dictionary."""
        return {
            "dietaryRestrictions": self.dietary_restrictions,
            "cuisineType": self.cuisine_type,
            "cookingTime": self.cooking_time,
            "servings": self.servings,
            "difficulty": self.difficulty,
            "allergies": self.allergies,
            "healthConditions": self.health_conditions,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserPreferences":
        """Create validated preferences from client JSON.

        Cooking time is clamped to 10-120 minutes (default 30), servings
        to 1-8 (default 2), and an unknown difficulty becomes "easy".
        """
        difficulty = data.get("difficulty")
        return cls(
            dietary_restrictions=_string_list(data.get("dietaryRestrictions")),
            cuisine_type=_string_list(data.get("cuisineType")),
            cooking_time=_clamp(data.get("cookingTime"), 10, 120, 30),
            servings=_clamp(data.get("servings"), 1, 8, 2),
            difficulty=difficulty if difficulty in DIFFICULTIES else "easy",
            allergies=_string_list(data.get("allergies")),
            health_conditions=_string_list(data.get("healthConditions")),
        )


@dataclass
class Ingredient:
    """A single recipe ingredient. Identified only by its name."""
    name: str
    quantity: str = ""
    unit: str = ""
    category: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.name} {self.quantity}{self.unit}".strip()

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "quantity": self.quantity, "unit": self.unit}
        if self.category:
            data["category"] = self.category
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Ingredient":
        """Build from a model/client item; bare strings become the name."""
        if isinstance(data, str):
            return cls(name=data.strip())
        if not isinstance(data, dict):
            return cls(name="")

        def text(key: str) -> str:
            value = data.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return str(value)
            return value if isinstance(value, str) else ""

        category = data.get("category")
        return cls(
            name=text("name"),
            quantity=text("quantity"),
            unit=text("unit"),
            category=category if category in INGREDIENT_CATEGORIES else None,
        )


@dataclass
class NutritionInfo:
    """Nutrition totals for the whole recipe (divide by servings for display)."""
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    fiber: float = 0

    def per_serving(self, servings: int) -> "NutritionInfo":
        """Nutrition for one serving."""
        servings = servings if servings and servings > 0 else 1
        return NutritionInfo(
            calories=self.calories / servings,
            protein=self.protein / servings,
            carbs=self.carbs / servings,
            fat=self.fat / servings,
            fiber=self.fiber / servings,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
            "fiber": self.fiber,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "NutritionInfo":
        """Missing or non-numeric values become zero."""
        if not isinstance(data, dict):
            return cls()
        return cls(
            calories=_number(data.get("calories")),
            protein=_number(data.get("protein")),
            carbs=_number(data.get("carbs")),
            fat=_number(data.get("fat")),
            fiber=_number(data.get("fiber")),
        )


@dataclass
class HealthInfo:
    """Health notes the model produces when health conditions are selected."""
    filtered_ingredients: List[str] = field(default_factory=list)
    filter_reasons: List[str] = field(default_factory=list)
    health_benefits: List[str] = field(default_factory=list)
    nutrition_highlights: List[str] = field(default_factory=list)
    health_tips: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filteredIngredients": self.filtered_ingredients,
            "filterReasons": self.filter_reasons,
            "healthBenefits": self.health_benefits,
            "nutritionHighlights": self.nutrition_highlights,
            "healthTips": self.health_tips,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HealthInfo":
        return cls(
            filtered_ingredients=_string_list(data.get("filteredIngredients")),
            filter_reasons=_string_list(data.get("filterReasons")),
            health_benefits=_string_list(data.get("healthBenefits")),
            nutrition_highlights=_string_list(data.get("nutritionHighlights")),
            health_tips=_string_list(data.get("healthTips")),
        )


@dataclass
class Recipe:
    """A generated recipe. Replaced (never mutated) on regenerate."""

    title: str
    description: str
    ingredients: List[Ingredient]
    steps: List[str]
    cooking_time: int
    servings: int
    difficulty: str
    nutrition: NutritionInfo = field(default_factory=NutritionInfo)
    tags: List[str] = field(default_factory=list)
    tips: List[str] = field(default_factory=list)
    health_info: Optional[HealthInfo] = None
    id: str = field(default_factory=generate_id)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "ingredients": [ing.to_dict() for ing in self.ingredients],
            "steps": self.steps,
            "cookingTime": self.cooking_time,
            "servings": self.servings,
            "difficulty": self.difficulty,
            "nutrition": self.nutrition.to_dict(),
            "tags": self.tags,
            "tips": self.tips,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }
        if self.health_info is not None:
            data["healthInfo"] = self.health_info.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Recipe":
        """Create Recipe from a client-supplied dictionary.

        Args:
            data: camelCase recipe JSON, as returned by to_dict()

        Returns:
            Recipe with missing fields defaulted
        """
        ingredients = data.get("ingredients")
        health_info = data.get("healthInfo")
        cooking_time = data.get("cookingTime")
        servings = data.get("servings")
        difficulty = data.get("difficulty")

        recipe = cls(
            title=data.get("title") if isinstance(data.get("title"), str) else "",
            description=data.get("description") if isinstance(data.get("description"), str) else "",
            ingredients=[Ingredient.from_dict(i) for i in ingredients] if isinstance(ingredients, list) else [],
            steps=_string_list(data.get("steps")),
            cooking_time=int(cooking_time) if is_finite_number(cooking_time) else 0,
            servings=int(servings) if is_finite_number(servings) else 1,
            difficulty=difficulty if difficulty in DIFFICULTIES else "easy",
            nutrition=NutritionInfo.from_dict(data.get("nutrition")),
            tags=_string_list(data.get("tags")),
            tips=_string_list(data.get("tips")),
            health_info=HealthInfo.from_dict(health_info) if isinstance(health_info, dict) else None,
        )
        if isinstance(data.get("id"), str) and data["id"]:
            recipe.id = data["id"]
        if isinstance(data.get("createdAt"), str):
            recipe.created_at = data["createdAt"]
        if isinstance(data.get("updatedAt"), str):
            recipe.updated_at = data["updatedAt"]
        return recipe


@dataclass
class AIProvider:
    """Configuration for one LLM provider, built fresh per request."""
    name: str
    base_url: str
    model: str
    api_key: str
    headers: Dict[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        # Never leak the key into logs
        return f"AIProvider(name={self.name!r}, model={self.model!r}, base_url={self.base_url!r})"
