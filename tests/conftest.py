"""
Pytest configuration and shared fixtures.

Fixtures are reusable test setup that can be injected into tests.
"""

import json
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from recipe_genius.api.main import create_app
from recipe_genius.api.routes import ingredients, providers, recipes
from recipe_genius.data.models import Ingredient, NutritionInfo, Recipe, UserPreferences
from recipe_genius.llm_provider import PROVIDER_SPECS
from recipe_genius.rate_limiter import FixedWindowRateLimiter


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """
    Remove provider credentials from the environment for every test.

    Tests that need a server-side key set it explicitly with monkeypatch.
    """
    for spec in PROVIDER_SPECS.values():
        monkeypatch.delenv(spec.env_key, raising=False)
        if spec.env_endpoint:
            monkeypatch.delenv(spec.env_endpoint, raising=False)


def make_response(status_code=200, body=None, text=None):
    """Fake requests.Response with the attributes the clients read."""
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.reason = "OK" if response.ok else "Error"
    if body is None:
        response.json.side_effect = ValueError("no json")
        response.text = text or ""
    else:
        response.json.return_value = body
        response.text = text if text is not None else json.dumps(body, ensure_ascii=False)
    return response


def chat_completion(content):
    """OpenAI-compatible response body wrapping content."""
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def recipe_json():
    """A complete recipe as a model would return it."""
    return {
        "title": "白菜炖豆腐",
        "description": "清淡暖胃的家常菜",
        "ingredients": [
            {"name": "白菜", "quantity": "300", "unit": "g"},
            {"name": "豆腐", "quantity": 1, "unit": "块"},
        ],
        "steps": ["白菜切段", "豆腐切块", "小火炖10分钟"],
        "cookingTime": 20,
        "servings": 2,
        "difficulty": "easy",
        "nutrition": {"calories": 320, "protein": 18, "carbs": 22, "fat": 12, "fiber": 6},
        "tags": ["家常菜", "低嘌呤"],
        "tips": ["豆腐先焯水去豆腥味"],
        "healthInfo": {
            "filteredIngredients": [],
            "filterReasons": [],
            "healthBenefits": ["低嘌呤，适合痛风患者"],
            "nutritionHighlights": ["优质植物蛋白"],
            "healthTips": ["多喝水"],
        },
    }


@pytest.fixture
def recipe_text(recipe_json):
    """Model output with the recipe wrapped in prose and a code fence."""
    return "好的，这是为您生成的菜谱：\n```json\n" + json.dumps(recipe_json, ensure_ascii=False) + "\n```\n祝您用餐愉快！"


@pytest.fixture
def gout_preferences():
    """Preferences of a user with gout."""
    return UserPreferences(health_conditions=["gout"])


@pytest.fixture
def sample_recipe():
    """Sample recipe for testing."""
    return Recipe(
        title="番茄炒蛋",
        description="经典家常菜",
        ingredients=[
            Ingredient(name="番茄", quantity="2", unit="个"),
            Ingredient(name="鸡蛋", quantity="3", unit="个"),
        ],
        steps=["番茄切块", "鸡蛋打散炒熟", "合炒调味"],
        cooking_time=15,
        servings=2,
        difficulty="easy",
        nutrition=NutritionInfo(calories=400, protein=24, carbs=16, fat=26, fiber=4),
        tags=["家常菜"],
    )


@pytest.fixture
def mock_service():
    """Recipe service double with async methods."""
    service = Mock()
    service.generate_recipe = AsyncMock()
    service.analyze_nutrition = AsyncMock()
    service.recognize_ingredients = AsyncMock()
    service.vision_status = AsyncMock(return_value={"success": False, "message": "豆包API密钥或端点ID未配置"})
    service.verify_api_key = AsyncMock()
    service.provider_status = Mock(return_value={"available": [], "configured": 0})
    return service


def build_client(service, ai_limit=1000, health_limit=1000):
    """TestClient for a fresh app whose routes use the given service."""
    app = create_app(
        ai_rate_limiter=FixedWindowRateLimiter(ai_limit, 60),
        health_rate_limiter=FixedWindowRateLimiter(health_limit, 60),
    )
    for module in (recipes, ingredients, providers):
        app.dependency_overrides[module.get_service] = lambda: service
    return TestClient(app)


@pytest.fixture
def client(mock_service):
    """
    TestClient wired to mock_service.

    Usage in tests:
        def test_something(client, mock_service):
            mock_service.generate_recipe.return_value = ...
            client.post("/api/generate-recipe", json={...})
    """
    return build_client(mock_service)


@pytest.fixture
def fake_response():
    """Factory for fake requests.Response objects."""
    return make_response


@pytest.fixture
def completion():
    """Factory for OpenAI-compatible response bodies."""
    return chat_completion


@pytest.fixture
def client_factory():
    """Factory for clients with custom services or rate limits."""
    return build_client
