"""
Prompt templates for recipe generation, nutrition analysis and image
recognition.

Templates use string.Template so that the literal JSON schema braces in
the prompt text need no escaping; substitute() fails loudly if a
placeholder is left unfilled.
"""

from string import Template
from typing import List

from .data.health_conditions import get_health_condition
from .data.models import Recipe, UserPreferences
from .ingredient_filter import SOY_ALLERGENS, VEGAN_LABELS, VEGETARIAN_LABELS

EGG_ALLERGENS = {"鸡蛋", "egg", "eggs"}
FISH_ALLERGENS = {"鱼类", "fish"}

NO_RESTRICTIONS_TEXT = "无特殊限制"

RECIPE_PROMPT_TEMPLATE = Template("""
作为一位专业的厨师和营养师，请根据以下信息生成一个详细的菜谱：

食材列表：$ingredients
用户偏好和限制：$preferences
烹饪时间限制：$time_limit分钟
用餐人数：$servings人
难度要求：$difficulty

🚨 严格约束条件（必须遵守，关乎用户安全）：
1. 【饮食限制】如果用户设置了饮食限制（如素食、纯素食等），必须100%严格遵守，绝对不能使用任何违反限制的食材
2. 【过敏源安全】如果用户标注了过敏源，这些食材及其制品绝对不能出现在菜谱中，这关乎用户生命安全
3. 【食材冲突处理】如果现有食材与用户的饮食限制或过敏源冲突，必须从食材列表中完全排除这些食材
4. 【替代方案】当排除冲突食材后，使用剩余的安全食材创建菜谱，或建议安全的替代食材
5. 【菜系偏好】在满足安全要求的前提下，优先考虑用户的菜系偏好

⚠️ 特别注意：
- 纯素食 = 绝对不能有任何动物性食材（肉、鱼、蛋、奶等）
- 大豆过敏 = 不能有豆腐、豆浆、生抽、老抽等任何大豆制品
- 鸡蛋过敏 = 不能有鸡蛋及含鸡蛋的任何制品
- 安全第一，宁可简单也不能违反限制

请以JSON格式返回菜谱，包含以下字段：
{
  "title": "菜谱名称",
  "description": "简短描述（50字以内）",
  "ingredients": [
    {"name": "食材名", "quantity": "数量", "unit": "单位"}
  ],
  "steps": ["步骤1", "步骤2", "步骤3"],
  "cookingTime": 总烹饪时间(分钟),
  "servings": 份数,
  "difficulty": "easy/medium/hard",
  "nutrition": {
    "calories": 卡路里,
    "protein": 蛋白质(g),
    "carbs": 碳水化合物(g),
    "fat": 脂肪(g),
    "fiber": 纤维(g)
  },
  "tags": ["标签1", "标签2"],
  "tips": ["烹饪小贴士1", "烹饪小贴士2"],
  "healthInfo": {
    "filteredIngredients": ["被过滤的食材1", "被过滤的食材2"],
    "filterReasons": ["过滤原因1", "过滤原因2"],
    "healthBenefits": ["健康益处1", "健康益处2"],
    "nutritionHighlights": ["营养重点1", "营养重点2"],
    "healthTips": ["健康建议1", "健康建议2"]
  }
}

请确保：
1. 严格遵守用户的饮食限制、过敏源和健康状况要求
2. 菜谱实用且可操作
3. 食材用量准确
4. 步骤清晰详细
5. 营养信息合理
6. 如果用户有健康状况，必须在healthInfo中详细说明：
   - 列出被过滤的食材及原因
   - 说明菜谱对用户健康的益处
   - 提供针对性的营养建议和健康提醒
7. 只返回JSON，不要其他文字
""")

NUTRITION_PROMPT_TEMPLATE = Template("""
请分析以下菜谱的营养成分：

菜谱名称：$title
食材列表：$ingredients
份数：$servings

请以JSON格式返回营养分析，包含以下字段：
{
  "calories": 总卡路里,
  "protein": 蛋白质(g),
  "carbs": 碳水化合物(g),
  "fat": 脂肪(g),
  "fiber": 纤维(g),
  "sodium": 钠(mg),
  "sugar": 糖(g),
  "vitamins": ["维生素A", "维生素C"],
  "minerals": ["钙", "铁"],
  "healthScore": 健康评分(1-10),
  "dietaryInfo": ["低脂", "高蛋白", "富含纤维"]
}

请确保营养数据准确合理，只返回JSON格式。
""")

RECOGNITION_PROMPT = """请仔细分析这张图片，识别出其中的所有食材。请按照以下JSON格式返回结果：

{
  "ingredients": ["食材1", "食材2", "食材3"],
  "confidence": 0.95,
  "description": "图片描述",
  "suggestions": ["建议的额外食材"],
  "categories": ["蔬菜", "肉类", "调料"]
}

要求：
1. ingredients数组包含所有能识别出的具体食材名称
2. confidence表示识别的整体置信度(0-1)
3. description简要描述图片内容
4. suggestions可选，推荐可能需要的额外食材
5. categories将食材按类型分类
6. 只返回JSON格式，不要其他文字"""

CONNECTION_TEST_PROMPT = "测试"


def _has_label(values: List[str], labels: set) -> bool:
    return any(value.lower() in labels for value in values)


def build_preferences_text(preferences: UserPreferences) -> str:
    """
    Describe the user's constraints for the model.

    Order matters: dietary restrictions, allergies, cuisine preference, then
    one detailed block per selected health condition.
    """
    parts: List[str] = []

    if preferences.dietary_restrictions:
        parts.append(f"🚨【必须严格遵守的饮食限制】：{'、'.join(preferences.dietary_restrictions)}")
        if _has_label(preferences.dietary_restrictions, VEGAN_LABELS):
            parts.append(
                "⚠️ 纯素食要求：绝对不能使用任何动物性食材，包括但不限于："
                "肉类（牛肉、猪肉、鸡肉、鱼肉、虾等）、蛋类、奶制品、蜂蜜等"
            )
        if _has_label(preferences.dietary_restrictions, VEGETARIAN_LABELS):
            parts.append("⚠️ 素食要求：不能使用肉类和鱼类，但可以使用蛋类和奶制品")

    if preferences.allergies:
        parts.append(f"🚨【绝对禁止的过敏源】：{'、'.join(preferences.allergies)}")
        parts.append("⚠️ 过敏源说明：这些食材及其制品绝对不能出现在菜谱中，关乎用户生命安全！")
        if _has_label(preferences.allergies, SOY_ALLERGENS):
            parts.append("⚠️ 大豆过敏：不能使用豆腐、豆浆、豆腐皮、腐竹、豆瓣酱、生抽、老抽等所有大豆制品")
        if _has_label(preferences.allergies, EGG_ALLERGENS):
            parts.append("⚠️ 鸡蛋过敏：不能使用鸡蛋及含鸡蛋的制品")
        if _has_label(preferences.allergies, FISH_ALLERGENS):
            parts.append("⚠️ 鱼类过敏：不能使用任何鱼类及鱼制品，包括鱼露、鱼汤等")

    if preferences.cuisine_type:
        parts.append(f"【菜系偏好】：{'、'.join(preferences.cuisine_type)}")

    if preferences.health_conditions:
        parts.append("🏥【健康状况限制】：用户患有以下疾病，必须严格遵守相关饮食限制")

        for condition_id in preferences.health_conditions:
            condition = get_health_condition(condition_id)
            if condition is None:
                continue
            parts.append(f"\n📋 {condition.name}（{condition.category}）：")
            parts.append(f"   - 疾病说明：{condition.description}")
            parts.append(f"   - 绝对禁止：{'、'.join(condition.forbidden_ingredients)}")
            if condition.limited_ingredients:
                parts.append(f"   - 需要限制：{'、'.join(condition.limited_ingredients)}")
            parts.append(f"   - 推荐食用：{'、'.join(condition.recommended_ingredients)}")
            parts.append(f"   - 科学依据：{condition.scientific_basis}")

        parts.append("\n⚠️ 健康提醒：以上健康状况的饮食限制关乎用户生命安全，必须100%严格执行！")

    return "\n".join(parts) if parts else NO_RESTRICTIONS_TEXT


def build_recipe_prompt(ingredients: List[str], preferences: UserPreferences) -> str:
    """Render the recipe generation prompt from already-filtered ingredients."""
    return RECIPE_PROMPT_TEMPLATE.substitute(
        ingredients=", ".join(ingredients),
        preferences=build_preferences_text(preferences),
        time_limit=str(preferences.cooking_time),
        servings=str(preferences.servings),
        difficulty=preferences.difficulty,
    )


def build_nutrition_prompt(recipe: Recipe) -> str:
    """Render the nutrition analysis prompt for a recipe."""
    return NUTRITION_PROMPT_TEMPLATE.substitute(
        title=recipe.title,
        ingredients=", ".join(f"{i.name} {i.quantity}{i.unit}" for i in recipe.ingredients),
        servings=str(recipe.servings),
    )
