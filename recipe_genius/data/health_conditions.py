"""
Static health condition catalog.

Each condition lists ingredients that are forbidden outright, ingredients
to limit, and ingredients to prefer. The ingredient safety filter and the
prompt builder both read from this catalog; ids are what clients send in
UserPreferences.health_conditions.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class HealthCondition:
    """Read-only dietary guidance for one health condition."""
    id: str
    name: str
    category: str
    description: str
    severity: str  # "mild", "moderate", "severe"
    forbidden_ingredients: Tuple[str, ...]
    limited_ingredients: Tuple[str, ...]
    recommended_ingredients: Tuple[str, ...]
    nutrition_focus: Tuple[str, ...]
    health_tips: Tuple[str, ...]
    scientific_basis: str

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "severity": self.severity,
            "forbiddenIngredients": list(self.forbidden_ingredients),
            "limitedIngredients": list(self.limited_ingredients),
            "recommendedIngredients": list(self.recommended_ingredients),
            "nutritionFocus": list(self.nutrition_focus),
            "healthTips": list(self.health_tips),
            "scientificBasis": self.scientific_basis,
        }


HEALTH_CONDITION_CATEGORIES: List[str] = [
    "代谢性疾病",
    "心血管疾病",
    "消化系统疾病",
    "内分泌疾病",
    "骨骼疾病",
    "肾脏疾病",
    "其他疾病",
]

# =============================================================================
# METABOLIC
# =============================================================================
DIABETES = HealthCondition(
    id="diabetes",
    name="糖尿病",
    category="代谢性疾病",
    description="血糖控制异常，需要严格控制糖分摄入",
    severity="severe",
    forbidden_ingredients=("白糖", "红糖", "蜂蜜", "糖果", "甜饮料", "蛋糕", "甜点", "果脯"),
    limited_ingredients=("白米", "白面", "土豆", "红薯", "玉米", "香蕉", "葡萄"),
    recommended_ingredients=("燕麦", "糙米", "全麦面包", "绿叶蔬菜", "瘦肉", "鱼类", "豆腐"),
    nutrition_focus=("碳水化合物", "血糖指数", "膳食纤维"),
    health_tips=(
        "少食多餐，控制总热量摄入",
        "选择低血糖指数的食物",
        "餐后适量运动有助于血糖控制",
        "定期监测血糖变化",
    ),
    scientific_basis="糖尿病患者胰岛素分泌不足或作用异常，需要控制碳水化合物摄入以维持血糖稳定",
)

GOUT = HealthCondition(
    id="gout",
    name="痛风",
    category="代谢性疾病",
    description="尿酸代谢异常，需要严格限制高嘌呤食物",
    severity="severe",
    forbidden_ingredients=(
        # Organ meats
        "动物内脏", "猪肝", "鸡肝", "牛肝", "羊肝", "猪肾", "猪心", "鸡胗", "鸭胗",
        # Seafood and shellfish
        "海鲜", "贝类", "蛤蜊", "青口", "扇贝", "牡蛎", "生蚝", "海蛎", "蚌", "螺",
        "虾", "螃蟹", "龙虾", "海虾", "河虾", "基围虾", "白虾", "对虾",
        # Oily fish
        "沙丁鱼", "凤尾鱼", "鲭鱼", "秋刀鱼", "带鱼", "黄花鱼", "鲱鱼",
        # Broths
        "肉汤", "浓汤", "骨头汤", "鸡汤", "鱼汤", "海鲜汤", "火锅汤底",
        # Alcohol
        "啤酒", "白酒", "红酒", "黄酒", "料酒",
        # Legumes
        "黄豆", "豌豆", "蚕豆", "绿豆", "红豆", "黑豆", "芸豆",
    ),
    limited_ingredients=("红肉", "猪肉", "牛肉", "羊肉", "鸭肉", "鹅肉", "菠菜", "芦笋"),
    recommended_ingredients=("低脂奶制品", "鸡蛋", "白菜", "萝卜", "冬瓜", "樱桃", "苹果"),
    nutrition_focus=("嘌呤含量", "尿酸水平", "水分摄入"),
    health_tips=(
        "多喝水，每天至少2000ml",
        "避免饮酒，特别是啤酒",
        "控制体重，避免肥胖",
        "急性发作期严格限制嘌呤摄入",
    ),
    scientific_basis="痛风是由于嘌呤代谢紊乱导致尿酸升高，高嘌呤食物会加重病情",
)

HYPERLIPIDEMIA = HealthCondition(
    id="hyperlipidemia",
    name="高血脂",
    category="代谢性疾病",
    description="血脂异常，需要控制胆固醇和饱和脂肪摄入",
    severity="moderate",
    forbidden_ingredients=("蛋黄", "动物内脏", "肥肉", "猪油", "牛油", "奶油", "黄油"),
    limited_ingredients=("红肉", "全脂奶制品", "椰子油", "棕榈油", "油炸食品"),
    recommended_ingredients=("深海鱼", "坚果", "橄榄油", "燕麦", "豆类", "蔬菜", "水果"),
    nutrition_focus=("胆固醇", "饱和脂肪", "Omega-3脂肪酸"),
    health_tips=(
        "选择不饱和脂肪酸丰富的食物",
        "增加膳食纤维摄入",
        "适量运动有助于改善血脂",
        "定期检查血脂水平",
    ),
    scientific_basis="饱和脂肪和胆固醇会升高血液中的低密度脂蛋白，增加心血管疾病风险",
)

# =============================================================================
# CARDIOVASCULAR
# =============================================================================
HYPERTENSION = HealthCondition(
    id="hypertension",
    name="高血压",
    category="心血管疾病",
    description="血压升高，需要严格控制钠盐摄入",
    severity="moderate",
    forbidden_ingredients=("咸菜", "腌制品", "咸鱼", "咸肉", "火腿", "香肠", "方便面", "薯片"),
    limited_ingredients=("生抽", "老抽", "蚝油", "豆瓣酱", "味精", "鸡精", "盐"),
    recommended_ingredients=("新鲜蔬菜", "水果", "低脂奶制品", "瘦肉", "鱼类", "豆类"),
    nutrition_focus=("钠含量", "钾含量", "镁含量"),
    health_tips=(
        "每日盐摄入量不超过6克",
        "多吃富含钾的食物如香蕉、菠菜",
        "保持适当体重",
        "规律运动，戒烟限酒",
    ),
    scientific_basis="高钠摄入会导致体内水钠潴留，增加血管压力，升高血压",
)

HEART_DISEASE = HealthCondition(
    id="heart_disease",
    name="心脏病",
    category="心血管疾病",
    description="心脏功能异常，需要心脏友好的饮食",
    severity="severe",
    forbidden_ingredients=("反式脂肪", "人造黄油", "油炸食品", "加工肉类", "高盐食品"),
    limited_ingredients=("饱和脂肪", "胆固醇", "精制糖", "咖啡因"),
    recommended_ingredients=("深海鱼", "坚果", "橄榄油", "全谷物", "豆类", "蔬菜", "水果"),
    nutrition_focus=("Omega-3脂肪酸", "抗氧化剂", "膳食纤维"),
    health_tips=(
        "选择富含Omega-3的鱼类",
        "增加抗氧化食物摄入",
        "控制总热量和体重",
        "避免过度劳累和情绪激动",
    ),
    scientific_basis="Omega-3脂肪酸和抗氧化剂有助于保护心血管健康，减少炎症反应",
)

# =============================================================================
# DIGESTIVE
# =============================================================================
GASTRITIS = HealthCondition(
    id="gastritis",
    name="胃病",
    category="消化系统疾病",
    description="胃黏膜炎症，需要温和易消化的饮食",
    severity="mild",
    forbidden_ingredients=("辣椒", "胡椒", "咖啡", "浓茶", "酒精", "醋", "柠檬", "生蒜"),
    limited_ingredients=("油腻食物", "粗纤维食物", "冷饮", "碳酸饮料"),
    recommended_ingredients=("小米粥", "面条", "蒸蛋", "嫩豆腐", "南瓜", "胡萝卜"),
    nutrition_focus=("易消化性", "温和性", "营养密度"),
    health_tips=(
        "少食多餐，细嚼慢咽",
        "避免过冷过热的食物",
        "保持规律的饮食时间",
        "减少精神压力",
    ),
    scientific_basis="刺激性食物会加重胃黏膜炎症，温和易消化的食物有助于胃黏膜修复",
)

COMMON_HEALTH_CONDITIONS: List[HealthCondition] = [
    DIABETES,
    GOUT,
    HYPERLIPIDEMIA,
    HYPERTENSION,
    HEART_DISEASE,
    GASTRITIS,
]

_CONDITIONS_BY_ID: Dict[str, HealthCondition] = {c.id: c for c in COMMON_HEALTH_CONDITIONS}


def get_health_condition(condition_id: str) -> Optional[HealthCondition]:
    """Look up a condition by id; unknown ids return None."""
    return _CONDITIONS_BY_ID.get(condition_id)
