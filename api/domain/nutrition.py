# SPDX-License-Identifier: Apache-2.0

"""
Nutrition aggregation for menus.

Ingredient nutrients are stored per 100 g; a menu's totals are the
quantity-weighted sums over its ingredients. Daily-value percentages use the
Indonesian AKG reference intakes below.
"""

from dataclasses import dataclass, field, asdict
from decimal import Decimal
from typing import Dict, List, Optional

from models.entities import MenuIngredient, NutritionProgram

NUTRIENTS = ("calories", "protein", "carbohydrates", "fat", "fiber")

DAILY_VALUES: Dict[str, Decimal] = {
    "calories": Decimal("2000"),
    "protein": Decimal("50"),
    "carbohydrates": Decimal("275"),
    "fat": Decimal("78"),
    "fiber": Decimal("28"),
}

# AKG compliance thresholds (% of daily value)
MIN_PROTEIN_DV = Decimal("20")
MIN_CALORIES_DV = Decimal("30")

PROGRAM_TARGET_FIELDS = {
    "calories": "calorie_target",
    "protein": "protein_target",
    "carbohydrates": "carb_target",
    "fat": "fat_target",
    "fiber": "fiber_target",
}


class NutritionCalculationError(ValueError):
    """Raised when a menu cannot be aggregated."""


@dataclass
class NutritionResult:
    """Aggregated nutrients of one menu serving."""
    total_calories: float
    total_protein: float
    total_carbohydrates: float
    total_fat: float
    total_fiber: float
    calories_dv: float
    protein_dv: float
    carbohydrates_dv: float
    fat_dv: float
    fiber_dv: float
    meets_akg: bool
    ingredient_count: int
    skipped_ingredients: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


def calculate_menu_nutrition(ingredients: List[MenuIngredient]) -> NutritionResult:
    """
    Aggregate nutrients over a menu's ingredients.

    Each ingredient contributes ``nutrient_per_100g * quantity / 100``.
    Ingredients without a joined inventory item are skipped and reported.

    Raises:
        NutritionCalculationError: if the menu has no ingredients
    """
    if not ingredients:
        raise NutritionCalculationError("Cannot calculate nutrition: menu has no ingredients")

    totals = {name: Decimal("0") for name in NUTRIENTS}
    skipped = []

    for ingredient in ingredients:
        item = ingredient.inventory_item
        if item is None:
            skipped.append(ingredient.inventory_item_id)
            continue

        factor = Decimal(str(ingredient.quantity)) / Decimal("100")
        for name in NUTRIENTS:
            totals[name] += Decimal(str(getattr(item, name) or 0)) * factor

    dv = {name: totals[name] / DAILY_VALUES[name] * 100 for name in NUTRIENTS}
    meets_akg = dv["protein"] >= MIN_PROTEIN_DV and dv["calories"] >= MIN_CALORIES_DV

    return NutritionResult(
        total_calories=_round(totals["calories"]),
        total_protein=_round(totals["protein"]),
        total_carbohydrates=_round(totals["carbohydrates"]),
        total_fat=_round(totals["fat"]),
        total_fiber=_round(totals["fiber"]),
        calories_dv=_round(dv["calories"]),
        protein_dv=_round(dv["protein"]),
        carbohydrates_dv=_round(dv["carbohydrates"]),
        fat_dv=_round(dv["fat"]),
        fiber_dv=_round(dv["fiber"]),
        meets_akg=meets_akg,
        ingredient_count=len(ingredients) - len(skipped),
        skipped_ingredients=skipped,
    )


def compare_with_program_targets(result: NutritionResult, program: NutritionProgram) -> Dict[str, Optional[Dict]]:
    """Per-nutrient gap between a menu and its programme targets.

    Nutrients without a programme target map to None.
    """
    comparison = {}
    for name, target_field in PROGRAM_TARGET_FIELDS.items():
        target = getattr(program, target_field)
        if target is None:
            comparison[name] = None
            continue

        actual = getattr(result, f"total_{name}")
        comparison[name] = {
            "target": target,
            "actual": actual,
            "difference": round(actual - target, 2),
            "met": actual >= target,
        }
    return comparison


def _round(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))
