# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for menu nutrition aggregation.
"""

import pytest

from models.entities import MenuIngredient
from domain.nutrition import (
    NutritionCalculationError,
    calculate_menu_nutrition,
    compare_with_program_targets
)


class TestCalculateMenuNutrition:
    """Quantity-weighted nutrient totals and AKG compliance."""

    def test_totals_are_weighted_by_quantity(self, make_menu):
        menu = make_menu()

        result = calculate_menu_nutrition(menu.ingredients)

        # 150 g rice + 80 g chicken
        assert result.total_calories == 731.2
        assert result.total_protein == 32.1
        assert result.total_carbohydrates == 118.5
        assert result.total_fat == 12.7
        assert result.total_fiber == 3.0
        assert result.ingredient_count == 2
        assert result.skipped_ingredients == []

    def test_daily_value_percentages(self, make_menu):
        result = calculate_menu_nutrition(make_menu().ingredients)

        assert result.calories_dv == 36.56
        assert result.protein_dv == 64.2
        assert result.meets_akg is True

    def test_akg_compliance_follows_protein_share(self, inventory_item):
        rice = inventory_item()
        ingredients = [MenuIngredient(inventory_item_id=rice.id, quantity=200, inventory_item=rice)]

        result = calculate_menu_nutrition(ingredients)

        # 14 g protein is 28% DV, 720 kcal is 36% DV
        assert result.protein_dv == 28.0
        assert result.meets_akg is True

        ingredients[0].quantity = 100
        result = calculate_menu_nutrition(ingredients)
        assert result.protein_dv == 14.0
        assert result.meets_akg is False

    def test_ingredients_without_inventory_item_are_skipped(self, make_menu):
        menu = make_menu()
        menu.ingredients.append(MenuIngredient(inventory_item_id="missing-item", quantity=50))

        result = calculate_menu_nutrition(menu.ingredients)

        assert result.total_calories == 731.2
        assert result.ingredient_count == 2
        assert result.skipped_ingredients == ["missing-item"]

    def test_menu_without_ingredients_raises(self):
        with pytest.raises(NutritionCalculationError):
            calculate_menu_nutrition([])

    def test_to_dict_is_serializable(self, make_menu):
        data = calculate_menu_nutrition(make_menu().ingredients).to_dict()

        assert data["meets_akg"] is True
        assert "total_calories" in data
        assert isinstance(data["skipped_ingredients"], list)


class TestProgramComparison:
    """Comparison of menu totals with programme targets."""

    def test_targets_met_and_missed(self, make_menu, make_program):
        result = calculate_menu_nutrition(make_menu().ingredients)
        program = make_program(calorie_target=800, protein_target=20)

        comparison = compare_with_program_targets(result, program)

        assert comparison["calories"]["met"] is False
        assert comparison["calories"]["difference"] == -68.8
        assert comparison["protein"]["met"] is True
        assert comparison["protein"]["difference"] == 12.1

    def test_nutrients_without_target_are_none(self, make_menu, make_program):
        result = calculate_menu_nutrition(make_menu().ingredients)

        comparison = compare_with_program_targets(result, make_program())

        assert comparison["fat"] is None
        assert comparison["fiber"] is None
        assert comparison["carbohydrates"] is None
