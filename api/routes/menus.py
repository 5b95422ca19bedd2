# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Menu calculation endpoints.

Nutrition and cost results are persisted as the menu's latest calculation
and mirrored onto the menu (AKG compliance flag and cost per serving).
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from models.responses import PROBLEM_RESPONSES
from models.entities import UserContext
from models.enums import PermissionType
from models.requests import CalculateCostRequest, MenuPath
from domain.nutrition import (
    NutritionCalculationError,
    calculate_menu_nutrition,
    compare_with_program_targets
)
from domain.costing import CostCalculationError, calculate_menu_cost, format_rupiah
from services.repositories import MenuRepository, ProgramRepository
from middleware.auth import require_sppg
from middleware.error_handler import BusinessRuleException
from middleware.validation import parse_json_body
from utils.request import get_request_context, require_found

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

menu_tag = Tag(name="Menus", description="Menu nutrition and cost calculations")
menus_bp = APIBlueprint(
    'menus',
    __name__,
    url_prefix='/api/sppg/menus',
    abp_tags=[menu_tag],
    abp_responses=PROBLEM_RESPONSES
)


@menus_bp.post('/<menu_id>/calculate-nutrition')
@require_sppg(PermissionType.MENU_MANAGE)
def calculate_nutrition(user_context: UserContext, path: MenuPath):
    """
    Calculate the nutrition of a menu serving.

    Aggregates the nutrients of every ingredient joined to its inventory
    item, flags AKG compliance and compares the totals with the targets of
    the menu's programme.
    """
    menu_id = path.menu_id
    with tracer.start_as_current_span(
        "menus.calculate_nutrition",
        attributes={"menu.id": menu_id, "user.id": user_context.user_id, "sppg.id": user_context.sppg_id}
    ) as span:
        menus = MenuRepository(current_app.mongodb_service)
        menu = require_found(menus.get_with_ingredients(user_context.sppg_id, menu_id), "Menu", menu_id)

        try:
            result = calculate_menu_nutrition(menu.ingredients)
        except NutritionCalculationError as e:
            raise BusinessRuleException(str(e))

        program = ProgramRepository(current_app.mongodb_service).get(user_context.sppg_id, menu.program_id)
        data = result.to_dict()
        data["menu_id"] = menu_id
        data["program_comparison"] = compare_with_program_targets(result, program) if program else None

        menus.save_calculation(user_context.sppg_id, menu_id, "nutrition", result.to_dict(), user_context.user_id)
        menus.update_fields(
            user_context.sppg_id, menu_id,
            {"nutritionStandardCompliance": result.meets_akg},
            user_context.user_id
        )

        current_app.audit_service.log_action(
            user_context,
            entity="nutrition_calculation",
            entity_id=menu_id,
            action="calculate",
            description=f"Calculated nutrition for menu {menu.menu_name}",
            after={"meetsAkg": result.meets_akg, "totalCalories": result.total_calories}
        )

        span.set_attributes({
            "nutrition.meets_akg": result.meets_akg,
            "nutrition.skipped_ingredients": len(result.skipped_ingredients)
        })
        if result.skipped_ingredients:
            logger.warning(
                "Ingredients without inventory item skipped",
                extra={"menu_id": menu_id, "skipped": result.skipped_ingredients, **get_request_context()}
            )
        logger.info(
            "Menu nutrition calculated",
            extra={"menu_id": menu_id, "meets_akg": result.meets_akg, **get_request_context()}
        )

        return jsonify(current_app.hal_formatter.format_menu_calculation(
            menu_id, data, user_context.permissions
        )), 200


@menus_bp.post('/<menu_id>/calculate-cost')
@require_sppg(PermissionType.MENU_MANAGE)
def calculate_cost(user_context: UserContext, path: MenuPath):
    """
    Calculate the full batch cost of a menu.

    The body carries optional operational overrides (labour, utilities,
    packaging, overhead, budget); an empty body uses kitchen defaults.
    """
    menu_id = path.menu_id
    with tracer.start_as_current_span(
        "menus.calculate_cost",
        attributes={"menu.id": menu_id, "user.id": user_context.user_id, "sppg.id": user_context.sppg_id}
    ) as span:
        options = parse_json_body(CalculateCostRequest, allow_empty=True)

        menus = MenuRepository(current_app.mongodb_service)
        menu = require_found(menus.get_with_ingredients(user_context.sppg_id, menu_id), "Menu", menu_id)

        try:
            result = calculate_menu_cost(menu, menu.ingredients, options)
        except CostCalculationError as e:
            raise BusinessRuleException(str(e))

        data = result.to_dict()
        data["menu_id"] = menu_id
        data["formatted"] = {
            "grand_total_cost": format_rupiah(result.grand_total_cost),
            "cost_per_portion": format_rupiah(result.cost_per_portion)
        }

        menus.save_calculation(user_context.sppg_id, menu_id, "cost", result.to_dict(), user_context.user_id)
        menus.update_fields(
            user_context.sppg_id, menu_id,
            {"costPerServing": result.cost_per_portion},
            user_context.user_id
        )

        current_app.audit_service.log_action(
            user_context,
            entity="cost_calculation",
            entity_id=menu_id,
            action="calculate",
            description=f"Calculated cost for menu {menu.menu_name}",
            before={"costPerServing": menu.cost_per_serving},
            after={"costPerServing": result.cost_per_portion, "grandTotalCost": result.grand_total_cost}
        )

        span.set_attributes({
            "cost.grand_total": result.grand_total_cost,
            "cost.planned_portions": result.planned_portions
        })
        logger.info(
            "Menu cost calculated",
            extra={"menu_id": menu_id, "grand_total_cost": result.grand_total_cost,
                   "is_over_budget": result.is_over_budget, **get_request_context()}
        )

        return jsonify(current_app.hal_formatter.format_menu_calculation(
            menu_id, data, user_context.permissions
        )), 200
