# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Menu plan review lifecycle endpoints.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging
from typing import Callable

from models.responses import PROBLEM_RESPONSES
from models.entities import MenuPlan, UserContext
from models.enums import PermissionType
from models.requests import MenuPlanPath, RejectMenuPlanRequest, ReviewNotesRequest
from domain.common import WorkflowResult
from domain.menu_planning import (
    approve_plan,
    calculate_plan_metrics,
    can_review_plans,
    publish_plan,
    reject_plan,
    submit_plan
)
from services.repositories import MenuPlanRepository
from middleware.auth import require_sppg
from middleware.error_handler import AuthorizationException
from middleware.validation import parse_json_body
from utils.request import get_request_context, raise_for_result, require_found, to_api_dict

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

menu_plan_tag = Tag(name="Menu Plans", description="Menu plan metrics and review workflow")
menu_plans_bp = APIBlueprint(
    'menu_plans',
    __name__,
    url_prefix='/api/sppg/menu-plans',
    abp_tags=[menu_plan_tag],
    abp_responses=PROBLEM_RESPONSES
)


def _load_plan(user_context: UserContext, plan_id: str) -> MenuPlan:
    plans = MenuPlanRepository(current_app.mongodb_service)
    return require_found(plans.get(user_context.sppg_id, plan_id), "Menu plan", plan_id)


def _render_plan(plan: MenuPlan, user_context: UserContext):
    return current_app.hal_formatter.format_menu_plan(to_api_dict(plan), can_review_plans(user_context))


def _transition(user_context: UserContext, plan: MenuPlan, action: str,
                step: Callable[[MenuPlan], WorkflowResult], description: str):
    """Run one lifecycle step, then persist, audit and render the result."""
    old_status = plan.status
    result = step(plan)
    if not result.success:
        logger.info(
            f"Menu plan {action} rejected",
            extra={"plan_id": plan.id, "status": old_status, "reason": result.error_message,
                   **get_request_context()}
        )
    details = result.details or {}
    updated = raise_for_result(result, conflict="allowed_transitions" in details or "overlapping_plans" in details)

    MenuPlanRepository(current_app.mongodb_service).save(updated, user_context.user_id)

    current_app.audit_service.log_action(
        user_context,
        entity="menu_plan",
        entity_id=plan.id,
        action=action,
        description=description,
        before={"status": old_status},
        after={"status": updated.status}
    )

    logger.info(
        f"Menu plan {action} completed",
        extra={"plan_id": plan.id, "from_status": old_status, "to_status": updated.status,
               **get_request_context()}
    )
    return jsonify(_render_plan(updated, user_context)), 200


def _require_reviewer(user_context: UserContext, action: str) -> None:
    if not can_review_plans(user_context):
        raise AuthorizationException(f"Only SPPG Kepala or Admin can {action} plans")


@menu_plans_bp.get('/<plan_id>')
@require_sppg(PermissionType.READ)
def get_menu_plan(user_context: UserContext, path: MenuPlanPath):
    with tracer.start_as_current_span("menu_plans.get", attributes={"plan.id": path.plan_id}):
        return jsonify(_render_plan(_load_plan(user_context, path.plan_id), user_context)), 200


@menu_plans_bp.get('/<plan_id>/metrics')
@require_sppg(PermissionType.READ)
def get_menu_plan_metrics(user_context: UserContext, path: MenuPlanPath):
    """Assignment totals, costs and date coverage of a plan."""
    plan_id = path.plan_id
    with tracer.start_as_current_span("menu_plans.metrics", attributes={"plan.id": plan_id}) as span:
        plan = _load_plan(user_context, plan_id)
        metrics = calculate_plan_metrics(plan)

        span.set_attributes({
            "plan.total_menus": metrics["total_menus"],
            "plan.coverage_percentage": metrics["coverage_percentage"]
        })

        data = {"plan_id": plan_id, "status": plan.status, **metrics}
        return jsonify(current_app.hal_formatter.format_resource(
            data, f"/api/sppg/menu-plans/{plan_id}/metrics"
        )), 200


@menu_plans_bp.post('/<plan_id>/submit')
@require_sppg(PermissionType.MENU_MANAGE)
def submit_menu_plan(user_context: UserContext, path: MenuPlanPath):
    with tracer.start_as_current_span("menu_plans.submit", attributes={"plan.id": path.plan_id}):
        plan = _load_plan(user_context, path.plan_id)
        return _transition(
            user_context, plan, "submit",
            lambda p: submit_plan(p, user_context),
            f"Submitted menu plan {plan.name} for review"
        )


@menu_plans_bp.post('/<plan_id>/approve')
@require_sppg(PermissionType.MENU_MANAGE)
def approve_menu_plan(user_context: UserContext, path: MenuPlanPath):
    """Approve a plan pending review (SPPG Kepala or Admin only)."""
    with tracer.start_as_current_span("menu_plans.approve", attributes={"plan.id": path.plan_id}):
        _require_reviewer(user_context, "approve")
        body = parse_json_body(ReviewNotesRequest, allow_empty=True)
        plan = _load_plan(user_context, path.plan_id)
        return _transition(
            user_context, plan, "approve",
            lambda p: approve_plan(p, user_context, body.notes),
            f"Approved menu plan {plan.name}"
        )


@menu_plans_bp.post('/<plan_id>/reject')
@require_sppg(PermissionType.MENU_MANAGE)
def reject_menu_plan(user_context: UserContext, path: MenuPlanPath):
    with tracer.start_as_current_span("menu_plans.reject", attributes={"plan.id": path.plan_id}):
        _require_reviewer(user_context, "reject")
        body = parse_json_body(RejectMenuPlanRequest)
        plan = _load_plan(user_context, path.plan_id)
        return _transition(
            user_context, plan, "reject",
            lambda p: reject_plan(p, user_context, body.rejection_reason),
            f"Rejected menu plan {plan.name}: {body.rejection_reason}"
        )


@menu_plans_bp.post('/<plan_id>/publish')
@require_sppg(PermissionType.MENU_MANAGE)
def publish_menu_plan(user_context: UserContext, path: MenuPlanPath):
    """
    Publish an approved plan, making it the programme's ACTIVE plan.

    Overlapping ACTIVE plans of the same programme block publishing with a
    409 listing the overlapping plans.
    """
    with tracer.start_as_current_span("menu_plans.publish", attributes={"plan.id": path.plan_id}):
        _require_reviewer(user_context, "publish")
        body = parse_json_body(ReviewNotesRequest, allow_empty=True)
        plan = _load_plan(user_context, path.plan_id)
        active_plans = MenuPlanRepository(current_app.mongodb_service).find_active_for_program(
            user_context.sppg_id, plan.program_id
        )
        return _transition(
            user_context, plan, "publish",
            lambda p: publish_plan(p, active_plans, user_context, body.notes),
            f"Published menu plan {plan.name}"
        )
