# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Distribution schedule endpoints: creation, status workflow, vehicle
assignment and cost analysis.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging
from typing import Any, Dict, List, Optional

from models.responses import PROBLEM_RESPONSES
from models.entities import DistributionSchedule, UserContext
from models.enums import PermissionType, ScheduleStatus
from models.requests import (
    AssignVehicleRequest,
    CostAnalysisQuery,
    CreateScheduleRequest,
    SchedulePath,
    UpdateScheduleStatusRequest
)
from domain.costing import (
    CostBreakdown,
    build_cost_breakdown,
    calculate_cost_efficiency,
    calculate_cost_trends,
    calculate_cost_variance,
    format_rupiah,
    get_budget_status
)
from domain.distribution import (
    VEHICLE_ASSIGNABLE_STATUSES,
    assign_vehicle,
    change_schedule_status,
    describe_status_change,
    get_allowed_transitions,
    get_available_actions,
    validate_schedule_dates
)
from services.repositories import MenuRepository, ScheduleRepository
from middleware.auth import require_sppg
from middleware.error_handler import BusinessRuleException
from middleware.validation import parse_json_body, parse_query_params
from utils.request import get_request_context, raise_for_result, require_found, to_api_dict

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

distribution_tag = Tag(name="Distribution", description="Distribution schedule workflow")
distribution_bp = APIBlueprint(
    'distribution',
    __name__,
    url_prefix='/api/sppg/distribution/schedules',
    abp_tags=[distribution_tag],
    abp_responses=PROBLEM_RESPONSES
)


def _render_schedule(schedule: DistributionSchedule, user_context: UserContext) -> Dict[str, Any]:
    actions = [action.to_dict() for action in get_available_actions(schedule)]
    can_assign = schedule.status in [status.value for status in VEHICLE_ASSIGNABLE_STATUSES]
    return current_app.hal_formatter.format_schedule(
        to_api_dict(schedule), actions, can_assign, user_context.permissions
    )


def _load_schedule(user_context: UserContext, schedule_id: str) -> DistributionSchedule:
    schedules = ScheduleRepository(current_app.mongodb_service)
    return require_found(schedules.get(user_context.sppg_id, schedule_id), "Distribution schedule", schedule_id)


@distribution_bp.post('')
@require_sppg(PermissionType.DISTRIBUTION_MANAGE)
def create_schedule(user_context: UserContext):
    """Create a PLANNED distribution schedule."""
    with tracer.start_as_current_span(
        "distribution.create_schedule",
        attributes={"user.id": user_context.user_id, "sppg.id": user_context.sppg_id}
    ) as span:
        body = parse_json_body(CreateScheduleRequest)

        date_check = validate_schedule_dates(body.distribution_date)
        if not date_check.is_valid:
            raise BusinessRuleException("Invalid distribution date", date_check.errors)

        if body.menu_id:
            menu = MenuRepository(current_app.mongodb_service).get(user_context.sppg_id, body.menu_id)
            require_found(menu, "Menu", body.menu_id)

        schedule = DistributionSchedule(
            sppg_id=user_context.sppg_id,
            created_by=user_context.user_id,
            updated_by=user_context.user_id,
            **body.model_dump()
        )
        ScheduleRepository(current_app.mongodb_service).create(schedule, user_context.user_id)

        current_app.audit_service.log_action(
            user_context,
            entity="distribution_schedule",
            entity_id=schedule.id,
            action="create",
            description=f"Created distribution schedule for {schedule.distribution_date.isoformat()}",
            after={"status": schedule.status, "wave": schedule.wave, "totalPortions": schedule.total_portions}
        )

        span.set_attribute("schedule.id", schedule.id)
        logger.info(
            "Distribution schedule created",
            extra={"schedule_id": schedule.id, "distribution_date": schedule.distribution_date.isoformat(),
                   **get_request_context()}
        )

        return jsonify(_render_schedule(schedule, user_context)), 201


@distribution_bp.get('/<schedule_id>')
@require_sppg(PermissionType.READ)
def get_schedule(user_context: UserContext, path: SchedulePath):
    with tracer.start_as_current_span("distribution.get_schedule", attributes={"schedule.id": path.schedule_id}):
        schedule = _load_schedule(user_context, path.schedule_id)
        return jsonify(_render_schedule(schedule, user_context)), 200


@distribution_bp.get('/<schedule_id>/actions')
@require_sppg(PermissionType.READ)
def get_schedule_actions(user_context: UserContext, path: SchedulePath):
    """
    List the status actions offered for the schedule's current state.

    Each action carries its label, confirmation and reason requirements and,
    when it cannot be taken yet, the validation message explaining why.
    """
    schedule_id = path.schedule_id
    with tracer.start_as_current_span("distribution.get_actions", attributes={"schedule.id": schedule_id}) as span:
        schedule = _load_schedule(user_context, schedule_id)
        actions = [action.to_dict() for action in get_available_actions(schedule)]

        span.set_attributes({"schedule.status": schedule.status, "schedule.actions_count": len(actions)})

        data = {
            "schedule_id": schedule_id,
            "status": schedule.status,
            "allowed_transitions": get_allowed_transitions(schedule.status),
            "actions": actions
        }
        return jsonify(current_app.hal_formatter.format_resource(
            data, f"/api/sppg/distribution/schedules/{schedule_id}/actions"
        )), 200


@distribution_bp.patch('/<schedule_id>/status')
@require_sppg(PermissionType.DISTRIBUTION_MANAGE)
def update_schedule_status(user_context: UserContext, path: SchedulePath):
    """
    Move a schedule to a new status.

    A target outside the transition table is a conflict (409) listing the
    allowed transitions; a failed precondition is a business rule
    violation (422).
    """
    schedule_id = path.schedule_id
    with tracer.start_as_current_span(
        "distribution.update_status",
        attributes={"schedule.id": schedule_id, "user.id": user_context.user_id}
    ) as span:
        body = parse_json_body(UpdateScheduleStatusRequest)
        schedule = _load_schedule(user_context, schedule_id)
        old_status = schedule.status
        new_status = ScheduleStatus(body.status).value

        span.set_attributes({"schedule.old_status": old_status, "schedule.new_status": new_status})

        result = change_schedule_status(schedule, new_status, user_context, body.reason, body.notes)
        if not result.success:
            logger.info(
                "Schedule status change rejected",
                extra={"schedule_id": schedule_id, "from_status": old_status, "to_status": new_status,
                       "errors": result.validation_errors, **get_request_context()}
            )
        updated = raise_for_result(result, conflict="allowed_transitions" in (result.details or {}))

        ScheduleRepository(current_app.mongodb_service).save(updated, user_context.user_id)

        current_app.audit_service.log_action(
            user_context,
            entity="distribution_schedule",
            entity_id=schedule_id,
            action="status_change",
            description=describe_status_change(old_status, new_status, body.reason),
            before={"status": old_status},
            after={"status": new_status}
        )

        logger.info(
            "Schedule status changed",
            extra={"schedule_id": schedule_id, "from_status": old_status, "to_status": new_status,
                   **get_request_context()}
        )

        return jsonify(_render_schedule(updated, user_context)), 200


@distribution_bp.post('/<schedule_id>/vehicles')
@require_sppg(PermissionType.DISTRIBUTION_MANAGE)
def assign_schedule_vehicle(user_context: UserContext, path: SchedulePath):
    """Assign a vehicle (and optionally a driver) to a schedule."""
    schedule_id = path.schedule_id
    with tracer.start_as_current_span(
        "distribution.assign_vehicle",
        attributes={"schedule.id": schedule_id, "user.id": user_context.user_id}
    ) as span:
        body = parse_json_body(AssignVehicleRequest)
        schedules = ScheduleRepository(current_app.mongodb_service)
        schedule = _load_schedule(user_context, schedule_id)

        conflicts = schedules.find_vehicle_bookings(
            user_context.sppg_id, body.vehicle_id, schedule.distribution_date, schedule_id
        )
        span.set_attributes({"vehicle.id": body.vehicle_id, "vehicle.conflicts": len(conflicts)})

        updated = raise_for_result(assign_vehicle(schedule, body, user_context, conflicts))
        schedules.save(updated, user_context.user_id)

        current_app.audit_service.log_action(
            user_context,
            entity="distribution_schedule",
            entity_id=schedule_id,
            action="assign_vehicle",
            description=f"Assigned vehicle {body.vehicle_id}",
            after={"vehicleId": body.vehicle_id, "driverId": body.driver_id}
        )

        logger.info(
            "Vehicle assigned to schedule",
            extra={"schedule_id": schedule_id, "vehicle_id": body.vehicle_id, **get_request_context()}
        )

        return jsonify(_render_schedule(updated, user_context)), 200


def _production_costs(menus: MenuRepository, sppg_id: str, schedule: DistributionSchedule,
                      cache: Dict[str, Optional[Dict[str, Any]]]) -> Dict[str, Any]:
    """Production cost record derived from the menu's latest cost calculation."""
    if not schedule.menu_id:
        return {}

    if schedule.menu_id not in cache:
        document = menus.get_calculation(sppg_id, schedule.menu_id, "cost")
        cache[schedule.menu_id] = document.get("result") if document else None

    calculation = cache[schedule.menu_id]
    if not calculation:
        return {}

    cost_per_portion = calculation.get("cost_per_portion") or 0
    return {
        "estimated_cost": cost_per_portion * schedule.total_portions,
        "cost_per_portion": cost_per_portion
    }


def _schedule_costs(schedule: DistributionSchedule) -> Dict[str, Any]:
    return {
        "fuel_cost": schedule.fuel_cost,
        "packaging_cost": schedule.packaging_cost,
        "total_portions": schedule.total_portions,
        "estimated_beneficiaries": schedule.estimated_beneficiaries
    }


def _breakdown_dict(costs: CostBreakdown) -> Dict[str, Any]:
    return {
        "production": {
            "estimated": costs.production_estimated,
            "actual": costs.production_actual,
            "cost_per_portion": costs.production_cost_per_portion,
            "total": costs.production_total
        },
        "distribution": {
            "transport": costs.transport,
            "fuel": costs.fuel,
            "packaging": costs.packaging,
            "other": costs.other,
            "total": costs.distribution_total
        },
        "grand_total": costs.grand_total,
        "formatted_grand_total": format_rupiah(costs.grand_total)
    }


@distribution_bp.get('/<schedule_id>/cost-analysis')
@require_sppg(PermissionType.READ)
def get_cost_analysis(user_context: UserContext, path: SchedulePath):
    """
    Cost breakdown, efficiency and budget variance of one schedule.

    Production cost comes from the menu's latest cost calculation; recorded
    actual costs may be passed as query parameters. The trend covers the
    SPPG's completed schedules in date order.
    """
    schedule_id = path.schedule_id
    with tracer.start_as_current_span(
        "distribution.cost_analysis",
        attributes={"schedule.id": schedule_id, "sppg.id": user_context.sppg_id}
    ) as span:
        query = parse_query_params(CostAnalysisQuery)
        schedule = _load_schedule(user_context, schedule_id)

        menus = MenuRepository(current_app.mongodb_service)
        cache: Dict[str, Optional[Dict[str, Any]]] = {}

        production = _production_costs(menus, user_context.sppg_id, schedule, cache)
        if query.actual_production_cost is not None:
            production["actual_cost"] = query.actual_production_cost
        distribution = {"transport_cost": query.transport_cost, "other_costs": query.other_costs}

        costs = build_cost_breakdown(production, distribution, _schedule_costs(schedule))

        variance = calculate_cost_variance(costs.production_estimated, costs.production_actual)
        budget_status = get_budget_status(variance["percentage"]) if variance else None

        completed = ScheduleRepository(current_app.mongodb_service).list(
            user_context.sppg_id, {"status": ScheduleStatus.COMPLETED.value}
        )
        completed.sort(key=lambda s: s.distribution_date)
        history: List[CostBreakdown] = [
            build_cost_breakdown(
                _production_costs(menus, user_context.sppg_id, past, cache), None, _schedule_costs(past)
            )
            for past in completed
        ]

        span.set_attributes({"cost.grand_total": costs.grand_total, "cost.history_size": len(history)})

        data = {
            "schedule_id": schedule_id,
            "costs": _breakdown_dict(costs),
            "efficiency": calculate_cost_efficiency(costs),
            "variance": variance,
            "budget_status": budget_status,
            "trends": calculate_cost_trends(history)
        }
        return jsonify(current_app.hal_formatter.format_resource(
            data, f"/api/sppg/distribution/schedules/{schedule_id}/cost-analysis"
        )), 200
