# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Demo request endpoints.

Prospective SPPGs submit requests through the public endpoint; platform
staff review, schedule, convert and analyse them through the admin
endpoints.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging
from typing import Callable, Optional

from models.responses import PROBLEM_RESPONSES
from models.entities import DemoRequest, UserContext
from models.enums import UserRole
from models.requests import (
    ApproveDemoRequestRequest,
    AssignDemoRequestRequest,
    ConvertDemoRequestRequest,
    CreateDemoRequestRequest,
    DemoAnalyticsQuery,
    DemoRequestPath,
    RecordAttendanceRequest,
    RejectDemoRequestRequest
)
from domain.common import WorkflowResult
from domain.demo_requests import (
    approve_demo_request,
    assign_demo_request,
    calculate_demo_analytics,
    convert_demo_request,
    delete_demo_request,
    get_allowed_actions,
    record_attendance,
    reject_demo_request,
    resolve_analytics_window
)
from services.repositories import DemoRequestRepository, SppgRepository
from middleware.auth import require_roles
from middleware.validation import parse_json_body, parse_query_params
from utils.request import get_request_context, raise_for_result, require_found, to_api_dict

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

PLATFORM_ROLES = (UserRole.PLATFORM_SUPERADMIN, UserRole.PLATFORM_SUPPORT, UserRole.PLATFORM_ANALYST)
PLATFORM_OPERATOR_ROLES = (UserRole.PLATFORM_SUPERADMIN, UserRole.PLATFORM_SUPPORT)

demo_tag = Tag(name="Demo Requests", description="Demo request intake and onboarding workflow")

public_demo_bp = APIBlueprint(
    'demo_requests_public',
    __name__,
    url_prefix='/api/demo-requests',
    abp_tags=[demo_tag],
    abp_responses=PROBLEM_RESPONSES
)

admin_demo_bp = APIBlueprint(
    'demo_requests_admin',
    __name__,
    url_prefix='/api/admin/demo-requests',
    abp_tags=[demo_tag],
    abp_responses=PROBLEM_RESPONSES
)


def _render(demo_request: DemoRequest):
    return current_app.hal_formatter.format_demo_request(
        to_api_dict(demo_request), get_allowed_actions(demo_request)
    )


def _load(request_id: str) -> DemoRequest:
    repository = DemoRequestRepository(current_app.mongodb_service)
    return require_found(repository.get(request_id), "Demo request", request_id)


def _apply(user_context: UserContext, request_id: str, action: str,
           step: Callable[[DemoRequest], WorkflowResult], description: Optional[str] = None):
    """
    Run one workflow step on a demo request.

    A step refused by the request's status is a conflict (409) listing the
    allowed actions; other failures are business rule violations (422).
    """
    with tracer.start_as_current_span(
        f"demo_requests.{action}",
        attributes={"demo_request.id": request_id, "user.id": user_context.user_id}
    ) as span:
        demo_request = _load(request_id)
        old_status = demo_request.status

        result = step(demo_request)
        if not result.success:
            logger.info(
                f"Demo request {action} refused",
                extra={"demo_request_id": request_id, "status": old_status,
                       "reason": result.error_message, **get_request_context()}
            )
        updated = raise_for_result(result, conflict="allowed_actions" in (result.details or {}))

        DemoRequestRepository(current_app.mongodb_service).save(updated, user_context.user_id)

        current_app.audit_service.log_action(
            user_context,
            entity="demo_request",
            entity_id=request_id,
            action=action,
            description=description or f"Demo request {action}: {demo_request.organization_name}",
            before={"status": old_status},
            after={"status": updated.status}
        )

        span.set_attributes({"demo_request.old_status": old_status, "demo_request.new_status": updated.status})
        logger.info(
            f"Demo request {action} completed",
            extra={"demo_request_id": request_id, "from_status": old_status, "to_status": updated.status,
                   **get_request_context()}
        )

        return jsonify(_render(updated)), 200


@public_demo_bp.post('')
def create_demo_request():
    """
    Submit a demo request.

    Public endpoint; the request starts in SUBMITTED status.
    """
    with tracer.start_as_current_span("demo_requests.create") as span:
        body = parse_json_body(CreateDemoRequestRequest)

        demo_request = DemoRequest(**body.model_dump())
        DemoRequestRepository(current_app.mongodb_service).create(demo_request, body.pic_email)

        span.set_attributes({
            "demo_request.id": demo_request.id,
            "demo_request.organization_type": demo_request.organization_type
        })
        logger.info(
            "Demo request submitted",
            extra={"demo_request_id": demo_request.id, "organization_type": demo_request.organization_type,
                   "demo_type": demo_request.demo_type, **get_request_context()}
        )

        data = {
            "id": demo_request.id,
            "status": demo_request.status,
            "organization_name": demo_request.organization_name,
            "created_at": demo_request.created_at.isoformat()
        }
        return jsonify(current_app.hal_formatter.format_resource(data, "/api/demo-requests")), 201


@admin_demo_bp.get('/analytics')
@require_roles(PLATFORM_ROLES)
def get_demo_analytics(user_context: UserContext):
    """
    Conversion funnel analytics over a date window.

    Defaults to the last 90 days; ``start_date`` and ``end_date`` query
    parameters narrow the window.
    """
    with tracer.start_as_current_span("demo_requests.analytics", attributes={"user.id": user_context.user_id}) as span:
        query = parse_query_params(DemoAnalyticsQuery)
        window = resolve_analytics_window(query.start_date, query.end_date)

        requests = DemoRequestRepository(current_app.mongodb_service).list_created_between(
            window["start_date"], window["end_date"]
        )
        analytics = calculate_demo_analytics(requests)

        span.set_attribute("demo_requests.count", len(requests))

        data = {
            "period": {
                "start_date": window["start_date"].isoformat(),
                "end_date": window["end_date"].isoformat()
            },
            **analytics
        }
        return jsonify(current_app.hal_formatter.format_resource(data, "/api/admin/demo-requests/analytics")), 200


@admin_demo_bp.get('/<request_id>')
@require_roles(PLATFORM_ROLES)
def get_demo_request(user_context: UserContext, path: DemoRequestPath):
    """Get a demo request with the workflow actions its status allows."""
    with tracer.start_as_current_span("demo_requests.get", attributes={"demo_request.id": path.request_id}):
        return jsonify(_render(_load(path.request_id))), 200


@admin_demo_bp.post('/<request_id>/approve')
@require_roles(PLATFORM_OPERATOR_ROLES)
def approve_request(user_context: UserContext, path: DemoRequestPath):
    body = parse_json_body(ApproveDemoRequestRequest, allow_empty=True)
    return _apply(
        user_context, path.request_id, "approve",
        lambda dr: approve_demo_request(dr, user_context, body.scheduled_date, body.notes)
    )


@admin_demo_bp.post('/<request_id>/reject')
@require_roles(PLATFORM_OPERATOR_ROLES)
def reject_request(user_context: UserContext, path: DemoRequestPath):
    body = parse_json_body(RejectDemoRequestRequest)
    return _apply(
        user_context, path.request_id, "reject",
        lambda dr: reject_demo_request(dr, body.rejection_reason, user_context),
        f"Rejected demo request: {body.rejection_reason}"
    )


@admin_demo_bp.post('/<request_id>/assign')
@require_roles(PLATFORM_OPERATOR_ROLES)
def assign_request(user_context: UserContext, path: DemoRequestPath):
    """Assign the request to a platform user; SUBMITTED requests move to UNDER_REVIEW."""
    body = parse_json_body(AssignDemoRequestRequest)
    return _apply(
        user_context, path.request_id, "assign",
        lambda dr: assign_demo_request(dr, body.assigned_to, user_context, body.notes),
        f"Assigned demo request to {body.assigned_to}"
    )


@admin_demo_bp.post('/<request_id>/attendance')
@require_roles(PLATFORM_OPERATOR_ROLES)
def record_request_attendance(user_context: UserContext, path: DemoRequestPath):
    body = parse_json_body(RecordAttendanceRequest)
    status = body.attendance_status.value
    return _apply(
        user_context, path.request_id, "attendance",
        lambda dr: record_attendance(dr, status, body.actual_date),
        f"Recorded demo attendance: {status}"
    )


@admin_demo_bp.post('/<request_id>/convert')
@require_roles([UserRole.PLATFORM_SUPERADMIN])
def convert_request(user_context: UserContext, path: DemoRequestPath):
    """
    Convert a demo request into a production SPPG.

    The target SPPG must exist and must not be a demo account.
    """
    body = parse_json_body(ConvertDemoRequestRequest)
    target_sppg = SppgRepository(current_app.mongodb_service).get(body.converted_sppg_id)
    return _apply(
        user_context, path.request_id, "convert",
        lambda dr: convert_demo_request(dr, target_sppg, user_context, body.notes),
        f"Converted demo request to SPPG {body.converted_sppg_id}"
    )


@admin_demo_bp.delete('/<request_id>')
@require_roles([UserRole.PLATFORM_SUPERADMIN])
def delete_request(user_context: UserContext, path: DemoRequestPath):
    """Soft-delete a closed request (status REJECTED with a deletion note)."""
    return _apply(
        user_context, path.request_id, "delete",
        lambda dr: delete_demo_request(dr, user_context),
        "Deleted demo request"
    )
