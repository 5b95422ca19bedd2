# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
School beneficiary endpoints.
"""

from flask import jsonify, current_app, g
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from pydantic.alias_generators import to_camel
import logging

from models.responses import PROBLEM_RESPONSES
from models.entities import SchoolBeneficiary, UserContext
from models.enums import PermissionType
from models.requests import CreateSchoolRequest, PaginationParams, SchoolFilters
from domain.beneficiaries import (
    build_school_query,
    check_beneficiary_quota,
    summarize_beneficiaries,
    validate_school
)
from services.repositories import SCHOOLS, ProgramRepository, SchoolRepository, from_document
from middleware.auth import require_sppg
from middleware.error_handler import BusinessRuleException
from middleware.validation import parse_json_body, parse_query_params
from utils.request import get_request_context, require_found, to_api_dict

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

school_tag = Tag(name="Schools", description="School beneficiary registration and reporting")
schools_bp = APIBlueprint(
    'schools',
    __name__,
    url_prefix='/api/sppg/schools',
    abp_tags=[school_tag],
    abp_responses=PROBLEM_RESPONSES
)


@schools_bp.post('/validate')
@require_sppg(PermissionType.SCHOOL_MANAGE)
def validate_school_data(user_context: UserContext):
    """
    Check school data without saving it.

    Field errors are returned as a 400 problem; cross-field results
    (age-group totals, target and active counts, suspension) are returned in
    the body together with non-blocking warnings.
    """
    with tracer.start_as_current_span("schools.validate", attributes={"sppg.id": user_context.sppg_id}) as span:
        body = parse_json_body(CreateSchoolRequest)
        result = validate_school(body)

        span.set_attributes({"validation.is_valid": result.is_valid, "validation.errors": len(result.errors)})

        data = {"is_valid": result.is_valid, "errors": result.errors, "warnings": result.warnings}
        return jsonify(current_app.hal_formatter.format_resource(data, "/api/sppg/schools/validate")), 200


@schools_bp.post('')
@require_sppg(PermissionType.SCHOOL_MANAGE)
def create_school(user_context: UserContext):
    """Register a school beneficiary under one of the SPPG's programmes."""
    with tracer.start_as_current_span(
        "schools.create",
        attributes={"user.id": user_context.user_id, "sppg.id": user_context.sppg_id}
    ) as span:
        body = parse_json_body(CreateSchoolRequest)

        result = validate_school(body)
        if not result.is_valid:
            raise BusinessRuleException("School validation failed", result.errors)

        programs = ProgramRepository(current_app.mongodb_service)
        require_found(programs.get(user_context.sppg_id, body.program_id), "Program", body.program_id)

        schools = SchoolRepository(current_app.mongodb_service)
        if g.sppg.is_demo_account:
            current = summarize_beneficiaries(schools.list(user_context.sppg_id, {"isActive": True}))
            quota = check_beneficiary_quota(g.sppg, current["target_students"], body.target_students)
            if not quota.is_valid:
                raise BusinessRuleException("Demo beneficiary limit reached", quota.errors)

        school = SchoolBeneficiary(
            sppg_id=user_context.sppg_id,
            created_by=user_context.user_id,
            updated_by=user_context.user_id,
            **body.model_dump()
        )
        schools.create(school, user_context.user_id)

        current_app.audit_service.log_action(
            user_context,
            entity="school",
            entity_id=school.id,
            action="create",
            description=f"Registered school {school.school_name}",
            after={"programId": school.program_id, "totalStudents": school.total_students,
                   "targetStudents": school.target_students}
        )

        span.set_attribute("school.id", school.id)
        logger.info(
            "School beneficiary registered",
            extra={"school_id": school.id, "program_id": school.program_id,
                   "warnings": result.warnings, **get_request_context()}
        )

        response = current_app.hal_formatter.format_school(to_api_dict(school), user_context.permissions)
        response["warnings"] = result.warnings
        return jsonify(response), 201


@schools_bp.get('')
@require_sppg(PermissionType.READ)
def list_schools(user_context: UserContext):
    """List schools with filters (programme, active flag, type, search) and pagination."""
    with tracer.start_as_current_span("schools.list", attributes={"sppg.id": user_context.sppg_id}) as span:
        filters = parse_query_params(SchoolFilters)
        pagination = parse_query_params(PaginationParams)

        page = current_app.mongodb_service.paginate_by_sppg(
            SCHOOLS,
            user_context.sppg_id,
            page=pagination.page,
            page_size=pagination.page_size,
            filters=build_school_query(filters),
            sort_by=to_camel(pagination.sort_by) if pagination.sort_by else "createdAt"
        )
        schools = [to_api_dict(from_document(SchoolBeneficiary, doc)) for doc in page.items]

        span.set_attributes({"schools.total": page.total, "schools.returned": len(schools)})

        return jsonify(current_app.hal_formatter.format_school_collection(
            schools,
            page.total,
            pagination.page,
            pagination.page_size,
            user_context.permissions,
            filters.model_dump(mode="json", exclude_none=True)
        )), 200


@schools_bp.get('/summary')
@require_sppg(PermissionType.READ)
def get_beneficiary_summary(user_context: UserContext):
    with tracer.start_as_current_span("schools.summary", attributes={"sppg.id": user_context.sppg_id}):
        schools = SchoolRepository(current_app.mongodb_service).list(user_context.sppg_id, {"isActive": True})
        return jsonify(current_app.hal_formatter.format_resource(
            summarize_beneficiaries(schools), "/api/sppg/schools/summary"
        )), 200
