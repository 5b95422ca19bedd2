# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Nutrition programme endpoints.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
import logging

from models.responses import PROBLEM_RESPONSES
from models.entities import NutritionProgram, UserContext
from models.enums import PermissionType
from models.requests import CreateProgramRequest
from domain.beneficiaries import validate_program
from services.repositories import ProgramRepository
from middleware.auth import require_sppg
from middleware.error_handler import BusinessRuleException, ConflictException
from middleware.validation import parse_json_body
from utils.request import get_request_context, to_api_dict

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

program_tag = Tag(name="Programs", description="Nutrition programme validation and registration")
programs_bp = APIBlueprint(
    'programs',
    __name__,
    url_prefix='/api/sppg/programs',
    abp_tags=[program_tag],
    abp_responses=PROBLEM_RESPONSES
)


@programs_bp.post('/validate')
@require_sppg(PermissionType.WRITE)
def validate_program_data(user_context: UserContext):
    """Check programme dates, feeding days and code without saving."""
    with tracer.start_as_current_span("programs.validate", attributes={"sppg.id": user_context.sppg_id}):
        body = parse_json_body(CreateProgramRequest)
        result = validate_program(body)

        data = {"is_valid": result.is_valid, "errors": result.errors, "warnings": result.warnings}
        return jsonify(current_app.hal_formatter.format_resource(data, "/api/sppg/programs/validate")), 200


@programs_bp.post('')
@require_sppg(PermissionType.WRITE)
def create_program(user_context: UserContext):
    """
    Create a DRAFT nutrition programme.

    Programme codes are unique within an SPPG.
    """
    with tracer.start_as_current_span(
        "programs.create",
        attributes={"user.id": user_context.user_id, "sppg.id": user_context.sppg_id}
    ) as span:
        body = parse_json_body(CreateProgramRequest)

        result = validate_program(body)
        if not result.is_valid:
            raise BusinessRuleException("Program validation failed", result.errors)

        programs = ProgramRepository(current_app.mongodb_service)
        if programs.list(user_context.sppg_id, {"programCode": body.program_code}):
            raise ConflictException(
                f"Program code {body.program_code} already exists",
                {"program_code": body.program_code}
            )

        program = NutritionProgram(
            sppg_id=user_context.sppg_id,
            created_by=user_context.user_id,
            updated_by=user_context.user_id,
            **body.model_dump()
        )
        programs.create(program, user_context.user_id)

        current_app.audit_service.log_action(
            user_context,
            entity="program",
            entity_id=program.id,
            action="create",
            description=f"Created program {program.program_code}",
            after={"programCode": program.program_code, "status": program.status}
        )

        span.set_attribute("program.id", program.id)
        logger.info(
            "Nutrition program created",
            extra={"program_id": program.id, "program_code": program.program_code, **get_request_context()}
        )

        return jsonify(current_app.hal_formatter.format_resource(
            to_api_dict(program), f"/api/sppg/programs/{program.id}"
        )), 201
