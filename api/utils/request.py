# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request utilities shared by the route modules.
"""

from flask import request, g
from typing import Any, Dict, Optional, TypeVar
from pydantic import BaseModel
from opentelemetry import trace
import logging

from domain.common import WorkflowResult
from middleware.error_handler import BusinessRuleException, ConflictException, NotFoundException

logger = logging.getLogger(__name__)

T = TypeVar('T')


def get_request_context() -> Dict[str, Any]:
    """Request metadata for structured log records."""
    span_context = trace.get_current_span().get_span_context()
    user_context = getattr(g, 'user_context', None)

    return {
        "request_id": g.get('request_id') or request.headers.get('X-Request-ID'),
        "trace_id": format(span_context.trace_id, "032x") if span_context.is_valid else None,
        "user_id": user_context.user_id if user_context else None,
        "sppg_id": user_context.sppg_id if user_context else None,
        "path": request.path,
        "method": request.method
    }


def require_found(entity: Optional[T], label: str, entity_id: str) -> T:
    """Return the entity or raise a 404 naming it."""
    if entity is None:
        logger.info(f"{label} not found", extra={"entity_id": entity_id, **get_request_context()})
        raise NotFoundException(f"{label} {entity_id} not found")
    return entity


def raise_for_result(result: WorkflowResult, conflict: bool = False) -> Any:
    """
    Return the updated entity of a successful workflow step.

    Failures raise ConflictException when ``conflict`` is set, and
    BusinessRuleException otherwise.
    """
    if result.success:
        return result.entity

    if conflict:
        details = dict(result.details or {})
        if result.validation_errors:
            details["errors"] = result.validation_errors
        raise ConflictException(result.error_message, details)

    raise BusinessRuleException(result.error_message, result.validation_errors, result.details)


def to_api_dict(model: BaseModel, **kwargs) -> Dict[str, Any]:
    """JSON-safe snake_case dump of an entity."""
    return model.model_dump(mode="json", **kwargs)
