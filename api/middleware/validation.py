# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request validation using Pydantic models.

Routes call these helpers after authentication so that the user context is
established before the body is inspected.
"""

from flask import request
from typing import Type, TypeVar, Dict, Any, Optional
from pydantic import BaseModel, ValidationError
from opentelemetry import trace
import logging

from middleware.error_handler import ValidationException, format_pydantic_errors

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

M = TypeVar('M', bound=BaseModel)


def parse_json_body(model_class: Type[M], allow_empty: bool = False) -> M:
    """
    Validate the JSON request body against a Pydantic model.

    Args:
        model_class: Pydantic model class for validation
        allow_empty: Treat a missing body as ``{}``

    Raises:
        ValidationException: on wrong content type, bad JSON or invalid fields
    """
    with tracer.start_as_current_span("validation.parse_json_body") as span:
        span.set_attributes({
            "validation.model": model_class.__name__,
            "http.method": request.method,
            "http.path": request.path
        })

        json_data: Optional[Dict[str, Any]]
        if not request.data and allow_empty:
            json_data = {}
        else:
            if not request.is_json:
                span.set_attribute("validation.result", "invalid_content_type")
                raise ValidationException(
                    "Request must have Content-Type: application/json",
                    [{"field": "content-type", "message": "Expected application/json", "type": "content_type_error"}]
                )

            json_data = request.get_json(silent=True)
            if not isinstance(json_data, dict):
                span.set_attribute("validation.result", "invalid_json")
                raise ValidationException(
                    "Invalid JSON in request body",
                    [{"field": "body", "message": "Expected a JSON object", "type": "json_error"}]
                )

        try:
            validated = model_class(**json_data)
        except ValidationError as e:
            span.set_attribute("validation.result", "validation_error")
            validation_errors = format_pydantic_errors(e)
            logger.warning(
                "Request validation failed",
                extra={"model": model_class.__name__, "path": request.path, "errors": validation_errors}
            )
            raise ValidationException(f"Request validation failed for {model_class.__name__}", validation_errors)

        span.set_attribute("validation.result", "success")
        return validated


def parse_query_params(model_class: Type[M]) -> M:
    """Validate query parameters; repeated keys become lists."""
    with tracer.start_as_current_span("validation.parse_query_params") as span:
        span.set_attribute("validation.model", model_class.__name__)

        query_data: Dict[str, Any] = request.args.to_dict()
        for key in request.args.keys():
            values = request.args.getlist(key)
            if len(values) > 1:
                query_data[key] = values

        try:
            validated = model_class(**query_data)
        except ValidationError as e:
            span.set_attribute("validation.result", "validation_error")
            validation_errors = format_pydantic_errors(e)
            logger.warning(
                "Query parameter validation failed",
                extra={"model": model_class.__name__, "path": request.path, "params": query_data}
            )
            raise ValidationException(
                f"Query parameter validation failed for {model_class.__name__}", validation_errors
            )

        span.set_attribute("validation.result", "success")
        return validated
