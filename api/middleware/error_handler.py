# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.
Provides centralized error handling and formatting for Flask applications.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from pydantic import ValidationError
from typing import Any, Dict, List, Optional, Tuple
from opentelemetry import trace
import logging
import traceback

from services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

CLIENT_ERRORS = {
    400: ("bad-request", "Bad Request"),
    401: ("authentication-required", "Authentication Required"),
    403: ("insufficient-permissions", "Insufficient Permissions"),
    404: ("resource-not-found", "Resource Not Found"),
    405: ("method-not-allowed", "Method Not Allowed"),
    409: ("resource-conflict", "Resource Conflict"),
    415: ("unsupported-media-type", "Unsupported Media Type"),
    422: ("validation-error", "Validation Error"),
}

SERVER_ERRORS = {
    500: ("internal-server-error", "Internal Server Error"),
    502: ("bad-gateway", "Bad Gateway"),
    503: ("service-unavailable", "Service Unavailable"),
    504: ("gateway-timeout", "Gateway Timeout"),
}


class CustomException(Exception):
    """Base class for custom application exceptions."""

    def __init__(self, message: str, status_code: int = 500, error_type: str = "application-error",
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details or {}


class ValidationException(CustomException):
    """Exception for validation errors."""

    def __init__(self, message: str, validation_errors: list = None):
        super().__init__(message, 400, "validation-error")
        self.validation_errors = validation_errors or []


class AuthenticationException(CustomException):

    def __init__(self, message: str):
        super().__init__(message, 401, "authentication-required")


class AuthorizationException(CustomException):

    def __init__(self, message: str):
        super().__init__(message, 403, "insufficient-permissions")


class NotFoundException(CustomException):

    def __init__(self, message: str):
        super().__init__(message, 404, "resource-not-found")


class ConflictException(CustomException):

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 409, "resource-conflict", details)


class BusinessRuleException(CustomException):
    """A workflow transition or business rule rejected the request."""

    def __init__(self, message: str, validation_errors: List[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, 422, "business-rule-violation", details)
        self.validation_errors = validation_errors or []


class ServiceUnavailableException(CustomException):

    def __init__(self, message: str):
        super().__init__(message, 503, "service-unavailable")


def format_pydantic_errors(validation_error: ValidationError) -> List[Dict[str, Any]]:
    """Flatten Pydantic errors into field/message/type entries."""
    errors = []
    for error in validation_error.errors():
        errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]) or "body",
            "message": error["msg"],
            "type": error["type"]
        })
    return errors


class ErrorHandlerMiddleware:
    """Centralized error handling middleware with HAL response formatting."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""

        for code, (error_type, title) in CLIENT_ERRORS.items():
            self.app.register_error_handler(code, self._client_handler(error_type, title))

        for code, (error_type, title) in SERVER_ERRORS.items():
            self.app.register_error_handler(code, self._server_handler(error_type, title))

        self.app.register_error_handler(CustomException, self.handle_custom_exception)
        self.app.register_error_handler(ValidationError, self.handle_pydantic_error)
        self.app.register_error_handler(Exception, self.handle_unexpected_error)

    def _client_handler(self, error_type: str, title: str):
        def handler(error):
            return self.handle_client_error(error, error_type, title)
        return handler

    def _server_handler(self, error_type: str, title: str):
        def handler(error):
            return self.handle_server_error(error, error_type, title)
        return handler

    def handle_client_error(
        self,
        error: HTTPException,
        error_type: str,
        title: str
    ) -> Tuple[Dict[str, Any], int]:
        """Handle client errors (4xx status codes)."""
        with tracer.start_as_current_span("error_handler.client_error") as span:
            span.set_attributes({
                "error.type": error_type,
                "error.status": error.code,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else title

            logger.warning(
                f"Client error: {title}",
                extra={
                    "error_type": error_type,
                    "status_code": error.code,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method,
                    "ip_address": request.remote_addr
                }
            )

            error_response = self.hal_formatter.builder.build_error_response(
                error_type, title, error.code, detail, request.path
            )
            return jsonify(error_response), error.code

    def handle_server_error(
        self,
        error: HTTPException,
        error_type: str,
        title: str
    ) -> Tuple[Dict[str, Any], int]:
        """Handle server errors (5xx status codes)."""
        with tracer.start_as_current_span("error_handler.server_error") as span:
            span.set_attributes({
                "error.type": error_type,
                "error.status": error.code,
                "http.method": request.method,
                "http.path": request.path
            })

            detail = str(error.description) if error.description else title

            logger.error(
                f"Server error: {title}",
                extra={
                    "error_type": error_type,
                    "status_code": error.code,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method
                },
                exc_info=True
            )

            if self.app.config.get('ENVIRONMENT') == 'production':
                detail = "An internal server error occurred"

            error_response = self.hal_formatter.builder.build_error_response(
                error_type, title, error.code, detail, request.path
            )
            return jsonify(error_response), error.code

    def handle_custom_exception(self, error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            logger.warning(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            formatter = self.hal_formatter
            if isinstance(error, ValidationException):
                error_response = formatter.format_validation_error(
                    error.message, request.path, error.validation_errors
                )
            elif isinstance(error, BusinessRuleException):
                error_response = formatter.format_business_rule_error(
                    error.message, request.path, error.validation_errors, error.details
                )
            elif isinstance(error, AuthenticationException):
                error_response = formatter.format_authentication_error(error.message, request.path)
            elif isinstance(error, AuthorizationException):
                error_response = formatter.format_authorization_error(error.message, request.path)
            elif isinstance(error, NotFoundException):
                error_response = formatter.format_not_found_error(error.message, request.path)
            elif isinstance(error, ConflictException):
                error_response = formatter.format_conflict_error(error.message, request.path, error.details)
            else:
                error_response = formatter.builder.build_error_response(
                    error.error_type, error.error_type.replace('-', ' ').title(),
                    error.status_code, error.message, request.path
                )

            return jsonify(error_response), error.status_code

    def handle_pydantic_error(self, error: ValidationError):
        """Request models raise this when constructed from a bad payload."""
        validation_errors = format_pydantic_errors(error)

        logger.warning(
            "Request validation failed",
            extra={"model": error.title, "path": request.path, "errors": validation_errors}
        )

        error_response = self.hal_formatter.format_validation_error(
            f"Request validation failed for {error.title}",
            request.path,
            validation_errors
        )
        return jsonify(error_response), 400

    def handle_unexpected_error(self, error: Exception):
        """Handle exceptions not caught by a specific handler."""
        if isinstance(error, HTTPException):
            return self.handle_client_error(error, "http-error", error.name)

        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_type": "unexpected-error",
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method,
                    "traceback": traceback.format_exc()
                },
                exc_info=True
            )

            detail = "An unexpected error occurred"
            if self.app.config.get('ENVIRONMENT') != 'production':
                detail = f"{error.__class__.__name__}: {str(error)}"

            error_response = self.hal_formatter.format_server_error(detail, request.path)
            return jsonify(error_response), 500
