# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and user context extraction.

This module provides Flask decorators that validate bearer tokens, build the
request's UserContext and enforce role permissions and SPPG tenant scope.
"""

from functools import wraps
from flask import request, g, current_app
from typing import Optional, Dict, Any, Callable, Iterable
from opentelemetry import trace
import logging

from domain.authorization import check_permission, check_sppg_access, get_role_permissions
from middleware.error_handler import AuthenticationException, AuthorizationException
from services.auth import TokenValidationError
from services.repositories import SppgRepository

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation and user context building for
    protected endpoints.
    """

    def __init__(self, auth_service):
        self.auth_service = auth_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from request headers.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '')

        if not auth_header:
            return None

        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None

        return auth_header

    def build_user_context(self, token_payload: Dict[str, Any], request_info: Dict[str, Any]):
        """
        Build user context from validated token payload and request information.

        Permissions are derived from the role claim, never taken from the token.
        """
        from models.entities import UserContext

        role = token_payload["role"]
        return UserContext(
            user_id=token_payload["sub"],
            role=role,
            sppg_id=token_payload.get("sppg_id"),
            email=token_payload.get("email"),
            name=token_payload.get("name"),
            permissions=get_role_permissions(role),
            token_payload=token_payload,
            ip_address=request_info.get("ip_address"),
            user_agent=request_info.get("user_agent")
        )

    def get_request_info(self) -> Dict[str, Any]:
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', ''),
            "request_id": request.headers.get('X-Request-ID')
        }

    def authenticate(self):
        """
        Validate the request token and return its UserContext.

        Raises:
            AuthenticationException: if the token is missing or invalid
        """
        with tracer.start_as_current_span("auth.middleware.validate_request") as span:
            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "missing_token")
                logger.warning("Authentication failed: missing token")
                raise AuthenticationException("Missing authorization token")

            try:
                payload = self.auth_service.validate_token(token, "access")
            except TokenValidationError as e:
                span.set_attribute("auth.result", "invalid_token")
                raise AuthenticationException(str(e))

            try:
                user_context = self.build_user_context(payload, self.get_request_info())
            except (KeyError, ValueError) as e:
                span.set_attribute("auth.result", "invalid_claims")
                logger.warning(f"Authentication failed: invalid token claims: {e}")
                raise AuthenticationException("Token claims are invalid")

            span.set_attributes({
                "auth.result": "success",
                "user.id": user_context.user_id,
                "user.role": user_context.role,
                "sppg.id": user_context.sppg_id or ""
            })
            return user_context


def require_auth(f: Callable) -> Callable:
    """
    Require a valid bearer token.

    The decorated view receives the UserContext as its first argument; the
    context is also stored on ``g.user_context``.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_context = current_app.auth_middleware.authenticate()
        g.user_context = user_context
        return f(user_context, *args, **kwargs)
    return decorated_function


def _enforce_permission(user_context, permission: str) -> None:
    result = check_permission(user_context, permission)
    if not result.allowed:
        logger.warning(
            "Authorization failed: missing permission",
            extra={"user_id": user_context.user_id, "role": user_context.role,
                   "permission": str(permission), "path": request.path}
        )
        raise AuthorizationException(result.reason)


def require_sppg(permission: Optional[str] = None) -> Callable:
    """
    Require an authenticated SPPG user whose SPPG is usable.

    The SPPG must exist, be ACTIVE and, for demo accounts, not be expired.
    When ``permission`` is given the user's role must also grant it.
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        @require_auth
        def decorated_function(user_context, *args, **kwargs):
            if not user_context.sppg_id:
                raise AuthorizationException("SPPG access required")

            if permission is not None:
                _enforce_permission(user_context, permission)

            sppg = SppgRepository(current_app.mongodb_service).get(user_context.sppg_id)
            result = check_sppg_access(sppg)
            if not result.allowed:
                logger.warning(
                    "SPPG access denied",
                    extra={"user_id": user_context.user_id, "sppg_id": user_context.sppg_id,
                           "reason": result.reason}
                )
                raise AuthorizationException(result.reason)

            g.sppg = sppg
            return f(user_context, *args, **kwargs)
        return decorated_function
    return decorator


def require_roles(roles: Iterable[str]) -> Callable:
    """Require the user's role to be one of ``roles``."""
    allowed = {getattr(role, "value", role) for role in roles}

    def decorator(f: Callable) -> Callable:
        @wraps(f)
        @require_auth
        def decorated_function(user_context, *args, **kwargs):
            if user_context.role not in allowed:
                logger.warning(
                    "Authorization failed: role not allowed",
                    extra={"user_id": user_context.user_id, "role": user_context.role, "path": request.path}
                )
                raise AuthorizationException("Insufficient permissions for this operation")
            return f(user_context, *args, **kwargs)
        return decorated_function
    return decorator
