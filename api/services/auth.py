# SPDX-License-Identifier: Apache-2.0

"""
JWT token service.

Tokens are RS256-signed and carry the caller's role and SPPG scope. This
service validates tokens issued by the platform's identity provider and can
issue short-lived tokens for service accounts and local development.
"""

import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when a token cannot be issued."""
    pass


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


def generate_key_pair() -> Tuple[str, str]:
    """Generate a PEM encoded RSA key pair (private, public)."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')

    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')

    return private_pem, public_pem


class AuthService:
    """RS256 JWT validation and issuing."""

    def __init__(self, private_key: Optional[str] = None, public_key: Optional[str] = None,
                 access_token_expire_minutes: int = 15):
        private_key = private_key or os.getenv("JWT_PRIVATE_KEY")
        public_key = public_key or os.getenv("JWT_PUBLIC_KEY")

        if not public_key:
            logger.warning("No JWT keys configured, generating development key pair")
            private_key, public_key = generate_key_pair()

        self.private_key = private_key
        self.public_key = public_key
        self.algorithm = "RS256"
        self.access_token_expire_minutes = access_token_expire_minutes

    def issue_access_token(
        self,
        user_id: str,
        role: str,
        sppg_id: Optional[str] = None,
        email: Optional[str] = None,
        name: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Issue an access token.

        Raises:
            AuthenticationError: if no private key is configured
        """
        if not self.private_key:
            raise AuthenticationError("Token issuing requires JWT_PRIVATE_KEY")

        with tracer.start_as_current_span("auth.issue_access_token") as span:
            span.set_attributes({"user.id": user_id, "user.role": role, "sppg.id": sppg_id or ""})

            now = datetime.now(timezone.utc)
            expires_at = now + timedelta(minutes=self.access_token_expire_minutes)
            payload = {
                "sub": user_id,
                "role": role,
                "sppg_id": sppg_id,
                "email": email,
                "name": name,
                "iat": now,
                "exp": expires_at,
                "type": "access"
            }

            token = jwt.encode(payload, self.private_key, algorithm=self.algorithm)

            logger.info(
                "Access token issued",
                extra={"user_id": user_id, "role": role, "sppg_id": sppg_id,
                       "expires_at": expires_at.isoformat()}
            )

            return {
                "access_token": token,
                "token_type": "Bearer",
                "expires_in": self.access_token_expire_minutes * 60,
                "expires_at": expires_at.isoformat()
            }

    def validate_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Raises:
            TokenValidationError: If the token is invalid, expired or of the wrong type
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attribute("auth.token_type", token_type)

            try:
                payload = jwt.decode(
                    token,
                    self.public_key,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True, "require": ["sub", "role", "exp"]}
                )
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

            if payload.get("type") != token_type:
                span.set_attribute("auth.validation_result", "wrong_type")
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": payload.get("sub"),
                "sppg.id": payload.get("sppg_id") or ""
            })
            return payload
