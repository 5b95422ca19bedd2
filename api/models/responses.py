# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.

These document the response shapes in the OpenAPI specification; routes
build the bodies with the HAL formatter.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field
from datetime import datetime


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class HealthCheckResponse(BaseModel):
    """Health check response model."""

    status: str = Field(..., description="healthy or unhealthy")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Application version")
    environment: str = Field(..., description="Environment name")
    timestamp: datetime = Field(..., description="Check timestamp")
    uptime_seconds: float = Field(..., description="Seconds since start")
    dependencies: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Dependency health")


class ErrorResponse(BaseModel):
    """Error response model following RFC 7807."""

    type: str = Field(..., description="Error type URI")
    title: str = Field(..., description="Error title")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Error detail")
    instance: str = Field(..., description="Request instance")
    errors: Optional[List[Any]] = Field(None, description="Validation errors")
    allowed_transitions: Optional[List[str]] = Field(None, description="Reachable statuses, on 409 conflicts")


PROBLEM_RESPONSES = {
    "400": ErrorResponse,
    "401": ErrorResponse,
    "403": ErrorResponse,
    "404": ErrorResponse,
    "409": ErrorResponse,
    "422": ErrorResponse,
}
