# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence, token handling and response formatting.
"""

from .mongodb import MongoDBService, PaginationResult, get_mongodb_service, close_mongodb_connection
from .auth import AuthService, TokenValidationError, generate_key_pair
from .audit import AuditService
from .hal import HalFormatter, create_hal_formatter
from .health import HealthCheckService

__all__ = [
    "MongoDBService",
    "PaginationResult",
    "get_mongodb_service",
    "close_mongodb_connection",
    "AuthService",
    "TokenValidationError",
    "generate_key_pair",
    "AuditService",
    "HalFormatter",
    "create_hal_formatter",
    "HealthCheckService"
]
