# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the Bagizi SPPG platform.
"""

# Base models
from .base import BaseEntity, BaseEntityCreate

# Enumerations
from .enums import (
    SppgStatus,
    UserRole,
    PermissionType,
    ScheduleStatus,
    DeliveryStatus,
    DemoRequestStatus,
    AttendanceStatus,
    DemoAction,
    MenuPlanStatus
)

# Core entities
from .entities import (
    Sppg,
    InventoryItem,
    MenuIngredient,
    NutritionMenu,
    NutritionProgram,
    SchoolBeneficiary,
    VehicleAssignment,
    DistributionDelivery,
    DistributionSchedule,
    MenuAssignment,
    MenuPlan,
    DemoRequest,
    AuditLog,
    UserContext
)

# Request models
from .requests import (
    CalculateCostRequest,
    CreateScheduleRequest,
    UpdateScheduleStatusRequest,
    AssignVehicleRequest,
    CreateDemoRequestRequest,
    ApproveDemoRequestRequest,
    RejectDemoRequestRequest,
    AssignDemoRequestRequest,
    RecordAttendanceRequest,
    ConvertDemoRequestRequest,
    DemoAnalyticsQuery,
    CreateSchoolRequest,
    CreateProgramRequest,
    RejectMenuPlanRequest,
    ReviewNotesRequest,
    SchoolFilters,
    PaginationParams,
    CostAnalysisQuery
)

# Response models
from .responses import HalLink, HealthCheckResponse, ErrorResponse, PROBLEM_RESPONSES

__all__ = [
    # Base models
    "BaseEntity",
    "BaseEntityCreate",

    # Enumerations
    "SppgStatus",
    "UserRole",
    "PermissionType",
    "ScheduleStatus",
    "DeliveryStatus",
    "DemoRequestStatus",
    "AttendanceStatus",
    "DemoAction",
    "MenuPlanStatus",

    # Core entities
    "Sppg",
    "InventoryItem",
    "MenuIngredient",
    "NutritionMenu",
    "NutritionProgram",
    "SchoolBeneficiary",
    "VehicleAssignment",
    "DistributionDelivery",
    "DistributionSchedule",
    "MenuAssignment",
    "MenuPlan",
    "DemoRequest",
    "AuditLog",
    "UserContext",

    # Request models
    "CalculateCostRequest",
    "CreateScheduleRequest",
    "UpdateScheduleStatusRequest",
    "AssignVehicleRequest",
    "CreateDemoRequestRequest",
    "ApproveDemoRequestRequest",
    "RejectDemoRequestRequest",
    "AssignDemoRequestRequest",
    "RecordAttendanceRequest",
    "ConvertDemoRequestRequest",
    "DemoAnalyticsQuery",
    "CreateSchoolRequest",
    "CreateProgramRequest",
    "RejectMenuPlanRequest",
    "ReviewNotesRequest",
    "SchoolFilters",
    "PaginationParams",
    "CostAnalysisQuery",

    # Response models
    "HalLink",
    "HealthCheckResponse",
    "ErrorResponse",
    "PROBLEM_RESPONSES"
]
