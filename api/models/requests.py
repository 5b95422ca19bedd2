# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

import re
from datetime import date, datetime, timedelta
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from .base import BaseEntityCreate, ensure_utc
from .entities import PHONE_PATTERN
from .enums import (
    ScheduleStatus,
    DistributionWave,
    BeneficiaryCategory,
    OrganizationType,
    DemoType,
    DemoMode,
    PreferredTime,
    AttendanceStatus,
    SchoolType,
    SchoolStatus,
    ProgramType,
    TargetGroup
)


class CalculateCostRequest(BaseModel):
    """Operational cost overrides for a menu cost calculation."""

    planned_portions: Optional[int] = Field(None, ge=0, description="Portions in the batch")
    labor_cost_per_hour: Optional[float] = Field(None, ge=0, description="Labour cost per hour (IDR)")
    preparation_hours: Optional[float] = Field(None, ge=0)
    cooking_hours: Optional[float] = Field(None, ge=0)
    gas_cost: Optional[float] = Field(None, ge=0)
    electricity_cost: Optional[float] = Field(None, ge=0)
    water_cost: Optional[float] = Field(None, ge=0)
    packaging_cost: Optional[float] = Field(None, ge=0)
    equipment_cost: Optional[float] = Field(None, ge=0)
    cleaning_cost: Optional[float] = Field(None, ge=0)
    overhead_percentage: Optional[float] = Field(None, ge=0, le=100)
    budget_allocation: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=1000)


class CreateScheduleRequest(BaseEntityCreate):
    """Request model for creating a distribution schedule."""

    menu_id: Optional[str] = Field(None)
    distribution_date: date = Field(..., description="Distribution date")
    wave: DistributionWave = Field(...)
    target_categories: List[BeneficiaryCategory] = Field(..., min_length=1, max_length=10)
    estimated_beneficiaries: int = Field(..., ge=1, le=100000)
    menu_name: str = Field(..., min_length=3, max_length=200)
    menu_description: Optional[str] = Field(None, max_length=1000)
    portion_size: float = Field(..., gt=0, le=5000, description="Portion size in grams")
    total_portions: int = Field(..., ge=1, le=100000)
    packaging_type: str = Field(..., min_length=2, max_length=100)
    packaging_cost: Optional[float] = Field(None, ge=0)
    delivery_method: str = Field(..., min_length=3, max_length=100)
    distribution_team: List[str] = Field(..., min_length=1, max_length=50)
    estimated_travel_time: Optional[int] = Field(None, ge=1, le=1440, description="Minutes")
    fuel_cost: Optional[float] = Field(None, ge=0)

    @model_validator(mode='after')
    def validate_portions(self):
        """Every beneficiary needs at least one portion."""
        if self.total_portions < self.estimated_beneficiaries:
            raise ValueError('Total portions must be greater than or equal to estimated beneficiaries')
        return self


class UpdateScheduleStatusRequest(BaseModel):
    """Request model for a distribution schedule status change."""

    status: ScheduleStatus = Field(..., description="Target status")
    reason: Optional[str] = Field(None, min_length=10, max_length=500, description="Reason for the change")
    notes: Optional[str] = Field(None, max_length=1000)


class AssignVehicleRequest(BaseModel):
    """Request model for assigning a vehicle to a schedule."""

    vehicle_id: str = Field(..., min_length=1)
    driver_id: Optional[str] = Field(None)
    estimated_departure: datetime = Field(...)
    estimated_arrival: datetime = Field(...)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator('estimated_departure', 'estimated_arrival')
    @classmethod
    def normalise_timezone(cls, v):
        """Naive times are taken as UTC."""
        return ensure_utc(v)

    @model_validator(mode='after')
    def validate_times(self):
        """Arrival follows departure within one day."""
        if self.estimated_arrival <= self.estimated_departure:
            raise ValueError('Estimated arrival must be after estimated departure')
        if self.estimated_arrival - self.estimated_departure > timedelta(hours=24):
            raise ValueError('Travel time cannot exceed 24 hours')
        return self


class CreateDemoRequestRequest(BaseEntityCreate):
    """Public demo request form."""

    organization_name: str = Field(..., min_length=3, max_length=200)
    organization_type: OrganizationType = Field(...)
    pic_name: str = Field(..., min_length=3, max_length=100)
    pic_email: str = Field(...)
    pic_phone: str = Field(..., min_length=10, max_length=15)
    pic_position: Optional[str] = Field(None, max_length=100)
    target_beneficiaries: Optional[int] = Field(None, ge=1, le=100000)
    operational_area: Optional[str] = Field(None, max_length=200)
    current_system: Optional[str] = Field(None, max_length=200)
    current_challenges: List[str] = Field(default_factory=list)
    expected_goals: List[str] = Field(default_factory=list)
    demo_type: DemoType = Field(default=DemoType.STANDARD)
    requested_features: List[str] = Field(default_factory=list)
    special_requirements: Optional[str] = Field(None, max_length=1000)
    preferred_start_date: Optional[datetime] = Field(None)
    estimated_duration: int = Field(default=14, ge=7, le=90, description="Days")
    preferred_time: Optional[PreferredTime] = Field(None)
    demo_duration: int = Field(default=60, ge=30, le=240, description="Minutes")
    demo_mode: DemoMode = Field(default=DemoMode.ONLINE)
    timezone: str = Field(default="Asia/Jakarta")

    @field_validator('pic_email')
    @classmethod
    def validate_email(cls, v):
        """Validate and normalise the contact e-mail."""
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()

    @field_validator('pic_phone')
    @classmethod
    def validate_phone(cls, v):
        if not re.match(PHONE_PATTERN, v):
            raise ValueError('Phone number may only contain digits, spaces, +, -, ( and )')
        return v


class ApproveDemoRequestRequest(BaseModel):
    """Request model for approving a demo request."""

    scheduled_date: Optional[datetime] = Field(None, description="Planned demo session")
    notes: Optional[str] = Field(None, max_length=1000)


class RejectDemoRequestRequest(BaseModel):
    """Request model for rejecting a demo request."""

    rejection_reason: str = Field(..., min_length=10, max_length=1000)


class AssignDemoRequestRequest(BaseModel):
    """Request model for assigning a demo request to a platform user."""

    assigned_to: str = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)


class RecordAttendanceRequest(BaseModel):
    """Request model for recording demo session attendance."""

    attendance_status: AttendanceStatus = Field(...)
    actual_date: Optional[datetime] = Field(None)


class ConvertDemoRequestRequest(BaseModel):
    """Request model for converting a demo request to a production SPPG."""

    converted_sppg_id: str = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=1000)


class DemoAnalyticsQuery(BaseModel):
    """Date window for demo request analytics."""

    start_date: Optional[datetime] = Field(None)
    end_date: Optional[datetime] = Field(None)


class CreateSchoolRequest(BaseEntityCreate):
    """Request model for registering a school beneficiary."""

    program_id: str = Field(..., min_length=1)
    school_name: str = Field(..., min_length=3, max_length=200)
    school_code: Optional[str] = Field(None, max_length=50)
    school_type: SchoolType = Field(...)
    school_status: SchoolStatus = Field(default=SchoolStatus.ACTIVE)
    principal_name: str = Field(..., min_length=3, max_length=100)
    contact_phone: str = Field(..., min_length=10, max_length=15)
    school_address: str = Field(..., min_length=5, max_length=500)
    total_students: int = Field(..., ge=0, le=10000)
    target_students: int = Field(..., ge=0, le=10000)
    active_students: int = Field(default=0, ge=0, le=10000)
    students_4_to_6: int = Field(default=0, ge=0)
    students_7_to_12: int = Field(default=0, ge=0)
    students_13_to_15: int = Field(default=0, ge=0)
    students_16_to_18: int = Field(default=0, ge=0)
    suspended_at: Optional[datetime] = Field(None)
    suspension_reason: Optional[str] = Field(None, max_length=500)

    @field_validator('contact_phone')
    @classmethod
    def validate_phone(cls, v):
        if not re.match(PHONE_PATTERN, v):
            raise ValueError('Phone number may only contain digits, spaces, +, -, ( and )')
        return v


class CreateProgramRequest(BaseEntityCreate):
    """Request model for creating a nutrition programme."""

    name: str = Field(..., min_length=5, max_length=200)
    program_code: str = Field(..., min_length=3, max_length=50)
    program_type: ProgramType = Field(...)
    target_group: TargetGroup = Field(...)
    calorie_target: Optional[float] = Field(None, ge=0, le=5000)
    protein_target: Optional[float] = Field(None, ge=0, le=200)
    carb_target: Optional[float] = Field(None, ge=0, le=500)
    fat_target: Optional[float] = Field(None, ge=0, le=200)
    fiber_target: Optional[float] = Field(None, ge=0, le=100)
    start_date: date = Field(...)
    end_date: Optional[date] = Field(None)
    feeding_days: List[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    meals_per_day: int = Field(default=1, ge=1, le=5)
    target_recipients: int = Field(..., ge=1, le=100000)
    implementation_area: str = Field(..., min_length=3, max_length=200)


class RejectMenuPlanRequest(BaseModel):
    """Request model for sending a menu plan back to draft."""

    rejection_reason: str = Field(..., min_length=10, max_length=1000)


class ReviewNotesRequest(BaseModel):
    """Optional reviewer notes for approve and publish actions."""

    notes: Optional[str] = Field(None, max_length=1000)


class SchoolFilters(BaseModel):
    """Filters for school beneficiary queries."""

    program_id: Optional[str] = Field(None)
    is_active: bool = Field(default=True)
    school_type: Optional[SchoolType] = Field(None)
    search: Optional[str] = Field(None, max_length=100, description="Matches name, code or principal")


class PaginationParams(BaseModel):
    """Pagination parameters."""

    page: int = Field(default=1, ge=1, description="Page number")
    page_size: int = Field(default=20, ge=1, le=100, description="Items per page")
    sort_by: Optional[str] = Field(None, description="Sort field")


class MenuPath(BaseModel):
    menu_id: str = Field(..., description="Menu identifier")


class SchedulePath(BaseModel):
    schedule_id: str = Field(..., description="Distribution schedule identifier")


class MenuPlanPath(BaseModel):
    plan_id: str = Field(..., description="Menu plan identifier")


class DemoRequestPath(BaseModel):
    request_id: str = Field(..., description="Demo request identifier")


class CostAnalysisQuery(BaseModel):
    """Recorded execution costs for a schedule cost analysis."""

    actual_production_cost: Optional[float] = Field(None, ge=0)
    transport_cost: Optional[float] = Field(None, ge=0)
    other_costs: Optional[float] = Field(None, ge=0)
