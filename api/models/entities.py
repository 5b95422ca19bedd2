# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the Bagizi SPPG platform.
"""

import re
from datetime import date, datetime
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from pydantic.alias_generators import to_camel
from .base import BaseEntity, generate_object_id, utcnow
from .enums import (
    SppgStatus,
    UserRole,
    ScheduleStatus,
    DeliveryStatus,
    DistributionWave,
    BeneficiaryCategory,
    DemoRequestStatus,
    AttendanceStatus,
    OrganizationType,
    DemoType,
    DemoMode,
    PreferredTime,
    SchoolType,
    SchoolStatus,
    ProgramType,
    TargetGroup,
    ProgramStatus,
    MenuPlanStatus,
    MealType
)

PHONE_PATTERN = r'^[\d+\-() ]+$'


class Sppg(BaseModel):
    """SPPG tenant (Satuan Pelayanan Pemenuhan Gizi)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True, validate_default=True)

    id: str = Field(default_factory=generate_object_id, description="SPPG identifier")
    code: str = Field(..., min_length=1, max_length=50, description="SPPG code")
    name: str = Field(..., min_length=1, max_length=200, description="SPPG name")
    status: SppgStatus = Field(default=SppgStatus.ACTIVE, description="Operational status")
    is_demo_account: bool = Field(default=False, description="Whether this is a demo tenant")
    demo_expires_at: Optional[datetime] = Field(None, description="Demo expiry timestamp")
    demo_allowed_features: List[str] = Field(default_factory=list, description="Features unlocked for demo")
    demo_max_beneficiaries: Optional[int] = Field(None, ge=0, description="Beneficiary cap for demo")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")


class InventoryItem(BaseEntity):
    """Stock item with nutrients per 100 g and cost per unit."""

    item_name: str = Field(..., min_length=1, max_length=200, description="Item name")
    item_code: Optional[str] = Field(None, max_length=50, description="Item code")
    unit: str = Field(default="gram", description="Stock unit")
    cost_per_unit: float = Field(default=0, ge=0, description="Cost per unit (IDR)")
    calories: float = Field(default=0, ge=0, description="kcal per 100 g")
    protein: float = Field(default=0, ge=0, description="Protein grams per 100 g")
    carbohydrates: float = Field(default=0, ge=0, description="Carbohydrate grams per 100 g")
    fat: float = Field(default=0, ge=0, description="Fat grams per 100 g")
    fiber: float = Field(default=0, ge=0, description="Fiber grams per 100 g")
    current_stock: float = Field(default=0, ge=0, description="Units in stock")
    is_active: bool = Field(default=True)


class MenuIngredient(BaseModel):
    """Ingredient line of a menu, optionally joined with its inventory item."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True, validate_default=True)

    id: str = Field(default_factory=generate_object_id)
    inventory_item_id: str = Field(..., description="Inventory item reference")
    quantity: float = Field(..., ge=0, description="Quantity in grams per 100 g serving basis")
    preparation_notes: Optional[str] = Field(None, max_length=500)
    inventory_item: Optional[InventoryItem] = Field(None, description="Joined inventory item")


class NutritionMenu(BaseEntity):
    """Menu with ingredients, serving size and production batch."""

    program_id: str = Field(..., description="Owning programme")
    menu_name: str = Field(..., min_length=1, max_length=200)
    menu_code: str = Field(..., min_length=1, max_length=50)
    meal_type: MealType = Field(default=MealType.MAKAN_SIANG)
    serving_size: float = Field(default=100, gt=0, description="Serving size in grams")
    batch_size: Optional[int] = Field(None, ge=1, description="Default production batch")
    cost_per_serving: float = Field(default=0, ge=0)
    nutrition_standard_compliance: bool = Field(default=False)
    is_active: bool = Field(default=True)
    ingredients: List[MenuIngredient] = Field(default_factory=list)


class NutritionProgram(BaseEntity):
    """Nutrition programme run by an SPPG."""

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
    status: ProgramStatus = Field(default=ProgramStatus.DRAFT)

    @field_validator('program_code')
    @classmethod
    def validate_program_code(cls, v):
        """Programme codes are upper-case letters, digits and hyphens."""
        if not re.match(r'^[A-Z0-9-]+$', v):
            raise ValueError('Program code must contain only uppercase letters, numbers, and hyphens')
        return v


class SchoolBeneficiary(BaseEntity):
    """School receiving meals, with per-age-group student counts."""

    program_id: str = Field(...)
    school_name: str = Field(..., min_length=3, max_length=200)
    school_code: Optional[str] = Field(None, max_length=50)
    school_type: SchoolType = Field(...)
    school_status: SchoolStatus = Field(default=SchoolStatus.ACTIVE)
    principal_name: str = Field(..., min_length=3, max_length=100)
    contact_phone: str = Field(..., min_length=10, max_length=15)
    school_address: str = Field(..., min_length=5, max_length=500)
    total_students: int = Field(..., ge=0)
    target_students: int = Field(..., ge=0)
    active_students: int = Field(default=0, ge=0)
    students_4_to_6: int = Field(default=0, ge=0)
    students_7_to_12: int = Field(default=0, ge=0)
    students_13_to_15: int = Field(default=0, ge=0)
    students_16_to_18: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True)
    suspended_at: Optional[datetime] = Field(None)
    suspension_reason: Optional[str] = Field(None, max_length=500)


class VehicleAssignment(BaseModel):
    """Vehicle and driver assigned to a distribution schedule."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True, validate_default=True)

    id: str = Field(default_factory=generate_object_id)
    vehicle_id: str = Field(...)
    driver_id: Optional[str] = Field(None)
    estimated_departure: datetime = Field(...)
    estimated_arrival: datetime = Field(...)
    notes: Optional[str] = Field(None, max_length=500)
    assigned_at: datetime = Field(default_factory=utcnow)
    assigned_by: Optional[str] = Field(None)


class DistributionDelivery(BaseModel):
    """Delivery of portions to one destination."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True, validate_default=True)

    id: str = Field(default_factory=generate_object_id)
    school_id: Optional[str] = Field(None)
    target_name: str = Field(..., min_length=1, max_length=200)
    portions_planned: int = Field(default=0, ge=0)
    portions_delivered: int = Field(default=0, ge=0)
    status: DeliveryStatus = Field(default=DeliveryStatus.ASSIGNED)
    delivered_at: Optional[datetime] = Field(None)


class DistributionSchedule(BaseEntity):
    """Planned distribution of a menu on a given date and wave."""

    menu_id: Optional[str] = Field(None)
    distribution_date: date = Field(...)
    wave: DistributionWave = Field(...)
    target_categories: List[BeneficiaryCategory] = Field(..., min_length=1, max_length=10)
    estimated_beneficiaries: int = Field(..., ge=1, le=100000)
    menu_name: str = Field(..., min_length=3, max_length=200)
    menu_description: Optional[str] = Field(None, max_length=1000)
    portion_size: float = Field(..., gt=0, le=5000)
    total_portions: int = Field(..., ge=1, le=100000)
    packaging_type: str = Field(..., min_length=2, max_length=100)
    packaging_cost: Optional[float] = Field(None, ge=0)
    delivery_method: str = Field(..., min_length=3, max_length=100)
    distribution_team: List[str] = Field(..., min_length=1, max_length=50)
    estimated_travel_time: Optional[int] = Field(None, ge=1, le=1440)
    fuel_cost: Optional[float] = Field(None, ge=0)
    status: ScheduleStatus = Field(default=ScheduleStatus.PLANNED)
    vehicle_assignments: List[VehicleAssignment] = Field(default_factory=list)
    deliveries: List[DistributionDelivery] = Field(default_factory=list)
    started_at: Optional[datetime] = Field(None)
    completed_at: Optional[datetime] = Field(None)
    cancellation_reason: Optional[str] = Field(None)
    notes: Optional[str] = Field(None, max_length=1000)


class MenuAssignment(BaseModel):
    """A menu placed on one day and meal slot of a menu plan."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True, validate_default=True)

    id: str = Field(default_factory=generate_object_id)
    menu_id: str = Field(...)
    assigned_date: date = Field(...)
    meal_type: MealType = Field(default=MealType.MAKAN_SIANG)
    planned_portions: int = Field(default=0, ge=0)
    estimated_cost: float = Field(default=0, ge=0)


class MenuPlan(BaseEntity):
    """Menu plan covering a date range for a programme."""

    program_id: str = Field(...)
    name: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    start_date: date = Field(...)
    end_date: date = Field(...)
    status: MenuPlanStatus = Field(default=MenuPlanStatus.DRAFT)
    assignments: List[MenuAssignment] = Field(default_factory=list)
    submitted_at: Optional[datetime] = Field(None)
    submitted_by: Optional[str] = Field(None)
    approved_at: Optional[datetime] = Field(None)
    approved_by: Optional[str] = Field(None)
    published_at: Optional[datetime] = Field(None)
    published_by: Optional[str] = Field(None)
    rejection_reason: Optional[str] = Field(None)

    @model_validator(mode='after')
    def validate_date_range(self):
        """A plan cannot end before it starts."""
        if self.end_date < self.start_date:
            raise ValueError('End date must be on or after start date')
        return self


class DemoRequest(BaseModel):
    """Platform-level request for a demo account."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True, validate_assignment=True, validate_default=True)

    id: str = Field(default_factory=generate_object_id)
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
    estimated_duration: int = Field(default=14, ge=7, le=90)
    preferred_time: Optional[PreferredTime] = Field(None)
    demo_duration: int = Field(default=60, ge=30, le=240)
    demo_mode: DemoMode = Field(default=DemoMode.ONLINE)
    timezone: str = Field(default="Asia/Jakarta")
    status: DemoRequestStatus = Field(default=DemoRequestStatus.SUBMITTED)
    assigned_to: Optional[str] = Field(None)
    assigned_at: Optional[datetime] = Field(None)
    reviewed_at: Optional[datetime] = Field(None)
    reviewed_by: Optional[str] = Field(None)
    approved_at: Optional[datetime] = Field(None)
    approved_by: Optional[str] = Field(None)
    rejected_at: Optional[datetime] = Field(None)
    rejection_reason: Optional[str] = Field(None)
    scheduled_date: Optional[datetime] = Field(None)
    actual_date: Optional[datetime] = Field(None)
    attendance_status: Optional[AttendanceStatus] = Field(None)
    is_converted: bool = Field(default=False)
    converted_at: Optional[datetime] = Field(None)
    converted_sppg_id: Optional[str] = Field(None)
    conversion_probability: Optional[int] = Field(None, ge=0, le=100)
    notes: Optional[str] = Field(None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator('pic_email')
    @classmethod
    def validate_email(cls, v):
        """Validate and normalise the contact e-mail."""
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, v.strip().lower()):
            raise ValueError('Invalid email format')
        return v.strip().lower()

    @field_validator('pic_phone')
    @classmethod
    def validate_phone(cls, v):
        if not re.match(PHONE_PATTERN, v):
            raise ValueError('Phone number may only contain digits, spaces, +, -, ( and )')
        return v

    def append_note(self, note: str) -> None:
        """Append a line to the free-form notes."""
        self.notes = f"{self.notes}\n\n{note}" if self.notes else note


class AuditLog(BaseModel):
    """Audit log entry for compliance and accountability."""

    id: str = Field(default_factory=generate_object_id, description="Unique identifier")
    timestamp: datetime = Field(default_factory=utcnow, description="Action timestamp")
    user_id: str = Field(..., description="User who performed the action")
    sppg_id: Optional[str] = Field(None, description="Tenant scope, empty for platform actions")
    entity: str = Field(..., description="Entity type")
    entity_id: str = Field(..., description="Entity identifier")
    action: str = Field(..., description="Action performed")
    description: Optional[str] = Field(None, description="Human-readable summary")
    before: Optional[Dict[str, Any]] = Field(None, description="State before action")
    after: Optional[Dict[str, Any]] = Field(None, description="State after action")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    trace_id: Optional[str] = Field(None, description="OpenTelemetry trace ID")
    span_id: Optional[str] = Field(None, description="OpenTelemetry span ID")
    schema_version: int = Field(default=1, description="Schema version")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=True, validate_default=True)

    @field_validator('entity')
    @classmethod
    def validate_entity(cls, v):
        """Validate entity type."""
        valid_entities = [
            'menu', 'nutrition_calculation', 'cost_calculation',
            'distribution_schedule', 'school', 'program', 'menu_plan',
            'demo_request'
        ]
        if v not in valid_entities:
            raise ValueError(f'Invalid entity type: {v}')
        return v

    @field_validator('action')
    @classmethod
    def validate_action(cls, v):
        """Validate action type."""
        valid_actions = [
            'create', 'update', 'delete', 'calculate', 'status_change',
            'assign_vehicle', 'submit', 'approve', 'reject', 'publish',
            'assign', 'attendance', 'convert'
        ]
        if v not in valid_actions:
            raise ValueError(f'Invalid action type: {v}')
        return v


class UserContext(BaseModel):
    """Authenticated caller with role and tenant scope."""

    user_id: str = Field(..., description="Authenticated user ID")
    role: UserRole = Field(..., description="User role")
    sppg_id: Optional[str] = Field(None, description="Tenant scope, empty for platform users")
    email: Optional[str] = Field(None, description="User email")
    name: Optional[str] = Field(None, description="User display name")
    permissions: List[str] = Field(default_factory=list, description="Effective permissions")
    token_payload: Optional[Dict[str, Any]] = Field(None, description="Original JWT payload")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")

    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    def has_permission(self, permission: str) -> bool:
        """Check a permission, with ALL granting everything."""
        return 'ALL' in self.permissions or permission in self.permissions

    def has_any_permission(self, permissions: List[str]) -> bool:
        return any(self.has_permission(perm) for perm in permissions)

    def is_platform_user(self) -> bool:
        return str(self.role).startswith('PLATFORM_')
