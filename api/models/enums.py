# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the Bagizi SPPG platform.
"""

from enum import Enum


class SppgStatus(str, Enum):
    """Operational status of an SPPG tenant."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    TERMINATED = "TERMINATED"


class UserRole(str, Enum):
    """Platform and SPPG level roles."""
    PLATFORM_SUPERADMIN = "PLATFORM_SUPERADMIN"
    PLATFORM_SUPPORT = "PLATFORM_SUPPORT"
    PLATFORM_ANALYST = "PLATFORM_ANALYST"
    SPPG_KEPALA = "SPPG_KEPALA"
    SPPG_ADMIN = "SPPG_ADMIN"
    SPPG_AHLI_GIZI = "SPPG_AHLI_GIZI"
    SPPG_AKUNTAN = "SPPG_AKUNTAN"
    SPPG_PRODUKSI_MANAGER = "SPPG_PRODUKSI_MANAGER"
    SPPG_DISTRIBUSI_MANAGER = "SPPG_DISTRIBUSI_MANAGER"
    SPPG_HRD_MANAGER = "SPPG_HRD_MANAGER"
    SPPG_STAFF_DAPUR = "SPPG_STAFF_DAPUR"
    SPPG_STAFF_DISTRIBUSI = "SPPG_STAFF_DISTRIBUSI"
    SPPG_STAFF_ADMIN = "SPPG_STAFF_ADMIN"
    SPPG_STAFF_QC = "SPPG_STAFF_QC"
    SPPG_VIEWER = "SPPG_VIEWER"
    DEMO_USER = "DEMO_USER"


class PermissionType(str, Enum):
    """Coarse-grained permissions granted to roles."""
    ALL = "ALL"
    READ = "READ"
    WRITE = "WRITE"
    DELETE = "DELETE"
    APPROVE = "APPROVE"
    MENU_MANAGE = "MENU_MANAGE"
    SCHOOL_MANAGE = "SCHOOL_MANAGE"
    PROCUREMENT_MANAGE = "PROCUREMENT_MANAGE"
    PRODUCTION_MANAGE = "PRODUCTION_MANAGE"
    DISTRIBUTION_MANAGE = "DISTRIBUTION_MANAGE"
    FINANCIAL_MANAGE = "FINANCIAL_MANAGE"
    HR_MANAGE = "HR_MANAGE"
    QUALITY_MANAGE = "QUALITY_MANAGE"
    USER_MANAGE = "USER_MANAGE"
    ANALYTICS_VIEW = "ANALYTICS_VIEW"
    REPORTS_VIEW = "REPORTS_VIEW"


class ScheduleStatus(str, Enum):
    """Distribution schedule lifecycle status."""
    PLANNED = "PLANNED"
    PREPARED = "PREPARED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    DELAYED = "DELAYED"


class DeliveryStatus(str, Enum):
    """Status of a single delivery within a schedule."""
    ASSIGNED = "ASSIGNED"
    DEPARTED = "DEPARTED"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class DistributionWave(str, Enum):
    """Distribution time slot."""
    MORNING = "MORNING"
    MIDDAY = "MIDDAY"


class BeneficiaryCategory(str, Enum):
    """Target beneficiary categories."""
    TODDLER = "TODDLER"
    EARLY_CHILDHOOD = "EARLY_CHILDHOOD"
    KINDERGARTEN = "KINDERGARTEN"
    ELEMENTARY_GRADE_1_3 = "ELEMENTARY_GRADE_1_3"
    ELEMENTARY_GRADE_4_6 = "ELEMENTARY_GRADE_4_6"
    JUNIOR_HIGH = "JUNIOR_HIGH"
    SENIOR_HIGH = "SENIOR_HIGH"
    PREGNANT_WOMAN = "PREGNANT_WOMAN"
    BREASTFEEDING_MOTHER = "BREASTFEEDING_MOTHER"
    ELDERLY = "ELDERLY"


class DemoRequestStatus(str, Enum):
    """Demo request onboarding status."""
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DEMO_ACTIVE = "DEMO_ACTIVE"
    CONVERTED = "CONVERTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class AttendanceStatus(str, Enum):
    """Demo session attendance outcome."""
    ATTENDED = "ATTENDED"
    NO_SHOW = "NO_SHOW"
    RESCHEDULED = "RESCHEDULED"


class DemoAction(str, Enum):
    """Actions that can be taken on a demo request."""
    VIEW = "view"
    EDIT = "edit"
    APPROVE = "approve"
    REJECT = "reject"
    ASSIGN = "assign"
    CONVERT = "convert"
    DELETE = "delete"


class OrganizationType(str, Enum):
    """Type of organisation requesting a demo."""
    PEMERINTAH = "PEMERINTAH"
    SWASTA = "SWASTA"
    YAYASAN = "YAYASAN"
    KOMUNITAS = "KOMUNITAS"
    LAINNYA = "LAINNYA"


class DemoType(str, Enum):
    """Demo account type."""
    TRIAL = "TRIAL"
    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    CUSTOM = "CUSTOM"


class DemoMode(str, Enum):
    """How the demo session is held."""
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    HYBRID = "HYBRID"


class PreferredTime(str, Enum):
    """Preferred demo time of day."""
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"
    EVENING = "EVENING"
    FLEXIBLE = "FLEXIBLE"


class SchoolType(str, Enum):
    """Type of school beneficiary."""
    PAUD = "PAUD"
    TK = "TK"
    SD = "SD"
    SMP = "SMP"
    SMA = "SMA"
    SMK = "SMK"


class SchoolStatus(str, Enum):
    """Partnership status of a school beneficiary."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class ProgramType(str, Enum):
    """Nutrition programme type."""
    SUPPLEMENTARY_FEEDING = "SUPPLEMENTARY_FEEDING"
    NUTRITIONAL_RECOVERY = "NUTRITIONAL_RECOVERY"
    NUTRITIONAL_EDUCATION = "NUTRITIONAL_EDUCATION"
    EMERGENCY_NUTRITION = "EMERGENCY_NUTRITION"
    STUNTING_INTERVENTION = "STUNTING_INTERVENTION"


class TargetGroup(str, Enum):
    """Programme target group."""
    TODDLER = "TODDLER"
    PREGNANT_WOMAN = "PREGNANT_WOMAN"
    BREASTFEEDING_MOTHER = "BREASTFEEDING_MOTHER"
    TEENAGE_GIRL = "TEENAGE_GIRL"
    ELDERLY = "ELDERLY"
    SCHOOL_CHILDREN = "SCHOOL_CHILDREN"


class ProgramStatus(str, Enum):
    """Programme lifecycle status."""
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class MenuPlanStatus(str, Enum):
    """Menu plan lifecycle status."""
    DRAFT = "DRAFT"
    PENDING_REVIEW = "PENDING_REVIEW"
    REVIEWED = "REVIEWED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    PUBLISHED = "PUBLISHED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    ARCHIVED = "ARCHIVED"
    CANCELLED = "CANCELLED"


class MealType(str, Enum):
    """Meal slot of a menu."""
    SARAPAN = "SARAPAN"
    SNACK_PAGI = "SNACK_PAGI"
    MAKAN_SIANG = "MAKAN_SIANG"
    SNACK_SORE = "SNACK_SORE"
    MAKAN_MALAM = "MAKAN_MALAM"
