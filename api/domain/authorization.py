# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for role-based access control.

This module contains pure functions mapping roles to permissions and
checking tenant (SPPG) access, including demo account restrictions.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from models.base import ensure_utc, utcnow
from models.entities import Sppg, UserContext
from models.enums import PermissionType as P, SppgStatus, UserRole

ROLE_PERMISSIONS: Dict[str, List[str]] = {
    UserRole.PLATFORM_SUPERADMIN.value: [P.ALL],
    UserRole.PLATFORM_SUPPORT.value: [P.READ, P.REPORTS_VIEW],
    UserRole.PLATFORM_ANALYST.value: [P.READ, P.ANALYTICS_VIEW],
    UserRole.SPPG_KEPALA.value: [
        P.READ, P.WRITE, P.DELETE, P.APPROVE,
        P.MENU_MANAGE, P.SCHOOL_MANAGE, P.PROCUREMENT_MANAGE, P.PRODUCTION_MANAGE,
        P.DISTRIBUTION_MANAGE, P.FINANCIAL_MANAGE, P.HR_MANAGE,
    ],
    UserRole.SPPG_ADMIN.value: [
        P.READ, P.WRITE, P.MENU_MANAGE, P.SCHOOL_MANAGE,
        P.PROCUREMENT_MANAGE, P.PRODUCTION_MANAGE, P.USER_MANAGE,
    ],
    UserRole.SPPG_AHLI_GIZI.value: [
        P.READ, P.WRITE, P.MENU_MANAGE, P.SCHOOL_MANAGE, P.QUALITY_MANAGE, P.PRODUCTION_MANAGE,
    ],
    UserRole.SPPG_AKUNTAN.value: [P.READ, P.WRITE, P.FINANCIAL_MANAGE, P.PROCUREMENT_MANAGE],
    UserRole.SPPG_PRODUKSI_MANAGER.value: [P.READ, P.WRITE, P.PRODUCTION_MANAGE, P.QUALITY_MANAGE],
    UserRole.SPPG_DISTRIBUSI_MANAGER.value: [P.READ, P.WRITE, P.DISTRIBUTION_MANAGE],
    UserRole.SPPG_HRD_MANAGER.value: [P.READ, P.WRITE, P.HR_MANAGE],
    UserRole.SPPG_STAFF_DAPUR.value: [P.READ, P.PRODUCTION_MANAGE],
    UserRole.SPPG_STAFF_DISTRIBUSI.value: [P.READ, P.DISTRIBUTION_MANAGE],
    UserRole.SPPG_STAFF_ADMIN.value: [P.READ, P.WRITE],
    UserRole.SPPG_STAFF_QC.value: [P.READ, P.QUALITY_MANAGE, P.PRODUCTION_MANAGE],
    UserRole.SPPG_VIEWER.value: [P.READ],
    UserRole.DEMO_USER.value: [P.READ],
}


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None
    missing_permissions: List[str] = field(default_factory=list)


def get_role_permissions(role: str) -> List[str]:
    """Permission names granted to a role; unknown roles get none."""
    key = role.value if isinstance(role, UserRole) else role
    return [p.value for p in ROLE_PERMISSIONS.get(key, [])]


def has_permission(role: str, permission: str) -> bool:
    """ALL grants every permission."""
    granted = get_role_permissions(role)
    return P.ALL.value in granted or P(permission).value in granted


def check_permission(user_context: UserContext, required_permission: str) -> AuthorizationResult:
    """Check one permission for a user."""
    if has_permission(user_context.role, required_permission):
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Missing required permission: {P(required_permission).value}",
        missing_permissions=[P(required_permission).value]
    )


def can_manage_menu(role: str) -> bool:
    return has_permission(role, P.MENU_MANAGE)


def can_manage_schools(role: str) -> bool:
    return has_permission(role, P.SCHOOL_MANAGE)


def can_manage_distribution(role: str) -> bool:
    return has_permission(role, P.DISTRIBUTION_MANAGE)


def can_approve(role: str) -> bool:
    return has_permission(role, P.APPROVE)


def check_tenant_access(user_context: UserContext, sppg_id: str) -> AuthorizationResult:
    """
    Check that a user may act within an SPPG.

    Platform users may act on any SPPG; SPPG users only on their own.
    """
    if user_context.is_platform_user():
        return AuthorizationResult(allowed=True)

    if not user_context.sppg_id:
        return AuthorizationResult(allowed=False, reason="SPPG access required")

    if user_context.sppg_id != sppg_id:
        return AuthorizationResult(allowed=False, reason="Access denied to other SPPG data")

    return AuthorizationResult(allowed=True)


def check_sppg_access(sppg: Optional[Sppg], now: Optional[datetime] = None) -> AuthorizationResult:
    """An SPPG is usable when it exists, is ACTIVE and, for demos, has not expired."""
    if sppg is None:
        return AuthorizationResult(allowed=False, reason="SPPG not found")

    if sppg.status != SppgStatus.ACTIVE:
        return AuthorizationResult(allowed=False, reason=f"SPPG is {sppg.status}")

    if sppg.is_demo_account and sppg.demo_expires_at:
        if ensure_utc(sppg.demo_expires_at) < (now or utcnow()):
            return AuthorizationResult(allowed=False, reason="Demo account has expired")

    return AuthorizationResult(allowed=True)


def is_feature_allowed(sppg: Sppg, feature: str) -> bool:
    """Demo accounts only get their listed features; production SPPGs get all."""
    if not sppg.is_demo_account:
        return True
    return feature in sppg.demo_allowed_features


def create_authorization_error_details(result: AuthorizationResult, resource: str, action: str) -> Dict:
    """Problem-details extension fields for a denied check."""
    details = {
        "resource": resource,
        "action": action,
        "reason": result.reason,
    }
    if result.missing_permissions:
        details["missing_permissions"] = result.missing_permissions
    return details
