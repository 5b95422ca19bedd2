# SPDX-License-Identifier: Apache-2.0

"""
Menu plan metrics and review lifecycle.

A plan moves DRAFT -> PENDING_REVIEW -> APPROVED -> ACTIVE. Rejection during
review sends it back to DRAFT. Publishing is blocked while another ACTIVE
plan of the same programme overlaps its date range.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from models.base import utcnow
from models.entities import MenuAssignment, MenuPlan, UserContext
from models.enums import MenuPlanStatus, UserRole
from domain.common import WorkflowResult

PLAN_REVIEWER_ROLES = (UserRole.SPPG_KEPALA, UserRole.SPPG_ADMIN)

PLAN_TRANSITIONS = {
    MenuPlanStatus.DRAFT: [MenuPlanStatus.PENDING_REVIEW],
    MenuPlanStatus.PENDING_REVIEW: [MenuPlanStatus.APPROVED, MenuPlanStatus.DRAFT],
    MenuPlanStatus.APPROVED: [MenuPlanStatus.ACTIVE],
}


def calculate_total_days(start_date: date, end_date: date) -> int:
    """Inclusive number of calendar days between two dates, in either order."""
    return abs((end_date - start_date).days) + 1


def calculate_plan_metrics(plan: MenuPlan, assignments: Optional[List[MenuAssignment]] = None) -> Dict[str, Any]:
    """
    Aggregate assignment totals and date coverage of a menu plan.

    Average cost per day is taken over days that have at least one
    assignment, not over the whole plan range.
    """
    assignments = plan.assignments if assignments is None else assignments
    total_days = calculate_total_days(plan.start_date, plan.end_date)

    total_portions = sum(a.planned_portions or 0 for a in assignments)
    total_cost = sum(a.estimated_cost or 0 for a in assignments)
    days_with_assignments = len({a.assigned_date for a in assignments})

    return {
        "total_days": total_days,
        "total_menus": len(assignments),
        "total_planned_portions": total_portions,
        "total_estimated_cost": round(total_cost, 2),
        "average_cost_per_portion": round(total_cost / total_portions, 2) if total_portions > 0 else 0,
        "average_cost_per_day": round(total_cost / days_with_assignments, 2) if days_with_assignments > 0 else 0,
        "days_with_assignments": days_with_assignments,
        "coverage_percentage": round(days_with_assignments / total_days * 100, 2) if total_days > 0 else 0,
    }


def can_review_plans(user_context: UserContext) -> bool:
    return user_context.role in [role.value for role in PLAN_REVIEWER_ROLES]


def get_allowed_transitions(status: str) -> List[str]:
    return [s.value for s in PLAN_TRANSITIONS.get(MenuPlanStatus(status), [])]


def _status_refused(plan: MenuPlan, message: str) -> WorkflowResult:
    return WorkflowResult(
        success=False,
        error_message=message,
        details={
            "current_status": plan.status,
            "allowed_transitions": get_allowed_transitions(plan.status)
        }
    )


def _reviewer_required(action: str) -> WorkflowResult:
    return WorkflowResult(
        success=False,
        error_message=f"Insufficient permissions. Only SPPG Kepala or Admin can {action} plans."
    )


def submit_plan(plan: MenuPlan, user_context: UserContext, now: Optional[datetime] = None) -> WorkflowResult:
    """Send a non-empty DRAFT plan for review."""
    if plan.status != MenuPlanStatus.DRAFT:
        return _status_refused(
            plan, f"Cannot submit plan with status {plan.status}. "
                  "Only DRAFT plans can be submitted."
        )
    if not plan.assignments:
        return WorkflowResult(
            success=False,
            error_message="Cannot submit empty plan. Please add at least one menu assignment."
        )

    updated = plan.model_copy(deep=True)
    updated.status = MenuPlanStatus.PENDING_REVIEW
    updated.submitted_at = now or utcnow()
    updated.submitted_by = user_context.user_id
    updated.update_timestamp(user_context.user_id)
    return WorkflowResult(success=True, entity=updated)


def approve_plan(plan: MenuPlan, user_context: UserContext, notes: Optional[str] = None,
                 now: Optional[datetime] = None) -> WorkflowResult:
    """Approve a plan that is pending review."""
    if not can_review_plans(user_context):
        return _reviewer_required("approve")
    if plan.status != MenuPlanStatus.PENDING_REVIEW:
        return _status_refused(
            plan, f"Cannot approve plan with status {plan.status}. "
                  "Only PENDING_REVIEW plans can be approved."
        )

    updated = plan.model_copy(deep=True)
    updated.status = MenuPlanStatus.APPROVED
    updated.approved_at = now or utcnow()
    updated.approved_by = user_context.user_id
    if notes:
        updated.description = f"{updated.description or ''}\n\nApproval Notes: {notes}".strip()
    updated.update_timestamp(user_context.user_id)
    return WorkflowResult(success=True, entity=updated)


def reject_plan(plan: MenuPlan, user_context: UserContext, reason: str) -> WorkflowResult:
    """Return a plan under review to DRAFT with a reason."""
    if not can_review_plans(user_context):
        return _reviewer_required("reject")
    if plan.status != MenuPlanStatus.PENDING_REVIEW:
        return _status_refused(
            plan, f"Cannot reject plan with status {plan.status}. "
                  "Only PENDING_REVIEW plans can be rejected."
        )

    updated = plan.model_copy(deep=True)
    updated.status = MenuPlanStatus.DRAFT
    updated.rejection_reason = reason
    updated.update_timestamp(user_context.user_id)
    return WorkflowResult(success=True, entity=updated)


def plans_overlap(plan: MenuPlan, other: MenuPlan) -> bool:
    return other.start_date <= plan.end_date and other.end_date >= plan.start_date


def publish_plan(plan: MenuPlan, active_plans: List[MenuPlan], user_context: UserContext,
                 notes: Optional[str] = None, now: Optional[datetime] = None) -> WorkflowResult:
    """
    Publish an APPROVED plan, making it ACTIVE.

    Args:
        plan: Plan to publish
        active_plans: ACTIVE plans of the same programme
        user_context: Publishing user
        notes: Optional publish notes appended to the description
    """
    if not can_review_plans(user_context):
        return _reviewer_required("publish")
    if plan.status != MenuPlanStatus.APPROVED:
        return _status_refused(
            plan, f"Cannot publish plan with status {plan.status}. "
                  "Only APPROVED plans can be published."
        )
    if not plan.assignments:
        return WorkflowResult(success=False, error_message="Cannot publish plan without menu assignments")

    overlapping = [
        other for other in active_plans
        if other.id != plan.id and other.program_id == plan.program_id and plans_overlap(plan, other)
    ]
    if overlapping:
        return WorkflowResult(
            success=False,
            error_message="Cannot publish: There are overlapping active plans for this program",
            details={
                "overlapping_plans": [
                    {
                        "id": other.id,
                        "name": other.name,
                        "start_date": other.start_date.isoformat(),
                        "end_date": other.end_date.isoformat(),
                    }
                    for other in overlapping
                ]
            }
        )

    updated = plan.model_copy(deep=True)
    updated.status = MenuPlanStatus.ACTIVE
    updated.published_at = now or utcnow()
    updated.published_by = user_context.user_id
    if notes:
        updated.description = f"{updated.description or ''}\n\nPublish Notes: {notes}".strip()
    updated.update_timestamp(user_context.user_id)
    return WorkflowResult(success=True, entity=updated)
