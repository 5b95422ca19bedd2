# SPDX-License-Identifier: Apache-2.0

"""
Demo request onboarding workflow and funnel analytics.

This module contains pure functions for the demo request lifecycle
(review, approval, rejection, assignment, conversion to a production SPPG)
and for aggregating conversion metrics over a set of requests.
"""

from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from models.base import ensure_utc, utcnow
from models.entities import DemoRequest, Sppg, UserContext
from models.enums import AttendanceStatus, DemoAction, DemoRequestStatus, UserRole
from domain.common import ValidationResult, WorkflowResult, format_rate

ALLOWED_ACTIONS: Dict[str, List[str]] = {
    "SUBMITTED": ["view", "edit", "approve", "reject", "assign"],
    "UNDER_REVIEW": ["view", "edit", "approve", "reject", "assign"],
    "APPROVED": ["view", "edit", "assign", "convert"],
    "DEMO_ACTIVE": ["view", "edit", "convert"],
    "REJECTED": ["view", "edit", "delete"],
    "EXPIRED": ["view", "edit", "delete"],
    "CANCELLED": ["view", "edit", "delete"],
    "CONVERTED": ["view"],
}

DEFAULT_ANALYTICS_WINDOW = timedelta(days=90)
MIN_REJECTION_REASON_LENGTH = 10


def get_allowed_actions(demo_request: DemoRequest) -> List[str]:
    return list(ALLOWED_ACTIONS.get(DemoRequestStatus(demo_request.status).value, []))


def can_perform(demo_request: DemoRequest, action: DemoAction) -> bool:
    return DemoAction(action).value in get_allowed_actions(demo_request)


def _not_allowed(demo_request: DemoRequest, action: str) -> WorkflowResult:
    return WorkflowResult(
        success=False,
        error_message=f"Cannot {action} demo request with status {demo_request.status}",
        details={"allowed_actions": get_allowed_actions(demo_request)}
    )


def approve_demo_request(
    demo_request: DemoRequest,
    user_context: UserContext,
    scheduled_date: Optional[datetime] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """Approve a submitted or reviewed request."""
    if not can_perform(demo_request, DemoAction.APPROVE):
        return _not_allowed(demo_request, "approve")

    now = now or utcnow()
    updated = demo_request.model_copy(deep=True)
    updated.status = DemoRequestStatus.APPROVED
    updated.approved_at = now
    updated.approved_by = user_context.user_id
    updated.reviewed_at = updated.reviewed_at or now
    updated.reviewed_by = updated.reviewed_by or user_context.user_id
    if scheduled_date:
        updated.scheduled_date = scheduled_date
    if notes:
        updated.append_note(notes)
    updated.updated_at = now

    return WorkflowResult(success=True, entity=updated)


def reject_demo_request(
    demo_request: DemoRequest,
    reason: str,
    user_context: UserContext,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """Reject a submitted or reviewed request with a reason."""
    if not can_perform(demo_request, DemoAction.REJECT):
        return _not_allowed(demo_request, "reject")

    if not reason or len(reason.strip()) < MIN_REJECTION_REASON_LENGTH:
        return WorkflowResult(
            success=False,
            error_message="Rejection reason is required",
            validation_errors=[f"Rejection reason must be at least {MIN_REJECTION_REASON_LENGTH} characters"]
        )

    now = now or utcnow()
    updated = demo_request.model_copy(deep=True)
    updated.status = DemoRequestStatus.REJECTED
    updated.rejected_at = now
    updated.rejection_reason = reason.strip()
    updated.reviewed_at = updated.reviewed_at or now
    updated.reviewed_by = updated.reviewed_by or user_context.user_id
    updated.updated_at = now

    return WorkflowResult(success=True, entity=updated)


def assign_demo_request(
    demo_request: DemoRequest,
    assignee_id: str,
    user_context: UserContext,
    notes: Optional[str] = None,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """
    Assign a request to a platform user.

    A freshly submitted request moves to UNDER_REVIEW when assigned.
    """
    if not can_perform(demo_request, DemoAction.ASSIGN):
        return _not_allowed(demo_request, "assign")

    now = now or utcnow()
    updated = demo_request.model_copy(deep=True)
    updated.assigned_to = assignee_id
    updated.assigned_at = now
    if updated.status == DemoRequestStatus.SUBMITTED:
        updated.status = DemoRequestStatus.UNDER_REVIEW
    if notes:
        updated.append_note(notes)
    updated.updated_at = now

    return WorkflowResult(success=True, entity=updated)


def record_attendance(
    demo_request: DemoRequest,
    attendance_status: AttendanceStatus,
    actual_date: Optional[datetime] = None,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """Record the outcome of the demo session; attending activates the demo."""
    if demo_request.status not in (DemoRequestStatus.APPROVED, DemoRequestStatus.DEMO_ACTIVE):
        return _not_allowed(demo_request, "record attendance for")

    now = now or utcnow()
    updated = demo_request.model_copy(deep=True)
    updated.attendance_status = attendance_status
    if AttendanceStatus(attendance_status) == AttendanceStatus.ATTENDED:
        updated.actual_date = actual_date or now
        updated.status = DemoRequestStatus.DEMO_ACTIVE
    updated.updated_at = now

    return WorkflowResult(success=True, entity=updated)


def validate_conversion(
    demo_request: DemoRequest,
    target_sppg: Optional[Sppg],
    user_context: UserContext
) -> ValidationResult:
    """
    Check whether a demo request can be converted into a production SPPG.

    Only platform superadmins convert. The request must be APPROVED or
    DEMO_ACTIVE, not already converted, and its attendance (when recorded)
    must be ATTENDED. The target SPPG must exist and not be a demo account.
    """
    errors = []

    if user_context.role != UserRole.PLATFORM_SUPERADMIN:
        errors.append("Only platform superadmins can convert demo requests")

    if demo_request.is_converted:
        errors.append("Demo request has already been converted")
    elif not can_perform(demo_request, DemoAction.CONVERT):
        errors.append(f"Cannot convert demo request with status {demo_request.status}")

    if demo_request.attendance_status and demo_request.attendance_status != AttendanceStatus.ATTENDED:
        errors.append("Only demo requests that attended the demo can be converted")

    if target_sppg is None:
        errors.append("Target SPPG not found")
    elif target_sppg.is_demo_account:
        errors.append("Target SPPG is a demo account")

    return ValidationResult.from_errors(errors)


def convert_demo_request(
    demo_request: DemoRequest,
    target_sppg: Optional[Sppg],
    user_context: UserContext,
    notes: Optional[str] = None,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """Mark a demo request as converted to the given production SPPG."""
    validation = validate_conversion(demo_request, target_sppg, user_context)
    if not validation.is_valid:
        return WorkflowResult(
            success=False,
            error_message="Demo request cannot be converted",
            validation_errors=validation.errors
        )

    now = now or utcnow()
    updated = demo_request.model_copy(deep=True)
    updated.status = DemoRequestStatus.CONVERTED
    updated.is_converted = True
    updated.converted_at = now
    updated.converted_sppg_id = target_sppg.id
    updated.conversion_probability = 100

    note = f"Converted to SPPG {target_sppg.name} ({target_sppg.code}) on {now.date().isoformat()}"
    updated.append_note(f"{note}. {notes}" if notes else note)
    updated.updated_at = now

    return WorkflowResult(success=True, entity=updated)


def delete_demo_request(
    demo_request: DemoRequest,
    user_context: UserContext,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """
    Soft-delete a request by rejecting it with a deletion note.

    Only platform superadmins may delete.
    """
    if user_context.role != UserRole.PLATFORM_SUPERADMIN:
        return WorkflowResult(success=False, error_message="Only platform superadmins can delete demo requests")
    if not can_perform(demo_request, DemoAction.DELETE):
        return _not_allowed(demo_request, "delete")

    now = now or utcnow()
    updated = demo_request.model_copy(deep=True)
    updated.status = DemoRequestStatus.REJECTED
    updated.append_note(f"Deleted by {user_context.user_id} on {now.isoformat()}")
    updated.updated_at = now

    return WorkflowResult(success=True, entity=updated)


def resolve_analytics_window(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    now: Optional[datetime] = None
) -> Dict[str, datetime]:
    """Analytics window, defaulting to the last 90 days."""
    end = ensure_utc(end_date) or now or utcnow()
    start = ensure_utc(start_date) or end - DEFAULT_ANALYTICS_WINDOW
    return {"start_date": start, "end_date": end}


def _hours_between(start: datetime, end: datetime) -> float:
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600


def calculate_demo_analytics(requests: List[DemoRequest]) -> Dict[str, Any]:
    """
    Funnel, conversion and timing metrics over a set of demo requests.

    Rates are returned as strings with two decimals ("12.50%"), or "0%"
    when their denominator is zero. Durations use one decimal.
    """
    total = len(requests)
    status_counts = Counter(DemoRequestStatus(r.status).value for r in requests)

    funnel = {
        "submitted": status_counts["SUBMITTED"],
        "under_review": status_counts["UNDER_REVIEW"],
        "approved": status_counts["APPROVED"],
        "demo_active": status_counts["DEMO_ACTIVE"],
        "converted": status_counts["CONVERTED"],
        "rejected": status_counts["REJECTED"],
        "expired": status_counts["EXPIRED"],
        "cancelled": status_counts["CANCELLED"],
    }

    attendance = Counter(
        AttendanceStatus(r.attendance_status).value for r in requests if r.attendance_status
    )
    attended = attendance["ATTENDED"]
    no_show = attendance["NO_SHOW"]
    converted = sum(1 for r in requests if r.is_converted)

    conversion_metrics = {
        "total_requests": total,
        "attended_demos": attended,
        "converted_to_sppg": converted,
        "approval_rate": format_rate(funnel["approved"] + funnel["demo_active"], total),
        "attendance_rate": format_rate(attended, funnel["demo_active"]),
        "conversion_rate": format_rate(converted, attended),
        "overall_conversion_rate": format_rate(converted, total),
        "no_show_rate": format_rate(no_show, funnel["demo_active"]),
    }

    to_approval = [_hours_between(r.created_at, r.approved_at) for r in requests if r.approved_at]
    to_demo = [
        _hours_between(r.approved_at, r.actual_date) / 24
        for r in requests if r.approved_at and r.actual_date
    ]
    to_conversion = [
        _hours_between(r.actual_date, r.converted_at) / 24
        for r in requests if r.actual_date and r.converted_at
    ]

    avg_approval = sum(to_approval) / len(to_approval) if to_approval else 0
    avg_demo = sum(to_demo) / len(to_demo) if to_demo else 0
    avg_conversion = sum(to_conversion) / len(to_conversion) if to_conversion else 0

    time_metrics = {
        "avg_time_to_approval": f"{avg_approval:.1f} hours",
        "avg_time_to_demo": f"{avg_demo:.1f} days",
        "avg_time_to_conversion": f"{avg_conversion:.1f} days",
        "avg_total_cycle_time": f"{avg_approval / 24 + avg_demo + avg_conversion:.1f} days",
    }

    by_type: Dict[str, Dict[str, int]] = defaultdict(lambda: {"requests": 0, "converted": 0})
    by_month: Dict[str, Dict[str, int]] = defaultdict(lambda: {"total": 0, "approved": 0, "converted": 0})
    for r in requests:
        org = by_type[str(r.organization_type)]
        org["requests"] += 1
        org["converted"] += int(r.is_converted)

        month = by_month[ensure_utc(r.created_at).strftime("%Y-%m")]
        month["total"] += 1
        month["approved"] += int(r.status in (DemoRequestStatus.APPROVED, DemoRequestStatus.DEMO_ACTIVE))
        month["converted"] += int(r.is_converted)

    org_type_breakdown = [
        {
            "organization_type": org_type,
            "requests": counts["requests"],
            "converted": counts["converted"],
            "conversion_rate": format_rate(counts["converted"], counts["requests"]),
        }
        for org_type, counts in sorted(by_type.items())
    ]

    monthly_trends = [
        {"month": month, **counts, "conversion_rate": format_rate(counts["converted"], counts["total"])}
        for month, counts in sorted(by_month.items())
    ]

    return {
        "conversion_funnel": funnel,
        "conversion_metrics": conversion_metrics,
        "time_metrics": time_metrics,
        "org_type_breakdown": org_type_breakdown,
        "monthly_trends": monthly_trends,
        "attendance_breakdown": {
            "attended": attended,
            "no_show": no_show,
            "rescheduled": attendance["RESCHEDULED"],
        },
    }
