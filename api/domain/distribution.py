# SPDX-License-Identifier: Apache-2.0

"""
Distribution schedule workflow.

A schedule moves through a small state machine. Each target status carries
business preconditions (vehicles assigned, deliveries finished, a reason for
cancellation) that are checked on top of the transition table.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from models.base import ensure_utc, utcnow
from models.entities import DistributionSchedule, UserContext, VehicleAssignment
from models.enums import DeliveryStatus, ScheduleStatus
from models.requests import AssignVehicleRequest
from domain.common import ValidationResult, WorkflowResult

STATUS_TRANSITIONS: Dict[str, List[str]] = {
    "PLANNED": ["PREPARED", "CANCELLED"],
    "PREPARED": ["IN_PROGRESS", "CANCELLED", "DELAYED"],
    "IN_PROGRESS": ["COMPLETED", "DELAYED"],
    "COMPLETED": [],
    "CANCELLED": [],
    "DELAYED": ["PREPARED", "CANCELLED"],
}

VEHICLE_ASSIGNABLE_STATUSES = (ScheduleStatus.PLANNED, ScheduleStatus.PREPARED, ScheduleStatus.DELAYED)

MAX_SCHEDULE_HORIZON = timedelta(days=365)


@dataclass
class StatusAction:
    """A status change offered to the user for the current schedule state."""
    target_status: str
    label: str
    variant: str = "default"
    requires_confirmation: bool = False
    requires_reason: bool = False
    validation_message: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "target_status": self.target_status,
            "label": self.label,
            "variant": self.variant,
            "requires_confirmation": self.requires_confirmation,
            "requires_reason": self.requires_reason,
            "validation_message": self.validation_message,
            "enabled": self.validation_message is None,
        }


def get_allowed_transitions(status: str) -> List[str]:
    return list(STATUS_TRANSITIONS.get(ScheduleStatus(status).value, []))


def validate_status_transition(
    schedule: DistributionSchedule,
    new_status: str,
    reason: Optional[str] = None,
    today: Optional[date] = None
) -> ValidationResult:
    """
    Check a status change against the transition table and business rules.

    Args:
        schedule: Schedule with vehicle assignments and deliveries loaded
        new_status: Requested status
        reason: Reason supplied with the request
        today: Current date, defaults to today in UTC

    Returns:
        ValidationResult; an invalid transition yields a single error
        naming the current and requested status
    """
    today = today or utcnow().date()
    current = schedule.status
    new_status = ScheduleStatus(new_status).value

    if new_status not in get_allowed_transitions(current):
        return ValidationResult(
            is_valid=False,
            errors=[f"Tidak dapat mengubah status dari {current} ke {new_status}"]
        )

    errors = []
    has_vehicles = len(schedule.vehicle_assignments) > 0

    if new_status == ScheduleStatus.PREPARED and not has_vehicles:
        errors.append("Minimal harus ada 1 kendaraan yang ditugaskan")

    if new_status == ScheduleStatus.IN_PROGRESS:
        if not has_vehicles:
            errors.append("Tidak ada kendaraan yang ditugaskan")
        if schedule.distribution_date > today:
            errors.append("Distribusi belum dapat dimulai (tanggal belum tiba)")

    if new_status == ScheduleStatus.COMPLETED:
        if not schedule.deliveries:
            errors.append("Tidak ada delivery yang dibuat")
        pending = [d for d in schedule.deliveries if d.status != DeliveryStatus.DELIVERED]
        if pending:
            errors.append(f"Masih ada {len(pending)} delivery yang belum selesai")

    if new_status == ScheduleStatus.CANCELLED and not reason:
        errors.append("Alasan pembatalan harus diisi")

    return ValidationResult.from_errors(errors)


def change_schedule_status(
    schedule: DistributionSchedule,
    new_status: str,
    user_context: UserContext,
    reason: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """
    Apply a validated status change to a copy of the schedule.

    started_at and completed_at are stamped only the first time a schedule
    enters IN_PROGRESS or COMPLETED.
    """
    now = now or utcnow()
    new_status = ScheduleStatus(new_status).value
    validation = validate_status_transition(schedule, new_status, reason, now.date())

    if not validation.is_valid:
        allowed = get_allowed_transitions(schedule.status)
        if new_status not in allowed:
            return WorkflowResult(
                success=False,
                error_message="Invalid status transition",
                validation_errors=validation.errors,
                details={"allowed_transitions": allowed}
            )
        return WorkflowResult(
            success=False,
            error_message="Status validation failed",
            validation_errors=validation.errors
        )

    updated = schedule.model_copy(deep=True)
    updated.status = new_status

    if new_status == ScheduleStatus.IN_PROGRESS and updated.started_at is None:
        updated.started_at = now
    if new_status == ScheduleStatus.COMPLETED and updated.completed_at is None:
        updated.completed_at = now
    if new_status == ScheduleStatus.CANCELLED:
        updated.cancellation_reason = reason
    if notes:
        updated.notes = notes

    updated.update_timestamp(user_context.user_id)

    return WorkflowResult(success=True, entity=updated)


def describe_status_change(old_status: str, new_status: str, reason: Optional[str] = None) -> str:
    """Audit description of a status change."""
    description = f"Changed schedule status from {old_status} to {new_status}"
    return f"{description}: {reason}" if reason else description


def get_available_actions(schedule: DistributionSchedule) -> List[StatusAction]:
    """
    Status actions to offer for the current schedule state.

    A DELAYED schedule can be prepared again or cancelled; terminal
    schedules expose no actions.
    """
    status = schedule.status
    has_vehicles = len(schedule.vehicle_assignments) > 0

    if status == ScheduleStatus.PLANNED:
        return [
            StatusAction(ScheduleStatus.PREPARED.value, "Siapkan Distribusi"),
            StatusAction(ScheduleStatus.CANCELLED.value, "Batalkan", variant="destructive",
                         requires_confirmation=True, requires_reason=True),
        ]

    if status == ScheduleStatus.PREPARED:
        return [
            StatusAction(
                ScheduleStatus.IN_PROGRESS.value, "Mulai Distribusi",
                requires_confirmation=True,
                validation_message=None if has_vehicles else "Tugaskan kendaraan terlebih dahulu"
            ),
            StatusAction(ScheduleStatus.CANCELLED.value, "Batalkan", variant="destructive",
                         requires_confirmation=True, requires_reason=True),
        ]

    if status == ScheduleStatus.IN_PROGRESS:
        return [
            StatusAction(ScheduleStatus.COMPLETED.value, "Selesaikan Distribusi", requires_confirmation=True),
        ]

    if status == ScheduleStatus.DELAYED:
        return [
            StatusAction(
                ScheduleStatus.PREPARED.value, "Siapkan Ulang",
                validation_message=None if has_vehicles else "Tugaskan kendaraan terlebih dahulu"
            ),
            StatusAction(ScheduleStatus.CANCELLED.value, "Batalkan", variant="destructive",
                         requires_confirmation=True, requires_reason=True),
        ]

    return []


def validate_schedule_dates(distribution_date: date, today: Optional[date] = None) -> ValidationResult:
    """A schedule must be dated between today and one year ahead."""
    today = today or utcnow().date()
    errors = []

    if distribution_date < today:
        errors.append("Tanggal distribusi tidak boleh di masa lalu")
    if distribution_date > today + MAX_SCHEDULE_HORIZON:
        errors.append("Tanggal distribusi maksimal 1 tahun ke depan")

    return ValidationResult.from_errors(errors)


def validate_vehicle_assignment(
    schedule: DistributionSchedule,
    assignment: AssignVehicleRequest,
    conflicting_schedules: Optional[List[DistributionSchedule]] = None,
    now: Optional[datetime] = None
) -> ValidationResult:
    """
    Check that a vehicle can be assigned to a schedule.

    Args:
        schedule: Target schedule
        assignment: Requested assignment (times already ordered by the model)
        conflicting_schedules: Other open schedules on the same date using the vehicle
        now: Current time
    """
    now = now or utcnow()
    errors = []

    if schedule.status not in [s.value for s in VEHICLE_ASSIGNABLE_STATUSES]:
        errors.append(
            f"Kendaraan hanya dapat ditugaskan saat status "
            f"{', '.join(s.value for s in VEHICLE_ASSIGNABLE_STATUSES)}"
        )

    if ensure_utc(assignment.estimated_departure) < now:
        errors.append("Waktu keberangkatan tidak boleh di masa lalu")

    if any(v.vehicle_id == assignment.vehicle_id for v in schedule.vehicle_assignments):
        errors.append("Kendaraan sudah ditugaskan ke jadwal ini")

    for other in conflicting_schedules or []:
        errors.append(f"Kendaraan sudah digunakan pada jadwal {other.id} di tanggal yang sama")

    return ValidationResult.from_errors(errors)


def assign_vehicle(
    schedule: DistributionSchedule,
    assignment: AssignVehicleRequest,
    user_context: UserContext,
    conflicting_schedules: Optional[List[DistributionSchedule]] = None,
    now: Optional[datetime] = None
) -> WorkflowResult:
    """Add a vehicle assignment to a copy of the schedule."""
    validation = validate_vehicle_assignment(schedule, assignment, conflicting_schedules, now)
    if not validation.is_valid:
        return WorkflowResult(
            success=False,
            error_message="Cannot assign vehicle",
            validation_errors=validation.errors
        )

    updated = schedule.model_copy(deep=True)
    updated.vehicle_assignments = updated.vehicle_assignments + [
        VehicleAssignment(
            vehicle_id=assignment.vehicle_id,
            driver_id=assignment.driver_id,
            estimated_departure=assignment.estimated_departure,
            estimated_arrival=assignment.estimated_arrival,
            notes=assignment.notes,
            assigned_by=user_context.user_id,
        )
    ]
    updated.update_timestamp(user_context.user_id)

    return WorkflowResult(success=True, entity=updated)
