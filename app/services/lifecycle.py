"""Appointment lifecycle: legal transitions and who may trigger them."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID

from app.core.exceptions import ForbiddenException, InvalidTransitionException
from app.schemas.appointments import AppointmentStatus, ApprovalStatus
from app.schemas.users import Principal, UserRole


class Transition(str, Enum):
    """Operations that create or mutate an appointment."""

    CREATE = "create"
    COMPLETE = "complete"
    CANCEL = "cancel"
    RESCHEDULE = "reschedule"
    UPDATE_DETAILS = "update_details"
    ASSIGN_DOCTOR = "assign_doctor"
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class TransitionRule:
    """Roles allowed to trigger a transition and the states it may start from."""

    allowed_roles: frozenset[UserRole]
    from_statuses: frozenset[AppointmentStatus] = field(
        default_factory=lambda: frozenset({AppointmentStatus.SCHEDULED})
    )


_ALL_ROLES = frozenset(UserRole)
_STAFF = frozenset({UserRole.DOCTOR, UserRole.HOSPITAL_ADMIN})
_HOSPITAL = frozenset({UserRole.HOSPITAL_ADMIN})

TRANSITIONS: dict[Transition, TransitionRule] = {
    Transition.CREATE: TransitionRule(_ALL_ROLES, frozenset()),
    Transition.COMPLETE: TransitionRule(frozenset({UserRole.DOCTOR})),
    Transition.CANCEL: TransitionRule(_ALL_ROLES),
    Transition.RESCHEDULE: TransitionRule(_STAFF),
    Transition.UPDATE_DETAILS: TransitionRule(_STAFF),
    Transition.ASSIGN_DOCTOR: TransitionRule(_HOSPITAL),
    Transition.APPROVE: TransitionRule(_HOSPITAL),
    Transition.REJECT: TransitionRule(_HOSPITAL),
}

# Column an actor must match for a row to be visible or mutable by them.
OWNER_COLUMNS: dict[UserRole, str] = {
    UserRole.PATIENT: "patient_id",
    UserRole.DOCTOR: "doctor_id",
    UserRole.HOSPITAL_ADMIN: "hospital_id",
}

TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.RESCHEDULED}
)


def ownership_scope(principal: Principal) -> dict[str, UUID]:
    """Equality filter restricting storage access to the principal's own rows."""
    return {OWNER_COLUMNS[principal.role]: principal.id}


def is_terminal(status: AppointmentStatus | str) -> bool:
    return AppointmentStatus(status) in TERMINAL_STATUSES


def approval_is_settled(row: dict[str, Any]) -> bool:
    """True once the hospital has approved or rejected the appointment."""
    return row.get("approval_status") in (
        ApprovalStatus.APPROVED.value,
        ApprovalStatus.REJECTED.value,
    )


def ensure_actor_allowed(transition: Transition, role: UserRole) -> None:
    """
    Check that ``role`` may trigger ``transition`` at all.

    Raises:
        ForbiddenException: If the role is not allowed
    """
    if role not in TRANSITIONS[transition].allowed_roles:
        raise ForbiddenException(
            f"Perfil '{role.value}' não pode executar '{transition.value}' em consultas"
        )


def ensure_transition(row: dict[str, Any], transition: Transition, role: UserRole) -> None:
    """
    Validate a transition against the appointment's current state.

    Args:
        row: Current appointment row
        transition: Requested transition
        role: Role of the acting principal

    Raises:
        ForbiddenException: If the role may not trigger the transition
        InvalidTransitionException: If the current state does not allow it
    """
    ensure_actor_allowed(transition, role)

    status = AppointmentStatus(row["status"])
    details = {
        "appointment_id": str(row["id"]),
        "status": status.value,
        "approval_status": row.get("approval_status"),
        "transition": transition.value,
    }

    if status == AppointmentStatus.COMPLETED:
        raise InvalidTransitionException(
            "Consulta já concluída não pode ser alterada",
            details=details,
        )

    if status not in TRANSITIONS[transition].from_statuses:
        raise InvalidTransitionException(
            f"Não é possível executar '{transition.value}' em consulta com status '{status.value}'",
            details=details,
        )

    approval = row.get("approval_status")

    if transition == Transition.COMPLETE:
        if row.get("doctor_id") is None:
            raise InvalidTransitionException(
                "Consulta sem médico atribuído não pode ser concluída",
                details=details,
            )
        if approval in (ApprovalStatus.PENDING.value, ApprovalStatus.REJECTED.value):
            raise InvalidTransitionException(
                "Consulta aguardando aprovação do hospital não pode ser concluída",
                details=details,
            )

    if transition in (Transition.APPROVE, Transition.REJECT):
        if approval is None:
            raise InvalidTransitionException(
                "Consulta não está sujeita a aprovação",
                details=details,
            )
        if approval != ApprovalStatus.PENDING.value:
            raise InvalidTransitionException(
                "Aprovação já foi decidida",
                details=details,
            )
