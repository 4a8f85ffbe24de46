"""Decide who hears about an appointment transition, and what they read.

Planning is pure: nothing here touches the database or a delivery channel.
``NotificationService.dispatch`` persists and delivers the plan.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from app.schemas.appointments import ApprovalStatus
from app.schemas.users import UserRole
from app.services.lifecycle import OWNER_COLUMNS, Transition


@dataclass(frozen=True)
class PlannedNotification:
    """One in-app notification to be created."""

    user_id: UUID
    type: str
    content: str
    related_id: UUID | None = None


def _specialty(appointment: dict[str, Any]) -> str:
    return appointment.get("specialty") or "consulta"


def _date(value: datetime) -> str:
    return value.strftime("%d/%m/%Y")


def _time(value: datetime) -> str:
    return value.strftime("%H:%M")


def _with_reason(text: str, reason: str | None) -> str:
    return f"{text} Motivo: {reason}" if reason else text


def _build(
    appointment: dict[str, Any],
    recipients: list[tuple[UUID | None, str, str]],
    excluded: UUID | None,
) -> list[PlannedNotification]:
    planned: list[PlannedNotification] = []
    seen: set[UUID] = set()
    for user_id, notification_type, content in recipients:
        if user_id is None or user_id == excluded or user_id in seen:
            continue
        seen.add(user_id)
        planned.append(
            PlannedNotification(
                user_id=user_id,
                type=notification_type,
                content=content,
                related_id=appointment["id"],
            )
        )
    return planned


def _plan_create(
    appointment: dict[str, Any], actor_role: UserRole
) -> list[tuple[UUID | None, str, str]]:
    start = appointment["scheduled_start"]
    specialty = _specialty(appointment)
    when = f"{_date(start)} às {_time(start)}"

    if appointment.get("approval_status") == ApprovalStatus.PENDING.value:
        recipients = [
            (
                appointment.get("hospital_id"),
                "appointment_request",
                f"Nova solicitação de consulta de {specialty} para {when} aguardando aprovação",
            )
        ]
        if actor_role == UserRole.DOCTOR:
            recipients.append(
                (
                    appointment["patient_id"],
                    "appointment_request",
                    f"Seu médico solicitou uma consulta de {specialty} para {when}. "
                    "Aguardando aprovação do hospital.",
                )
            )
        return recipients

    if actor_role == UserRole.PATIENT:
        # Self-service bookings are confirmed by email only.
        return []

    recipients = [
        (
            appointment["patient_id"],
            "appointment_scheduled",
            f"Nova consulta de {specialty} agendada para {when}",
        )
    ]
    if actor_role == UserRole.HOSPITAL_ADMIN:
        recipients.append(
            (
                appointment.get("doctor_id"),
                "appointment_scheduled",
                f"Nova consulta de {specialty} agendada na sua agenda para {when}",
            )
        )
    return recipients


def plan_notifications(
    appointment: dict[str, Any],
    transition: Transition,
    actor_role: UserRole,
    *,
    actor_id: UUID | None = None,
    reason: str | None = None,
    previous: dict[str, Any] | None = None,
) -> list[PlannedNotification]:
    """
    Plan the notifications caused by a committed transition.

    Args:
        appointment: Appointment row after the transition (the new row on reschedule)
        transition: Transition that was applied
        actor_role: Role of the principal that triggered it
        actor_id: Principal id; the actor never notifies themselves
        reason: Free-text reason given for cancel, reschedule or reject
        previous: Row before the transition (old slot, previous doctor)

    Returns:
        Notifications to create, at most one per recipient
    """
    excluded = actor_id if actor_id is not None else appointment.get(OWNER_COLUMNS[actor_role])
    specialty = _specialty(appointment)
    start = appointment["scheduled_start"]
    patient_id = appointment["patient_id"]
    doctor_id = appointment.get("doctor_id")

    recipients: list[tuple[UUID | None, str, str]]

    if transition == Transition.CREATE:
        recipients = _plan_create(appointment, actor_role)

    elif transition == Transition.COMPLETE:
        content = f"Sua consulta de {specialty} foi concluída."
        if appointment.get("diagnosis"):
            content += " Diagnóstico e prescrição disponíveis."
        recipients = [(patient_id, "appointment_completed", content)]

    elif transition == Transition.CANCEL:
        when = _date(start)
        recipients = [
            (
                patient_id,
                "appointment_cancelled",
                _with_reason(f"Sua consulta de {specialty} para {when} foi cancelada.", reason),
            ),
            (
                doctor_id,
                "appointment_cancelled",
                _with_reason(f"A consulta de {specialty} de {when} foi cancelada.", reason),
            ),
            (
                appointment.get("hospital_id"),
                "appointment_cancelled",
                _with_reason(f"A consulta de {specialty} de {when} foi cancelada.", reason),
            ),
        ]

    elif transition == Transition.RESCHEDULE:
        old_start = previous["scheduled_start"] if previous else None
        moved = f"para {_date(start)} às {_time(start)}"
        if old_start is not None:
            moved = f"de {_date(old_start)} às {_time(old_start)} {moved}"
        recipients = [
            (
                patient_id,
                "appointment_rescheduled",
                _with_reason(f"Sua consulta de {specialty} foi reagendada {moved}.", reason),
            )
        ]
        if actor_role == UserRole.HOSPITAL_ADMIN:
            recipients.append(
                (
                    doctor_id,
                    "appointment_rescheduled",
                    _with_reason(f"A consulta de {specialty} foi reagendada {moved}.", reason),
                )
            )

    elif transition == Transition.ASSIGN_DOCTOR:
        when = f"{_date(start)} às {_time(start)}"
        recipients = [
            (
                doctor_id,
                "appointment_scheduled",
                f"Consulta de {specialty} para {when} atribuída a você",
            ),
            (
                patient_id,
                "appointment_scheduled",
                f"Um médico foi designado para sua consulta de {specialty} em {when}",
            ),
        ]
        previous_doctor = previous.get("doctor_id") if previous else None
        if previous_doctor is not None and previous_doctor != doctor_id:
            recipients.append(
                (
                    previous_doctor,
                    "appointment_cancelled",
                    f"A consulta de {specialty} de {when} foi transferida para outro médico.",
                )
            )

    elif transition == Transition.APPROVE:
        when = _date(start)
        recipients = [
            (
                patient_id,
                "appointment_approved",
                f"Sua consulta de {specialty} para {when} foi aprovada!",
            ),
            (
                doctor_id,
                "appointment_approved",
                f"Consulta de {specialty} aprovada para {when}",
            ),
        ]

    elif transition == Transition.REJECT:
        recipients = [
            (
                patient_id,
                "appointment_rejected",
                _with_reason(
                    f"Sua solicitação de consulta de {specialty} para {_date(start)} foi rejeitada.",
                    reason,
                ),
            )
        ]

    else:
        recipients = []

    return _build(appointment, recipients, excluded)
