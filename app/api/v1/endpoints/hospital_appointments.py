"""Hospital administration endpoints for appointments."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Body, Query, status

from app.dependencies import AppointmentServiceDep, HospitalPrincipal
from app.schemas.appointments import (
    AppointmentCancel,
    AppointmentDetailsUpdate,
    AppointmentFilters,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatistics,
    AppointmentStatus,
    ApprovalDecision,
    ApprovalStatus,
    DoctorAssignment,
    HospitalAppointmentCreate,
    HospitalAppointmentListResponse,
)

router = APIRouter()


@router.get(
    "/",
    response_model=HospitalAppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List hospital appointments",
)
async def list_hospital_appointments(
    principal: HospitalPrincipal,
    service: AppointmentServiceDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    approval_status: ApprovalStatus | None = Query(None),
    doctor_id: UUID | None = Query(None),
    patient_id: UUID | None = Query(None),
    specialty: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> HospitalAppointmentListResponse:
    """
    List the hospital's appointments with filters, plus status statistics.

    Statistics cover every appointment of the hospital, not only the filtered page.

    Args:
        principal: Hospital administrator
        service: Appointment service
        status_filter: Filter by lifecycle status
        approval_status: Filter by approval status
        doctor_id: Filter by doctor
        patient_id: Filter by patient
        specialty: Filter by specialty
        date_from: First day (inclusive)
        date_to: Last day (inclusive)
        page: Page number
        page_size: Items per page

    Returns:
        Paginated appointments and statistics
    """
    filters = AppointmentFilters(
        status=status_filter,
        approval_status=approval_status,
        doctor_id=doctor_id,
        patient_id=patient_id,
        specialty=specialty,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return await service.list_hospital_appointments(principal, filters)


@router.get(
    "/statistics",
    response_model=AppointmentStatistics,
    status_code=status.HTTP_200_OK,
    summary="Hospital appointment statistics",
)
async def get_hospital_statistics(
    principal: HospitalPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentStatistics:
    return await service.get_statistics(principal.id)


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create hospital appointment",
)
async def create_hospital_appointment(
    data: HospitalAppointmentCreate,
    principal: HospitalPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Create an approved appointment; the doctor may be assigned later."""
    return await service.create_hospital_appointment(principal, data)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment",
)
async def get_hospital_appointment(
    appointment_id: UUID,
    principal: HospitalPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    return await service.get_appointment(appointment_id, principal)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Edit appointment details",
)
async def update_hospital_appointment(
    appointment_id: UUID,
    data: AppointmentDetailsUpdate,
    principal: HospitalPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    return await service.update_details(appointment_id, principal, data)


@router.put(
    "/{appointment_id}/doctor",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Assign doctor",
)
async def assign_doctor(
    appointment_id: UUID,
    data: DoctorAssignment,
    principal: HospitalPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Bind an affiliated doctor; the slot is checked against their agenda now."""
    return await service.assign_doctor(appointment_id, principal, data.doctor_id)


@router.post(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Reschedule appointment",
)
async def reschedule_hospital_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    principal: HospitalPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    return await service.reschedule(appointment_id, principal, data)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_hospital_appointment(
    appointment_id: UUID,
    principal: HospitalPrincipal,
    service: AppointmentServiceDep,
    data: AppointmentCancel | None = Body(None),
) -> AppointmentResponse:
    return await service.cancel(appointment_id, principal, data.reason if data else None)


@router.post(
    "/{appointment_id}/approve",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Approve appointment request",
)
async def approve_appointment(
    appointment_id: UUID,
    principal: HospitalPrincipal,
    service: AppointmentServiceDep,
    data: ApprovalDecision | None = Body(None),
) -> AppointmentResponse:
    """
    Approve a pending request.

    Approving an appointment that was already approved or rejected returns it
    unchanged.
    """
    return await service.approve(appointment_id, principal, data.notes if data else None)


@router.post(
    "/{appointment_id}/reject",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Reject appointment request",
)
async def reject_appointment(
    appointment_id: UUID,
    principal: HospitalPrincipal,
    service: AppointmentServiceDep,
    data: ApprovalDecision | None = Body(None),
) -> AppointmentResponse:
    """Reject a pending request; the appointment is cancelled and the patient told why."""
    return await service.reject(appointment_id, principal, data.reason if data else None)
