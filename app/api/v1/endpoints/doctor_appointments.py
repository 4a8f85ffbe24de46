"""Doctor agenda endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Body, Query, status

from app.dependencies import AppointmentServiceDep, DoctorPrincipal
from app.schemas.appointments import (
    AppointmentCancel,
    AppointmentComplete,
    AppointmentDetailsUpdate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentRequestCreate,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatus,
    DoctorAppointmentCreate,
)

router = APIRouter()


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my agenda",
)
async def list_doctor_appointments(
    principal: DoctorPrincipal,
    service: AppointmentServiceDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    day: date | None = Query(None, alias="date", description="Only this day"),
    patient_id: UUID | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the authenticated doctor's appointments.

    Args:
        principal: Authenticated doctor
        service: Appointment service
        status_filter: Filter by lifecycle status
        day: Restrict to a single day
        patient_id: Filter by patient
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        patient_id=patient_id,
        date_from=day,
        date_to=day,
        page=page,
        page_size=page_size,
    )
    return await service.list_appointments(principal, filters)


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment in my agenda",
)
async def create_doctor_appointment(
    data: DoctorAppointmentCreate,
    principal: DoctorPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Book a patient into the doctor's own agenda; the patient is notified."""
    return await service.create_doctor_appointment(principal, data)


@router.post(
    "/requests",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request a hospital appointment for a patient",
)
async def request_hospital_appointment(
    data: AppointmentRequestCreate,
    principal: DoctorPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    return await service.create_appointment_request(principal, data)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment",
)
async def get_doctor_appointment(
    appointment_id: UUID,
    principal: DoctorPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    return await service.get_appointment(appointment_id, principal)


@router.patch(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Edit appointment details",
)
async def update_doctor_appointment(
    appointment_id: UUID,
    data: AppointmentDetailsUpdate,
    principal: DoctorPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    return await service.update_details(appointment_id, principal, data)


@router.post(
    "/{appointment_id}/complete",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Complete appointment",
)
async def complete_appointment(
    appointment_id: UUID,
    principal: DoctorPrincipal,
    service: AppointmentServiceDep,
    data: AppointmentComplete | None = Body(None),
) -> AppointmentResponse:
    """
    Complete an appointment and record diagnosis, prescription and notes.

    Args:
        appointment_id: Appointment ID
        principal: Assigned doctor
        service: Appointment service
        data: Clinical outcome

    Returns:
        Completed appointment
    """
    return await service.complete(appointment_id, principal, data or AppointmentComplete())


@router.post(
    "/{appointment_id}/reschedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    principal: DoctorPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Move the appointment; the response is the new appointment row."""
    return await service.reschedule(appointment_id, principal, data)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel appointment",
)
async def cancel_doctor_appointment(
    appointment_id: UUID,
    principal: DoctorPrincipal,
    service: AppointmentServiceDep,
    data: AppointmentCancel | None = Body(None),
) -> AppointmentResponse:
    return await service.cancel(appointment_id, principal, data.reason if data else None)
