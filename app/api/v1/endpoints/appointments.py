"""Patient self-service appointment endpoints."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Body, Query, status

from app.dependencies import AppointmentServiceDep, PatientPrincipal
from app.schemas.appointments import (
    AppointmentCancel,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentRequestCreate,
    AppointmentResponse,
    AppointmentStatus,
    ApprovalStatus,
    PatientAppointmentCreate,
)

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def create_appointment(
    data: PatientAppointmentCreate,
    principal: PatientPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Book an appointment for the authenticated patient.

    A doctor must be chosen; patients without one file a hospital request
    through ``POST /appointments/requests`` instead.

    A confirmation email is sent; ``confirmation_sent`` reports whether it went out.

    Args:
        data: Booking form
        principal: Authenticated patient
        service: Appointment service

    Returns:
        Created appointment
    """
    return await service.create_patient_appointment(principal, data)


@router.post(
    "/requests",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request an appointment from a hospital",
)
async def request_appointment(
    data: AppointmentRequestCreate,
    principal: PatientPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Create an appointment that waits for the hospital's approval."""
    return await service.create_appointment_request(principal, data)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my appointments",
)
async def list_appointments(
    principal: PatientPrincipal,
    service: AppointmentServiceDep,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    approval_status: ApprovalStatus | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """
    List the authenticated patient's appointments.

    Args:
        principal: Authenticated patient
        service: Appointment service
        status_filter: Filter by lifecycle status
        approval_status: Filter by approval status
        date_from: First day (inclusive)
        date_to: Last day (inclusive)
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        status=status_filter,
        approval_status=approval_status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        page_size=page_size,
    )
    return await service.list_appointments(principal, filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment",
)
async def get_appointment(
    appointment_id: UUID,
    principal: PatientPrincipal,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    return await service.get_appointment(appointment_id, principal)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel my appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    principal: PatientPrincipal,
    service: AppointmentServiceDep,
    data: AppointmentCancel | None = Body(None),
) -> AppointmentResponse:
    """Cancel one of the patient's scheduled appointments, freeing the doctor's slot."""
    return await service.cancel(appointment_id, principal, data.reason if data else None)
