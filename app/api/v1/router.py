"""API v1 router configuration."""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    appointments,
    doctor_appointments,
    health,
    hospital_appointments,
    notifications,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, tags=["Health"])
api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(
    doctor_appointments.router,
    prefix="/doctor/appointments",
    tags=["Doctor Appointments"],
)
api_router.include_router(
    hospital_appointments.router,
    prefix="/hospital/appointments",
    tags=["Hospital Appointments"],
)
api_router.include_router(notifications.router, tags=["Notifications"])
