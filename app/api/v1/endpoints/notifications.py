"""Notification endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query, status

from app.core.exceptions import NotFoundException
from app.dependencies import CurrentPrincipal, NotificationServiceDep
from app.schemas.notifications import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationRecord,
    PushTokenRegister,
    PushTokenResponse,
)

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "/",
    response_model=NotificationListResponse,
    status_code=status.HTTP_200_OK,
    summary="List my notifications",
)
async def list_my_notifications(
    principal: CurrentPrincipal,
    service: NotificationServiceDep,
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> NotificationListResponse:
    """
    List notifications of the authenticated user, newest first.

    Besides the lifecycle types (approved, rejected, rescheduled, completed,
    reminders), items may carry a booking type: ``appointment_scheduled`` when a
    booking is made for the user, ``appointment_request`` when a hospital has a
    request to review, and ``appointment_cancelled`` when a booking is cancelled.

    Args:
        principal: Authenticated user
        service: Notification service
        unread_only: Only unread notifications
        page: Page number
        page_size: Items per page

    Returns:
        Paginated notifications with the unread count
    """
    result = await service.list_for_user(
        principal.id,
        unread_only=unread_only,
        page=page,
        page_size=page_size,
    )
    return NotificationListResponse.model_validate(result)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationRecord,
    status_code=status.HTTP_200_OK,
    summary="Mark notification as read",
)
async def mark_notification_read(
    notification_id: UUID,
    principal: CurrentPrincipal,
    service: NotificationServiceDep,
) -> NotificationRecord:
    notification = await service.mark_as_read(notification_id, principal.id)
    return NotificationRecord.model_validate(notification)


@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
    status_code=status.HTTP_200_OK,
    summary="Mark all notifications as read",
)
async def mark_all_notifications_read(
    principal: CurrentPrincipal,
    service: NotificationServiceDep,
) -> MarkAllReadResponse:
    updated = await service.mark_all_as_read(principal.id)
    return MarkAllReadResponse(updated=updated)


@router.post(
    "/register-token",
    response_model=PushTokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register FCM token",
)
async def register_fcm_token(
    token_data: PushTokenRegister,
    principal: CurrentPrincipal,
    service: NotificationServiceDep,
) -> PushTokenResponse:
    """
    Register or refresh the FCM token of the current device.

    Call it after login and whenever Firebase rotates the token. Older tokens
    of the same platform are deactivated.

    Args:
        token_data: FCM token and platform
        principal: Authenticated user
        service: Notification service

    Returns:
        Registered token details
    """
    token = await service.register_token(
        principal.id,
        fcm_token=token_data.fcm_token,
        platform=token_data.platform,
    )
    return PushTokenResponse.model_validate(token)


@router.delete(
    "/tokens/{fcm_token}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate FCM token",
)
async def deactivate_fcm_token(
    fcm_token: str,
    principal: CurrentPrincipal,
    service: NotificationServiceDep,
) -> None:
    """Stop delivering push notifications to a device, e.g. on logout."""
    if not await service.deactivate_token(principal.id, fcm_token):
        raise NotFoundException("Token não encontrado")
