"""Notification service: in-app notification rows and push delivery via FCM."""

import asyncio
from typing import Any
from uuid import UUID

import structlog
from firebase_admin import messaging
from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundException
from app.core.firebase import is_firebase_initialized
from app.core.timerange import utcnow
from app.models.notifications import notifications, push_tokens
from app.services.notification_fanout import PlannedNotification

logger = structlog.get_logger(__name__)

PUSH_TITLES = {
    "appointment_scheduled": "Consulta agendada",
    "appointment_reminder": "Lembrete de consulta",
    "appointment_request": "Solicitação de consulta",
    "appointment_approved": "Consulta aprovada",
    "appointment_rejected": "Consulta rejeitada",
    "appointment_rescheduled": "Consulta reagendada",
    "appointment_completed": "Consulta concluída",
    "appointment_cancelled": "Consulta cancelada",
}


class FirebasePushDelivery:
    """Delivers stored notifications to the recipient's active devices."""

    async def deliver(self, db: AsyncSession, notification: dict[str, Any]) -> tuple[int, int]:
        """
        Send one notification to every active push token of its recipient.

        Args:
            db: Database session
            notification: Stored notification row

        Returns:
            Tuple of (success_count, failure_count)
        """
        if not is_firebase_initialized():
            logger.debug("push_delivery_skipped", reason="firebase_not_initialized")
            return 0, 0

        result = await db.execute(
            select(push_tokens.c.id, push_tokens.c.fcm_token).where(
                push_tokens.c.user_id == notification["user_id"],
                push_tokens.c.is_active == True,  # noqa: E712
            )
        )
        token_records = result.fetchall()
        if not token_records:
            logger.debug("no_active_tokens_for_user", user_id=str(notification["user_id"]))
            return 0, 0

        tokens = [record.fcm_token for record in token_records]
        message = messaging.MulticastMessage(
            notification=messaging.Notification(
                title=PUSH_TITLES.get(notification["type"], "AlertMed"),
                body=notification["content"],
            ),
            data={
                "notification_id": str(notification["id"]),
                "type": notification["type"],
                "related_id": str(notification["related_id"] or ""),
            },
            tokens=tokens,
            android=messaging.AndroidConfig(priority="high"),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound="default")),
            ),
        )

        # firebase-admin is synchronous
        response = await asyncio.to_thread(messaging.send_each_for_multicast, message)

        stale = [
            record.id
            for record, send_response in zip(token_records, response.responses, strict=False)
            if isinstance(send_response.exception, messaging.UnregisteredError)
        ]
        if stale:
            await db.execute(
                update(push_tokens).where(push_tokens.c.id.in_(stale)).values(is_active=False)
            )
        await db.execute(
            update(push_tokens)
            .where(push_tokens.c.id.in_([record.id for record in token_records]))
            .where(push_tokens.c.is_active == True)  # noqa: E712
            .values(last_used_at=utcnow())
        )
        await db.commit()

        logger.info(
            "push_notification_sent",
            notification_id=str(notification["id"]),
            success_count=response.success_count,
            failure_count=response.failure_count,
            deactivated_tokens=len(stale),
        )
        return response.success_count, response.failure_count


class NotificationService:
    """Service for storing, delivering and reading notifications."""

    def __init__(self, db: AsyncSession, delivery: Any | None = None):
        """
        Initialize service.

        Args:
            db: Database session
            delivery: Object with an async ``deliver(db, notification)``; defaults to FCM
        """
        self.db = db
        self.delivery = delivery if delivery is not None else FirebasePushDelivery()

    async def dispatch(self, planned: list[PlannedNotification]) -> list[dict[str, Any]]:
        """
        Persist planned notifications, then hand each one to the delivery channel.

        Best effort: storage and delivery errors are logged and never raised,
        because the transition that caused them is already committed.

        Returns:
            Stored notification rows (empty if storing failed)
        """
        if not planned:
            return []

        stored: list[dict[str, Any]] = []
        try:
            for item in planned:
                result = await self.db.execute(
                    insert(notifications)
                    .values(
                        user_id=item.user_id,
                        type=item.type,
                        content=item.content,
                        related_id=item.related_id,
                    )
                    .returning(notifications)
                )
                stored.append(dict(result.mappings().one()))
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "notification_dispatch_failed",
                error=str(e),
                count=len(planned),
                related_id=str(planned[0].related_id),
            )
            return []

        for notification in stored:
            try:
                await self.delivery.deliver(self.db, notification)
            except Exception as e:
                logger.warning(
                    "notification_delivery_failed",
                    error=str(e),
                    notification_id=str(notification["id"]),
                    user_id=str(notification["user_id"]),
                )

        logger.info(
            "notifications_dispatched",
            count=len(stored),
            types=sorted({n["type"] for n in stored}),
            related_id=str(stored[0]["related_id"]),
        )
        return stored

    async def list_for_user(
        self,
        user_id: UUID,
        unread_only: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> dict[str, Any]:
        """
        Get a user's notifications, newest first.

        Args:
            user_id: Recipient
            unread_only: Only return unread notifications
            page: Page number (1-indexed)
            page_size: Items per page

        Returns:
            Dictionary with total, unread, page, page_size and items
        """
        conditions = [notifications.c.user_id == user_id]
        if unread_only:
            conditions.append(notifications.c.read == False)  # noqa: E712

        total = (
            await self.db.execute(
                select(func.count()).select_from(notifications).where(and_(*conditions))
            )
        ).scalar() or 0
        unread = (
            await self.db.execute(
                select(func.count())
                .select_from(notifications)
                .where(notifications.c.user_id == user_id, notifications.c.read == False)  # noqa: E712
            )
        ).scalar() or 0

        result = await self.db.execute(
            select(notifications)
            .where(and_(*conditions))
            .order_by(notifications.c.created_at.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        return {
            "total": total,
            "unread": unread,
            "page": page,
            "page_size": page_size,
            "items": [dict(row) for row in result.mappings().all()],
        }

    async def mark_as_read(self, notification_id: UUID, user_id: UUID) -> dict[str, Any]:
        """
        Mark one of the user's notifications as read.

        Raises:
            NotFoundException: If the notification does not belong to the user
        """
        result = await self.db.execute(
            update(notifications)
            .where(notifications.c.id == notification_id, notifications.c.user_id == user_id)
            .values(read=True, read_at=func.coalesce(notifications.c.read_at, utcnow()))
            .returning(notifications)
        )
        row = result.mappings().first()
        if row is None:
            await self.db.rollback()
            raise NotFoundException("Notificação não encontrada")
        await self.db.commit()
        return dict(row)

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark every unread notification of the user as read. Returns the count."""
        result = await self.db.execute(
            update(notifications)
            .where(notifications.c.user_id == user_id, notifications.c.read == False)  # noqa: E712
            .values(read=True, read_at=utcnow())
        )
        await self.db.commit()
        return result.rowcount

    async def register_token(self, user_id: UUID, fcm_token: str, platform: str) -> dict[str, Any]:
        """
        Register or refresh an FCM token for a user.

        Other tokens of the same user on the same platform are deactivated.

        Returns:
            Created or updated token record
        """
        await self.db.execute(
            update(push_tokens)
            .where(
                push_tokens.c.user_id == user_id,
                push_tokens.c.platform == platform,
                push_tokens.c.fcm_token != fcm_token,
            )
            .values(is_active=False)
        )

        result = await self.db.execute(
            update(push_tokens)
            .where(push_tokens.c.user_id == user_id, push_tokens.c.fcm_token == fcm_token)
            .values(is_active=True, platform=platform, last_used_at=utcnow())
            .returning(push_tokens)
        )
        row = result.mappings().first()

        if row is None:
            result = await self.db.execute(
                insert(push_tokens)
                .values(
                    user_id=user_id,
                    fcm_token=fcm_token,
                    platform=platform,
                    is_active=True,
                    last_used_at=utcnow(),
                )
                .returning(push_tokens)
            )
            row = result.mappings().one()

        await self.db.commit()
        logger.info("push_token_registered", user_id=str(user_id), platform=platform)
        return dict(row)

    async def deactivate_token(self, user_id: UUID, fcm_token: str) -> bool:
        """Deactivate a specific FCM token. Returns True if one was found."""
        result = await self.db.execute(
            update(push_tokens)
            .where(push_tokens.c.user_id == user_id, push_tokens.c.fcm_token == fcm_token)
            .values(is_active=False)
        )
        await self.db.commit()
        return result.rowcount > 0
