"""
Notification Repository

Database operations for in-app notifications.
"""

import logging
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.notifications.models import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationRepository:
    """Repository for notification database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: UUID,
        title: str,
        message: str,
        type: NotificationType = NotificationType.INFO,
    ) -> Notification:
        """Create a notification for a user."""
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def delete_for_user(db: AsyncSession, user_id: UUID) -> int:
        """Delete every notification addressed to a user. Returns the number removed."""
        result = await db.execute(delete(Notification).where(Notification.user_id == user_id))
        return result.rowcount or 0
