"""
Notification Dispatch

Actions that want to tell a user about something emit a NotificationEvent
instead of writing notification rows themselves. The default dispatcher
stores the event as an in-app notification inside the caller's transaction,
so it is rolled back together with the change that produced it.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.notifications.models import NotificationType
from app.modules.notifications.repository import NotificationRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationEvent:
    """
    A message to deliver to one user.

    Attributes:
        user_id: Recipient
        title: Short headline
        message: Body text
        type: Severity shown in the UI
    """

    user_id: UUID
    title: str
    message: str
    type: NotificationType = NotificationType.INFO


NotificationDispatcher = Callable[[AsyncSession, NotificationEvent], Awaitable[None]]


async def dispatch_notification(db: AsyncSession, event: NotificationEvent) -> None:
    """Persist a notification event as an in-app notification."""
    await NotificationRepository.create(
        db,
        user_id=event.user_id,
        title=event.title,
        message=event.message,
        type=event.type,
    )
    logger.debug(f"Queued notification '{event.title}' for user {event.user_id}")
