"""
Notifications module - In-app notifications and event dispatch.
"""

from app.modules.notifications.models import Notification, NotificationType
from app.modules.notifications.repository import NotificationRepository
from app.modules.notifications.service import (
    NotificationDispatcher,
    NotificationEvent,
    dispatch_notification,
)

__all__ = [
    "Notification",
    "NotificationType",
    "NotificationRepository",
    "NotificationEvent",
    "NotificationDispatcher",
    "dispatch_notification",
]
