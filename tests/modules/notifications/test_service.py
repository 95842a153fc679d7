"""
Tests for notification dispatch.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from app.modules.notifications.models import NotificationType
from app.modules.notifications.service import NotificationEvent, dispatch_notification


class TestDispatchNotification:
    """Tests for the default dispatcher."""

    @pytest.mark.asyncio
    async def test_stores_event_as_notification(self):
        db = AsyncMock()
        event = NotificationEvent(
            user_id=uuid4(),
            title="Account Deactivated",
            message="Your account has been deactivated.",
            type=NotificationType.WARNING,
        )

        with patch("app.modules.notifications.service.NotificationRepository") as repo:
            repo.create = AsyncMock()
            await dispatch_notification(db, event)

        repo.create.assert_awaited_once_with(
            db,
            user_id=event.user_id,
            title="Account Deactivated",
            message="Your account has been deactivated.",
            type=NotificationType.WARNING,
        )

    def test_event_defaults_to_info(self):
        event = NotificationEvent(user_id=uuid4(), title="Hello", message="World")
        assert event.type == NotificationType.INFO
