"""
Fixtures for user bulk actions tests.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID, uuid4

import pytest

from app.modules.users.models import User, UserRole

SERVICE = "app.modules.user_bulk_actions.service"


@pytest.fixture
def admin_id():
    """Return a consistent admin UUID for testing."""
    return UUID("00000000-0000-0000-0000-000000000001")


@pytest.fixture
def mock_db():
    """Create a mock database session with savepoint support."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()

    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock(return_value=None)
    # Must not be truthy, or exceptions raised inside the block are swallowed
    savepoint.__aexit__ = AsyncMock(return_value=False)
    db.begin_nested = MagicMock(return_value=savepoint)
    return db


@pytest.fixture
def make_user():
    """Factory for user models."""

    def _make(
        email: str = "student@example.com",
        *,
        role: UserRole = UserRole.STUDENT,
        is_active: bool = True,
        email_verified: bool = False,
        first_name: str = "Ada",
        last_name: str = "Lovelace",
    ):
        user = MagicMock(spec=User)
        user.id = uuid4()
        user.email = email
        user.first_name = first_name
        user.last_name = last_name
        user.full_name = f"{first_name} {last_name}"
        user.role = role
        user.is_active = is_active
        user.email_verified = email_verified
        user.program_id = None
        user.password_reset_token = None
        user.password_reset_expires = None
        return user

    return _make


@pytest.fixture
def user_repo():
    """Patch the user repository used by the service.

    Call ``user_repo.register(*users)`` to make them resolvable by id.
    """
    with patch(f"{SERVICE}.UserRepository") as repo:
        users: dict[str, User] = {}

        async def _get_by_id(_db, user_id):
            return users.get(str(user_id))

        def _register(*models):
            for model in models:
                users[str(model.id)] = model

        repo.get_by_id = AsyncMock(side_effect=_get_by_id)
        repo.delete_sessions = AsyncMock(return_value=2)
        repo.count_applications = AsyncMock(return_value=0)
        repo.count_assigned_programs = AsyncMock(return_value=0)
        repo.delete = AsyncMock()
        repo.register = _register
        yield repo


@pytest.fixture
def audit_repo():
    """Patch the audit log repository used by the service."""
    with patch(f"{SERVICE}.AuditLogRepository") as repo:
        repo.create = AsyncMock()
        yield repo


@pytest.fixture
def notification_repo():
    """Patch the notification repository used by the service."""
    with patch(f"{SERVICE}.NotificationRepository") as repo:
        repo.delete_for_user = AsyncMock(return_value=0)
        yield repo


@pytest.fixture
def reset_email():
    """Patch the password reset email sender."""
    with patch(f"{SERVICE}.send_password_reset_email", new_callable=AsyncMock) as send:
        send.return_value = True
        yield send


@pytest.fixture
def dispatcher():
    """Notification dispatcher that records events."""
    return AsyncMock()


@pytest.fixture
def repos(user_repo, audit_repo, notification_repo, reset_email):
    """All service collaborators patched at once."""
    return user_repo
