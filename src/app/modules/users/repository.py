"""
User Repository

Database operations for user accounts and sessions.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.applications.models import Application
from app.modules.programs.models import Program
from app.modules.users.models import User, UserRole, UserSession

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        program_id: UUID | None = None,
        phone: str | None = None,
        is_active: bool = True,
        email_verified: bool = False,
    ) -> User:
        """
        Create a new user record.

        Args:
            db: Database session
            email: User's email address (unique)
            password_hash: Hashed password
            first_name: User's first name
            last_name: User's last name
            role: User's role
            program_id: Associated program (optional)
            phone: Phone number (optional)
            is_active: Whether user is active
            email_verified: Whether email is verified

        Returns:
            Created User instance
        """
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            program_id=program_id,
            phone=phone,
            is_active=is_active,
            email_verified=email_verified,
        )

        db.add(user)
        await db.flush()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str | UUID) -> User | None:
        """
        Get a user by ID.

        Malformed ids resolve to None rather than raising.
        """
        try:
            user_uuid = user_id if isinstance(user_id, UUID) else UUID(str(user_id))
        except ValueError:
            return None
        return await db.get(User, user_uuid)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Get a user by email address."""
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        """Check if an email address is already registered."""
        user = await UserRepository.get_by_email(db, email)
        return user is not None

    @staticmethod
    async def count_applications(db: AsyncSession, user_id: UUID) -> int:
        """Count applications submitted by a user."""
        result = await db.execute(
            select(func.count()).select_from(Application).where(Application.user_id == user_id)
        )
        return result.scalar_one()

    @staticmethod
    async def count_assigned_programs(db: AsyncSession, user_id: UUID) -> int:
        """Count programs a program admin is assigned to."""
        result = await db.execute(
            select(func.count()).select_from(Program).where(Program.program_admin_id == user_id)
        )
        return result.scalar_one()

    @staticmethod
    async def delete(db: AsyncSession, user: User) -> None:
        """Delete a user row. Dependent rows must be removed first."""
        await db.delete(user)
        await db.flush()

    # ============================================
    # Sessions
    # ============================================

    @staticmethod
    async def create_session(
        db: AsyncSession,
        *,
        user_id: UUID,
        token_hash: str,
        expires_at: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> UserSession:
        """Record a login session for a refresh token."""
        session = UserSession(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        db.add(session)
        await db.flush()
        return session

    @staticmethod
    async def get_session_by_token_hash(db: AsyncSession, token_hash: str) -> UserSession | None:
        """Get the session recorded for a refresh token hash."""
        result = await db.execute(select(UserSession).where(UserSession.token_hash == token_hash))
        return result.scalar_one_or_none()

    @staticmethod
    async def delete_sessions(db: AsyncSession, user_id: UUID) -> int:
        """Delete all sessions for a user. Returns the number removed."""
        result = await db.execute(delete(UserSession).where(UserSession.user_id == user_id))
        return result.rowcount or 0

    @staticmethod
    async def purge_expired_sessions(db: AsyncSession, now: datetime) -> int:
        """Delete sessions that expired before ``now``."""
        result = await db.execute(delete(UserSession).where(UserSession.expires_at < now))
        return result.rowcount or 0

    @staticmethod
    async def clear_expired_password_resets(db: AsyncSession, now: datetime) -> int:
        """Clear password reset tokens that expired before ``now``."""
        result = await db.execute(
            update(User)
            .where(
                User.password_reset_token.is_not(None),
                User.password_reset_expires < now,
            )
            .values(password_reset_token=None, password_reset_expires=None)
        )
        return result.rowcount or 0
