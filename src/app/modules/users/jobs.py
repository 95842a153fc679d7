"""
User Maintenance Background Jobs

Scheduled cleanup of account credentials that have outlived their use:
1. Delete login sessions whose refresh token has expired
2. Clear password reset tokens past their expiry

Both jobs run hourly, open their own database session, and are idempotent.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from app.core.database import async_session_maker
from app.core.scheduler import register_job
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

JOB_ID_PURGE_SESSIONS = "users_purge_expired_sessions"
JOB_ID_CLEAR_PASSWORD_RESETS = "users_clear_expired_password_resets"


async def purge_expired_sessions() -> dict[str, Any]:
    """Delete sessions whose refresh token has expired."""
    now = datetime.now(UTC)

    async with async_session_maker() as db:
        removed = await UserRepository.purge_expired_sessions(db, now)
        await db.commit()

    logger.info(f"Purged {removed} expired sessions")
    return {"removed": removed, "run_at": now.isoformat()}


async def clear_expired_password_resets() -> dict[str, Any]:
    """Clear password reset tokens that can no longer be used."""
    now = datetime.now(UTC)

    async with async_session_maker() as db:
        cleared = await UserRepository.clear_expired_password_resets(db, now)
        await db.commit()

    logger.info(f"Cleared {cleared} expired password reset tokens")
    return {"cleared": cleared, "run_at": now.isoformat()}


def register_user_jobs() -> None:
    """Register user maintenance jobs with the scheduler."""
    register_job(
        job_id=JOB_ID_PURGE_SESSIONS,
        func=purge_expired_sessions,
        trigger=IntervalTrigger(hours=1),
    )
    register_job(
        job_id=JOB_ID_CLEAR_PASSWORD_RESETS,
        func=clear_expired_password_resets,
        trigger=IntervalTrigger(hours=1),
    )
