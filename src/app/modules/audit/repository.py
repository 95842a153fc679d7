"""
Audit Log Repository

Insert and read audit entries. Entries are never updated or deleted.
"""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.modules.audit.models import AuditLog

logger = logging.getLogger(__name__)


class AuditLogRepository:
    """Repository for audit log entries."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        actor_id: UUID | None,
        action: str,
        table_name: str,
        record_id: str | UUID | None,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        ip_address: str | None = None,
    ) -> AuditLog:
        """
        Append an audit entry in the caller's transaction.

        Args:
            db: Database session
            actor_id: User who performed the action
            action: Action name (e.g. "DEACTIVATE_USER_BULK")
            table_name: Affected table
            record_id: Affected row id
            old_values: Snapshot before the change
            new_values: Snapshot after the change
            ip_address: Client address, if known

        Returns:
            The new AuditLog entry
        """
        entry = AuditLog(
            actor_id=actor_id,
            action=action,
            table_name=table_name,
            record_id=str(record_id) if record_id is not None else None,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
        )
        db.add(entry)
        await db.flush()

        logger.debug(f"Audit: {action} on {table_name}:{record_id} by {actor_id}")
        return entry

    @staticmethod
    async def list_for_record(
        db: AsyncSession,
        table_name: str,
        record_id: str | UUID,
    ) -> list[AuditLog]:
        """Get all entries for a row, oldest first."""
        result = await db.execute(
            select(AuditLog)
            .where(AuditLog.table_name == table_name, AuditLog.record_id == str(record_id))
            .order_by(AuditLog.created_at.asc())
        )
        return list(result.scalars().all())
