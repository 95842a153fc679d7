"""
Audit module - Append-only log of administrative changes.
"""

from app.modules.audit.models import AuditLog
from app.modules.audit.repository import AuditLogRepository

__all__ = ["AuditLog", "AuditLogRepository"]
