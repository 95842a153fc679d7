"""
User Bulk Actions Module

Applies one administrative action to many user accounts in a single request:
activate, deactivate, delete, send_password_reset, change_role, verify_email.

API Endpoints:
- POST /admin/users/bulk-actions - Apply an action to selected users

Guarantees:
- The acting admin is never modified by their own bulk request
- Users already in the requested state are skipped without audit entries
- Deletion is refused for users with applications or assigned programs
- Each successful change writes exactly one audit log entry
- Per-user failures are reported and do not stop the batch
"""

from .router import router
from .service import process_bulk_action

__all__ = ["router", "process_bulk_action"]
