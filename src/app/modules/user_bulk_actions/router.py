"""
User Bulk Actions Router

Admin endpoint for applying one action to many user accounts.

Endpoints:
- POST /admin/users/bulk-actions - Activate, deactivate, delete, reset
  passwords, change roles or verify emails for a selection of users

Security:
- Requires a valid JWT with the admin role
- The caller's own account is always removed from the selection
- Rate limited per admin
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import AdminUser, get_current_admin_user
from app.core.database import get_db
from app.core.rate_limit import RateLimitExceeded, check_rate_limit
from app.modules.user_bulk_actions import service
from app.modules.user_bulk_actions.schemas import BulkActionRequest, BulkActionResponse
from app.modules.user_bulk_actions.service import BulkActionError

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_BULK_ACTIONS = (10, 60)  # 10 bulk requests per minute


def _failure_response(e: BulkActionError) -> JSONResponse:
    body = BulkActionResponse(success=False, message=e.message, error=e.error_code)
    return JSONResponse(
        status_code=e.status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


@router.post(
    "",
    response_model=BulkActionResponse,
    response_model_exclude_none=True,
    summary="Apply Bulk User Action",
    description="""
Apply one action to a selection of users.

**Actions:**
- `activate` / `deactivate`: Toggle account access (deactivation ends all sessions)
- `delete`: Remove accounts without applications or program assignments
- `send_password_reset`: Issue a 24-hour reset link and notify the user
- `change_role`: Set `new_role` (`admin`, `program_admin`, `student`)
- `verify_email`: Mark email addresses as verified

Users already in the requested state are reported as `skipped`.
Failures for individual users are reported per user and do not stop the batch.

**Access:** Admin only
""",
    responses={
        200: {"description": "Batch processed", "model": BulkActionResponse},
        400: {"description": "Invalid request (no action, no users, invalid role, ...)"},
        401: {"description": "Unauthorized - invalid or missing token"},
        403: {"description": "Forbidden - not an admin"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Batch could not be saved"},
    },
)
async def bulk_user_action(
    request: Request,
    data: BulkActionRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
):
    """
    Apply a bulk action to the selected users.
    """
    key = f"admin:bulk_users:{admin.id}"
    if not await check_rate_limit(key, *RATE_LIMIT_BULK_ACTIONS):
        logger.warning(f"Rate limit exceeded for admin {admin.id} on bulk user actions")
        raise RateLimitExceeded(*RATE_LIMIT_BULK_ACTIONS)

    client_ip = request.client.host if request.client else None

    try:
        return await service.process_bulk_action(db, data, admin.id, ip_address=client_ip)
    except BulkActionError as e:
        if e.status_code >= 500:
            logger.error(f"Bulk action {data.action} by admin {admin.id} failed: {e.message}")
        else:
            logger.warning(f"Rejected bulk action {data.action!r} by admin {admin.id}: {e.message}")
        return _failure_response(e)
    except Exception as e:
        logger.exception(f"Unexpected error in bulk action: {e}")
        return _failure_response(service.BulkActionFailedError())
