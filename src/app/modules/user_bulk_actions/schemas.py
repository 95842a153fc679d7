"""
User Bulk Actions Schemas

Pydantic schemas for the bulk action request and its aggregate result.
"""

import enum
from typing import Any

from pydantic import BaseModel, Field


class BulkAction(str, enum.Enum):
    """Actions that can be applied to a selection of users."""

    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    DELETE = "delete"
    SEND_PASSWORD_RESET = "send_password_reset"
    CHANGE_ROLE = "change_role"
    VERIFY_EMAIL = "verify_email"


class ResultStatus(str, enum.Enum):
    """Outcome of an action for a single user."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


class BulkActionRequest(BaseModel):
    """
    Request body for POST /admin/users/bulk-actions.

    ``action`` and ``new_role`` are plain strings so that unknown values are
    reported in the standard failure response instead of a 422.
    """

    action: str = Field(
        "",
        description="One of: " + ", ".join(a.value for a in BulkAction),
        json_schema_extra={"example": "deactivate"},
    )
    user_ids: list[str] = Field(
        default_factory=list,
        description="Identifiers of the users to act on",
    )
    send_notification: bool = Field(
        False,
        description="Notify each affected user in-app",
    )
    new_role: str | None = Field(
        None,
        description="Target role, required for change_role",
        json_schema_extra={"example": "program_admin"},
    )


class ProcessedUser(BaseModel):
    """Per-user result entry."""

    id: str
    email: str | None = None
    action: BulkAction
    status: ResultStatus
    reason: str | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None


class BulkActionStatistics(BaseModel):
    """Counters and per-user results for a completed batch."""

    total_selected: int = Field(..., description="Users targeted after removing the caller")
    success_count: int
    error_count: int
    skipped_count: int = 0
    processed_users: list[ProcessedUser] = Field(default_factory=list)


class BulkActionResponse(BaseModel):
    """Response for a bulk action request (success or failure)."""

    success: bool
    message: str
    error: str | None = Field(None, description="Error code when the request failed")
    statistics: BulkActionStatistics | None = None
    errors: list[str] | None = None
    action_message: str | None = None
