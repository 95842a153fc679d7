"""
User Bulk Actions Service Layer

Applies one administrative action to a caller-selected set of users.

Processing model:
1. Request-level validation (action, selection, self-modification guard,
   batch size, role) happens before any storage access. A failure aborts the
   whole request and nothing is written.
2. Users are processed sequentially in the order given. Each user runs in its
   own SAVEPOINT inside the request transaction, so a failure for one user
   rolls back only that user's changes and is reported in the results while
   the rest of the batch continues.
3. Every successful mutation writes exactly one audit entry and, when the
   action produces one, a notification event. Both happen inside the user's
   savepoint.
4. The request transaction is committed once at the end. If the commit fails
   the whole batch is rolled back.
5. Password reset emails are sent after the commit.

Security considerations:
- The acting admin can never act on their own account
- Reset tokens use secrets.token_urlsafe (256 bits) and only their SHA-256
  hash is stored
- Audit snapshots never contain password hashes or tokens
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.email import send_password_reset_email
from app.core.security import generate_secure_token, hash_token
from app.modules.audit.repository import AuditLogRepository
from app.modules.notifications.models import NotificationType
from app.modules.notifications.repository import NotificationRepository
from app.modules.notifications.service import (
    NotificationDispatcher,
    NotificationEvent,
    dispatch_notification,
)
from app.modules.user_bulk_actions.schemas import (
    BulkAction,
    BulkActionRequest,
    BulkActionResponse,
    BulkActionStatistics,
    ProcessedUser,
    ResultStatus,
)
from app.modules.users.models import User, UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# Constants
AUDIT_TABLE = "users"
RESET_TOKEN_BYTES = 32  # 256 bits of entropy


# ============================================
# Errors
# ============================================


class BulkActionError(Exception):
    """Base exception for request-level bulk action failures."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class NoActionSpecifiedError(BulkActionError):
    """Raised when the request has no action."""

    def __init__(self):
        super().__init__(message="No action specified", error_code="NO_ACTION")


class InvalidActionError(BulkActionError):
    """Raised when the action is not a known bulk action."""

    def __init__(self, action: str):
        self.action = action
        super().__init__(message="Invalid action specified", error_code="INVALID_ACTION")


class NoUsersSelectedError(BulkActionError):
    """Raised when the request has no target users."""

    def __init__(self):
        super().__init__(message="No users selected", error_code="NO_USERS_SELECTED")


class SelfModificationError(BulkActionError):
    """Raised when the only selected user is the acting admin."""

    def __init__(self):
        super().__init__(
            message="Cannot perform bulk actions on your own account",
            error_code="CANNOT_MODIFY_SELF",
        )


class TooManyUsersError(BulkActionError):
    """Raised when the selection exceeds the configured batch size."""

    def __init__(self, selected: int, maximum: int):
        super().__init__(
            message=f"Too many users selected: {selected}. Maximum is {maximum} per request.",
            error_code="TOO_MANY_USERS",
        )


class InvalidRoleError(BulkActionError):
    """Raised when change_role is requested without a valid target role."""

    def __init__(self):
        super().__init__(message="Invalid role specified", error_code="INVALID_ROLE")


class BulkActionFailedError(BulkActionError):
    """Raised when the batch transaction cannot be committed."""

    def __init__(self):
        super().__init__(
            message="An error occurred during bulk operation. No changes were saved.",
            error_code="BULK_ACTION_FAILED",
            status_code=500,
        )


# ============================================
# Action handlers
# ============================================


@dataclass(frozen=True)
class BulkActionContext:
    """
    Explicit request context passed to every action handler.

    Attributes:
        actor_id: Admin performing the action
        send_notification: Whether affected users should be notified
        new_role: Target role (change_role only)
        reset_expiry_hours: Lifetime of password reset tokens
        ip_address: Client address recorded in audit entries
    """

    actor_id: UUID
    send_notification: bool = False
    new_role: UserRole | None = None
    reset_expiry_hours: int = 24
    ip_address: str | None = None


@dataclass
class ActionOutcome:
    """What a handler did to one user."""

    status: ResultStatus
    reason: str | None = None
    audit_action: str | None = None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    notification: NotificationEvent | None = None
    reset_token: str | None = None


ActionHandler = Callable[[AsyncSession, User, BulkActionContext], Awaitable[ActionOutcome]]


def _notify(
    ctx: BulkActionContext,
    user: User,
    title: str,
    message: str,
    type: NotificationType,
) -> NotificationEvent | None:
    if not ctx.send_notification:
        return None
    return NotificationEvent(user_id=user.id, title=title, message=message, type=type)


def _user_snapshot(user: User) -> dict[str, Any]:
    """Audit snapshot of a user row without credentials."""
    return {
        "id": str(user.id),
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role.value,
        "is_active": user.is_active,
        "email_verified": user.email_verified,
        "program_id": str(user.program_id) if user.program_id else None,
    }


async def _set_active(
    db: AsyncSession,
    user: User,
    ctx: BulkActionContext,
    active: bool,
) -> ActionOutcome:
    if user.is_active == active:
        return ActionOutcome(
            status=ResultStatus.SKIPPED,
            reason=f"Already {'active' if active else 'inactive'}",
        )

    user.is_active = active
    await db.flush()

    if active:
        notification = _notify(
            ctx,
            user,
            "Account Activated",
            "Your account has been activated by an administrator. "
            "You can now access the system.",
            NotificationType.SUCCESS,
        )
    else:
        # Revoke refresh sessions; admin access is re-checked per request
        removed = await UserRepository.delete_sessions(db, user.id)
        logger.info(f"Removed {removed} sessions for deactivated user {user.id}")
        notification = _notify(
            ctx,
            user,
            "Account Deactivated",
            "Your account has been deactivated by an administrator. "
            "Please contact support if you have questions.",
            NotificationType.WARNING,
        )

    return ActionOutcome(
        status=ResultStatus.SUCCESS,
        audit_action="ACTIVATE_USER_BULK" if active else "DEACTIVATE_USER_BULK",
        old_values={"is_active": not active},
        new_values={"is_active": active},
        notification=notification,
    )


async def _activate(db: AsyncSession, user: User, ctx: BulkActionContext) -> ActionOutcome:
    return await _set_active(db, user, ctx, active=True)


async def _deactivate(db: AsyncSession, user: User, ctx: BulkActionContext) -> ActionOutcome:
    return await _set_active(db, user, ctx, active=False)


async def _delete(db: AsyncSession, user: User, ctx: BulkActionContext) -> ActionOutcome:
    """
    Delete a user with no dependent records.

    Applications and (for program admins) program assignments block deletion.
    Sessions and notifications are removed before the user row.
    """
    application_count = await UserRepository.count_applications(db, user.id)
    if application_count > 0:
        return ActionOutcome(
            status=ResultStatus.ERROR,
            reason=f"Cannot delete {user.email}: has {application_count} applications",
        )

    if user.role == UserRole.PROGRAM_ADMIN:
        program_count = await UserRepository.count_assigned_programs(db, user.id)
        if program_count > 0:
            return ActionOutcome(
                status=ResultStatus.ERROR,
                reason=f"Cannot delete {user.email}: assigned to {program_count} programs",
            )

    snapshot = _user_snapshot(user)

    await UserRepository.delete_sessions(db, user.id)
    await NotificationRepository.delete_for_user(db, user.id)
    await UserRepository.delete(db, user)

    return ActionOutcome(
        status=ResultStatus.SUCCESS,
        audit_action="DELETE_USER_BULK",
        old_values=snapshot,
    )


async def _send_password_reset(
    db: AsyncSession,
    user: User,
    ctx: BulkActionContext,
) -> ActionOutcome:
    """Issue a fresh reset token. The user is always notified."""
    token = generate_secure_token(RESET_TOKEN_BYTES)
    expires_at = datetime.now(UTC) + timedelta(hours=ctx.reset_expiry_hours)

    user.password_reset_token = hash_token(token)
    user.password_reset_expires = expires_at
    await db.flush()

    return ActionOutcome(
        status=ResultStatus.SUCCESS,
        audit_action="PASSWORD_RESET_INITIATED_BULK",
        new_values={"password_reset_expires": expires_at.isoformat()},
        notification=NotificationEvent(
            user_id=user.id,
            title="Password Reset Request",
            message="A password reset has been initiated for your account by an "
            "administrator. Please check your email for reset instructions.",
            type=NotificationType.INFO,
        ),
        reset_token=token,
    )


async def _change_role(db: AsyncSession, user: User, ctx: BulkActionContext) -> ActionOutcome:
    new_role = ctx.new_role
    if new_role is None:
        raise InvalidRoleError()

    if user.role == new_role:
        return ActionOutcome(
            status=ResultStatus.SKIPPED,
            reason=f"Already has role: {new_role.value}",
        )

    old_role = user.role
    user.role = new_role
    await db.flush()

    role_label = new_role.value.replace("_", " ").title()
    return ActionOutcome(
        status=ResultStatus.SUCCESS,
        audit_action="CHANGE_ROLE_BULK",
        old_values={"role": old_role.value},
        new_values={"role": new_role.value},
        notification=_notify(
            ctx,
            user,
            "Role Changed",
            f"Your account role has been changed to: {role_label}",
            NotificationType.INFO,
        ),
    )


async def _verify_email(db: AsyncSession, user: User, ctx: BulkActionContext) -> ActionOutcome:
    if user.email_verified:
        return ActionOutcome(status=ResultStatus.SKIPPED, reason="Email already verified")

    user.email_verified = True
    await db.flush()

    return ActionOutcome(
        status=ResultStatus.SUCCESS,
        audit_action="VERIFY_EMAIL_BULK",
        old_values={"email_verified": False},
        new_values={"email_verified": True},
        notification=_notify(
            ctx,
            user,
            "Email Verified",
            "Your email address has been verified by an administrator.",
            NotificationType.SUCCESS,
        ),
    )


# One handler per action
ACTION_HANDLERS: dict[BulkAction, ActionHandler] = {
    BulkAction.ACTIVATE: _activate,
    BulkAction.DEACTIVATE: _deactivate,
    BulkAction.DELETE: _delete,
    BulkAction.SEND_PASSWORD_RESET: _send_password_reset,
    BulkAction.CHANGE_ROLE: _change_role,
    BulkAction.VERIFY_EMAIL: _verify_email,
}

ACTION_MESSAGES: dict[BulkAction, str] = {
    BulkAction.ACTIVATE: "{count} users activated successfully",
    BulkAction.DEACTIVATE: "{count} users deactivated successfully",
    BulkAction.DELETE: "{count} users deleted successfully",
    BulkAction.SEND_PASSWORD_RESET: "{count} password reset emails sent",
    BulkAction.CHANGE_ROLE: "{count} user roles changed",
    BulkAction.VERIFY_EMAIL: "{count} email addresses verified",
}

_unhandled = set(BulkAction) - (ACTION_HANDLERS.keys() & ACTION_MESSAGES.keys())
if _unhandled:
    raise RuntimeError(f"Bulk actions without handler or message: {sorted(_unhandled)}")


# ============================================
# Request validation
# ============================================


def _normalize_user_id(user_id: str) -> str:
    """Canonical form for comparing ids; malformed ids are kept as given."""
    value = user_id.strip()
    try:
        return str(UUID(value))
    except ValueError:
        return value


def _parse_action(action: str) -> BulkAction:
    if not action or not action.strip():
        raise NoActionSpecifiedError()
    try:
        return BulkAction(action.strip())
    except ValueError as e:
        raise InvalidActionError(action) from e


def _select_targets(user_ids: list[str], actor_id: UUID, max_users: int) -> list[str]:
    """
    Remove the actor and duplicate ids, keeping first-seen order.

    Raises:
        NoUsersSelectedError: If no ids were given
        SelfModificationError: If only the actor was selected
        TooManyUsersError: If the selection exceeds max_users
    """
    candidates = [uid for uid in user_ids if uid and uid.strip()]
    if not candidates:
        raise NoUsersSelectedError()

    actor = str(actor_id)
    targets: list[str] = []
    seen: set[str] = set()
    for uid in candidates:
        normalized = _normalize_user_id(uid)
        if normalized == actor or normalized in seen:
            continue
        seen.add(normalized)
        targets.append(normalized)

    if not targets:
        raise SelfModificationError()

    if len(targets) > max_users:
        raise TooManyUsersError(len(targets), max_users)

    return targets


def _parse_role(action: BulkAction, new_role: str | None) -> UserRole | None:
    if action != BulkAction.CHANGE_ROLE:
        return None
    if not new_role:
        raise InvalidRoleError()
    try:
        return UserRole(new_role.strip())
    except ValueError as e:
        raise InvalidRoleError() from e


# ============================================
# Processor
# ============================================


def _error_summary(error: Exception) -> str:
    """First line of an exception message; database errors append the SQL below it."""
    lines = str(error).strip().splitlines()
    return lines[0] if lines else type(error).__name__


@dataclass
class _PendingResetEmail:
    email: str
    name: str
    token: str


async def _process_user(
    db: AsyncSession,
    action: BulkAction,
    user_id: str,
    ctx: BulkActionContext,
    dispatcher: NotificationDispatcher,
) -> tuple[ProcessedUser, _PendingResetEmail | None]:
    """Apply the action to one user inside its own savepoint."""
    handler = ACTION_HANDLERS[action]
    email: str | None = None

    try:
        async with db.begin_nested():
            user = await UserRepository.get_by_id(db, user_id)
            if user is None:
                logger.warning(f"Bulk {action.value}: user not found: {user_id}")
                return (
                    ProcessedUser(
                        id=user_id,
                        action=action,
                        status=ResultStatus.ERROR,
                        reason=f"User not found: {user_id}",
                    ),
                    None,
                )

            email = user.email
            full_name = user.full_name
            outcome = await handler(db, user, ctx)

            if outcome.status == ResultStatus.SUCCESS:
                await AuditLogRepository.create(
                    db,
                    actor_id=ctx.actor_id,
                    action=outcome.audit_action or f"{action.value.upper()}_USER_BULK",
                    table_name=AUDIT_TABLE,
                    record_id=user_id,
                    old_values=outcome.old_values,
                    new_values=outcome.new_values,
                    ip_address=ctx.ip_address,
                )
                if outcome.notification is not None:
                    await dispatcher(db, outcome.notification)
    except Exception as e:
        logger.warning(f"Bulk {action.value} failed for user {user_id}: {e}", exc_info=True)
        return (
            ProcessedUser(
                id=user_id,
                email=email,
                action=action,
                status=ResultStatus.ERROR,
                reason=f"Error processing user {user_id}: {_error_summary(e)}",
            ),
            None,
        )

    if outcome.status == ResultStatus.ERROR:
        logger.warning(f"Bulk {action.value} refused for user {user_id}: {outcome.reason}")

    pending_email = None
    if outcome.reset_token and email:
        pending_email = _PendingResetEmail(email=email, name=full_name, token=outcome.reset_token)

    return (
        ProcessedUser(
            id=user_id,
            email=email,
            action=action,
            status=outcome.status,
            reason=outcome.reason,
            old_values=outcome.old_values,
            new_values=outcome.new_values,
        ),
        pending_email,
    )


async def _send_reset_emails(pending: list[_PendingResetEmail], expires_in_hours: int) -> None:
    for item in pending:
        try:
            sent = await send_password_reset_email(
                to_email=item.email,
                user_name=item.name,
                token=item.token,
                expires_in_hours=expires_in_hours,
            )
            if not sent:
                logger.error(f"Failed to send password reset email to {item.email}")
        except Exception as e:
            logger.error(f"Exception sending password reset email to {item.email}: {e}")


def _build_response(
    action: BulkAction,
    results: list[ProcessedUser],
) -> BulkActionResponse:
    success_count = sum(1 for r in results if r.status == ResultStatus.SUCCESS)
    error_count = sum(1 for r in results if r.status == ResultStatus.ERROR)
    skipped_count = sum(1 for r in results if r.status == ResultStatus.SKIPPED)
    errors = [r.reason for r in results if r.status == ResultStatus.ERROR and r.reason]

    return BulkActionResponse(
        success=True,
        message=f"Bulk operation completed: {success_count} successful, {error_count} failed",
        statistics=BulkActionStatistics(
            total_selected=len(results),
            success_count=success_count,
            error_count=error_count,
            skipped_count=skipped_count,
            processed_users=results,
        ),
        errors=errors or None,
        action_message=ACTION_MESSAGES[action].format(count=success_count),
    )


async def process_bulk_action(
    db: AsyncSession,
    request: BulkActionRequest,
    actor_id: UUID,
    *,
    dispatcher: NotificationDispatcher = dispatch_notification,
    ip_address: str | None = None,
) -> BulkActionResponse:
    """
    Apply a bulk action to the selected users.

    Args:
        db: Database session (the batch runs in its transaction)
        request: Action, target ids and options
        actor_id: Admin performing the action
        dispatcher: Receives notification events for affected users
        ip_address: Client address recorded in audit entries

    Returns:
        Aggregate result with per-user entries

    Raises:
        BulkActionError: If the request is invalid (nothing is written)
        BulkActionFailedError: If the batch could not be committed
    """
    action = _parse_action(request.action)
    targets = _select_targets(request.user_ids, actor_id, settings.bulk_action_max_users)
    new_role = _parse_role(action, request.new_role)

    ctx = BulkActionContext(
        actor_id=actor_id,
        send_notification=request.send_notification,
        new_role=new_role,
        reset_expiry_hours=settings.password_reset_expiry_hours,
        ip_address=ip_address,
    )

    logger.info(f"Admin {actor_id} running bulk {action.value} on {len(targets)} users")

    results: list[ProcessedUser] = []
    pending_emails: list[_PendingResetEmail] = []

    for user_id in targets:
        result, pending_email = await _process_user(db, action, user_id, ctx, dispatcher)
        results.append(result)
        if pending_email:
            pending_emails.append(pending_email)

    try:
        await db.commit()
    except Exception as e:
        logger.error(f"Bulk {action.value} commit failed, rolling back batch: {e}", exc_info=True)
        await db.rollback()
        raise BulkActionFailedError() from e

    response = _build_response(action, results)
    logger.info(f"Bulk {action.value} by admin {actor_id}: {response.message}")

    if pending_emails:
        await _send_reset_emails(pending_emails, ctx.reset_expiry_hours)

    return response
