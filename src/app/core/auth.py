"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints.
Validates bearer JWTs issued by the login endpoint and enforces the admin
role on administrative routes. The account behind the token is re-read on
every request, so deactivation, demotion or deletion takes effect at once.

SECURITY NOTE:
- Development mode auth bypass is ONLY enabled when PYTHON_ENV=development
- Production environments MUST set PYTHON_ENV=production to disable test tokens
"""

import logging
import os
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.security import decode_token
from app.modules.users.models import UserRole
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)


@dataclass
class AdminUser:
    """
    Represents an authenticated administrator.

    Populated from JWT claims after token validation.

    Attributes:
        id: User's unique identifier (UUID)
        email: User's email address
        role: User's role (must be 'admin' for admin endpoints)
        name: User's display name (optional)
    """

    id: UUID
    email: str
    role: str
    name: str | None = None

    def __str__(self) -> str:
        return f"AdminUser(id={self.id}, email={self.email}, role={self.role})"


def _is_dev_mode_safe() -> bool:
    """
    Check if development mode auth is safe to enable.

    Both the settings and the raw PYTHON_ENV variable must agree that this
    is not a production or staging deployment.
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()

    is_safe = (
        settings.is_development
        and not settings.is_production
        and env_var not in ("production", "staging")
    )

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_ADMIN = AdminUser(
    id=UUID("00000000-0000-0000-0000-000000000001"),
    email="admin@sams.dev",
    role=UserRole.ADMIN.value,
    name="Development Admin",
)


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _validate_jwt_token(token: str) -> AdminUser:
    """
    Validate JWT token and extract user claims.

    Args:
        token: JWT token string from Authorization header

    Returns:
        AdminUser object with claims from the token

    Raises:
        HTTPException 401: If token is invalid or expired
    """
    if _DEVELOPMENT_MODE and token == "dev-token":
        logger.debug("Development mode: Using test token")
        return _DEV_ADMIN

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired authentication token.")

    if payload.get("type", "access") != "access":
        logger.warning(f"Invalid token type: {payload.get('type')}")
        raise _unauthorized("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        return AdminUser(
            id=UUID(user_id_str),
            email=payload.get("email", ""),
            role=payload.get("role", ""),
            name=payload.get("name"),
        )
    except (ValueError, KeyError) as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _unauthorized(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_admin_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> AdminUser:
    """
    FastAPI dependency that validates the JWT token and returns the admin user.

    Usage:
        @router.post("/admin/endpoint")
        async def admin_endpoint(
            admin: AdminUser = Depends(get_current_admin_user)
        ):
            # admin.id, admin.email, admin.role are available

    Raises:
        HTTPException 401: If token is missing, invalid, or expired, or the
            account no longer exists or is inactive
        HTTPException 403: If the account is not currently an admin
    """
    user = await _validate_jwt_token(credentials.credentials)

    if user is not _DEV_ADMIN:
        account = await UserRepository.get_by_id(db, user.id)
        if account is None or not account.is_active:
            logger.warning(f"Token presented for missing or inactive account: {user.id}")
            raise _unauthorized("ACCOUNT_INACTIVE", "This account is no longer active.")
        # Role changes apply before the token expires
        user.role = account.role.value

    if user.role != UserRole.ADMIN.value:
        logger.warning(
            f"Access denied: User {user.id} ({user.email}) has role '{user.role}', "
            "but 'admin' is required"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ADMIN_ACCESS_REQUIRED",
                "message": "Administrator access is required for this endpoint.",
            },
        )

    logger.debug(f"Authenticated admin: {user.id} ({user.email})")
    return user


__all__ = [
    "AdminUser",
    "get_current_admin_user",
]
