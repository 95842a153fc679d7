"""Authentication router."""

import logging
from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_token,
    verify_password,
)
from app.modules.auth.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    TokenResponse,
    UserResponse,
)
from app.modules.users.models import User
from app.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

router = APIRouter()


def _access_token_for(user: User) -> str:
    return create_access_token(
        subject=str(user.id),
        additional_claims={
            "email": user.email,
            "role": user.role.value,
            "name": user.full_name,
        },
    )


def _unauthorized(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    A session row is recorded for the refresh token so that deactivating or
    deleting the account revokes it.

    Raises:
        HTTPException 401: Invalid credentials
        HTTPException 403: Account inactive
    """
    user = await UserRepository.get_by_email(db, credentials.email)

    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Failed login attempt for: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "INVALID_CREDENTIALS",
                "message": "Invalid email or password.",
            },
        )

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "error": "ACCOUNT_INACTIVE",
                "message": "Your account has been deactivated.",
            },
        )

    access_token = _access_token_for(user)
    refresh_token = create_refresh_token(subject=str(user.id))

    now = datetime.now(UTC)
    await UserRepository.create_session(
        db,
        user_id=user.id,
        token_hash=hash_token(refresh_token),
        expires_at=now + timedelta(days=settings.refresh_token_expire_days),
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    user.last_login_at = now
    await db.commit()
    # updated_at is server-generated and expired by the flush
    await db.refresh(user)

    logger.info(f"User logged in: {user.email} (role: {user.role.value})")

    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        user=UserResponse(
            id=str(user.id),
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role.value,
            program_id=str(user.program_id) if user.program_id else None,
            is_active=user.is_active,
            email_verified=user.email_verified,
            created_at=user.created_at.isoformat(),
            updated_at=user.updated_at.isoformat(),
        ),
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """
    Issue a new access token for a refresh token.

    The refresh token must still have its session row; deactivating or
    deleting the account removes those rows.

    Raises:
        HTTPException 401: Invalid token, revoked or expired session, or
            inactive account
    """
    payload = decode_token(data.refresh_token)
    if payload is None or payload.get("type") != "refresh":
        raise _unauthorized("INVALID_TOKEN", "Invalid or expired refresh token.")

    session = await UserRepository.get_session_by_token_hash(db, hash_token(data.refresh_token))
    if session is None or session.expires_at <= datetime.now(UTC):
        logger.warning(f"Refresh attempted with revoked session for: {payload.get('sub')}")
        raise _unauthorized("SESSION_REVOKED", "This session has ended. Please log in again.")

    user = await UserRepository.get_by_id(db, session.user_id)
    if user is None or not user.is_active:
        raise _unauthorized("ACCOUNT_INACTIVE", "Your account has been deactivated.")

    return TokenResponse(
        access_token=_access_token_for(user),
        refresh_token=data.refresh_token,
        token_type="bearer",
    )
