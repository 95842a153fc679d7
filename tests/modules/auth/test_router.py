"""
Tests for the login and token refresh endpoints.
"""

import importlib
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.database import get_db
from app.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_token,
)
from app.modules.auth import router
from app.modules.users.models import User, UserRole

# The package re-exports ``router`` (the APIRouter), so fetch the module itself
router_module = importlib.import_module("app.modules.auth.router")

URL = "/auth/login"
REFRESH_URL = "/auth/refresh"


@pytest.fixture
def mock_db():
    db = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    return db


@pytest.fixture
def client(mock_db):
    app = FastAPI()
    app.include_router(router, prefix="/auth")

    async def _get_db():
        yield mock_db

    app.dependency_overrides[get_db] = _get_db
    return TestClient(app)


@pytest.fixture
def user():
    model = MagicMock(spec=User)
    model.id = uuid4()
    model.email = "admin@example.com"
    model.password_hash = "hashed"
    model.first_name = "Grace"
    model.last_name = "Hopper"
    model.full_name = "Grace Hopper"
    model.role = UserRole.ADMIN
    model.program_id = None
    model.is_active = True
    model.email_verified = True
    model.created_at = datetime(2026, 1, 1, tzinfo=UTC)
    model.updated_at = datetime(2026, 1, 2, tzinfo=UTC)
    return model


@pytest.fixture
def user_repo(user):
    with patch.object(router_module, "UserRepository") as repo:
        repo.get_by_email = AsyncMock(return_value=user)
        repo.create_session = AsyncMock()
        yield repo


class TestLogin:
    """Tests for POST /auth/login."""

    def test_login_records_session(self, client, mock_db, user, user_repo):
        with patch.object(router_module, "verify_password", return_value=True):
            response = client.post(URL, json={"email": user.email, "password": "secret"})

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["role"] == "admin"
        assert decode_token(body["access_token"])["role"] == "admin"

        session_kwargs = user_repo.create_session.await_args.kwargs
        assert session_kwargs["user_id"] == user.id
        assert session_kwargs["token_hash"] == hash_token(body["refresh_token"])
        mock_db.commit.assert_awaited_once()

    def test_invalid_password(self, client, user, user_repo):
        with patch.object(router_module, "verify_password", return_value=False):
            response = client.post(URL, json={"email": user.email, "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "INVALID_CREDENTIALS"
        user_repo.create_session.assert_not_awaited()

    def test_inactive_account(self, client, user, user_repo):
        user.is_active = False

        with patch.object(router_module, "verify_password", return_value=True):
            response = client.post(URL, json={"email": user.email, "password": "secret"})

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "ACCOUNT_INACTIVE"


@pytest.fixture
def refresh_token(user):
    return create_refresh_token(subject=str(user.id))


@pytest.fixture
def session_repo(user, user_repo):
    session = MagicMock()
    session.user_id = user.id
    session.expires_at = datetime.now(UTC) + timedelta(days=1)
    user_repo.get_session_by_token_hash = AsyncMock(return_value=session)
    user_repo.get_by_id = AsyncMock(return_value=user)
    return user_repo


class TestRefresh:
    """Tests for POST /auth/refresh."""

    def test_refresh_issues_access_token(self, client, user, session_repo, refresh_token):
        response = client.post(REFRESH_URL, json={"refresh_token": refresh_token})

        assert response.status_code == 200
        body = response.json()
        assert body["refresh_token"] == refresh_token
        claims = decode_token(body["access_token"])
        assert claims["type"] == "access"
        assert claims["sub"] == str(user.id)
        assert claims["role"] == "admin"
        session_repo.get_session_by_token_hash.assert_awaited_once()
        assert session_repo.get_session_by_token_hash.await_args.args[1] == hash_token(
            refresh_token
        )

    def test_refresh_uses_current_role(self, client, user, session_repo, refresh_token):
        user.role = UserRole.STUDENT

        response = client.post(REFRESH_URL, json={"refresh_token": refresh_token})

        assert decode_token(response.json()["access_token"])["role"] == "student"

    def test_revoked_session(self, client, session_repo, refresh_token):
        session_repo.get_session_by_token_hash.return_value = None

        response = client.post(REFRESH_URL, json={"refresh_token": refresh_token})

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "SESSION_REVOKED"
        session_repo.get_by_id.assert_not_awaited()

    def test_expired_session(self, client, session_repo, refresh_token):
        session_repo.get_session_by_token_hash.return_value.expires_at = datetime.now(
            UTC
        ) - timedelta(minutes=1)

        response = client.post(REFRESH_URL, json={"refresh_token": refresh_token})

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "SESSION_REVOKED"

    def test_inactive_account(self, client, user, session_repo, refresh_token):
        user.is_active = False

        response = client.post(REFRESH_URL, json={"refresh_token": refresh_token})

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "ACCOUNT_INACTIVE"

    def test_access_token_rejected(self, client, user, session_repo):
        token = create_access_token(subject=str(user.id), additional_claims={"role": "admin"})

        response = client.post(REFRESH_URL, json={"refresh_token": token})

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "INVALID_TOKEN"
        session_repo.get_session_by_token_hash.assert_not_awaited()
