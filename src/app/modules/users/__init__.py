"""
Users module - User accounts, sessions and maintenance jobs.
"""

from app.modules.users.models import User, UserRole, UserSession
from app.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "UserSession", "UserRepository"]
