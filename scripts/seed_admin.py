"""
Seed Admin User

Creates the initial administrator for the SAMS API.
Credentials are read from the environment:

    SEED_ADMIN_EMAIL, SEED_ADMIN_PASSWORD,
    SEED_ADMIN_FIRST_NAME (default "System"), SEED_ADMIN_LAST_NAME (default "Admin")

Usage:
    SEED_ADMIN_EMAIL=admin@example.com SEED_ADMIN_PASSWORD=... python scripts/seed_admin.py
"""

import asyncio
import os
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from app.core.database import async_session_maker, close_db
from app.core.security import hash_password
from app.modules.users.models import UserRole
from app.modules.users.repository import UserRepository


async def seed_admin() -> int:
    """Create the admin user if it doesn't exist."""
    email = os.getenv("SEED_ADMIN_EMAIL")
    password = os.getenv("SEED_ADMIN_PASSWORD")
    if not email or not password:
        print("SEED_ADMIN_EMAIL and SEED_ADMIN_PASSWORD must be set")
        return 1

    first_name = os.getenv("SEED_ADMIN_FIRST_NAME", "System")
    last_name = os.getenv("SEED_ADMIN_LAST_NAME", "Admin")

    async with async_session_maker() as db:
        if await UserRepository.email_exists(db, email):
            print(f"User already exists: {email}")
            return 0

        admin_user = await UserRepository.create(
            db,
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=UserRole.ADMIN,
            is_active=True,
            email_verified=True,
        )
        await db.commit()

        print("Admin created successfully!")
        print(f"  Email: {email}")
        print(f"  Name: {first_name} {last_name}")
        print(f"  ID: {admin_user.id}")

    return 0


async def main() -> int:
    try:
        return await seed_admin()
    finally:
        await close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
