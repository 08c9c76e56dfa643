# scripts/create_admin.py

import asyncio
import os
import sys

# Script lives in scripts/; make the project root importable when run directly
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv
load_dotenv()

from brokerdesk.database.session import AsyncSessionLocal, engine
from brokerdesk.core.security import get_password_hash
from brokerdesk.crud import admin_user as crud_admin_user
from brokerdesk.services.admin_scope import AdminRole


async def create_initial_admin() -> int:
    """
    Creates the first super admin from INITIAL_ADMIN_* environment variables.
    Does nothing when the username or email is already taken.
    """
    username = os.getenv("INITIAL_ADMIN_USERNAME")
    email = os.getenv("INITIAL_ADMIN_EMAIL")
    password = os.getenv("INITIAL_ADMIN_PASSWORD")
    full_name = os.getenv("INITIAL_ADMIN_NAME", "Super Administrator")

    missing = [name for name, value in (
        ("INITIAL_ADMIN_USERNAME", username),
        ("INITIAL_ADMIN_EMAIL", email),
        ("INITIAL_ADMIN_PASSWORD", password),
    ) if not value]
    if missing:
        print(f"ERROR: {', '.join(missing)} must be set.")
        return 1

    async with AsyncSessionLocal() as db:
        async with db.begin():
            existing = await crud_admin_user.get_admin_by_username(db, username)
            if existing is None:
                existing = await crud_admin_user.get_admin_by_email(db, email)
            if existing is not None:
                print(f"Admin {existing.username} (ID: {existing.id}) already exists. Skipping creation.")
                return 0

            admin = await crud_admin_user.create_admin(
                db,
                username=username,
                email=email,
                hashed_password=get_password_hash(password),
                full_name=full_name,
                role=AdminRole.SUPER_ADMIN.value,
            )
            print(f"Super admin {admin.username} created with ID {admin.id}")
    return 0


async def main() -> int:
    try:
        return await create_initial_admin()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    # export INITIAL_ADMIN_USERNAME=... INITIAL_ADMIN_EMAIL=... INITIAL_ADMIN_PASSWORD=...
    # python scripts/create_admin.py
    sys.exit(asyncio.run(main()))
