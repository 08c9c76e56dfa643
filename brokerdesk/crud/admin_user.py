# brokerdesk/crud/admin_user.py

from typing import List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from brokerdesk.database.models import AdminCountryAssignment, AdminUser

logger = logging.getLogger(__name__)


async def get_admin(db: AsyncSession, admin_id: int) -> Optional[AdminUser]:
    return await db.get(AdminUser, admin_id)


async def get_admin_by_username(db: AsyncSession, username: str) -> Optional[AdminUser]:
    result = await db.execute(select(AdminUser).filter(AdminUser.username == username))
    return result.scalars().first()


async def get_admin_by_email(db: AsyncSession, email: str) -> Optional[AdminUser]:
    result = await db.execute(select(AdminUser).filter(AdminUser.email == email))
    return result.scalars().first()


async def get_all_admins(db: AsyncSession) -> List[AdminUser]:
    result = await db.execute(select(AdminUser).order_by(AdminUser.created_at.desc(), AdminUser.id.desc()))
    return list(result.scalars().all())


async def create_admin(
    db: AsyncSession,
    *,
    username: str,
    email: str,
    hashed_password: str,
    full_name: str,
    role: str,
    created_by: Optional[int] = None,
) -> AdminUser:
    db_admin = AdminUser(
        username=username,
        email=email,
        hashed_password=hashed_password,
        full_name=full_name,
        role=role,
        created_by=created_by,
    )
    db.add(db_admin)
    await db.flush()
    await db.refresh(db_admin)
    logger.info(f"Created admin ID {db_admin.id} ({username}) with role {role}")
    return db_admin


async def get_country_assignments(db: AsyncSession, admin_id: int) -> List[AdminCountryAssignment]:
    result = await db.execute(
        select(AdminCountryAssignment)
        .filter(AdminCountryAssignment.admin_id == admin_id)
        .order_by(AdminCountryAssignment.id)
    )
    return list(result.scalars().all())


async def add_country_assignment(db: AsyncSession, admin_id: int, country: str) -> AdminCountryAssignment:
    """
    Assigns a country to an admin. An existing assignment for the same
    country is returned instead of creating a duplicate.
    """
    result = await db.execute(
        select(AdminCountryAssignment).filter(
            AdminCountryAssignment.admin_id == admin_id,
            AdminCountryAssignment.country == country,
        )
    )
    existing = result.scalars().first()
    if existing:
        return existing

    assignment = AdminCountryAssignment(admin_id=admin_id, country=country)
    db.add(assignment)
    await db.flush()
    await db.refresh(assignment)
    return assignment


async def remove_country_assignment(db: AsyncSession, admin_id: int, country: str) -> int:
    """Returns the number of assignments removed."""
    assignments = await db.execute(
        select(AdminCountryAssignment).filter(
            AdminCountryAssignment.admin_id == admin_id,
            AdminCountryAssignment.country == country,
        )
    )
    removed = 0
    for assignment in assignments.scalars().all():
        await db.delete(assignment)
        removed += 1
    await db.flush()
    return removed
