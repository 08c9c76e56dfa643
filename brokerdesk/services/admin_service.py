# brokerdesk/services/admin_service.py

"""Administrator management. Every operation here is reserved for super admins."""

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.exceptions import Conflict, NotFound, ValidationError
from brokerdesk.core.logging_config import admin_logger
from brokerdesk.core.security import get_password_hash
from brokerdesk.crud import admin_user as crud_admin_user
from brokerdesk.database.models import AdminCountryAssignment, AdminUser
from brokerdesk.schemas.admin_user import AdminCreate, AdminResponse, AdminUpdate
from brokerdesk.services import audit_service
from brokerdesk.services.admin_scope import AdminRole, SuperAdmin


async def to_response(db: AsyncSession, admin: AdminUser) -> AdminResponse:
    assignments = await crud_admin_user.get_country_assignments(db, admin.id)
    response = AdminResponse.model_validate(admin, from_attributes=True)
    response.countries = [assignment.country for assignment in assignments]
    return response


async def create_admin(db: AsyncSession, data: AdminCreate, actor: SuperAdmin) -> AdminUser:
    if await crud_admin_user.get_admin_by_username(db, data.username):
        raise Conflict("Username already taken")
    if await crud_admin_user.get_admin_by_email(db, data.email):
        raise Conflict("Email already in use")

    admin = await crud_admin_user.create_admin(
        db,
        username=data.username,
        email=data.email,
        hashed_password=get_password_hash(data.password),
        full_name=data.full_name,
        role=data.role.value,
        created_by=actor.admin_id,
    )
    await audit_service.log_activity(
        db, actor.admin_id, "create_admin", "admin", admin.id, f"Created {admin.username} as {admin.role}",
    )
    return admin


async def list_admins(db: AsyncSession) -> List[AdminUser]:
    return await crud_admin_user.get_all_admins(db)


async def update_admin(db: AsyncSession, admin_id: int, data: AdminUpdate, actor: SuperAdmin) -> AdminUser:
    admin = await crud_admin_user.get_admin(db, admin_id)
    if admin is None:
        raise NotFound(f"Admin {admin_id} not found")

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if admin.id == actor.admin_id and (changes.get("enabled") is False or changes.get("role") not in (None, AdminRole.SUPER_ADMIN)):
        raise ValidationError("Super admins cannot disable or demote themselves")
    if "email" in changes and changes["email"] != admin.email:
        existing = await crud_admin_user.get_admin_by_email(db, changes["email"])
        if existing and existing.id != admin.id:
            raise Conflict("Email already in use")

    if "password" in changes:
        admin.hashed_password = get_password_hash(changes.pop("password"))
    if "role" in changes:
        changes["role"] = changes["role"].value
    for field, value in changes.items():
        setattr(admin, field, value)
    await db.flush()
    await db.refresh(admin)

    shown = sorted(data.model_dump(exclude_unset=True, exclude_none=True).keys())
    admin_logger.info(f"Admin ID {actor.admin_id} updated admin ID {admin.id}: {', '.join(shown)}")
    await audit_service.log_activity(db, actor.admin_id, "update_admin", "admin", admin.id, f"Updated fields: {', '.join(shown)}")
    return admin


async def assign_country(db: AsyncSession, admin_id: int, country: str, actor: SuperAdmin) -> AdminCountryAssignment:
    admin = await crud_admin_user.get_admin(db, admin_id)
    if admin is None:
        raise NotFound(f"Admin {admin_id} not found")
    if admin.role != AdminRole.MIDDLE_ADMIN.value:
        raise ValidationError("Countries can only be assigned to middle admins")

    assignment = await crud_admin_user.add_country_assignment(db, admin.id, country.strip())
    await audit_service.log_activity(db, actor.admin_id, "assign_country", "admin", admin.id, f"Assigned {assignment.country}")
    return assignment


async def remove_country(db: AsyncSession, admin_id: int, country: str, actor: SuperAdmin) -> None:
    removed = await crud_admin_user.remove_country_assignment(db, admin_id, country)
    if not removed:
        raise NotFound(f"Country {country} is not assigned to admin {admin_id}")
    await audit_service.log_activity(db, actor.admin_id, "remove_country", "admin", admin_id, f"Removed {country}")
