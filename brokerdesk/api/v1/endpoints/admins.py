# brokerdesk/api/v1/endpoints/admins.py

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from brokerdesk.database.session import get_db
from brokerdesk.core.security import require_super_admin
from brokerdesk.schemas.admin_user import (
    AdminCreate,
    AdminResponse,
    AdminUpdate,
    CountryAssignmentCreate,
    CountryAssignmentResponse,
)
from brokerdesk.schemas.auth import StatusResponse
from brokerdesk.services import admin_service
from brokerdesk.services.admin_scope import SuperAdmin

router = APIRouter(prefix="/admin/admins", tags=["admin management"])


@router.post("", response_model=AdminResponse, status_code=status.HTTP_201_CREATED)
async def create_admin(
    data: AdminCreate,
    actor: SuperAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    admin = await admin_service.create_admin(db, data, actor)
    await db.commit()
    return await admin_service.to_response(db, admin)


@router.get("", response_model=List[AdminResponse])
async def list_admins(
    actor: SuperAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    return [await admin_service.to_response(db, admin) for admin in await admin_service.list_admins(db)]


@router.patch("/{admin_id}", response_model=AdminResponse)
async def update_admin(
    admin_id: int,
    data: AdminUpdate,
    actor: SuperAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    admin = await admin_service.update_admin(db, admin_id, data, actor)
    await db.commit()
    return await admin_service.to_response(db, admin)


@router.post("/{admin_id}/countries", response_model=CountryAssignmentResponse, status_code=status.HTTP_201_CREATED)
async def assign_country(
    admin_id: int,
    data: CountryAssignmentCreate,
    actor: SuperAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    assignment = await admin_service.assign_country(db, admin_id, data.country, actor)
    await db.commit()
    return assignment


@router.delete("/{admin_id}/countries/{country}", response_model=StatusResponse)
async def remove_country(
    admin_id: int,
    country: str,
    actor: SuperAdmin = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    await admin_service.remove_country(db, admin_id, country, actor)
    await db.commit()
    return StatusResponse(message=f"{country} removed")
