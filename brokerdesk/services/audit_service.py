# brokerdesk/services/audit_service.py

"""
Activity audit logger.

Entries are written inside a SAVEPOINT of the caller's transaction, so they
commit together with the action they describe. A failed write is rolled back
to the savepoint and reported to the audit log file; it never fails the
calling operation.
"""

from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from brokerdesk.core.logging_config import audit_logger
from brokerdesk.crud import activity_log as crud_activity_log
from brokerdesk.database.models import ActivityLog
from brokerdesk.services.admin_scope import AdminIdentity, SuperAdmin


async def log_activity(
    db: AsyncSession,
    admin_id: Optional[int],
    action: str,
    entity: str,
    entity_id: Optional[object] = None,
    details: Optional[str] = None,
    user_id: Optional[int] = None,
    ip_address: Optional[str] = None,
) -> None:
    """
    Appends an audit entry. ``admin_id`` None marks a system-initiated action.
    """
    try:
        async with db.begin_nested():
            await crud_activity_log.create_activity_log(
                db,
                admin_id=admin_id,
                user_id=user_id,
                action=action,
                entity=entity,
                entity_id=str(entity_id) if entity_id is not None else None,
                details=details,
                ip_address=ip_address,
            )
        audit_logger.info(f"admin={admin_id or 'system'} action={action} entity={entity}:{entity_id} details={details}")
    except Exception as e:
        audit_logger.error(f"Failed to write audit entry action={action} entity={entity}:{entity_id}: {e}", exc_info=True)


async def list_activity(db: AsyncSession, identity: AdminIdentity, limit: int = 200) -> List[ActivityLog]:
    """Super admins read the whole trail; everyone else reads their own."""
    if isinstance(identity, SuperAdmin):
        return await crud_activity_log.get_activity_logs(db, limit=limit)
    return await crud_activity_log.get_activity_logs(db, admin_id=identity.admin_id, limit=limit)
