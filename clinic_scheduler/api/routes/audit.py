from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.api.deps import get_session, require_permission
from clinic_scheduler.api.schemas.audit import AuditPage
from clinic_scheduler.core.config import settings
from clinic_scheduler.core.permissions import Permission
from clinic_scheduler.models.audit_log import AuditLogPublic
from clinic_scheduler.models.user import User
from clinic_scheduler.services.audit_service import list_audit_logs

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("", response_model=AuditPage)
async def list_audit(
    entity_type: str | None = Query(None),
    page: int = Query(1, ge=1),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_permission(Permission.VIEW_AUDIT)),
) -> AuditPage:
    rows = await list_audit_logs(session, page=page, page_size=settings.audit_page_size, entity_type=entity_type)
    items = [
        AuditLogPublic(
            id=int(log.id),
            actor=actor.name if actor else "System",
            action=log.action,
            entity_type=log.entity_type,
            entity_id=log.entity_id,
            created_at=log.created_at,
        )
        for log, actor in rows
    ]
    return AuditPage(page=page, page_size=settings.audit_page_size, items=items)
