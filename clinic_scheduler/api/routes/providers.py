from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.api.deps import get_session, require_permission
from clinic_scheduler.core.permissions import Permission
from clinic_scheduler.models.user import ProviderPublic, User
from clinic_scheduler.services.provider_service import list_active_providers

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("", response_model=list[ProviderPublic])
async def list_providers(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_permission(Permission.MANAGE_SCHEDULES)),
) -> list[ProviderPublic]:
    providers = await list_active_providers(session)
    return [ProviderPublic(id=int(p.id), name=p.name, email=p.email) for p in providers]
