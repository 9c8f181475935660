from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.api.deps import get_session, require_permission
from clinic_scheduler.core.permissions import Permission
from clinic_scheduler.models.location import LocationPublic
from clinic_scheduler.models.user import User
from clinic_scheduler.services.location_service import list_active_locations

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("", response_model=list[LocationPublic])
async def list_locations(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_permission(Permission.MANAGE_APPOINTMENTS)),
) -> list[LocationPublic]:
    locations = await list_active_locations(session)
    return [LocationPublic(id=int(loc.id), name=loc.name, is_active=loc.is_active) for loc in locations]
