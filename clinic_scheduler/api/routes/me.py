from fastapi import APIRouter, Depends

from clinic_scheduler.api.deps import get_current_user
from clinic_scheduler.core.permissions import permissions_for_role
from clinic_scheduler.models.user import User, UserPublic

router = APIRouter(tags=["me"])


@router.get("/me", response_model=UserPublic)
async def me(current_user: User = Depends(get_current_user)) -> UserPublic:
    return UserPublic(
        id=int(current_user.id),
        email=current_user.email,
        name=current_user.name,
        role=current_user.role,
        is_active=current_user.is_active,
        permissions=sorted(p.value for p in permissions_for_role(current_user.role)),
    )
