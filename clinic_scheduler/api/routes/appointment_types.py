from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.api.deps import get_session, require_permission
from clinic_scheduler.core.permissions import Permission
from clinic_scheduler.models.appointment_type import (
    AppointmentType,
    AppointmentTypeCreate,
    AppointmentTypePublic,
    AppointmentTypeUpdate,
)
from clinic_scheduler.models.user import User
from clinic_scheduler.services.appointment_type_service import (
    create_appointment_type,
    list_appointment_types,
    update_appointment_type,
)

router = APIRouter(prefix="/appointment-types", tags=["appointment-types"])

manage_schedules = require_permission(Permission.MANAGE_SCHEDULES)


def _to_public(t: AppointmentType) -> AppointmentTypePublic:
    return AppointmentTypePublic.model_validate(t, from_attributes=True)


@router.get("", response_model=list[AppointmentTypePublic])
async def list_types(
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(manage_schedules),
) -> list[AppointmentTypePublic]:
    return [_to_public(t) for t in await list_appointment_types(session)]


@router.post("", response_model=AppointmentTypePublic, status_code=status.HTTP_201_CREATED)
async def create_type(
    body: AppointmentTypeCreate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(manage_schedules),
) -> AppointmentTypePublic:
    return _to_public(await create_appointment_type(session, current_user.id, body))


@router.patch("/{type_id}", response_model=AppointmentTypePublic)
async def update_type(
    type_id: int,
    body: AppointmentTypeUpdate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(manage_schedules),
) -> AppointmentTypePublic:
    updated = await update_appointment_type(session, current_user.id, type_id, body)
    if not updated:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment type not found")
    return _to_public(updated)
