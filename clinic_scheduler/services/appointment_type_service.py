from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.models.appointment_type import (
    AppointmentType,
    AppointmentTypeCreate,
    AppointmentTypeUpdate,
)
from clinic_scheduler.services.audit_service import record_audit, snapshot

ENTITY_TYPE = "AppointmentType"


async def get_appointment_type(session: AsyncSession, type_id: int) -> AppointmentType | None:
    result = await session.execute(select(AppointmentType).where(AppointmentType.id == type_id))
    return result.scalar_one_or_none()


async def list_appointment_types(session: AsyncSession) -> list[AppointmentType]:
    result = await session.execute(select(AppointmentType).order_by(AppointmentType.name))
    return list(result.scalars().all())


async def create_appointment_type(
    session: AsyncSession, actor_user_id: int, data: AppointmentTypeCreate
) -> AppointmentType:
    appointment_type = AppointmentType(**data.model_dump(exclude_none=True))
    session.add(appointment_type)
    await session.flush()
    await session.refresh(appointment_type)
    await record_audit(
        session, actor_user_id, "CREATE", ENTITY_TYPE, appointment_type.id, after=appointment_type
    )
    return appointment_type


async def update_appointment_type(
    session: AsyncSession, actor_user_id: int, type_id: int, data: AppointmentTypeUpdate
) -> AppointmentType | None:
    appointment_type = await get_appointment_type(session, type_id)
    if not appointment_type:
        return None
    before = snapshot(appointment_type)
    for key, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(appointment_type, key, value)
    session.add(appointment_type)
    await session.flush()
    await session.refresh(appointment_type)
    await record_audit(
        session, actor_user_id, "UPDATE", ENTITY_TYPE, appointment_type.id,
        before=before, after=appointment_type,
    )
    return appointment_type
