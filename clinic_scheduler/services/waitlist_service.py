import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.models.appointment import Appointment, AppointmentCreate
from clinic_scheduler.models.location import Location
from clinic_scheduler.models.waitlist import (
    WaitlistCreate,
    WaitlistRequest,
    WaitlistStatus,
    WaitlistUpdate,
)
from clinic_scheduler.services.appointment_service import create_appointment
from clinic_scheduler.services.audit_service import record_audit, snapshot
from clinic_scheduler.services.provider_service import list_active_providers
from clinic_scheduler.services.scheduling import to_naive_utc

logger = logging.getLogger(__name__)

ENTITY_TYPE = "WaitlistRequest"


class WaitlistNotBookableError(ValueError):
    """The request lacks a preferred time or type, or was already booked."""


class NoResourcesError(Exception):
    """No active provider or location to book with."""


async def get_waitlist_request(session: AsyncSession, request_id: int) -> WaitlistRequest | None:
    result = await session.execute(select(WaitlistRequest).where(WaitlistRequest.id == request_id))
    return result.scalar_one_or_none()


async def list_waitlist(session: AsyncSession, status: str | None = None) -> list[WaitlistRequest]:
    q = select(WaitlistRequest).order_by(WaitlistRequest.created_at.desc(), WaitlistRequest.id.desc())
    if status:
        q = q.where(WaitlistRequest.status == status)
    result = await session.execute(q)
    return list(result.scalars().all())


async def create_waitlist_request(
    session: AsyncSession, actor_user_id: int, data: WaitlistCreate
) -> WaitlistRequest:
    request = WaitlistRequest(
        patient_id=data.patient_id,
        appointment_type_id=data.appointment_type_id,
        preferred_start_at=to_naive_utc(data.preferred_start_at) if data.preferred_start_at else None,
        preferred_end_at=to_naive_utc(data.preferred_end_at) if data.preferred_end_at else None,
        priority=data.priority,
        note=data.note,
    )
    session.add(request)
    await session.flush()
    await session.refresh(request)
    await record_audit(session, actor_user_id, "CREATE", ENTITY_TYPE, request.id, after=request)
    return request


async def update_waitlist_request(
    session: AsyncSession, actor_user_id: int, request: WaitlistRequest, data: WaitlistUpdate
) -> WaitlistRequest:
    before = snapshot(request)
    if data.status:
        request.status = data.status.value
    if data.note is not None:
        request.note = data.note
    if data.priority is not None:
        request.priority = data.priority
    session.add(request)
    await session.flush()
    await session.refresh(request)
    await record_audit(session, actor_user_id, "UPDATE", ENTITY_TYPE, request.id, before=before, after=request)
    return request


async def _first_active_location(session: AsyncSession) -> Location | None:
    result = await session.execute(
        select(Location).where(Location.is_active.is_(True)).order_by(Location.id).limit(1)
    )
    return result.scalar_one_or_none()


async def book_waitlist_request(
    session: AsyncSession,
    actor_user_id: int,
    request: WaitlistRequest,
    provider_id: int | None = None,
    location_id: int | None = None,
    allow_override: bool = False,
) -> Appointment:
    """Turn a waitlist request into an appointment at its preferred start.

    The end comes from the appointment type; preferred_end_at bounds the
    patient's availability window and is not used as the appointment end.
    Raises AppointmentConflictError like any other booking.
    """
    if request.status == WaitlistStatus.BOOKED.value:
        raise WaitlistNotBookableError("Waitlist request is already booked.")
    if not request.preferred_start_at or not request.appointment_type_id:
        raise WaitlistNotBookableError("Waitlist request is missing preferred time or appointment type.")

    if provider_id is None:
        providers = await list_active_providers(session)
        if not providers:
            raise NoResourcesError("No provider available.")
        provider_id = providers[0].id
    if location_id is None:
        location = await _first_active_location(session)
        if not location:
            raise NoResourcesError("No location available.")
        location_id = location.id

    appointment = await create_appointment(
        session,
        actor_user_id,
        AppointmentCreate(
            patient_id=request.patient_id,
            provider_id=provider_id,
            location_id=location_id,
            appointment_type_id=request.appointment_type_id,
            start_at=request.preferred_start_at,
        ),
        allow_override=allow_override,
    )

    previous = request.status
    request.status = WaitlistStatus.BOOKED.value
    request.appointment_id = appointment.id
    session.add(request)
    await session.flush()
    await record_audit(
        session,
        actor_user_id,
        "STATUS_CHANGE",
        ENTITY_TYPE,
        request.id,
        before={"status": previous},
        after={"status": request.status, "appointment_id": appointment.id},
    )
    logger.info("Waitlist request %s booked as appointment %s", request.id, appointment.id)
    return appointment
