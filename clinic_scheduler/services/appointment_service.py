import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.core.config import settings
from clinic_scheduler.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
    AppointmentUpdate,
)
from clinic_scheduler.services.audit_service import record_audit, snapshot
from clinic_scheduler.services.scheduling import (
    ConflictCheckRequest,
    ConflictResult,
    check_conflicts,
    resolve_end_time,
    to_naive_utc,
    validate_interval,
)

logger = logging.getLogger(__name__)

ENTITY_TYPE = "Appointment"

# Advisory lock namespaces (first key of pg_advisory_xact_lock(int, int))
_PROVIDER_LOCK = 1
_LOCATION_LOCK = 2


def _utc_naive_now() -> datetime:
    """Naive UTC for comparison with TIMESTAMP WITHOUT TIME ZONE."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentConflictError(Exception):
    """The requested slot overlaps an existing booking and no override was allowed."""

    def __init__(self, result: ConflictResult) -> None:
        super().__init__("This time slot is already booked.")
        self.result = result


@dataclass(frozen=True)
class AppointmentFilters:
    start: datetime | None = None
    end: datetime | None = None
    provider_id: int | None = None
    location_id: int | None = None
    patient_id: int | None = None


async def _lock_booking_keys(session: AsyncSession, provider_id: int, location_id: int | None) -> None:
    """Serialize check-then-write for the same provider/location until the transaction ends.

    Only PostgreSQL has advisory locks; elsewhere the check and write still share one transaction.
    """
    if session.get_bind().dialect.name != "postgresql":
        return
    await session.execute(select(func.pg_advisory_xact_lock(_PROVIDER_LOCK, provider_id)))
    if location_id is not None:
        await session.execute(select(func.pg_advisory_xact_lock(_LOCATION_LOCK, location_id)))


async def _guard_slot(
    session: AsyncSession,
    request: ConflictCheckRequest,
    allow_override: bool,
) -> ConflictResult:
    await _lock_booking_keys(session, request.provider_id, request.location_id)
    conflicts = await check_conflicts(session, request, settings.conflict_ignored_statuses_list)
    if conflicts.has_conflict:
        if not allow_override:
            raise AppointmentConflictError(conflicts)
        logger.warning(
            "Booking conflict overridden for provider %s at %s-%s (provider=%s, location=%s)",
            request.provider_id,
            request.start_at,
            request.end_at,
            conflicts.provider_conflict,
            conflicts.location_conflict,
        )
    return conflicts


async def preview_booking(
    session: AsyncSession,
    provider_id: int,
    appointment_type_id: int,
    start_at: datetime,
    end_at: datetime | None = None,
    location_id: int | None = None,
    exclude_appointment_id: int | None = None,
) -> tuple[datetime, ConflictResult]:
    """Resolve the end time and report conflicts without writing anything."""
    start = to_naive_utc(start_at)
    end = await resolve_end_time(
        session, appointment_type_id, start, to_naive_utc(end_at) if end_at else None
    )
    validate_interval(start, end)
    conflicts = await check_conflicts(
        session,
        ConflictCheckRequest(
            provider_id=provider_id,
            location_id=location_id,
            start_at=start,
            end_at=end,
            exclude_appointment_id=exclude_appointment_id,
        ),
        settings.conflict_ignored_statuses_list,
    )
    return end, conflicts


async def create_appointment(
    session: AsyncSession,
    actor_user_id: int,
    data: AppointmentCreate,
    allow_override: bool = False,
) -> Appointment:
    start = to_naive_utc(data.start_at)
    end = await resolve_end_time(
        session, data.appointment_type_id, start, to_naive_utc(data.end_at) if data.end_at else None
    )
    validate_interval(start, end)
    await _guard_slot(
        session,
        ConflictCheckRequest(
            provider_id=data.provider_id,
            location_id=data.location_id,
            start_at=start,
            end_at=end,
        ),
        allow_override,
    )
    appointment = Appointment(
        patient_id=data.patient_id,
        provider_id=data.provider_id,
        location_id=data.location_id,
        appointment_type_id=data.appointment_type_id,
        start_at=start,
        end_at=end,
        status=(data.status or AppointmentStatus.SCHEDULED).value,
        reason=data.reason,
        notes=data.notes,
        created_by_user_id=actor_user_id,
    )
    session.add(appointment)
    await session.flush()
    await session.refresh(appointment)
    await record_audit(session, actor_user_id, "CREATE", ENTITY_TYPE, appointment.id, after=appointment)
    logger.info(
        "Appointment %s booked for provider %s at %s-%s",
        appointment.id,
        appointment.provider_id,
        appointment.start_at,
        appointment.end_at,
    )
    return appointment


async def get_appointment(session: AsyncSession, appointment_id: int) -> Appointment | None:
    result = await session.execute(select(Appointment).where(Appointment.id == appointment_id))
    return result.scalar_one_or_none()


async def list_appointments(
    session: AsyncSession, filters: AppointmentFilters | None = None
) -> list[Appointment]:
    filters = filters or AppointmentFilters()
    q = select(Appointment).order_by(Appointment.start_at, Appointment.id)
    if filters.start:
        q = q.where(Appointment.start_at >= to_naive_utc(filters.start))
    if filters.end:
        q = q.where(Appointment.end_at <= to_naive_utc(filters.end))
    if filters.provider_id is not None:
        q = q.where(Appointment.provider_id == filters.provider_id)
    if filters.location_id is not None:
        q = q.where(Appointment.location_id == filters.location_id)
    if filters.patient_id is not None:
        q = q.where(Appointment.patient_id == filters.patient_id)
    result = await session.execute(q)
    return list(result.scalars().all())


async def update_appointment(
    session: AsyncSession,
    actor_user_id: int,
    appointment: Appointment,
    data: AppointmentUpdate,
    allow_override: bool = False,
) -> Appointment:
    """Reschedule and/or edit an appointment.

    End time: an explicit end wins; a new type re-derives it from the type's
    duration; moving only the start keeps the current duration.
    """
    before = snapshot(appointment)
    fields = data.model_dump(exclude_unset=True)

    start = to_naive_utc(data.start_at) if data.start_at else appointment.start_at
    type_id = data.appointment_type_id or appointment.appointment_type_id
    if data.end_at:
        explicit_end = to_naive_utc(data.end_at)
    elif data.appointment_type_id:
        explicit_end = None
    else:
        explicit_end = start + (appointment.end_at - appointment.start_at)
    end = await resolve_end_time(session, type_id, start, explicit_end)
    validate_interval(start, end)

    provider_id = data.provider_id or appointment.provider_id
    location_id = fields["location_id"] if "location_id" in fields else appointment.location_id

    slot_changed = (
        provider_id != appointment.provider_id
        or location_id != appointment.location_id
        or start != appointment.start_at
        or end != appointment.end_at
    )
    if slot_changed:
        await _guard_slot(
            session,
            ConflictCheckRequest(
                provider_id=provider_id,
                location_id=location_id,
                start_at=start,
                end_at=end,
                exclude_appointment_id=appointment.id,
            ),
            allow_override,
        )

    appointment.provider_id = provider_id
    appointment.location_id = location_id
    appointment.appointment_type_id = type_id
    appointment.start_at = start
    appointment.end_at = end
    if data.status:
        appointment.status = data.status.value
    if data.reason is not None:
        appointment.reason = data.reason
    if data.notes is not None:
        appointment.notes = data.notes
    appointment.updated_by_user_id = actor_user_id
    appointment.updated_at = _utc_naive_now()
    session.add(appointment)
    await session.flush()
    await session.refresh(appointment)
    await record_audit(
        session, actor_user_id, "UPDATE", ENTITY_TYPE, appointment.id, before=before, after=appointment
    )
    return appointment


async def change_status(
    session: AsyncSession,
    actor_user_id: int,
    appointment: Appointment,
    status: AppointmentStatus,
) -> Appointment:
    previous = appointment.status
    appointment.status = status.value
    appointment.updated_by_user_id = actor_user_id
    appointment.updated_at = _utc_naive_now()
    session.add(appointment)
    await session.flush()
    await session.refresh(appointment)
    await record_audit(
        session,
        actor_user_id,
        "STATUS_CHANGE",
        ENTITY_TYPE,
        appointment.id,
        before={"status": previous},
        after={"status": appointment.status},
    )
    return appointment


async def cancel_appointment(
    session: AsyncSession, actor_user_id: int, appointment: Appointment
) -> Appointment:
    """Appointments are never deleted; canceling is a status change."""
    return await change_status(session, actor_user_id, appointment, AppointmentStatus.CANCELED)
