"""Appointment end-time resolution and double-booking detection.

Two appointments conflict when their intervals share actual duration:
``existing.start_at < end_at and existing.end_at > start_at``. One ending
exactly when the other starts is not a conflict.
"""
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.core.config import settings
from clinic_scheduler.models.appointment import Appointment
from clinic_scheduler.models.appointment_type import AppointmentType

logger = logging.getLogger(__name__)


class InvalidIntervalError(ValueError):
    """end_at is not strictly after start_at."""

    def __init__(self, start_at: datetime, end_at: datetime) -> None:
        super().__init__(f"end_at ({end_at.isoformat()}) must be after start_at ({start_at.isoformat()})")
        self.start_at = start_at
        self.end_at = end_at


@dataclass(frozen=True)
class ConflictCheckRequest:
    provider_id: int
    start_at: datetime
    end_at: datetime
    location_id: int | None = None
    exclude_appointment_id: int | None = None


@dataclass(frozen=True)
class ConflictResult:
    provider_conflict: bool
    # None when no location was given, so no location check ran
    location_conflict: bool | None

    @property
    def has_conflict(self) -> bool:
        return self.provider_conflict or bool(self.location_conflict)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        return dt.astimezone(UTC).replace(tzinfo=None)
    return dt


def validate_interval(start_at: datetime, end_at: datetime) -> None:
    if end_at <= start_at:
        raise InvalidIntervalError(start_at, end_at)


def intervals_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    return a_start < b_end and a_end > b_start


def compute_end_at(start_at: datetime, duration_minutes: int) -> datetime:
    return start_at + timedelta(minutes=duration_minutes)


async def get_type_duration(session: AsyncSession, appointment_type_id: int) -> int | None:
    result = await session.execute(
        select(AppointmentType.default_duration_min).where(AppointmentType.id == appointment_type_id)
    )
    return result.scalar_one_or_none()


async def resolve_end_time(
    session: AsyncSession,
    appointment_type_id: int | None,
    start_at: datetime,
    explicit_end_at: datetime | None = None,
) -> datetime:
    """Return the explicit end if given, else start + the type's default duration.

    An unknown type is not an error: the configured default duration is used.
    """
    if explicit_end_at is not None:
        return explicit_end_at
    duration = None
    if appointment_type_id is not None:
        duration = await get_type_duration(session, appointment_type_id)
    if duration is None:
        duration = settings.default_appointment_duration_minutes
        logger.debug(
            "Appointment type %s not found; using default duration of %d minutes",
            appointment_type_id,
            duration,
        )
    return compute_end_at(start_at, duration)


def _overlap_query(request: ConflictCheckRequest, ignored_statuses: Sequence[str]):
    q = select(Appointment.id).where(
        Appointment.start_at < request.end_at,
        Appointment.end_at > request.start_at,
    )
    if request.exclude_appointment_id is not None:
        q = q.where(Appointment.id != request.exclude_appointment_id)
    if ignored_statuses:
        q = q.where(Appointment.status.not_in(list(ignored_statuses)))
    return q.limit(1)


async def check_conflicts(
    session: AsyncSession,
    request: ConflictCheckRequest,
    ignored_statuses: Sequence[str] = (),
) -> ConflictResult:
    """Existence checks for a provider overlap and, if a location is given, a location overlap."""
    base = _overlap_query(request, ignored_statuses)

    result = await session.execute(base.where(Appointment.provider_id == request.provider_id))
    provider_conflict = result.first() is not None

    location_conflict: bool | None = None
    if request.location_id is not None:
        result = await session.execute(base.where(Appointment.location_id == request.location_id))
        location_conflict = result.first() is not None

    return ConflictResult(provider_conflict=provider_conflict, location_conflict=location_conflict)


def detect_conflicts(
    request: ConflictCheckRequest,
    appointments: Iterable[Appointment],
    ignored_statuses: Sequence[str] = (),
) -> ConflictResult:
    """Same rules as check_conflicts, over rows already in memory."""
    provider_conflict = False
    location_conflict = False if request.location_id is not None else None
    for appt in appointments:
        if request.exclude_appointment_id is not None and appt.id == request.exclude_appointment_id:
            continue
        if appt.status in ignored_statuses:
            continue
        if not intervals_overlap(appt.start_at, appt.end_at, request.start_at, request.end_at):
            continue
        if appt.provider_id == request.provider_id:
            provider_conflict = True
        if request.location_id is not None and appt.location_id == request.location_id:
            location_conflict = True
    return ConflictResult(provider_conflict=provider_conflict, location_conflict=location_conflict)
