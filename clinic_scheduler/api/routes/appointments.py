import logging
from datetime import datetime

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.api.deps import get_broker, get_session, require_permission
from clinic_scheduler.api.schemas.appointment import (
    ConflictCheckBody,
    ConflictCheckResponse,
    StatusChangeRequest,
)
from clinic_scheduler.core.events import AppointmentEvent, Channel, EventBroker
from clinic_scheduler.core.permissions import Permission, has_permission
from clinic_scheduler.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentUpdate,
)
from clinic_scheduler.models.location import Location
from clinic_scheduler.models.user import User
from clinic_scheduler.services.appointment_service import (
    AppointmentConflictError,
    AppointmentFilters,
    cancel_appointment,
    change_status,
    create_appointment,
    get_appointment,
    list_appointments,
    preview_booking,
    update_appointment,
)
from clinic_scheduler.services.appointment_type_service import get_appointment_type
from clinic_scheduler.services.scheduling import InvalidIntervalError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])

CONFLICT_DETAIL = "This time slot is already booked. Please choose another slot or request an override."

manage_appointments = require_permission(Permission.MANAGE_APPOINTMENTS)


def _to_public(a: Appointment) -> AppointmentPublic:
    return AppointmentPublic(
        id=int(a.id),
        patient_id=a.patient_id,
        provider_id=a.provider_id,
        location_id=a.location_id,
        appointment_type_id=a.appointment_type_id,
        start_at=a.start_at,
        end_at=a.end_at,
        status=a.status,
        reason=a.reason,
        notes=a.notes,
        created_at=a.created_at,
        updated_at=a.updated_at,
    )


async def _load_or_404(session: AsyncSession, appointment_id: int) -> Appointment:
    appointment = await get_appointment(session, appointment_id)
    if not appointment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return appointment


async def _ensure_references(
    session: AsyncSession,
    provider_id: int | None = None,
    location_id: int | None = None,
    appointment_type_id: int | None = None,
) -> None:
    """404 for ids the new row would reference but that do not exist."""
    if provider_id is not None and not await session.get(User, provider_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Provider not found")
    if location_id is not None and not await session.get(Location, location_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    if appointment_type_id is not None and not await get_appointment_type(session, appointment_type_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment type not found")


def _publish(
    background_tasks: BackgroundTasks,
    broker: EventBroker,
    appointment: Appointment,
    action: str,
) -> None:
    # Runs after the response, i.e. after the session has committed
    event = AppointmentEvent(appointment_id=int(appointment.id), action=action, status=appointment.status)
    background_tasks.add_task(broker.publish, Channel.APPOINTMENTS, event)


@router.get("", response_model=list[AppointmentPublic])
async def list_all(
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    provider_id: int | None = Query(None),
    location_id: int | None = Query(None),
    patient_id: int | None = Query(None),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(manage_appointments),
) -> list[AppointmentPublic]:
    filters = AppointmentFilters(
        start=start,
        end=end,
        provider_id=provider_id,
        location_id=location_id,
        patient_id=patient_id,
    )
    appointments = await list_appointments(session, filters)
    return [_to_public(a) for a in appointments]


@router.post("/conflicts", response_model=ConflictCheckResponse)
async def check_slot(
    body: ConflictCheckBody,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(manage_appointments),
) -> ConflictCheckResponse:
    """Resolve the end time for a proposed booking and report provider/location overlaps."""
    try:
        end_at, conflicts = await preview_booking(
            session,
            provider_id=body.provider_id,
            appointment_type_id=body.appointment_type_id,
            start_at=body.start_at,
            end_at=body.end_at,
            location_id=body.location_id,
            exclude_appointment_id=body.exclude_appointment_id,
        )
    except InvalidIntervalError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return ConflictCheckResponse(
        end_at=end_at,
        provider_conflict=conflicts.provider_conflict,
        location_conflict=conflicts.location_conflict,
    )


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book_appointment(
    body: AppointmentCreate,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    broker: EventBroker = Depends(get_broker),
    current_user: User = Depends(manage_appointments),
) -> AppointmentPublic:
    await _ensure_references(session, body.provider_id, body.location_id, body.appointment_type_id)
    try:
        appointment = await create_appointment(
            session,
            current_user.id,
            body,
            allow_override=has_permission(current_user.role, Permission.APPOINTMENT_OVERRIDE),
        )
    except InvalidIntervalError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except AppointmentConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONFLICT_DETAIL) from e
    _publish(background_tasks, broker, appointment, "created")
    return _to_public(appointment)


@router.get("/{appointment_id}", response_model=AppointmentPublic)
async def get_one(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(manage_appointments),
) -> AppointmentPublic:
    return _to_public(await _load_or_404(session, appointment_id))


@router.patch("/{appointment_id}", response_model=AppointmentPublic)
async def reschedule(
    appointment_id: int,
    body: AppointmentUpdate,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    broker: EventBroker = Depends(get_broker),
    current_user: User = Depends(manage_appointments),
) -> AppointmentPublic:
    appointment = await _load_or_404(session, appointment_id)
    await _ensure_references(session, body.provider_id, body.location_id, body.appointment_type_id)
    try:
        updated = await update_appointment(
            session,
            current_user.id,
            appointment,
            body,
            allow_override=has_permission(current_user.role, Permission.APPOINTMENT_OVERRIDE),
        )
    except InvalidIntervalError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except AppointmentConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONFLICT_DETAIL) from e
    _publish(background_tasks, broker, updated, "updated")
    return _to_public(updated)


@router.post("/{appointment_id}/status", response_model=AppointmentPublic)
async def set_status(
    appointment_id: int,
    body: StatusChangeRequest,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    broker: EventBroker = Depends(get_broker),
    current_user: User = Depends(manage_appointments),
) -> AppointmentPublic:
    appointment = await _load_or_404(session, appointment_id)
    updated = await change_status(session, current_user.id, appointment, body.status)
    _publish(background_tasks, broker, updated, "status")
    return _to_public(updated)


@router.post("/{appointment_id}/cancel", response_model=AppointmentPublic)
async def cancel(
    appointment_id: int,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    broker: EventBroker = Depends(get_broker),
    current_user: User = Depends(manage_appointments),
) -> AppointmentPublic:
    appointment = await _load_or_404(session, appointment_id)
    updated = await cancel_appointment(session, current_user.id, appointment)
    _publish(background_tasks, broker, updated, "canceled")
    return _to_public(updated)
