from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.api.deps import get_broker, get_session, require_permission
from clinic_scheduler.api.routes.appointments import (
    CONFLICT_DETAIL,
    _ensure_references,
    _publish,
    _to_public as _appointment_to_public,
)
from clinic_scheduler.core.events import EventBroker
from clinic_scheduler.core.permissions import Permission, has_permission
from clinic_scheduler.models.appointment import AppointmentPublic
from clinic_scheduler.models.user import User
from clinic_scheduler.models.waitlist import (
    WaitlistBook,
    WaitlistCreate,
    WaitlistPublic,
    WaitlistRequest,
    WaitlistStatus,
    WaitlistUpdate,
)
from clinic_scheduler.services.appointment_service import AppointmentConflictError
from clinic_scheduler.services.waitlist_service import (
    NoResourcesError,
    WaitlistNotBookableError,
    book_waitlist_request,
    create_waitlist_request,
    get_waitlist_request,
    list_waitlist,
    update_waitlist_request,
)

router = APIRouter(prefix="/waitlist", tags=["waitlist"])

manage_appointments = require_permission(Permission.MANAGE_APPOINTMENTS)


def _to_public(w: WaitlistRequest) -> WaitlistPublic:
    return WaitlistPublic.model_validate(w, from_attributes=True)


async def _load_or_404(session: AsyncSession, request_id: int) -> WaitlistRequest:
    request = await get_waitlist_request(session, request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Waitlist request not found")
    return request


@router.get("", response_model=list[WaitlistPublic])
async def list_requests(
    status_param: WaitlistStatus | None = Query(None, alias="status"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(manage_appointments),
) -> list[WaitlistPublic]:
    requests = await list_waitlist(session, status_param.value if status_param else None)
    return [_to_public(w) for w in requests]


@router.post("", response_model=WaitlistPublic, status_code=status.HTTP_201_CREATED)
async def create_request(
    body: WaitlistCreate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(manage_appointments),
) -> WaitlistPublic:
    await _ensure_references(session, appointment_type_id=body.appointment_type_id)
    return _to_public(await create_waitlist_request(session, current_user.id, body))


@router.patch("/{request_id}", response_model=WaitlistPublic)
async def update_request(
    request_id: int,
    body: WaitlistUpdate,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(manage_appointments),
) -> WaitlistPublic:
    request = await _load_or_404(session, request_id)
    return _to_public(await update_waitlist_request(session, current_user.id, request, body))


@router.post("/{request_id}/book", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def book_request(
    request_id: int,
    background_tasks: BackgroundTasks,
    body: WaitlistBook | None = None,
    session: AsyncSession = Depends(get_session),
    broker: EventBroker = Depends(get_broker),
    current_user: User = Depends(manage_appointments),
) -> AppointmentPublic:
    request = await _load_or_404(session, request_id)
    body = body or WaitlistBook()
    await _ensure_references(session, body.provider_id, body.location_id)
    try:
        appointment = await book_waitlist_request(
            session,
            current_user.id,
            request,
            provider_id=body.provider_id,
            location_id=body.location_id,
            allow_override=has_permission(current_user.role, Permission.APPOINTMENT_OVERRIDE),
        )
    except WaitlistNotBookableError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except NoResourcesError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except AppointmentConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONFLICT_DETAIL) from e
    _publish(background_tasks, broker, appointment, "created")
    return _appointment_to_public(appointment)
