from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class WaitlistStatus(str, Enum):
    OPEN = "OPEN"
    CONTACTED = "CONTACTED"
    BOOKED = "BOOKED"


class WaitlistRequest(SQLModel, table=True):
    __tablename__ = "waitlist_requests"
    id: int | None = Field(default=None, primary_key=True)
    patient_id: int = Field(index=True)
    appointment_type_id: int | None = Field(default=None, foreign_key="appointment_types.id")
    # Window the patient is available in, not the appointment itself
    preferred_start_at: datetime | None = Field(default=None, sa_type=DateTime)
    preferred_end_at: datetime | None = Field(default=None, sa_type=DateTime)
    priority: int = 3
    status: str = Field(default=WaitlistStatus.OPEN.value, index=True)
    note: str | None = None
    appointment_id: int | None = Field(default=None, foreign_key="appointments.id")
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime, index=True)


class WaitlistCreate(SQLModel):
    patient_id: int
    appointment_type_id: int | None = None
    preferred_start_at: datetime | None = None
    preferred_end_at: datetime | None = None
    priority: int = Field(default=3, ge=1, le=5)
    note: str | None = None


class WaitlistUpdate(SQLModel):
    status: WaitlistStatus | None = None
    note: str | None = None
    priority: int | None = Field(default=None, ge=1, le=5)


class WaitlistBook(SQLModel):
    """Who to book with. Omitted ids fall back to the first active physician / location."""
    provider_id: int | None = None
    location_id: int | None = None


class WaitlistPublic(SQLModel):
    id: int
    patient_id: int
    appointment_type_id: int | None = None
    preferred_start_at: datetime | None = None
    preferred_end_at: datetime | None = None
    priority: int
    status: str
    note: str | None = None
    appointment_id: int | None = None
    created_at: datetime
