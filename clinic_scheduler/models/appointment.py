from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"
    CANCELED = "CANCELED"


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("end_at > start_at", name="ck_appointments_end_after_start"),
    )
    id: int | None = Field(default=None, primary_key=True)
    patient_id: int = Field(index=True)
    provider_id: int = Field(foreign_key="users.id", index=True)
    location_id: int | None = Field(default=None, foreign_key="locations.id", index=True)
    appointment_type_id: int = Field(foreign_key="appointment_types.id")
    start_at: datetime = Field(sa_type=DateTime, index=True)
    end_at: datetime = Field(sa_type=DateTime, index=True)
    status: str = Field(default=AppointmentStatus.SCHEDULED.value, index=True)
    reason: str | None = None
    notes: str | None = None
    created_by_user_id: int | None = Field(default=None, foreign_key="users.id")
    updated_by_user_id: int | None = Field(default=None, foreign_key="users.id")
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime)


class AppointmentCreate(SQLModel):
    patient_id: int
    provider_id: int
    location_id: int | None = None
    appointment_type_id: int
    start_at: datetime
    end_at: datetime | None = None
    status: AppointmentStatus | None = None
    reason: str | None = None
    notes: str | None = None


class AppointmentUpdate(SQLModel):
    provider_id: int | None = None
    location_id: int | None = None
    appointment_type_id: int | None = None
    start_at: datetime | None = None
    end_at: datetime | None = None
    status: AppointmentStatus | None = None
    reason: str | None = None
    notes: str | None = None


class AppointmentPublic(SQLModel):
    id: int
    patient_id: int
    provider_id: int
    location_id: int | None = None
    appointment_type_id: int
    start_at: datetime
    end_at: datetime
    status: str
    reason: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
