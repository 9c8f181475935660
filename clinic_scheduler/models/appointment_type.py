from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel


class AppointmentTypeBase(SQLModel):
    name: str
    default_duration_min: int
    color: str
    buffer_before_min: int = 0
    buffer_after_min: int = 0
    is_active: bool = True


class AppointmentType(AppointmentTypeBase, table=True):
    __tablename__ = "appointment_types"
    __table_args__ = (
        CheckConstraint("default_duration_min > 0", name="ck_appointment_types_duration_positive"),
    )
    id: int | None = Field(default=None, primary_key=True)


class AppointmentTypeCreate(SQLModel):
    name: str = Field(min_length=1)
    default_duration_min: int = Field(ge=5)
    color: str = Field(min_length=3)
    buffer_before_min: int | None = None
    buffer_after_min: int | None = None
    is_active: bool | None = None


class AppointmentTypeUpdate(SQLModel):
    name: str | None = None
    default_duration_min: int | None = Field(default=None, ge=5)
    color: str | None = None
    buffer_before_min: int | None = None
    buffer_after_min: int | None = None
    is_active: bool | None = None


class AppointmentTypePublic(AppointmentTypeBase):
    id: int
