from datetime import datetime

from pydantic import BaseModel, model_validator

from clinic_scheduler.models.appointment import AppointmentStatus
from clinic_scheduler.services.scheduling import to_naive_utc


class ConflictCheckBody(BaseModel):
    provider_id: int
    location_id: int | None = None
    appointment_type_id: int
    start_at: datetime
    end_at: datetime | None = None
    exclude_appointment_id: int | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "ConflictCheckBody":
        if self.end_at is not None and to_naive_utc(self.end_at) <= to_naive_utc(self.start_at):
            raise ValueError("end_at must be after start_at")
        return self


class ConflictCheckResponse(BaseModel):
    end_at: datetime
    provider_conflict: bool
    location_conflict: bool | None = None  # null when no location_id was given


class StatusChangeRequest(BaseModel):
    status: AppointmentStatus
