from clinic_scheduler.models.user import ProviderPublic, User, UserPublic
from clinic_scheduler.models.location import Location, LocationPublic
from clinic_scheduler.models.appointment_type import (
    AppointmentType,
    AppointmentTypeCreate,
    AppointmentTypePublic,
    AppointmentTypeUpdate,
)
from clinic_scheduler.models.appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatus,
    AppointmentUpdate,
)
from clinic_scheduler.models.audit_log import AuditLog, AuditLogPublic
from clinic_scheduler.models.waitlist import (
    WaitlistBook,
    WaitlistCreate,
    WaitlistPublic,
    WaitlistRequest,
    WaitlistStatus,
    WaitlistUpdate,
)

__all__ = [
    "User",
    "UserPublic",
    "ProviderPublic",
    "Location",
    "LocationPublic",
    "AppointmentType",
    "AppointmentTypeCreate",
    "AppointmentTypePublic",
    "AppointmentTypeUpdate",
    "Appointment",
    "AppointmentCreate",
    "AppointmentPublic",
    "AppointmentStatus",
    "AppointmentUpdate",
    "AuditLog",
    "AuditLogPublic",
    "WaitlistBook",
    "WaitlistCreate",
    "WaitlistPublic",
    "WaitlistRequest",
    "WaitlistStatus",
    "WaitlistUpdate",
]
