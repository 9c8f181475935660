from pydantic import BaseModel

from clinic_scheduler.models.audit_log import AuditLogPublic


class AuditPage(BaseModel):
    page: int
    page_size: int
    items: list[AuditLogPublic]
