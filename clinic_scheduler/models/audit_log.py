from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"
    id: int | None = Field(default=None, primary_key=True)
    actor_user_id: int | None = Field(default=None, foreign_key="users.id", index=True)
    action: str  # CREATE | UPDATE | STATUS_CHANGE
    entity_type: str = Field(index=True)
    entity_id: int
    before_json: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    after_json: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime, index=True)


class AuditLogPublic(SQLModel):
    id: int
    actor: str
    action: str
    entity_type: str
    entity_id: int
    created_at: datetime
