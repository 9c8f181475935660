from datetime import date, datetime
from enum import Enum
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from clinic_scheduler.models.audit_log import AuditLog
from clinic_scheduler.models.user import User


def snapshot(obj: SQLModel | dict[str, Any] | None) -> dict[str, Any] | None:
    """JSON-safe copy of a row (or dict) for before/after columns."""
    if obj is None:
        return None
    data = obj if isinstance(obj, dict) else obj.model_dump()
    out: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        out[key] = value
    return out


async def record_audit(
    session: AsyncSession,
    actor_user_id: int | None,
    action: str,
    entity_type: str,
    entity_id: int,
    before: SQLModel | dict[str, Any] | None = None,
    after: SQLModel | dict[str, Any] | None = None,
) -> AuditLog:
    entry = AuditLog(
        actor_user_id=actor_user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        before_json=snapshot(before),
        after_json=snapshot(after),
    )
    session.add(entry)
    await session.flush()
    return entry


async def list_audit_logs(
    session: AsyncSession,
    page: int = 1,
    page_size: int = 30,
    entity_type: str | None = None,
) -> list[tuple[AuditLog, User | None]]:
    """Newest first, with the acting user when there is one."""
    q = (
        select(AuditLog, User)
        .outerjoin(User, AuditLog.actor_user_id == User.id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset((max(page, 1) - 1) * page_size)
        .limit(page_size)
    )
    if entity_type:
        q = q.where(AuditLog.entity_type == entity_type)
    result = await session.execute(q)
    return [(row[0], row[1]) for row in result.all()]
