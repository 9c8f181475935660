from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.core.permissions import UserRole
from clinic_scheduler.models.user import User


async def list_active_providers(session: AsyncSession) -> list[User]:
    """Active physicians, i.e. the users appointments can be booked with."""
    result = await session.execute(
        select(User)
        .where(User.role == UserRole.PHYSICIAN.value, User.is_active.is_(True))
        .order_by(User.id)
    )
    return list(result.scalars().all())
