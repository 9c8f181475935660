from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_scheduler.models.location import Location


async def list_active_locations(session: AsyncSession) -> list[Location]:
    result = await session.execute(
        select(Location).where(Location.is_active.is_(True)).order_by(Location.name)
    )
    return list(result.scalars().all())
