"""Temporary SQLite databases for service and API tests."""
import os
import tempfile
from collections.abc import AsyncGenerator

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import Session, SQLModel

import clinic_scheduler.models  # noqa: F401 - register tables


class TempDatabase:
    def __init__(self) -> None:
        fd, self.path = tempfile.mkstemp(suffix=".db")
        os.close(fd)
        self.sync_engine = create_engine(f"sqlite:///{self.path}")
        SQLModel.metadata.create_all(self.sync_engine)
        # NullPool: every session opens its own connection on the running loop
        self.engine = create_async_engine(f"sqlite+aiosqlite:///{self.path}", poolclass=NullPool)
        self.session_maker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

    def seed(self, *rows):
        with Session(self.sync_engine, expire_on_commit=False) as session:
            session.add_all(rows)
            session.commit()
            for row in rows:
                session.refresh(row)
        return rows

    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def close(self) -> None:
        self.sync_engine.dispose()
        if os.path.exists(self.path):
            os.remove(self.path)
