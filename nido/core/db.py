from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from nido.core.config import settings


engine = create_async_engine(settings.database_url, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as db:
        yield db


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    Fresh engine + session for one worker invocation.

    Celery tasks run each tick under their own event loop (asyncio.run), so the
    module-level engine cannot be shared with them.
    """
    task_engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    Session = async_sessionmaker(task_engine, expire_on_commit=False, class_=AsyncSession)
    try:
        async with Session() as db:
            yield db
    finally:
        await task_engine.dispose()
