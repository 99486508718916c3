"""Async engine and session factory."""

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from codeprep.config import settings

from .models import Base

engine = create_async_engine(settings.database_url, echo=False)
async_session = async_sessionmaker(engine, expire_on_commit=False)


async def init_db() -> None:
    """Create tables if they do not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

