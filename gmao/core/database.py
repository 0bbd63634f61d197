# gmao/core/database.py

"""
Database connection and session management.

- Builds the asynchronous SQLAlchemy engine used by SQLModel.
- Provides the per-request session dependency and a standalone session
  context for background tasks.
- Provides `atomic`, the transaction scope every mutating service runs in.
"""

from typing import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from gmao.core.config import settings

from gmao.domains import models  # noqa: F401  (registers every table on SQLModel.metadata)


_database_url = settings.DATABASE_URL.get_secret_value()

# SQLite (local development) does not accept queue pool sizing options.
_pool_options = {} if _database_url.startswith("sqlite") else {
    "pool_recycle": 3600,  # recycle connections every hour
    "pool_size": 10,
    "max_overflow": 20,
}

engine: AsyncEngine = create_async_engine(
    _database_url,
    echo=settings.DEBUG_MODE,
    future=True,
    **_pool_options,
)

AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Target of the alembic migrations (migrations/env.py)
metadata = SQLModel.metadata


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async session generator for FastAPI dependency injection.
    A new session is opened per request and closed afterwards.
    """
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def get_async_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Standalone session for arq tasks and scripts.
    Commits when the block exits normally, rolls back otherwise.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Runs the enclosed writes as one transaction on an existing session.

    Commits when the block exits normally. On any exception the whole unit is
    rolled back and the exception is re-raised, so no partially applied state
    is ever visible to later reads.
    """
    try:
        yield db
        await db.commit()
    except Exception:
        await db.rollback()
        raise
