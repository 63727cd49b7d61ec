"""
Database
========

Async PostgreSQL access for the helpdesk (SQLAlchemy 2.0 + asyncpg).

One engine per process, created in the app lifespan (or by the seed
script). Request handlers get a session via ``Depends(get_session)``;
background work (queued ticket pipelines, the follow-up sweep) opens its own
with ``get_session_context()``. Both commit when the caller finishes cleanly
and roll back otherwise.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from helpdesk.config import settings


class Base(DeclarativeBase):
    """Declarative base for the ticket, agent, article and audit tables."""


_engine: Optional[AsyncEngine] = None
_sessions: Optional[async_sessionmaker[AsyncSession]] = None


def _asyncpg_url(url: str) -> str:
    # hosted Postgres URLs carry libpq's sslmode, asyncpg only understands ssl
    return url.replace("sslmode=", "ssl=")


def init_database() -> AsyncEngine:
    """Create the engine and session factory from ``settings``."""
    global _engine, _sessions

    _engine = create_async_engine(
        _asyncpg_url(settings.database_url),
        echo=settings.debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
    )
    _sessions = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)
    return _engine


async def close_database() -> None:
    global _engine, _sessions

    if _engine is None:
        return
    await _engine.dispose()
    _engine, _sessions = None, None


@asynccontextmanager
async def _session_scope() -> AsyncIterator[AsyncSession]:
    if _sessions is None:
        raise RuntimeError("init_database() has not been called")

    async with _sessions() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a request-scoped session."""
    async with _session_scope() as session:
        yield session


@asynccontextmanager
async def get_session_context() -> AsyncIterator[AsyncSession]:
    """Session for work that runs outside a request."""
    async with _session_scope() as session:
        yield session


async def create_tables() -> None:
    """Create missing tables. Development and seeding only."""
    # importing the models registers them on Base.metadata
    import helpdesk.triage.infrastructure.models  # noqa: F401

    if _engine is None:
        raise RuntimeError("init_database() has not been called")
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
