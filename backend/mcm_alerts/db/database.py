"""
Database configuration and session management

NOTE: When running with multiple workers (uvicorn --workers N), each worker
gets its own copy of the engine. Using NullPool prevents connection exhaustion
by creating connections on-demand and closing them immediately after use.

Services open one session per operation through the session maker, so
concurrent deliveries never share a session.
"""
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse, parse_qs, urlencode, urlunparse

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from mcm_alerts.core.config import settings


def _database_url_and_connect_args(url: str) -> Tuple[str, Dict[str, Any]]:
    """Build engine URL and connect_args. asyncpg does not accept sslmode in the URL."""
    if "+asyncpg" not in url:
        return url, {}
    use_ssl = "ssl=require" in url or "sslmode=require" in url
    # Strip ssl params so they are not passed to asyncpg.connect()
    parsed = urlparse(url)
    if parsed.query:
        qs = parse_qs(parsed.query, keep_blank_values=True)
        qs.pop("ssl", None)
        qs.pop("sslmode", None)
        qs.pop("channel_binding", None)
        new_query = urlencode([(k, v[0]) for k, v in qs.items()])
        url = urlunparse(parsed._replace(query=new_query))
    connect_args: Dict[str, Any] = {
        "command_timeout": 30,
        "timeout": 15,
    }
    if use_ssl:
        connect_args["ssl"] = True
    return url, connect_args


def build_engine(url: Optional[str] = None) -> AsyncEngine:
    """Create an async engine for the configured (or given) database URL"""
    engine_url, connect_args = _database_url_and_connect_args(url or settings.database_url)
    return create_async_engine(
        engine_url,
        echo=False,
        future=True,
        poolclass=NullPool,
        connect_args=connect_args,
    )


def make_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


async def create_tables(bind: AsyncEngine):
    """Create all tables"""
    # Import models so they are registered on the metadata
    import mcm_alerts.models  # noqa: F401
    
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(bind: AsyncEngine):
    """Drop all tables (for tests and local resets)"""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
