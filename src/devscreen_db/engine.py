"""Process-wide async engine for the screening database.

Two kinds of work share the pool: request handlers, which hold a
connection for one short transaction, and analysis jobs, which open their
own session per attempt and may keep it while the model API answers.  The
pool is therefore sized above the request concurrency alone, and
connections are pinged before use because analysis traffic is bursty and
idle connections get dropped by hosted PostgreSQL.

Tuning (environment):

- ``PG_POOL_SIZE`` (default 5) and ``PG_MAX_OVERFLOW`` (default 10)
- ``PG_POOL_RECYCLE`` seconds before a pooled connection is replaced
  (default 1800)
- ``DEVSCREEN_SQL_ECHO=1`` logs every statement

The engine and session factory are created lazily; ``dispose_engine()``
closes the pool on shutdown and at the end of the reanalysis CLI.
"""

import logging
import os

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from devscreen_db.config import get_async_url, redact_url

logger = logging.getLogger(__name__)

_POOL_SIZE = int(os.getenv("PG_POOL_SIZE", "5"))
_MAX_OVERFLOW = int(os.getenv("PG_MAX_OVERFLOW", "10"))
_POOL_RECYCLE = int(os.getenv("PG_POOL_RECYCLE", "1800"))
_ECHO = os.getenv("DEVSCREEN_SQL_ECHO", "") == "1"

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine(url: str | None = None) -> AsyncEngine:
    """The shared engine; *url* is only honoured on the first call."""
    global _engine
    if _engine is None:
        url = url or get_async_url()
        _engine = create_async_engine(
            url,
            echo=_ECHO,
            pool_size=_POOL_SIZE,
            max_overflow=_MAX_OVERFLOW,
            pool_recycle=_POOL_RECYCLE,
            pool_pre_ping=True,
        )
        logger.info(
            "Database engine created: %s (pool=%d+%d)",
            redact_url(url), _POOL_SIZE, _MAX_OVERFLOW,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the shared engine.

    ``expire_on_commit`` is off so rows returned by a workflow stay readable
    after the request dependency commits.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
