"""Connection settings for the screening database.

``DATABASE_URL`` wins when set.  Hosted PostgreSQL providers hand out
``postgres://`` or ``postgresql://`` URLs; both are accepted and rewritten
to the driver each consumer needs:

- ``get_async_url()``: ``postgresql+asyncpg://`` for the request path and
  the analysis jobs.
- ``get_sync_url()``: ``postgresql://`` (psycopg2) for Alembic.

Without ``DATABASE_URL`` the URL is assembled from ``PG_HOST``, ``PG_PORT``,
``PG_USER``, ``PG_PASSWORD`` and ``PG_DATABASE``, defaulting to a local
``devscreen`` database.
"""

import os
import re

_SCHEME = re.compile(r"^postgres(?:ql)?(?:\+\w+)?://")


def _url_from_parts() -> str:
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    user = os.getenv("PG_USER", "devscreen")
    password = os.getenv("PG_PASSWORD", "devscreen")
    database = os.getenv("PG_DATABASE", "devscreen")
    return f"postgresql://{user}:{password}@{host}:{port}/{database}"


def _with_driver(url: str, scheme: str) -> str:
    return _SCHEME.sub(f"{scheme}://", url, count=1)


def get_sync_url() -> str:
    """psycopg2 URL for Alembic's synchronous migration runner."""
    return _with_driver(os.getenv("DATABASE_URL") or _url_from_parts(), "postgresql")


def get_async_url() -> str:
    """asyncpg URL for the runtime engine."""
    return _with_driver(
        os.getenv("DATABASE_URL") or _url_from_parts(), "postgresql+asyncpg",
    )


def redact_url(url: str) -> str:
    """*url* with the password masked, for log lines."""
    return re.sub(r"(://[^:/@]+:)[^@]*@", r"\1***@", url, count=1)
