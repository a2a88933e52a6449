from __future__ import annotations

import logging
from urllib.parse import urlparse, urlunparse, parse_qsl, urlencode

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine

from zenith_api.settings import get_settings

logger = logging.getLogger(__name__)

ASYNCPG_PREFIX = "postgresql+asyncpg://"
AIOSQLITE_PREFIX = "sqlite+aiosqlite:///"

# Sync driver prefixes and the async driver that replaces them.
_DRIVER_PREFIXES = (
    ("postgres://", ASYNCPG_PREFIX),
    ("postgresql://", ASYNCPG_PREFIX),
    ("postgresql+psycopg2://", ASYNCPG_PREFIX),
    ("sqlite:///", AIOSQLITE_PREFIX),
)
LOCAL_HOSTS = {"localhost", "127.0.0.1"}


def _asyncpg_query(query: str) -> str:
    # asyncpg rejects libpq's sslmode/channel_binding; it takes ssl=true instead.
    clean = []
    ssl_requested = False
    for key, value in parse_qsl(query, keep_blank_values=True):
        if key == "sslmode":
            ssl_requested = True
        elif key not in {"channel_binding", "ssl"}:
            clean.append((key, value))
    if ssl_requested:
        clean.append(("ssl", "true"))
    return urlencode(clean)


def _normalize_database_url(database_url: str) -> str:
    url = str(database_url or "").strip()
    for prefix, replacement in _DRIVER_PREFIXES:
        if url.startswith(prefix):
            url = replacement + url[len(prefix) :]
            break
    if not url.startswith(ASYNCPG_PREFIX):
        return url
    try:
        parsed = urlparse(url)
        return urlunparse(parsed._replace(query=_asyncpg_query(parsed.query)))
    except ValueError:
        return url


def _engine_options(db_url: str) -> dict:
    if db_url.startswith("sqlite"):
        return {"future": True}
    options = {"pool_pre_ping": True, "future": True, "pool_size": 5, "max_overflow": 5}
    try:
        host = urlparse(db_url).hostname or ""
    except ValueError:
        logger.debug("Could not read host from database URL")
        host = ""
    if host and host not in LOCAL_HOSTS:
        options["connect_args"] = {"ssl": True}
    return options


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        db_url = _normalize_database_url(get_settings().database_url)
        _engine = create_async_engine(db_url, **_engine_options(db_url))
    return _engine


def get_sessionmaker() -> async_sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
