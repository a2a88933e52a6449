from __future__ import annotations

from sqlalchemy import text as sql_text

from zenith_api.db import get_engine


PROFILES_TABLE = "profiles"


async def init_db():
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {PROFILES_TABLE} (
                    id TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    created_at TEXT,
                    updated_at TEXT
                )
                """
            )
        )
