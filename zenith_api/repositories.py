from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

from sqlalchemy import text as sql_text

from zenith_api.db import get_sessionmaker

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _decode_document(raw) -> dict:
    if isinstance(raw, dict):
        return raw
    try:
        payload = json.loads(raw or "{}")
    except ValueError:
        logger.warning("Stored profile document is not valid JSON")
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    return payload


async def get_profile(user_id: str) -> dict | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT id, data, updated_at FROM {PROFILES_TABLE} WHERE id = :id"),
            {"id": user_id},
        )).mappings().fetchone()
    if not row:
        return None
    return {
        "id": row["id"],
        "data": _decode_document(row["data"]),
        "updated_at": row["updated_at"],
    }


async def create_profile(user_id: str, document: dict) -> bool:
    """Insert the first document for ``user_id``; False when one already exists."""
    now = _utcnow_iso()
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        result = await session.execute(
            sql_text(
                f"""
                INSERT INTO {PROFILES_TABLE} (id, data, created_at, updated_at)
                VALUES (:id, :data, :created_at, :updated_at)
                ON CONFLICT(id) DO NOTHING
                """
            ),
            {
                "id": user_id,
                "data": json.dumps(document, ensure_ascii=False),
                "created_at": now,
                "updated_at": now,
            },
        )
        await session.commit()
    return bool(result.rowcount)


async def upsert_profile(user_id: str, document: dict, updated_at: str | None = None) -> str:
    stamp = updated_at or _utcnow_iso()
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {PROFILES_TABLE} (id, data, created_at, updated_at)
                VALUES (:id, :data, :created_at, :updated_at)
                ON CONFLICT(id) DO UPDATE SET
                    data = EXCLUDED.data,
                    updated_at = EXCLUDED.updated_at
                """
            ),
            {
                "id": user_id,
                "data": json.dumps(document, ensure_ascii=False),
                "created_at": _utcnow_iso(),
                "updated_at": stamp,
            },
        )
        await session.commit()
    return stamp
