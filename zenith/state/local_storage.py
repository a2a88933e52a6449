from __future__ import annotations

import json
import logging

from sqlalchemy import create_engine, text as sql_text
from sqlalchemy.engine import Engine

from zenith.constants import LOCAL_STORAGE_TABLE

logger = logging.getLogger(__name__)


def _build_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            future=True,
        )
    return create_engine(database_url, pool_pre_ping=True, future=True)


class LocalStorage:
    """String-keyed slots kept on this installation.

    Backed by a key/value table so reads and writes are synchronous and
    survive restarts.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._engine = _build_engine(database_url)
        self._ready = False

    def _ensure_table(self) -> None:
        if self._ready:
            return
        with self._engine.begin() as conn:
            conn.execute(
                sql_text(
                    f"""
                    CREATE TABLE IF NOT EXISTS {LOCAL_STORAGE_TABLE} (
                        key TEXT PRIMARY KEY,
                        value TEXT
                    )
                    """
                )
            )
        self._ready = True

    def get_item(self, key: str) -> str | None:
        self._ensure_table()
        with self._engine.connect() as conn:
            row = conn.execute(
                sql_text(f"SELECT value FROM {LOCAL_STORAGE_TABLE} WHERE key = :key"),
                {"key": key},
            ).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str) -> None:
        self._ensure_table()
        with self._engine.begin() as conn:
            conn.execute(
                sql_text(
                    f"INSERT INTO {LOCAL_STORAGE_TABLE} (key, value) VALUES (:key, :value) "
                    "ON CONFLICT(key) DO UPDATE SET value=EXCLUDED.value"
                ),
                {"key": key, "value": value},
            )

    def remove_item(self, key: str) -> None:
        self._ensure_table()
        with self._engine.begin() as conn:
            conn.execute(
                sql_text(f"DELETE FROM {LOCAL_STORAGE_TABLE} WHERE key = :key"),
                {"key": key},
            )

    def load_json(self, key: str):
        raw = self.get_item(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding malformed local value for %s", key)
            return None

    def save_json(self, key: str, value) -> None:
        self.set_item(key, json.dumps(value, ensure_ascii=False))

    def dispose(self) -> None:
        self._engine.dispose()
