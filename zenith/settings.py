from __future__ import annotations

import os

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_DB_PATH = os.path.join(os.path.dirname(__file__), "..", "zenith_local.db")

# Placeholders keep the clients constructible when the environment is empty.
DEFAULT_SUPABASE_URL = "https://project-ref.supabase.co"
DEFAULT_SUPABASE_KEY = "sb_publishable_placeholder"


class Settings(BaseSettings):
    supabase_url: str = Field(DEFAULT_SUPABASE_URL, alias="SUPABASE_URL")
    supabase_key: str = Field(DEFAULT_SUPABASE_KEY, alias="SUPABASE_PUBLISHABLE_KEY")

    api_base_url: str = Field("", alias="API_BASE_URL")
    backend_session_secret: str = Field("", alias="BACKEND_SESSION_SECRET")

    gemini_api_key: str | None = Field(
        None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
    )
    gemini_model: str = Field("gemini-3-flash-preview", alias="GEMINI_MODEL")

    local_database_url: str = Field(f"sqlite:///{LOCAL_DB_PATH}", alias="LOCAL_DATABASE_URL")
    sync_debounce_seconds: float = Field(2.0, alias="SYNC_DEBOUNCE_SECONDS")
    request_timeout_seconds: float = Field(10.0, alias="REQUEST_TIMEOUT_SECONDS")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    @property
    def resolved_supabase_url(self) -> str:
        return (self.supabase_url or DEFAULT_SUPABASE_URL).rstrip("/")

    @property
    def resolved_supabase_key(self) -> str:
        return self.supabase_key or DEFAULT_SUPABASE_KEY

    def api_enabled(self) -> bool:
        return bool(self.api_base_url and self.backend_session_secret)


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
