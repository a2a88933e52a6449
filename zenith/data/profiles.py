"""Remote homes for the per-user state document.

Both stores expose the same three coroutines used by the sync manager:
``get_profile``, ``create_profile`` and ``upsert_profile``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

import httpx

from zenith.constants import PROFILES_TABLE

logger = logging.getLogger(__name__)


class ProfileStoreError(RuntimeError):
    pass


def _raise_for_response(response: httpx.Response) -> None:
    if response.is_success:
        return
    try:
        detail = response.json()
    except ValueError:
        detail = response.text
    raise ProfileStoreError(f"Profile store error {response.status_code} {response.reason_phrase}: {detail}")


class SupabaseProfileStore:
    """The ``profiles`` table (``id``, ``data``, ``updated_at``) through PostgREST."""

    def __init__(
        self,
        settings,
        token_getter: Callable[[], Optional[str]],
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = f"{settings.resolved_supabase_url}/rest/v1/{PROFILES_TABLE}"
        self.api_key = settings.resolved_supabase_key
        self.timeout = settings.request_timeout_seconds
        self._token_getter = token_getter
        self._transport = transport

    def _headers(self, prefer: str | None = None) -> Dict[str, str]:
        token = self._token_getter() or self.api_key
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(self, method: str, params=None, json=None, prefer: str | None = None) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.request(
                method,
                self.base_url,
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        _raise_for_response(response)
        return response

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        response = await self._request("GET", params={"id": f"eq.{user_id}", "select": "data"})
        rows = response.json()
        if not rows:
            return None
        return rows[0].get("data")

    async def create_profile(self, user_id: str, document: Dict[str, Any]) -> None:
        await self._request("POST", json=[{"id": user_id, "data": document}], prefer="return=minimal")

    async def upsert_profile(self, user_id: str, document: Dict[str, Any], updated_at: str) -> None:
        await self._request(
            "POST",
            json={"id": user_id, "data": document, "updated_at": updated_at},
            prefer="resolution=merge-duplicates,return=minimal",
        )


class ApiProfileStore:
    """The self-hosted profile service in :mod:`zenith_api`."""

    def __init__(self, settings, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = settings.api_base_url.rstrip("/")
        self.token = settings.backend_session_secret
        self.timeout = settings.request_timeout_seconds
        self._transport = transport

    async def _request(self, method: str, user_id: str, json: dict | None = None) -> httpx.Response:
        if not self.base_url:
            raise ProfileStoreError("API_BASE_URL not configured")
        if not self.token:
            raise ProfileStoreError("BACKEND_SESSION_SECRET not configured")
        headers = {"X-User-Id": user_id, "X-Backend-Token": self.token}
        transport = self._transport or httpx.AsyncHTTPTransport(retries=2)
        async with httpx.AsyncClient(timeout=self.timeout, transport=transport) as client:
            return await client.request(method, f"{self.base_url}/v1/profile", json=json, headers=headers)

    async def get_profile(self, user_id: str) -> Optional[Dict[str, Any]]:
        response = await self._request("GET", user_id)
        if response.status_code == 404:
            return None
        _raise_for_response(response)
        return response.json().get("data")

    async def create_profile(self, user_id: str, document: Dict[str, Any]) -> None:
        response = await self._request("POST", user_id, json={"data": document})
        if response.status_code == 409:
            logger.info("Profile for %s already exists", user_id)
            return
        _raise_for_response(response)

    async def upsert_profile(self, user_id: str, document: Dict[str, Any], updated_at: str) -> None:
        response = await self._request("PUT", user_id, json={"data": document, "updated_at": updated_at})
        _raise_for_response(response)


def build_profile_store(settings, token_getter, transport=None):
    if settings.api_enabled():
        return ApiProfileStore(settings, transport=transport)
    return SupabaseProfileStore(settings, token_getter, transport=transport)
