from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

import httpx

from zenith.constants import MSG_REQUIRED_FIELDS

logger = logging.getLogger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"
TOKEN_REFRESHED = "TOKEN_REFRESHED"


class AuthError(RuntimeError):
    pass


@dataclass
class AuthSession:
    user_id: str
    email: str
    access_token: str
    refresh_token: str
    expires_at: float
    display_name: str = ""

    @property
    def expired(self) -> bool:
        return time.time() >= self.expires_at


def display_name_from_email(email: str) -> str:
    local = (email or "").split("@")[0]
    return local[:1].upper() + local[1:]


def _error_message(response: httpx.Response) -> str:
    try:
        detail = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(detail, dict):
        for key in ("error_description", "msg", "message", "error"):
            if detail.get(key):
                return str(detail[key])
    return str(detail)


def _session_from_payload(payload: dict) -> Optional[AuthSession]:
    access_token = payload.get("access_token")
    user = payload.get("user") or {}
    if not access_token or not user.get("id"):
        return None
    expires_in = int(payload.get("expires_in", 3600) or 3600)
    email = str(user.get("email") or "")
    metadata = user.get("user_metadata") or {}
    return AuthSession(
        user_id=str(user["id"]),
        email=email,
        access_token=access_token,
        refresh_token=str(payload.get("refresh_token") or ""),
        expires_at=time.time() + expires_in - 30,
        display_name=str(metadata.get("full_name") or display_name_from_email(email)),
    )


class AuthClient:
    """Email/password sessions against the Supabase auth API."""

    def __init__(self, settings, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = f"{settings.resolved_supabase_url}/auth/v1"
        self.api_key = settings.resolved_supabase_key
        self.timeout = settings.request_timeout_seconds
        self._transport = transport
        self._session: Optional[AuthSession] = None
        self._listeners: List[Callable[[str, Optional[AuthSession]], Any]] = []

    def on_auth_state_change(self, callback) -> Callable[[], None]:
        self._listeners.append(callback)

        def _unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    async def _emit(self, event: str, session: Optional[AuthSession]) -> None:
        for callback in list(self._listeners):
            result = callback(event, session)
            if inspect.isawaitable(result):
                await result

    async def _post(self, path: str, json: dict, params: dict | None = None, token: str | None = None):
        headers = {"apikey": self.api_key}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(f"{self.base_url}{path}", json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise AuthError(f"Auth service unavailable: {exc}") from exc
        if response.is_error:
            raise AuthError(_error_message(response))
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    @staticmethod
    def _require(email: str, password: str) -> str:
        clean_email = (email or "").strip().lower()
        if not clean_email or not password:
            raise AuthError(MSG_REQUIRED_FIELDS)
        return clean_email

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        clean_email = self._require(email, password)
        payload = await self._post(
            "/token",
            {"email": clean_email, "password": password},
            params={"grant_type": "password"},
        )
        session = _session_from_payload(payload)
        if session is None:
            raise AuthError("Erro na autenticação. Verifique os dados.")
        self._session = session
        await self._emit(SIGNED_IN, session)
        return session

    async def sign_up(self, email: str, password: str) -> Optional[AuthSession]:
        """Create an account; returns None while email confirmation is pending."""
        clean_email = self._require(email, password)
        payload = await self._post(
            "/signup",
            {
                "email": clean_email,
                "password": password,
                "data": {"full_name": display_name_from_email(clean_email)},
            },
        )
        session = _session_from_payload(payload)
        if session is None:
            logger.info("Sign-up for %s awaiting confirmation", clean_email)
            return None
        self._session = session
        await self._emit(SIGNED_IN, session)
        return session

    async def sign_out(self) -> None:
        session = self._session
        self._session = None
        if session is not None:
            try:
                await self._post("/logout", {}, token=session.access_token)
            except AuthError as exc:
                logger.warning("Remote sign-out failed: %s", exc)
        await self._emit(SIGNED_OUT, None)

    async def _refresh(self, session: AuthSession) -> Optional[AuthSession]:
        if not session.refresh_token:
            return None
        try:
            payload = await self._post(
                "/token",
                {"refresh_token": session.refresh_token},
                params={"grant_type": "refresh_token"},
            )
        except AuthError as exc:
            logger.warning("Session refresh failed: %s", exc)
            return None
        return _session_from_payload(payload)

    async def get_current_session(self) -> Optional[AuthSession]:
        session = self._session
        if session is None or not session.expired:
            return session
        refreshed = await self._refresh(session)
        if refreshed is None:
            self._session = None
            await self._emit(SIGNED_OUT, None)
            return None
        self._session = refreshed
        await self._emit(TOKEN_REFRESHED, refreshed)
        return refreshed

    def access_token(self) -> Optional[str]:
        return self._session.access_token if self._session else None
