"""Keeps the in-memory document, local storage and the profile store in step.

Reads happen once per session start (:meth:`SyncManager.load_for_user`).
Writes are opportunistic: every committed snapshot goes to local storage
right away and to the profile store after a quiet period.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional

from zenith.constants import STATE_STORAGE_KEY
from zenith.state.defaults import default_state, reconcile_state, reset_preserving_theme
from zenith.state.scheduler import CoalescingScheduler
from zenith.state.store import StateStore

logger = logging.getLogger(__name__)

SOURCE_REMOTE = "remote"
SOURCE_CREATED = "created"
SOURCE_LOCAL = "local"
SOURCE_DEFAULT = "default"


@dataclass
class LoadResult:
    state: Dict[str, Any]
    is_new_account: bool
    source: str


def _session_user_id(session) -> Optional[str]:
    if session is None:
        return None
    return getattr(session, "user_id", None) or None


class SyncManager:
    def __init__(
        self,
        store: StateStore,
        profiles,
        local_storage,
        session_provider: Callable[[], Awaitable[Any]],
        debounce_seconds: float = 2.0,
    ):
        self.store = store
        self.profiles = profiles
        self.local_storage = local_storage
        self._session_provider = session_provider
        self._scheduler = CoalescingScheduler(debounce_seconds, self._commit_scheduled)
        self._epoch = 0
        self._user_id: Optional[str] = None
        self.ready = False
        self._unsubscribe = store.subscribe(self._on_commit)

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    async def load_for_user(self, user_id: str) -> Optional[LoadResult]:
        self._epoch += 1
        epoch = self._epoch
        self._scheduler.cancel()
        result = await self._fetch(user_id)
        if epoch != self._epoch:
            logger.info("Discarding stale load for user %s", user_id)
            return None
        self._user_id = user_id
        self.store.replace(result.state)
        self.ready = True
        logger.info("Loaded state for user %s from %s", user_id, result.source)
        return result

    async def _fetch(self, user_id: str) -> LoadResult:
        try:
            document = await self.profiles.get_profile(user_id)
        except Exception as exc:
            logger.warning("Remote profile read failed for %s: %s", user_id, exc)
            return self._local_fallback()

        if document is None:
            state = default_state(logged_in=True)
            try:
                await self.profiles.create_profile(user_id, state)
            except Exception as exc:
                logger.error("Failed to create profile for %s: %s", user_id, exc)
            return LoadResult(state, True, SOURCE_CREATED)

        return LoadResult(reconcile_state(document), False, SOURCE_REMOTE)

    def _local_fallback(self) -> LoadResult:
        cached = None
        try:
            cached = self.local_storage.load_json(STATE_STORAGE_KEY)
        except Exception as exc:
            logger.warning("Local state read failed: %s", exc)
        if isinstance(cached, dict):
            return LoadResult(reconcile_state(cached), False, SOURCE_LOCAL)
        return LoadResult(default_state(logged_in=True), False, SOURCE_DEFAULT)

    def commit_local(self, state: Dict[str, Any]) -> None:
        if not state.get("isLoggedIn"):
            return
        try:
            self.local_storage.save_json(STATE_STORAGE_KEY, state)
        except Exception as exc:
            logger.warning("Local state write failed: %s", exc)

    async def commit_remote(self, state: Dict[str, Any]) -> bool:
        try:
            session = await self._session_provider()
        except Exception as exc:
            logger.warning("Session lookup failed, skipping remote commit: %s", exc)
            return False
        user_id = _session_user_id(session)
        if not user_id:
            return False
        updated_at = datetime.now(timezone.utc).isoformat()
        try:
            await self.profiles.upsert_profile(user_id, state, updated_at)
        except Exception as exc:
            logger.error("Remote profile write failed for %s: %s", user_id, exc)
            return False
        return True

    def schedule_remote_commit(self, state: Dict[str, Any]) -> None:
        self._scheduler.schedule((self._epoch, state))

    async def _commit_scheduled(self, payload) -> None:
        epoch, state = payload
        if epoch != self._epoch:
            logger.debug("Dropping remote commit from a previous session")
            return
        await self.commit_remote(state)

    def reset_on_logout(self) -> Dict[str, Any]:
        self._epoch += 1
        self._scheduler.cancel()
        self._user_id = None
        self.ready = False
        return self.store.replace(reset_preserving_theme(self.store.snapshot))

    async def handle_auth_event(self, event: str, session) -> None:
        user_id = _session_user_id(session)
        if user_id:
            if user_id == self._user_id and self.ready:
                logger.debug("Auth event %s for loaded user, nothing to do", event)
                return
            await self.load_for_user(user_id)
        else:
            self.reset_on_logout()

    async def flush(self) -> None:
        await self._scheduler.flush()

    def close(self) -> None:
        self._scheduler.cancel()
        self._unsubscribe()

    def _on_commit(self, state: Dict[str, Any]) -> None:
        if not state.get("isLoggedIn"):
            return
        self.commit_local(state)
        try:
            self.schedule_remote_commit(state)
        except RuntimeError:
            logger.warning("No running event loop, remote commit not scheduled")


