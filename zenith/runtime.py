from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional

from zenith import metrics
from zenith.auth import AuthClient
from zenith.data.profiles import build_profile_store
from zenith.logging_config import configure_logging
from zenith.quotes import DailyQuoteCache
from zenith.services.gemini import TextGenerator, get_study_advice
from zenith.settings import Settings, get_settings
from zenith.shopping import build_shopping_list
from zenith.state.defaults import default_state
from zenith.state.local_storage import LocalStorage
from zenith.state.store import StateStore
from zenith.state.sync import LoadResult, SyncManager

logger = logging.getLogger(__name__)


class ZenithApp:
    """Wires the state document to its collaborators.

    Views read ``state`` and call :meth:`update` with a transform from
    :mod:`zenith.actions`; persistence follows from the store subscription.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        auth=None,
        profiles=None,
        local_storage=None,
        generator=None,
    ):
        self.settings = settings or get_settings()
        self.auth = auth or AuthClient(self.settings)
        self.local_storage = local_storage or LocalStorage(self.settings.local_database_url)
        self.profiles = profiles or build_profile_store(self.settings, self.auth.access_token)
        self.generator = generator or TextGenerator(
            self.settings.gemini_api_key,
            self.settings.gemini_model,
            timeout=self.settings.request_timeout_seconds,
        )
        self.store = StateStore(default_state())
        self.sync = SyncManager(
            self.store,
            self.profiles,
            self.local_storage,
            self.auth.get_current_session,
            debounce_seconds=self.settings.sync_debounce_seconds,
        )
        self.quotes = DailyQuoteCache(self.generator, storage=self.local_storage)
        self._unsubscribe_auth = self.auth.on_auth_state_change(self.sync.handle_auth_event)

    @classmethod
    def from_env(cls) -> "ZenithApp":
        configure_logging()
        return cls(get_settings())

    @property
    def state(self) -> Dict[str, Any]:
        return self.store.snapshot

    @property
    def ready(self) -> bool:
        return self.sync.ready

    async def start(self) -> Optional[LoadResult]:
        session = await self.auth.get_current_session()
        if session is None:
            logger.info("No active session, waiting for sign-in")
            return None
        return await self.sync.load_for_user(session.user_id)

    def update(self, transform, *args, **kwargs) -> Dict[str, Any]:
        return self.store.apply(transform, *args, **kwargs)

    async def motivational_quote(self) -> str:
        return await self.quotes.get_quote(self.state["user"].get("name") or "")

    async def study_advice(self, subject: str) -> str:
        return await get_study_advice(self.generator, subject)

    def summary(self, today: Optional[date] = None) -> Dict[str, Any]:
        return metrics.dashboard_summary(self.state, today)

    def shopping_list(self):
        return build_shopping_list(self.state.get("meals"), self.state.get("manualShoppingItems"))

    def hydration(self, today: Optional[date] = None) -> Dict[str, Any]:
        return metrics.hydration_stats(
            self.state.get("waterHistory"),
            self.state["user"].get("waterGoal"),
            today,
        )

    async def close(self) -> None:
        await self.sync.flush()
        self.sync.close()
        self._unsubscribe_auth()
        self.local_storage.dispose()
