from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Callable, Optional, Tuple

from zenith.constants import FALLBACK_QUOTE, QUOTE_STORAGE_KEY
from zenith.services.gemini import GenerationError, GenerationUnavailable

logger = logging.getLogger(__name__)

WRAPPING_QUOTES = "\"'“”‘’«»"


def build_quote_prompt(user_name: str) -> str:
    return (
        "Gere uma frase motivacional curta e impactante (máximo 15 palavras) em português "
        f"para o usuário {user_name}. O foco deve ser produtividade, disciplina e foco. "
        'Use obrigatoriamente um tom similar a: "Hoje, você pode ser melhor do que foi ontem."'
    )


def clean_quote(text: str) -> str:
    return (text or "").strip().strip(WRAPPING_QUOTES).strip()


class DailyQuoteCache:
    """One motivational quote per calendar day.

    The slot is filled on the first request of the day whether generation
    succeeds or not, so a failing generator is called at most once a day.
    """

    def __init__(self, generator, storage=None, today_provider: Callable[[], date] = date.today):
        self.generator = generator
        self.storage = storage
        self._today_provider = today_provider
        self._slot: Optional[Tuple[str, str]] = None
        self._lock = asyncio.Lock()

    def _today_key(self) -> str:
        return self._today_provider().isoformat()

    def _cached(self, day_key: str) -> Optional[str]:
        if self._slot is None and self.storage is not None:
            try:
                stored = self.storage.load_json(QUOTE_STORAGE_KEY)
            except Exception as exc:
                logger.warning("Quote cache read failed: %s", exc)
                stored = None
            if isinstance(stored, dict) and stored.get("date") and stored.get("quote"):
                self._slot = (str(stored["date"]), str(stored["quote"]))
        if self._slot and self._slot[0] == day_key:
            return self._slot[1]
        return None

    def _store(self, day_key: str, quote: str) -> None:
        self._slot = (day_key, quote)
        if self.storage is None:
            return
        try:
            self.storage.save_json(QUOTE_STORAGE_KEY, {"date": day_key, "quote": quote})
        except Exception as exc:
            logger.warning("Quote cache write failed: %s", exc)

    async def get_quote(self, user_name: str) -> str:
        day_key = self._today_key()
        cached = self._cached(day_key)
        if cached is not None:
            return cached

        # Overlapping callers wait for the generation already in flight.
        async with self._lock:
            cached = self._cached(day_key)
            if cached is not None:
                return cached
            quote = await self._generate(user_name)
            self._store(day_key, quote)
            return quote

    async def _generate(self, user_name: str) -> str:
        quote = FALLBACK_QUOTE
        if getattr(self.generator, "enabled", True):
            try:
                generated = await self.generator.generate(
                    build_quote_prompt(user_name),
                    temperature=0.8,
                    max_output_tokens=60,
                )
                quote = clean_quote(generated) or FALLBACK_QUOTE
            except GenerationUnavailable:
                quote = FALLBACK_QUOTE
            except GenerationError as exc:
                logger.warning("Quote generation failed, using fallback: %s", exc)
                quote = FALLBACK_QUOTE
        return quote
