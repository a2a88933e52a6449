from __future__ import annotations

import logging

import httpx

from zenith.constants import STUDY_ADVICE_EMPTY, STUDY_ADVICE_FALLBACK

logger = logging.getLogger(__name__)

GEMINI_API = "https://generativelanguage.googleapis.com/v1beta"


class GenerationError(RuntimeError):
    pass


class GenerationUnavailable(GenerationError):
    pass


class EmptyGeneration(GenerationError):
    pass


def _extract_text(payload) -> str:
    if not isinstance(payload, dict):
        raise GenerationError("Text generation returned an unexpected payload")
    candidates = payload.get("candidates") or []
    if not isinstance(candidates, list) or not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    return "".join(str(part.get("text") or "") for part in parts if isinstance(part, dict))


class TextGenerator:
    def __init__(
        self,
        api_key: str | None,
        model: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = (api_key or "").strip()
        self.model = model
        self.timeout = timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def generate(self, prompt: str, temperature: float = 0.7, max_output_tokens: int = 100) -> str:
        if not self.enabled:
            raise GenerationUnavailable("GEMINI_API_KEY not configured")
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": max_output_tokens,
            },
        }
        url = f"{GEMINI_API}/models/{self.model}:generateContent"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=body, headers={"x-goog-api-key": self.api_key})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise GenerationError(f"Text generation failed: {exc}") from exc
        except ValueError as exc:
            raise GenerationError("Text generation returned invalid JSON") from exc
        text = _extract_text(payload).strip()
        if not text:
            raise EmptyGeneration("Text generation returned no text")
        return text


async def get_study_advice(generator: TextGenerator, subject: str) -> str:
    prompt = f"Dê uma dica rápida de estudo em português para a matéria: {subject}. Seja conciso."
    try:
        text = await generator.generate(prompt, temperature=0.7, max_output_tokens=100)
    except GenerationUnavailable:
        return STUDY_ADVICE_FALLBACK
    except EmptyGeneration:
        return STUDY_ADVICE_EMPTY
    except GenerationError as exc:
        logger.warning("Study advice unavailable: %s", exc)
        return STUDY_ADVICE_FALLBACK
    return text or STUDY_ADVICE_EMPTY
