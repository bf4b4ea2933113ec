"""LLM service: Gemini primary, OpenRouter fallback, returning strict JSON.

Async implementation using httpx so the event loop (and the agent's polling
loop) is not blocked while waiting on upstream LLM APIs. Includes lightweight
retries via tenacity for transient network and 429/5xx responses.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_random_exponential,
)

from ..config import get_settings
from ..exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


# Retry predicate: network errors, timeouts, and 429/5xx HTTP errors
def _is_retryable(exc: BaseException) -> bool:  # pragma: no cover - simple predicate
    if isinstance(exc, (httpx.RequestError, httpx.TimeoutException)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or 500 <= status < 600
    return False


def parse_json_object(text: str) -> Dict[str, Any]:
    """Parse a JSON object from model output, tolerating code fences or prose around it."""
    text = (text or "").strip()
    try:
        data = json.loads(text)
    except ValueError:
        match = _JSON_OBJECT_RE.search(text)
        if not match:
            raise ValueError("no JSON object in model output")
        data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("model output is not a JSON object")
    return data


class LLMService:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = get_settings()
        # Clamp to a reasonable range to avoid provider errors
        self.max_output_tokens = max(256, min(8192, self.settings.LLM_MAX_OUTPUT_TOKENS))
        self.timeout = self.settings.LLM_TIMEOUT_SEC
        self._transport = transport

    def _gemini_url(self) -> str:
        model = self.settings.GEMINI_MODEL or "gemini-2.5-flash-lite"
        return f"https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent?key={self.settings.GEMINI_API_KEY}"

    def _openrouter_url(self) -> str:
        return "https://openrouter.ai/api/v1/chat/completions"

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_random_exponential(multiplier=0.2, max=5),
        retry=retry_if_exception(_is_retryable),
    )
    async def _post_json(self, url: str, *, headers: Optional[Dict[str, str]] = None, payload: Dict[str, Any]) -> Dict[str, Any]:
        """HTTP POST JSON with retries. Raises httpx.HTTPStatusError on non-2xx.

        Returns parsed JSON dict.
        """
        t = httpx.Timeout(self.timeout, connect=5.0)
        async with httpx.AsyncClient(timeout=t, transport=self._transport) as client:
            resp = await client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()

    async def complete_with_gemini_async(self, system: str, prompt: str) -> Dict[str, Any]:
        if not self.settings.GEMINI_API_KEY:
            raise RuntimeError("Missing GEMINI_API_KEY")
        payload = {
            "systemInstruction": {"parts": [{"text": system}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": 0.2,
                "maxOutputTokens": self.max_output_tokens,
                "responseMimeType": "application/json",
            },
        }
        data = await self._post_json(self._gemini_url(), payload=payload)
        # Gemini returns candidates[0].content.parts[0].text
        try:
            text_out = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("Gemini unexpected response: %s", data)
            raise RuntimeError(f"Gemini parse error: {e}")
        try:
            return parse_json_object(text_out)
        except ValueError as e:
            raise RuntimeError(f"Gemini returned non-JSON: {e}")

    async def complete_with_openrouter_async(self, system: str, prompt: str) -> Dict[str, Any]:
        if not self.settings.OPENROUTER_API_KEY:
            raise RuntimeError("Missing OPENROUTER_API_KEY")
        headers = {
            "Authorization": f"Bearer {self.settings.OPENROUTER_API_KEY}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.settings.OPENROUTER_MODEL or "meta-llama/llama-3.3-70b-instruct:free",
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.2,
            "max_tokens": self.max_output_tokens,
            "response_format": {"type": "json_object"},
        }
        data = await self._post_json(self._openrouter_url(), headers=headers, payload=payload)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("OpenRouter unexpected response: %s", data)
            raise RuntimeError(f"OpenRouter parse error: {e}")
        try:
            return parse_json_object(content)
        except ValueError as e:
            raise RuntimeError(f"OpenRouter returned non-JSON: {e}")

    async def complete_json_async(self, system: str, prompt: str) -> Dict[str, Any]:
        """Try Gemini, fallback to OpenRouter, returning a parsed JSON object.

        Raises ExternalServiceError when neither provider yields a JSON object.
        """
        try:
            return await self.complete_with_gemini_async(system, prompt)
        except Exception as e:  # noqa: BLE001
            logger.warning("Gemini failed: %s", e)
        try:
            return await self.complete_with_openrouter_async(system, prompt)
        except Exception as e:  # noqa: BLE001
            logger.error("OpenRouter failed: %s", e)
            raise ExternalServiceError(f"LLM providers unavailable: {e}") from e
