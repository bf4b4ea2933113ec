"""Ledger anchoring client: best-effort verification tokens for generated reports."""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_random_exponential

from ..exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


def _is_retryable(exc: BaseException) -> bool:  # pragma: no cover - simple predicate
    if isinstance(exc, httpx.RequestError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or 500 <= status < 600
    return False


def payload_digest(payload: Dict[str, Any]) -> str:
    """SHA-256 over the canonical JSON encoding of the payload."""
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


@dataclass
class LedgerConfig:
    anchor_url: str = ""
    api_key: str = ""
    network: str = "devnet"
    timeout: float = 15.0

    @property
    def enabled(self) -> bool:
        return bool(self.anchor_url)


class LedgerAnchorService:
    """Wrapper for the HTTP anchoring endpoint; a missing URL means anchoring is disabled."""

    def __init__(self, cfg: LedgerConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.cfg = cfg
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return self.cfg.enabled

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.cfg.api_key:
            headers["Authorization"] = f"Bearer {self.cfg.api_key}"
        return headers

    @retry(
        reraise=True,
        stop=stop_after_attempt(3),
        wait=wait_random_exponential(multiplier=0.2, max=3),
        retry=retry_if_exception(_is_retryable),
    )
    async def _request(self, method: str, url: str, body: Optional[Dict[str, Any]] = None) -> httpx.Response:
        t = httpx.Timeout(self.cfg.timeout, connect=5.0)
        async with httpx.AsyncClient(timeout=t, transport=self._transport) as client:
            resp = await client.request(method, url, headers=self._headers(), json=body)
            if resp.status_code != 404:
                resp.raise_for_status()
            return resp

    async def anchor(self, payload: Dict[str, Any]) -> Optional[str]:
        """Anchor the report payload and return the verification token.

        Returns None if anchoring is disabled. Raises ExternalServiceError on failure.
        """
        if not self.enabled:
            logger.info("Ledger anchoring disabled: skipping report %s", payload.get("reportId"))
            return None

        body = {"network": self.cfg.network, "digest": payload_digest(payload), "memo": payload}
        try:
            resp = await self._request("POST", self.cfg.anchor_url, body)
            if resp.status_code == 404:
                raise ExternalServiceError("Ledger anchor endpoint not found")
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ExternalServiceError(f"Ledger anchoring failed: {exc}") from exc

        token = (data.get("token") or data.get("signature")) if isinstance(data, dict) else None
        if not token:
            raise ExternalServiceError("Ledger response did not include a token")
        logger.info("Anchored report %s on %s: %s", payload.get("reportId"), self.cfg.network, token)
        return str(token)

    async def verify(self, token: str) -> bool:
        """Return True if the ledger knows the token; False if unknown or disabled."""
        if not self.enabled or not token:
            return False
        url = f"{self.cfg.anchor_url.rstrip('/')}/{token}"
        try:
            resp = await self._request("GET", url)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"Ledger verification failed: {exc}") from exc
        return resp.status_code == 200
