"""
Client for the external word-segmentation service.
"""

import logging
import os
from typing import Optional

import httpx
from pydantic import BaseModel

from telemetry import append_retrieval_telemetry

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float, min_value: float, max_value: float) -> float:
    raw = os.getenv(name)
    try:
        value = float(raw) if raw not in (None, "") else default
    except Exception:
        value = default
    return max(min_value, min(max_value, value))


class TokenizerConfig(BaseModel):
    """Where the segmenter lives and how long we wait for it."""

    url: Optional[str] = None
    timeout_sec: float = 10.0


class TokenizerClient:
    """POST ``{"text": ...}`` and read back ``{"tokens": [...]}``.

    Any failure (connection, timeout, non-2xx, malformed body) resolves to
    ``None`` so the caller can fall back to local segmentation.
    """

    def __init__(
        self,
        config: Optional[TokenizerConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or TokenizerConfig(
            url=os.getenv("TOKENIZER_URL", "http://127.0.0.1:36146/tokenize"),
            timeout_sec=_env_float("TOKENIZER_TIMEOUT_SEC", 10.0, 0.5, 60.0),
        )
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool((self.config.url or "").strip())

    async def tokenize(self, text: str) -> Optional[list[str]]:
        if not self.enabled:
            return None
        try:
            async with httpx.AsyncClient(timeout=self.config.timeout_sec, transport=self._transport) as client:
                response = await client.post(self.config.url, json={"text": text})
            if response.status_code < 200 or response.status_code >= 300:
                self._degraded(f"http={response.status_code}")
                return None
            body = response.json()
        except httpx.TimeoutException:
            self._degraded("timeout")
            return None
        except Exception as exc:
            self._degraded(str(exc)[:200])
            return None

        tokens = body.get("tokens") if isinstance(body, dict) else None
        if not isinstance(tokens, list):
            self._degraded("malformed body")
            return None
        cleaned = []
        for t in tokens:
            s = str(t).strip() if t is not None else ""
            if s:
                cleaned.append(s)
        return cleaned

    def _degraded(self, reason: str) -> None:
        logger.warning("[tokenizer] falling back to local segmentation: %s", reason)
        append_retrieval_telemetry("tokenizer_fallback", {"reason": reason})


tokenizer_client = TokenizerClient()
