"""
Upstream Chat Completions client: one POST per relayed request.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx

from chatrelay.config.settings import Settings
from chatrelay.core.errors import ConfigurationError, UpstreamUnavailableError
from chatrelay.core.models import UpstreamPayload
from chatrelay.util.logger import get_logger

logger = get_logger("upstream")


def _decode_json_or_empty(body: bytes) -> Any:
    text = body.decode("utf-8", errors="replace")
    if not text.strip():
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return {}


def _transport_detail(exc: httpx.HTTPError) -> str:
    return (str(exc) or "").strip() or "connection_failed_or_timeout"


class UpstreamClient:
    """Owns the pooled ``httpx.AsyncClient`` and the bearer credential."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    @property
    def url(self) -> str:
        return self._settings.upstream_url

    def _limits(self) -> httpx.Limits:
        return httpx.Limits(
            max_connections=max(10, int(self._settings.upstream_max_connections)),
            max_keepalive_connections=max(5, int(self._settings.upstream_max_keepalive_connections)),
        )

    def _timeout(self) -> httpx.Timeout:
        timeout = float(self._settings.upstream_timeout_seconds)
        return httpx.Timeout(connect=timeout, read=timeout, write=timeout, pool=timeout)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        async with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    timeout=self._timeout(),
                    limits=self._limits(),
                    transport=self._transport,
                )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.openai_api_key.strip()
        if not api_key:
            raise ConfigurationError("openai_api_key is empty")
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _encode(self, payload: UpstreamPayload) -> bytes:
        return json.dumps(payload.to_upstream_json(), ensure_ascii=False).encode("utf-8")

    async def post_json(self, payload: UpstreamPayload) -> tuple[int, Any]:
        """Send and read the full answer; a body that is not JSON becomes ``{}``."""

        body = self._encode(payload)
        headers = self._headers()
        logger.debug("forward_json start url=%s payload_bytes=%d", self.url, len(body))
        client = await self._get_client()
        try:
            response = await client.post(self.url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            detail = _transport_detail(exc)
            logger.warning("forward_json http_error url=%s error=%s", self.url, detail)
            raise UpstreamUnavailableError(f"upstream_unreachable: {detail}") from exc
        logger.debug("forward_json done url=%s status=%s", self.url, response.status_code)
        return response.status_code, _decode_json_or_empty(response.content)

    async def open_stream(self, payload: UpstreamPayload) -> httpx.Response:
        """Send and return once headers arrive; the caller must ``aclose()`` the response."""

        body = self._encode(payload)
        headers = self._headers()
        logger.debug("forward_stream start url=%s payload_bytes=%d", self.url, len(body))
        client = await self._get_client()
        request = client.build_request("POST", self.url, content=body, headers=headers)
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            detail = _transport_detail(exc)
            logger.warning("forward_stream http_error url=%s error=%s", self.url, detail)
            raise UpstreamUnavailableError(f"upstream_unreachable: {detail}") from exc
        logger.debug("forward_stream connected url=%s status=%s", self.url, response.status_code)
        return response
