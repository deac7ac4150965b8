"""Browser-facing chat relay route (CORS + OpenAI Chat Completions pass-through)."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from chatrelay.adapters.openai_compat.stream_utils import _build_streaming_response, pump_upstream
from chatrelay.adapters.openai_compat.upstream import UpstreamClient
from chatrelay.config.settings import Settings
from chatrelay.core.errors import (
    BadRequestError,
    ChatRelayError,
    ConfigurationError,
    MethodNotAllowedError,
    PayloadTooLargeError,
    UpstreamUnavailableError,
)
from chatrelay.core.normalize import build_upstream_payload, parse_body
from chatrelay.util.logger import get_logger

logger = get_logger("relay")


class RelayHandler:
    """Per-app relay handler; settings and upstream client are injected once."""

    def __init__(self, settings: Settings, upstream: UpstreamClient) -> None:
        self.settings = settings
        self.upstream = upstream
        self.cors_headers = {
            "Access-Control-Allow-Origin": settings.cors_allow_origin,
            "Access-Control-Allow-Headers": "Content-Type, Authorization",
            "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        }

    async def __call__(self, request: Request) -> Response:
        method = request.method.upper()
        logger.debug("relay enter method=%s path=%s", method, request.url.path)
        try:
            if method == "OPTIONS":
                return self.preflight()
            if method == "GET":
                return self.status()
            if method != "POST":
                raise MethodNotAllowedError(method)
            return await self.relay(request)
        except UpstreamUnavailableError as exc:
            return JSONResponse(status_code=exc.status_code, content={"error": str(exc)}, headers=self.cors_headers)
        except ChatRelayError as exc:
            return self._error_response(exc)
        except Exception as exc:
            logger.exception("relay unhandled exception method=%s path=%s", method, request.url.path)
            return JSONResponse(status_code=500, content={"error": str(exc) or type(exc).__name__}, headers=self.cors_headers)

    def preflight(self) -> Response:
        return Response(status_code=204, headers=self.cors_headers)

    def status(self) -> JSONResponse:
        return JSONResponse(
            status_code=200,
            content={
                "ok": True,
                "endpoint": self.settings.endpoint_path,
                "expects": "POST (JSON)",
                "stream": self.settings.default_stream,
                "version": self.settings.version,
                "tip": self.settings.status_tip,
            },
            headers={**self.cors_headers, "Cache-Control": "no-store"},
        )

    def _error_response(self, exc: ChatRelayError) -> PlainTextResponse:
        text = exc.public_message
        if isinstance(exc, BadRequestError) and exc.detail:
            text = f"{exc.public_message}: {exc.detail}"
        if exc.status_code >= 500:
            logger.error("relay rejected status=%s reason=%s", exc.status_code, exc)
        else:
            logger.warning("relay rejected status=%s reason=%s", exc.status_code, exc)
        return PlainTextResponse(text, status_code=exc.status_code, headers=self.cors_headers)

    async def _read_body(self, request: Request) -> bytes:
        limit = self.settings.max_request_body_bytes
        content_length = request.headers.get("content-length", "").strip()
        if limit > 0 and content_length.isdigit() and int(content_length) > limit:
            raise PayloadTooLargeError(f"content_length={content_length} max={limit}")
        body = await request.body()
        if limit > 0 and len(body) > limit:
            raise PayloadTooLargeError(f"actual_size={len(body)} max={limit}")
        return body

    async def relay(self, request: Request) -> Response:
        inbound = parse_body(await self._read_body(request))
        if not self.settings.openai_api_key.strip():
            raise ConfigurationError("openai_api_key is empty")

        payload = build_upstream_payload(inbound, self.settings)
        logger.info(
            "relay forward model=%s messages=%d stream=%s",
            payload.model,
            len(payload.messages),
            payload.stream,
        )

        if not payload.stream:
            status_code, data = await self.upstream.post_json(payload)
            if status_code >= 400:
                logger.warning("relay upstream status=%s", status_code)
            return JSONResponse(
                status_code=status_code,
                content=data,
                headers={**self.cors_headers, "Cache-Control": "no-store"},
            )

        upstream_response = await self.upstream.open_stream(payload)
        if upstream_response.status_code >= 400:
            logger.warning("relay upstream stream status=%s", upstream_response.status_code)
        return _build_streaming_response(
            pump_upstream(upstream_response, error_mode=self.settings.stream_error_mode),
            status_code=upstream_response.status_code,
            headers=self.cors_headers,
        )


def build_router(handler: RelayHandler) -> APIRouter:
    router = APIRouter()

    async def chat_relay(request: Request) -> Response:
        return await handler(request)

    # methods=None：任意方法都进 RelayHandler，405 也带 CORS 头
    router.add_route(handler.settings.endpoint_path, chat_relay, include_in_schema=False)
    return router
