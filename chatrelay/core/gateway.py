"""FastAPI app entry."""

from __future__ import annotations

import httpx
from fastapi import FastAPI

from chatrelay.adapters.openai_compat.router import RelayHandler, build_router
from chatrelay.adapters.openai_compat.upstream import UpstreamClient
from chatrelay.config.settings import Settings
from chatrelay.util.logger import configure_logger, logger


def create_app(
    settings: Settings | None = None,
    *,
    upstream_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the relay app. Settings are resolved here, once, and injected downstream.

    Serve with ``uvicorn --factory chatrelay.core.gateway:create_app`` or ``python -m chatrelay``.
    """

    resolved = settings if settings is not None else Settings()
    configure_logger(resolved.log_level, resolved.log_file)

    upstream = UpstreamClient(resolved, transport=upstream_transport)
    handler = RelayHandler(resolved, upstream)

    app = FastAPI(title=resolved.app_name)
    app.include_router(build_router(handler))

    @app.get("/health")
    def health() -> dict:
        logger.debug("health check")
        return {"status": "ok"}

    @app.on_event("startup")
    async def startup_report() -> None:
        logger.info(
            "chatrelay ready env=%s endpoint=%s upstream=%s credential_configured=%s",
            resolved.env,
            resolved.endpoint_path,
            resolved.upstream_url,
            bool(resolved.openai_api_key.strip()),
        )

    @app.on_event("shutdown")
    async def shutdown_cleanup() -> None:
        await upstream.aclose()

    return app
