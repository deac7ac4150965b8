"""
SSE 透传：逐块把上游 body 写给客户端。
"""

from __future__ import annotations

import json
from typing import Any, AsyncGenerator, AsyncIterable, Iterable, Mapping

import httpx
from fastapi.responses import StreamingResponse

from chatrelay.util.logger import get_logger

logger = get_logger("stream")

SSE_HEADERS = {
    "Content-Type": "text/event-stream; charset=utf-8",
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _stream_error_sse_chunk(message: str, code: str | None = None) -> bytes:
    """SSE chunk carrying the interruption reason as ``error.message`` / ``error.code``."""
    detail = (message or "upstream_error").strip() or "upstream_error"
    error_code = (code or "upstream_error").strip() or "upstream_error"
    payload: dict[str, Any] = {
        "type": "error",
        "error": {
            "message": detail,
            "type": "chatrelay_error",
            "code": error_code,
        },
    }
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


async def pump_upstream(
    upstream_response: httpx.Response,
    *,
    error_mode: str = "close",
) -> AsyncGenerator[bytes, None]:
    # 读一块写一块；客户端断开时生成器被取消，finally 立即释放上游连接
    forwarded = 0
    try:
        async for chunk in upstream_response.aiter_bytes():
            if not chunk:
                continue
            forwarded += len(chunk)
            yield chunk
    except httpx.HTTPError as exc:
        detail = (str(exc) or "").strip() or "connection_failed_or_timeout"
        logger.warning("upstream stream interrupted bytes=%d error=%s", forwarded, detail)
        if error_mode == "event":
            yield _stream_error_sse_chunk(f"stream_interrupted: {detail}", code="stream_interrupted")
    finally:
        await upstream_response.aclose()
        logger.debug("upstream stream closed bytes=%d", forwarded)


def _build_streaming_response(
    generator: Iterable[bytes] | AsyncIterable[bytes],
    *,
    status_code: int = 200,
    headers: Mapping[str, str] | None = None,
) -> StreamingResponse:
    merged = dict(headers or {})
    merged.update(SSE_HEADERS)
    return StreamingResponse(
        generator,
        status_code=status_code,
        media_type="text/event-stream",
        headers=merged,
    )
