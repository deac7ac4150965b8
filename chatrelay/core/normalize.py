"""
Inbound body parsing and normalization into the Chat Completions payload.

Only the plain chat-message strategy is supported: ``messages`` passes
through untouched, ``system`` becomes a leading system message, and
``prompt``/``input`` are a fallback for callers that send no ``messages``.
"""

from __future__ import annotations

import json

from pydantic import ValidationError

from chatrelay.config.settings import Settings
from chatrelay.core.errors import BadRequestError
from chatrelay.core.models import ChatMessage, InboundChatRequest, UpstreamPayload
from chatrelay.util.logger import get_logger

logger = get_logger("normalize")


def parse_body(raw: bytes) -> InboundChatRequest:
    text = raw.decode("utf-8", errors="replace").strip()
    if not text:
        return InboundChatRequest()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("reject body invalid json pos=%s", exc.pos)
        raise BadRequestError("invalid JSON") from exc
    if not isinstance(parsed, dict):
        logger.warning("reject body not an object type=%s", type(parsed).__name__)
        raise BadRequestError("body must be a JSON object")
    try:
        return InboundChatRequest.model_validate(parsed)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "body"
        logger.warning("reject body invalid field loc=%s error=%s", location, first.get("type"))
        raise BadRequestError(f"invalid field {location}") from exc


def _fallback_messages(inbound: InboundChatRequest) -> list[ChatMessage]:
    for candidate in (inbound.prompt, inbound.input):
        if isinstance(candidate, str) and candidate:
            return [ChatMessage(role="user", content=candidate)]
    return []


def build_upstream_payload(inbound: InboundChatRequest, settings: Settings) -> UpstreamPayload:
    messages = list(inbound.messages) if inbound.messages is not None else _fallback_messages(inbound)
    if inbound.system:
        messages.insert(0, ChatMessage(role="system", content=inbound.system))

    payload = UpstreamPayload(
        model=settings.default_model if inbound.model is None else inbound.model,
        temperature=settings.default_temperature if inbound.temperature is None else inbound.temperature,
        stream=settings.default_stream if inbound.stream is None else inbound.stream,
        messages=messages,
    )
    logger.debug(
        "payload normalized model=%s messages=%d system=%s stream=%s",
        payload.model,
        len(payload.messages),
        bool(inbound.system),
        payload.stream,
    )
    return payload
