"""Request/upstream transport models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool


class ChatMessage(BaseModel):
    # name / tool_calls 等额外字段原样透传
    model_config = ConfigDict(extra="allow")

    role: str
    content: Any = None


class InboundChatRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messages: list[ChatMessage] | None = None
    system: str | None = None
    model: str | None = None
    temperature: float | None = None
    stream: StrictBool | None = None
    prompt: str | None = None
    input: Any = None


class UpstreamPayload(BaseModel):
    model: str
    temperature: float
    stream: bool
    messages: list[ChatMessage] = Field(default_factory=list)

    def to_upstream_json(self) -> dict[str, Any]:
        """Wire form; message keys the caller never sent stay absent."""

        return self.model_dump(mode="json", exclude={"messages"}) | {
            "messages": [message.model_dump(mode="json", exclude_unset=True) for message in self.messages]
        }
