"""Core domain models used across layers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

Role = Literal["system", "user", "assistant", "tool"]


@dataclass(slots=True)
class Message:
    """Message normalized by transports for bot usage."""

    message_id: str
    chat_id: str
    sender_id: str
    text: str
    timestamp: datetime
    sender_name: str | None = None
    is_group: bool = False
    is_broadcast: bool = False
    from_me: bool = False
    mentions: list[str] = field(default_factory=list)
    quoted_author: str | None = None
    quoted_from_me: bool = False


@dataclass(frozen=True, slots=True)
class CustomerInfo:
    """Who a booking is made for."""

    name: str
    number: str

    @classmethod
    def from_message(cls, message: Message) -> CustomerInfo:
        number = message.sender_id.split("@", 1)[0].lstrip("+") or "Unknown"
        return cls(name=message.sender_name or "Customer", number=number)


@dataclass(slots=True)
class LLMToolCall:
    """Tool invocation returned by an LLM provider."""

    name: str
    arguments: dict[str, Any]
    call_id: str | None = None


@dataclass(slots=True)
class LLMResponse:
    """Result from an LLM generation request."""

    content: str
    tool_calls: list[LLMToolCall] = field(default_factory=list)
    raw: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class Turn:
    """One role-tagged unit of a conversation."""

    role: Role
    content: str = ""
    tool_calls: tuple[LLMToolCall, ...] = ()
    tool_call_id: str | None = None
    name: str | None = None

    @classmethod
    def system(cls, content: str) -> Turn:
        return cls(role="system", content=content)

    @classmethod
    def user(cls, content: str) -> Turn:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str = "", tool_calls: tuple[LLMToolCall, ...] = ()) -> Turn:
        return cls(role="assistant", content=content, tool_calls=tuple(tool_calls))

    @classmethod
    def tool(cls, call_id: str | None, name: str, content: str) -> Turn:
        return cls(role="tool", content=content, tool_call_id=call_id, name=name)

    def to_wire(self) -> dict[str, Any]:
        """Render in the chat-completions message shape."""

        message: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": tc.call_id,
                    "type": "function",
                    "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                }
                for tc in self.tool_calls
            ]
        if self.role == "tool":
            message["tool_call_id"] = self.tool_call_id
            message["name"] = self.name
        return message

    def to_json(self) -> str:
        return json.dumps(
            {
                "role": self.role,
                "content": self.content,
                "tool_calls": [
                    {"name": tc.name, "arguments": tc.arguments, "call_id": tc.call_id}
                    for tc in self.tool_calls
                ],
                "tool_call_id": self.tool_call_id,
                "name": self.name,
            }
        )

    @classmethod
    def from_json(cls, raw: str) -> Turn:
        data = json.loads(raw)
        return cls(
            role=data["role"],
            content=data.get("content") or "",
            tool_calls=tuple(LLMToolCall(**tc) for tc in data.get("tool_calls") or []),
            tool_call_id=data.get("tool_call_id"),
            name=data.get("name"),
        )


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of a tool call, always carried back to the model as text."""

    ok: bool
    text: str

    @classmethod
    def success(cls, text: str) -> ToolResult:
        return cls(ok=True, text=text)

    @classmethod
    def failure(cls, text: str) -> ToolResult:
        return cls(ok=False, text=text)


@dataclass(frozen=True, slots=True)
class ScheduleSpec:
    """When an auto-send job fires. Durations are in seconds."""

    immediate: bool = False
    delay: float = 0.0
    interval: float | None = None


@dataclass(frozen=True, slots=True)
class ScheduledJob:
    """Outbound message sent on a fixed delay and optional interval."""

    to: str
    message: str
    schedule: ScheduleSpec
