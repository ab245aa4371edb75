"""OpenAI-compatible chat completions implementation of LLMProvider."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from receptionist.llm.base import LLMProvider
from receptionist.models import LLMResponse, LLMToolCall

_LOGGER = logging.getLogger(__name__)


class OpenAIChatProvider(LLMProvider):
    """LLM provider using the ``/chat/completions`` endpoint."""

    def __init__(self, api_key: str, model: str, base_url: str, timeout_seconds: float) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        self._timeout_seconds = timeout_seconds

    async def generate(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | None = None,
    ) -> LLMResponse:
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
        }
        if tools:
            payload["tools"] = tools
            if tool_choice:
                payload["tool_choice"] = tool_choice

        timeout = httpx.Timeout(self._timeout_seconds)
        async with httpx.AsyncClient(base_url=self._base_url, timeout=timeout) as client:
            response = await client.post(
                "/chat/completions",
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

        return parse_completion(data)


def parse_completion(data: dict[str, Any]) -> LLMResponse:
    """Turn a chat-completions response body into an LLMResponse."""

    choice = data["choices"][0]["message"]
    finish_reason = data["choices"][0].get("finish_reason")
    content = choice.get("content") or ""
    _LOGGER.info(
        "LLM response: finish_reason=%r content=%r tool_calls=%r",
        finish_reason,
        content[:200] if content else "",
        choice.get("tool_calls"),
    )

    parsed_tool_calls: list[LLMToolCall] = []
    for tool_call in choice.get("tool_calls") or []:
        function_data = tool_call.get("function", {})
        parsed_tool_calls.append(
            LLMToolCall(
                name=function_data.get("name", ""),
                arguments=_safe_json_loads(function_data.get("arguments", "{}")),
                call_id=tool_call.get("id"),
            )
        )

    return LLMResponse(content=content, tool_calls=parsed_tool_calls, raw=data)


def _safe_json_loads(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}
