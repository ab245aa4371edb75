"""Bounded tool-calling loop between the user, the model and the tools."""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable

from receptionist.history import HistoryStore
from receptionist.llm.base import LLMProvider
from receptionist.models import CustomerInfo, Message, Turn
from receptionist.tools.registry import ToolRegistry
from receptionist.transcript import Transcript

LOGGER = logging.getLogger(__name__)

Reply = Callable[[str], Awaitable[Any]]


class Outcome(enum.Enum):
    REPLIED = "replied"
    # Iteration budget spent on tool calls without final text.
    EXHAUSTED = "exhausted"
    # Model finished with empty content; nothing was sent.
    EMPTY = "empty"
    # The model call raised; caller decides on a fallback.
    FAILED = "failed"


class Orchestrator:
    """Drives one inbound message through the model and its tools.

    Each iteration sends the transcript and tool catalog to the model. Tool
    calls are executed in order and fed back; final text is sent as the reply.
    Turns created during the exchange are committed to history afterwards,
    except when the model call fails.
    """

    def __init__(
        self,
        llm: LLMProvider,
        tool_registry: ToolRegistry,
        system_prompt: str,
        history: HistoryStore | None = None,
        max_iterations: int = 5,
        exhausted_reply: str = "",
        request_timeout_seconds: float | None = None,
    ) -> None:
        self._llm = llm
        self._tool_registry = tool_registry
        self._system_prompt = system_prompt
        self._history = history
        self._max_iterations = max_iterations
        self._exhausted_reply = exhausted_reply
        self._request_timeout_seconds = request_timeout_seconds

    def compose(self, conversation_id: str, text: str) -> Transcript:
        history = self._history.read(conversation_id) if self._history else []
        return Transcript.compose(self._system_prompt, history, Turn.user(text))

    async def run(self, message: Message, reply: Reply) -> Outcome:
        """Handle ``message``, sending at most one reply through ``reply``."""

        customer = CustomerInfo.from_message(message)
        transcript = self.compose(message.chat_id, message.text)
        tools = self._tool_registry.list_tool_specs()

        outcome = Outcome.EXHAUSTED
        for iteration in range(1, self._max_iterations + 1):
            try:
                response = await asyncio.wait_for(
                    self._llm.generate(transcript.to_messages(), tools=tools or None, tool_choice="auto"),
                    timeout=self._request_timeout_seconds,
                )
            except Exception:  # noqa: BLE001
                LOGGER.exception("Model call failed for %s (iteration %d)", message.chat_id, iteration)
                return Outcome.FAILED

            if response.tool_calls:
                transcript = transcript.extend(Turn.assistant(response.content, tuple(response.tool_calls)))
                for tool_call in response.tool_calls:
                    LOGGER.info("Executing tool %s for %s", tool_call.name, message.chat_id)
                    result = await self._tool_registry.execute(
                        message.chat_id, tool_call.name, tool_call.arguments, customer
                    )
                    transcript = transcript.extend(Turn.tool(tool_call.call_id, tool_call.name, result.text))
                continue

            if response.content:
                await reply(response.content)
                LOGGER.info("Replied to %s: %r", message.chat_id, response.content[:200])
                transcript = transcript.extend(Turn.assistant(response.content))
                outcome = Outcome.REPLIED
            else:
                LOGGER.warning("Model returned neither tool calls nor text for %s", message.chat_id)
                outcome = Outcome.EMPTY
            break
        else:
            LOGGER.warning(
                "Tool loop for %s hit %d iterations without a final answer", message.chat_id, self._max_iterations
            )
            if self._exhausted_reply:
                await reply(self._exhausted_reply)
                transcript = transcript.extend(Turn.assistant(self._exhausted_reply))

        self.commit(message.chat_id, transcript)
        return outcome

    def commit(self, conversation_id: str, transcript: Transcript) -> None:
        if self._history is None:
            return
        for turn in transcript.new_turns():
            self._history.append(conversation_id, turn)
