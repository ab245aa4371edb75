"""Tests for the message gate, fallbacks and lifecycle handlers."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from receptionist.bot import AssistantBot
from receptionist.config import BotConfig
from receptionist.context import build_context
from receptionist.models import LLMResponse, Message
from receptionist.orchestrator import Orchestrator
from receptionist.tools.registry import ToolRegistry

BOT_NUMBER = "+94770000000"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _config(**overrides: Any) -> BotConfig:
    data: dict[str, Any] = {
        "auto_reply": {"enabled": True, "keywords": {"hi": "Hello!", "price": "See our menu."}},
        "ai": {"enabled": False},
    }
    data.update(overrides)
    return BotConfig.model_validate(data)


def _transport() -> MagicMock:
    transport = MagicMock()
    transport.self_id = BOT_NUMBER
    transport.reply = AsyncMock(return_value=True)
    transport.send = AsyncMock(return_value=True)
    return transport


def _bot(config: BotConfig, llm: object | None = None, transport: MagicMock | None = None):
    transport = transport or _transport()
    context = build_context(config, transport.send)
    orchestrator = None
    if llm is not None:
        orchestrator = Orchestrator(
            llm=llm,
            tool_registry=ToolRegistry(),
            system_prompt=config.ai.system_prompt,
            history=context.history,
            max_iterations=config.ai.max_iterations,
        )
    return AssistantBot(context, transport, orchestrator), transport, context


def _msg(text: str, message_id: str = "m1", **kwargs: Any) -> Message:
    kwargs.setdefault("chat_id", "+94771234567")
    return Message(
        message_id=message_id,
        sender_id="+94771234567",
        text=text,
        timestamp=datetime.now(timezone.utc),
        **kwargs,
    )


def _llm(content: str = "AI reply") -> MagicMock:
    llm = MagicMock()
    llm.generate = AsyncMock(return_value=LLMResponse(content=content))
    return llm


# ---------------------------------------------------------------------------
# Keyword/default path
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_keyword_reply_when_ai_disabled():
    bot, transport, _ = _bot(_config())
    message = _msg("hi there")

    await bot.on_message(message)

    transport.reply.assert_awaited_once_with(message, "Hello!")


@pytest.mark.asyncio
async def test_keywords_match_case_insensitively_first_wins():
    bot, transport, _ = _bot(_config())

    await bot.on_message(_msg("HI, what's the PRICE?"))

    assert transport.reply.await_args.args[1] == "Hello!"


@pytest.mark.asyncio
async def test_default_reply_when_no_keyword():
    config = _config(auto_reply={"keywords": {"hi": "Hello!"}, "use_default_reply": True, "default_reply": "We'll call you."})
    bot, transport, _ = _bot(config)

    await bot.on_message(_msg("something else"))

    assert transport.reply.await_args.args[1] == "We'll call you."


@pytest.mark.asyncio
async def test_no_reply_when_nothing_matches():
    bot, transport, _ = _bot(_config())
    await bot.on_message(_msg("something else"))
    transport.reply.assert_not_awaited()


# ---------------------------------------------------------------------------
# Dedup and filters
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_duplicate_delivery_is_answered_once():
    config = _config(ai={"enabled": True, "history": {"enabled": True, "limit": 10}})
    llm = _llm()
    bot, transport, context = _bot(config, llm=llm)

    await bot.on_message(_msg("hello", message_id="dup"))
    await bot.on_message(_msg("hello", message_id="dup"))

    transport.reply.assert_awaited_once()
    assert llm.generate.await_count == 1
    assert len(context.history.read("+94771234567")) == 2


@pytest.mark.asyncio
async def test_concurrent_duplicates_are_answered_once():
    config = _config(ai={"enabled": True})
    llm = MagicMock()

    async def slow_generate(*args: Any, **kwargs: Any) -> LLMResponse:
        await asyncio.sleep(0.01)
        return LLMResponse(content="AI reply")

    llm.generate = AsyncMock(side_effect=slow_generate)
    bot, transport, _ = _bot(config, llm=llm)

    await asyncio.gather(bot.on_message(_msg("hello", "dup")), bot.on_message(_msg("hello", "dup")))

    transport.reply.assert_awaited_once()


@pytest.mark.asyncio
async def test_own_messages_are_ignored():
    bot, transport, _ = _bot(_config())
    await bot.on_message(_msg("hi", from_me=True))
    transport.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_broadcasts_are_ignored():
    bot, transport, _ = _bot(_config())
    await bot.on_message(_msg("hi", is_broadcast=True))
    transport.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_auto_reply_disabled_ignores_everything():
    bot, transport, _ = _bot(_config(auto_reply={"enabled": False, "keywords": {"hi": "Hello!"}}))
    await bot.on_message(_msg("hi"))
    transport.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_group_message_needs_mention_or_reply():
    bot, transport, _ = _bot(_config())

    await bot.on_message(_msg("hi all", "g1", chat_id="group-abc", is_group=True))
    transport.reply.assert_not_awaited()

    await bot.on_message(_msg("hi bot", "g2", chat_id="group-abc", is_group=True, mentions=[BOT_NUMBER]))
    await bot.on_message(_msg("hi again", "g3", chat_id="group-abc", is_group=True, quoted_from_me=True))
    assert transport.reply.await_count == 2


@pytest.mark.asyncio
async def test_groups_can_be_ignored_entirely():
    bot, transport, _ = _bot(_config(bot={"ignore_groups": True}))
    await bot.on_message(_msg("hi", chat_id="group-abc", is_group=True, mentions=[BOT_NUMBER]))
    transport.reply.assert_not_awaited()


# ---------------------------------------------------------------------------
# AI path and fallbacks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_ai_reply_skips_keywords():
    bot, transport, _ = _bot(_config(ai={"enabled": True}), llm=_llm("From the model"))

    await bot.on_message(_msg("hi"))

    transport.reply.assert_awaited_once()
    assert transport.reply.await_args.args[1] == "From the model"


@pytest.mark.asyncio
async def test_ai_failure_falls_back_to_keywords():
    llm = MagicMock()
    llm.generate = AsyncMock(side_effect=RuntimeError("down"))
    bot, transport, _ = _bot(_config(ai={"enabled": True, "fallback_to_default": True}), llm=llm)

    await bot.on_message(_msg("hi"))

    assert transport.reply.await_args.args[1] == "Hello!"


@pytest.mark.asyncio
async def test_ai_failure_without_fallback_drops_message():
    llm = MagicMock()
    llm.generate = AsyncMock(side_effect=RuntimeError("down"))
    bot, transport, _ = _bot(_config(ai={"enabled": True, "fallback_to_default": False}), llm=llm)

    await bot.on_message(_msg("hi"))

    transport.reply.assert_not_awaited()


@pytest.mark.asyncio
async def test_unexpected_error_is_contained():
    transport = _transport()
    transport.reply = AsyncMock(side_effect=RuntimeError("socket closed"))
    bot, _, _ = _bot(_config(), transport=transport)

    await bot.on_message(_msg("hi"))

    transport.reply.assert_awaited_once()


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_ready_starts_auto_send_and_disconnect_cancels():
    config = _config(
        auto_send={
            "enabled": True,
            "messages": [{"to": "+94779999999", "message": "Promo", "schedule": {"delay": 10, "interval": 30}}],
        }
    )
    bot, transport, context = _bot(config)

    await bot.on_ready()
    await asyncio.sleep(0.1)
    assert transport.send.await_count >= 2
    assert list(context.scheduler.registry) == ["msg_0"]

    await bot.on_disconnected("logout")
    fired = transport.send.await_count
    await asyncio.sleep(0.1)

    assert transport.send.await_count == fired
    assert context.scheduler.registry == {}


@pytest.mark.asyncio
async def test_ready_without_auto_send_arms_nothing():
    bot, transport, context = _bot(_config())
    await bot.on_ready()
    assert context.scheduler.pending == 0
