"""Event handlers wiring the transport to replies, the model and the scheduler."""

from __future__ import annotations

import logging

from receptionist.context import AppContext
from receptionist.models import Message
from receptionist.orchestrator import Orchestrator, Outcome
from receptionist.replies import KeywordReplier
from receptionist.transport.base import Transport, TransportHandlers

LOGGER = logging.getLogger(__name__)


class AssistantBot(TransportHandlers):
    """Decides whether and how to answer each inbound message."""

    def __init__(
        self,
        context: AppContext,
        transport: Transport,
        orchestrator: Orchestrator | None = None,
    ) -> None:
        self._context = context
        self._config = context.config
        self._transport = transport
        self._orchestrator = orchestrator
        self._replier = KeywordReplier(context.config.auto_reply)

    async def on_qr(self, code: str) -> None:
        LOGGER.warning("Link this device by opening or scanning: %s", code)

    async def on_authenticated(self) -> None:
        LOGGER.info("Authentication successful")

    async def on_auth_failure(self, reason: str) -> None:
        LOGGER.error("Authentication failed: %s", reason)

    async def on_ready(self) -> None:
        LOGGER.info("Bot is ready as %s", self._transport.self_id)
        if self._config.auto_send.enabled:
            self._context.scheduler.start()
        if self._config.auto_reply.enabled:
            LOGGER.info("Auto-reply is enabled")

    async def on_disconnected(self, reason: str) -> None:
        LOGGER.warning("Client was disconnected: %s", reason)
        self._context.scheduler.cancel_all()

    async def on_message(self, message: Message) -> None:
        if not self._context.dedup.claim(message.message_id):
            LOGGER.debug("Skipping duplicate message %s", message.message_id)
            return
        try:
            await self._handle(message)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Error handling message %s", message.message_id)

    def should_answer(self, message: Message) -> bool:
        behaviour = self._config.bot
        if not self._config.auto_reply.enabled:
            return False
        if behaviour.ignore_own_messages and message.from_me:
            return False
        if behaviour.ignore_broadcast and message.is_broadcast:
            return False
        if message.is_group:
            if behaviour.ignore_groups:
                return False
            self_id = self._transport.self_id
            mentioned = self_id in message.mentions
            replying_to_bot = message.quoted_from_me or message.quoted_author == self_id
            if not mentioned and not replying_to_bot:
                return False
            LOGGER.info("Bot mentioned or replied to in group %s", message.chat_id)
        return True

    async def _handle(self, message: Message) -> None:
        if self._config.bot.log_messages:
            LOGGER.info("Message from %s (%s): %s", message.sender_name or "unknown", message.chat_id, message.text)

        if not self.should_answer(message):
            return

        if self._orchestrator is not None and self._config.ai.enabled:
            outcome = await self._orchestrator.run(
                message, lambda text: self._transport.reply(message, text)
            )
            if outcome is not Outcome.FAILED:
                return
            if not self._config.ai.fallback_to_default:
                LOGGER.info("Model failed and fallback is disabled; dropping %s", message.message_id)
                return
            LOGGER.info("Falling back to keyword/default reply for %s", message.message_id)

        reply = self._replier.match(message.text)
        if reply is not None:
            await self._transport.reply(message, reply)
            LOGGER.info("Auto-replied to %s", message.chat_id)
