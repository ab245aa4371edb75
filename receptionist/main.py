"""Application entrypoint."""

from __future__ import annotations

import asyncio
import logging
import signal

from receptionist.bot import AssistantBot
from receptionist.calendars.google_calendar import GoogleCalendarClient
from receptionist.config import BotConfig, Settings, load_bot_config, load_settings
from receptionist.context import AppContext, build_context
from receptionist.llm.openai_chat import OpenAIChatProvider
from receptionist.orchestrator import Orchestrator
from receptionist.tools.calendar_tools import BookAppointmentTool, CheckAvailabilityTool
from receptionist.tools.registry import ToolRegistry
from receptionist.transport.signal_cli import SignalTransport

LOGGER = logging.getLogger(__name__)


def build_orchestrator(settings: Settings, config: BotConfig, context: AppContext) -> Orchestrator | None:
    """Wire the model, tools and history together when the AI path is enabled."""

    ai = config.ai
    if not ai.enabled:
        return None

    tools = ToolRegistry(context.db)
    if ai.calendar.enabled:
        calendar = GoogleCalendarClient(ai.calendar.credentials_path)
        tools.register(CheckAvailabilityTool(calendar, ai.calendar.calendar_id, timezone=ai.calendar.timezone))
        tools.register(
            BookAppointmentTool(
                calendar,
                ai.calendar.calendar_id,
                config.services,
                currency=config.currency,
                timezone=ai.calendar.timezone,
                booked_via=config.name,
            )
        )

    provider = OpenAIChatProvider(
        api_key=settings.openai_api_key,
        model=settings.openai_model or ai.model,
        base_url=settings.openai_base_url,
        timeout_seconds=settings.request_timeout_seconds,
    )
    return Orchestrator(
        llm=provider,
        tool_registry=tools,
        system_prompt=ai.system_prompt,
        history=context.history,
        max_iterations=ai.max_iterations,
        exhausted_reply=ai.exhausted_reply,
        request_timeout_seconds=settings.request_timeout_seconds,
    )


async def run() -> None:
    """Initialize app layers and run until interrupted or disconnected."""

    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper())
    config = load_bot_config(settings.bot_config_path)

    transport = SignalTransport(
        signal_cli_path=settings.signal_cli_path,
        account=settings.signal_account,
        poll_interval_seconds=settings.signal_poll_interval_seconds,
        device_name=settings.signal_device_name,
    )
    context = build_context(config, transport.send, settings)
    context.open()
    bot = AssistantBot(context, transport, build_orchestrator(settings, config, context))
    transport.subscribe(bot)

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        LOGGER.info("Shutting down bot...")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    LOGGER.info("Starting %s", config.name)
    transport_task = asyncio.create_task(transport.start(), name="transport")
    shutdown_task = asyncio.create_task(shutdown_event.wait(), name="shutdown")
    try:
        await asyncio.wait({transport_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED)
        if transport_task.done():
            transport_task.result()
    finally:
        context.scheduler.cancel_all()
        await transport.close()
        for task in (transport_task, shutdown_task):
            task.cancel()
        await context.close()
        LOGGER.info("Bot stopped successfully")


def main() -> None:
    """Synchronous wrapper for asyncio entrypoint."""

    asyncio.run(run())


if __name__ == "__main__":
    main()
