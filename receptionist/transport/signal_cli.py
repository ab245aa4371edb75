"""Signal transport backed by signal-cli JSON commands."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

from receptionist.models import Message
from receptionist.transport.base import Transport, TransportHandlers

LOGGER = logging.getLogger(__name__)

MAX_RECEIVE_FAILURES = 5


class SignalTransport(Transport):
    """Adapter around signal-cli that emits typed transport events.

    Destinations starting with ``+`` are phone numbers; anything else is
    treated as a group id.
    """

    def __init__(
        self,
        signal_cli_path: str,
        account: str,
        poll_interval_seconds: float,
        device_name: str = "receptionist",
        max_receive_failures: int = MAX_RECEIVE_FAILURES,
    ) -> None:
        self._signal_cli_path = signal_cli_path
        self._account = account
        self._poll_interval_seconds = poll_interval_seconds
        self._device_name = device_name
        self._max_receive_failures = max_receive_failures
        self._handlers: TransportHandlers | None = None
        self._stop_event = asyncio.Event()
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def self_id(self) -> str:
        return self._account

    def subscribe(self, handlers: TransportHandlers) -> None:
        self._handlers = handlers

    async def start(self) -> None:
        if self._handlers is None:
            raise RuntimeError("subscribe() must be called before start()")
        if not await self._ensure_linked():
            return
        await self._handlers.on_ready()
        await self._receive_loop()

    async def _ensure_linked(self) -> bool:
        assert self._handlers is not None
        returncode, stdout, _ = await self._run("-o", "json", "listAccounts")
        if returncode == 0 and self._account in stdout:
            await self._handlers.on_authenticated()
            return True

        process = await asyncio.create_subprocess_exec(
            self._signal_cli_path,
            "link",
            "-n",
            self._device_name,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        assert process.stdout is not None
        uri = (await process.stdout.readline()).decode().strip()
        if uri:
            await self._handlers.on_qr(uri)
        _, stderr = await process.communicate()
        if process.returncode != 0:
            await self._handlers.on_auth_failure(stderr.decode().strip() or "link failed")
            return False
        await self._handlers.on_authenticated()
        return True

    async def _receive_loop(self) -> None:
        assert self._handlers is not None
        failures = 0
        while not self._stop_event.is_set():
            returncode, stdout, stderr = await self._run(
                "-o", "json", "-a", self._account, "receive", "-t", str(int(self._poll_interval_seconds))
            )
            if returncode != 0:
                failures += 1
                LOGGER.warning("signal-cli receive failed (%d/%d): %s", failures, self._max_receive_failures, stderr)
                if failures >= self._max_receive_failures:
                    await self._handlers.on_disconnected(stderr or "receive failed")
                    return
                await asyncio.sleep(self._poll_interval_seconds)
                continue
            failures = 0

            for line in stdout.splitlines():
                line = line.strip()
                if not line:
                    continue
                try:
                    message = to_message(json.loads(line), self._account)
                except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                    continue
                if message is not None:
                    task = asyncio.create_task(self._handlers.on_message(message))
                    self._inflight.add(task)
                    task.add_done_callback(self._inflight.discard)

    async def send(self, destination: str, body: str) -> bool:
        return await self._send(destination, body, is_group=not destination.startswith("+"))

    async def reply(self, message: Message, body: str) -> bool:
        quote = ["--quote-timestamp", str(int(message.timestamp.timestamp() * 1000)), "--quote-author", message.sender_id]
        return await self._send(message.chat_id, body, is_group=message.is_group, extra=quote)

    async def _send(self, recipient: str, text: str, is_group: bool, extra: list[str] | None = None) -> bool:
        args = ["-a", self._account, "send", "-m", text]
        if is_group:
            args.extend(["-g", recipient])
        else:
            args.append(recipient)
        args.extend(extra or [])

        try:
            returncode, _, stderr = await self._run(*args)
        except OSError as exc:
            LOGGER.error("Error sending message to %s: %s", recipient, exc)
            return False
        if returncode != 0:
            LOGGER.error("Error sending message to %s: %s", recipient, stderr)
            return False
        LOGGER.info("Message sent to %s", recipient)
        return True

    async def close(self) -> None:
        self._stop_event.set()
        for task in list(self._inflight):
            task.cancel()
        self._inflight.clear()

    async def _run(self, *args: str) -> tuple[int, str, str]:
        process = await asyncio.create_subprocess_exec(
            self._signal_cli_path,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            # A cancelled receive would otherwise outlive the transport.
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        return process.returncode or 0, stdout.decode(), stderr.decode().strip()


def to_message(payload: dict[str, Any], account: str) -> Message | None:
    """Normalise one ``receive`` JSON line; None for non-text envelopes."""

    envelope = payload.get("envelope")
    if not isinstance(envelope, dict):
        return None

    from_me = False
    is_broadcast = isinstance(envelope.get("storyMessage"), dict)
    data_message = envelope.get("dataMessage")
    sync_message = envelope.get("syncMessage")
    if not isinstance(data_message, dict) and isinstance(sync_message, dict):
        data_message = sync_message.get("sentMessage")
        from_me = True
    if not isinstance(data_message, dict):
        if not is_broadcast:
            return None
        text_attachment = envelope["storyMessage"].get("textAttachment") or {}
        data_message = {"message": text_attachment.get("text")}

    text = data_message.get("message")
    text = text.strip() if isinstance(text, str) else ""
    if not text:
        return None

    source = str(envelope.get("sourceNumber") or envelope.get("source") or "unknown")
    timestamp_ms = int(envelope.get("timestamp") or 0)
    timestamp = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)

    group_info = data_message.get("groupInfo")
    if isinstance(group_info, dict) and isinstance(group_info.get("groupId"), str):
        chat_id = group_info["groupId"]
        is_group = True
    elif from_me:
        chat_id = str(data_message.get("destinationNumber") or data_message.get("destination") or source)
        is_group = False
    else:
        chat_id = source
        is_group = False

    mentions = [
        str(m.get("number") or m.get("uuid"))
        for m in data_message.get("mentions") or []
        if isinstance(m, dict) and (m.get("number") or m.get("uuid"))
    ]

    quote = data_message.get("quote")
    quoted_author = None
    if isinstance(quote, dict):
        quoted_author = str(quote.get("authorNumber") or quote.get("author") or "") or None

    return Message(
        message_id=f"{source}:{timestamp_ms}",
        chat_id=chat_id,
        sender_id=source,
        sender_name=envelope.get("sourceName") or None,
        text=text,
        timestamp=timestamp,
        is_group=is_group,
        is_broadcast=is_broadcast,
        from_me=from_me or source == account,
        mentions=mentions,
        quoted_author=quoted_author,
        quoted_from_me=quoted_author == account,
    )
