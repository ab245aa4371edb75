"""Messaging transport contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod

from receptionist.models import Message


class TransportHandlers(ABC):
    """One handler per transport event kind."""

    async def on_qr(self, code: str) -> None:
        """A login code must be scanned to link this device."""

    async def on_authenticated(self) -> None:
        """The session is authenticated."""

    async def on_auth_failure(self, reason: str) -> None:
        """Linking or authentication failed."""

    async def on_ready(self) -> None:
        """The transport can send and receive."""

    async def on_disconnected(self, reason: str) -> None:
        """The session dropped."""

    @abstractmethod
    async def on_message(self, message: Message) -> None:
        """An inbound message arrived."""


class Transport(ABC):
    """Messaging session used for replies and scheduled sends."""

    @property
    @abstractmethod
    def self_id(self) -> str:
        """Identifier of the account this transport runs as."""

    @abstractmethod
    def subscribe(self, handlers: TransportHandlers) -> None:
        """Route events to ``handlers``."""

    @abstractmethod
    async def start(self) -> None:
        """Connect and deliver events until closed or disconnected."""

    @abstractmethod
    async def send(self, destination: str, body: str) -> bool:
        """Send ``body``; return False on failure instead of raising."""

    @abstractmethod
    async def reply(self, message: Message, body: str) -> bool:
        """Reply to ``message`` in its chat."""

    @abstractmethod
    async def close(self) -> None:
        """Stop delivering events and release the session."""
