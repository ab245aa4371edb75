"""Keyword and default replies used when the model is off or fails."""

from __future__ import annotations

from receptionist.config import AutoReplyConfig


class KeywordReplier:
    """First keyword contained in the message wins, in table order."""

    def __init__(self, config: AutoReplyConfig) -> None:
        self._keywords = [(keyword.lower(), reply) for keyword, reply in config.keywords.items()]
        self._default_reply = config.default_reply if config.use_default_reply else None

    def match(self, text: str) -> str | None:
        body = text.lower()
        for keyword, reply in self._keywords:
            if keyword in body:
                return reply
        return self._default_reply
