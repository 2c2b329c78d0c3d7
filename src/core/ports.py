"""Ports (interfaces) used by the core.

Ports define the minimal contracts for the keyword source and reply delivery
so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import List, Protocol

from core.models import ChatContext, IncomingMessage


class KeywordSourcePort(Protocol):
    """Source of truth for keyword rows."""

    async def fetch_rows(self) -> List[List[str]]:
        """Return ``[keyword, reply]`` rows; raise FetchError on failure."""
        ...


class ReplyPort(Protocol):
    """Delivery of a rendered reply; raise TransportSendError on failure."""

    async def send(self, message: IncomingMessage, chat: ChatContext, text: str) -> None:
        ...
