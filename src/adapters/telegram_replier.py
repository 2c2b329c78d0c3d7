"""Telegram reply delivery adapter.

Implements the core ReplyPort by replying to the triggering message, and
provides the group sender used by the owner broadcast command.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from telethon import errors, utils

from core.errors import TransportSendError
from core.models import ChatContext, IncomingMessage
from core.source_keys import CHAT_ID_PREFIX

LOGGER = logging.getLogger(__name__)


class TelegramReplier:
    """ReplyPort bound to one Telethon NewMessage event."""

    def __init__(self, client, event: Any) -> None:
        self._client = client
        self._event = event

    async def send(self, message: IncomingMessage, chat: ChatContext, text: str) -> None:
        # Replies racing a shutdown are dropped rather than sent on a dead connection.
        if not self._client.is_connected():
            LOGGER.debug("Client disconnected, dropping reply to %s", chat.chat_id)
            return
        try:
            await self._event.reply(text)
        except (errors.RPCError, ConnectionError) as e:
            raise TransportSendError(f"Reply to {chat.chat_id} failed: {e}") from e


def _entity_ref(key: str) -> Any:
    if key.startswith(CHAT_ID_PREFIX):
        return int(key[len(CHAT_ID_PREFIX) :])
    return key


class TelegramGroupSender:
    """Send standalone messages to allowed groups (owner broadcast)."""

    def __init__(self, client) -> None:
        self._client = client

    async def broadcast(self, keys: Iterable[str], text: str) -> int:
        """Send ``text`` once per distinct group among ``keys``; return the count.

        Allow-list keys include equivalent id forms of the same chat, so
        entities are deduplicated by peer id and unresolvable forms skipped.
        """

        sent: set[int] = set()
        for key in sorted(keys):
            try:
                entity = await self._client.get_entity(_entity_ref(key))
            except (ValueError, errors.RPCError):
                LOGGER.debug("Skipping unresolvable group key %s", key)
                continue
            peer_id = utils.get_peer_id(entity)
            if peer_id in sent:
                continue
            try:
                await self._client.send_message(entity, text)
            except (errors.RPCError, ConnectionError) as e:
                raise TransportSendError(f"Send to {key} failed: {e}") from e
            sent.add(peer_id)
            LOGGER.info("Sent message to group %s", key)
        return len(sent)
