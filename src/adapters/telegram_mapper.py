"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core engine.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from telethon import utils
from telethon.tl.types import ChannelParticipantsAdmins, MessageEntityMention, MessageEntityMentionName

from core.models import ChatContext, IncomingMessage
from core.resolver import BROADCAST_SENDER_ID
from core.source_keys import chat_key

LOGGER = logging.getLogger(__name__)

SELF_MENTION_ID = "me"


@dataclass(frozen=True)
class ChatMembers:
    member_count: Optional[int]
    admin_ids: frozenset


NO_MEMBERS = ChatMembers(member_count=None, admin_ids=frozenset())


class ChatMembersResolver:
    """Resolve a group's member count and admins, with a per-chat TTL cache.

    Only the admin list is downloaded. The count comes from the chat entity
    when Telegram includes it, otherwise from a ``limit=0`` participants
    request, which returns the total without any users.
    """

    def __init__(self, client, ttl_seconds: float = 300.0) -> None:
        self._client = client
        self._ttl = ttl_seconds
        self._cache: dict[int, Tuple[float, ChatMembers]] = {}

    async def _member_count(self, target: Any, entity: Any) -> Optional[int]:
        count = getattr(entity, "participants_count", None)
        if count is not None:
            return int(count)
        total = getattr(await self._client.get_participants(target, limit=0), "total", None)
        return int(total) if total is not None else None

    async def members(self, chat_id: int, entity: Any = None) -> ChatMembers:
        now = time.monotonic()
        cached = self._cache.get(chat_id)
        if cached and now - cached[0] < self._ttl:
            return cached[1]
        target = entity if entity is not None else chat_id
        try:
            count = await self._member_count(target, entity)
            admins = await self._client.get_participants(target, filter=ChannelParticipantsAdmins)
        except Exception:
            LOGGER.debug("Could not load members for chat %s", chat_id, exc_info=True)
            members = NO_MEMBERS
        else:
            members = ChatMembers(
                member_count=count,
                admin_ids=frozenset(chat_key(a.id, getattr(a, "username", None)) for a in admins),
            )
        self._cache[chat_id] = (now, members)
        return members


def _mentioned_ids(message: Any) -> frozenset:
    """Collect mentioned users as chat keys."""

    mentioned: set[str] = set()
    if getattr(message, "mentioned", False):
        mentioned.add(SELF_MENTION_ID)
    entities = getattr(message, "entities", None) or []
    text = getattr(message, "raw_text", None) or ""
    for entity in entities:
        if isinstance(entity, MessageEntityMentionName):
            mentioned.add(chat_key(entity.user_id))
        elif isinstance(entity, MessageEntityMention):
            handle = text[entity.offset : entity.offset + entity.length]
            if handle.startswith("@") and len(handle) > 1:
                mentioned.add(handle.lower())
    return frozenset(mentioned)


def _is_broadcast_channel(event: Any, chat: Any) -> bool:
    return bool(getattr(event, "is_channel", False)) and not getattr(event, "is_group", False) and bool(
        getattr(chat, "broadcast", True)
    )


async def build_message(
    event: Any,
    members_resolver: Optional[ChatMembersResolver] = None,
) -> Tuple[IncomingMessage, ChatContext]:
    """Build core message and chat values from a Telethon NewMessage event."""

    message = event.message
    chat = await event.get_chat()
    sender = await event.get_sender()
    is_group = bool(getattr(event, "is_group", False))

    key = chat_key(event.chat_id, getattr(chat, "username", None))
    if _is_broadcast_channel(event, chat):
        sender_id = BROADCAST_SENDER_ID
    elif sender is not None:
        sender_id = chat_key(sender.id, getattr(sender, "username", None))
    else:
        sender_id = chat_key(event.sender_id) if event.sender_id else key

    display_name = utils.get_display_name(sender) if sender is not None else None

    incoming = IncomingMessage(
        body=getattr(message, "raw_text", None) or "",
        sender_id=sender_id,
        sender_display_name=display_name or None,
        chat_id=key,
        is_group=is_group,
        author_id=sender_id,
        mentioned_ids=_mentioned_ids(message),
        from_me=bool(getattr(event, "out", False)),
        phone_number=getattr(sender, "phone", None),
    )

    if not is_group:
        return incoming, ChatContext(chat_id=key, is_group=False)

    members = NO_MEMBERS
    if members_resolver is not None:
        members = await members_resolver.members(event.chat_id, chat)
    context = ChatContext(
        chat_id=key,
        is_group=True,
        group_name=getattr(chat, "title", None) or key,
        member_count=members.member_count,
        admin_ids=members.admin_ids,
    )
    return incoming, context
