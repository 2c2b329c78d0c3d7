from __future__ import annotations

import asyncio
from types import SimpleNamespace

from telethon.tl.types import MessageEntityMention, MessageEntityMentionName, User

from adapters.telegram_mapper import SELF_MENTION_ID, ChatMembersResolver, build_message
from core.resolver import BROADCAST_SENDER_ID


class DummyEvent:
    def __init__(
        self,
        *,
        chat_id: int,
        text: str,
        chat=None,
        sender=None,
        is_group: bool = False,
        is_channel: bool = False,
        out: bool = False,
        entities=None,
        mentioned: bool = False,
    ) -> None:
        self.chat_id = chat_id
        self.sender_id = getattr(sender, "id", None)
        self.is_group = is_group
        self.is_channel = is_channel
        self.out = out
        self.message = SimpleNamespace(raw_text=text, entities=entities, mentioned=mentioned)
        self._chat = chat
        self._sender = sender

    async def get_chat(self):
        return self._chat

    async def get_sender(self):
        return self._sender


class FakeClient:
    def __init__(self, total: int = 7) -> None:
        self.calls: list[dict] = []
        self._total = total

    async def get_participants(self, target, filter=None, limit=None):
        self.calls.append({"filter": filter, "limit": limit})
        if filter is not None:
            return [SimpleNamespace(id=1, username="ann"), SimpleNamespace(id=2, username=None)]
        return SimpleNamespace(total=self._total)


ANN = User(id=1, first_name="Ann", username="ann", phone="15550100")


def test_direct_message_mapping() -> None:
    event = DummyEvent(chat_id=1, text="Hello", chat=ANN, sender=ANN)
    message, chat = asyncio.run(build_message(event))
    assert message.body == "Hello"
    assert message.sender_id == "@ann"
    assert message.sender_display_name == "Ann"
    assert message.phone_number == "15550100"
    assert message.chat_id == "@ann"
    assert not message.is_group
    assert not chat.is_group


def test_group_message_mapping_with_members() -> None:
    group = SimpleNamespace(title="Support", username=None, participants_count=1200)
    event = DummyEvent(chat_id=-100555, text="price?", chat=group, sender=ANN, is_group=True)
    client = FakeClient()
    resolver = ChatMembersResolver(client, ttl_seconds=60)

    message, chat = asyncio.run(build_message(event, resolver))
    assert message.is_group
    assert message.author_id == "@ann"
    assert chat.chat_id == "chat_id:-100555"
    assert chat.group_name == "Support"
    assert chat.member_count == 1200
    assert chat.size == 1200
    assert chat.admin_ids == frozenset({"@ann", "chat_id:2"})
    # The entity carries the count, so only the admins are requested.
    assert len(client.calls) == 1
    assert client.calls[0]["filter"] is not None

    # Cached for the TTL.
    asyncio.run(build_message(event, resolver))
    assert len(client.calls) == 1


def test_member_count_falls_back_to_participant_total() -> None:
    group = SimpleNamespace(title="Support", username=None)
    event = DummyEvent(chat_id=-100555, text="price?", chat=group, sender=ANN, is_group=True)
    client = FakeClient(total=42)

    _, chat = asyncio.run(build_message(event, ChatMembersResolver(client)))
    assert chat.member_count == 42
    assert {"filter": None, "limit": 0} in client.calls


def test_member_lookup_failure_leaves_chat_without_members() -> None:
    class BrokenClient:
        async def get_participants(self, target, filter=None, limit=None):
            raise ConnectionError("offline")

    group = SimpleNamespace(title="Support", username=None)
    event = DummyEvent(chat_id=-100555, text="price?", chat=group, sender=ANN, is_group=True)
    _, chat = asyncio.run(build_message(event, ChatMembersResolver(BrokenClient())))
    assert chat.member_count is None
    assert chat.admin_ids == frozenset()


def test_mentions_are_collected() -> None:
    text = "@helpdesk and Bob"
    entities = [
        MessageEntityMention(offset=0, length=9),
        MessageEntityMentionName(offset=14, length=3, user_id=42),
    ]
    group = SimpleNamespace(title="Support", username="support")
    event = DummyEvent(
        chat_id=-100555,
        text=text,
        chat=group,
        sender=ANN,
        is_group=True,
        entities=entities,
        mentioned=True,
    )
    message, chat = asyncio.run(build_message(event))
    assert message.mentioned_ids == frozenset({"@helpdesk", "chat_id:42", SELF_MENTION_ID})
    assert chat.chat_id == "@support"


def test_broadcast_channel_posts_use_reserved_sender() -> None:
    channel = SimpleNamespace(title="News", username="news", broadcast=True)
    event = DummyEvent(chat_id=-100777, text="update", chat=channel, sender=channel, is_channel=True)
    message, _ = asyncio.run(build_message(event))
    assert message.sender_id == BROADCAST_SENDER_ID


def test_outgoing_messages_are_marked() -> None:
    event = DummyEvent(chat_id=1, text="hi", chat=ANN, sender=ANN, out=True)
    message, _ = asyncio.run(build_message(event))
    assert message.from_me
