"""Reply resolution (core domain).

Given a table snapshot and one message, decide what to send. Resolution is
synchronous and side-effect free; the caller owns delivery.
"""

from __future__ import annotations

from typing import AbstractSet, Optional

from core.config import GroupPolicyConfig
from core.group_policy import allows
from core.keyword_table import KeywordTable, normalize_keyword
from core.models import (
    ChatContext,
    DefaultSent,
    IncomingMessage,
    Matched,
    ReplyOutcome,
    Suppressed,
    SuppressReason,
)

# Sender ids that never get replies (status feeds and channel posts).
BROADCAST_SENDER_ID = "broadcast"
RESERVED_SENDER_IDS = frozenset({BROADCAST_SENDER_ID, "status@broadcast"})


def _is_self_or_broadcast(message: IncomingMessage, reserved: AbstractSet[str]) -> bool:
    if message.from_me:
        return True
    return message.sender_id in reserved or message.chat_id in reserved


def find_match(body: str, table: KeywordTable, partial_match: bool = True) -> Optional[Matched]:
    """Look up an already-normalized body.

    An exact match always wins. Otherwise the first keyword, in table order,
    that occurs inside the body is used.
    """

    reply = table.lookup(body)
    if reply is not None:
        return Matched(text=reply, keyword=body, exact=True)
    if not partial_match or not body:
        return None
    for keyword, reply in table.entries():
        if keyword in body:
            return Matched(text=reply, keyword=keyword, exact=False)
    return None


def resolve_reply(
    message: IncomingMessage,
    chat: ChatContext,
    table: KeywordTable,
    default_reply: Optional[str],
    policy: GroupPolicyConfig,
    case_sensitive: bool = False,
    partial_match: bool = True,
    reserved_sender_ids: AbstractSet[str] = RESERVED_SENDER_IDS,
) -> ReplyOutcome:
    """Return the outcome for ``message``.

    Order of checks:
    1) own or broadcast messages are suppressed
    2) group chats must pass the group gate, otherwise no lookup happens
    3) exact keyword match, then partial match
    4) default reply, which in groups also needs send_default_reply_in_groups
    """

    if _is_self_or_broadcast(message, reserved_sender_ids):
        return Suppressed(SuppressReason.SELF_OR_BROADCAST_MESSAGE)

    body = normalize_keyword(message.body, case_sensitive)

    if chat.is_group and not allows(chat, message, policy):
        return Suppressed(SuppressReason.NOT_IN_GROUP_SCOPE)

    match = find_match(body, table, partial_match=partial_match)
    if match is not None:
        return match

    if default_reply and (not chat.is_group or policy.send_default_reply_in_groups):
        return DefaultSent(default_reply)
    return Suppressed(SuppressReason.NO_MATCH_NO_DEFAULT)
