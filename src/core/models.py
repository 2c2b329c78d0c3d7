"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional, Tuple, Union


@dataclass(frozen=True)
class IncomingMessage:
    """One received message, as seen by the reply engine."""

    body: str
    sender_id: str
    sender_display_name: Optional[str]
    chat_id: str
    is_group: bool
    author_id: Optional[str] = None
    mentioned_ids: FrozenSet[str] = frozenset()
    from_me: bool = False
    phone_number: Optional[str] = None


@dataclass(frozen=True)
class ChatContext:
    """Chat metadata supplied by the transport for each message.

    ``member_count`` is set when the transport knows the size without
    listing everyone; otherwise ``participant_ids`` is counted.
    """

    chat_id: str
    is_group: bool
    group_name: Optional[str] = None
    participant_ids: Tuple[str, ...] = ()
    admin_ids: FrozenSet[str] = frozenset()
    member_count: Optional[int] = None

    @property
    def size(self) -> int:
        return self.member_count if self.member_count is not None else len(self.participant_ids)


class SuppressReason(str, Enum):
    NOT_IN_GROUP_SCOPE = "not_in_group_scope"
    NO_MATCH_NO_DEFAULT = "no_match_no_default"
    SELF_OR_BROADCAST_MESSAGE = "self_or_broadcast_message"


@dataclass(frozen=True)
class Matched:
    """A keyword matched; ``text`` is the reply to send."""

    text: str
    keyword: str
    exact: bool = True


@dataclass(frozen=True)
class DefaultSent:
    """No keyword matched and the configured default reply applies."""

    text: str


@dataclass(frozen=True)
class Suppressed:
    """Nothing should be sent."""

    reason: SuppressReason


ReplyOutcome = Union[Matched, DefaultSent, Suppressed]


@dataclass(frozen=True)
class EngineStats:
    """Snapshot returned by the administrative ``get_stats`` operation."""

    entry_count: int
    last_refresh_at: Optional[datetime]
    refresh_failures: int = 0
    allowed_groups: FrozenSet[str] = field(default_factory=frozenset)
