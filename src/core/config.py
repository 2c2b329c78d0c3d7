"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, List, Optional

from core.errors import ConfigError

DEFAULT_REFRESH_INTERVAL_MS = 60000


class GroupMode(str, Enum):
    MENTION_ONLY = "mention_only"
    ALLOW_LIST_ONLY = "allow_list_only"
    ADMIN_ONLY = "admin_only"
    RESPOND_TO_ALL = "respond_to_all"


@dataclass(frozen=True)
class GroupPolicyConfig:
    """Group autoresponse settings.

    Several toggles may be set at once; ``mode`` resolves them with a fixed
    precedence so exactly one rule is evaluated per message.

    ``allow_list_only`` left as None follows the allow-list: the mode is on
    whenever ``allowed_groups`` is non-empty. An explicit True with an empty
    list admits no group.
    """

    respond_only_when_mentioned: bool = False
    allow_list_only: Optional[bool] = None
    admin_only: bool = False
    respond_to_all: bool = True
    allowed_groups: FrozenSet[str] = field(default_factory=frozenset)
    send_default_reply_in_groups: bool = False

    @property
    def allow_list_enabled(self) -> bool:
        if self.allow_list_only is None:
            return bool(self.allowed_groups)
        return self.allow_list_only

    @property
    def mode(self) -> Optional[GroupMode]:
        """Return the single active mode, or None when no toggle is set."""

        if self.respond_only_when_mentioned:
            return GroupMode.MENTION_ONLY
        if self.allow_list_enabled:
            return GroupMode.ALLOW_LIST_ONLY
        if self.admin_only:
            return GroupMode.ADMIN_ONLY
        if self.respond_to_all:
            return GroupMode.RESPOND_TO_ALL
        return None

    def enabled_modes(self) -> List[GroupMode]:
        flags = [
            (self.respond_only_when_mentioned, GroupMode.MENTION_ONLY),
            (self.allow_list_enabled, GroupMode.ALLOW_LIST_ONLY),
            (self.admin_only, GroupMode.ADMIN_ONLY),
            (self.respond_to_all, GroupMode.RESPOND_TO_ALL),
        ]
        return [mode for enabled, mode in flags if enabled]


@dataclass(frozen=True)
class EngineConfig:
    """Reply engine settings, read once at startup."""

    has_header: bool = True
    case_sensitive: bool = False
    partial_match: bool = True
    default_reply: Optional[str] = None
    refresh_interval_ms: int = DEFAULT_REFRESH_INTERVAL_MS
    group_policy: GroupPolicyConfig = field(default_factory=GroupPolicyConfig)

    def __post_init__(self) -> None:
        if isinstance(self.refresh_interval_ms, bool) or not isinstance(self.refresh_interval_ms, int):
            raise ConfigError(f"refresh_interval_ms must be an integer, got {self.refresh_interval_ms!r}")
        if self.refresh_interval_ms <= 0:
            raise ConfigError(f"refresh_interval_ms must be > 0, got {self.refresh_interval_ms}")

    @property
    def refresh_interval_seconds(self) -> float:
        return self.refresh_interval_ms / 1000.0
