"""Group autoresponse gate (core domain)."""

from __future__ import annotations

from typing import List

from core.config import GroupMode, GroupPolicyConfig
from core.models import ChatContext, IncomingMessage


def allows(chat: ChatContext, message: IncomingMessage, policy: GroupPolicyConfig) -> bool:
    """Return True when the engine may act on ``message`` in ``chat``.

    Exactly one rule is evaluated, picked by precedence:
    mention-only > allow-list > admin-only > respond-to-all.
    """

    mode = policy.mode
    if mode is GroupMode.MENTION_ONLY:
        return bool(message.mentioned_ids)
    if mode is GroupMode.ALLOW_LIST_ONLY:
        # An empty allow-list admits nothing.
        return chat.chat_id in policy.allowed_groups
    if mode is GroupMode.ADMIN_ONLY:
        return message.author_id is not None and message.author_id in chat.admin_ids
    if mode is GroupMode.RESPOND_TO_ALL:
        return True
    return False


def validate_group_policy(policy: GroupPolicyConfig) -> List[str]:
    """Return human-readable warnings for ambiguous or inert group settings."""

    warnings: List[str] = []
    enabled = policy.enabled_modes()
    if policy.allow_list_only is None and GroupMode.ALLOW_LIST_ONLY in enabled:
        # A configured list quietly takes over from respond_to_all.
        enabled = [mode for mode in enabled if mode is not GroupMode.RESPOND_TO_ALL]
    if len(enabled) > 1:
        ignored = ", ".join(mode.value for mode in enabled[1:])
        warnings.append(f"Multiple group modes enabled; {enabled[0].value} wins, ignoring: {ignored}")
    if policy.mode is GroupMode.ALLOW_LIST_ONLY and not policy.allowed_groups:
        warnings.append("allow_list_only is enabled with an empty allow-list; no group will get replies")
    if policy.mode is None:
        warnings.append("No group mode enabled; group messages will be ignored")
    return warnings
