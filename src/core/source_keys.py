"""Helpers for working with chat keys.

Chats are identified by ``@username`` or ``chat_id:<id>``. Telegram exposes
the same group under several numeric forms, so allow-list entries are
expanded to every equivalent form before comparison.
"""

from __future__ import annotations

from typing import Iterable, Optional

CHAT_ID_PREFIX = "chat_id:"


def chat_key(chat_id: int, username: Optional[str] = None) -> str:
    """Return the normalized key for a chat."""

    if username:
        return f"@{username.lower()}"
    return f"{CHAT_ID_PREFIX}{chat_id}"


def normalize_chat_key(raw_value: str) -> Optional[str]:
    """Normalize a user-entered chat key, or return None if it is invalid.

    Bare integers are accepted as shorthand for ``chat_id:<id>``.
    """

    value = raw_value.strip()
    if not value:
        return None
    if value.startswith("@"):
        username = value[1:]
        if not username or not username.replace("_", "a").isalnum():
            return None
        return f"@{username.lower()}"
    if value.startswith(CHAT_ID_PREFIX):
        value = value[len(CHAT_ID_PREFIX) :]
    try:
        return f"{CHAT_ID_PREFIX}{int(value)}"
    except ValueError:
        return None


def _expand_chat_id_variants(raw_chat_id: int) -> set[int]:
    """Return equivalent chat id variants (peer id, chat id, channel id)."""

    variants: set[int] = {raw_chat_id}
    if raw_chat_id < 0:
        raw_text = str(raw_chat_id)
        if raw_text.startswith("-100"):
            # Channel/supergroup peer id: -100<channel_id>
            channel_part = raw_text[4:]
            if channel_part.isdigit():
                variants.add(int(channel_part))
        else:
            variants.add(abs(raw_chat_id))
        return variants

    # raw_chat_id is positive: add PeerChat and PeerChannel-style ids.
    variants.add(-raw_chat_id)
    variants.add(-1000000000000 - raw_chat_id)
    return variants


def expand_chat_key_variants(key: str) -> set[str]:
    """Expand a chat key to include equivalent chat_id variants."""

    if not key.startswith(CHAT_ID_PREFIX):
        return {key}
    try:
        raw_chat_id = int(key[len(CHAT_ID_PREFIX) :])
    except ValueError:
        return {key}
    return {f"{CHAT_ID_PREFIX}{variant}" for variant in _expand_chat_id_variants(raw_chat_id)}


def expand_allowed_groups(raw_keys: Iterable[str]) -> frozenset[str]:
    """Normalize and expand configured allow-list entries, dropping invalid ones."""

    allowed: set[str] = set()
    for raw in raw_keys:
        key = normalize_chat_key(str(raw))
        if key is None:
            continue
        allowed.update(expand_chat_key_variants(key))
    return frozenset(allowed)
