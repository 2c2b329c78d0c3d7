"""Core auto-reply engine.

This module is integration-agnostic. It reads the current keyword table
snapshot, resolves a reply and hands rendered text back to the caller, and
exposes the administrative operations used by the owner commands.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from core.config import EngineConfig, GroupPolicyConfig
from core.keyword_table import KeywordTable, KeywordTableHolder
from core.models import (
    ChatContext,
    DefaultSent,
    EngineStats,
    IncomingMessage,
    Matched,
    ReplyOutcome,
    Suppressed,
)
from core.ports import ReplyPort
from core.refresh import RefreshScheduler
from core.resolver import resolve_reply
from core.source_keys import expand_chat_key_variants, normalize_chat_key
from core.templates import build_template_context, expand

LOGGER = logging.getLogger(__name__)


class AutoResponder:
    """Orchestrates gating, lookup, template rendering and delivery."""

    def __init__(
        self,
        config: EngineConfig,
        holder: Optional[KeywordTableHolder] = None,
        scheduler: Optional[RefreshScheduler] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._config = config
        self._policy = config.group_policy
        self._holder = holder or KeywordTableHolder(KeywordTable(case_sensitive=config.case_sensitive))
        self._scheduler = scheduler
        self._clock = clock or (lambda: datetime.now().astimezone())

    @property
    def policy(self) -> GroupPolicyConfig:
        return self._policy

    def resolve(self, message: IncomingMessage, chat: ChatContext) -> ReplyOutcome:
        """Resolve ``message`` against the current table and render the reply."""

        table = self._holder.current
        outcome = resolve_reply(
            message,
            chat,
            table,
            self._config.default_reply,
            self._policy,
            case_sensitive=self._config.case_sensitive,
            partial_match=self._config.partial_match,
        )
        if isinstance(outcome, Matched):
            context = build_template_context(message, chat, self._clock())
            outcome = dataclasses.replace(outcome, text=expand(outcome.text, context))
        return outcome

    async def handle(self, message: IncomingMessage, chat: ChatContext, replier: ReplyPort) -> ReplyOutcome:
        """Resolve one message and deliver the reply, if any.

        TransportSendError from the replier propagates to the caller.
        """

        outcome = self.resolve(message, chat)
        where = chat.group_name if chat.is_group else "Direct Message"
        if isinstance(outcome, Suppressed):
            LOGGER.debug("No reply in %s (%s)", where, outcome.reason.value)
            return outcome

        await replier.send(message, chat, outcome.text)
        if isinstance(outcome, DefaultSent):
            LOGGER.info("Sent default reply in %s", where)
        else:
            LOGGER.info("Auto-replied in %s (keyword: %s)", where, outcome.keyword)
        return outcome

    def add_response(self, keyword: str, reply: str) -> None:
        """Upsert one entry without waiting for a refresh.

        The next refresh rebuilds the table from the source, so manual entries
        only last until then unless they are also added to the sheet.
        """

        table = self._holder.current.with_entry(keyword, reply)
        self._holder.publish(table, refreshed=False)
        LOGGER.info("Added new response: %s -> %s", keyword, reply)

    def list_responses(self) -> List[Tuple[str, str]]:
        return self._holder.current.entries()

    def get_stats(self) -> EngineStats:
        return EngineStats(
            entry_count=len(self._holder.current),
            last_refresh_at=self._holder.last_refresh_at,
            refresh_failures=self._scheduler.failures if self._scheduler else 0,
            allowed_groups=self._policy.allowed_groups,
        )

    def set_allowed_group(self, group_id: str, add: bool) -> bool:
        """Add or remove a chat from the allow-list; return True if it changed."""

        key = normalize_chat_key(group_id)
        if key is None:
            raise ValueError(f"Invalid chat key: {group_id!r}")
        variants = expand_chat_key_variants(key)
        current = self._policy.allowed_groups
        updated = current | variants if add else current - variants
        if updated == current:
            return False
        self._policy = dataclasses.replace(self._policy, allowed_groups=frozenset(updated))
        LOGGER.info("%s group %s %s allowed groups", "Added" if add else "Removed", key, "to" if add else "from")
        return True

    async def refresh_now(self) -> bool:
        """Run one refresh cycle immediately; False if no scheduler or it failed."""

        if self._scheduler is None:
            return False
        return await self._scheduler.refresh_once()
