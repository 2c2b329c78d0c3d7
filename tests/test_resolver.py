from __future__ import annotations

from core.config import GroupPolicyConfig
from core.keyword_table import KeywordTable
from core.models import (
    ChatContext,
    DefaultSent,
    IncomingMessage,
    Matched,
    Suppressed,
    SuppressReason,
)
from core.resolver import BROADCAST_SENDER_ID, resolve_reply

DIRECT = ChatContext(chat_id="@ann", is_group=False)
GROUP = ChatContext(chat_id="chat_id:-1001", is_group=True, group_name="Team", participant_ids=("@ann", "@bob"))
POLICY = GroupPolicyConfig()


def _table(*pairs: tuple[str, str]) -> KeywordTable:
    return KeywordTable.rebuild([list(pair) for pair in pairs], has_header=False)


def _message(body: str, chat: ChatContext = DIRECT, **overrides) -> IncomingMessage:
    values = dict(
        body=body,
        sender_id="@ann",
        sender_display_name="Ann",
        chat_id=chat.chat_id,
        is_group=chat.is_group,
        author_id="@ann",
    )
    values.update(overrides)
    return IncomingMessage(**values)


def test_exact_match_wins_over_partial() -> None:
    table = _table(("h", "partial"), ("hi", "exact"))
    outcome = resolve_reply(_message("hi"), DIRECT, table, None, POLICY)
    assert outcome == Matched(text="exact", keyword="hi", exact=True)


def test_first_partial_match_in_table_order_wins() -> None:
    table = _table(("cat", "cat reply"), ("category", "category reply"))
    outcome = resolve_reply(_message("category sale"), DIRECT, table, None, POLICY)
    assert isinstance(outcome, Matched)
    assert outcome.text == "cat reply"
    assert outcome.exact is False


def test_case_insensitive_by_default() -> None:
    table = _table(("Hello", "Hi!"))
    outcome = resolve_reply(_message("hello there"), DIRECT, table, None, POLICY)
    assert isinstance(outcome, Matched)
    assert outcome.text == "Hi!"


def test_case_sensitive_mode() -> None:
    table = KeywordTable.rebuild([["Hello", "Hi!"]], has_header=False, case_sensitive=True)
    outcome = resolve_reply(_message("hello there"), DIRECT, table, None, POLICY, case_sensitive=True)
    assert outcome == Suppressed(SuppressReason.NO_MATCH_NO_DEFAULT)
    outcome = resolve_reply(_message("Hello there"), DIRECT, table, None, POLICY, case_sensitive=True)
    assert isinstance(outcome, Matched)


def test_partial_match_can_be_disabled() -> None:
    table = _table(("price", "10 USD"))
    outcome = resolve_reply(_message("what is the price"), DIRECT, table, None, POLICY, partial_match=False)
    assert outcome == Suppressed(SuppressReason.NO_MATCH_NO_DEFAULT)
    outcome = resolve_reply(_message(" PRICE "), DIRECT, table, None, POLICY, partial_match=False)
    assert isinstance(outcome, Matched)


def test_default_reply_in_direct_chat() -> None:
    outcome = resolve_reply(_message("unknown"), DIRECT, _table(("hi", "hello")), "We'll get back to you", POLICY)
    assert outcome == DefaultSent("We'll get back to you")


def test_default_reply_suppressed_in_groups_by_default() -> None:
    message = _message("unknown", chat=GROUP)
    outcome = resolve_reply(message, GROUP, _table(("hi", "hello")), "We'll get back to you", POLICY)
    assert outcome == Suppressed(SuppressReason.NO_MATCH_NO_DEFAULT)


def test_default_reply_in_groups_when_enabled() -> None:
    policy = GroupPolicyConfig(send_default_reply_in_groups=True)
    outcome = resolve_reply(_message("unknown", chat=GROUP), GROUP, _table(), "Default", policy)
    assert outcome == DefaultSent("Default")


def test_no_match_and_no_default() -> None:
    outcome = resolve_reply(_message("unknown"), DIRECT, _table(("hi", "hello")), None, POLICY)
    assert outcome == Suppressed(SuppressReason.NO_MATCH_NO_DEFAULT)


def test_gate_denial_skips_lookup() -> None:
    policy = GroupPolicyConfig(respond_only_when_mentioned=True)
    outcome = resolve_reply(_message("hi", chat=GROUP), GROUP, _table(("hi", "hello")), "Default", policy)
    assert outcome == Suppressed(SuppressReason.NOT_IN_GROUP_SCOPE)


def test_gate_is_not_applied_to_direct_chats() -> None:
    policy = GroupPolicyConfig(respond_only_when_mentioned=True)
    outcome = resolve_reply(_message("hi"), DIRECT, _table(("hi", "hello")), None, policy)
    assert isinstance(outcome, Matched)


def test_own_messages_are_suppressed() -> None:
    outcome = resolve_reply(_message("hi", from_me=True), DIRECT, _table(("hi", "hello")), "Default", POLICY)
    assert outcome == Suppressed(SuppressReason.SELF_OR_BROADCAST_MESSAGE)


def test_broadcast_messages_are_suppressed() -> None:
    message = _message("hi", sender_id=BROADCAST_SENDER_ID)
    outcome = resolve_reply(message, DIRECT, _table(("hi", "hello")), "Default", POLICY)
    assert outcome == Suppressed(SuppressReason.SELF_OR_BROADCAST_MESSAGE)


def test_empty_body_does_not_partially_match() -> None:
    outcome = resolve_reply(_message("   "), DIRECT, _table(("hi", "hello")), None, POLICY)
    assert outcome == Suppressed(SuppressReason.NO_MATCH_NO_DEFAULT)
