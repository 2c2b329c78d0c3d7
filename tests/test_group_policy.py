from __future__ import annotations

from core.config import GroupMode, GroupPolicyConfig
from core.group_policy import allows, validate_group_policy
from core.models import ChatContext, IncomingMessage

GROUP = ChatContext(
    chat_id="chat_id:-1001",
    is_group=True,
    group_name="Team",
    participant_ids=("@ann", "@bob"),
    admin_ids=frozenset({"@ann"}),
)


def _message(author: str = "@bob", mentioned: frozenset = frozenset()) -> IncomingMessage:
    return IncomingMessage(
        body="hello",
        sender_id=author,
        sender_display_name=author.lstrip("@"),
        chat_id=GROUP.chat_id,
        is_group=True,
        author_id=author,
        mentioned_ids=mentioned,
    )


def test_mention_only_requires_a_mention() -> None:
    policy = GroupPolicyConfig(respond_only_when_mentioned=True)
    assert not allows(GROUP, _message(), policy)
    assert allows(GROUP, _message(mentioned=frozenset({"me"})), policy)


def test_mention_only_wins_over_respond_to_all() -> None:
    policy = GroupPolicyConfig(respond_only_when_mentioned=True, respond_to_all=True)
    assert policy.mode is GroupMode.MENTION_ONLY
    assert not allows(GROUP, _message(), policy)


def test_allow_list_checks_chat_id() -> None:
    policy = GroupPolicyConfig(allow_list_only=True, allowed_groups=frozenset({"chat_id:-1001"}))
    assert allows(GROUP, _message(), policy)
    other = ChatContext(chat_id="chat_id:-2002", is_group=True, group_name="Other")
    assert not allows(other, _message(), policy)


def test_empty_allow_list_denies_everything() -> None:
    policy = GroupPolicyConfig(allow_list_only=True, respond_to_all=True)
    assert policy.mode is GroupMode.ALLOW_LIST_ONLY
    assert not allows(GROUP, _message(), policy)


def test_allow_list_wins_over_admin_only() -> None:
    policy = GroupPolicyConfig(
        allow_list_only=True,
        admin_only=True,
        allowed_groups=frozenset({"chat_id:-1001"}),
    )
    assert allows(GROUP, _message(author="@bob"), policy)


def test_admin_only_checks_author() -> None:
    policy = GroupPolicyConfig(admin_only=True)
    assert allows(GROUP, _message(author="@ann"), policy)
    assert not allows(GROUP, _message(author="@bob"), policy)


def test_respond_to_all() -> None:
    assert allows(GROUP, _message(), GroupPolicyConfig(respond_to_all=True))


def test_no_mode_enabled_denies() -> None:
    policy = GroupPolicyConfig(respond_to_all=False)
    assert policy.mode is None
    assert not allows(GROUP, _message(), policy)


def test_validate_warns_about_ambiguous_modes() -> None:
    warnings = validate_group_policy(GroupPolicyConfig(respond_only_when_mentioned=True, respond_to_all=True))
    assert len(warnings) == 1
    assert "mention_only wins" in warnings[0]


def test_validate_warns_about_empty_allow_list() -> None:
    warnings = validate_group_policy(GroupPolicyConfig(allow_list_only=True, respond_to_all=False))
    assert any("empty allow-list" in warning for warning in warnings)


def test_validate_default_policy_is_clean() -> None:
    assert validate_group_policy(GroupPolicyConfig()) == []


def test_allow_list_follows_the_list_when_not_set() -> None:
    policy = GroupPolicyConfig(allowed_groups=frozenset({"chat_id:-1001"}))
    assert policy.mode is GroupMode.ALLOW_LIST_ONLY
    other = ChatContext(chat_id="chat_id:-2002", is_group=True, group_name="Other")
    assert not allows(other, _message(), policy)
    assert GroupPolicyConfig().mode is GroupMode.RESPOND_TO_ALL


def test_validate_accepts_list_taking_over_from_respond_to_all() -> None:
    policy = GroupPolicyConfig(allowed_groups=frozenset({"chat_id:-1001"}), respond_to_all=True)
    assert validate_group_policy(policy) == []
