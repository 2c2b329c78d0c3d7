from __future__ import annotations

import pytest

from core.config import EngineConfig, GroupMode, GroupPolicyConfig
from core.errors import ConfigError


def test_defaults() -> None:
    config = EngineConfig()
    assert config.has_header
    assert not config.case_sensitive
    assert config.partial_match
    assert config.default_reply is None
    assert config.refresh_interval_ms == 60000
    assert config.refresh_interval_seconds == 60.0
    assert config.group_policy.mode is GroupMode.RESPOND_TO_ALL
    assert not config.group_policy.send_default_reply_in_groups


@pytest.mark.parametrize("interval", [0, -5, 1.5, True, "soon"])
def test_invalid_refresh_interval_is_rejected(interval) -> None:
    with pytest.raises(ConfigError):
        EngineConfig(refresh_interval_ms=interval)


def test_mode_precedence() -> None:
    assert GroupPolicyConfig(admin_only=True, respond_to_all=True).mode is GroupMode.ADMIN_ONLY
    assert GroupPolicyConfig(allow_list_only=True, admin_only=True).mode is GroupMode.ALLOW_LIST_ONLY
    assert (
        GroupPolicyConfig(respond_only_when_mentioned=True, allow_list_only=True, admin_only=True).mode
        is GroupMode.MENTION_ONLY
    )


def test_enabled_modes_in_precedence_order() -> None:
    policy = GroupPolicyConfig(respond_only_when_mentioned=True, admin_only=True, respond_to_all=True)
    assert policy.enabled_modes() == [GroupMode.MENTION_ONLY, GroupMode.ADMIN_ONLY, GroupMode.RESPOND_TO_ALL]
