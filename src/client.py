"""Telegram user-session client for the auto-responder.

The responder runs unattended, so the client keeps reconnecting after
network drops instead of giving up after Telethon's default five retries.
The paired session appears in Telegram's device list as "sheetreply".
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient

from core.errors import ConfigError

DEVICE_MODEL = "sheetreply"
DEFAULT_SESSION_NAME = "sheetreply"

LOGGER = logging.getLogger(__name__)


def build_client() -> TelegramClient:
    """Create the Telethon client from API_ID, API_HASH and SESSION_NAME."""

    load_dotenv()

    api_id = os.getenv("API_ID", "").strip()
    api_hash = os.getenv("API_HASH", "").strip()
    if not api_id or not api_hash:
        raise ConfigError("API_ID and API_HASH must be set (see .env.example)")
    if not api_id.isdigit():
        raise ConfigError(f"API_ID must be numeric, got {api_id!r}")

    session_name = os.getenv("SESSION_NAME") or DEFAULT_SESSION_NAME
    LOGGER.info("Using Telegram session %s", session_name)

    return TelegramClient(
        session_name,
        int(api_id),
        api_hash,
        device_model=DEVICE_MODEL,
        connection_retries=None,
        auto_reconnect=True,
    )
