"""Static configuration for sheetreply.

User-editable settings (sheet location, matching, default reply, group
behaviour, logging) live in a single JSON file for quick edits without
touching Python. Credentials stay in .env.
"""

import json
import os

from dotenv import load_dotenv

from core.source_keys import expand_allowed_groups

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("SHEETREPLY_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))

load_dotenv()


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


def _env_int(name: str):
    """Return the variable as an int, or the raw string for EngineConfig to reject."""

    raw = os.getenv(name, "").strip()
    try:
        return int(raw)
    except ValueError:
        return raw


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Keyword sheet. SPREADSHEET_ID / SHEET_RANGE in the environment win so the
# same config.json can serve several deployments.
_sheet = _CONFIG.get("sheet", {})
SPREADSHEET_ID = os.getenv("SPREADSHEET_ID") or _sheet.get("spreadsheet_id", "")
SHEET_RANGE = os.getenv("SHEET_RANGE") or _sheet.get("range", "Sheet1!A:B")
HAS_HEADER = bool(_sheet.get("has_header", True))

# Matching behaviour.
# - CASE_SENSITIVE: keep keyword/body case when comparing
# - PARTIAL_MATCH: allow keywords found anywhere inside the message
_matching = _CONFIG.get("matching", {})
CASE_SENSITIVE = bool(_matching.get("case_sensitive", False))
PARTIAL_MATCH = bool(_matching.get("partial_match", True))

# Replies and refresh cadence.
_replies = _CONFIG.get("replies", {})
DEFAULT_REPLY = os.getenv("DEFAULT_REPLY") or _replies.get("default_reply") or None
REFRESH_INTERVAL_MS = _replies.get("refresh_interval_ms", 60000)
if os.getenv("REFRESH_INTERVAL"):
    REFRESH_INTERVAL_MS = _env_int("REFRESH_INTERVAL")

# Group behaviour. When several modes are enabled, the first in this order
# wins: mention-only, allow-list, admin-only, respond-to-all.
_groups = _CONFIG.get("groups", {})
RESPOND_ONLY_WHEN_MENTIONED = bool(_groups.get("respond_only_when_mentioned", False))
ALLOWED_GROUPS = expand_allowed_groups((_groups.get("allowed_groups") or []) + _env_list("ALLOWED_GROUPS"))
# allow_list_only left out (None) follows the list, also after /allow and
# /disallow: on while the list has entries.
ALLOW_LIST_ONLY = _groups.get("allow_list_only")
if ALLOW_LIST_ONLY is not None:
    ALLOW_LIST_ONLY = bool(ALLOW_LIST_ONLY)
ADMIN_ONLY = bool(_groups.get("admin_only", False))
RESPOND_TO_ALL = bool(_groups.get("respond_to_all", True))
SEND_DEFAULT_REPLY_IN_GROUPS = bool(_groups.get("send_default_reply_in_groups", False))
# Participant/admin lookups are cached per chat for this many seconds.
CHAT_CACHE_SECONDS = float(_groups.get("chat_cache_seconds", 300))

# Owner commands sent to Saved Messages.
_admin = _CONFIG.get("admin", {})
COMMANDS_ENABLED = bool(_admin.get("commands_enabled", True))

# Google credentials: an API key for link-shared sheets, or OAuth tokens.
GOOGLE_API_KEY = os.getenv("GOOGLE_API_KEY", "")
GOOGLE_ACCESS_TOKEN = os.getenv("GOOGLE_ACCESS_TOKEN", "")
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID", "")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET", "")
GOOGLE_REFRESH_TOKEN = os.getenv("GOOGLE_REFRESH_TOKEN", "")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
