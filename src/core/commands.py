"""Owner command parsing and the engine-side command handlers.

Commands are plain text messages the account owner sends to their own
Saved Messages:

    /add <keyword> => <reply>
    /responses
    /stats
    /allow <chat>
    /disallow <chat>
    /refresh
    /groups              (handled by the transport layer)
    /broadcast <text>    (handled by the transport layer)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.config import GroupMode
from core.processor import AutoResponder

COMMAND_PREFIX = "/"
ADD_SEPARATOR = "=>"
COMMANDS = frozenset({"add", "responses", "stats", "allow", "disallow", "refresh", "groups", "broadcast", "help"})
TRANSPORT_COMMANDS = frozenset({"groups", "broadcast"})

HELP_TEXT = "\n".join(
    [
        "/add <keyword> => <reply>",
        "/responses",
        "/stats",
        "/allow <chat>",
        "/disallow <chat>",
        "/refresh",
        "/groups",
        "/broadcast <text>",
    ]
)


@dataclass(frozen=True)
class OwnerCommand:
    name: str
    argument: str = ""


def parse_command(text: str) -> Optional[OwnerCommand]:
    """Return the command in ``text``, or None if it is not a known command."""

    text = text.strip()
    if not text.startswith(COMMAND_PREFIX):
        return None
    head, _, argument = text[len(COMMAND_PREFIX) :].partition(" ")
    name = head.lower()
    if name not in COMMANDS:
        return None
    return OwnerCommand(name=name, argument=argument.strip())


def _format_responses(responder: AutoResponder, limit: int = 50) -> str:
    entries = responder.list_responses()
    if not entries:
        return "No responses loaded."
    lines = [f"{keyword} => {reply}" for keyword, reply in entries[:limit]]
    if len(entries) > limit:
        lines.append(f"... and {len(entries) - limit} more")
    return "\n".join(lines)


def _format_stats(responder: AutoResponder) -> str:
    stats = responder.get_stats()
    last = stats.last_refresh_at.isoformat(timespec="seconds") if stats.last_refresh_at else "never"
    mode = responder.policy.mode.value if responder.policy.mode else "disabled"
    return "\n".join(
        [
            f"Responses: {stats.entry_count}",
            f"Last refresh: {last}",
            f"Refresh failures: {stats.refresh_failures}",
            f"Group mode: {mode}",
            f"Allowed groups: {len(stats.allowed_groups)}",
        ]
    )


async def run_engine_command(responder: AutoResponder, command: OwnerCommand) -> str:
    """Execute an engine command and return the text to report back.

    Transport commands (``/groups``, ``/broadcast``) are not handled here.
    """

    if command.name in TRANSPORT_COMMANDS:
        raise ValueError(f"/{command.name} is handled by the transport layer")

    if command.name == "help":
        return HELP_TEXT

    if command.name == "add":
        keyword, sep, reply = command.argument.partition(ADD_SEPARATOR)
        if not sep or not keyword.strip() or not reply.strip():
            return f"Usage: /add <keyword> {ADD_SEPARATOR} <reply>"
        responder.add_response(keyword, reply)
        return f"Added: {keyword.strip()} => {reply.strip()}"

    if command.name == "responses":
        return _format_responses(responder)

    if command.name == "stats":
        return _format_stats(responder)

    if command.name in {"allow", "disallow"}:
        if not command.argument:
            return f"Usage: /{command.name} <@username|chat_id>"
        try:
            changed = responder.set_allowed_group(command.argument, add=command.name == "allow")
        except ValueError as e:
            return str(e)
        if not changed:
            return "Allowed groups unchanged."
        reply = f"{'Allowed' if command.name == 'allow' else 'Removed'}: {command.argument}"
        mode = responder.policy.mode
        if mode is not GroupMode.ALLOW_LIST_ONLY:
            reply += f"\nGroup mode is {mode.value if mode else 'disabled'}; the allow-list is not applied."
        return reply

    if command.name == "refresh":
        if await responder.refresh_now():
            return f"Refreshed: {responder.get_stats().entry_count} responses."
        return "Refresh failed; keeping the previous responses."

    raise ValueError(f"Unsupported command: /{command.name}")
