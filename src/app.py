"""Application entry point for the sheetreply auto-responder."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.google_sheets import GoogleSheetsSource
from adapters.telegram_mapper import ChatMembersResolver, build_message
from adapters.telegram_replier import TelegramGroupSender, TelegramReplier
from client import build_client
from core.commands import TRANSPORT_COMMANDS, OwnerCommand, parse_command, run_engine_command
from core.config import EngineConfig, GroupPolicyConfig
from core.errors import ConfigError, FetchError, TransportSendError
from core.group_policy import validate_group_policy
from core.keyword_table import KeywordTable, KeywordTableHolder
from core.models import Suppressed
from core.processor import AutoResponder
from core.refresh import RefreshScheduler
from core.source_keys import chat_key
from get_session import authorize

NAME = "SHEETREPLY"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/sheetreply.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)
    # Telethon logs every reconnect at INFO; keep our own output readable.
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))


def _build_engine_config() -> EngineConfig:
    policy = GroupPolicyConfig(
        respond_only_when_mentioned=settings.RESPOND_ONLY_WHEN_MENTIONED,
        allow_list_only=settings.ALLOW_LIST_ONLY,
        admin_only=settings.ADMIN_ONLY,
        respond_to_all=settings.RESPOND_TO_ALL,
        allowed_groups=settings.ALLOWED_GROUPS,
        send_default_reply_in_groups=settings.SEND_DEFAULT_REPLY_IN_GROUPS,
    )
    return EngineConfig(
        has_header=settings.HAS_HEADER,
        case_sensitive=settings.CASE_SENSITIVE,
        partial_match=settings.PARTIAL_MATCH,
        default_reply=settings.DEFAULT_REPLY,
        refresh_interval_ms=settings.REFRESH_INTERVAL_MS,
        group_policy=policy,
    )


def _build_source() -> GoogleSheetsSource:
    return GoogleSheetsSource(
        spreadsheet_id=settings.SPREADSHEET_ID,
        range_a1=settings.SHEET_RANGE,
        api_key=settings.GOOGLE_API_KEY,
        access_token=settings.GOOGLE_ACCESS_TOKEN,
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        refresh_token=settings.GOOGLE_REFRESH_TOKEN,
    )


def _client_or_exit():
    try:
        return build_client()
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}") from e


def _dialog_title(dialog: Any) -> str:
    entity = getattr(dialog, "entity", None)
    title = getattr(entity, "title", None)
    if title:
        return str(title)
    name = getattr(dialog, "name", None)
    if name:
        return str(name)
    entity_id = getattr(entity, "id", None)
    return str(entity_id or "unknown")


async def _list_groups(client) -> list[str]:
    """Return one line per group dialog: title, member count and allow-list key."""

    lines = []
    async for dialog in client.iter_dialogs():
        if not dialog.is_group:
            continue
        entity = dialog.entity
        key = chat_key(dialog.id, getattr(entity, "username", None))
        members = getattr(entity, "participants_count", None)
        lines.append(f"{_dialog_title(dialog)} | members: {members if members is not None else '?'} | {key}")
    return lines


async def _run_owner_command(
    command: OwnerCommand,
    responder: AutoResponder,
    client,
    group_sender: TelegramGroupSender,
) -> str:
    if command.name not in TRANSPORT_COMMANDS:
        reply = await run_engine_command(responder, command)
        if command.name == "stats":
            reply = f"{reply}\nConnected: {client.is_connected()}"
        return reply

    if command.name == "groups":
        lines = await _list_groups(client)
        return "\n".join(lines) if lines else "No groups found."

    if not command.argument:
        return "Usage: /broadcast <text>"
    allowed = responder.policy.allowed_groups
    if not allowed:
        return "No allowed groups to broadcast to."
    sent = await group_sender.broadcast(allowed, command.argument)
    return f"Broadcast sent to {sent} group(s)."


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting sheetreply")

    # Configuration problems stop us here, before anything is scheduled.
    try:
        config = _build_engine_config()
        source = _build_source()
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}") from e
    for warning in validate_group_policy(config.group_policy):
        logger.warning(warning)

    holder = KeywordTableHolder(KeywordTable(case_sensitive=config.case_sensitive))
    scheduler = RefreshScheduler(
        source=source,
        holder=holder,
        interval_seconds=config.refresh_interval_seconds,
        has_header=config.has_header,
        case_sensitive=config.case_sensitive,
    )
    responder = AutoResponder(config, holder=holder, scheduler=scheduler)

    client = _client_or_exit()
    client.loop.run_until_complete(client.connect())
    client.loop.run_until_complete(authorize(client))
    me = client.loop.run_until_complete(client.get_me())
    logger.info("Logged in as %s", me.first_name)

    members_resolver = ChatMembersResolver(client, ttl_seconds=settings.CHAT_CACHE_SECONDS)
    group_sender = TelegramGroupSender(client)
    stopping = False

    # Load the table before listening, then keep it fresh in the background.
    async def _start_refresh() -> None:
        await scheduler.refresh_once()
        scheduler.start(immediate=False)

    client.loop.run_until_complete(_start_refresh())

    @client.on(events.NewMessage())
    async def handler(event) -> None:
        if stopping:
            return
        try:
            # Owner commands are messages we send to our own Saved Messages.
            if event.out and event.is_private and event.chat_id == me.id:
                if not settings.COMMANDS_ENABLED:
                    return
                command = parse_command(event.raw_text or "")
                if command is None:
                    return
                reply = await _run_owner_command(command, responder, client, group_sender)
                await event.reply(reply)
                return

            message, chat = await build_message(event, members_resolver)
            where = chat.group_name if chat.is_group else "Direct Message"
            if not message.from_me:
                logger.info("Message from %s in %s: %s", message.sender_display_name, where, message.body)
                if chat.is_group:
                    logger.debug("Group: %s | Members: %s", where, chat.size)
            outcome = await responder.handle(message, chat, TelegramReplier(client, event))
            if not isinstance(outcome, Suppressed):
                logger.debug("Reply text: %s", outcome.text)
        except TransportSendError as e:
            logger.warning("Reply not delivered: %s", e)
        except Exception:
            logger.exception("Error while handling message")

    logger.info("Client connected. Listening for incoming messages...")
    try:
        client.run_until_disconnected()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        stopping = True
        client.loop.run_until_complete(scheduler.stop())
        if client.is_connected():
            client.disconnect()
        logger.info("sheetreply stopped")


def _login() -> None:
    _print_banner()
    client = _client_or_exit()

    async def _run_login() -> None:
        await client.connect()
        await authorize(client)
        me = await client.get_me()
        print(f"Logged in as: {me.first_name}")
        await client.disconnect()

    client.loop.run_until_complete(_run_login())


def _groups() -> None:
    _print_banner()
    client = _client_or_exit()

    async def _run_groups() -> None:
        await client.connect()
        if not await client.is_user_authorized():
            print("Authorization required. Starting login...")
            await authorize(client)
        lines = await _list_groups(client)
        if not lines:
            print("No groups found.")
        for index, line in enumerate(lines, start=1):
            print(f"{index}. {line}")
        await client.disconnect()

    client.loop.run_until_complete(_run_groups())


def _check_sheet() -> None:
    _configure_logging()
    try:
        config = _build_engine_config()
        source = _build_source()
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e}") from e

    try:
        rows = asyncio.run(source.fetch_rows())
    except FetchError as e:
        raise SystemExit(f"Could not read the sheet: {e}") from e

    table = KeywordTable.rebuild(rows, has_header=config.has_header, case_sensitive=config.case_sensitive)
    print(f"{len(rows)} rows fetched, {len(table)} responses loaded")
    for keyword, reply in table.entries():
        print(f"{keyword} => {reply}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="sheetreply")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the auto-responder")
    subparsers.add_parser("login", help="Pair the Telegram session (QR code or phone)")
    subparsers.add_parser("groups", help="List group chats with their allow-list keys")
    subparsers.add_parser("check-sheet", help="Fetch the keyword sheet once and print the parsed responses")

    args = parser.parse_args(argv)
    if args.command == "login":
        _login()
        return
    if args.command == "groups":
        _groups()
        return
    if args.command == "check-sheet":
        _check_sheet()
        return
    _run()


if __name__ == "__main__":
    main()
