"""Pair the auto-responder's Telegram account.

Used by ``sheetreply login`` and on first ``sheetreply run``. LOGIN_METHOD,
PHONE and 2FA in .env skip the matching prompts.
"""

from __future__ import annotations

import asyncio
import os
from getpass import getpass

import qrcode
from telethon import TelegramClient, errors

QR_TIMEOUT_SECONDS = 120
QR_ATTEMPTS = 3
LOGIN_METHODS = {"1": "qr", "2": "phone"}


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _password() -> str:
    return os.getenv("2FA") or getpass("2FA password: ")


async def _authorize_with_qr(client: TelegramClient) -> None:
    qr = await client.qr_login()
    for attempt in range(1, QR_ATTEMPTS + 1):
        print("Scan with the Telegram app that should auto-reply (Settings > Devices > Link Desktop Device):")
        _print_qr(qr.url)
        try:
            await qr.wait(timeout=QR_TIMEOUT_SECONDS)
            return
        except asyncio.TimeoutError:
            if attempt == QR_ATTEMPTS:
                raise SystemExit("QR code expired; run `sheetreply login` again.")
            print("QR code expired, generating a new one.")
            await qr.recreate()


async def _authorize_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    code = input("Login code: ").strip()
    await client.sign_in(phone=phone, code=code)


def _login_method() -> str:
    method = (os.getenv("LOGIN_METHOD") or "").strip().lower()
    if method in LOGIN_METHODS.values():
        return method
    print("\nPair this account with sheetreply:\n[1] QR code\n[2] Phone code\n[3] Exit")
    while True:
        choice = input("sheetreply > ").strip()
        if choice == "3":
            raise SystemExit(0)
        if choice in LOGIN_METHODS:
            return LOGIN_METHODS[choice]
        print("Please choose 1, 2 or 3.")


async def authorize(client: TelegramClient) -> None:
    """Log the session in unless it is already authorized."""

    if await client.is_user_authorized():
        return

    try:
        if _login_method() == "phone":
            await _authorize_with_phone(client)
        else:
            await _authorize_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_password())
