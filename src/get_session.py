"""Telegram session authorization.

Login itself is Telethon's business; this module only picks the method
(QR code or phone code) and feeds it input from the environment or the
terminal.
"""

from __future__ import annotations

from getpass import getpass
import logging
import os
from typing import Optional

import qrcode
from telethon import TelegramClient, errors

LOGIN_METHODS = ("qr", "phone")
QR_TIMEOUT_SECONDS = 120

LOGGER = logging.getLogger(__name__)


def _print_qr(url: str) -> None:
    qr = qrcode.QRCode(border=1)
    qr.add_data(url)
    qr.make(fit=True)
    qr.print_ascii(invert=True)


def _password() -> str:
    return os.getenv("2FA") or getpass("2FA password: ")


async def _login_with_qr(client: TelegramClient) -> None:
    qr_login = await client.qr_login()
    print("Scan this code from Telegram > Settings > Devices:")
    _print_qr(qr_login.url)
    await qr_login.wait(timeout=QR_TIMEOUT_SECONDS)


async def _login_with_phone(client: TelegramClient) -> None:
    phone = os.getenv("PHONE") or input("Phone number (international format): ").strip()
    await client.send_code_request(phone)
    await client.sign_in(phone=phone, code=input("Login code: ").strip())


def resolve_login_method(method: Optional[str]) -> str:
    """CLI flag first, then LOGIN_METHOD, then QR."""

    chosen = (method or os.getenv("LOGIN_METHOD") or "qr").strip().lower()
    if chosen not in LOGIN_METHODS:
        raise ValueError(f"login method must be one of {', '.join(LOGIN_METHODS)}")
    return chosen


async def authorize(client: TelegramClient, method: Optional[str] = None) -> None:
    """Make sure the session is logged in, prompting only when it is not."""

    if await client.is_user_authorized():
        return

    chosen = resolve_login_method(method)
    LOGGER.info("Session not authorized, logging in with %s", chosen)
    try:
        if chosen == "phone":
            await _login_with_phone(client)
        else:
            await _login_with_qr(client)
    except errors.SessionPasswordNeededError:
        await client.sign_in(password=_password())

    me = await client.get_me()
    LOGGER.info("Logged in as %s", getattr(me, "first_name", None) or getattr(me, "id", "?"))
