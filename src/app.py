"""Application entry point for the telecrm responder."""

from __future__ import annotations

import argparse
import logging
import os
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from telethon import events

import settings
from adapters.http_media import UrlMediaFetcher
from adapters.json_flag_store import JsonFlagStore
from adapters.log_notifier import LoggingPanelNotifier
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_mapper import build_inbound, display_name_for
from adapters.telegram_transport import TelegramTransport
from client import build_client
from core.actions import ActionRunner
from core.auto_reply import AutoReplyEngine, AutoReplyState, seeded_state
from core.config import DEFAULT_RETRYABLE_PATTERNS, AutoReplyPolicy, DispatchConfig
from core.dispatcher import OutboundDispatcher
from core.flag_sets import FlagSets
from core.history import ConversationStore
from core.media import MediaResolver
from core.outbound import OutboundService
from core.panel import PanelService
from core.ports import PanelNotifierPort
from core.processor import MessageProcessor
from get_session import LOGIN_METHODS, authorize
from log_setup import configure_logging

NAME = "TELECRM"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _configure_logging() -> None:
    load_dotenv()
    configure_logging(settings.LOGGING, settings.PROJECT_ROOT)


def _dispatch_config() -> DispatchConfig:
    patterns = tuple(settings.DISPATCH_RETRYABLE_PATTERNS) or DEFAULT_RETRYABLE_PATTERNS
    return DispatchConfig(
        retries=settings.DISPATCH_RETRIES,
        backoff_ms=settings.DISPATCH_BACKOFF_MS,
        ready_tries=settings.DISPATCH_READY_TRIES,
        ready_delay_ms=settings.DISPATCH_READY_DELAY_MS,
        materialize_tries=settings.DISPATCH_MATERIALIZE_TRIES,
        materialize_delay_ms=settings.DISPATCH_MATERIALIZE_DELAY_MS,
        retryable_patterns=patterns,
    )


def _load_flag_sets() -> FlagSets:
    flags = FlagSets(JsonFlagStore(settings.DATA_DIR))
    flags.load()
    return flags


def _seed_state() -> AutoReplyState:
    return seeded_state(
        settings.AUTO_REPLY_RULES,
        settings.AUTO_REPLY_WELCOME,
        enabled=settings.AUTO_REPLY_ENABLED,
    )


def _build_notifier(store: ConversationStore) -> PanelNotifierPort:
    def name_lookup(conversation_id: str) -> Optional[str]:
        conversation = store.get(conversation_id)
        return conversation.display_name if conversation else None

    if settings.NOTIFICATION_METHOD == "bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        if not settings.BOT_CHAT_ID:
            raise RuntimeError("notifications.bot_chat_id is required for bot notifications")
        return TelegramBotNotifier(
            bot_token=bot_token,
            chat_id=str(settings.BOT_CHAT_ID),
            snippet_chars=settings.SNIPPET_CHARS,
            name_lookup=name_lookup,
        )
    if settings.NOTIFICATION_METHOD == "log":
        return LoggingPanelNotifier(settings.SNIPPET_CHARS, name_lookup=name_lookup)
    raise RuntimeError("notification_method must be 'log' or 'bot'")


async def _preload_conversations(client, store: ConversationStore, flags: FlagSets) -> None:
    """Fill the conversation list from recent dialogs, skipping hidden ones."""

    if not settings.PRELOAD_ENABLED:
        return
    loaded = 0
    async for dialog in client.iter_dialogs(limit=settings.PRELOAD_LIMIT):
        conversation_id = str(dialog.id)
        if conversation_id in flags.hidden:
            continue
        store.ensure(
            conversation_id,
            display_name_for(dialog.entity, fallback=dialog.name or conversation_id),
            bool(dialog.is_group),
        )
        loaded += 1
    logging.getLogger(__name__).info("Loaded %s conversations (hidden ones skipped)", loaded)


async def _serve(client, login_method: Optional[str]) -> None:
    logger = logging.getLogger(__name__)

    flags = _load_flag_sets()
    state = _seed_state()
    logger.info("Auto-reply: %s", state.status())

    store = ConversationStore(settings.HISTORY_LIMIT)
    transport = TelegramTransport(client)
    dispatcher = OutboundDispatcher(transport, _dispatch_config())
    notifier = _build_notifier(store)
    logger.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)

    outbound = OutboundService(dispatcher, transport, store, notifier)
    runner = ActionRunner(outbound, transport, MediaResolver(settings.MEDIA_DIR, UrlMediaFetcher()))
    policy = AutoReplyPolicy(
        consume_trigger_without_reply=settings.CONSUME_TRIGGER_WITHOUT_REPLY,
        consume_trigger_on_failure=settings.CONSUME_TRIGGER_ON_FAILURE,
    )
    engine = AutoReplyEngine(state, flags, outbound, runner, policy)
    processor = MessageProcessor(store, flags, engine)

    await client.connect()
    await authorize(client, login_method)
    await _preload_conversations(client, store, flags)

    # Outgoing messages are not routed here; bot sends are recorded by OutboundService.
    @client.on(events.NewMessage(incoming=True))
    async def handler(event) -> None:
        try:
            inbound = await build_inbound(event.message)
        except Exception:
            logger.exception("Could not map incoming message")
            return
        await processor.handle(inbound)

    logger.info("Client connected. Listening for incoming messages...")
    await client.run_until_disconnected()


def _run(login_method: Optional[str] = None) -> None:
    _print_banner()
    _configure_logging()
    logging.getLogger(__name__).info("Starting telecrm")

    client = build_client()
    client.loop.run_until_complete(_serve(client, login_method))


def _login(login_method: Optional[str]) -> None:
    _print_banner()
    _configure_logging()
    client = build_client()

    async def _run_login() -> None:
        await client.connect()
        await authorize(client, login_method)
        await client.disconnect()

    client.loop.run_until_complete(_run_login())


def _offline_panel() -> PanelService:
    """Panel over the persisted flag sets only; no transport attached."""

    return PanelService(_seed_state(), _load_flag_sets(), ConversationStore(settings.HISTORY_LIMIT))


def _status() -> None:
    panel = _offline_panel()
    status = panel.auto_reply_status()
    counts = panel.flag_counts()
    print(f"auto-reply enabled: {'yes' if status['enabled'] else 'no'}")
    print(f"rules: {status['rules']}")
    print(f"welcome: {status['welcome'] or '-'}")
    print(f"triggered conversations: {counts['triggered_once']}")
    print(f"hidden conversations: {counts['hidden']}")
    print(f"unknown overrides: {counts['unknown_override']}")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="telecrm")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Start the auto-reply responder")
    run_parser.add_argument("--login-method", choices=LOGIN_METHODS)
    login_parser = subparsers.add_parser("login", help="Authorize the Telegram session")
    login_parser.add_argument("--login-method", choices=LOGIN_METHODS)
    subparsers.add_parser("status", help="Show auto-reply configuration and flag counts")
    subparsers.add_parser("overrides", help="List conversations forced to unknown")
    for name, help_text in (
        ("forget", "Hide a conversation and let the bot greet it again"),
        ("mark-unknown", "Treat a conversation as an unknown contact"),
        ("unmark-unknown", "Remove the unknown-contact override"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("conversation_id")

    args = parser.parse_args(argv)
    if args.command == "login":
        _login(args.login_method)
        return
    if args.command == "status":
        _status()
        return
    if args.command == "overrides":
        for conversation_id in _offline_panel().list_overrides():
            print(conversation_id)
        return
    if args.command == "forget":
        _offline_panel().forget_conversation(args.conversation_id)
        print(f"Forgot {args.conversation_id}")
        return
    if args.command == "mark-unknown":
        _offline_panel().mark_unknown(args.conversation_id)
        print(f"Marked {args.conversation_id} as unknown")
        return
    if args.command == "unmark-unknown":
        _offline_panel().unmark_unknown(args.conversation_id)
        print(f"Unmarked {args.conversation_id}")
        return
    _run(getattr(args, "login_method", None))


if __name__ == "__main__":
    main()
