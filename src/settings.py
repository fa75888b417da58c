"""Static configuration for telecrm.

All user-editable settings (auto-reply rules, dispatch budget, storage
paths, notifications, logging) live in a single JSON file for quick edits
without touching Python.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# config.json sits at the project root; TELECRM_CONFIG points elsewhere.
CONFIG_PATH = os.getenv("TELECRM_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _project_path(value: str) -> str:
    if os.path.isabs(value):
        return value
    return os.path.join(PROJECT_ROOT, value)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Flag sets (bot triggers, hidden chats, unknown overrides) are stored here.
DATA_DIR = _project_path(_CONFIG.get("data_dir", "data"))

# Relative audio references in rule actions resolve under this directory.
MEDIA_DIR = _project_path(_CONFIG.get("media_dir", "media"))

# Per-conversation history cap kept in memory.
HISTORY_LIMIT = int(_CONFIG.get("history", {}).get("limit", 200))

# Startup preload of recent dialogs into the conversation list.
_preload = _CONFIG.get("preload", {})
PRELOAD_ENABLED = bool(_preload.get("enabled", True))
PRELOAD_LIMIT = int(_preload.get("limit", 200))

# Outbound queue policy. These are tuning knobs, not protocol requirements.
_dispatch = _CONFIG.get("dispatch", {})
DISPATCH_RETRIES = int(_dispatch.get("retries", 5))
DISPATCH_BACKOFF_MS = int(_dispatch.get("backoff_ms", 700))
DISPATCH_READY_TRIES = int(_dispatch.get("ready_tries", 40))
DISPATCH_READY_DELAY_MS = int(_dispatch.get("ready_delay_ms", 250))
DISPATCH_MATERIALIZE_TRIES = int(_dispatch.get("materialize_tries", 10))
DISPATCH_MATERIALIZE_DELAY_MS = int(_dispatch.get("materialize_delay_ms", 300))
DISPATCH_RETRYABLE_PATTERNS = [str(p).lower() for p in _dispatch.get("retryable_patterns", [])]

# Auto-reply seed configuration; the panel can replace it at runtime.
_auto_reply = _CONFIG.get("auto_reply", {})
AUTO_REPLY_ENABLED = bool(_auto_reply.get("enabled", False))
AUTO_REPLY_WELCOME = _auto_reply.get("welcome")
AUTO_REPLY_RULES = _auto_reply.get("rules", [])
_policy = _auto_reply.get("policy", {})
CONSUME_TRIGGER_WITHOUT_REPLY = bool(_policy.get("consume_trigger_without_reply", True))
CONSUME_TRIGGER_ON_FAILURE = bool(_policy.get("consume_trigger_on_failure", True))

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("notification_method", "log")
SNIPPET_CHARS = int(_notifications.get("snippet_chars", 400))
# Bot chat id is only required when notification_method=bot.
BOT_CHAT_ID = _notifications.get("bot_chat_id")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
