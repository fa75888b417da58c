"""Logging setup driven by the ``logging`` section of config.json."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
from typing import Iterable, Optional

DEFAULT_REDACTED_ENV = ("API_HASH", "BOT_API", "2FA")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class RedactingFormatter(logging.Formatter):
    """Masks secret values (longest first) in every formatted record."""

    def __init__(self, secrets: Iterable[str]) -> None:
        super().__init__(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def secret_values(env_names: Iterable[str]) -> list[str]:
    return [value for value in (os.getenv(name) for name in env_names) if value]


def _file_handler(file_cfg: dict, project_root: str) -> RotatingFileHandler:
    path = file_cfg.get("path", "logs/telecrm.log")
    if not os.path.isabs(path):
        path = os.path.join(project_root, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def build_handlers(config: dict, project_root: str) -> list[logging.Handler]:
    """Console and rotating-file handlers sharing one redacting formatter."""

    formatter = RedactingFormatter(secret_values(config.get("redact", DEFAULT_REDACTED_ENV)))
    handlers: list[logging.Handler] = []
    if config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_file_handler(file_cfg, project_root))
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(config: Optional[dict], project_root: str) -> None:
    if not config or not config.get("enabled", True):
        return
    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    handlers = build_handlers(config, project_root)
    if handlers:
        logging.basicConfig(level=level, handlers=handlers)
    # Telethon logs every reconnect attempt at INFO.
    logging.getLogger("telethon").setLevel(max(level, logging.WARNING))
