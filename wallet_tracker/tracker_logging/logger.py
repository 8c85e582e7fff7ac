"""
structlog setup for the wallet tracker.

Every module logs through get_logger(__name__): a snake_case event name plus
keyword context. JSON output (one object per line on stdout) stores the
event name under event_type and tags each line with the service name; any
other LOG_FORMAT gets the console renderer.

Configured once on import from the process environment. main.py configures
again once Settings are loaded, so LOG_LEVEL and LOG_FORMAT from .env apply;
loggers are resolved lazily, so module-level loggers pick that up.

notification_context() binds wallet_id and signature through contextvars:
every line logged while one notification is formatted and delivered
carries them, including lines from the Discord sender and metadata lookups.

No wallet_tracker imports here; every other module imports this one.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

SERVICE_NAME = "wallet-tracker"


def resolve_level(level: str | int | None) -> int:
    """Map a level name (any case) or number to a logging level; unknown names mean INFO."""
    if isinstance(level, int):
        return level
    name = (level or "").strip().upper()
    value = logging.getLevelName(name) if name else logging.INFO
    return value if isinstance(value, int) else logging.INFO


def _add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _json_event_fields(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """event -> event_type, plus the service tag used for aggregation."""
    if "event" in event_dict:
        event_dict.setdefault("event_type", event_dict.pop("event"))
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_structlog(level: str | int | None = None, fmt: str | None = None) -> None:
    """(Re)configure structlog. Unset arguments fall back to LOG_LEVEL / LOG_FORMAT (json)."""
    resolved = resolve_level(level if level is not None else os.getenv("LOG_LEVEL"))
    output = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
    ]
    if output == "json":
        processors += [_json_event_fields, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(resolved),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> Any:
    """
    Lazy structured logger tagged with the module name.

        logger = get_logger(__name__)
        logger.info("notification_sent", wallet_id=addr, signature=sig)
    """
    return structlog.get_logger(logger_name=name)


def notification_context(wallet_id: str, signature: str):
    """Context manager binding wallet_id and signature to all log lines inside it."""
    return structlog.contextvars.bound_contextvars(wallet_id=wallet_id, signature=signature)
