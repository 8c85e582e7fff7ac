"""
Structured logging for the Solana wallet tracker.

JSON logs with timestamp, event_type, wallet_id and signature.
Use get_logger() in all modules for aggregation-friendly output.
"""

from wallet_tracker.tracker_logging.logger import (
    configure_structlog,
    get_logger,
    notification_context,
    resolve_level,
)

__all__ = ["configure_structlog", "get_logger", "notification_context", "resolve_level"]
