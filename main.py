"""
Main entrypoint: validate configuration, then run the FastAPI server.

Startup (registry tables, Discord self-test, Helius webhook subscription)
happens in the app lifespan; uvicorn handles SIGINT/SIGTERM and lets
in-flight webhook responses finish before exiting.

Env: HELIUS_API_KEY, HELIUS_RPC_URL, DISCORD_WEBHOOK_URL (required); PORT, HOST,
WEBHOOK_PATH, WEBHOOK_URL, LOG_LEVEL, etc.

Server only: uvicorn wallet_tracker.api_server.app:app --host 0.0.0.0 --port 3000
"""

import sys

# Configure structured JSON logging before other imports that may log
from wallet_tracker.tracker_logging import configure_structlog, get_logger

logger = get_logger("main")


def main() -> None:
    """Load settings (fatal when incomplete), then serve."""
    from wallet_tracker.config import get_settings
    from wallet_tracker.config.env import print_tracker_startup
    from wallet_tracker.core.exceptions import ConfigError

    try:
        settings = get_settings()
    except ConfigError as e:
        logger.error("main_config_error", message=str(e))
        sys.exit(1)
    # LOG_LEVEL / LOG_FORMAT may come from .env, loaded by get_settings()
    configure_structlog(settings.log_level)
    print_tracker_startup(settings, "main")

    from wallet_tracker.api_server.app import app
    import uvicorn

    logger.info("main_server_starting", host=settings.host, port=settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
