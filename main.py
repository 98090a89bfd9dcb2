"""
LevelBoard - Main Entry Point
=============================

Starts the leveling dashboard API.

Usage:
    python main.py

    Or with a process manager:
    nohup python main.py > /dev/null 2>&1 &

Environment Variables:
    DATABASE_PATH: Path to the bot's SQLite database.
    DISCORD_BOT_TOKEN: Bot token used for username/avatar lookups.
    DISCORD_API_ENABLED: "true" to enable Discord lookups.
"""

import sys
import signal
import asyncio
from typing import NoReturn

# Load environment variables BEFORE importing local modules that read
# from the environment
from dotenv import load_dotenv
load_dotenv()

from levelboard.core.logger import logger
from levelboard.core.config import ConfigValidationError, load_config, validate_and_log_config
from levelboard.app import Dashboard


# =============================================================================
# Signal Handlers
# =============================================================================

def _setup_async_signal_handlers(loop: asyncio.AbstractEventLoop, dashboard: Dashboard) -> None:
    """
    Register SIGTERM/SIGINT handlers that close the dashboard from the loop.

    Args:
        loop: The running event loop
        dashboard: Dashboard to close on signal
    """
    def _handle(signum: int) -> None:
        logger.info("Signal Received", [
            ("Signal", signal.Signals(signum).name),
            ("Action", "Initiating graceful shutdown"),
        ])
        asyncio.create_task(dashboard.close())

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle, sig)
        except (NotImplementedError, ValueError, OSError) as e:
            logger.warning(f"Could not register {sig.name} handler", [
                ("Error", str(e)),
            ])


async def _serve(dashboard: Dashboard) -> None:
    _setup_async_signal_handlers(asyncio.get_running_loop(), dashboard)
    await dashboard.run()


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> NoReturn:
    """
    Main entry point for the dashboard.

    Execution flow:
    1. Validate environment configuration
    2. Build the dashboard and start the API
    3. Shut down cleanly on SIGTERM/SIGINT
    """
    try:
        validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Configuration Validation Failed", [
            ("Error", str(e)),
            ("Action", "Check your .env file"),
        ])
        sys.exit(1)

    config = load_config()
    logger.tree("Starting LevelBoard", [
        ("Database", str(config.database_path)),
        ("Bind", f"{config.host}:{config.port}"),
        ("Discord Enrichment", "Enabled" if config.enrichment.enabled else "Disabled"),
    ], emoji="📊")

    try:
        asyncio.run(_serve(Dashboard(config)))
    except Exception as e:
        logger.error_tree("Fatal Error During Dashboard Execution", e)
        logger.exception("Full traceback:")
        sys.exit(1)

    logger.info("Dashboard Shutdown Complete")
    sys.exit(0)


if __name__ == "__main__":
    main()
