"""Bot Telemetry Backend — Entry Point.

Daemon that accepts status, position, signal and trade reports from trading
bots over WebSocket, persists them, and serves statistics and analytics.

Usage:
    python main.py configs/production.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from telemetry.config import load_config
from telemetry.gateway import IngestionGateway
from telemetry.logging_utils import configure_logging
from telemetry.service import TelemetryService
from telemetry.telegram_bot import TelegramBot

logger = logging.getLogger(__name__)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Trading Bot Telemetry Backend")
    parser.add_argument(
        "config_file",
        help="Path to the YAML configuration file",
    )
    args = parser.parse_args()

    config = load_config(args.config_file)
    configure_logging(config.logging.level)

    logger.info(
        "Starting bot-telemetry-backend (data dir %s)...", config.storage.data_dir
    )

    # Create components
    service = TelemetryService(config)
    gateway = IngestionGateway(service, config.gateway)
    telegram_bot = None
    if config.telegram is not None:
        telegram_bot = TelegramBot(config.telegram, service)
        service.set_alert_sink(telegram_bot)

    # Signal handling for graceful shutdown
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received...")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    if telegram_bot is not None:
        await telegram_bot.start()
        await telegram_bot.send_startup_message()

    await gateway.start()

    # Wait for shutdown signal
    await stop_event.wait()

    # Graceful shutdown
    logger.info("Shutting down...")
    await gateway.stop()
    if telegram_bot is not None:
        await telegram_bot.stop()
    logger.info("Backend stopped.")


if __name__ == "__main__":
    asyncio.run(main())
