"""Entry point for the usage scheduler process."""

import asyncio
import signal
import sys

from .config import Settings, get_settings
from .logging import configure_logging, get_logger
from .services import build_services

logger = get_logger(__name__)


async def run_scheduler(settings: Settings) -> None:
    """Connect, run the scheduler until SIGINT/SIGTERM, then drain and close."""
    services = build_services(settings)
    scheduler = services.scheduler

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, scheduler.request_shutdown)

    try:
        await services.db.connect()
        logger.info("Database connected")
        await scheduler.run()
    finally:
        await services.db.close()
        logger.info("Database connection closed")


def main() -> None:
    """Main entry point."""
    settings = get_settings()
    configure_logging(
        level=settings.logging.level,
        json_format=settings.logging.json_format,
        service_name=settings.service_name,
        service_version=settings.service_version,
    )

    if not settings.scheduler.enabled:
        logger.info("Scheduler disabled, exiting")
        return

    logger.info(
        "Starting usage scheduler",
        environment=settings.environment,
        version=settings.service_version,
    )
    try:
        asyncio.run(run_scheduler(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, scheduler stopped")
    except Exception:
        logger.exception("Scheduler crashed")
        sys.exit(1)


if __name__ == "__main__":
    main()
