"""
OhFixIt Desktop Helper - Main Entry Point
"""

import asyncio
import logging
import signal
import sys
import platform
import structlog


def configure_logging(level: str = "INFO"):
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(colors=True)
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level, logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )


log = structlog.get_logger()


async def main():
    """Main entry point - builds the helper and starts the control plane."""
    from config import load_config
    from core import AutomationService
    from core.actions.definitions import build_default_catalog
    from api import ControlPlane

    config = load_config()
    configure_logging(config.log_level)

    log.info("Building action catalog...")
    catalog = build_default_catalog()
    log.info("Action catalog ready", actions=catalog.list_available())

    service = AutomationService(config, catalog)

    # The control plane owns its own copy of the catalog and credentials.
    control_plane = ControlPlane(config, service.clone())
    if not control_plane.start():
        log.warning("Running without a control plane (degraded mode)")

    log.info("=" * 60)
    log.info("Desktop Helper Ready",
             version=config.version,
             server_url=config.server_url,
             control_plane=control_plane.running)
    log.info("=" * 60)

    shutdown_event = asyncio.Event()

    def signal_handler(*args):
        log.info("Shutdown signal received...")
        shutdown_event.set()

    # Cross-platform signal handling
    if platform.system() != "Windows":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)
    else:
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    try:
        await shutdown_event.wait()
    except asyncio.CancelledError:
        log.info("Main task cancelled")

    log.info("Stopping control plane...")
    await control_plane.stop()

    # Let in-flight reports finish before closing their clients
    await service.aclose()
    await control_plane.service.aclose()

    log.info("Shutdown complete")


def run():
    configure_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        log.info("Keyboard interrupt received, exiting...")
    except Exception as e:
        log.error("Fatal error", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
