"""Entry point for running the daemon directly.

Usage:
    python -m usbapp_hotplug
    python -m usbapp_hotplug --session  # Use session bus (testing)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from .errors import ConfigError


async def main(bus_type: str = "system", config_path: str | None = None) -> None:
    """Run the hotplug D-Bus daemon."""
    from .config import load_config
    from .coordinator import HotplugCoordinator
    from .service import HotplugService

    config = load_config(config_path)
    service = HotplugService(HotplugCoordinator.from_config(config), bus_type=bus_type)

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def handle_signal() -> None:
        logging.getLogger(__name__).info("shutting down")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    try:
        await service.start()

        # Wait for either disconnect or shutdown signal
        done, pending = await asyncio.wait(
            [
                asyncio.create_task(service.run()),
                asyncio.create_task(shutdown_event.wait()),
            ],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()

    finally:
        await service.stop()


def run() -> None:
    """Daemon entry point."""
    from .log import configure_logging

    parser = argparse.ArgumentParser(description="USB app hotplug D-Bus daemon")
    parser.add_argument(
        "--session",
        action="store_true",
        help="Use session bus instead of system bus",
    )
    parser.add_argument("--config", default=None, help="Path to hotplug.conf")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    bus_type = "session" if args.session else "system"

    try:
        asyncio.run(main(bus_type, args.config))
    except ConfigError as e:
        logging.getLogger(__name__).error("config error: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
