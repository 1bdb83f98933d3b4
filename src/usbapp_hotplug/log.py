# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Logging setup for the CLI and the daemon."""

from __future__ import annotations

import logging
import sys

from rich.console import Console
from rich.logging import RichHandler

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: int = logging.INFO, rich: bool | None = None) -> None:
    """Install the root handler, replacing one installed earlier.

    Rich output is used on an interactive terminal; otherwise lines are
    plain ``key=value`` text for journald or another collector.
    """
    if rich is None:
        rich = sys.stderr.isatty()

    handler: logging.Handler
    if rich:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_usbapp_hotplug", False):
            root.removeHandler(existing)
    handler._usbapp_hotplug = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level)
