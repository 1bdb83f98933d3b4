#!/usr/bin/env python3
"""
usb-app-hotplug CLI - Main entry point.

Usage:
    usb-app-hotplug [OPTIONS] COMMAND [ARGS]...

Reacts to USB partition hotplug events by keeping a desktop launcher in
sync with the portable application on the inserted volume.  Events are
handled by usb-app-hotplugd; ``add``/``remove`` forward to it unless
``--local`` is given.
"""

import asyncio
import logging
import os
from typing import Optional

import typer
from rich.table import Table

from . import __version__
from ..config import HotplugConfig, load_config
from ..coordinator import HotplugCoordinator
from ..errors import ConfigError, HotplugError
from ..events import EventKind, HandlerState, HotplugEvent, Outcome
from ..log import configure_logging
from .async_typer import AsyncTyper
from .daemon_client import DaemonUnavailable, get_daemon_client
from .output import out

EXIT_ABORTED = 2

app = AsyncTyper(
    name="usb-app-hotplug",
    help="Desktop launcher integration for portable apps on USB volumes",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        out.info(f"usb-app-hotplug version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a hotplug.conf overriding the system configuration.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    Keep a desktop launcher in sync with the app on a hotplugged USB volume.
    """
    configure_logging(logging.DEBUG if verbose else logging.INFO)
    ctx.obj = {"config_path": config}


def _config(ctx: typer.Context) -> HotplugConfig:
    path = (ctx.obj or {}).get("config_path")
    try:
        return load_config(path)
    except ConfigError as e:
        out.error(str(e))
        raise typer.Exit(1)


def _coordinator(ctx: typer.Context) -> HotplugCoordinator:
    return HotplugCoordinator.from_config(_config(ctx))


def _report(outcome: Outcome) -> None:
    device = outcome.event.device_id
    if outcome.state is HandlerState.ABORTED:
        out.error(f"{device}: not integrated ({outcome.reason})")
        raise typer.Exit(EXIT_ABORTED)
    if outcome.state is HandlerState.INTEGRATED:
        out.success(f"{device}: launcher written to {outcome.entry_path}")
    elif outcome.entry_path:
        out.success(f"{device}: launcher removed from {outcome.entry_path}")
    else:
        out.dim(f"{device}: nothing to remove")


def _report_state(device: str, kind: EventKind, state: HandlerState) -> None:
    if state is HandlerState.ABORTED:
        out.error(f"{device}: not integrated")
        out.hint("The reason is in the usb-app-hotplugd log.")
        raise typer.Exit(EXIT_ABORTED)
    if kind is EventKind.ADD:
        out.success(f"{device}: launcher integrated by usb-app-hotplugd")
    else:
        out.success(f"{device}: launcher cleared by usb-app-hotplugd")


async def _dispatch(
    ctx: typer.Context, kind: EventKind, device: str, local: bool, session_bus: bool,
) -> None:
    if local:
        coordinator = _coordinator(ctx)
        _report(await coordinator.handle(HotplugEvent(kind, device)))
        return

    daemon = get_daemon_client("session" if session_bus else "system")
    try:
        state = await daemon.handle(kind, device)
    except DaemonUnavailable as e:
        out.error(str(e))
        out.hint("Start usb-app-hotplugd, or pass --local to handle the event here.")
        raise typer.Exit(1)
    finally:
        daemon.disconnect()
    _report_state(device, kind, state)


_LOCAL_HELP = "Handle the event in this process instead of the daemon."
_SESSION_HELP = "Talk to a daemon on the session bus."


@app.command()
async def add(
    ctx: typer.Context,
    device: str = typer.Argument(..., help="Partition identifier, e.g. sdb1 or /dev/sdb1"),
    local: bool = typer.Option(False, "--local", help=_LOCAL_HELP),
    session_bus: bool = typer.Option(False, "--session", help=_SESSION_HELP),
) -> None:
    """Handle a partition add event."""
    await _dispatch(ctx, EventKind.ADD, device, local, session_bus)


@app.command()
async def remove(
    ctx: typer.Context,
    device: str = typer.Argument(..., help="Partition identifier, e.g. sdb1 or /dev/sdb1"),
    local: bool = typer.Option(False, "--local", help=_LOCAL_HELP),
    session_bus: bool = typer.Option(False, "--session", help=_SESSION_HELP),
) -> None:
    """Handle a partition remove event."""
    await _dispatch(ctx, EventKind.REMOVE, device, local, session_bus)


@app.command()
def scan(
    ctx: typer.Context,
    mount_path: str = typer.Argument(..., help="Directory to search for an app bundle"),
) -> None:
    """Show which bundle would be picked from a directory."""
    locator = _coordinator(ctx).components.locator
    matches = locator.find_all(mount_path)
    if not matches:
        out.error(f"No application bundle found under {mount_path}")
        raise typer.Exit(EXIT_ABORTED)

    out.success(f"selected {matches[0]}")
    for path in matches[1:]:
        out.dim(f"  ignored {path}")


@app.command()
async def whoami(ctx: typer.Context) -> None:
    """Show the session that would receive the launcher."""
    sessions = _coordinator(ctx).components.sessions
    try:
        session = await sessions.resolve()
    except HotplugError as e:
        out.error(str(e))
        raise typer.Exit(EXIT_ABORTED)

    table = Table(show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("user", session.user)
    table.add_row("home", session.account.home)
    table.add_row("display", session.display)
    table.add_row("session_bus_address", session.session_bus_address)
    out.console.print(table)


@app.command()
def serve(
    ctx: typer.Context,
    session_bus: bool = typer.Option(
        False,
        "--session",
        help="Use the session bus instead of the system bus",
    ),
) -> None:
    """Run the D-Bus daemon that accepts Add/Remove calls."""
    from ..__main__ import main as daemon_main

    _config(ctx)
    path = (ctx.obj or {}).get("config_path")
    try:
        asyncio.run(daemon_main("session" if session_bus else "system", path))
    except KeyboardInterrupt:
        pass


def cli() -> None:
    """CLI entry point for the console script."""
    prog_name = os.environ.get("USB_APP_HOTPLUG_PROG_NAME", "usb-app-hotplug")
    app(prog_name=prog_name)


if __name__ == "__main__":
    cli()
