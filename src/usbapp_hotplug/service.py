# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""D-Bus front-end for the hotplug coordinator.

Uses dbus-fast for async D-Bus communication.  A udev rule (or anything
else) can deliver events with e.g.::

    busctl call org.usbapp.Hotplug /org/usbapp/Hotplug \\
        org.usbapp.Hotplug1 Add s sdb1
"""

from __future__ import annotations

import logging

from dbus_fast import BusType
from dbus_fast.aio import MessageBus
from dbus_fast.service import PropertyAccess, ServiceInterface, dbus_property, method, signal

from . import __version__
from .coordinator import HotplugCoordinator
from .events import EventKind, HotplugEvent, Outcome

logger = logging.getLogger(__name__)

BUS_NAME = "org.usbapp.Hotplug"
OBJECT_PATH = "/org/usbapp/Hotplug"
INTERFACE_NAME = "org.usbapp.Hotplug1"


class HotplugInterface(ServiceInterface):
    """org.usbapp.Hotplug1 D-Bus interface."""

    def __init__(self, coordinator: HotplugCoordinator):
        super().__init__(INTERFACE_NAME)
        self._coordinator = coordinator
        self._version = __version__
        coordinator.add_listener(self._on_outcome)

    def _on_outcome(self, outcome: Outcome) -> None:
        self.StateChanged(outcome.event.device_id, outcome.state.value, outcome.reason)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @dbus_property(access=PropertyAccess.READ)
    def Version(self) -> "s":
        """Daemon version."""
        return self._version

    # -------------------------------------------------------------------------
    # Methods
    # -------------------------------------------------------------------------

    @method()
    async def Add(self, device_id: "s") -> "s":
        """Handle an add event; returns the resulting state."""
        outcome = await self._coordinator.handle(HotplugEvent(EventKind.ADD, device_id))
        return outcome.state.value

    @method()
    async def Remove(self, device_id: "s") -> "s":
        """Handle a remove event; returns the resulting state."""
        outcome = await self._coordinator.handle(HotplugEvent(EventKind.REMOVE, device_id))
        return outcome.state.value

    @method()
    def GetState(self, device_id: "s") -> "s":
        """Current coordinator state for a device."""
        return self._coordinator.state(device_id).value

    # -------------------------------------------------------------------------
    # Signals
    # -------------------------------------------------------------------------

    @signal()
    def StateChanged(self, device_id: str, state: str, reason: str) -> "sss":
        """Emitted when handling of an event finishes.

        Args:
            device_id: Device the event was for.
            state: New state (idle, integrated, aborted).
            reason: Error kind when aborted, else empty.
        """
        return [device_id, state, reason]


class HotplugService:
    """Owns the bus connection and the exported interface."""

    def __init__(self, coordinator: HotplugCoordinator, bus_type: str = "system"):
        """Initialize the service.

        Args:
            coordinator: Coordinator that handles the events.
            bus_type: "session" or "system" bus.
        """
        self._bus_type = BusType.SESSION if bus_type == "session" else BusType.SYSTEM
        self._bus: MessageBus | None = None
        self._coordinator = coordinator
        self._interface: HotplugInterface | None = None

    async def start(self) -> None:
        """Connect, export the interface and claim the well-known name."""
        self._bus = await MessageBus(bus_type=self._bus_type).connect()

        self._interface = HotplugInterface(self._coordinator)
        self._bus.export(OBJECT_PATH, self._interface)
        await self._bus.request_name(BUS_NAME)

        bus_name = "system" if self._bus_type == BusType.SYSTEM else "session"
        logger.info(
            "daemon started version=%s bus=%s name=%s path=%s",
            __version__, bus_name, BUS_NAME, OBJECT_PATH,
        )

    async def run(self) -> None:
        """Run the service until disconnected."""
        if self._bus is None:
            raise RuntimeError("Service not started")
        await self._bus.wait_for_disconnect()

    async def stop(self) -> None:
        """Finish in-flight events and drop the bus connection."""
        await self._coordinator.drain()
        if self._bus:
            self._bus.disconnect()
            self._bus = None
