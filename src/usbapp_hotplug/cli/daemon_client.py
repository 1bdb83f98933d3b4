"""D-Bus client for the usb-app-hotplugd daemon.

``add``/``remove`` go through the daemon by default so that events from
the CLI share the daemon's per-device queue with events delivered by
udev.
"""

from __future__ import annotations

from typing import Any

from dbus_fast import BusType
from dbus_fast.aio import MessageBus
from dbus_fast.errors import AuthError, DBusError, InterfaceNotFoundError

from ..errors import HotplugError
from ..events import EventKind, HandlerState
from ..service import BUS_NAME, INTERFACE_NAME, OBJECT_PATH


class DaemonUnavailable(HotplugError):
    """The daemon could not be reached on the bus."""

    kind = "daemon-unavailable"


class DaemonClient:
    """Forwards hotplug events to ``org.usbapp.Hotplug``."""

    def __init__(self, bus_type: str = "system"):
        self._bus_type = BusType.SESSION if bus_type == "session" else BusType.SYSTEM
        self._bus: MessageBus | None = None
        self._interface: Any = None

    async def connect(self) -> None:
        if self._bus is not None:
            return
        try:
            self._bus = await MessageBus(bus_type=self._bus_type).connect()
        except (OSError, AuthError) as e:
            raise DaemonUnavailable(f"Cannot connect to the D-Bus bus: {e}") from e

        try:
            introspection = await self._bus.introspect(BUS_NAME, OBJECT_PATH)
            proxy = self._bus.get_proxy_object(BUS_NAME, OBJECT_PATH, introspection)
            self._interface = proxy.get_interface(INTERFACE_NAME)
        except (DBusError, InterfaceNotFoundError) as e:
            self.disconnect()
            raise DaemonUnavailable(f"{BUS_NAME} is not running: {e}") from e

    def disconnect(self) -> None:
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None
            self._interface = None

    async def handle(self, kind: EventKind, device_id: str) -> HandlerState:
        """Submit one event and wait for the daemon to finish it."""
        await self.connect()
        try:
            if kind is EventKind.ADD:
                state = await self._interface.call_add(device_id)
            else:
                state = await self._interface.call_remove(device_id)
        except DBusError as e:
            raise DaemonUnavailable(f"{BUS_NAME} failed to handle {device_id}: {e}") from e
        return HandlerState(state)


def get_daemon_client(bus_type: str = "system") -> DaemonClient:
    return DaemonClient(bus_type)
