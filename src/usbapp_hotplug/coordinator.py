# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Hotplug coordinator: the per-event entry point.

Events for the same ``device_id`` are handled strictly one after the
other, in the order they were submitted: each handler task waits for
the previous task of that device before it starts.  Distinct devices
run concurrently; they only meet at the desktop entry file, whose
atomic rename makes the last writer win.

A ``Remove`` cancels every ``Add`` of the same device that is queued or
still running.  A cancelled ``Add`` stops at its next checkpoint (the
mount poll wakes up immediately) and never writes an entry.

State per device::

    Idle --Add--> Resolving --> Integrated | Aborted
    any  --Remove--> Idle
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .cancellation import CancelToken
from .config import HotplugConfig
from .desktop_entry import DesktopEntrySynchronizer
from .errors import HotplugError
from .events import EventKind, HandlerState, HotplugEvent, Outcome
from .locator import ApplicationLocator
from .mounts import LsblkMountTable, MountResolver, MountTable
from .sessions import AccountLookup, PwdAccountLookup, SessionResolver, default_providers
from .steps import AddContext, Components, RemoveContext, add_pipeline, remove_pipeline

logger = logging.getLogger(__name__)

StateListener = Callable[[Outcome], None]


@dataclass
class _DeviceSlot:
    """Queue bookkeeping for one device_id while it has events in flight."""

    tail: asyncio.Task[Outcome] | None = None
    pending_adds: set[CancelToken] = field(default_factory=set)


def _checkpoint(ctx: AddContext) -> None:
    ctx.token.raise_if_cancelled()


class HotplugCoordinator:
    """Dispatch hotplug events to serialized per-device handlers."""

    def __init__(self, components: Components):
        self._components = components
        self._slots: dict[str, _DeviceSlot] = {}
        # Devices not listed here are Idle.
        self._states: dict[str, HandlerState] = {}
        self._listeners: list[StateListener] = []

    @classmethod
    def from_config(
        cls,
        config: HotplugConfig,
        table: MountTable | None = None,
        accounts: AccountLookup | None = None,
    ) -> HotplugCoordinator:
        """Build a coordinator wired to the real system."""
        accounts = accounts or PwdAccountLookup()
        components = Components(
            mounts=MountResolver(
                table or LsblkMountTable(),
                interval=config.poll_interval,
                attempts=config.poll_attempts,
                transports=config.transports,
            ),
            locator=ApplicationLocator(config.bundle_extension, config.search_depth),
            sessions=SessionResolver(
                default_providers(
                    accounts,
                    display=config.primary_display,
                    configured_user=config.target_user,
                ),
                accounts,
                display=config.primary_display,
            ),
            entries=DesktopEntrySynchronizer(
                entry_name=config.entry_name,
                slot=config.entry_slot,
                display_name=config.display_name,
                comment=config.comment,
                icon=config.icon,
                refresh_database=config.refresh_database,
            ),
        )
        return cls(components)

    @property
    def components(self) -> Components:
        return self._components

    def add_listener(self, listener: StateListener) -> None:
        """Call *listener* with every finished :class:`Outcome`."""
        self._listeners.append(listener)

    def state(self, device_id: str) -> HandlerState:
        return self._states.get(device_id, HandlerState.IDLE)

    def _set_state(self, device_id: str, state: HandlerState) -> None:
        if state is HandlerState.IDLE:
            self._states.pop(device_id, None)
        else:
            self._states[device_id] = state

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def submit(self, event: HotplugEvent) -> asyncio.Task[Outcome]:
        """Queue *event* behind earlier events for the same device.

        Must be called from within a running event loop.  Submission
        order defines handling order for a device.
        """
        logger.info("detected device=%s kind=%s", event.device_id, event.kind.value)
        slot = self._slots.setdefault(event.device_id, _DeviceSlot())

        token = CancelToken()
        if event.kind is EventKind.REMOVE:
            for pending in slot.pending_adds:
                pending.cancel()
            slot.pending_adds.clear()
        else:
            slot.pending_adds.add(token)

        previous = slot.tail
        task = asyncio.ensure_future(self._run_after(previous, event, token, slot))
        slot.tail = task
        task.add_done_callback(lambda t: self._release(event.device_id, t))
        return task

    async def handle(self, event: HotplugEvent) -> Outcome:
        """Handle one event and return its outcome."""
        return await self.submit(event)

    async def drain(self) -> None:
        """Wait until every submitted event has been handled."""
        tails = [s.tail for s in self._slots.values() if s.tail is not None]
        if tails:
            await asyncio.gather(*tails, return_exceptions=True)

    def _release(self, device_id: str, task: asyncio.Task[Outcome]) -> None:
        slot = self._slots.get(device_id)
        # Nothing queued behind this task: the queue can go.
        if slot is not None and slot.tail is task:
            del self._slots[device_id]

    async def _run_after(
        self,
        previous: asyncio.Task[Outcome] | None,
        event: HotplugEvent,
        token: CancelToken,
        slot: _DeviceSlot,
    ) -> Outcome:
        if previous is not None and not previous.done():
            await asyncio.wait([previous])

        if event.kind is EventKind.ADD:
            try:
                outcome = await self._handle_add(event, token)
            finally:
                slot.pending_adds.discard(token)
        else:
            outcome = await self._handle_remove(event)

        self._set_state(event.device_id, outcome.state)
        for listener in self._listeners:
            listener(outcome)
        return outcome

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def _handle_add(self, event: HotplugEvent, token: CancelToken) -> Outcome:
        self._set_state(event.device_id, HandlerState.RESOLVING)
        ctx = AddContext(event=event, components=self._components, token=token)
        try:
            await add_pipeline.run(ctx, checkpoint=_checkpoint)
        except HotplugError as e:
            logger.warning("aborted device=%s reason=%s detail=%s", event.device_id, e.kind, e)
            return Outcome(event, HandlerState.ABORTED, reason=e.kind)
        except Exception:
            logger.exception("aborted device=%s reason=internal-error", event.device_id)
            return Outcome(event, HandlerState.ABORTED, reason="internal-error")

        logger.info(
            "integrated device=%s user=%s entry=%s exec=%s",
            event.device_id,
            ctx.session.user if ctx.session else "",
            ctx.entry_path,
            ctx.candidate.path if ctx.candidate else "",
        )
        return Outcome(event, HandlerState.INTEGRATED, entry_path=ctx.entry_path)

    async def _handle_remove(self, event: HotplugEvent) -> Outcome:
        ctx = RemoveContext(event=event, components=self._components)
        try:
            await remove_pipeline.run(ctx)
        except HotplugError as e:
            # Remove always returns the device to Idle.
            logger.warning(
                "removed device=%s entry=none reason=%s detail=%s",
                event.device_id, e.kind, e,
            )
            return Outcome(event, HandlerState.IDLE, reason=e.kind)
        except Exception:
            logger.exception("removed device=%s entry=none reason=internal-error", event.device_id)
            return Outcome(event, HandlerState.IDLE, reason="internal-error")

        logger.info("removed device=%s entry=%s", event.device_id, ctx.entry_path or "none")
        return Outcome(event, HandlerState.IDLE, entry_path=ctx.entry_path)
