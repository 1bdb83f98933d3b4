# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Context dataclasses passed through the add/remove pipelines."""

from __future__ import annotations

from dataclasses import dataclass

from ..cancellation import CancelToken
from ..desktop_entry import DesktopEntrySynchronizer
from ..events import HotplugEvent, LaunchCandidate, MountRecord, Session
from ..locator import ApplicationLocator
from ..mounts import MountResolver
from ..sessions import SessionResolver


@dataclass(frozen=True)
class Components:
    """The collaborators a handler needs, built once per coordinator."""

    mounts: MountResolver
    locator: ApplicationLocator
    sessions: SessionResolver
    entries: DesktopEntrySynchronizer


@dataclass
class AddContext:
    """Context passed through the add pipeline.

    Each step fills in one field for the steps after it.  The context
    only lives for a single event; nothing here is cached.
    """

    event: HotplugEvent
    components: Components
    token: CancelToken

    mount: MountRecord | None = None
    candidate: LaunchCandidate | None = None
    session: Session | None = None
    entry_path: str = ""

    @property
    def device_id(self) -> str:
        return self.event.device_id


@dataclass
class RemoveContext:
    """Context passed through the remove pipeline."""

    event: HotplugEvent
    components: Components

    session: Session | None = None
    entry_path: str = ""

    @property
    def device_id(self) -> str:
        return self.event.device_id
