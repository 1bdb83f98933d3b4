# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Error kinds raised while handling a hotplug event.

Every error carries a short ``kind`` string that is used verbatim in the
``aborted`` log line and in the coordinator's :class:`~.events.Outcome`.
None of these are fatal to the process; the coordinator catches them at
its boundary and moves on to the next event.
"""

from __future__ import annotations


class HotplugError(Exception):
    """Base class for all handling failures."""

    kind = "error"

    def __init__(self, message: str, kind: str | None = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class ConfigError(HotplugError):
    kind = "config"


class MountTimeout(HotplugError):
    """The partition never showed up in the mount table."""

    kind = "mount-timeout"


class NoCandidate(HotplugError):
    """The mounted volume has no launchable bundle."""

    kind = "no-candidate"


class NoActiveSession(HotplugError):
    """No user identity could be resolved."""

    kind = "no-active-session"


class WriteFailure(HotplugError):
    """The desktop entry could not be written or removed."""

    kind = "write-failure"


class HandlingCancelled(HotplugError):
    """An ``Add`` was superseded by a ``Remove`` for the same device."""

    kind = "cancelled"


class StepOrderError(HotplugError):
    """A pipeline step ran before the step that fills its input."""

    kind = "internal-error"


class OwnershipWarning(UserWarning):
    """chown/chmod of the entry or a new directory failed.

    Logged, never raised: the entry stays in place.
    """

    kind = "ownership-warning"
