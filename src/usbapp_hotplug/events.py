# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Value types passed between the hotplug components."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class EventKind(enum.Enum):
    """What happened to the partition."""

    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class HotplugEvent:
    """A single add/remove notification for one partition.

    ``device_id`` is an opaque key; the coordinator only uses it to
    serialize handling per partition.
    """

    kind: EventKind
    device_id: str


class Filesystem(enum.Enum):
    FAT32 = "fat32"
    EXFAT = "exfat"
    NTFS = "ntfs"
    EXT = "ext"
    OTHER = "other"

    @classmethod
    def from_fstype(cls, fstype: str | None) -> Filesystem:
        """Map an lsblk/blkid ``FSTYPE`` string onto the enum."""
        name = (fstype or "").lower()
        if name in ("vfat", "fat", "fat32", "msdos"):
            return cls.FAT32
        if name == "exfat":
            return cls.EXFAT
        if name in ("ntfs", "ntfs3", "ntfs-3g"):
            return cls.NTFS
        if name in ("ext2", "ext3", "ext4"):
            return cls.EXT
        return cls.OTHER


@dataclass(frozen=True)
class MountRecord:
    device_id: str
    mount_path: str
    filesystem: Filesystem


@dataclass(frozen=True)
class LaunchCandidate:
    path: str


@dataclass(frozen=True)
class Account:
    """The bits of a passwd entry the engine needs."""

    name: str
    uid: int
    gid: int
    home: str


@dataclass(frozen=True)
class Session:
    """The graphical session that should receive the launcher.

    ``display`` and ``session_bus_address`` are derived from the account,
    not queried; they are advisory metadata for launching on the user's
    behalf and are not used when writing the desktop entry.
    """

    user: str
    display: str
    session_bus_address: str
    account: Account

    @classmethod
    def for_account(cls, account: Account, display: str = ":0") -> Session:
        return cls(
            user=account.name,
            display=display,
            session_bus_address=f"unix:path=/run/user/{account.uid}/bus",
            account=account,
        )


class HandlerState(enum.Enum):
    """Per-device coordinator state."""

    IDLE = "idle"
    RESOLVING = "resolving"
    INTEGRATED = "integrated"
    ABORTED = "aborted"


@dataclass(frozen=True)
class Outcome:
    """Result of handling one event.

    ``reason`` is the error kind when ``state`` is ``ABORTED``.
    ``entry_path`` is the desktop entry written or removed, if any.
    """

    event: HotplugEvent
    state: HandlerState
    reason: str = ""
    entry_path: str = ""
