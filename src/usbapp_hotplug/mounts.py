# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Mount resolution: wait for a hotplugged partition to appear mounted.

udev fires the add event as soon as the partition node exists, while the
desktop automounter mounts it a moment later.  :class:`MountResolver`
therefore polls the live mount table for a bounded number of attempts
before giving up with :class:`~.errors.MountTimeout`.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Any, Protocol

from .cancellation import CancelToken
from .errors import MountTimeout
from .events import Filesystem, MountRecord

logger = logging.getLogger(__name__)

LSBLK_COLUMNS = "NAME,PATH,TYPE,FSTYPE,MOUNTPOINT,TRAN"


@dataclass(frozen=True)
class MountRow:
    """One block device as reported by the mount table."""

    name: str
    path: str
    mount_path: str
    fstype: str
    transport: str
    type: str = "part"

    def matches(self, device_id: str) -> bool:
        return device_id in (self.name, self.path, f"/dev/{self.name}")

    @property
    def is_mounted(self) -> bool:
        # lsblk reports swap as "[SWAP]"; only real directories count.
        return os.path.isabs(self.mount_path)


class MountTable(Protocol):
    """Read-only view of the system's block devices and their mounts."""

    def rows(self) -> list[MountRow]: ...


class LsblkMountTable:
    """Mount table backed by ``lsblk --json``.

    Partitions do not carry a transport of their own, so each child
    inherits ``TRAN`` from its parent disk.
    """

    def __init__(self, lsblk: str = "lsblk"):
        self._lsblk = lsblk

    def rows(self) -> list[MountRow]:
        try:
            result = subprocess.run(
                [self._lsblk, "--json", "-o", LSBLK_COLUMNS],
                capture_output=True,
                text=True,
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            logger.warning("lsblk failed: %s", e)
            return []
        return parse_lsblk_json(result.stdout)


def parse_lsblk_json(text: str) -> list[MountRow]:
    """Flatten ``lsblk --json`` output into rows, parents first."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Unparsable lsblk output: %s", e)
        return []

    rows: list[MountRow] = []

    def _walk(devices: list[dict[str, Any]], parent_tran: str) -> None:
        for dev in devices:
            tran = dev.get("tran") or parent_tran
            name = dev.get("name") or ""
            rows.append(MountRow(
                name=name,
                path=dev.get("path") or f"/dev/{name}",
                mount_path=dev.get("mountpoint") or "",
                fstype=dev.get("fstype") or "",
                transport=tran,
                type=dev.get("type") or "",
            ))
            _walk(dev.get("children") or [], tran)

    _walk(data.get("blockdevices") or [], "")
    return rows


class MountResolver:
    """Turn a device identifier into a confirmed :class:`MountRecord`.

    Matching policy: if the table knows the device, wait for that device
    to be mounted; otherwise take the first mounted row on a removable
    transport.  Either way the row must be on one of ``transports`` and
    have an absolute mount path.
    """

    def __init__(
        self,
        table: MountTable,
        interval: float = 1.0,
        attempts: int = 10,
        transports: tuple[str, ...] = ("usb",),
    ):
        self._table = table
        self._interval = interval
        self._attempts = attempts
        self._transports = frozenset(t.lower() for t in transports)

    def _select(self, device_id: str, rows: list[MountRow]) -> MountRow | None:
        removable = [
            r for r in rows
            if r.transport.lower() in self._transports and r.is_mounted
        ]
        if any(r.matches(device_id) for r in rows):
            removable = [r for r in removable if r.matches(device_id)]
        if len(removable) > 1:
            logger.info(
                "multiple removable mounts device=%s mounts=%s using=%s",
                device_id, ",".join(r.mount_path for r in removable),
                removable[0].mount_path,
            )
        return removable[0] if removable else None

    async def resolve(self, device_id: str, token: CancelToken | None = None) -> MountRecord:
        """Poll until the partition is mounted.

        Sleeps ``interval`` between attempts, so a timeout is reported
        after ``(attempts - 1) * interval`` seconds of waiting.

        Raises:
            MountTimeout: No matching mount appeared within the budget.
            HandlingCancelled: *token* was cancelled while waiting.
        """
        token = token or CancelToken()
        for attempt in range(1, self._attempts + 1):
            token.raise_if_cancelled()
            row = self._select(device_id, self._table.rows())
            if row is not None:
                logger.debug("mount found device=%s attempt=%d", device_id, attempt)
                return MountRecord(
                    device_id=device_id,
                    mount_path=row.mount_path,
                    filesystem=Filesystem.from_fstype(row.fstype),
                )
            if attempt < self._attempts:
                await token.sleep(self._interval)

        raise MountTimeout(
            f"No removable mount for {device_id} after {self._attempts} attempts"
        )
