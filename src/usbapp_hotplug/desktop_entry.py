# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Write and remove the per-user desktop launcher.

The entry lives at ``~<user>/.local/share/applications/<entry_name>.desktop``
(or one file per device in ``per-device`` slot mode).  Writes go to a
temporary file in the same directory and are renamed into place, so a
desktop shell watching the directory never reads a half-written file.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import subprocess
import tempfile
from collections.abc import Callable

from .config import SLOT_PER_DEVICE, SLOT_SINGLE
from .errors import OwnershipWarning, WriteFailure
from .events import Account, LaunchCandidate

logger = logging.getLogger(__name__)

APPLICATIONS_SUBDIR = (".local", "share", "applications")

# Characters that force quoting of an Exec argument (Desktop Entry spec).
_EXEC_RESERVED = set(" \t\n\"'\\><~|&;$*?#()`")
_EXEC_ESCAPED = set("\"`$\\")

_EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def quote_exec(path: str) -> str:
    """Quote *path* for use as the program in an ``Exec=`` key."""
    value = path.replace("%", "%%")
    if any(c in _EXEC_RESERVED for c in value):
        inner = "".join("\\" + c if c in _EXEC_ESCAPED else c for c in value)
        value = f'"{inner}"'
    # Desktop files apply string escaping on top of the Exec quoting.
    return value.replace("\\", "\\\\")


def device_slug(device_id: str) -> str:
    """Filename-safe form of a device id (``/dev/sdb1`` -> ``sdb1``)."""
    name = device_id.strip("/")
    if name.startswith("dev/"):
        name = name[len("dev/"):]
    return "".join(c if c.isalnum() or c in "-_" else "-" for c in name) or "device"


class DesktopEntrySynchronizer:
    """Idempotent create/remove of the launcher file."""

    def __init__(
        self,
        entry_name: str = "usb-app",
        slot: str = SLOT_SINGLE,
        display_name: str = "USB App",
        comment: str = "Portable application on removable storage",
        icon: str = "application-x-executable",
        refresh_database: bool = False,
        fchown: Callable[[int, int, int], None] = os.fchown,
    ):
        self._entry_name = entry_name
        self._slot = slot
        self._display_name = display_name
        self._comment = comment
        self._icon = icon
        self._refresh_database = refresh_database
        self._fchown = fchown

    # -------------------------------------------------------------------------
    # Paths and content
    # -------------------------------------------------------------------------

    @staticmethod
    def applications_dir(account: Account) -> str:
        return os.path.join(account.home, *APPLICATIONS_SUBDIR)

    def entry_path(self, account: Account, device_id: str = "") -> str:
        filename = self._entry_name
        if self._slot == SLOT_PER_DEVICE and device_id:
            filename = f"{filename}-{device_slug(device_id)}"
        return os.path.join(self.applications_dir(account), f"{filename}.desktop")

    def render(self, candidate: LaunchCandidate) -> str:
        return (
            "[Desktop Entry]\n"
            f"Name={self._display_name}\n"
            f"Comment={self._comment}\n"
            f"Exec={quote_exec(candidate.path)}\n"
            f"Icon={self._icon}\n"
            "Type=Application\n"
            "Terminal=false\n"
        )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def sync_create(self, account: Account, candidate: LaunchCandidate, device_id: str = "") -> str:
        """Atomically write the entry pointing at *candidate*.

        Ownership and the executable bit are set on the temporary file's
        descriptor before the rename, never through the final path, which
        sits in a user-writable directory.  Failing to set them is logged
        and the entry is kept.

        Returns:
            Path of the written entry.

        Raises:
            WriteFailure: The directory or file could not be written.
        """
        path = self.entry_path(account, device_id)
        directory = os.path.dirname(path)
        self._ensure_directory(account)

        content = self.render(candidate)
        fd, tmp_path = -1, ""
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=directory, prefix=f".{os.path.basename(path)}.", suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                fd = -1
                os.fchmod(f.fileno(), 0o644)
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
                self._apply_ownership(f.fileno(), path, account)
            os.replace(tmp_path, path)
        except OSError as e:
            if fd >= 0:
                os.close(fd)
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise WriteFailure(f"Could not write {path}: {e}") from e

        self._refresh(directory)
        return path

    def sync_remove(self, account: Account, device_id: str = "") -> str | None:
        """Delete the entry if present.

        Returns:
            The removed path, or None if there was nothing to remove.

        Raises:
            WriteFailure: The file exists but could not be deleted.
        """
        path = self.entry_path(account, device_id)
        try:
            os.unlink(path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise WriteFailure(f"Could not remove {path}: {e}") from e
        self._refresh(os.path.dirname(path))
        return path

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _ensure_directory(self, account: Account) -> None:
        """Create ~/.local/share/applications, handing new dirs to the user."""
        current = account.home
        for part in APPLICATIONS_SUBDIR:
            current = os.path.join(current, part)
            if os.path.isdir(current):
                continue
            try:
                os.mkdir(current, 0o755)
            except FileExistsError:
                continue
            except OSError as e:
                raise WriteFailure(f"Could not create {current}: {e}") from e
            # The parent may be user-writable; refuse a swapped-in symlink.
            try:
                dir_fd = os.open(current, os.O_RDONLY | os.O_DIRECTORY | os.O_NOFOLLOW)
            except OSError as e:
                raise WriteFailure(f"{current} changed while being created: {e}") from e
            try:
                self._fchown(dir_fd, account.uid, account.gid)
            except OSError as e:
                logger.warning(
                    "%s path=%s user=%s error=%s",
                    OwnershipWarning.kind, current, account.name, e,
                )
            finally:
                os.close(dir_fd)

    def _apply_ownership(self, fd: int, path: str, account: Account) -> None:
        try:
            self._fchown(fd, account.uid, account.gid)
        except OSError as e:
            logger.warning(
                "%s path=%s user=%s error=%s",
                OwnershipWarning.kind, path, account.name, e,
            )
        try:
            mode = os.fstat(fd).st_mode
            os.fchmod(fd, stat.S_IMODE(mode) | _EXEC_BITS)
        except OSError as e:
            logger.warning("%s path=%s chmod error=%s", OwnershipWarning.kind, path, e)

    def _refresh(self, directory: str) -> None:
        if not self._refresh_database:
            return
        tool = shutil.which("update-desktop-database")
        if tool is None:
            logger.debug("update-desktop-database not installed")
            return
        subprocess.run([tool, directory], capture_output=True)
