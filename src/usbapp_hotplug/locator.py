# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Find the application bundle on a mounted volume."""

from __future__ import annotations

import logging
import os

from .errors import NoCandidate
from .events import LaunchCandidate

logger = logging.getLogger(__name__)


class ApplicationLocator:
    """Search a mount path for files ending in ``extension``.

    Depth 1 means files directly in the mount root, depth 2 adds one
    level of subdirectories (``find -maxdepth 2``).  Symlinked
    directories are not followed.  When several bundles match, the
    lexicographically first path wins.
    """

    def __init__(self, extension: str = ".AppImage", depth: int = 2):
        self._extension = extension
        self._depth = depth

    def _scan(self, directory: str, level: int, found: list[str]) -> None:
        try:
            with os.scandir(directory) as it:
                entries = list(it)
        except OSError as e:
            logger.debug("skipping unreadable dir=%s error=%s", directory, e)
            return

        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    if level < self._depth:
                        self._scan(entry.path, level + 1, found)
                elif entry.name.endswith(self._extension) and entry.is_file():
                    found.append(entry.path)
            except OSError:
                continue

    def find_all(self, mount_path: str) -> list[str]:
        found: list[str] = []
        self._scan(mount_path, 1, found)
        return sorted(found)

    def locate(self, mount_path: str) -> LaunchCandidate:
        """Pick the launch candidate under *mount_path*.

        Raises:
            NoCandidate: Nothing matching the extension was found.
        """
        matches = self.find_all(mount_path)
        if not matches:
            raise NoCandidate(f"No *{self._extension} found under {mount_path}")
        if len(matches) > 1:
            logger.info(
                "multiple candidates mount=%s count=%d using=%s",
                mount_path, len(matches), matches[0],
            )
        return LaunchCandidate(path=os.path.abspath(matches[0]))
