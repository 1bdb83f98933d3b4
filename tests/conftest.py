# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Pytest configuration and fakes for the hotplug engine tests.

Nothing here touches the real mount table, logind, utmp or /home:
every OS collaborator is replaced by an in-memory fake.
"""

from __future__ import annotations

import os
import time
from pathlib import Path

import pytest

from usbapp_hotplug.desktop_entry import DesktopEntrySynchronizer
from usbapp_hotplug.events import Account
from usbapp_hotplug.locator import ApplicationLocator
from usbapp_hotplug.mounts import MountResolver, MountRow, MountTable
from usbapp_hotplug.sessions import SessionResolver
from usbapp_hotplug.steps import Components


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeMountTable:
    """Mount table whose rows can change between polls.

    ``appear_after`` hides the rows for that many calls to emulate the
    automounter lagging behind udev.
    """

    def __init__(self, rows: list[MountRow] | None = None, appear_after: int = 0):
        self.rows_list = list(rows or [])
        self.appear_after = appear_after
        self.calls = 0

    def rows(self) -> list[MountRow]:
        self.calls += 1
        if self.calls <= self.appear_after:
            return []
        return list(self.rows_list)


class StaggeredMountTable:
    """Mount table that switches from ``now`` to ``later`` after ``delay`` seconds."""

    def __init__(self, now: list[MountRow], later: list[MountRow], delay: float):
        self._now = now
        self._later = later
        self._switch_at = time.monotonic() + delay

    def rows(self) -> list[MountRow]:
        if time.monotonic() >= self._switch_at:
            return list(self._later)
        return list(self._now)


class FakeProvider:
    def __init__(self, name: str, user: str | None):
        self.name = name
        self.user = user
        self.calls = 0

    async def active_user(self) -> str | None:
        self.calls += 1
        return self.user


class FakeAccounts:
    """Account lookup over a fixed dict, owned by the test process."""

    def __init__(self, accounts: dict[str, Account] | None = None):
        self.accounts = dict(accounts or {})

    def by_name(self, name: str) -> Account | None:
        return self.accounts.get(name)

    def by_uid(self, uid: int) -> Account | None:
        for account in self.accounts.values():
            if account.uid == uid:
                return account
        return None


def usb_row(name: str, mount_path: str, fstype: str = "vfat", transport: str = "usb") -> MountRow:
    return MountRow(
        name=name,
        path=f"/dev/{name}",
        mount_path=mount_path,
        fstype=fstype,
        transport=transport,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def alice(tmp_path: Path) -> Account:
    """A user whose uid/gid are ours, so chown succeeds without root."""
    home = tmp_path / "home" / "alice"
    home.mkdir(parents=True)
    return Account(name="alice", uid=os.getuid(), gid=os.getgid(), home=str(home))


@pytest.fixture
def accounts(alice: Account) -> FakeAccounts:
    return FakeAccounts({"alice": alice})


@pytest.fixture
def volume(tmp_path: Path) -> Path:
    """An empty directory standing in for the mounted USB volume."""
    path = tmp_path / "mnt" / "x"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def table(volume: Path) -> FakeMountTable:
    return FakeMountTable([usb_row("sdb1", str(volume))])


def make_components(
    table: MountTable,
    accounts: FakeAccounts,
    providers: list[FakeProvider] | None = None,
    *,
    interval: float = 0.01,
    attempts: int = 3,
    extension: str = ".app",
    entries: DesktopEntrySynchronizer | None = None,
) -> Components:
    if providers is None:
        providers = [FakeProvider("fake", "alice")]
    return Components(
        mounts=MountResolver(table, interval=interval, attempts=attempts),
        locator=ApplicationLocator(extension=extension, depth=2),
        sessions=SessionResolver(providers, accounts),
        entries=entries or DesktopEntrySynchronizer(),
    )
