# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Resolve which logged-in user should receive the launcher.

The handler runs from a udev-triggered system unit, so the graphical
user is not known up front.  :class:`SessionResolver` asks a list of
:class:`SessionProvider` objects in priority order and uses the first
one that names a user the system knows about:

1. logind: the active session on ``seat0`` (system D-Bus).
2. The login table (``who``): a user attached to the primary display.
3. The identity of the handler process itself.

An explicitly configured user, when set, is tried before all of them.
"""

from __future__ import annotations

import asyncio
import logging
import os
import pwd
import subprocess
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from dbus_fast import BusType
from dbus_fast.aio import MessageBus
from dbus_fast.errors import (
    AuthError,
    DBusError,
    InterfaceNotFoundError,
    InvalidIntrospectionError,
)

from .errors import NoActiveSession
from .events import Account, Session

logger = logging.getLogger(__name__)

LOGIN1_NAME = "org.freedesktop.login1"
LOGIN1_SEAT_IFACE = "org.freedesktop.login1.Seat"
LOGIN1_SESSION_IFACE = "org.freedesktop.login1.Session"


# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------

class AccountLookup(Protocol):
    def by_name(self, name: str) -> Account | None: ...
    def by_uid(self, uid: int) -> Account | None: ...


class PwdAccountLookup:
    """Account lookup against the passwd database."""

    @staticmethod
    def _account(entry: pwd.struct_passwd) -> Account:
        return Account(
            name=entry.pw_name,
            uid=entry.pw_uid,
            gid=entry.pw_gid,
            home=entry.pw_dir,
        )

    def by_name(self, name: str) -> Account | None:
        try:
            return self._account(pwd.getpwnam(name))
        except KeyError:
            return None

    def by_uid(self, uid: int) -> Account | None:
        try:
            return self._account(pwd.getpwuid(uid))
        except KeyError:
            return None


# -----------------------------------------------------------------------------
# Providers
# -----------------------------------------------------------------------------

class SessionProvider(Protocol):
    """One strategy for finding the active user name."""

    name: str

    async def active_user(self) -> str | None: ...


class ConfiguredUserProvider:
    """A user fixed in configuration."""

    name = "configured"

    def __init__(self, user: str):
        self._user = user

    async def active_user(self) -> str | None:
        return self._user or None


BusFactory = Callable[[], Awaitable[Any]]


async def _connect_system_bus() -> MessageBus:
    return await MessageBus(bus_type=BusType.SYSTEM).connect()


class LogindSessionProvider:
    """The user owning the active session on a seat, via logind."""

    name = "logind"

    def __init__(self, seat: str = "seat0", connect: BusFactory = _connect_system_bus):
        self._seat_path = f"/org/freedesktop/login1/seat/{seat}"
        self._connect = connect

    async def _interface(self, bus: Any, path: str, iface: str) -> Any:
        introspection = await bus.introspect(LOGIN1_NAME, path)
        obj = bus.get_proxy_object(LOGIN1_NAME, path, introspection)
        return obj.get_interface(iface)

    async def active_user(self) -> str | None:
        try:
            bus = await self._connect()
        except (OSError, AuthError, asyncio.TimeoutError) as e:
            logger.debug("system bus unavailable: %s", e)
            return None

        try:
            seat = await self._interface(bus, self._seat_path, LOGIN1_SEAT_IFACE)
            session_id, session_path = await seat.get_active_session()
            if not session_id:
                return None
            session = await self._interface(bus, session_path, LOGIN1_SESSION_IFACE)
            if not await session.get_active():
                return None
            return await session.get_name() or None
        except (
            DBusError,
            InterfaceNotFoundError,
            InvalidIntrospectionError,
            asyncio.TimeoutError,
        ) as e:
            # No seat, no logind, or a stalled bus: let the next provider answer.
            logger.debug("logind query failed: %s", e)
            return None
        finally:
            bus.disconnect()


@dataclass(frozen=True)
class LoginEntry:
    """One row of the login table (utmp)."""

    user: str
    line: str
    host: str = ""


class LoginTable(Protocol):
    def entries(self) -> list[LoginEntry]: ...


def parse_who(text: str) -> list[LoginEntry]:
    """Parse ``who`` output, e.g. ``alice  tty2  2026-01-01 09:00 (:0)``."""
    entries = []
    for line in text.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        host = ""
        if line.rstrip().endswith(")") and "(" in line:
            host = line[line.rindex("(") + 1:line.rstrip().rindex(")")]
        entries.append(LoginEntry(user=parts[0], line=parts[1], host=host))
    return entries


class WhoLoginTable:
    """Login table read through ``who``."""

    def entries(self) -> list[LoginEntry]:
        try:
            result = subprocess.run(
                ["who"], capture_output=True, text=True, check=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            logger.debug("who failed: %s", e)
            return []
        return parse_who(result.stdout)


class LoginTableSessionProvider:
    """A user whose login is attached to the primary display."""

    name = "login-table"

    def __init__(self, table: LoginTable, display: str = ":0"):
        self._table = table
        self._display = display

    def _on_display(self, entry: LoginEntry) -> bool:
        for value in (entry.line, entry.host):
            if value == self._display or value.startswith(self._display + "."):
                return True
        return False

    async def active_user(self) -> str | None:
        for entry in self._table.entries():
            if self._on_display(entry):
                return entry.user
        return None


class ProcessIdentitySessionProvider:
    """Whoever the handler process runs as."""

    name = "process"

    def __init__(self, accounts: AccountLookup, uid: int | None = None):
        self._accounts = accounts
        self._uid = uid

    async def active_user(self) -> str | None:
        uid = os.geteuid() if self._uid is None else self._uid
        account = self._accounts.by_uid(uid)
        return account.name if account else None


# -----------------------------------------------------------------------------
# Resolver
# -----------------------------------------------------------------------------

class SessionResolver:
    """Try each provider in order until one yields a known user."""

    def __init__(
        self,
        providers: Sequence[SessionProvider],
        accounts: AccountLookup,
        display: str = ":0",
    ):
        self._providers = list(providers)
        self._accounts = accounts
        self._display = display

    @property
    def providers(self) -> list[SessionProvider]:
        return list(self._providers)

    async def resolve(self) -> Session:
        """Return the active session.

        Raises:
            NoActiveSession: No provider produced a user with a passwd entry.
        """
        for provider in self._providers:
            user = await provider.active_user()
            if not user:
                logger.debug("no user from provider=%s", provider.name)
                continue
            account = self._accounts.by_name(user)
            if account is None:
                logger.warning("unknown user=%s from provider=%s", user, provider.name)
                continue
            session = Session.for_account(account, display=self._display)
            logger.debug(
                "session resolved user=%s provider=%s bus=%s",
                session.user, provider.name, session.session_bus_address,
            )
            return session

        raise NoActiveSession("No logged-in user could be resolved")


def default_providers(
    accounts: AccountLookup,
    display: str = ":0",
    configured_user: str = "",
) -> list[SessionProvider]:
    """The standard cascade, optionally led by a configured user."""
    providers: list[SessionProvider] = []
    if configured_user:
        providers.append(ConfiguredUserProvider(configured_user))
    providers += [
        LogindSessionProvider(),
        LoginTableSessionProvider(WhoLoginTable(), display=display),
        ProcessIdentitySessionProvider(accounts),
    ]
    return providers
