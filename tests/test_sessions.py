"""Tests for the session resolver and its providers."""

from __future__ import annotations

import asyncio
import os

import pytest
from dbus_fast.errors import DBusError, InterfaceNotFoundError

from conftest import FakeAccounts, FakeProvider
from usbapp_hotplug.errors import NoActiveSession
from usbapp_hotplug.events import Account, Session
from usbapp_hotplug.sessions import (
    ConfiguredUserProvider,
    LoginEntry,
    LoginTableSessionProvider,
    LogindSessionProvider,
    ProcessIdentitySessionProvider,
    SessionResolver,
    default_providers,
    parse_who,
)


class TestSessionResolver:
    @pytest.mark.asyncio
    async def test_first_provider_with_a_user_wins(self, accounts: FakeAccounts):
        first = FakeProvider("logind", None)
        second = FakeProvider("login-table", "alice")
        third = FakeProvider("process", "root")

        session = await SessionResolver([first, second, third], accounts).resolve()

        assert session.user == "alice"
        assert (first.calls, second.calls, third.calls) == (1, 1, 0)

    @pytest.mark.asyncio
    async def test_unknown_user_falls_through(self, accounts: FakeAccounts):
        providers = [FakeProvider("logind", "ghost"), FakeProvider("process", "alice")]
        session = await SessionResolver(providers, accounts).resolve()
        assert session.user == "alice"

    @pytest.mark.asyncio
    async def test_no_identity_raises(self, accounts: FakeAccounts):
        providers = [FakeProvider("logind", None), FakeProvider("login-table", "")]
        with pytest.raises(NoActiveSession):
            await SessionResolver(providers, accounts).resolve()

    @pytest.mark.asyncio
    async def test_display_and_bus_are_derived_from_uid(self, alice: Account, accounts: FakeAccounts):
        session = await SessionResolver(
            [FakeProvider("fake", "alice")], accounts, display=":1",
        ).resolve()

        assert session.display == ":1"
        assert session.session_bus_address == f"unix:path=/run/user/{alice.uid}/bus"
        assert session.account == alice

    def test_session_for_account(self):
        account = Account(name="bob", uid=1001, gid=1001, home="/home/bob")
        session = Session.for_account(account)
        assert session == Session("bob", ":0", "unix:path=/run/user/1001/bus", account)


class TestLoginTable:
    WHO_OUTPUT = (
        "carol    pts/0        2026-10-18 08:12 (10.0.0.7)\n"
        "alice    tty2         2026-10-18 08:00 (:0)\n"
        "bob      :1           2026-10-18 08:05\n"
    )

    def test_parse_who(self):
        entries = parse_who(self.WHO_OUTPUT)
        assert entries == [
            LoginEntry("carol", "pts/0", "10.0.0.7"),
            LoginEntry("alice", "tty2", ":0"),
            LoginEntry("bob", ":1", ""),
        ]

    @pytest.mark.asyncio
    async def test_user_on_primary_display(self):
        class Table:
            def entries(self):
                return parse_who(TestLoginTable.WHO_OUTPUT)

        assert await LoginTableSessionProvider(Table(), ":0").active_user() == "alice"
        assert await LoginTableSessionProvider(Table(), ":1").active_user() == "bob"
        assert await LoginTableSessionProvider(Table(), ":2").active_user() is None

    @pytest.mark.asyncio
    async def test_screen_suffix_matches(self):
        class Table:
            def entries(self):
                return [LoginEntry("dave", "tty7", ":0.0")]

        assert await LoginTableSessionProvider(Table(), ":0").active_user() == "dave"


class TestProcessIdentity:
    @pytest.mark.asyncio
    async def test_uses_effective_uid(self, alice: Account, accounts: FakeAccounts):
        provider = ProcessIdentitySessionProvider(accounts)
        assert os.geteuid() == alice.uid
        assert await provider.active_user() == "alice"

    @pytest.mark.asyncio
    async def test_unknown_uid(self, accounts: FakeAccounts):
        provider = ProcessIdentitySessionProvider(accounts, uid=65000)
        assert await provider.active_user() is None


class _FakeInterface:
    def __init__(self, **values):
        self._values = values

    async def get_active_session(self):
        return self._values["active_session"]

    async def get_active(self):
        return self._values["active"]

    async def get_name(self):
        return self._values["name"]


class _FakeProxy:
    def __init__(self, iface):
        self._iface = iface

    def get_interface(self, name):
        if self._iface is None:
            raise InterfaceNotFoundError(f"interface not found on this object: {name}")
        return self._iface


class _FakeBus:
    def __init__(self, seat, session, fail: bool = False):
        self._seat = seat
        self._session = session
        self._fail = fail
        self.disconnected = False
        self.paths: list[str] = []

    async def introspect(self, name, path):
        if self._fail:
            raise DBusError("org.freedesktop.DBus.Error.ServiceUnknown", "no logind")
        self.paths.append(path)
        return None

    def get_proxy_object(self, name, path, introspection):
        return _FakeProxy(self._seat if "/seat/" in path else self._session)

    def disconnect(self):
        self.disconnected = True


class TestLogind:
    SESSION_PATH = "/org/freedesktop/login1/session/_32"

    def _provider(self, bus):
        async def connect():
            return bus
        return LogindSessionProvider(connect=connect)

    @pytest.mark.asyncio
    async def test_active_session_owner(self):
        bus = _FakeBus(
            _FakeInterface(active_session=("2", self.SESSION_PATH)),
            _FakeInterface(active=True, name="alice"),
        )
        assert await self._provider(bus).active_user() == "alice"
        assert bus.paths == ["/org/freedesktop/login1/seat/seat0", self.SESSION_PATH]
        assert bus.disconnected

    @pytest.mark.asyncio
    async def test_no_active_session_on_seat(self):
        bus = _FakeBus(_FakeInterface(active_session=("", "/")), _FakeInterface())
        assert await self._provider(bus).active_user() is None
        assert bus.disconnected

    @pytest.mark.asyncio
    async def test_inactive_session_is_ignored(self):
        bus = _FakeBus(
            _FakeInterface(active_session=("2", self.SESSION_PATH)),
            _FakeInterface(active=False, name="alice"),
        )
        assert await self._provider(bus).active_user() is None

    @pytest.mark.asyncio
    async def test_dbus_errors_yield_no_user(self):
        bus = _FakeBus(None, None, fail=True)
        assert await self._provider(bus).active_user() is None
        assert bus.disconnected

    @pytest.mark.asyncio
    async def test_missing_seat_interface_yields_no_user(self):
        bus = _FakeBus(None, None)
        assert await self._provider(bus).active_user() is None
        assert bus.disconnected

    @pytest.mark.asyncio
    async def test_bus_timeout_yields_no_user(self):
        async def connect():
            raise asyncio.TimeoutError()

        assert await LogindSessionProvider(connect=connect).active_user() is None

    @pytest.mark.asyncio
    async def test_seatless_system_falls_back_to_login_table(self, accounts: FakeAccounts):
        logind = self._provider(_FakeBus(None, None))
        who = FakeProvider("login-table", "alice")

        session = await SessionResolver([logind, who], accounts).resolve()

        assert session.user == "alice"
        assert who.calls == 1

    @pytest.mark.asyncio
    async def test_missing_bus_yields_no_user(self):
        async def connect():
            raise FileNotFoundError("/run/dbus/system_bus_socket")

        assert await LogindSessionProvider(connect=connect).active_user() is None


def test_default_cascade_order(accounts: FakeAccounts):
    names = [p.name for p in default_providers(accounts)]
    assert names == ["logind", "login-table", "process"]

    names = [p.name for p in default_providers(accounts, configured_user="alice")]
    assert names == ["configured", "logind", "login-table", "process"]


@pytest.mark.asyncio
async def test_configured_user_provider():
    assert await ConfiguredUserProvider("alice").active_user() == "alice"
    assert await ConfiguredUserProvider("").active_user() is None
