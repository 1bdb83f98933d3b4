# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Cancellation token for in-flight event handlers."""

from __future__ import annotations

import asyncio

from .errors import HandlingCancelled


class CancelToken:
    """Cooperative cancellation flag shared between coordinator and steps.

    The mount poll loop sleeps through :meth:`sleep`, which returns early
    once the token is cancelled, so a ``Remove`` does not have to wait out
    the full poll interval.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise HandlingCancelled("Handling cancelled by a newer event")

    async def sleep(self, seconds: float) -> None:
        """Sleep for *seconds*, raising early if cancelled."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()
