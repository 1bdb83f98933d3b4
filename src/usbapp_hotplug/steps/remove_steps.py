# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Remove pipeline: session -> delete desktop entry."""

from __future__ import annotations

import logging

from ..errors import StepOrderError
from .contexts import RemoveContext
from . import remove_pipeline

logger = logging.getLogger(__name__)


@remove_pipeline.step(order=100)
async def resolve_session(ctx: RemoveContext) -> None:
    ctx.session = await ctx.components.sessions.resolve()


@remove_pipeline.step(order=200)
async def remove_entry(ctx: RemoveContext) -> None:
    """Delete the launcher; a missing file is fine."""
    if ctx.session is None:
        raise StepOrderError("remove_entry ran without a session")
    removed = ctx.components.entries.sync_remove(ctx.session.account, ctx.device_id)
    if removed is None:
        logger.debug("no entry to remove device=%s user=%s", ctx.device_id, ctx.session.user)
        return
    ctx.entry_path = removed
