# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Add pipeline: mount -> bundle -> session -> desktop entry."""

from __future__ import annotations

import logging

from ..errors import StepOrderError
from .contexts import AddContext
from . import add_pipeline

logger = logging.getLogger(__name__)


@add_pipeline.step(order=100)
async def resolve_mount(ctx: AddContext) -> None:
    """Wait for the partition to show up mounted."""
    ctx.mount = await ctx.components.mounts.resolve(ctx.device_id, ctx.token)
    logger.info(
        "resolved device=%s mount=%s fs=%s",
        ctx.device_id, ctx.mount.mount_path, ctx.mount.filesystem.value,
    )


@add_pipeline.step(order=200)
async def locate_candidate(ctx: AddContext) -> None:
    """Pick the application bundle on the volume."""
    if ctx.mount is None:
        raise StepOrderError("locate_candidate ran without a resolved mount")
    ctx.candidate = ctx.components.locator.locate(ctx.mount.mount_path)
    logger.info("candidate device=%s path=%s", ctx.device_id, ctx.candidate.path)


@add_pipeline.step(order=300)
async def resolve_session(ctx: AddContext) -> None:
    """Find the user who gets the launcher."""
    ctx.session = await ctx.components.sessions.resolve()
    logger.info(
        "session device=%s user=%s display=%s",
        ctx.device_id, ctx.session.user, ctx.session.display,
    )


@add_pipeline.step(order=400)
async def write_entry(ctx: AddContext) -> None:
    """Write the launcher, unless a remove has overtaken us."""
    if ctx.candidate is None or ctx.session is None:
        raise StepOrderError("write_entry ran without a candidate and a session")
    ctx.token.raise_if_cancelled()
    ctx.entry_path = ctx.components.entries.sync_create(
        ctx.session.account, ctx.candidate, ctx.device_id,
    )
