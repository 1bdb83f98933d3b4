# SPDX-FileCopyrightText: 2026 usb-app-hotplug contributors
#
# SPDX-License-Identifier: GPL-3.0-or-later

"""Ordered pipeline of async step functions.

The add and remove handlers are each a :class:`Pipeline`.  Step modules
import the pipeline instance and register their functions with its
:meth:`~Pipeline.step` decorator, so the sequence lives next to the
steps instead of in a central list.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar, overload

_Ctx = TypeVar("_Ctx")

_StepFn = Callable[[_Ctx], Awaitable[None]]
_Checkpoint = Callable[[_Ctx], None]

_DEFAULT_ORDER = 500


class Pipeline(Generic[_Ctx]):
    """A registry of async step functions executed by ``order``.

    Steps run in ascending ``order`` (default 500); equal orders run in
    registration order.  Use multiples of 100 to leave room for inserts.

    A step signals failure by raising.  The remaining steps are skipped
    and the exception propagates out of :meth:`run` unchanged.

    Example::

        add = Pipeline[AddContext]("add")

        @add.step(order=100)
        async def resolve_mount(ctx: AddContext) -> None: ...
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._entries: list[tuple[int, int, _StepFn[_Ctx]]] = []
        self._seq = 0

    @overload
    def step(self, fn: _StepFn[_Ctx]) -> _StepFn[_Ctx]: ...
    @overload
    def step(self, *, order: int) -> Callable[[_StepFn[_Ctx]], _StepFn[_Ctx]]: ...

    def step(
        self,
        fn: _StepFn[_Ctx] | None = None,
        *,
        order: int = _DEFAULT_ORDER,
    ) -> _StepFn[_Ctx] | Callable[[_StepFn[_Ctx]], _StepFn[_Ctx]]:
        """Register *fn* as a step (``@pipeline.step`` or ``@pipeline.step(order=200)``)."""
        def _register(f: _StepFn[_Ctx]) -> _StepFn[_Ctx]:
            self._entries.append((order, self._seq, f))
            self._seq += 1
            return f

        if fn is not None:
            return _register(fn)
        return _register

    async def run(self, ctx: _Ctx, checkpoint: _Checkpoint[_Ctx] | None = None) -> None:
        """Execute every registered step in order.

        *checkpoint*, when given, is called with the context before each
        step; raising from it stops the pipeline.
        """
        for _ord, _seq, s in sorted(self._entries, key=lambda e: (e[0], e[1])):
            if checkpoint is not None:
                checkpoint(ctx)
            await s(ctx)

    def step_names(self) -> list[str]:
        return [f.__name__ for _o, _s, f in sorted(self._entries, key=lambda e: (e[0], e[1]))]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        ordered = sorted(self._entries, key=lambda e: (e[0], e[1]))
        names = ", ".join(f"{f.__name__}({o})" for o, _s, f in ordered)
        return f"Pipeline({self.name!r}, [{names}])"
