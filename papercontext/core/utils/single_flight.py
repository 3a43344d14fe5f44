"""Single-flight de-duplication for concurrent async work.

A ``SingleFlight`` cell lets any number of concurrent callers share one
in-flight computation: the first caller starts it, every other caller awaits
the same task. The cell clears itself once the task finishes, so a later call
starts a fresh computation (callers that want memoization keep the result
themselves).
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """One shared in-flight computation."""

    def __init__(self) -> None:
        self._task: asyncio.Task[T] | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Run ``factory`` unless a computation is already in flight.

        Cancelling one waiter does not cancel the shared task for the others.
        """
        task = self._task
        if task is None or task.done():
            task = asyncio.ensure_future(factory())
            self._task = task
            task.add_done_callback(self._clear)
        return await asyncio.shield(task)

    def _clear(self, task: asyncio.Task[T]) -> None:
        if self._task is task:
            self._task = None
        # Retrieve the exception so an unawaited failure is not reported
        if not task.cancelled():
            task.exception()


class SingleFlightGroup(Generic[T]):
    """Keyed collection of single-flight cells."""

    def __init__(self) -> None:
        self._cells: dict[Hashable, SingleFlight[T]] = {}

    def in_flight(self, key: Hashable) -> bool:
        cell = self._cells.get(key)
        return cell is not None and cell.in_flight

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        cell = self._cells.get(key)
        if cell is None:
            cell = SingleFlight()
            self._cells[key] = cell
        try:
            return await cell.run(factory)
        finally:
            if not cell.in_flight and self._cells.get(key) is cell:
                del self._cells[key]
