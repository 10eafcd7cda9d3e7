# Periodic callback scheduling: Tk event-loop backend plus a manual virtual clock.
from __future__ import annotations

from dataclasses import dataclass, field
import heapq
import itertools
from typing import Any, Callable, Protocol


@dataclass(eq=False)
class ScheduledTask:
    """Handle for one periodic callback. Once cancelled it never fires again."""
    period_ms: int
    callback: Callable[[], None]
    active: bool = True
    token: Any = field(default=None, repr=False)  # backend-specific timer id


class Scheduler(Protocol):
    def schedule(self, period_ms: int, callback: Callable[[], None]) -> ScheduledTask: ...

    def cancel(self, task: ScheduledTask | None) -> None: ...


class TkScheduler:
    """Runs periodic callbacks on a Tk widget's event loop via after/after_cancel."""

    def __init__(self, widget: Any) -> None:
        self.widget = widget

    def schedule(self, period_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        if period_ms <= 0:
            raise ValueError("period_ms must be > 0")
        task = ScheduledTask(period_ms=period_ms, callback=callback)
        self._arm(task)
        return task

    def _arm(self, task: ScheduledTask) -> None:
        task.token = self.widget.after(task.period_ms, lambda: self._fire(task))

    def _fire(self, task: ScheduledTask) -> None:
        task.token = None
        if not task.active:
            return
        task.callback()
        # The callback may have cancelled its own task.
        if task.active:
            self._arm(task)

    def cancel(self, task: ScheduledTask | None) -> None:
        if task is None or not task.active:
            return
        task.active = False
        if task.token is not None:
            self.widget.after_cancel(task.token)
            task.token = None


class ManualScheduler:
    """Deterministic scheduler driven by advance(ms); used headless and in tests."""

    def __init__(self) -> None:
        self.now_ms = 0
        self._queue: list[tuple[int, int, ScheduledTask]] = []
        self._seq = itertools.count()

    def schedule(self, period_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        if period_ms <= 0:
            raise ValueError("period_ms must be > 0")
        task = ScheduledTask(period_ms=period_ms, callback=callback)
        self._push(task, self.now_ms + period_ms)
        return task

    def _push(self, task: ScheduledTask, due_ms: int) -> None:
        task.token = due_ms
        heapq.heappush(self._queue, (due_ms, next(self._seq), task))

    def cancel(self, task: ScheduledTask | None) -> None:
        if task is None:
            return
        task.active = False

    @property
    def pending(self) -> list[ScheduledTask]:
        """Live tasks, in no particular order."""
        return [task for _, _, task in self._queue if task.active]

    def advance(self, ms: int) -> int:
        """Move the clock forward, firing every due callback in time order.

        Returns the number of callbacks fired.
        """
        target = self.now_ms + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due_ms, _, task = heapq.heappop(self._queue)
            if not task.active:
                continue
            self.now_ms = due_ms
            task.callback()
            fired += 1
            if task.active:
                self._push(task, due_ms + task.period_ms)
        self.now_ms = target
        return fired
