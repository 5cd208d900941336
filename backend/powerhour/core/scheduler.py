"""Per-session alert scheduling on top of asyncio tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from powerhour.core.config import EngineConfig

LOGGER = logging.getLogger("Scheduler")

Callback = Callable[[], Awaitable[None]]

REFRESH = "refresh"
INACTIVITY_SWEEP = "inactivity_sweep"
HALFWAY = "halfway"
FINAL_PUSH = "final_push"
AUTO_STOP = "auto_stop"

INTERVAL = "interval"
ONCE = "once"


@dataclass(frozen=True)
class AlertPlan:
    name: str
    mode: str
    seconds: float


def plan_alerts(duration_minutes: int, config: EngineConfig) -> list[AlertPlan]:
    """Tasks a session of the given length gets.

    Halfway is skipped for non-positive durations, final push when the
    session is not longer than the final-push lead time.
    """
    plans = [
        AlertPlan(REFRESH, INTERVAL, config.refresh_interval_minutes * 60),
        AlertPlan(INACTIVITY_SWEEP, INTERVAL, config.inactivity_sweep_minutes * 60),
    ]

    halfway = duration_minutes / 2
    if halfway > 0:
        plans.append(AlertPlan(HALFWAY, ONCE, halfway * 60))

    final_push = duration_minutes - config.final_push_minutes
    if final_push > 0:
        plans.append(AlertPlan(FINAL_PUSH, ONCE, final_push * 60))

    plans.append(AlertPlan(AUTO_STOP, ONCE, max(duration_minutes, 0) * 60))
    return plans


class ScheduledTask:
    """Handle for one periodic or one-shot callback."""

    def __init__(self, name: str, mode: str, seconds: float) -> None:
        self.name = name
        self.mode = mode
        self.seconds = seconds
        self.fire_count = 0
        self._cancelled = False
        self._running = False
        self._task: asyncio.Task | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def running(self) -> bool:
        return self._running

    @property
    def done(self) -> bool:
        return self._task is None or self._task.done()

    def cancel(self) -> None:
        """Stop future fires. A callback that is already running finishes."""
        self._cancelled = True
        task = self._task
        if task is None or task.done():
            return
        # Only interrupt the sleep; the loop exits on its own after the callback
        if self._running:
            return
        task.cancel()

    def _start(self, callback: Callback) -> None:
        self._task = asyncio.create_task(self._run(callback), name=f"powerhour:{self.name}")

    async def _run(self, callback: Callback) -> None:
        try:
            if self.mode == ONCE:
                await asyncio.sleep(self.seconds)
                await self._fire(callback)
                return

            while not self._cancelled:
                await asyncio.sleep(self.seconds)
                await self._fire(callback)
        except asyncio.CancelledError:
            LOGGER.debug(f"Task '{self.name}' cancelled")

    async def _fire(self, callback: Callback) -> None:
        if self._cancelled:
            return
        self.fire_count += 1
        self._running = True
        try:
            await callback()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            LOGGER.exception(f"Task '{self.name}' failed: {e}")
        finally:
            self._running = False


class TaskScheduler:
    """Creates :class:`ScheduledTask` handles. Needs a running event loop."""

    def schedule_interval(self, name: str, seconds: float, callback: Callback) -> ScheduledTask:
        handle = ScheduledTask(name, INTERVAL, seconds)
        handle._start(callback)
        return handle

    def schedule_once(self, name: str, seconds: float, callback: Callback) -> ScheduledTask:
        handle = ScheduledTask(name, ONCE, seconds)
        handle._start(callback)
        return handle

    def schedule(self, plan: AlertPlan, callback: Callback) -> ScheduledTask:
        if plan.mode == INTERVAL:
            return self.schedule_interval(plan.name, plan.seconds, callback)
        return self.schedule_once(plan.name, plan.seconds, callback)
