"""
Interval scheduler for the Live Crease orchestrator.
Invokes an operation on a fixed wall-clock cadence. Ticks are never fenced
on the previous invocation; a slow operation overlaps the next tick.
"""
from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from shared.models.enums import PollState
from shared.utils.logging import get_logger
from shared.utils.metrics import ACTIVE_POLLS, SCHEDULER_TICK_ERRORS, SCHEDULER_TICKS

logger = get_logger(__name__)

Operation = Callable[[], Union[Awaitable[Any], Any]]


class IntervalScheduler:
    """
    Calls `operation` every `period_s` seconds while running.

    The n-th tick is due at `started_at + n * period_s`, so there is no tick
    at start and the cadence does not drift with operation duration. If the
    loop falls behind, missed ticks are skipped rather than replayed.

    Must be started and stopped from within the running event loop.
    """

    def __init__(
        self,
        name: str,
        operation: Operation,
        period_s: float,
        enabled: bool = True,
    ) -> None:
        self.name = name
        self._operation = operation
        self._period = period_s
        self._enabled = enabled
        self._state = PollState.STOPPED
        self._handle: Optional[asyncio.TimerHandle] = None
        self._anchor = 0.0
        self._tick = 0
        self._slot = 0
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state == PollState.RUNNING

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def period_s(self) -> float:
        return self._period

    @property
    def ticks(self) -> int:
        """Ticks fired since the last start."""
        return self._tick

    def set_operation(self, operation: Operation) -> None:
        """Swap the operation; the next tick invokes the new one."""
        self._operation = operation

    def start(self) -> None:
        """No-op when already running, disabled or configured with a non-positive period."""
        if self._state == PollState.RUNNING or not self._enabled or self._period <= 0:
            return
        loop = asyncio.get_running_loop()
        self._anchor = loop.time()
        self._tick = 0
        self._slot = 0
        self._state = PollState.RUNNING
        self._schedule_next(loop)
        ACTIVE_POLLS.inc()
        logger.debug("poll_started", poll=self.name, period_s=self._period)

    def stop(self) -> None:
        """Cancel the pending tick. In-flight invocations run to completion."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._state == PollState.RUNNING:
            self._state = PollState.STOPPED
            ACTIVE_POLLS.dec()
            logger.debug("poll_stopped", poll=self.name, ticks=self._tick)

    def set_enabled(self, enabled: bool) -> None:
        """Disabling stops; enabling starts a fresh period with no catch-up."""
        self._enabled = enabled
        if enabled:
            self.start()
        else:
            self.stop()

    async def wait_idle(self) -> None:
        """Wait for every in-flight invocation to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    # ── Internals ───────────────────────────────────────────────────────

    def _schedule_next(self, loop: asyncio.AbstractEventLoop) -> None:
        self._slot += 1
        due = self._anchor + self._slot * self._period
        now = loop.time()
        if due <= now:
            skipped = int((now - due) // self._period) + 1
            self._slot += skipped
            due = self._anchor + self._slot * self._period
            logger.debug("poll_ticks_skipped", poll=self.name, skipped=skipped)
        self._handle = loop.call_at(due, self._fire, loop)

    def _fire(self, loop: asyncio.AbstractEventLoop) -> None:
        self._handle = None
        if self._state != PollState.RUNNING:
            return
        self._tick += 1
        SCHEDULER_TICKS.labels(poll=self.name).inc()
        task = loop.create_task(self._invoke(self._operation, self._tick))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        self._schedule_next(loop)

    async def _invoke(self, operation: Operation, tick: int) -> None:
        try:
            result = operation()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            SCHEDULER_TICK_ERRORS.labels(poll=self.name).inc()
            logger.error("poll_tick_failed", poll=self.name, tick=tick, error=str(exc), exc_info=True)
