"""Self-rescheduling interval that runs one action invocation at a time."""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Callable, Coroutine

from interval_loop.infrastructure.logger import logger
from interval_loop.infrastructure.timer import AsyncioTimer, Timer
from interval_loop.types import EventInfo, IntervalOptions, IntervalState


class Interval:
    """Repeatedly invokes ``action``, waiting for each call to finish before
    scheduling the next one, so it can drive a long-poll.

    The gap between two invocations is ``debounce_interval`` minus the time
    the previous invocation took (never negative). On failure the next
    attempt waits ``retry_defer`` if ``retry`` is enabled, otherwise the run
    goes dormant until ``start()`` or ``restart()``.

    ``clock`` stamps the events; elapsed time is measured with ``monotonic``.

    Must be driven from a running event loop: ``start()`` and ``restart()``
    run the cycle up to the action call before returning and finish it in a
    task.
    """

    def __init__(
        self,
        action: Callable[[], Any],
        options: IntervalOptions | None = None,
        *,
        timer: Timer | None = None,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
        name: str = "interval",
    ) -> None:
        self.action = action
        self.options = options or IntervalOptions()
        self.name = name
        self._timer = timer or AsyncioTimer()
        self._clock = clock
        self._monotonic = monotonic
        self._timeout_handle: Any = None
        self._loop_num = 0
        self._stopped = False
        self._paused = False
        self._started = False
        self._in_flight = False
        # Bumped by stop()/restart() so a cycle that was in flight across a
        # reset does not count against the new run.
        self._generation = 0
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def exec_num(self) -> int:
        """Number of completed invocations since the last reset."""
        return self._loop_num

    @property
    def state(self) -> IntervalState:
        if self._stopped:
            return "stopped"
        if not self._started:
            return "idle"
        if self._paused:
            return "paused"
        return "running"

    def start(self) -> None:
        """Start (or resume after pause) the loop. Ignored once stopped."""
        if self._stopped:
            logger.debug("Interval is stopped, start ignored", name=self.name)
            return

        self._started = True
        self._paused = False
        self._spawn()
        self._emit("on_start", EventInfo(loop_num=self._loop_num))

    def pause(self) -> None:
        """Cancel the pending run, keeping the loop count."""
        self._clear_timer()
        self._paused = True
        self._emit("on_pause", EventInfo(loop_num=self._loop_num))

    def stop(self) -> None:
        """Stop and reset. Only restart() can run the interval again."""
        self._reset()
        self._stopped = True
        self._emit("on_stop", EventInfo(loop_num=self._loop_num))

    def restart(self) -> None:
        """Reset and start over, including from the stopped state."""
        self._reset()
        self._stopped = False
        self._paused = False
        self._started = True
        self._spawn()
        self._emit("on_restart", EventInfo(loop_num=self._loop_num))

    async def join(self) -> None:
        """Wait until no cycle is executing. Cycle failures are not re-raised."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _reset(self) -> None:
        self._loop_num = 0
        self._generation += 1
        self._clear_timer()

    def _clear_timer(self) -> None:
        if self._timeout_handle is not None:
            self._timer.cancel(self._timeout_handle)
            self._timeout_handle = None

    def _schedule(self, delay_s: float) -> None:
        self._clear_timer()
        self._timeout_handle = self._timer.schedule_after(delay_s, self._spawn)

    def _spawn(self) -> None:
        """Run the cycle up to the action call inline, then finish it in a task."""
        loop = asyncio.get_running_loop()
        cycle = self._begin_cycle()
        if cycle is None:
            return
        task = loop.create_task(cycle)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        if self.options.retry:
            logger.error(
                "Invocation failed, retrying",
                name=self.name,
                retry_defer_s=self.options.retry_defer,
                exc_info=exc,
            )
        else:
            logger.error("Invocation failed, not retrying", name=self.name, exc_info=exc)

    def _emit(self, event: str, *args: Any) -> None:
        callback = getattr(self.options, event)
        if callback is not None:
            callback(*args)

    def _begin_cycle(self) -> Coroutine[Any, Any, None] | None:
        self._clear_timer()

        max_loop_times = self.options.max_loop_times
        if max_loop_times is not None and self._loop_num >= max_loop_times:
            logger.warning("Reached max loop times, leaving loop", name=self.name, max_loop_times=max_loop_times)
            self._emit("on_loop_max_times", EventInfo(loop_num=self._loop_num, loop_max_times=max_loop_times))
            return None

        if self._stopped or self._paused:
            return None

        if self._in_flight:
            logger.debug("Invocation already in flight, skipping", name=self.name, loop_num=self._loop_num)
            return None

        self._in_flight = True
        generation = self._generation
        exec_start = self._clock()
        started = self._monotonic()
        logger.debug("Invocation starting", name=self.name, loop_num=self._loop_num)

        pending: Any = None
        error: Exception | None = None
        try:
            self._emit("on_loop", EventInfo(loop_num=self._loop_num, loop_start_time=exec_start))
            pending = self.action()
        except Exception as err:
            error = err
        return self._finish_cycle(generation, exec_start, started, pending, error)

    async def _finish_cycle(
        self,
        generation: int,
        exec_start: float,
        started: float,
        pending: Any,
        error: Exception | None,
    ) -> None:
        try:
            if error is not None:
                raise error
            result = await pending if inspect.isawaitable(pending) else pending
            exec_end = self._clock()
            duration = self._monotonic() - started

            self._emit(
                "on_looped",
                result,
                EventInfo(loop_num=self._loop_num, loop_start_time=exec_start, loop_end_time=exec_end),
            )
            if generation == self._generation:
                self._loop_num += 1

            gap = max(self.options.debounce_interval - duration, 0.0)
            logger.debug("Invocation complete", name=self.name, loop_num=self._loop_num, next_in_s=gap)
            self._schedule(gap)
        except Exception as err:
            self._emit("on_error", err, EventInfo(loop_num=self._loop_num))

            if self.options.retry:
                retry_defer = self.options.retry_defer
                self._schedule(retry_defer if retry_defer is not None else self.options.debounce_interval)

            raise
        finally:
            self._in_flight = False


def start_interval(action: Callable[[], Any], options: IntervalOptions | None = None, **kwargs: Any) -> Interval:
    """Create and start an interval. Returns the handle to pause/stop it."""
    interval = Interval(action, options, **kwargs)
    interval.start()
    return interval
