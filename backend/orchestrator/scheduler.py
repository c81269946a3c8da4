"""
Generation-stamped timeout scheduler.

Responsibilities:
- Arm named, cancellable timers on the event loop
- Stamp every timer with the generation it was armed for
- Convert expiry into a timeout event and post it to the event sink
- Drop expiries whose generation is no longer current

Non-responsibilities:
- NO state machine decisions
- NO generation bookkeeping (the reducer owns the counter)
- NO retries

This module is infrastructure only. Cancellation is best effort: a timer
that wins the race against cancel() is still dropped by the generation
check here, and again by the reducer.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from observability.logger import log_event
from orchestrator.events import ErrorTimeout, Event, EventType, PresentationTimeout


# ---------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------

EventSink = Callable[[Event], Awaitable[None]]
CurrentGenerationFn = Callable[[], int]


@dataclass
class TimerHandle:
    """Cancellable handle returned by arm()."""

    timer_id: str
    generation: int
    task: asyncio.Task[None]

    def cancel(self) -> None:
        self.task.cancel()

    def done(self) -> bool:
        return self.task.done()


# ---------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------

class TimeoutScheduler:
    """
    Runtime manager for state timeouts.

    Lifecycle:
    1. Reducer emits StartTimer(timer_id, duration_ms, generation, ...)
    2. Runtime calls arm(...)
    3a. Reducer emits CancelTimer(timer_id) -> cancel(timer_id)
    3b. Timer expires -> generation checked -> timeout event posted

    Arming a timer_id that is already armed replaces it.
    """

    def __init__(
        self,
        *,
        emit_event: EventSink,
        current_generation: CurrentGenerationFn,
        session_id: str | None = None,
    ) -> None:
        self._emit_event = emit_event
        self._current_generation = current_generation
        self._session_id = session_id

        self._timers: dict[str, TimerHandle] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def armed(self) -> tuple[str, ...]:
        """Timer ids currently armed."""
        return tuple(self._timers)

    def arm(
        self,
        *,
        timer_id: str,
        duration_ms: int,
        generation: int,
        timeout_event_type: EventType,
    ) -> TimerHandle:
        """Start (or replace) a timer that posts a timeout event on expiry."""
        self.cancel(timer_id)

        task = asyncio.create_task(
            self._expire(
                timer_id=timer_id,
                duration_ms=duration_ms,
                generation=generation,
                timeout_event_type=timeout_event_type,
            )
        )
        handle = TimerHandle(timer_id=timer_id, generation=generation, task=task)
        self._timers[timer_id] = handle
        return handle

    def cancel(self, timer_id: str) -> None:
        """Cancel a timer. Unknown ids are a no-op."""
        handle = self._timers.pop(timer_id, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        """Cancel every outstanding timer."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    async def shutdown(self) -> None:
        """Cancel every timer and wait for the tasks to finish."""
        tasks = [handle.task for handle in self._timers.values()]
        self.cancel_all()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _expire(
        self,
        *,
        timer_id: str,
        duration_ms: int,
        generation: int,
        timeout_event_type: EventType,
    ) -> None:
        try:
            await asyncio.sleep(duration_ms / 1000.0)
        except asyncio.CancelledError:
            return

        # Unregister before posting: the event may make the reducer cancel
        # this very timer_id, which must not cancel the running task.
        handle = self._timers.get(timer_id)
        if handle is not None and handle.task is asyncio.current_task():
            del self._timers[timer_id]

        current = self._current_generation()
        if current != generation:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "TIMER_STALE_DROPPED",
                "session_id": self._session_id,
                "timer_id": timer_id,
                "generation": generation,
                "current_generation": current,
            })
            return

        await self._emit_event(
            _construct_timeout_event(timeout_event_type, generation)
        )


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _construct_timeout_event(timeout_event_type: EventType, generation: int) -> Event:
    ts = _now_ms()

    if timeout_event_type is EventType.PRESENTATION_TIMEOUT:
        return PresentationTimeout(
            event_type=EventType.PRESENTATION_TIMEOUT,
            ts_ms=ts,
            generation=generation,
        )

    if timeout_event_type is EventType.ERROR_TIMEOUT:
        return ErrorTimeout(
            event_type=EventType.ERROR_TIMEOUT,
            ts_ms=ts,
            generation=generation,
        )

    raise ValueError(timeout_event_type)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000
