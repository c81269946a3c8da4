"""
Runtime execution shell for a single conversation session.

Responsibilities:
- Own orchestrator state
- Call pure reducer, one event at a time
- Execute commands with side effects (speech, agent, calendar, timers)
- Run suspending work in background tasks that post their outcome back
  as events
- Notify read-only observers of every state change
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any, Callable, Coroutine, Mapping

from adapters.agent.errors import AgentTransportError
from adapters.speech.base import Cancelled, Failed, FinalText, Listening, SpeechSignal
from envelope.payloads import ActionKind
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.commands import (
    CancelTimer,
    ClearAgentSession,
    Command,
    LogEvent,
    NotifyClient,
    RefreshCalendar,
    SendAgentMessage,
    StartSpeech,
    StartTimer,
    StopSpeech,
)
from orchestrator.enums.service import Service
from orchestrator.events import (
    AgentFailure,
    AgentResponse,
    Event,
    EventType,
    SpeechCancelled,
    SpeechError,
    SpeechFinal,
    SpeechListening,
)
from orchestrator.failures import FailureType
from orchestrator.reducer import reduce
from orchestrator.scheduler import TimeoutScheduler
from orchestrator.state_dataclass import OrchestratorState
from services.calendar_service import view_to_wire

if TYPE_CHECKING:
    from orchestrator.runtime_context import RuntimeExecutionContext


StateObserver = Callable[[OrchestratorState], None]


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Runtime:
    """
    Runtime execution boundary for a single conversation session.

    Responsibilities:
    - Own the authoritative orchestrator state
    - Act as the universal event sink for the session
      (gateway events, collaborator outcomes, timer events)
    - Invoke the pure reducer deterministically
    - Execute emitted commands with side effects
    - Schedule and cancel timers

    Architectural role:
    Runtime is the bridge between the pure orchestration layer
    (reducer + immutable state) and the imperative world
    (network, speech, logging, time).

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - Events are applied one at a time in arrival order (FIFO lock)
    - All side effects occur *after* state has been updated
    - Runtime never performs orchestration logic itself
    - Collaborator outcomes and timers re-enter through handle_event
    - Commands never call handle_event inline (no re-entrancy)
    """

    def __init__(
        self,
        *,
        initial_state: OrchestratorState,
        context: RuntimeExecutionContext,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._lock = asyncio.Lock()
        self._observers: list[StateObserver] = []
        self._tasks: set[asyncio.Task[None]] = set()

        self._scheduler = TimeoutScheduler(
            emit_event=self.handle_event,
            current_generation=lambda: self._state.generation,
            session_id=context.session_id,
        )

    @property
    def state(self) -> OrchestratorState:
        """
        Return the current immutable orchestrator state.

        Consumers must never modify this state directly.
        """
        return self._state

    @property
    def scheduler(self) -> TimeoutScheduler:
        return self._scheduler

    def add_observer(self, observer: StateObserver) -> None:
        """
        Register a read-only observer.

        Observers are called synchronously with the new state after every
        state change, before the commands of that change execute.
        """
        self._observers.append(observer)

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the orchestration pipeline.

        Processing steps:
        1. Wait for the mailbox lock (FIFO)
        2. Pass the current state and event to the pure reducer
        3. Swap in the new orchestrator state
        4. Notify observers when the state changed
        5. Execute all emitted commands sequentially

        This method is the *only* entry point for events affecting
        orchestrator state. It is safe to call concurrently.
        """
        async with self._lock:
            prev = self._state
            new_state, commands = reduce(self._state, event)
            self._state = new_state

            if new_state.generation != prev.generation:
                for observer in self._observers:
                    observer(new_state)

            for cmd in commands:
                await self._execute_command(cmd)

    async def drain(self) -> None:
        """
        Wait until every background task has finished.

        Tasks may spawn further tasks (a response triggers a calendar
        refresh), so this loops until the set stays empty.
        """
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """
        Clean shutdown of runtime.

        Cancels all timers and background tasks and waits for them.
        Called by gateway on session disconnect.
        """
        await self._scheduler.shutdown()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""
        if isinstance(cmd, LogEvent):
            log_event({**cmd.event, "session_id": self._ctx.session_id})

        elif isinstance(cmd, StartTimer):
            self._scheduler.arm(
                timer_id=cmd.timer_id,
                duration_ms=cmd.duration_ms,
                generation=cmd.generation,
                timeout_event_type=cmd.timeout_event_type,
            )

        elif isinstance(cmd, CancelTimer):
            self._scheduler.cancel(cmd.timer_id)

        elif isinstance(cmd, StartSpeech):
            self._spawn(self._run_speech(cmd.run_id))

        elif isinstance(cmd, StopSpeech):
            source = self._ctx.speech_source
            if source is not None:
                await source.stop(cmd.run_id)

        elif isinstance(cmd, SendAgentMessage):
            self._spawn(self._run_agent_send(cmd.run_id, cmd.text))

        elif isinstance(cmd, ClearAgentSession):
            self._spawn(self._run_clear_session())

        elif isinstance(cmd, RefreshCalendar):
            self._spawn(self._run_calendar_refresh(cmd.highlights))

        elif isinstance(cmd, NotifyClient):
            self._ctx.enqueue_control({
                "type": cmd.message_type,
                **cmd.data,
                "ts_ms": _now_ms(),
            })

        else:
            raise ValueError(cmd)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ------------------------------------------------------------------
    # Background work
    # ------------------------------------------------------------------

    async def _run_speech(self, run_id: int) -> None:
        """Forward one recognition run's signals as speech events."""
        source = self._ctx.speech_source
        if source is None:
            await self.handle_event(
                _speech_event(Failed(message="Speech recognition unavailable"), run_id)
            )
            return

        try:
            async for signal in source.listen(run_id):
                await self.handle_event(_speech_event(signal, run_id))
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "speech_source_failed",
                "session_id": self._ctx.session_id,
                "speech_run_id": run_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            }, level="error")
            await self.handle_event(
                _speech_event(Failed(message=str(exc) or type(exc).__name__), run_id)
            )

    async def _run_agent_send(self, run_id: int, text: str) -> None:
        """One network round trip; always posts exactly one outcome event."""
        client = self._ctx.agent_client
        event: Event

        if client is None:
            event = _agent_failure(run_id, FailureType.UNKNOWN, "agent client unavailable")
        else:
            with timed(
                "agent_round_trip",
                session_id=self._ctx.session_id,
                run_id=run_id,
            ) as extra:
                try:
                    user_context = self._ctx.user_context().to_wire()
                    body = await client.send_message(text, user_context)
                except asyncio.CancelledError:
                    raise
                except AgentTransportError as exc:
                    extra["outcome"] = exc.failure_type.value
                    event = _agent_failure(
                        run_id, exc.failure_type, exc.reason, exc.status_code
                    )
                except Exception as exc:  # pylint: disable=broad-exception-caught
                    log_event({
                        "ts_ms": _now_ms(),
                        "event_type": "agent_client_failed",
                        "session_id": self._ctx.session_id,
                        "agent_run_id": run_id,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    }, level="error")
                    extra["outcome"] = FailureType.UNKNOWN.value
                    event = _agent_failure(
                        run_id, FailureType.UNKNOWN, str(exc) or type(exc).__name__
                    )
                else:
                    extra["outcome"] = "ok"
                    event = AgentResponse(
                        event_type=EventType.AGENT_RESPONSE,
                        ts_ms=_now_ms(),
                        service=Service.AGENT,
                        run_id=run_id,
                        body=body,
                    )

        await self.handle_event(event)

    async def _run_clear_session(self) -> None:
        client = self._ctx.agent_client
        if client is None:
            return
        try:
            await client.clear_session()
        except AgentTransportError as exc:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "agent_session_clear_failed",
                "session_id": self._ctx.session_id,
                "failure": exc.failure_type.value,
                "reason": exc.reason,
            }, level="warning")
            return

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "agent_session_cleared",
            "session_id": self._ctx.session_id,
        })

    async def _run_calendar_refresh(self, highlights: Mapping[str, ActionKind]) -> None:
        calendar = self._ctx.calendar
        if calendar is None:
            return
        try:
            view = await calendar.refresh(highlights)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "calendar_refresh_failed",
                "session_id": self._ctx.session_id,
                "error": str(exc),
                "error_type": type(exc).__name__,
            }, level="warning")
            return

        self._ctx.enqueue_control({
            "type": "CALENDAR_REFRESHED",
            **view_to_wire(view),
            "ts_ms": _now_ms(),
        })


# ---------------------------------------------------------------------
# Event construction
# ---------------------------------------------------------------------

def _speech_event(signal: SpeechSignal, run_id: int) -> Event:
    """Stamp a speech signal with its run id."""
    ts = _now_ms()

    if isinstance(signal, Listening):
        return SpeechListening(
            event_type=EventType.SPEECH_LISTENING,
            ts_ms=ts,
            service=Service.SPEECH,
            run_id=run_id,
        )

    if isinstance(signal, FinalText):
        return SpeechFinal(
            event_type=EventType.SPEECH_FINAL,
            ts_ms=ts,
            service=Service.SPEECH,
            run_id=run_id,
            text=signal.text,
        )

    if isinstance(signal, Cancelled):
        return SpeechCancelled(
            event_type=EventType.SPEECH_CANCELLED,
            ts_ms=ts,
            service=Service.SPEECH,
            run_id=run_id,
        )

    if isinstance(signal, Failed):
        return SpeechError(
            event_type=EventType.SPEECH_ERROR,
            ts_ms=ts,
            service=Service.SPEECH,
            run_id=run_id,
            message=signal.message,
        )

    raise ValueError(signal)


def _agent_failure(
    run_id: int,
    failure: FailureType,
    reason: str,
    status_code: int | None = None,
) -> AgentFailure:
    return AgentFailure(
        event_type=EventType.AGENT_FAILURE,
        ts_ms=_now_ms(),
        service=Service.AGENT,
        run_id=run_id,
        failure=failure,
        reason=reason,
        status_code=status_code,
    )
