"""
Pure orchestrator reducer.

(state, event) -> (new_state, commands)

Rules:
- Pure: no side effects, no IO, no clocks.
- Deterministic: output depends only on inputs.
- Total: every (state, event) pair is handled or explicitly ignored (logged).
"""

# Reducer owns timer semantics; runtime must not cancel timers implicitly.
# Every state change bumps the generation; timers armed for an older
# generation are ignored here even if the scheduler lets them through.

from __future__ import annotations

from dataclasses import replace
from typing import Any

from constants import (
    ASKING_TIMEOUT_MS,
    ERROR_AUTO_RESOLVE_DELAY_MS,
    RESULT_TIMEOUT_MS,
)
from content.models import AgentResponseContent, ErrorContent, TextMessage
from content.normalizer import describe_decode_error, normalize
from envelope.decoder import try_decode
from envelope.errors import DecodeError
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
from orchestrator.enums.state import ConversationState
from orchestrator.events import (
    AgentFailure,
    AgentResponse,
    Dismiss,
    ErrorTimeout,
    Event,
    EventType,
    PresentationTimeout,
    ResetConversation,
    SendText,
    ServiceEvent,
    SessionEnded,
    SessionStarted,
    SpeechCancelled,
    SpeechError,
    SpeechFinal,
    SpeechListening,
    StartListening,
    StopListening,
)
from orchestrator.failures import describe_failure
from orchestrator.run_ids import RunIds
from orchestrator.state_dataclass import OrchestratorState


# =============================================================================
# Timer IDs
# =============================================================================

TIMER_PRESENTATION = "presentation_timeout"
TIMER_ERROR_AUTO_RESOLVE = "error_auto_resolve"

# Client notification types emitted by the reducer.
NOTIFY_PERMISSION_REQUIRED = "PERMISSION_REQUIRED"

_PRESENTING = (ConversationState.RESULT, ConversationState.ASKING)


# =============================================================================
# Small helpers
# =============================================================================

def _bump_run_id(active_runs: RunIds, service: Service) -> RunIds:
    if service is Service.SPEECH:
        return replace(active_runs, speech=active_runs.speech + 1)
    if service is Service.AGENT:
        return replace(active_runs, agent=active_runs.agent + 1)
    raise ValueError(service)


def _active_run_for(active_runs: RunIds, service: Service) -> int:
    if service is Service.SPEECH:
        return active_runs.speech
    if service is Service.AGENT:
        return active_runs.agent
    raise ValueError(service)


def _log(
    state: OrchestratorState,
    event: Event,
    decision: str,
    details: dict[str, Any] | None = None,
) -> LogEvent:
    return LogEvent(
        event={
            "ts_ms": event.ts_ms,
            "state": state.state.value,
            "event_type": event.event_type.value,
            "decision": decision,
            "generation": state.generation,
            "run_ids": {
                "speech": state.active_runs.speech,
                "agent": state.active_runs.agent,
            },
            "details": details or {},
        }
    )


def _logs_last(commands: tuple[Command, ...]) -> tuple[Command, ...]:
    non_logs: list[Command] = []
    logs: list[Command] = []
    state_change_logs: list[Command] = []

    for command in commands:
        if isinstance(command, LogEvent):
            if command.event.get("decision") == "state_changed":
                state_change_logs.append(command)
            else:
                logs.append(command)
        else:
            non_logs.append(command)

    return tuple(non_logs + logs + state_change_logs)


def _ignore(
    state: OrchestratorState, event: Event, reason: str
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    return state, (_log(state, event, "ignore", {"reason": reason}),)


def _transition(
    state: OrchestratorState,
    event: Event,
    to_state: ConversationState,
    source: str,
    **changes: Any,
) -> tuple[OrchestratorState, LogEvent]:
    """
    Move to to_state and bump the generation.

    Returns the new state plus its state_changed log.
    """
    new_state = replace(
        state,
        state=to_state,
        generation=state.generation + 1,
        **changes,
    )
    return new_state, _log(
        new_state,
        event,
        "state_changed",
        {
            "from_state": state.state.value,
            "to_state": new_state.state.value,
            "source": source,
        },
    )


def _disarm(state: OrchestratorState) -> tuple[Command, ...]:
    """Cancel the timer owned by the current state, if any."""
    if state.state in _PRESENTING:
        return (CancelTimer(timer_id=TIMER_PRESENTATION),)
    if state.state is ConversationState.ERROR:
        return (CancelTimer(timer_id=TIMER_ERROR_AUTO_RESOLVE),)
    return ()


def _stop_speech_if_listening(
    state: OrchestratorState,
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    """
    Abandon the active recognition run.

    The speech run is bumped so late signals from it are stale.
    """
    if state.state is not ConversationState.LISTENING:
        return state, ()
    run_id = state.active_runs.speech
    new_state = replace(
        state, active_runs=_bump_run_id(state.active_runs, Service.SPEECH)
    )
    return new_state, (StopSpeech(run_id=run_id),)


def _is_stale(state: OrchestratorState, event: ServiceEvent) -> bool:
    return event.run_id != _active_run_for(state.active_runs, event.service)


def _presentation_state(
    state: OrchestratorState, content: AgentResponseContent
) -> ConversationState:
    if state.asking_on_suggestions and content.suggestions:
        return ConversationState.ASKING
    return ConversationState.RESULT


def _presentation_timeout_ms(to_state: ConversationState) -> int:
    if to_state is ConversationState.ASKING:
        return ASKING_TIMEOUT_MS
    return RESULT_TIMEOUT_MS


# =============================================================================
# Shared transitions
# =============================================================================

def _to_idle(
    state: OrchestratorState,
    event: Event,
    source: str,
    *,
    stop_speech: bool = True,
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    """
    Leave any state for IDLE, clearing content and the owned timer.

    stop_speech=False when the recognition run already ended on its own.
    """
    cmds: list[Command] = list(_disarm(state))
    stopped = state
    if stop_speech:
        stopped, speech_cmds = _stop_speech_if_listening(state)
        cmds.extend(speech_cmds)

    runs = stopped.active_runs
    if state.state is ConversationState.THINKING:
        # Outstanding response becomes stale.
        runs = _bump_run_id(runs, Service.AGENT)

    new_state, changed = _transition(
        stopped,
        event,
        ConversationState.IDLE,
        source,
        active_runs=runs,
        content=None,
        message_text=None,
        pending_user_text="",
    )
    return new_state, _logs_last(tuple(cmds) + (changed,))


def _start_listening(
    state: OrchestratorState, event: StartListening
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    if not event.permission_granted:
        return state, _logs_last((
            NotifyClient(message_type=NOTIFY_PERMISSION_REQUIRED, data={}),
            _log(state, event, "permission_required"),
        ))

    runs = _bump_run_id(state.active_runs, Service.SPEECH)
    new_state, changed = _transition(
        state,
        event,
        ConversationState.LISTENING,
        "start_listening",
        active_runs=runs,
        content=None,
        message_text=None,
        pending_user_text="",
    )
    return new_state, _logs_last(
        _disarm(state)
        + (
            StartSpeech(run_id=runs.speech),
            _log(new_state, event, "start_speech", {"speech_run_id": runs.speech}),
            changed,
        )
    )


def _start_send(
    state: OrchestratorState, event: Event, text: str, source: str
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    runs = _bump_run_id(state.active_runs, Service.AGENT)
    new_state, changed = _transition(
        state,
        event,
        ConversationState.THINKING,
        source,
        active_runs=runs,
        content=None,
        message_text=None,
        pending_user_text=text,
    )
    return new_state, _logs_last(
        _disarm(state)
        + (
            SendAgentMessage(run_id=runs.agent, text=text),
            _log(
                new_state,
                event,
                "send_agent_message",
                {"agent_run_id": runs.agent, "text_len": len(text)},
            ),
            changed,
        )
    )


def _enter_error(
    state: OrchestratorState,
    event: Event,
    message: str,
    source: str,
    content: AgentResponseContent | None = None,
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    new_state, changed = _transition(
        state,
        event,
        ConversationState.ERROR,
        source,
        content=content or ErrorContent(main_text=message),
        message_text=message,
        pending_user_text="",
        last_error=message,
    )
    return new_state, _logs_last((
        changed,
        _log(new_state, event, "enter_error", {"reason": message}),
        StartTimer(
            timer_id=TIMER_ERROR_AUTO_RESOLVE,
            duration_ms=ERROR_AUTO_RESOLVE_DELAY_MS,
            generation=new_state.generation,
            timeout_event_type=EventType.ERROR_TIMEOUT,
        ),
    ))


def _present(
    state: OrchestratorState, event: AgentResponse
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    outcome = try_decode(event.body, state.agent_registry)

    if isinstance(outcome, DecodeError):
        message = describe_decode_error(outcome)
        err_state, err_cmds = _enter_error(
            state,
            event,
            message,
            "decode_error",
            content=ErrorContent(main_text=message),
        )
        return err_state, _logs_last((
            _log(
                state,
                event,
                "decode_error",
                {"error": type(outcome).__name__, "reason": str(outcome)},
            ),
        ) + err_cmds)

    content = normalize(outcome)
    to_state = _presentation_state(state, content)
    duration_ms = _presentation_timeout_ms(to_state)
    highlights = dict(content.highlights) if isinstance(content, TextMessage) else {}

    new_state, changed = _transition(
        state,
        event,
        to_state,
        "agent_response",
        content=content,
        message_text=None,
        pending_user_text="",
        last_error=None,
    )
    return new_state, _logs_last((
        StartTimer(
            timer_id=TIMER_PRESENTATION,
            duration_ms=duration_ms,
            generation=new_state.generation,
            timeout_event_type=EventType.PRESENTATION_TIMEOUT,
        ),
        RefreshCalendar(highlights=highlights),
        _log(
            new_state,
            event,
            "agent_response",
            {
                "agent_run_id": event.run_id,
                "payload": type(outcome).__name__,
                "suggestions": len(content.suggestions),
                "highlights": len(highlights),
                "timeout_ms": duration_ms,
            },
        ),
        changed,
    ))


# =============================================================================
# Reducer entrypoint
# =============================================================================

def reduce(
    state: OrchestratorState, event: Event
) -> tuple[OrchestratorState, tuple[Command, ...]]:
    """
    Pure reducer for the conversation state machine.

    Given the current orchestrator state and a single event, returns:
    - the next state
    - a tuple of commands describing required side effects

    Properties:
    - Deterministic: no IO, clocks, or randomness
    - Total: every (state, event) pair is handled or explicitly ignored
    - Version-safe: ignores events with stale run IDs and timers with
      stale generations
    """
    if isinstance(event, SessionStarted):
        return state, (
            _log(state, event, "session_started", {"session_id": event.session_id}),
        )

    if isinstance(event, SessionEnded):
        stopped, speech_cmds = _stop_speech_if_listening(state)
        return stopped, _logs_last(
            _disarm(state)
            + speech_cmds
            + (_log(state, event, "session_ended", {"session_id": event.session_id}),)
        )

    if isinstance(event, ServiceEvent) and _is_stale(state, event):
        return _ignore(state, event, f"{event.service.value}_stale")

    if (
        isinstance(event, (PresentationTimeout, ErrorTimeout))
        and event.generation != state.generation
    ):
        return _ignore(state, event, "timer_generation_stale")

    if isinstance(event, ResetConversation):
        cleared = replace(
            state, active_runs=_bump_run_id(state.active_runs, Service.AGENT)
        )
        if state.state is ConversationState.IDLE:
            return cleared, _logs_last((
                ClearAgentSession(),
                _log(cleared, event, "reset_conversation"),
            ))
        # _to_idle bumps the agent run itself when leaving THINKING.
        new_state, cmds = _to_idle(state, event, "reset_conversation")
        return new_state, _logs_last(
            (ClearAgentSession(), _log(new_state, event, "reset_conversation"))
            + cmds
        )

    # ------------------------------------------------------------------
    # IDLE
    # ------------------------------------------------------------------
    if state.state is ConversationState.IDLE:
        if isinstance(event, StartListening):
            return _start_listening(state, event)

        if isinstance(event, SendText):
            if not event.text.strip():
                return _ignore(state, event, "empty_text")
            return _start_send(state, event, event.text.strip(), "send_text")

        if isinstance(event, Dismiss):
            return _ignore(state, event, "already_idle")

        return _ignore(state, event, "idle_unhandled")

    # ------------------------------------------------------------------
    # LISTENING
    # ------------------------------------------------------------------
    if state.state is ConversationState.LISTENING:
        if isinstance(event, SpeechListening):
            return state, (
                _log(state, event, "speech_listening", {"speech_run_id": event.run_id}),
            )

        if isinstance(event, StopListening):
            # Recognizer finishes on its own; wait for its final signal.
            return state, _logs_last((
                StopSpeech(run_id=state.active_runs.speech),
                _log(
                    state,
                    event,
                    "stop_speech_requested",
                    {"speech_run_id": state.active_runs.speech},
                ),
            ))

        if isinstance(event, SpeechFinal):
            text = event.text.strip()
            if not text:
                return _to_idle(state, event, "speech_empty", stop_speech=False)
            # Run is over; the recognizer needs no stop.
            return _start_send(state, event, text, "speech_final")

        if isinstance(event, SpeechCancelled):
            return _to_idle(state, event, "speech_cancelled", stop_speech=False)

        if isinstance(event, SpeechError):
            return _enter_error(state, event, event.message, "speech_error")

        if isinstance(event, Dismiss):
            return _to_idle(state, event, "dismiss")

        if isinstance(event, (SendText, StartListening)):
            return _ignore(state, event, "busy_listening")

        return _ignore(state, event, "listening_unhandled")

    # ------------------------------------------------------------------
    # THINKING
    # ------------------------------------------------------------------
    if state.state is ConversationState.THINKING:
        if isinstance(event, AgentResponse):
            return _present(state, event)

        if isinstance(event, AgentFailure):
            message = describe_failure(
                event.failure, reason=event.reason, status_code=event.status_code
            )
            err_state, err_cmds = _enter_error(state, event, message, "agent_failure")
            return err_state, _logs_last((
                _log(
                    state,
                    event,
                    "agent_failure",
                    {
                        "agent_run_id": event.run_id,
                        "failure": event.failure.value,
                        "status_code": event.status_code,
                    },
                ),
            ) + err_cmds)

        if isinstance(event, Dismiss):
            return _to_idle(state, event, "dismiss")

        if isinstance(event, (SendText, StartListening)):
            return _ignore(state, event, "busy_thinking")

        return _ignore(state, event, "thinking_unhandled")

    # ------------------------------------------------------------------
    # RESULT / ASKING / ERROR
    # ------------------------------------------------------------------
    if state.state in _PRESENTING or state.state is ConversationState.ERROR:
        if isinstance(event, PresentationTimeout):
            if state.state not in _PRESENTING or event.generation != state.generation:
                return _ignore(state, event, "presentation_timeout_stale")
            return _to_idle(state, event, "presentation_timeout")

        if isinstance(event, ErrorTimeout):
            if (
                state.state is not ConversationState.ERROR
                or event.generation != state.generation
            ):
                return _ignore(state, event, "error_timeout_stale")
            return _to_idle(state, event, "error_timeout")

        if isinstance(event, Dismiss):
            return _to_idle(state, event, "dismiss")

        if isinstance(event, StartListening):
            return _start_listening(state, event)

        if isinstance(event, SendText):
            if not event.text.strip():
                return _ignore(state, event, "empty_text")
            return _start_send(state, event, event.text.strip(), "send_text")

        return _ignore(state, event, f"{state.state.value.lower()}_unhandled")

    return _ignore(state, event, "unknown_state")
