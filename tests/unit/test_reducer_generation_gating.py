# pylint: disable=missing-module-docstring,missing-function-docstring
from orchestrator.commands import LogEvent, StartTimer
from orchestrator.enums.service import Service
from orchestrator.enums.state import ConversationState
from orchestrator.events import (
    AgentFailure,
    AgentResponse,
    ErrorTimeout,
    EventType,
    PresentationTimeout,
    SendText,
    StartListening,
)
from orchestrator.failures import FailureType
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import OrchestratorState


def send_text(text: str = "hi") -> SendText:
    return SendText(event_type=EventType.SEND_TEXT, ts_ms=0, text=text)


def start_listening() -> StartListening:
    return StartListening(
        event_type=EventType.START_LISTENING, ts_ms=0, permission_granted=True
    )


def respond(run_id: int) -> AgentResponse:
    return AgentResponse(
        event_type=EventType.AGENT_RESPONSE,
        ts_ms=0,
        service=Service.AGENT,
        run_id=run_id,
        body={"agent": "Orchestrator", "response": "done"},
    )


def fail(run_id: int) -> AgentFailure:
    return AgentFailure(
        event_type=EventType.AGENT_FAILURE,
        ts_ms=0,
        service=Service.AGENT,
        run_id=run_id,
        failure=FailureType.UNKNOWN,
        reason="boom",
    )


def presentation_timeout(generation: int) -> PresentationTimeout:
    return PresentationTimeout(
        event_type=EventType.PRESENTATION_TIMEOUT, ts_ms=0, generation=generation
    )


def ignore_reason(cmds: tuple) -> str:
    logs = [c for c in cmds if isinstance(c, LogEvent)]
    assert len(logs) == 1
    assert logs[0].event["decision"] == "ignore"
    return logs[0].event["details"]["reason"]


def test_every_state_change_bumps_generation():
    state = OrchestratorState()
    seen = [state.generation]

    for event in (send_text(), respond(1), start_listening()):
        state, _ = reduce(state, event)
        seen.append(state.generation)

    assert seen == [0, 1, 2, 3]


def test_ignored_events_leave_generation_unchanged():
    state, _ = reduce(OrchestratorState(), send_text())

    new_state, _ = reduce(state, send_text("again"))

    assert new_state.generation == state.generation


def test_result_timer_from_older_generation_has_no_effect():
    result, cmds = reduce(reduce(OrchestratorState(), send_text())[0], respond(1))
    armed = [c for c in cmds if isinstance(c, StartTimer)][0]
    assert armed.generation == result.generation

    # User starts talking before the result timer fires.
    listening, _ = reduce(result, start_listening())
    assert listening.state is ConversationState.LISTENING
    assert listening.generation == armed.generation + 1

    after, late_cmds = reduce(listening, presentation_timeout(armed.generation))

    assert after == listening
    assert ignore_reason(late_cmds) == "timer_generation_stale"


def test_error_timer_from_older_generation_has_no_effect():
    error, cmds = reduce(reduce(OrchestratorState(), send_text())[0], fail(1))
    armed = [c for c in cmds if isinstance(c, StartTimer)][0]

    thinking, _ = reduce(error, send_text("retry"))
    after, late_cmds = reduce(
        thinking,
        ErrorTimeout(
            event_type=EventType.ERROR_TIMEOUT, ts_ms=0, generation=armed.generation
        ),
    )

    assert after == thinking
    assert ignore_reason(late_cmds) == "timer_generation_stale"


def test_timer_matching_current_generation_fires():
    result, _ = reduce(reduce(OrchestratorState(), send_text())[0], respond(1))

    after, _ = reduce(result, presentation_timeout(result.generation))

    assert after.state is ConversationState.IDLE


def test_logevent_carries_required_fields():
    state = OrchestratorState()

    _, commands = reduce(state, send_text())

    log_events = [c for c in commands if isinstance(c, LogEvent)]
    assert log_events, "Reducer must emit at least one LogEvent"

    for log in log_events:
        payload = log.event
        assert set(payload) == {
            "ts_ms",
            "state",
            "event_type",
            "decision",
            "generation",
            "run_ids",
            "details",
        }
        assert set(payload["run_ids"]) == {"speech", "agent"}

    changed = log_events[-1].event
    assert changed["decision"] == "state_changed"
    assert changed["details"] == {
        "from_state": "IDLE",
        "to_state": "THINKING",
        "source": "send_text",
    }
    assert changed["generation"] == 1
