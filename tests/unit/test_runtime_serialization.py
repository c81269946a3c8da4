# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
import datetime as dt
from typing import Any

import pytest

from adapters.agent.errors import NetworkFailure
from adapters.speech.client_relay import ClientRelaySpeechSource
from observability import logger
from orchestrator.enums.state import ConversationState
from orchestrator.events import (
    Dismiss,
    EventType,
    PresentationTimeout,
    SendText,
    StartListening,
)
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import RuntimeExecutionContext
from orchestrator.state_dataclass import OrchestratorState
from services.calendar_service import CalendarEvent, CalendarService
from session.agent_session import AgentSession


@pytest.fixture(autouse=True)
def silence_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_print", lambda line: None)


class FakeAgentClient:
    def __init__(self, body: Any = None, error: Exception | None = None) -> None:
        self.body = body if body is not None else {"agent": "Orchestrator", "response": "ok"}
        self.error = error
        self.sent: list[tuple[str, dict[str, str]]] = []
        self.cleared = 0
        self.release = asyncio.Event()
        self.release.set()

    async def send_message(self, text: str, user_context: dict[str, str]) -> Any:
        self.sent.append((text, user_context))
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.body

    async def clear_session(self) -> None:
        self.cleared += 1


def send_text(text: str) -> SendText:
    return SendText(event_type=EventType.SEND_TEXT, ts_ms=0, text=text)


def build(
    client: FakeAgentClient,
    *,
    fetch_events: Any = None,
) -> tuple[Runtime, AgentSession, list[OrchestratorState]]:
    session = AgentSession(session_id="s1", timezone="UTC", language="en")
    session.agent_client = client
    session.calendar = CalendarService(
        glance_date=dt.date(2025, 5, 5), fetch_events=fetch_events
    )
    session.speech_source = ClientRelaySpeechSource(
        session_id="s1", send_control=session.enqueue_control
    )
    runtime = Runtime(
        initial_state=OrchestratorState(),
        context=RuntimeExecutionContext(session=session),
    )
    seen: list[OrchestratorState] = []
    runtime.add_observer(seen.append)
    session.attach_runtime(runtime)
    return runtime, session, seen


def test_two_rapid_sends_produce_one_round_trip():
    client = FakeAgentClient()
    client.release.clear()

    async def scenario() -> Runtime:
        runtime, _, _ = build(client)
        await asyncio.gather(
            runtime.handle_event(send_text("first")),
            runtime.handle_event(send_text("second")),
        )
        assert runtime.state.state is ConversationState.THINKING
        client.release.set()
        await runtime.drain()
        await runtime.shutdown()
        return runtime

    runtime = asyncio.run(scenario())

    assert [text for text, _ in client.sent] == ["first"]
    assert runtime.state.state is ConversationState.RESULT


def test_round_trip_sends_user_context():
    client = FakeAgentClient()

    async def scenario() -> None:
        runtime, _, _ = build(client)
        await runtime.handle_event(send_text("hi"))
        await runtime.drain()
        await runtime.shutdown()

    asyncio.run(scenario())

    _, context = client.sent[0]
    assert context["user:timezone"] == "UTC"
    assert context["user:timezone_offset"] == "+00:00"
    assert context["user:glance_date"] == "2025-05-05"
    assert context["user:language"] == "en"


def test_observers_see_every_state_change_in_order():
    client = FakeAgentClient()

    async def scenario() -> list[OrchestratorState]:
        runtime, _, seen = build(client)
        await runtime.handle_event(send_text("hi"))
        await runtime.drain()
        await runtime.handle_event(Dismiss(event_type=EventType.DISMISS, ts_ms=0))
        await runtime.shutdown()
        return seen

    seen = asyncio.run(scenario())

    assert [s.state for s in seen] == [
        ConversationState.THINKING,
        ConversationState.RESULT,
        ConversationState.IDLE,
    ]
    assert [s.generation for s in seen] == [1, 2, 3]


def test_transport_error_becomes_error_state():
    client = FakeAgentClient(error=NetworkFailure("connection refused"))

    async def scenario() -> Runtime:
        runtime, _, _ = build(client)
        await runtime.handle_event(send_text("hi"))
        await runtime.drain()
        armed = runtime.scheduler.armed
        await runtime.shutdown()
        assert armed == ("error_auto_resolve",)
        return runtime

    runtime = asyncio.run(scenario())

    assert runtime.state.state is ConversationState.ERROR
    assert runtime.state.message_text == "Network issue: connection refused"


def test_missing_agent_client_still_posts_exactly_one_outcome():
    async def scenario() -> Runtime:
        runtime, session, _ = build(FakeAgentClient())
        session.agent_client = None
        await runtime.handle_event(send_text("hi"))
        await runtime.drain()
        await runtime.shutdown()
        return runtime

    runtime = asyncio.run(scenario())

    assert runtime.state.state is ConversationState.ERROR


def test_unexpected_client_exception_still_reaches_error():
    client = FakeAgentClient(error=RuntimeError("boom"))

    async def scenario() -> tuple[Runtime, tuple[str, ...]]:
        runtime, _, _ = build(client)
        await runtime.handle_event(send_text("hi"))
        await runtime.drain()
        armed = runtime.scheduler.armed
        await runtime.shutdown()
        return runtime, armed

    runtime, armed = asyncio.run(scenario())

    assert runtime.state.state is ConversationState.ERROR
    assert runtime.state.message_text == "Unknown error: boom"
    assert armed == ("error_auto_resolve",)


def test_failing_user_context_still_reaches_error(monkeypatch: pytest.MonkeyPatch):
    client = FakeAgentClient()

    def broken_context() -> Any:
        raise OSError("zone data unavailable")

    async def scenario() -> Runtime:
        runtime, session, _ = build(client)
        monkeypatch.setattr(session, "user_context", broken_context)
        await runtime.handle_event(send_text("hi"))
        await runtime.drain()
        await runtime.shutdown()
        return runtime

    runtime = asyncio.run(scenario())

    assert client.sent == []
    assert runtime.state.state is ConversationState.ERROR


def test_presentation_timer_returns_to_idle():
    client = FakeAgentClient()

    async def scenario() -> Runtime:
        runtime, _, _ = build(client)
        await runtime.handle_event(send_text("hi"))
        await runtime.drain()
        assert runtime.state.state is ConversationState.RESULT
        # Fire the armed timer without waiting five seconds.
        await runtime.handle_event(
            PresentationTimeout(
                event_type=EventType.PRESENTATION_TIMEOUT,
                ts_ms=0,
                generation=runtime.state.generation,
            )
        )
        armed = runtime.scheduler.armed
        await runtime.shutdown()
        assert armed == ()
        return runtime

    runtime = asyncio.run(scenario())

    assert runtime.state.state is ConversationState.IDLE


def test_previews_refresh_calendar_and_push_highlights():
    body = {
        "agent": "PresentationLayer",
        "response": {
            "previews": {"update": ["ev1"]},
            "message": {"message": "Moved it", "suggestions": []},
        },
    }
    fetched: list[tuple[dt.date, dt.date]] = []

    async def fetch_events(start: dt.date, end: dt.date) -> list[CalendarEvent]:
        fetched.append((start, end))
        return [
            CalendarEvent(id="ev1", title="Standup", start_time="09:00", end_time="09:15"),
            CalendarEvent(id="ev2", title="Lunch", start_time="12:00", end_time="13:00"),
        ]

    async def scenario() -> tuple[dict[str, Any], ...]:
        runtime, session, _ = build(FakeAgentClient(body=body), fetch_events=fetch_events)
        await runtime.handle_event(send_text("move standup"))
        await runtime.drain()
        await runtime.shutdown()
        return session.drain_control()

    messages = asyncio.run(scenario())

    assert fetched == [(dt.date(2025, 5, 5), dt.date(2025, 5, 6))]
    refreshed = [m for m in messages if m["type"] == "CALENDAR_REFRESHED"]
    assert len(refreshed) == 1
    assert refreshed[0]["date"] == "2025-05-05"
    assert refreshed[0]["event_count"] == 2
    assert [h["id"] for h in refreshed[0]["highlighted"]] == ["ev1"]
    assert refreshed[0]["highlighted"][0]["action"] == "update"


def test_speech_round_trip_through_client_relay():
    client = FakeAgentClient()

    async def scenario() -> tuple[Runtime, tuple[dict[str, Any], ...]]:
        runtime, session, _ = build(client)
        await runtime.handle_event(
            StartListening(
                event_type=EventType.START_LISTENING, ts_ms=0, permission_granted=True
            )
        )
        await asyncio.sleep(0.01)
        session.speech_source.report_listening()
        session.speech_source.report_result("what's on today")
        await runtime.drain()
        await runtime.shutdown()
        return runtime, session.drain_control()

    runtime, messages = asyncio.run(scenario())

    assert [text for text, _ in client.sent] == ["what's on today"]
    assert runtime.state.state is ConversationState.RESULT
    assert messages[0]["type"] == "SPEECH_START"
    assert messages[0]["run_id"] == 1
    assert "SPEECH_STOP" not in [m["type"] for m in messages]


def test_permission_denied_notifies_client_once():
    async def scenario() -> tuple[dict[str, Any], ...]:
        runtime, session, seen = build(FakeAgentClient())
        await runtime.handle_event(
            StartListening(
                event_type=EventType.START_LISTENING, ts_ms=0, permission_granted=False
            )
        )
        await runtime.shutdown()
        assert seen == []
        return session.drain_control()

    messages = asyncio.run(scenario())

    assert [m["type"] for m in messages] == ["PERMISSION_REQUIRED"]
