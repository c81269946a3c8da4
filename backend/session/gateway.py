"""
Session gateway.

Responsibilities:
- Owns AgentSession lifecycle
- Wires session collaborators (agent client, speech relay, calendar)
- Routes inbound JSON control messages -> orchestrator events
- Routes client speech reports -> speech relay
- Publishes a STATE snapshot to the client after every state change
- Forwards events into runtime

NOT responsible for:
- Executing commands
- Any state machine logic
- WebSocket I/O (the route owns the socket)
"""

from __future__ import annotations

import datetime as dt
import json
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable
from uuid import uuid4

from adapters.agent.http_client import HttpAgentClient
from adapters.calendar.http_source import HttpCalendarSource
from adapters.speech.client_relay import ClientRelaySpeechSource
from constants import PAYLOAD_PREVIEW_CHARS
from content.serialization import content_to_wire
from context.user_context import build_user_context, resolve_timezone
from envelope.decoder import AgentRegistry
from observability.logger import log_event
from orchestrator.events import (
    Dismiss,
    Event,
    EventType,
    ResetConversation,
    SendText,
    SessionEnded,
    SessionStarted,
    StartListening,
    StopListening,
)
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import (
    AgentClientProtocol,
    CalendarSourceProtocol,
    RuntimeExecutionContext,
)
from orchestrator.state_dataclass import OrchestratorState
from services.calendar_service import CalendarService
from session.agent_session import AgentSession

if TYPE_CHECKING:
    from config import AppConfig


AgentClientFactory = Callable[[str], AgentClientProtocol]
CalendarSourceFactory = Callable[[str], CalendarSourceProtocol]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


def state_snapshot(state: OrchestratorState) -> dict[str, Any]:
    """Client-facing view of the orchestrator state."""
    return {
        "type": "STATE",
        "state": state.state.value,
        "generation": state.generation,
        "message_text": state.message_text,
        "content": content_to_wire(state.content),
        "ts_ms": _now_ms(),
    }


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send to client
    """

    outbound_json: tuple[dict[str, Any], ...] = ()


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """
    One gateway == one client session.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        agent_client_factory: AgentClientFactory | None = None,
        calendar_source_factory: CalendarSourceFactory | None = None,
    ) -> None:
        self._config = config
        self.session: AgentSession | None = None

        # Collaborator construction is injectable (tests, alternate backends)
        self._agent_client_factory = agent_client_factory or self._http_agent_client
        self._calendar_source_factory = (
            calendar_source_factory or self._http_calendar_source
        )

    def _http_agent_client(self, session_id: str) -> AgentClientProtocol:
        return HttpAgentClient(
            base_url=self._config.agent_base_url,
            token=self._config.agent_api_token,
            session_id=session_id,
            timeout_s=self._config.agent_http_timeout_s,
        )

    def _http_calendar_source(self, session_id: str) -> CalendarSourceProtocol:
        return HttpCalendarSource(
            base_url=self._config.agent_base_url,
            token=self._config.agent_api_token,
            session_id=session_id,
            timeout_s=self._config.agent_http_timeout_s,
        )

    async def on_ws_connect(
        self,
        *,
        timezone: str | None = None,
        language: str | None = None,
    ) -> GatewayResult:
        """Called when a WebSocket connection is established."""
        session_id = _new_session_id()
        # Unknown names resolve to the default zone once, here
        tz = resolve_timezone(timezone or self._config.default_timezone)

        self.session = AgentSession(
            session_id=session_id,
            timezone=tz.key,
            language=language or self._config.default_language,
        )
        session = self.session

        today = build_user_context(timezone_name=session.timezone).glance_date
        session.calendar_source = self._calendar_source_factory(session_id)
        session.calendar = CalendarService(
            glance_date=today,
            fetch_events=session.calendar_source.fetch_events,
        )
        session.agent_client = self._agent_client_factory(session_id)
        session.speech_source = ClientRelaySpeechSource(
            session_id=session_id,
            send_control=session.enqueue_control,
        )

        runtime = Runtime(
            initial_state=OrchestratorState(
                asking_on_suggestions=self._config.asking_on_suggestions,
                agent_registry=AgentRegistry(
                    plain_text=frozenset(self._config.plain_text_agents)
                ),
            ),
            context=RuntimeExecutionContext(session=session),
        )
        runtime.add_observer(
            lambda state: session.enqueue_control(state_snapshot(state))
        )

        # Attach runtime (must be AFTER collaborators)
        session.attach_runtime(runtime)

        await self._dispatch(
            SessionStarted(
                event_type=EventType.SESSION_STARTED,
                ts_ms=_now_ms(),
                session_id=session_id,
            )
        )

        init_msg: dict[str, Any] = {
            "type": "SESSION_INIT",
            "session_id": session_id,
            "timezone": session.timezone,
            "language": session.language,
            "glance_date": today.isoformat(),
        }
        return GatewayResult(
            outbound_json=(init_msg, state_snapshot(runtime.state))
            + self._drain_control_out()
        )

    async def on_ws_disconnect(self, reason: str | None = None) -> GatewayResult:
        """Called when the WebSocket disconnects."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return GatewayResult()

        session_id = self.session.session_id
        runtime = self.session.runtime

        # Connect may have failed before a runtime was attached
        if runtime is not None:
            await self._dispatch(
                SessionEnded(
                    event_type=EventType.SESSION_ENDED,
                    ts_ms=_now_ms(),
                    session_id=session_id,
                )
            )
            await runtime.shutdown()

        for resource in (self.session.agent_client, self.session.calendar_source):
            if resource is not None and hasattr(resource, "aclose"):
                await resource.aclose()

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "WS_DISCONNECTED",
            "session_id": session_id,
            "reason": reason,
        })
        return GatewayResult(outbound_json=self._drain_control_out())

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Route inbound JSON to orchestrator events or the speech relay."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:PAYLOAD_PREVIEW_CHARS],
            })
            return GatewayResult()

        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "JSON_DECODE_ERROR",
                "session_id": self.session.session_id,
                "error": str(e),
                "payload_preview": payload[:PAYLOAD_PREVIEW_CHARS],
            }, level="warning")
            return GatewayResult()

        if not isinstance(data, dict):
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_NOT_OBJECT",
                "session_id": self.session.session_id,
                "payload_preview": payload[:PAYLOAD_PREVIEW_CHARS],
            }, level="warning")
            return GatewayResult()

        msg_type = data.get("type")
        ts_ms = data.get("ts_ms", _now_ms())
        event: Event | None = None

        # ------------------------------------------------------------
        # User intent
        # ------------------------------------------------------------
        if msg_type == "START_LISTENING":
            event = StartListening(
                event_type=EventType.START_LISTENING,
                ts_ms=ts_ms,
                permission_granted=data.get("permission_granted") is True,
            )
        elif msg_type == "STOP_LISTENING":
            event = StopListening(event_type=EventType.STOP_LISTENING, ts_ms=ts_ms)
        elif msg_type == "SEND_TEXT":
            text = data.get("text")
            if not isinstance(text, str):
                return self._reject(msg_type, "text must be a string")
            event = SendText(event_type=EventType.SEND_TEXT, ts_ms=ts_ms, text=text)
        elif msg_type == "DISMISS":
            event = Dismiss(event_type=EventType.DISMISS, ts_ms=ts_ms)
        elif msg_type == "RESET_CONVERSATION":
            event = ResetConversation(
                event_type=EventType.RESET_CONVERSATION, ts_ms=ts_ms
            )

        # ------------------------------------------------------------
        # Calendar
        # ------------------------------------------------------------
        elif msg_type == "SET_GLANCE_DATE":
            try:
                date = dt.date.fromisoformat(str(data.get("date")))
            except ValueError:
                return self._reject(msg_type, "date must be YYYY-MM-DD")
            self.session.calendar.set_glance_date(date)

        # ------------------------------------------------------------
        # Client recognizer reports
        # ------------------------------------------------------------
        elif msg_type == "SPEECH_LISTENING":
            self.session.speech_source.report_listening()
        elif msg_type == "SPEECH_RESULT":
            text = data.get("text")
            self.session.speech_source.report_result(text if isinstance(text, str) else "")
        elif msg_type == "SPEECH_CANCELLED":
            self.session.speech_source.report_cancelled()
        elif msg_type == "SPEECH_ERROR":
            self.session.speech_source.report_error(
                code=data.get("code"), message=data.get("message")
            )

        else:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "msg_type": msg_type,
                "session_id": self.session.session_id,
            }, level="warning")
            return GatewayResult()

        if event is not None:
            await self._dispatch(event)

        return GatewayResult(outbound_json=self._drain_control_out())

    # ------------------------------------------------------------------
    # Reducer dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, event: Event) -> None:
        """
        Forward event into runtime.

        Gateway never executes commands; runtime owns all orchestration.
        """
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "DISPATCH_WITHOUT_SESSION",
                "dropped_event": event.event_type.value,
            })
            return

        runtime = self.session.runtime
        assert runtime is not None, "Runtime must exist before dispatch"

        await runtime.handle_event(event)

    def _reject(self, msg_type: str, reason: str) -> GatewayResult:
        log_event({
            "ts_ms": _now_ms(),
            "event_type": "MESSAGE_REJECTED",
            "msg_type": msg_type,
            "reason": reason,
            "session_id": self.session.session_id if self.session else None,
        }, level="warning")
        return GatewayResult()

    def _drain_control_out(self) -> tuple[dict[str, Any], ...]:
        if self.session is None:
            return ()
        return self.session.drain_control()
