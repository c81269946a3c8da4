"""
Runtime execution context.

Provides Runtime with live access to session-owned imperative resources
needed for command execution and side effects (collaborators, outbox).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero orchestration logic
- Zero state mutation
"""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    AsyncIterator,
    Mapping,
    Protocol,
    Sequence,
    runtime_checkable,
)

from envelope.payloads import ActionKind

if TYPE_CHECKING:
    import datetime as dt

    from adapters.speech.base import SpeechSignal
    from context.user_context import UserContext
    from services.calendar_service import CalendarEvent, CalendarView
    from session.agent_session import AgentSession


# ---------------------------------------------------------------------
# Collaborator Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class AgentClientProtocol(Protocol):
    async def send_message(self, text: str, user_context: dict[str, str]) -> Any: ...
    async def clear_session(self) -> None: ...


@runtime_checkable
class SpeechSourceProtocol(Protocol):
    def listen(self, run_id: int) -> AsyncIterator[SpeechSignal]: ...
    async def stop(self, run_id: int) -> None: ...


@runtime_checkable
class CalendarRefreshProtocol(Protocol):
    async def refresh(
        self, highlights: Mapping[str, ActionKind] | None = None
    ) -> CalendarView: ...


@runtime_checkable
class CalendarSourceProtocol(Protocol):
    async def fetch_events(
        self, start: dt.date, end: dt.date
    ) -> Sequence[CalendarEvent]: ...


# ---------------------------------------------------------------------
# Runtime Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Imperative execution context for Runtime.

    This object provides *live views* into session-owned resources
    so Runtime does not need to synchronize or cache anything.

    Runtime is allowed to:
    - Call collaborators
    - Enqueue control messages for the client

    Runtime is NOT allowed to:
    - Mutate session state directly
    - Perform orchestration decisions
    """

    def __init__(self, session: AgentSession) -> None:
        self.session = session

    # ----------------------------
    # Session metadata
    # ----------------------------

    @property
    def session_id(self) -> str:
        return self.session.session_id

    # ----------------------------
    # Collaborators
    # ----------------------------

    @property
    def agent_client(self) -> AgentClientProtocol | None:
        return self.session.agent_client

    @property
    def speech_source(self) -> SpeechSourceProtocol | None:
        return self.session.speech_source

    @property
    def calendar(self) -> CalendarRefreshProtocol | None:
        return self.session.calendar

    def user_context(self) -> UserContext:
        return self.session.user_context()

    # ----------------------------
    # Client egress
    # ----------------------------

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        self.session.enqueue_control(msg)
