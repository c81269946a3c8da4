"""
Unified event definitions for the conversation reducer.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- All reducer decisions are based on these events.
- No clocks, no timers, no async, no side effects.

Timer events are not ServiceEvents, but carry the generation they were
armed for so stale expiries can be recognized.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from enum import Enum

from orchestrator.enums.service import Service
from orchestrator.failures import FailureType


# =============================================================================
# Event Type Enumeration
# =============================================================================

class EventType(str, Enum):
    """
    Canonical event types understood by the reducer.

    Every (state, event_type) pair must be explicitly handled
    or explicitly ignored by the reducer.
    """

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    SESSION_STARTED = "SESSION_STARTED"
    SESSION_ENDED = "SESSION_ENDED"

    # ------------------------------------------------------------------
    # User intent
    # ------------------------------------------------------------------
    START_LISTENING = "START_LISTENING"
    STOP_LISTENING = "STOP_LISTENING"
    SEND_TEXT = "SEND_TEXT"
    DISMISS = "DISMISS"
    RESET_CONVERSATION = "RESET_CONVERSATION"

    # ------------------------------------------------------------------
    # Speech collaborator
    # ------------------------------------------------------------------
    SPEECH_LISTENING = "SPEECH_LISTENING"
    SPEECH_FINAL = "SPEECH_FINAL"
    SPEECH_CANCELLED = "SPEECH_CANCELLED"
    SPEECH_ERROR = "SPEECH_ERROR"

    # ------------------------------------------------------------------
    # Network collaborator
    # ------------------------------------------------------------------
    AGENT_RESPONSE = "AGENT_RESPONSE"
    AGENT_FAILURE = "AGENT_FAILURE"

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    PRESENTATION_TIMEOUT = "PRESENTATION_TIMEOUT"
    ERROR_TIMEOUT = "ERROR_TIMEOUT"


# =============================================================================
# Base Event
# =============================================================================

@dataclass(frozen=True)
class Event:
    """
    Base event type.

    All events must specify:
    - event_type: discriminant
    - ts_ms: timestamp provided by the source (or fake in tests)
    """

    event_type: EventType
    ts_ms: int


# =============================================================================
# Service-Scoped Events
# =============================================================================

@dataclass(frozen=True)
class ServiceEvent(Event):
    """
    Base class for events scoped to a versioned external service.

    The reducer MUST ignore events whose run_id does not match the
    currently active run for that service.
    """

    service: Service
    run_id: int


# =============================================================================
# Session Events
# =============================================================================

@dataclass(frozen=True)
class SessionStarted(Event):
    """Session started."""
    session_id: str


@dataclass(frozen=True)
class SessionEnded(Event):
    """Session ended."""
    session_id: str


# =============================================================================
# User Intent Events
# =============================================================================

@dataclass(frozen=True)
class StartListening(Event):
    """
    User asked to talk.

    permission_granted reflects the microphone permission at the time of
    the request; the client owns the permission prompt.
    """
    permission_granted: bool


@dataclass(frozen=True)
class StopListening(Event):
    """User asked the recognizer to finish the current utterance."""


@dataclass(frozen=True)
class SendText(Event):
    """User typed a message."""
    text: str


@dataclass(frozen=True)
class Dismiss(Event):
    """User dismissed whatever is on screen."""


@dataclass(frozen=True)
class ResetConversation(Event):
    """User asked to start over; the remote agent session is cleared."""


# =============================================================================
# Speech Events
# =============================================================================

@dataclass(frozen=True)
class SpeechListening(ServiceEvent):
    """Recognizer is ready and capturing audio."""


@dataclass(frozen=True)
class SpeechFinal(ServiceEvent):
    """
    Final recognized utterance.

    This text is immutable and is what gets sent to the agent.
    """
    text: str


@dataclass(frozen=True)
class SpeechCancelled(ServiceEvent):
    """Recognition ended without usable text."""


@dataclass(frozen=True)
class SpeechError(ServiceEvent):
    """Recognizer failed."""
    message: str


# =============================================================================
# Agent Events
# =============================================================================

@dataclass(frozen=True)
class AgentResponse(ServiceEvent):
    """
    Network round trip succeeded.

    body is the parsed JSON envelope, not yet decoded.
    """
    body: Any


@dataclass(frozen=True)
class AgentFailure(ServiceEvent):
    """Network round trip failed."""
    failure: FailureType
    reason: str
    status_code: int | None = None


# =============================================================================
# Timer Events
# =============================================================================

@dataclass(frozen=True)
class PresentationTimeout(Event):
    """RESULT / ASKING display time elapsed."""
    generation: int


@dataclass(frozen=True)
class ErrorTimeout(Event):
    """ERROR auto-resolve delay elapsed."""
    generation: int
