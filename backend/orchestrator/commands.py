"""
Side-effect command definitions for the orchestrator.

Rules:
- Commands are declarative requests for side effects.
- Commands are emitted by the reducer and executed by the runtime.
- No behavior, no async, no I/O, no clocks.
- Reducer logic remains pure and deterministic.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
    - Commands are immutable value objects emitted by the reducer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from envelope.payloads import ActionKind
from orchestrator.events import EventType

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types emitted by the reducer.

    These are stable discriminants used for logging and runtime dispatch.
    """

    # Speech
    START_SPEECH = "START_SPEECH"
    STOP_SPEECH = "STOP_SPEECH"

    # Agent
    SEND_AGENT_MESSAGE = "SEND_AGENT_MESSAGE"
    CLEAR_AGENT_SESSION = "CLEAR_AGENT_SESSION"

    # Client
    NOTIFY_CLIENT = "NOTIFY_CLIENT"

    # Calendar
    REFRESH_CALENDAR = "REFRESH_CALENDAR"

    # Timers
    START_TIMER = "START_TIMER"
    CANCEL_TIMER = "CANCEL_TIMER"

    # Observability
    LOG_EVENT = "LOG_EVENT"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType


# =============================================================================
# Speech Commands
# =============================================================================

@dataclass(frozen=True)
class StartSpeech(Command):
    """Request to open a new recognition run."""
    run_id: int
    command_type: CommandType = CommandType.START_SPEECH


@dataclass(frozen=True)
class StopSpeech(Command):
    """Request the recognizer to finish (or abandon) the run."""
    run_id: int
    command_type: CommandType = CommandType.STOP_SPEECH


# =============================================================================
# Agent Commands
# =============================================================================

@dataclass(frozen=True)
class SendAgentMessage(Command):
    """
    Request a network round trip.

    The runtime must answer with exactly one AgentResponse or
    AgentFailure carrying the same run_id.
    """
    run_id: int
    text: str
    command_type: CommandType = CommandType.SEND_AGENT_MESSAGE


@dataclass(frozen=True)
class ClearAgentSession(Command):
    """Request that the remote agent forget the conversation."""
    command_type: CommandType = CommandType.CLEAR_AGENT_SESSION


# =============================================================================
# Client Commands
# =============================================================================

@dataclass(frozen=True)
class NotifyClient(Command):
    """
    Send a one-off notification to the client (not a state snapshot).
    """
    message_type: str
    data: dict[str, Any]
    command_type: CommandType = CommandType.NOTIFY_CLIENT


# =============================================================================
# Calendar Commands
# =============================================================================

@dataclass(frozen=True)
class RefreshCalendar(Command):
    """
    Re-fetch the visible calendar date.

    highlights maps record ids to the action the refreshed view should
    overlay on them (may be empty).
    """
    highlights: dict[str, ActionKind] = field(default_factory=dict)
    command_type: CommandType = CommandType.REFRESH_CALENDAR


# =============================================================================
# Timer Commands
# =============================================================================

@dataclass(frozen=True)
class StartTimer(Command):
    """
    Request to start (or replace) a named timer.

    On expiration, the runtime must inject the specified timeout event
    stamped with generation, unless the generation is no longer current.
    """
    timer_id: str
    duration_ms: int
    generation: int
    timeout_event_type: EventType
    command_type: CommandType = CommandType.START_TIMER


@dataclass(frozen=True)
class CancelTimer(Command):
    """Request to cancel a previously scheduled timer."""
    timer_id: str
    command_type: CommandType = CommandType.CANCEL_TIMER


# =============================================================================
# Observability Commands
# =============================================================================

@dataclass(frozen=True)
class LogEvent(Command):
    """Request to emit a structured observability event."""
    event: dict[str, Any]
    command_type: CommandType = CommandType.LOG_EVENT
