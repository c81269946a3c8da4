"""
Decoded agent payload types.

Rules:
- Pure data, frozen dataclasses.
- One class per payload variant; AgentResponsePayload is the closed union.
- Field values are copied verbatim from the wire (times stay strings).
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


# =============================================================================
# Envelope
# =============================================================================

@dataclass(frozen=True)
class AgentResponseEnvelope:
    """Outer wire object: which agent answered, plus its raw payload."""
    agent_name: str
    raw_payload: Any


# =============================================================================
# Previews
# =============================================================================

class ActionKind(str, Enum):
    """What the agent did (or proposes to do) with a calendar record."""

    SEARCH = "search"
    UPDATE = "update"
    CREATE = "create"
    DELETE = "delete"


@dataclass(frozen=True)
class PreviewSpec:
    """
    One preview entry: exactly one action kind over an ordered id list.
    """
    action: ActionKind
    record_ids: tuple[str, ...]


# =============================================================================
# Plans
# =============================================================================

@dataclass(frozen=True)
class ScheduledEvent:
    id: str
    start_time: str
    end_time: str
    title: str
    description: str | None = None


@dataclass(frozen=True)
class DayPlan:
    date: dt.date
    schedule: tuple[ScheduledEvent, ...]


class Weekday(str, Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


@dataclass(frozen=True)
class Slot:
    day: Weekday
    name: str
    start_time: str
    end_time: str


@dataclass(frozen=True)
class Suggestion:
    title: str
    description: str
    slots: tuple[Slot, ...]
    is_recommended: bool = False


@dataclass(frozen=True)
class GeneralAdvice:
    title: str
    text: str


# =============================================================================
# Payload variants
# =============================================================================

@dataclass(frozen=True)
class PlainText:
    """Simple conversational agents answer with a bare string."""
    text: str


@dataclass(frozen=True)
class Structured:
    """
    Presentation agent answer.

    previews is None when the wire object has no "previews" key; an empty
    dict when the key is present but empty.
    """
    message_text: str
    suggestions: tuple[str, ...] = ()
    previews: dict[str, PreviewSpec] | None = field(default=None)


@dataclass(frozen=True)
class DaysPlan:
    summary: str
    days: tuple[DayPlan, ...]


@dataclass(frozen=True)
class SuggestionPlan:
    summary: str
    suggestions: tuple[Suggestion, ...]
    general_advice: GeneralAdvice | None = None


AgentResponsePayload = Union[PlainText, Structured, DaysPlan, SuggestionPlan]
