"""
Normalized agent response content.

This is the UI-agnostic union every downstream consumer reads.
Every variant exposes main_text and suggestions uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from envelope.payloads import ActionKind, DayPlan, GeneralAdvice, Suggestion


@dataclass(frozen=True)
class TextMessage:
    """
    Conversational answer.

    highlights maps calendar record id -> action, in preview declaration
    order (last write wins for ids repeated across previews).
    """
    main_text: str
    suggestions: tuple[str, ...] = ()
    highlights: dict[str, ActionKind] = field(default_factory=dict)


@dataclass(frozen=True)
class DaysPlanContent:
    main_text: str
    days: tuple[DayPlan, ...]
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class SuggestionPlanContent:
    main_text: str
    items: tuple[Suggestion, ...]
    general_advice: GeneralAdvice | None = None
    suggestions: tuple[str, ...] = ()


@dataclass(frozen=True)
class ErrorContent:
    """Human-readable failure shown in the ERROR state."""
    main_text: str
    suggestions: tuple[str, ...] = ()


AgentResponseContent = Union[
    TextMessage,
    DaysPlanContent,
    SuggestionPlanContent,
    ErrorContent,
]
