"""
Payload -> content normalization.

Responsibilities:
- Map every decoded payload variant to its AgentResponseContent
- Derive the highlight index (record id -> action) from previews
- Turn decode errors into human-readable ErrorContent

Non-responsibilities:
- No decoding
- No state decisions (RESULT vs ASKING lives in the reducer)
- No logging

Total and deterministic: every payload variant has a defined mapping.
"""

from __future__ import annotations

from typing import Mapping

from content.models import (
    AgentResponseContent,
    DaysPlanContent,
    ErrorContent,
    SuggestionPlanContent,
    TextMessage,
)
from envelope.errors import (
    DecodeError,
    MalformedEnvelope,
    MalformedPayload,
    MalformedPreview,
    UnknownAgentType,
    UnknownPlanType,
)
from envelope.payloads import (
    ActionKind,
    AgentResponsePayload,
    DaysPlan,
    PlainText,
    PreviewSpec,
    Structured,
    SuggestionPlan,
)


def normalize(payload: AgentResponsePayload) -> AgentResponseContent:
    """Map a decoded payload to its content variant."""
    if isinstance(payload, PlainText):
        return TextMessage(main_text=payload.text)

    if isinstance(payload, Structured):
        return TextMessage(
            main_text=payload.message_text,
            suggestions=payload.suggestions,
            highlights=build_highlights(payload.previews or {}),
        )

    if isinstance(payload, DaysPlan):
        return DaysPlanContent(main_text=payload.summary, days=payload.days)

    if isinstance(payload, SuggestionPlan):
        return SuggestionPlanContent(
            main_text=payload.summary,
            items=payload.suggestions,
            general_advice=payload.general_advice,
        )

    raise ValueError(payload)


def normalize_outcome(
    outcome: AgentResponsePayload | DecodeError,
) -> AgentResponseContent:
    """Normalize either side of a try_decode() result."""
    if isinstance(outcome, DecodeError):
        return ErrorContent(main_text=describe_decode_error(outcome))
    return normalize(outcome)


def build_highlights(previews: Mapping[str, PreviewSpec]) -> dict[str, ActionKind]:
    """
    Flatten previews into record id -> action.

    Iterates previews in declaration order and ids in list order; an id
    listed under several previews keeps the last action seen.
    """
    highlights: dict[str, ActionKind] = {}
    for preview in previews.values():
        for record_id in preview.record_ids:
            highlights[record_id] = preview.action
    return highlights


def describe_decode_error(error: DecodeError) -> str:
    if isinstance(error, UnknownAgentType):
        return f"Unsupported response from agent '{error.agent_name}'."

    if isinstance(error, UnknownPlanType):
        if error.plan_type is None:
            return f"Agent '{error.agent_name}' returned a plan without a type."
        return (
            f"Agent '{error.agent_name}' returned an unsupported plan type "
            f"'{error.plan_type}'."
        )

    if isinstance(error, MalformedPreview):
        return "The agent returned a malformed event preview."

    if isinstance(error, MalformedPayload):
        return f"Could not read the response from agent '{error.agent_name}'."

    if isinstance(error, MalformedEnvelope):
        return "Could not read the agent response."

    return f"Unsupported agent response: {error}"
