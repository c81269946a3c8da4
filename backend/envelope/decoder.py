"""
Envelope decoder.

Turns a raw agent response body into one AgentResponsePayload variant.

Wire format:

    { "agent": "<name>", "response": <agent-dependent> }

Dispatch is two-level:
1. "agent" selects the agent kind (plain text, presentation, planner).
2. Planner payloads carry a second discriminator, "response_type",
   selecting the plan variant.

Usage example:

    envelope = parse_envelope(body)
    payload = decode_envelope(envelope)          # raises DecodeError

    outcome = try_decode(envelope)               # never raises
    if isinstance(outcome, DecodeError):
        ...

Pure functions only: no IO, no logging. Receive-only (no encode path).
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

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
    AgentResponseEnvelope,
    AgentResponsePayload,
    DayPlan,
    DaysPlan,
    GeneralAdvice,
    PlainText,
    PreviewSpec,
    ScheduledEvent,
    Slot,
    Structured,
    Suggestion,
    SuggestionPlan,
    Weekday,
)
from constants import (
    DEFAULT_PLAIN_TEXT_AGENTS,
    ENVELOPE_AGENT_FIELD,
    ENVELOPE_RESPONSE_FIELD,
    PLAN_TYPE_DAYS,
    PLAN_TYPE_FIELD,
    PLAN_TYPE_SUGGESTIONS,
    PLANNER_AGENTS,
    PRESENTATION_AGENT,
    PREVIEW_ACTION_KEYS,
)


# =============================================================================
# Agent registry
# =============================================================================

class AgentKind(str, Enum):
    """First-level discriminator: how an agent's payload is shaped."""

    PLAIN_TEXT = "PLAIN_TEXT"
    PRESENTATION = "PRESENTATION"
    PLANNER = "PLANNER"


@dataclass(frozen=True)
class AgentRegistry:
    """
    Fixed mapping from agent name to AgentKind.

    Presentation and planner names win over the plain-text list if a
    deployment lists the same name twice.
    """

    plain_text: frozenset[str] = field(
        default_factory=lambda: frozenset(DEFAULT_PLAIN_TEXT_AGENTS)
    )
    presentation: str = PRESENTATION_AGENT
    planners: frozenset[str] = field(
        default_factory=lambda: frozenset(PLANNER_AGENTS)
    )

    def classify(self, agent_name: str) -> AgentKind | None:
        if agent_name == self.presentation:
            return AgentKind.PRESENTATION
        if agent_name in self.planners:
            return AgentKind.PLANNER
        if agent_name in self.plain_text:
            return AgentKind.PLAIN_TEXT
        return None


DEFAULT_REGISTRY = AgentRegistry()


class PlanType(str, Enum):
    """Second-level discriminator for planner agents."""

    DAYS_PLAN = PLAN_TYPE_DAYS
    SUGGESTION_PLAN = PLAN_TYPE_SUGGESTIONS


# =============================================================================
# Entry points
# =============================================================================

def parse_envelope(body: Any) -> AgentResponseEnvelope:
    """
    Split a JSON body into agent name and raw payload.

    Raises:
        MalformedEnvelope if body is not an object or "agent" is not a string.
    """
    if not isinstance(body, Mapping):
        raise MalformedEnvelope(f"envelope must be an object, got {type(body).__name__}")

    agent_name = body.get(ENVELOPE_AGENT_FIELD)
    if not isinstance(agent_name, str):
        raise MalformedEnvelope("envelope has no string 'agent' field")

    return AgentResponseEnvelope(
        agent_name=agent_name,
        raw_payload=body.get(ENVELOPE_RESPONSE_FIELD),
    )


def decode_envelope(
    envelope: AgentResponseEnvelope,
    registry: AgentRegistry = DEFAULT_REGISTRY,
) -> AgentResponsePayload:
    """
    Decode an envelope into its payload variant.

    Raises:
        UnknownAgentType, UnknownPlanType, MalformedPreview, MalformedPayload.
    """
    name = envelope.agent_name
    kind = registry.classify(name)

    if kind is None:
        raise UnknownAgentType(name)

    if kind is AgentKind.PLAIN_TEXT:
        return _decode_plain_text(name, envelope.raw_payload)

    if kind is AgentKind.PRESENTATION:
        return _decode_structured(name, envelope.raw_payload)

    if kind is AgentKind.PLANNER:
        return _decode_plan(name, envelope.raw_payload)

    raise ValueError(kind)


def try_decode(
    body: Any,
    registry: AgentRegistry = DEFAULT_REGISTRY,
) -> AgentResponsePayload | DecodeError:
    """
    Decode a raw body, returning the DecodeError instead of raising it.

    Pure function; never raises.
    """
    try:
        envelope = body if isinstance(body, AgentResponseEnvelope) else parse_envelope(body)
        return decode_envelope(envelope, registry)
    except DecodeError as e:
        return e


# =============================================================================
# Plain text
# =============================================================================

def _decode_plain_text(name: str, raw: Any) -> PlainText:
    if not isinstance(raw, str):
        raise MalformedPayload(name, f"expected a string response, got {type(raw).__name__}")
    return PlainText(text=raw)


# =============================================================================
# Presentation
# =============================================================================

def _decode_structured(name: str, raw: Any) -> Structured:
    obj = _require_object(name, raw, "response")

    message = _require_object(name, obj.get("message"), "message")
    text = _require_str(name, message, "message")
    suggestions = _optional_str_list(name, message, "suggestions")

    raw_previews = obj.get("previews")
    previews: dict[str, PreviewSpec] | None = None
    if raw_previews is not None:
        if not isinstance(raw_previews, Mapping):
            raise MalformedPayload(name, "'previews' must be an object")
        previews = {
            str(key): _decode_preview(str(key), value)
            for key, value in raw_previews.items()
        }

    return Structured(
        message_text=text,
        suggestions=suggestions,
        previews=previews,
    )


def _decode_preview(key: str, value: Any) -> PreviewSpec:
    """
    Decode one previews entry.

    Two wire shapes are accepted:
    - named:     "p1": {"delete": ["ev1"]}  (exactly one action key)
    - shorthand: "delete": ["ev1"]          (the entry key is the action)
    """
    if key in PREVIEW_ACTION_KEYS and isinstance(value, list):
        return PreviewSpec(action=ActionKind(key), record_ids=_preview_ids(key, key, value))

    if not isinstance(value, Mapping):
        raise MalformedPreview(key, "preview must be an object")

    present = [k for k in PREVIEW_ACTION_KEYS if k in value]
    if not present:
        raise MalformedPreview(key, "no action key present")
    if len(present) > 1:
        raise MalformedPreview(key, f"multiple action keys present: {present}")

    action_key = present[0]
    return PreviewSpec(
        action=ActionKind(action_key),
        record_ids=_preview_ids(key, action_key, value[action_key]),
    )


def _preview_ids(key: str, action_key: str, ids: Any) -> tuple[str, ...]:
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise MalformedPreview(key, f"'{action_key}' must be a list of strings")
    return tuple(ids)


# =============================================================================
# Planners
# =============================================================================

def _decode_plan(name: str, raw: Any) -> DaysPlan | SuggestionPlan:
    if not isinstance(raw, Mapping):
        raise UnknownPlanType(name, None)

    discriminator = raw.get(PLAN_TYPE_FIELD)
    if not isinstance(discriminator, str):
        raise UnknownPlanType(name, None if discriminator is None else str(discriminator))

    try:
        plan_type = PlanType(discriminator)
    except ValueError:
        raise UnknownPlanType(name, discriminator) from None

    if plan_type is PlanType.DAYS_PLAN:
        return _decode_days_plan(name, raw)

    if plan_type is PlanType.SUGGESTION_PLAN:
        return _decode_suggestion_plan(name, raw)

    raise ValueError(plan_type)


def _decode_days_plan(name: str, obj: Mapping[str, Any]) -> DaysPlan:
    days: list[DayPlan] = []
    for raw_day in _require_list(name, obj, "days"):
        day = _require_object(name, raw_day, "days[]")
        date_text = _require_str(name, day, "date")
        try:
            date = dt.date.fromisoformat(date_text)
        except ValueError:
            raise MalformedPayload(name, f"invalid ISO date {date_text!r}") from None

        schedule = tuple(
            _decode_scheduled_event(name, item)
            for item in _require_list(name, day, "schedule")
        )
        days.append(DayPlan(date=date, schedule=schedule))

    return DaysPlan(summary=_require_str(name, obj, "summary"), days=tuple(days))


def _decode_scheduled_event(name: str, raw: Any) -> ScheduledEvent:
    obj = _require_object(name, raw, "schedule[]")
    return ScheduledEvent(
        id=_require_str(name, obj, "id"),
        start_time=_require_str(name, obj, "start_time"),
        end_time=_require_str(name, obj, "end_time"),
        title=_require_str(name, obj, "title"),
        description=_optional_str(name, obj, "description"),
    )


def _decode_suggestion_plan(name: str, obj: Mapping[str, Any]) -> SuggestionPlan:
    suggestions = tuple(
        _decode_suggestion(name, item)
        for item in _require_list(name, obj, "suggestions")
    )

    advice: GeneralAdvice | None = None
    raw_advice = obj.get("general_advice")
    if raw_advice is not None:
        advice_obj = _require_object(name, raw_advice, "general_advice")
        advice = GeneralAdvice(
            title=_require_str(name, advice_obj, "title"),
            text=_require_str(name, advice_obj, "text"),
        )

    return SuggestionPlan(
        summary=_require_str(name, obj, "summary"),
        suggestions=suggestions,
        general_advice=advice,
    )


def _decode_suggestion(name: str, raw: Any) -> Suggestion:
    obj = _require_object(name, raw, "suggestions[]")

    recommended = obj.get("is_recommended", False)
    if not isinstance(recommended, bool):
        raise MalformedPayload(name, "'is_recommended' must be a boolean")

    return Suggestion(
        title=_require_str(name, obj, "title"),
        description=_require_str(name, obj, "description"),
        slots=tuple(_decode_slot(name, s) for s in _require_list(name, obj, "slots")),
        is_recommended=recommended,
    )


def _decode_slot(name: str, raw: Any) -> Slot:
    obj = _require_object(name, raw, "slots[]")
    day_text = _require_str(name, obj, "day")
    try:
        day = Weekday(day_text)
    except ValueError:
        raise MalformedPayload(name, f"unknown weekday {day_text!r}") from None

    return Slot(
        day=day,
        name=_require_str(name, obj, "name"),
        start_time=_require_str(name, obj, "start_time"),
        end_time=_require_str(name, obj, "end_time"),
    )


# =============================================================================
# Field helpers
# =============================================================================

def _require_object(name: str, value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise MalformedPayload(name, f"'{where}' must be an object")
    return value


def _require_list(name: str, obj: Mapping[str, Any], key: str) -> list[Any]:
    value = obj.get(key)
    if not isinstance(value, list):
        raise MalformedPayload(name, f"'{key}' must be a list")
    return value


def _require_str(name: str, obj: Mapping[str, Any], key: str) -> str:
    value = obj.get(key)
    if not isinstance(value, str):
        raise MalformedPayload(name, f"'{key}' must be a string")
    return value


def _optional_str(name: str, obj: Mapping[str, Any], key: str) -> str | None:
    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise MalformedPayload(name, f"'{key}' must be a string")
    return value


def _optional_str_list(name: str, obj: Mapping[str, Any], key: str) -> tuple[str, ...]:
    value = obj.get(key)
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedPayload(name, f"'{key}' must be a list of strings")
    return tuple(value)
