"""
Content serialization for client consumption.

Responsibilities:
- Convert AgentResponseContent into JSON-ready dicts for the UI

Non-responsibilities:
- No decoding
- No logging
- No orchestration decisions
"""

from __future__ import annotations

from typing import Any

from content.models import (
    AgentResponseContent,
    DaysPlanContent,
    ErrorContent,
    SuggestionPlanContent,
    TextMessage,
)
from envelope.payloads import DayPlan, Suggestion


def content_to_wire(content: AgentResponseContent | None) -> dict[str, Any] | None:
    """
    Serialize content into the client wire form.

    Output format:
    {
        "kind": "text" | "days_plan" | "suggestion_plan" | "error",
        "main_text": "...",
        "suggestions": [...],
        ...variant fields
    }
    """
    if content is None:
        return None

    base: dict[str, Any] = {
        "main_text": content.main_text,
        "suggestions": list(content.suggestions),
    }

    if isinstance(content, TextMessage):
        return {
            "kind": "text",
            **base,
            "highlights": {rid: action.value for rid, action in content.highlights.items()},
        }

    if isinstance(content, DaysPlanContent):
        return {
            "kind": "days_plan",
            **base,
            "days": [_day_to_wire(d) for d in content.days],
        }

    if isinstance(content, SuggestionPlanContent):
        advice = content.general_advice
        return {
            "kind": "suggestion_plan",
            **base,
            "items": [_suggestion_to_wire(s) for s in content.items],
            "general_advice": (
                {"title": advice.title, "text": advice.text} if advice else None
            ),
        }

    if isinstance(content, ErrorContent):
        return {"kind": "error", **base}

    raise ValueError(content)


def _day_to_wire(day: DayPlan) -> dict[str, Any]:
    return {
        "date": day.date.isoformat(),
        "schedule": [
            {
                "id": ev.id,
                "start_time": ev.start_time,
                "end_time": ev.end_time,
                "title": ev.title,
                "description": ev.description,
            }
            for ev in day.schedule
        ],
    }


def _suggestion_to_wire(item: Suggestion) -> dict[str, Any]:
    return {
        "title": item.title,
        "description": item.description,
        "is_recommended": item.is_recommended,
        "slots": [
            {
                "day": slot.day.value,
                "name": slot.name,
                "start_time": slot.start_time,
                "end_time": slot.end_time,
            }
            for slot in item.slots
        ],
    }
