# pylint: disable=missing-module-docstring,missing-function-docstring
import datetime as dt

from content.models import (
    DaysPlanContent,
    ErrorContent,
    SuggestionPlanContent,
    TextMessage,
)
from content.normalizer import (
    build_highlights,
    describe_decode_error,
    normalize,
    normalize_outcome,
)
from content.serialization import content_to_wire
from envelope.decoder import try_decode
from envelope.errors import (
    MalformedEnvelope,
    MalformedPayload,
    MalformedPreview,
    UnknownAgentType,
    UnknownPlanType,
)
from envelope.payloads import (
    ActionKind,
    DayPlan,
    DaysPlan,
    GeneralAdvice,
    PlainText,
    PreviewSpec,
    ScheduledEvent,
    Structured,
    Suggestion,
    SuggestionPlan,
)


def test_plain_text_becomes_text_message_without_extras():
    content = normalize(PlainText(text="hello"))

    assert content == TextMessage(main_text="hello", suggestions=(), highlights={})


def test_structured_copies_message_and_suggestions():
    content = normalize(
        Structured(message_text="Pick one", suggestions=("Yes", "No"), previews=None)
    )

    assert content == TextMessage(main_text="Pick one", suggestions=("Yes", "No"))


def test_days_plan_maps_summary_to_main_text():
    day = DayPlan(
        date=dt.date(2025, 1, 2),
        schedule=(ScheduledEvent(id="e", start_time="1", end_time="2", title="T"),),
    )

    content = normalize(DaysPlan(summary="Plan", days=(day,)))

    assert content == DaysPlanContent(main_text="Plan", days=(day,))
    assert content.suggestions == ()


def test_suggestion_plan_maps_items_and_advice():
    item = Suggestion(title="Gym", description="d", slots=())
    advice = GeneralAdvice(title="Tip", text="Hydrate")

    content = normalize(
        SuggestionPlan(summary="Options", suggestions=(item,), general_advice=advice)
    )

    assert content == SuggestionPlanContent(
        main_text="Options", items=(item,), general_advice=advice
    )


# ---------------------------------------------------------------------
# Highlights
# ---------------------------------------------------------------------

def test_delete_preview_scenario_end_to_end():
    body = {
        "agent": "PresentationLayer",
        "response": {
            "previews": {"delete": ["ev1", "ev2"]},
            "message": {"message": "Deleted 2 events", "suggestions": []},
        },
    }

    content = normalize_outcome(try_decode(body))

    assert content == TextMessage(
        main_text="Deleted 2 events",
        suggestions=(),
        highlights={"ev1": ActionKind.DELETE, "ev2": ActionKind.DELETE},
    )


def test_highlights_flatten_every_preview():
    highlights = build_highlights({
        "a": PreviewSpec(action=ActionKind.SEARCH, record_ids=("1", "2")),
        "b": PreviewSpec(action=ActionKind.CREATE, record_ids=("3",)),
    })

    assert highlights == {
        "1": ActionKind.SEARCH,
        "2": ActionKind.SEARCH,
        "3": ActionKind.CREATE,
    }


def test_duplicate_record_id_resolves_last_write_wins_in_declaration_order():
    highlights = build_highlights({
        "first": PreviewSpec(action=ActionKind.UPDATE, record_ids=("x",)),
        "second": PreviewSpec(action=ActionKind.DELETE, record_ids=("x",)),
    })

    assert highlights == {"x": ActionKind.DELETE}


def test_empty_previews_yield_empty_highlights():
    content = normalize(Structured(message_text="ok", previews={}))

    assert isinstance(content, TextMessage)
    assert content.highlights == {}


# ---------------------------------------------------------------------
# Decode errors
# ---------------------------------------------------------------------

def test_unknown_agent_scenario_mentions_agent_name():
    content = normalize_outcome(try_decode({"agent": "UnknownBot", "response": "hi"}))

    assert isinstance(content, ErrorContent)
    assert "UnknownBot" in content.main_text
    assert content.suggestions == ()


def test_every_decode_error_has_readable_text():
    errors = [
        MalformedEnvelope("no agent"),
        MalformedPayload("TacticAgent", "missing summary"),
        MalformedPreview("p1", "no action key present"),
        UnknownAgentType("Bot"),
        UnknownPlanType("TacticAgent", "week_plan"),
        UnknownPlanType("TacticAgent", None),
    ]

    texts = [describe_decode_error(e) for e in errors]

    assert all(texts)
    assert "week_plan" in texts[4]
    assert "without a type" in texts[5]


# ---------------------------------------------------------------------
# Wire form
# ---------------------------------------------------------------------

def test_text_message_wire_form_carries_action_values():
    wire = content_to_wire(
        TextMessage(main_text="m", highlights={"ev1": ActionKind.DELETE})
    )

    assert wire == {
        "kind": "text",
        "main_text": "m",
        "suggestions": [],
        "highlights": {"ev1": "delete"},
    }


def test_no_content_serializes_to_none():
    assert content_to_wire(None) is None


def test_days_plan_wire_form_uses_iso_dates():
    day = DayPlan(date=dt.date(2025, 3, 4), schedule=())

    wire = content_to_wire(DaysPlanContent(main_text="p", days=(day,)))

    assert wire is not None
    assert wire["kind"] == "days_plan"
    assert wire["days"] == [{"date": "2025-03-04", "schedule": []}]
