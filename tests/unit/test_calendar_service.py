# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
import datetime as dt

from envelope.payloads import ActionKind
from services.calendar_service import (
    CalendarEvent,
    CalendarService,
    HighlightedEvent,
    resolve_highlights,
    view_to_wire,
)

EV1 = CalendarEvent(id="ev1", title="Standup", start_time="09:00", end_time="09:15")
EV2 = CalendarEvent(id="ev2", title="Lunch", start_time="12:00", end_time="13:00")
EV3 = CalendarEvent(id="ev3", title="Review", start_time="15:00", end_time="16:00")


def test_resolve_highlights_keeps_event_order_and_skips_unknown_ids():
    highlighted = resolve_highlights(
        [EV1, EV2, EV3],
        {"ev3": ActionKind.CREATE, "gone": ActionKind.DELETE, "ev1": ActionKind.UPDATE},
    )

    assert highlighted == (
        HighlightedEvent(event=EV1, action=ActionKind.UPDATE),
        HighlightedEvent(event=EV3, action=ActionKind.CREATE),
    )


def test_refresh_fetches_the_glance_date_and_caches_it():
    calls: list[tuple[dt.date, dt.date]] = []

    async def fetch(start: dt.date, end: dt.date) -> list[CalendarEvent]:
        calls.append((start, end))
        return [EV1, EV2]

    service = CalendarService(glance_date=dt.date(2025, 5, 5), fetch_events=fetch)

    view = asyncio.run(service.refresh({"ev2": ActionKind.SEARCH}))

    assert calls == [(dt.date(2025, 5, 5), dt.date(2025, 5, 6))]
    assert view.events == (EV1, EV2)
    assert view.highlighted == (HighlightedEvent(event=EV2, action=ActionKind.SEARCH),)
    assert service.cached_events(dt.date(2025, 5, 5)) == (EV1, EV2)


def test_refresh_follows_glance_date_changes():
    calls: list[dt.date] = []

    async def fetch(start: dt.date, end: dt.date) -> list[CalendarEvent]:
        calls.append(start)
        return []

    service = CalendarService(glance_date=dt.date(2025, 1, 1), fetch_events=fetch)
    service.set_glance_date(dt.date(2025, 2, 2))

    view = asyncio.run(service.refresh())

    assert calls == [dt.date(2025, 2, 2)]
    assert view.date == dt.date(2025, 2, 2)
    assert view.highlighted == ()


def test_refresh_without_fetcher_uses_empty_cache():
    service = CalendarService(glance_date=dt.date(2025, 1, 1))

    view = asyncio.run(service.refresh({"ev1": ActionKind.DELETE}))

    assert view.events == ()
    assert view.highlighted == ()


def test_view_to_wire():
    async def fetch(start: dt.date, end: dt.date) -> list[CalendarEvent]:
        return [EV1]

    service = CalendarService(glance_date=dt.date(2025, 5, 5), fetch_events=fetch)
    view = asyncio.run(service.refresh({"ev1": ActionKind.DELETE}))

    assert view_to_wire(view) == {
        "date": "2025-05-05",
        "event_count": 1,
        "highlighted": [
            {
                "id": "ev1",
                "title": "Standup",
                "start_time": "09:00",
                "end_time": "09:15",
                "action": "delete",
            }
        ],
    }
