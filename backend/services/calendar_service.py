"""
Calendar view service.

Responsibilities:
- Track the date the user is currently looking at (glance date)
- Re-fetch that date through an injected fetch function
- Keep an in-memory copy of the last fetched events per date
- Resolve highlight overlays (record id -> action) into concrete events

Non-responsibilities:
- No persistence
- No reducer logic
- Fetch errors propagate to the caller
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Sequence

from envelope.payloads import ActionKind


@dataclass(frozen=True)
class CalendarEvent:
    """One calendar record as the client displays it."""
    id: str
    title: str
    start_time: str
    end_time: str
    description: str | None = None


@dataclass(frozen=True)
class HighlightedEvent:
    event: CalendarEvent
    action: ActionKind


@dataclass(frozen=True)
class CalendarView:
    date: dt.date
    events: tuple[CalendarEvent, ...]
    highlighted: tuple[HighlightedEvent, ...] = ()


# (start, end) -> events, end exclusive
FetchEventsFn = Callable[[dt.date, dt.date], Awaitable[Sequence[CalendarEvent]]]


class CalendarService:
    """Per-session calendar view."""

    def __init__(
        self,
        *,
        glance_date: dt.date,
        fetch_events: FetchEventsFn | None = None,
    ) -> None:
        self._glance_date = glance_date
        self._fetch_events = fetch_events
        self._cache: dict[dt.date, tuple[CalendarEvent, ...]] = {}

    @property
    def glance_date(self) -> dt.date:
        return self._glance_date

    def set_glance_date(self, date: dt.date) -> None:
        self._glance_date = date

    def cached_events(self, date: dt.date) -> tuple[CalendarEvent, ...]:
        return self._cache.get(date, ())

    async def refresh(
        self, highlights: Mapping[str, ActionKind] | None = None
    ) -> CalendarView:
        """
        Re-fetch the glance date and overlay highlights on it.

        Without a fetch function the cached events are reused.
        """
        date = self._glance_date
        if self._fetch_events is not None:
            fetched = await self._fetch_events(date, date + dt.timedelta(days=1))
            self._cache[date] = tuple(fetched)

        events = self.cached_events(date)
        return CalendarView(
            date=date,
            events=events,
            highlighted=resolve_highlights(events, highlights or {}),
        )


def resolve_highlights(
    events: Sequence[CalendarEvent],
    highlights: Mapping[str, ActionKind],
) -> tuple[HighlightedEvent, ...]:
    """
    Pair events with their highlight action, in event order.

    Highlight ids with no matching event (e.g. deleted records) are skipped.
    """
    return tuple(
        HighlightedEvent(event=ev, action=highlights[ev.id])
        for ev in events
        if ev.id in highlights
    )


def view_to_wire(view: CalendarView) -> dict[str, Any]:
    return {
        "date": view.date.isoformat(),
        "event_count": len(view.events),
        "highlighted": [
            {
                "id": item.event.id,
                "title": item.event.title,
                "start_time": item.event.start_time,
                "end_time": item.event.end_time,
                "action": item.action.value,
            }
            for item in view.highlighted
        ],
    }
