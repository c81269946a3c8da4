"""
HTTP calendar source.

Responsibilities:
- Fetch the events of a date range from the calendar backend
- Map backend event records into CalendarEvent

Non-responsibilities:
- No caching (CalendarService owns the cache)
- No highlight resolution
- No retries
"""
from __future__ import annotations

import datetime as dt
import time
from typing import Any

import httpx

from constants import CALENDAR_EVENTS_RANGE_PATH
from observability.logger import log_event
from services.calendar_service import CalendarEvent


class CalendarFetchError(Exception):
    """The calendar backend could not be read."""


class HttpCalendarSource:
    """
    Calendar backend client over HTTP (httpx).

    One instance serves one session. Requests are authorized with the same
    bearer token as the agent API.
    """

    def __init__(
        self,
        *,
        base_url: str,
        token: str | None,
        session_id: str,
        timeout_s: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self._session_id = session_id
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_s,
            transport=transport,
        )

    async def fetch_events(
        self, start: dt.date, end: dt.date
    ) -> tuple[CalendarEvent, ...]:
        """
        GET /calendar/events/range?startDate=YYYY-MM-DD&endDate=YYYY-MM-DD

        Raises CalendarFetchError on a missing token, a transport error,
        a non-2xx response or a body that is not a list.
        """
        if not self._token:
            raise CalendarFetchError("no backend token")

        try:
            response = await self._client.get(
                CALENDAR_EVENTS_RANGE_PATH,
                params={"startDate": start.isoformat(), "endDate": end.isoformat()},
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except httpx.HTTPError as exc:
            raise CalendarFetchError(str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise CalendarFetchError(f"calendar backend returned {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise CalendarFetchError("calendar response is not JSON") from exc
        if not isinstance(body, list):
            raise CalendarFetchError("calendar response is not a list")

        events = tuple(
            event for event in (_event_from_wire(item) for item in body)
            if event is not None
        )
        if len(events) != len(body):
            log_event({
                "ts_ms": time.time_ns() // 1_000_000,
                "event_type": "calendar_records_skipped",
                "session_id": self._session_id,
                "skipped": len(body) - len(events),
            }, level="warning")
        return events

    async def aclose(self) -> None:
        await self._client.aclose()


def _event_from_wire(item: Any) -> CalendarEvent | None:
    """
    Input format:
    {
        "id": "ev1",
        "summary": "Standup",
        "startTime": "2025-05-05T09:00:00+03:00",   # null for some all-day records
        "endTime": "2025-05-05T09:15:00+03:00",
        "description": "..."                        # optional
    }

    Records without a string id or summary are skipped.
    """
    if not isinstance(item, dict):
        return None
    record_id = item.get("id")
    summary = item.get("summary")
    if not isinstance(record_id, str) or not isinstance(summary, str):
        return None

    description = item.get("description")
    return CalendarEvent(
        id=record_id,
        title=summary,
        start_time=_str_or_empty(item.get("startTime")),
        end_time=_str_or_empty(item.get("endTime")),
        description=description if isinstance(description, str) else None,
    )


def _str_or_empty(value: Any) -> str:
    return value if isinstance(value, str) else ""
