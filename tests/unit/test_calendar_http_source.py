# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
import datetime as dt
from typing import Any, Callable

import httpx
import pytest

from adapters.calendar.http_source import CalendarFetchError, HttpCalendarSource
from observability import logger
from services.calendar_service import CalendarEvent


@pytest.fixture(autouse=True)
def silence_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_print", lambda line: None)


Handler = Callable[[httpx.Request], httpx.Response]

MAY_5 = dt.date(2025, 5, 5)
MAY_6 = dt.date(2025, 5, 6)


def fetch(handler: Handler, token: str | None = "secret") -> Any:
    source = HttpCalendarSource(
        base_url="http://backend.test",
        token=token,
        session_id="sess_1",
        timeout_s=5.0,
        transport=httpx.MockTransport(handler),
    )

    async def scenario() -> Any:
        try:
            return await source.fetch_events(MAY_5, MAY_6)
        finally:
            await source.aclose()

    return asyncio.run(scenario())


def test_fetch_sends_range_query_and_bearer_token():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[])

    assert fetch(handler) == ()

    request = requests[0]
    assert request.method == "GET"
    assert request.url.path == "/calendar/events/range"
    assert request.url.params["startDate"] == "2025-05-05"
    assert request.url.params["endDate"] == "2025-05-06"
    assert request.headers["Authorization"] == "Bearer secret"


def test_backend_records_map_to_calendar_events():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[
            {
                "id": "ev1",
                "summary": "Standup",
                "startTime": "2025-05-05T09:00:00+03:00",
                "endTime": "2025-05-05T09:15:00+03:00",
                "description": "daily",
                "isAllDay": False,
            },
            {"id": "ev2", "summary": "Holiday", "startTime": None, "endTime": None},
            {"summary": "no id"},
            "garbage",
        ])

    events = fetch(handler)

    assert events == (
        CalendarEvent(
            id="ev1",
            title="Standup",
            start_time="2025-05-05T09:00:00+03:00",
            end_time="2025-05-05T09:15:00+03:00",
            description="daily",
        ),
        CalendarEvent(id="ev2", title="Holiday", start_time="", end_time=""),
    )


def test_missing_token_sends_nothing():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[])

    with pytest.raises(CalendarFetchError, match="no backend token"):
        fetch(handler, token=None)

    assert requests == []


@pytest.mark.parametrize(
    "response, message",
    [
        (httpx.Response(500, json={"detail": "down"}), "returned 500"),
        (httpx.Response(200, text="<html>"), "not JSON"),
        (httpx.Response(200, json={"events": []}), "not a list"),
    ],
)
def test_bad_responses_raise_fetch_error(response: httpx.Response, message: str):
    with pytest.raises(CalendarFetchError, match=message):
        fetch(lambda request: response)


def test_transport_error_raises_fetch_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CalendarFetchError, match="connection refused"):
        fetch(handler)
