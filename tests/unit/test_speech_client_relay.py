# pylint: disable=missing-module-docstring,missing-function-docstring
import asyncio
from typing import Any

import pytest

from adapters.speech.base import (
    Cancelled,
    Failed,
    FinalText,
    Listening,
    SpeechSignal,
    describe_speech_error,
)
from adapters.speech.client_relay import ClientRelaySpeechSource
from observability import logger


@pytest.fixture(autouse=True)
def silence_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(logger, "_print", lambda line: None)


def make_source() -> tuple[ClientRelaySpeechSource, list[dict[str, Any]]]:
    sent: list[dict[str, Any]] = []
    return ClientRelaySpeechSource(session_id="s1", send_control=sent.append), sent


async def collect(source: ClientRelaySpeechSource, run_id: int) -> list[SpeechSignal]:
    return [signal async for signal in source.listen(run_id)]


def test_stream_ends_after_terminal_signal():
    source, sent = make_source()

    async def scenario() -> list[SpeechSignal]:
        task = asyncio.create_task(collect(source, 1))
        await asyncio.sleep(0)
        assert source.active_run == 1
        source.report_listening()
        source.report_result("hello")
        source.report_cancelled()  # never yielded: FinalText ends the stream
        return await task

    signals = asyncio.run(scenario())

    assert signals == [Listening(), FinalText(text="hello")]
    assert sent[0]["type"] == "SPEECH_START"
    assert sent[0]["run_id"] == 1
    assert source.active_run is None


def test_no_match_ends_run_as_cancelled():
    source, _ = make_source()

    async def scenario() -> list[SpeechSignal]:
        task = asyncio.create_task(collect(source, 1))
        await asyncio.sleep(0)
        source.report_error(code="no_match")
        return await task

    assert asyncio.run(scenario()) == [Cancelled()]


def test_error_code_becomes_readable_failure():
    source, _ = make_source()

    async def scenario() -> list[SpeechSignal]:
        task = asyncio.create_task(collect(source, 1))
        await asyncio.sleep(0)
        source.report_error(code="audio")
        return await task

    assert asyncio.run(scenario()) == [Failed(message="Audio recording error.")]


def test_new_run_cancels_older_stream():
    source, _ = make_source()

    async def scenario() -> tuple[list[SpeechSignal], list[SpeechSignal]]:
        first = asyncio.create_task(collect(source, 1))
        await asyncio.sleep(0)
        second = asyncio.create_task(collect(source, 2))
        await asyncio.sleep(0)
        source.report_result("for run two")
        return await first, await second

    first, second = asyncio.run(scenario())

    assert first == [Cancelled()]
    assert second == [FinalText(text="for run two")]


def test_stop_is_idempotent_and_ignores_unknown_runs():
    source, sent = make_source()

    async def scenario() -> None:
        task = asyncio.create_task(collect(source, 1))
        await asyncio.sleep(0)
        await source.stop(1)
        await source.stop(1)
        await source.stop(99)
        source.report_cancelled()
        await task

    asyncio.run(scenario())

    assert [m["type"] for m in sent] == ["SPEECH_START", "SPEECH_STOP"]


def test_report_without_active_run_is_dropped():
    source, _ = make_source()

    source.report_result("nobody listening")

    assert source.active_run is None


@pytest.mark.parametrize(
    "code, message, expected",
    [
        ("network", None, "Network error during speech recognition."),
        ("weird", "custom text", "custom text"),
        ("weird", None, "Speech recognition error (weird)."),
        (None, None, "Speech recognition error."),
    ],
)
def test_describe_speech_error(code: str | None, message: str | None, expected: str):
    assert describe_speech_error(code, message) == expected
