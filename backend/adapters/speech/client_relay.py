"""
Client-side speech recognition relay.

Recognition runs on the client device. This source asks the client to
start/stop recognition through control messages and turns the signals the
client reports back into the per-run speech stream.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, AsyncIterator, Callable

from adapters.speech.base import (
    NO_MATCH_CODE,
    TERMINAL_SIGNALS,
    Cancelled,
    Failed,
    FinalText,
    Listening,
    SpeechSignal,
    SpeechSource,
    describe_speech_error,
)
from observability.logger import log_event

ControlSink = Callable[[dict[str, Any]], None]


class ClientRelaySpeechSource(SpeechSource):
    """
    Speech source backed by the connected client's recognizer.

    Design notes:
    - At most one run is active; client reports always belong to it.
    - Each run owns an asyncio.Queue drained by listen().
    - Reports arriving with no active run are logged and dropped.
    """

    def __init__(self, *, session_id: str, send_control: ControlSink) -> None:
        self._session_id = session_id
        self._send_control = send_control

        self._queues: dict[int, asyncio.Queue[SpeechSignal]] = {}
        self._active_run: int | None = None
        self._stop_requested: set[int] = set()

    @property
    def active_run(self) -> int | None:
        return self._active_run

    # ------------------------------------------------------------------
    # SpeechSource
    # ------------------------------------------------------------------

    async def listen(self, run_id: int) -> AsyncIterator[SpeechSignal]:
        # Close any older stream so its consumer task can finish.
        for old_run, old_queue in self._queues.items():
            if old_run != run_id:
                old_queue.put_nowait(Cancelled())

        queue: asyncio.Queue[SpeechSignal] = asyncio.Queue()
        self._queues[run_id] = queue
        self._active_run = run_id

        self._send_control({
            "type": "SPEECH_START",
            "run_id": run_id,
            "ts_ms": _now_ms(),
        })

        try:
            while True:
                signal = await queue.get()
                yield signal
                if isinstance(signal, TERMINAL_SIGNALS):
                    return
        finally:
            self._queues.pop(run_id, None)
            self._stop_requested.discard(run_id)
            if self._active_run == run_id:
                self._active_run = None

    async def stop(self, run_id: int) -> None:
        if run_id not in self._queues or run_id in self._stop_requested:
            return
        self._stop_requested.add(run_id)
        self._send_control({
            "type": "SPEECH_STOP",
            "run_id": run_id,
            "ts_ms": _now_ms(),
        })

    # ------------------------------------------------------------------
    # Client reports (called by the gateway)
    # ------------------------------------------------------------------

    def report_listening(self) -> None:
        self._deliver(Listening())

    def report_result(self, text: str) -> None:
        self._deliver(FinalText(text=text))

    def report_cancelled(self) -> None:
        self._deliver(Cancelled())

    def report_error(self, code: str | None = None, message: str | None = None) -> None:
        """
        Client recognizer failed.

        no_match is how recognizers report silence; it ends the run as
        Cancelled rather than as an error.
        """
        if code == NO_MATCH_CODE:
            self._deliver(Cancelled())
            return
        self._deliver(Failed(message=describe_speech_error(code, message)))

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _deliver(self, signal: SpeechSignal) -> None:
        run_id = self._active_run
        queue = self._queues.get(run_id) if run_id is not None else None
        if queue is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "speech_report_dropped",
                "session_id": self._session_id,
                "signal": type(signal).__name__,
            }, level="debug")
            return
        queue.put_nowait(signal)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000
