"""
Timing helpers for observability.

Responsibilities:
- Measure durations using monotonic time (immune to clock changes)
- Emit metrics as JSONL events via observability.logger
- Never aggregate: one metric = one log event

Durations use monotonic time; ts_ms uses wall-clock time for correlation.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    run_id: int | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """
    Measure the enclosed block and emit one METRIC_TIMER event.

    Yields a mutable dict; anything the block stores in it (e.g. an
    outcome) is attached to the emitted details.

    Usage:
        with timed("agent_round_trip", session_id=sid, run_id=3) as extra:
            body = await client.send_message(...)
            extra["outcome"] = "ok"

    The metric is emitted even when the block raises.
    """
    extra: dict[str, Any] = {}
    start_ns = time.monotonic_ns()
    try:
        yield extra
    finally:
        duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000
        log_event({
            "ts_ms": int(time.time() * 1000),
            "event_type": "METRIC_TIMER",
            "metric": name,
            "value_ms": duration_ms,
            "session_id": session_id,
            "run_id": run_id,
            "details": {**(details or {}), **extra},
        })
